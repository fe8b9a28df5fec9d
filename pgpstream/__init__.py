# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
Configure base logger for pgpstream (see pgpstream.log for details) and
expose the two pipeline entry points.

"""
import pgpstream.log

from pgpstream.encryption_stream import EncryptionStream, encrypt_and_or_sign
from pgpstream.decryption_stream import DecryptionStream, decrypt_and_or_verify
from pgpstream.options import (ProducerOptions, ConsumerOptions,
    EncryptionOptions, SigningOptions)


# pgpstream version
__version__ = "0.3.0"
