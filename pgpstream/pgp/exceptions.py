# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  exceptions.py

<Started>
  Oct 3, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Define Exceptions used in the pgp package. Following the practice from
  securesystemslib the names chosen for exception classes should end in
  'Error' (except where there is a good reason not to).

"""
from securesystemslib.exceptions import Error

from pgpstream.exceptions import MalformedMessageError


class PacketParsingError(MalformedMessageError):
  pass

class KeyNotFoundError(Error):
  pass

class PacketVersionNotSupportedError(PacketParsingError):
  pass

class SignatureAlgorithmNotSupportedError(Error):
  pass
