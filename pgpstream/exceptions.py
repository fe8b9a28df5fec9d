# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  exceptions.py

<Started>
  Oct 2, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Define the exceptions raised by the composition and decomposition pipelines.
  Following the practice from securesystemslib the names chosen for exception
  classes end in 'Error'.

"""
# pylint: disable=missing-docstring
from securesystemslib.exceptions import Error


class InvalidStateError(Error):
  """Indicates that an object was used in a state that does not allow the
  operation, e.g. a result read before its stream was closed. """

class AlgorithmNegotiationError(Error):
  """Indicates that no mutually supported algorithm could be negotiated. """

class UnacceptableAlgorithmError(Error):
  """Indicates that an algorithm is rejected by the algorithm policy. """

class MissingDecryptionMethodError(Error):
  """Indicates that no decryption key or passphrase matches any of the
  encryption methods of a message. """

class MalformedMessageError(Error):
  """Indicates that the packet structure of a message violates the expected
  nesting. """

class ModificationDetectionError(MalformedMessageError):
  """Indicates that the integrity protection of encrypted data failed. """

class SignatureVerificationError(Error):
  """Indicates a signature verification Error. """

class MissingCertificateError(Error):
  """Indicates that the certificate of a signer is not available. """
  def __init__(self, keyid):
    super().__init__()
    self.keyid = keyid

  def __str__(self):
    return "No certificate available for signing key '{}'.".format(
        self.keyid)

class LayerIOError(Error, OSError):
  """Indicates an I/O failure while finishing a layer of a message, also an
  OSError. The original failure is available as `__cause__`. """
  def __init__(self, context):
    super().__init__(context)
    self.context = context
