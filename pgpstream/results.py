# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  results.py

<Started>
  Oct 7, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Result objects of the composition and decomposition pipelines.

  Both pipelines fill a builder while layers are opened and closed and
  expose the frozen result only after the stream was closed.

"""
import attr

import pgpstream.pgp.util
from pgpstream.exceptions import InvalidStateError
from pgpstream.pgp.constants import NULL, UNCOMPRESSED


@attr.s(frozen=True)
class EncryptionResult:
  """Summary of a composed message.

  Attributes:
    encryption_algorithm: The negotiated symmetric algorithm id, NULL if the
        message is not encrypted.
    compression_algorithm: The negotiated compression algorithm id.
    recipients: A tuple of SubkeyIdentifiers the message is encrypted to.
    file_name: The literal data file name.
    modification_date: The literal data modification date or None.
    file_encoding: "binary", "text" or "utf8".
    detached_signatures: A dictionary mapping the SubkeyIdentifier of each
        detached signing method to a list of Signatures, in declaration
        order.

  """
  encryption_algorithm = attr.ib()
  compression_algorithm = attr.ib()
  recipients = attr.ib(converter=tuple)
  file_name = attr.ib()
  modification_date = attr.ib()
  file_encoding = attr.ib()
  detached_signatures = attr.ib()

  @property
  def is_encrypted(self):
    return self.encryption_algorithm != NULL

  def is_encrypted_for(self, certificate):
    """Tell whether any key of the passed certificate is a recipient. """
    return any(recipient.primary_keyid == certificate["keyid"]
        for recipient in self.recipients)


class EncryptionResultBuilder:
  """Accumulates an EncryptionResult. Each scalar field may only be set
  once. """

  def __init__(self):
    self._fields = {}
    self._recipients = []
    self._detached_signatures = {}

  def _set(self, name, value):
    if name in self._fields:
      raise InvalidStateError("Result field '{}' is already set.".format(name))

    self._fields[name] = value

  def set_encryption_algorithm(self, algorithm):
    self._set("encryption_algorithm", algorithm)

  def set_compression_algorithm(self, algorithm):
    self._set("compression_algorithm", algorithm)

  def set_file_name(self, file_name):
    self._set("file_name", file_name)

  def set_modification_date(self, modification_date):
    self._set("modification_date", modification_date)

  def set_file_encoding(self, encoding):
    self._set("file_encoding", encoding)

  def add_recipient(self, identifier):
    self._recipients.append(identifier)

  def add_detached_signature(self, identifier, signature):
    self._detached_signatures.setdefault(identifier, []).append(signature)

  def build(self):
    return EncryptionResult(
        encryption_algorithm=self._fields.get("encryption_algorithm", NULL),
        compression_algorithm=self._fields.get("compression_algorithm",
            UNCOMPRESSED),
        recipients=self._recipients,
        file_name=self._fields.get("file_name", ""),
        modification_date=self._fields.get("modification_date"),
        file_encoding=self._fields.get("file_encoding", "binary"),
        detached_signatures=dict(self._detached_signatures))


@attr.s(frozen=True)
class Verification:
  """A successfully verified signature.

  Attributes:
    creation_time: The signature creation time (timezone aware datetime).
    signing_subkey_keyid: The fingerprint of the key that made the
        signature.
    signing_primary_keyid: The fingerprint of the primary key of the signer
        certificate.
    signature: The verified pgpstream.pgp.signature.Signature.

  """
  creation_time = attr.ib()
  signing_subkey_keyid = attr.ib()
  signing_primary_keyid = attr.ib()
  signature = attr.ib(repr=False)


@attr.s(frozen=True)
class SignatureVerificationFailure:
  """A signature that could not be verified, reason is the exception that
  tells why. """
  signature = attr.ib(repr=False)
  reason = attr.ib()


@attr.s(frozen=True)
class MessageMetadata:
  """Summary of a decomposed message, see MessageMetadataBuilder. """
  is_using_cleartext_signature_framework = attr.ib()
  verified_inline_signatures = attr.ib(converter=tuple)
  verified_detached_signatures = attr.ib(converter=tuple)
  rejected_inline_signatures = attr.ib(converter=tuple)
  rejected_detached_signatures = attr.ib(converter=tuple)
  file_name = attr.ib()
  modification_date = attr.ib()
  file_encoding = attr.ib()
  encryption_algorithm = attr.ib()
  compression_algorithm = attr.ib()
  decryption_key = attr.ib()
  recipient_keyids = attr.ib(converter=tuple)
  armor_headers = attr.ib(converter=tuple)

  @property
  def is_encrypted(self):
    return self.encryption_algorithm != NULL

  @property
  def verified_signatures(self):
    return self.verified_inline_signatures + self.verified_detached_signatures

  def is_verified_signed_by(self, certificate):
    """Tell whether any verified signature was made by a key of the passed
    certificate. """
    return any(verification.signing_primary_keyid == certificate["keyid"]
        for verification in self.verified_signatures)

  def is_encrypted_for(self, keyid):
    return any(pgpstream.pgp.util.keyid_matches(keyid, recipient)
        for recipient in self.recipient_keyids)


class MessageMetadataBuilder:
  """Accumulates MessageMetadata while a message is decomposed. """

  def __init__(self):
    self.is_using_cleartext_signature_framework = False
    self.verified_inline_signatures = []
    self.verified_detached_signatures = []
    self.rejected_inline_signatures = []
    self.rejected_detached_signatures = []
    self.file_name = ""
    self.modification_date = None
    self.file_encoding = "binary"
    self.encryption_algorithm = NULL
    self.compression_algorithm = UNCOMPRESSED
    self.decryption_key = None
    self.recipient_keyids = []
    self.armor_headers = []

  def build(self):
    return MessageMetadata(**vars(self))
