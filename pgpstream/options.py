# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  options.py

<Started>
  Oct 7, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Options of the composition (`ProducerOptions`) and decomposition
  (`ConsumerOptions`) pipelines.

  Encryption and signing methods are collected in `EncryptionOptions` and
  `SigningOptions`. Passing them to `ProducerOptions` validates the whole
  configuration once and freezes it, i.e. further methods cannot be added.

  Example Usage:

  >>> encryption = EncryptionOptions()
  >>> encryption.add_recipient(bob_certificate)
  >>> signing = SigningOptions()
  >>> signing.add_inline_signature(alice_secret_key, alice_certificate)
  >>> options = ProducerOptions.sign_and_encrypt(encryption, signing)

"""
import logging
import datetime

import attr
import dateutil.tz

import pgpstream.pgp.keys
import pgpstream.pgp.signature
import pgpstream.pgp.formats
import pgpstream.armor
import pgpstream.policy
from pgpstream.exceptions import InvalidStateError, MissingCertificateError
from pgpstream.pgp.exceptions import KeyNotFoundError
from pgpstream.pgp.keys import SubkeyIdentifier
from pgpstream.pgp.constants import (STREAM_ENCODINGS, SIGNATURE_TYPE_BINARY,
    SUPPORTED_DOCUMENT_SIGNATURE_TYPES, UNCOMPRESSED)

log = logging.getLogger(__name__)


@attr.s(frozen=True)
class PublicKeyEncryptionMethod:
  """Encrypt the session key to the public key of a recipient. """
  recipient = attr.ib()
  pubkey = attr.ib(repr=False)
  certificate = attr.ib(repr=False)


@attr.s(frozen=True, repr=False)
class PassphraseEncryptionMethod:
  """Encrypt the session key with a key derived from a passphrase. """
  passphrase = attr.ib()

  def __repr__(self):
    return "PassphraseEncryptionMethod(passphrase=***)"


class EncryptionOptions:
  """Ordered encryption methods of a message. The message is encrypted if
  there is at least one method. """

  def __init__(self):
    self._methods = []
    self._frozen = False

  def _check_not_frozen(self):
    if self._frozen:
      raise InvalidStateError("Encryption options are already in use and "
          "cannot be changed.")

  @property
  def methods(self):
    return tuple(self._methods)

  @property
  def recipients(self):
    """The SubkeyIdentifiers of all recipient keys. """
    return tuple(method.recipient for method in self._methods
        if isinstance(method, PublicKeyEncryptionMethod))

  @property
  def certificates(self):
    """The distinct recipient certificates in the order they were added. """
    certificates = []
    for method in self._methods:
      if isinstance(method, PublicKeyEncryptionMethod) and \
          method.certificate not in certificates:
        certificates.append(method.certificate)

    return certificates

  def add_recipient(self, certificate):
    """
    <Purpose>
      Encrypt the message to every encryption capable key of the passed
      certificate.

    <Arguments>
      certificate:
              A certificate in the format pgpstream.pgp.formats.PUBKEY_SCHEMA

    <Exceptions>
      securesystemslib.exceptions.FormatError
              If the certificate is malformed.

      pgpstream.pgp.exceptions.KeyNotFoundError
              If the certificate has no key that can encrypt.

      pgpstream.exceptions.InvalidStateError
              If the options are already frozen.

    <Side Effects>
      None.

    <Returns>
      The options, to allow chaining.

    """
    self._check_not_frozen()
    pgpstream.pgp.formats.PUBKEY_SCHEMA.check_match(certificate)

    keys = pgpstream.pgp.keys.get_encryption_keys(certificate)
    if not keys:
      raise KeyNotFoundError("Certificate '{}' has no key capable of "
          "encryption.".format(certificate["keyid"]))

    for key in keys:
      self._methods.append(PublicKeyEncryptionMethod(
          recipient=SubkeyIdentifier.for_key(key, certificate),
          pubkey=key, certificate=certificate))
      log.debug("Added recipient key '{}' of certificate '{}'".format(
          key["keyid"], certificate["keyid"]))

    return self

  def add_recipients(self, certificates, selector):
    """Encrypt the message to every passed certificate that has a user id
    accepted by the passed pgpstream.selection.UserIdSelector. """
    self._check_not_frozen()
    selected = [certificate for certificate in certificates
        if selector.first_match(certificate.get("userids", [])) is not None]
    if not selected:
      raise KeyNotFoundError("No certificate has a user id matching "
          "{}.".format(selector))

    for certificate in selected:
      self.add_recipient(certificate)

    return self

  def add_passphrase(self, passphrase):
    self._check_not_frozen()
    if not passphrase:
      raise ValueError("Passphrase must not be empty.")

    self._methods.append(PassphraseEncryptionMethod(passphrase))
    return self

  def freeze(self):
    self._frozen = True


@attr.s(frozen=True)
class SigningMethod:
  """A signing identity bound to the algorithms of the signature it makes.
  `new_generator` returns the signature generator for one message. """
  secret_key = attr.ib(repr=False)
  hash_algorithm = attr.ib()
  signature_type = attr.ib()
  detached = attr.ib()

  def new_generator(self):
    return pgpstream.pgp.signature.SignatureGenerator(self.secret_key,
        self.hash_algorithm, self.signature_type)


class SigningOptions:
  """Ordered signing methods of a message, keyed by the SubkeyIdentifier of
  the signing key. The order determines the bracketing of inline
  signatures. """

  def __init__(self, policy=None):
    if policy is None:
      policy = pgpstream.policy.AlgorithmPolicy()

    self.policy = policy
    self._signing_methods = {}
    self._frozen = False

  @property
  def signing_methods(self):
    return dict(self._signing_methods)

  def _add(self, secret_key, certificate, hash_algorithm, signature_type,
      detached):
    if self._frozen:
      raise InvalidStateError("Signing options are already in use and "
          "cannot be changed.")

    if signature_type not in SUPPORTED_DOCUMENT_SIGNATURE_TYPES:
      raise ValueError("Signature type '{}' not supported, must be one of "
          "{}.".format(signature_type, SUPPORTED_DOCUMENT_SIGNATURE_TYPES))

    if certificate is not None:
      pgpstream.pgp.formats.PUBKEY_SCHEMA.check_match(certificate)
      key = pgpstream.pgp.keys.find_key(certificate, secret_key.keyid)
      if key is None or key not in \
          pgpstream.pgp.keys.get_signing_keys(certificate):
        raise KeyNotFoundError("Key '{}' is not a signing key of certificate "
            "'{}'.".format(secret_key.keyid, certificate["keyid"]))

    identifier = SubkeyIdentifier.for_key(secret_key.pubkey, certificate)
    if identifier in self._signing_methods:
      raise InvalidStateError("Key '{}' was already added as signing "
          "method.".format(secret_key.keyid))

    if hash_algorithm is None:
      hash_algorithm = pgpstream.policy.negotiate_hash_algorithm(self.policy,
          certificate)
    else:
      self.policy.check_hash_algorithm(hash_algorithm)

    self._signing_methods[identifier] = SigningMethod(secret_key,
        hash_algorithm, signature_type, detached)
    log.debug("Added {} signing method for key '{}' (hash {})".format(
        "detached" if detached else "inline", secret_key.short_keyid,
        hash_algorithm))
    return self

  def add_inline_signature(self, secret_key, certificate=None,
      hash_algorithm=None, signature_type=SIGNATURE_TYPE_BINARY):
    """
    <Purpose>
      Sign the message with the passed key and embed the signature in the
      message.

    <Arguments>
      secret_key:
              A pgpstream.pgp.keys.SecretKey

      certificate: (optional)
              The certificate of the signer. If passed, the key must be one
              of its signing keys and the hash algorithm is negotiated against
              its preferences.

      hash_algorithm: (optional)
              An explicit hash algorithm id accepted by the policy

      signature_type: (optional)
              SIGNATURE_TYPE_BINARY (default) or SIGNATURE_TYPE_TEXT

    <Exceptions>
      pgpstream.pgp.exceptions.KeyNotFoundError
              If the key is not a signing key of the certificate.

      pgpstream.exceptions.UnacceptableAlgorithmError
              If the hash algorithm is rejected by the policy.

      pgpstream.exceptions.InvalidStateError
              If the key was already added or the options are frozen.

    <Side Effects>
      None.

    <Returns>
      The options, to allow chaining.

    """
    return self._add(secret_key, certificate, hash_algorithm, signature_type,
        False)

  def add_detached_signature(self, secret_key, certificate=None,
      hash_algorithm=None, signature_type=SIGNATURE_TYPE_BINARY):
    """Like add_inline_signature, but the signature is returned with the
    EncryptionResult instead of being embedded in the message (except in
    cleartext signed messages). """
    return self._add(secret_key, certificate, hash_algorithm, signature_type,
        True)

  def freeze(self):
    self._frozen = True


def _to_utc(modification_date):
  if modification_date is None:
    return None

  if not isinstance(modification_date, datetime.datetime):
    raise TypeError("Modification date must be a datetime, got "
        "'{}'.".format(type(modification_date).__name__))

  if modification_date.tzinfo is None:
    modification_date = modification_date.replace(tzinfo=dateutil.tz.UTC)

  # The literal data packet only has second precision
  return modification_date.astimezone(dateutil.tz.UTC).replace(microsecond=0)


def _to_comment_lines(comment):
  if comment is None:
    return ()

  if isinstance(comment, str):
    comment = comment.splitlines()

  return tuple(line.strip() for line in comment if line.strip())


@attr.s(frozen=True)
class ProducerOptions:
  """
  <Purpose>
    Immutable configuration of a composed message, validated on creation.

  <Arguments>
    armor: (optional)
            ASCII armor the message (default True)

    comment: (optional)
            A string or list of comment lines written as armor "Comment"
            headers, blank lines are skipped

    encryption: (optional)
            EncryptionOptions, the message is not encrypted if None or empty

    signing: (optional)
            SigningOptions, the message is not signed if None or empty

    encoding: (optional)
            Literal data format, "binary" (default), "text" or "utf8"

    apply_crlf_encoding: (optional)
            Convert line endings of the payload to <CR><LF>

    file_name: (optional)
            Literal data file name

    modification_date: (optional)
            Literal data modification date, naive datetimes are UTC

    cleartext_signed: (optional)
            Use the cleartext signature framework, requires armor, detached
            signing methods only and no encryption

    compression_algorithm: (optional)
            Compression algorithm id overriding negotiation

    policy: (optional)
            pgpstream.policy.AlgorithmPolicy

  <Exceptions>
    ValueError, TypeError
            If the configuration is invalid.

  """
  armor = attr.ib(default=True)
  comment = attr.ib(default=None, converter=_to_comment_lines)
  encryption = attr.ib(default=None)
  signing = attr.ib(default=None)
  encoding = attr.ib(default="binary",
      validator=attr.validators.in_(list(STREAM_ENCODINGS)))
  apply_crlf_encoding = attr.ib(default=False)
  file_name = attr.ib(default="")
  modification_date = attr.ib(default=None, converter=_to_utc)
  cleartext_signed = attr.ib(default=False)
  compression_algorithm = attr.ib(default=None)
  policy = attr.ib(default=attr.Factory(pgpstream.policy.AlgorithmPolicy))

  def __attrs_post_init__(self):
    if self.encryption is not None and \
        not isinstance(self.encryption, EncryptionOptions):
      raise TypeError("encryption must be EncryptionOptions.")

    if self.signing is not None and \
        not isinstance(self.signing, SigningOptions):
      raise TypeError("signing must be SigningOptions.")

    if self.cleartext_signed:
      self._check_cleartext()

    if self.compression_algorithm is not None:
      self.policy.check_compression_algorithm(self.compression_algorithm)

    if self.encryption is not None:
      self.encryption.freeze()

    if self.signing is not None:
      self.signing.freeze()

  def _check_cleartext(self):
    if not self.armor:
      raise ValueError("Cleartext signing requires ASCII armor.")

    if self.is_encrypted:
      raise ValueError("Cleartext signed messages cannot be encrypted.")

    if not self.is_signed:
      raise ValueError("Cleartext signing requires signing methods.")

    if any(not method.detached
        for method in self.signing.signing_methods.values()):
      raise ValueError("Cleartext signing requires detached signing "
          "methods.")

    if self.compression_algorithm not in (None, UNCOMPRESSED):
      raise ValueError("Cleartext signed messages cannot be compressed.")

  @property
  def is_encrypted(self):
    return self.encryption is not None and bool(self.encryption.methods)

  @property
  def is_signed(self):
    return self.signing is not None and bool(self.signing.signing_methods)

  @classmethod
  def encrypt(cls, encryption, **kwargs):
    return cls(encryption=encryption, **kwargs)

  @classmethod
  def sign(cls, signing, **kwargs):
    return cls(signing=signing, **kwargs)

  @classmethod
  def sign_and_encrypt(cls, encryption, signing, **kwargs):
    return cls(encryption=encryption, signing=signing, **kwargs)


@attr.s(frozen=True)
class DecryptionKey:
  """A secret key available for decryption and the identifier reported if it
  decrypts a message. """
  secret_key = attr.ib(repr=False)
  identifier = attr.ib()


class ConsumerOptions:
  """
  <Purpose>
    Keys, passphrases and certificates available to decompose a message.

    Signatures are only verified if at least one verification certificate or
    a missing certificate callback is configured. The callback is called with
    the issuer fingerprint (or key id) of a signature whose signer is not
    among the verification certificates and may return a certificate or
    None.

  """
  def __init__(self, policy=None):
    if policy is None:
      policy = pgpstream.policy.AlgorithmPolicy()

    self.policy = policy
    self.decryption_keys = []
    self.passphrases = []
    self.certificates = []
    self.detached_signatures = []
    self.missing_certificate_callback = None

  def add_decryption_key(self, secret_key, certificate=None):
    if certificate is not None and \
        pgpstream.pgp.keys.find_key(certificate, secret_key.keyid) is None:
      raise KeyNotFoundError("Key '{}' is not part of certificate "
          "'{}'.".format(secret_key.keyid, certificate["keyid"]))

    self.decryption_keys.append(DecryptionKey(secret_key,
        SubkeyIdentifier.for_key(secret_key.pubkey, certificate)))
    return self

  def add_decryption_passphrase(self, passphrase):
    if not passphrase:
      raise ValueError("Passphrase must not be empty.")

    self.passphrases.append(passphrase)
    return self

  def add_verification_cert(self, certificate):
    pgpstream.pgp.formats.PUBKEY_SCHEMA.check_match(certificate)
    self.certificates.append(certificate)
    return self

  def set_missing_certificate_callback(self, callback):
    self.missing_certificate_callback = callback
    return self

  def add_detached_signature(self, signature):
    """Verify the consumed data against the passed detached signature, a
    pgpstream.pgp.signature.Signature, a binary signature packet or an
    armored signature block. The data is then treated as plain data, not as
    an OpenPGP message. """
    if isinstance(signature, str):
      signature = pgpstream.armor.dearmor(signature)

    elif isinstance(signature, bytes) and \
        pgpstream.armor.is_armored(signature[:64]):
      signature = pgpstream.armor.dearmor(signature)

    if isinstance(signature, bytes):
      signature = pgpstream.pgp.signature.parse_signature_packet(signature)

    self.detached_signatures.append(signature)
    return self

  @property
  def is_verifying(self):
    return bool(self.certificates) or \
        self.missing_certificate_callback is not None

  def find_certificate(self, keyid):
    """
    <Purpose>
      Find the certificate that contains the key with the passed fingerprint
      or key id, asking the missing certificate callback if none of the
      verification certificates has it.

    <Arguments>
      keyid:
              A fingerprint or 16 hex digit key id

    <Exceptions>
      pgpstream.exceptions.MissingCertificateError
              If no certificate is found.

    <Side Effects>
      Calls the missing certificate callback.

    <Returns>
      A tuple of certificate and the matching public key dictionary.

    """
    for certificate in self.certificates:
      key = pgpstream.pgp.keys.find_key(certificate, keyid)
      if key is not None:
        return certificate, key

    if self.missing_certificate_callback is not None:
      log.debug("Asking for missing certificate of key '{}'".format(keyid))
      certificate = self.missing_certificate_callback(keyid)
      if certificate is not None:
        key = pgpstream.pgp.keys.find_key(certificate, keyid)
        if key is not None:
          return certificate, key

    raise MissingCertificateError(keyid)
