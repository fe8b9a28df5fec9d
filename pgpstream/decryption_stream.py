# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  decryption_stream.py

<Started>
  Oct 9, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Decomposition pipeline, i.e. the readable stream that returns the payload
  of an OpenPGP message while decrypting it and verifying its signatures.

  The layers of the message are peeled in the reverse order of composition:
  armor (or the cleartext signature framework) is detected and decoded, the
  session key packets are matched against the available decryption keys and
  passphrases, compressed data is inflated and every one-pass signature
  pushes a verifier onto a stack. The literal data is then streamed to the
  caller and fed to all verifiers. At its end the trailing signatures are
  matched against the verifier stack, innermost first.

  Example Usage:

  >>> options = ConsumerOptions()
  >>> options.add_decryption_key(bob_secret_key, bob_certificate)
  >>> options.add_verification_cert(alice_certificate)
  >>> with DecryptionStream(f, options) as stream:
  ...   payload = stream.read()
  >>> stream.metadata.is_verified_signed_by(alice_certificate)
  True

"""
import io
import logging

import pgpstream.armor
import pgpstream.util
import pgpstream.settings
import pgpstream.literal
import pgpstream.encryption
import pgpstream.compression
import pgpstream.pgp.keys
import pgpstream.pgp.packets
import pgpstream.pgp.signature
from pgpstream.results import (MessageMetadataBuilder, Verification,
    SignatureVerificationFailure)
from pgpstream.exceptions import (InvalidStateError, MalformedMessageError,
    MissingDecryptionMethodError, MissingCertificateError,
    SignatureVerificationError, UnacceptableAlgorithmError)
from pgpstream.pgp.exceptions import (KeyNotFoundError,
    SignatureAlgorithmNotSupportedError)
from pgpstream.pgp.constants import (PACKET_TYPE_PKESK, PACKET_TYPE_SKESK,
    PACKET_TYPE_SEIPD, PACKET_TYPE_SED, PACKET_TYPE_COMPRESSED,
    PACKET_TYPE_ONE_PASS_SIGNATURE, PACKET_TYPE_SIGNATURE, PACKET_TYPE_MARKER,
    PACKET_TYPE_LITERAL, PACKET_TYPE_NAMES, HASH_ALGORITHM_NAMES,
    SIGNATURE_TYPE_BINARY, SIGNATURE_TYPE_TEXT)

log = logging.getLogger(__name__)

OPEN = "open"
CLOSED = "closed"
FAILED = "failed"

_HASH_ALGORITHMS_BY_NAME = {name: algorithm
    for algorithm, name in HASH_ALGORITHM_NAMES.items()}

# Enough to detect armor after leading whitespace
_DETECTION_PEEK_SIZE = 1024


class _SignatureContext:
  """A signature announced by a one-pass signature packet or prepended to
  the literal data, together with the verifier that hashes the payload. """

  def __init__(self, hash_algorithm, signature_type, one_pass=None,
      signature=None):
    self.one_pass = one_pass
    self.signature = signature
    self.result = None
    self.error = None
    self.verifier = None
    try:
      self.verifier = pgpstream.pgp.signature.SignatureVerifier(
          hash_algorithm, signature_type)

    except ValueError as e:
      self.error = e

  def update(self, data):
    if self.verifier is not None:
      self.verifier.update(data)


def _get_packet_name(packet_type):
  return PACKET_TYPE_NAMES.get(packet_type, "type {}".format(packet_type))


class DecryptionStream:
  """
  <Purpose>
    Readable binary stream over the payload of an OpenPGP message read from
    source. The message may be binary or armored, use the cleartext signature
    framework or, if detached signatures are configured, be plain data.

    Headers of the message are processed on construction, i.e. a message
    that cannot be decrypted fails before any payload is returned. The
    `metadata` is available after close, which consumes unread payload so
    that all signatures are verified. Closing does not close source.

  <Arguments>
    source:
            A readable binary file-like object

    options:
            A pgpstream.options.ConsumerOptions

  <Exceptions>
    pgpstream.exceptions.MissingDecryptionMethodError
            If the message is encrypted but none of the configured keys or
            passphrases decrypts it.

    pgpstream.exceptions.MalformedMessageError
            If the packet structure of the message is invalid.

  <Side Effects>
    Reads the message up to the literal data from source.

  """
  def __init__(self, source, options):
    self._options = options
    self._source = pgpstream.util.PeekableSource(source)
    self._metadata_builder = MessageMetadataBuilder()
    self._metadata = None
    self._state = OPEN

    # Readers of the packet sequences the literal data is nested in,
    # outermost first
    self._levels = []
    self._contexts = []
    self._pending_one_pass = []
    self._pkesks = []
    self._skesks = []
    self._payload = None
    self._payload_done = False
    self._finish = None

    # Cleartext signed messages
    self._cleartext = None
    self._cleartext_verifiers = {}

    if options.detached_signatures:
      self._open_plain_data()

    elif pgpstream.armor.is_cleartext_signed(
        self._source.peek(_DETECTION_PEEK_SIZE)):
      self._open_cleartext()

    else:
      self._open_message()

  def _open_plain_data(self):
    log.debug("Verifying plain data against {} detached signature(s)".format(
        len(self._options.detached_signatures)))
    for signature in self._options.detached_signatures:
      self._contexts.append(_SignatureContext(signature.hash_algorithm,
          signature.signature_type, signature=signature))

    self._payload = self._source
    self._finish = self._finish_plain_data

  def _open_cleartext(self):
    self._cleartext = pgpstream.armor.CleartextReader(self._source)
    self._metadata_builder.is_using_cleartext_signature_framework = True
    self._metadata_builder.armor_headers = list(self._cleartext.headers)

    hash_algorithms = []
    for name in self._cleartext.hash_algorithm_names:
      if name.upper() not in _HASH_ALGORITHMS_BY_NAME:
        log.info("Ignoring unknown hash algorithm '{}' in cleartext "
            "header.".format(name))
        continue
      hash_algorithms.append(_HASH_ALGORITHMS_BY_NAME[name.upper()])

    if not self._cleartext.hash_algorithm_names:
      hash_algorithms = list(self._options.policy.hash_algorithms)

    # The text is canonical already, hence binary and text signatures are
    # computed over the same data
    for hash_algorithm in hash_algorithms:
      for signature_type in (SIGNATURE_TYPE_BINARY, SIGNATURE_TYPE_TEXT):
        self._cleartext_verifiers[(hash_algorithm, signature_type)] = \
            _SignatureContext(hash_algorithm, signature_type)

    self._payload = self._cleartext
    self._finish = self._finish_cleartext
    log.debug("Reading cleartext signed message")

  def _open_message(self):
    stream = self._source
    if pgpstream.armor.is_armored(self._source.peek(_DETECTION_PEEK_SIZE)):
      stream = pgpstream.armor.ArmorReader(self._source)
      self._metadata_builder.armor_headers = list(stream.headers)
      log.debug("Reading armored message of type '{}'".format(
          stream.armor_type))

    self._levels.append(stream)
    self._read_to_literal_data()
    self._finish = self._finish_message

  def _push_level(self, stream):
    self._levels.append(stream)
    # The top level (source or armor) is not a container packet
    if len(self._levels) - 1 > pgpstream.settings.MAX_PACKET_NESTING_DEPTH:
      raise MalformedMessageError("Message exceeds the maximum packet "
          "nesting depth of {}.".format(
          pgpstream.settings.MAX_PACKET_NESTING_DEPTH))

  def _read_to_literal_data(self):
    """Process the packets preceding the literal data, descending into
    container packets, and position the payload at the literal data. """
    while True:
      stream = self._levels[-1]
      header = pgpstream.pgp.packets.read_packet_header(stream)
      if header is None:
        raise MalformedMessageError("Message ends without literal data.")

      packet_type, body_len, partial = header
      body = pgpstream.pgp.packets.PacketBodyReader(stream, body_len, partial)

      if packet_type == PACKET_TYPE_MARKER:
        body.drain()

      elif packet_type == PACKET_TYPE_PKESK:
        self._pkesks.append(pgpstream.encryption.parse_pkesk(body.read()))

      elif packet_type == PACKET_TYPE_SKESK:
        self._skesks.append(pgpstream.encryption.parse_skesk(body.read()))

      elif packet_type == PACKET_TYPE_SEIPD:
        self._push_level(self._decrypt(body))

      elif packet_type == PACKET_TYPE_SED:
        raise MalformedMessageError("Encrypted data without integrity "
            "protection is not supported.")

      elif packet_type == PACKET_TYPE_COMPRESSED:
        algorithm = pgpstream.pgp.packets.read_exact(body, 1)[0]
        self._options.policy.check_compression_algorithm(algorithm)
        self._metadata_builder.compression_algorithm = algorithm
        self._push_level(pgpstream.compression.DecompressingReader(body,
            algorithm))

      elif packet_type == PACKET_TYPE_ONE_PASS_SIGNATURE:
        one_pass = pgpstream.pgp.signature.parse_one_pass_signature(
            body.read())
        context = _SignatureContext(one_pass.hash_algorithm,
            one_pass.signature_type, one_pass=one_pass)
        self._contexts.append(context)
        self._pending_one_pass.append(context)

      elif packet_type == PACKET_TYPE_SIGNATURE:
        signature = pgpstream.pgp.signature.parse_signature_body(body.read())
        self._contexts.append(_SignatureContext(signature.hash_algorithm,
            signature.signature_type, signature=signature))

      elif packet_type == PACKET_TYPE_LITERAL:
        encoding, file_name, modification_date = \
            pgpstream.literal.parse_literal_header(body)
        self._metadata_builder.file_encoding = encoding
        self._metadata_builder.file_name = file_name
        self._metadata_builder.modification_date = modification_date
        self._payload = body
        log.debug("Reading literal data (encoding '{}', file name "
            "'{}')".format(encoding, file_name))
        return

      else:
        log.info("Skipping unexpected {} packet.".format(
            _get_packet_name(packet_type)))
        body.drain()

  def _decrypt(self, body):
    """Return a reader over the decrypted content of the passed SEIPD packet
    body, using the session key packets read before it. """
    options = self._options
    if not options.decryption_keys and not options.passphrases:
      raise MissingDecryptionMethodError("Message is encrypted, but neither "
          "decryption keys nor passphrases are available.")

    candidates = []
    for pkesk in self._pkesks:
      self._metadata_builder.recipient_keyids.append(pkesk["keyid"])
      for decryption_key in options.decryption_keys:
        session_key = pgpstream.encryption.decrypt_pkesk(pkesk,
            decryption_key.secret_key)
        if session_key is not None:
          candidates.append(session_key + (decryption_key.identifier,))

    for skesk in self._skesks:
      for passphrase in options.passphrases:
        session_key = pgpstream.encryption.decrypt_skesk(skesk, passphrase)
        if session_key is not None:
          candidates.append(session_key + (None,))

    self._pkesks = []
    self._skesks = []

    acceptable = []
    for candidate in candidates:
      try:
        options.policy.check_symmetric_algorithm(candidate[0])
        acceptable.append(candidate)

      except UnacceptableAlgorithmError as e:
        log.info("Ignoring session key: {}".format(e))

    reader, identifier = pgpstream.encryption.open_encrypted_data(body,
        acceptable)
    self._metadata_builder.encryption_algorithm = reader.algorithm
    self._metadata_builder.decryption_key = identifier
    log.debug("Decrypted message with {}".format(
        "key '{}'".format(identifier.short_keyid) if identifier else
        "passphrase"))
    return reader

  def _verify(self, context, signature):
    """Return a Verification or SignatureVerificationFailure for the passed
    signature over the data hashed by context, or None if signatures are not
    verified. """
    if not self._options.is_verifying:
      return None

    if context.error is not None:
      return SignatureVerificationFailure(signature, context.error)

    try:
      self._options.policy.check_hash_algorithm(signature.hash_algorithm)
      certificate, key = self._options.find_certificate(signature.issuer)
      if key not in pgpstream.pgp.keys.get_signing_keys(certificate):
        raise KeyNotFoundError("Key '{}' of certificate '{}' cannot "
            "sign.".format(key["keyid"], certificate["keyid"]))

      if not context.verifier.verify(signature, key):
        raise SignatureVerificationError("Signature by '{}' does not match "
            "the signed data.".format(signature.issuer))

    except (UnacceptableAlgorithmError, MissingCertificateError,
        KeyNotFoundError, SignatureAlgorithmNotSupportedError,
        SignatureVerificationError, ValueError) as e:
      log.info("Rejected signature: {}".format(e))
      return SignatureVerificationFailure(signature, e)

    log.debug("Verified signature by '{}'".format(key["keyid"]))
    return Verification(
        creation_time=signature.creation_date,
        signing_subkey_keyid=key["keyid"],
        signing_primary_keyid=certificate["keyid"],
        signature=signature)

  def _record(self, result, inline):
    if result is None:
      return

    if isinstance(result, Verification):
      if inline:
        self._metadata_builder.verified_inline_signatures.append(result)
      else:
        self._metadata_builder.verified_detached_signatures.append(result)

    elif inline:
      self._metadata_builder.rejected_inline_signatures.append(result)

    else:
      self._metadata_builder.rejected_detached_signatures.append(result)

  def _match_trailing_signature(self, signature):
    if not self._pending_one_pass:
      raise MalformedMessageError("Signature by '{}' has no matching "
          "one-pass signature.".format(signature.issuer))

    context = self._pending_one_pass.pop()
    context.signature = signature
    if context.one_pass.short_keyid != signature.short_keyid:
      if self._options.is_verifying:
        context.result = SignatureVerificationFailure(signature,
            SignatureVerificationError("Signature by '{}' does not match the "
            "one-pass signature by '{}'.".format(signature.issuer,
            context.one_pass.short_keyid)))
      return

    context.result = self._verify(context, signature)

  def _finish_message(self):
    # Read trailing signatures and verify that the enclosing packets end
    # with the literal data, which also checks the integrity of encrypted
    # data
    for stream in reversed(self._levels):
      while True:
        header = pgpstream.pgp.packets.read_packet_header(stream)
        if header is None:
          break

        packet_type, body_len, partial = header
        body = pgpstream.pgp.packets.PacketBodyReader(stream, body_len,
            partial)
        if packet_type == PACKET_TYPE_SIGNATURE:
          self._match_trailing_signature(
              pgpstream.pgp.signature.parse_signature_body(body.read()))

        elif packet_type == PACKET_TYPE_MARKER:
          body.drain()

        else:
          raise MalformedMessageError("Unexpected {} packet after literal "
              "data.".format(_get_packet_name(packet_type)))

    if self._pending_one_pass:
      raise MalformedMessageError("{} one-pass signature(s) without "
          "signature.".format(len(self._pending_one_pass)))

    for context in self._contexts:
      if context.one_pass is None:
        context.result = self._verify(context, context.signature)

      self._record(context.result, inline=True)

  def _finish_cleartext(self):
    armor = self._cleartext.read_signature_block()
    packets = io.BytesIO(armor.read())
    while True:
      packet = pgpstream.pgp.packets.read_packet(packets)
      if packet is None:
        break

      packet_type, body = packet
      if packet_type != PACKET_TYPE_SIGNATURE:
        raise MalformedMessageError("Unexpected {} packet in cleartext "
            "signature block.".format(_get_packet_name(packet_type)))

      signature = pgpstream.pgp.signature.parse_signature_body(body)
      context = self._cleartext_verifiers.get((signature.hash_algorithm,
          signature.signature_type))
      if context is None:
        if self._options.is_verifying:
          self._record(SignatureVerificationFailure(signature,
              UnacceptableAlgorithmError("Hash algorithm '{}' of signature "
              "by '{}' is not declared in the cleartext header.".format(
              signature.hash_algorithm, signature.issuer))), inline=False)
        continue

      self._record(self._verify(context, signature), inline=False)

  def _finish_plain_data(self):
    for context in self._contexts:
      self._record(self._verify(context, context.signature), inline=False)

  def _update_verifiers(self, data):
    for context in self._contexts:
      context.update(data)

    for context in self._cleartext_verifiers.values():
      context.update(data)

  @property
  def closed(self):
    return self._state != OPEN

  def read(self, size=-1):
    """
    <Purpose>
      Read up to size bytes of payload, all remaining payload if size is
      negative or None.

    <Arguments>
      size: (optional)
              The maximum number of bytes to return

    <Exceptions>
      pgpstream.exceptions.MalformedMessageError
              If the message structure is invalid after the literal data,
              e.g. with unmatched signatures.

      pgpstream.exceptions.ModificationDetectionError
              If encrypted data was modified.

      pgpstream.exceptions.InvalidStateError
              If the stream is closed.

    <Side Effects>
      Reads from source, verifies signatures at the end of the payload.

    <Returns>
      The payload bytes, b"" at the end of the payload.

    """
    if self._state != OPEN:
      raise InvalidStateError("Cannot read from a {} message "
          "stream.".format(self._state))

    if self._payload_done or size == 0:
      return b""

    data = self._payload.read(size)
    if data:
      self._update_verifiers(data)

    if not data or size is None or size < 0:
      self._payload_done = True
      self._finish()

    return data

  def close(self):
    """Consume the remaining payload, verify the signatures and make the
    metadata available. Calling close on a closed stream has no effect. """
    if self._state == CLOSED:
      return

    if self._state != OPEN:
      raise InvalidStateError("Cannot close a {} message "
          "stream.".format(self._state))

    try:
      while self.read(pgpstream.settings.READ_CHUNK_SIZE):
        pass

    except Exception:
      self._state = FAILED
      raise

    self._metadata = self._metadata_builder.build()
    self._state = CLOSED
    log.debug("Closed message stream")

  @property
  def metadata(self):
    """The MessageMetadata, only available after the stream was closed. """
    if self._state != CLOSED:
      raise InvalidStateError("The metadata of a {} message stream is not "
          "available, close the stream first.".format(self._state))

    return self._metadata

  def __enter__(self):
    return self

  def __exit__(self, exc_type, exc_value, traceback):
    if exc_type is None:
      self.close()

    else:
      self._state = FAILED

    return False


def decrypt_and_or_verify(data, options):
  """
  <Purpose>
    Decompose an OpenPGP message (or plain data verified against detached
    signatures) in memory.

  <Arguments>
    data:
            The message as bytes, or str if it is armored

    options:
            A pgpstream.options.ConsumerOptions

  <Exceptions>
    See DecryptionStream.

  <Side Effects>
    None.

  <Returns>
    A tuple of the payload bytes and the MessageMetadata.

  """
  if isinstance(data, str):
    data = data.encode("utf-8")

  with DecryptionStream(io.BytesIO(data), options) as stream:
    payload = stream.read()

  return payload, stream.metadata
