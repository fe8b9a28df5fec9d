# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  encryption_stream.py

<Started>
  Oct 8, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Composition pipeline, i.e. the writable stream that turns a payload into an
  (optionally armored, encrypted, compressed and signed) OpenPGP message.

  The stream is built by wrapping the destination in one layer after another,
  from the outside in:

    armor -> encryption -> compression -> one-pass signatures ->
    literal data (or cleartext) -> signature tap -> line-ending normalizer

  Each write passes through all layers in the reverse order. On close the
  layers are finished from the inside out and the trailing signatures are
  written between the literal data and the compression layer, i.e. they close
  the brackets opened by the one-pass signatures.

  Example Usage:

  >>> with open("message.asc", "wb") as f:
  ...   with EncryptionStream(f, options) as stream:
  ...     stream.write(b"hello\\n")
  >>> stream.result.detached_signatures

"""
import io
import logging

import pgpstream.armor
import pgpstream.crlf
import pgpstream.policy
import pgpstream.signing
import pgpstream.literal
import pgpstream.encryption
import pgpstream.compression
import pgpstream.pgp.cipher
import pgpstream.pgp.packets
from pgpstream.options import PublicKeyEncryptionMethod
from pgpstream.results import EncryptionResultBuilder
from pgpstream.exceptions import InvalidStateError, LayerIOError
from pgpstream.pgp.constants import UNCOMPRESSED, HASH_ALGORITHM_NAMES

log = logging.getLogger(__name__)

OPEN = "open"
CLOSING = "closing"
CLOSED = "closed"
ABORTED = "aborted"


class EncryptionStream:
  """
  <Purpose>
    Writable binary stream that composes an OpenPGP message from everything
    written to it and writes the message to sink.

    Algorithms are negotiated before the first byte is written to sink, so
    that a negotiation failure never leaves partial output behind.

    The stream must be closed to complete the message. Closing writes the
    trailing signatures and the trailers of all layers, flushes sink, but
    does not close it. The `result` is only available after a successful
    close.

  <Arguments>
    sink:
            A writable binary file-like object

    options:
            A pgpstream.options.ProducerOptions

  <Exceptions>
    pgpstream.exceptions.AlgorithmNegotiationError
            If the recipients have no acceptable symmetric algorithm in
            common.

    pgpstream.exceptions.UnacceptableAlgorithmError
            If a signing hash algorithm is rejected by the policy of options.

  <Side Effects>
    Writes armor, session key, one-pass signature and literal data headers
    to sink.

  """
  def __init__(self, sink, options):
    self._sink = sink
    self._options = options
    self._result_builder = EncryptionResultBuilder()
    self._result = None
    self._state = OPEN

    self._armor = None
    self._encryptor = None
    self._compressor = None
    self._literal = None
    self._tap = None
    self._normalizer = None
    self._signature_layer = None
    self._signatures = pgpstream.signing.SignatureStack()

    # Layers in the order they were opened, to be closed on abort
    self._opened_layers = []
    self._outermost = sink

    symmetric_algorithm, compression_algorithm = self._negotiate()

    try:
      self._prepare_armor()
      self._prepare_encryption(symmetric_algorithm)
      self._prepare_compression(compression_algorithm)
      self._prepare_one_pass_signatures()
      self._prepare_literal_data()
      self._prepare_signature_tap()
      self._prepare_normalizer()

    except Exception:
      self._abort_layers()
      self._state = ABORTED
      raise

  def _get_signing_methods(self):
    if not self._options.is_signed:
      return []

    return list(self._options.signing.signing_methods.items())

  def _negotiate(self):
    policy = self._options.policy
    certificates = []
    symmetric_algorithm = None
    if self._options.is_encrypted:
      certificates = self._options.encryption.certificates
      symmetric_algorithm = pgpstream.policy.negotiate_symmetric_algorithm(
          policy, certificates)

    if self._options.cleartext_signed:
      compression_algorithm = UNCOMPRESSED

    else:
      compression_algorithm = pgpstream.policy.negotiate_compression_algorithm(
          policy, certificates, self._options.compression_algorithm)

    for _, method in self._get_signing_methods():
      policy.check_hash_algorithm(method.hash_algorithm)

    return symmetric_algorithm, compression_algorithm

  def _prepare_armor(self):
    if not self._options.armor:
      return

    headers = [("Comment", line) for line in self._options.comment]
    self._armor = pgpstream.armor.ArmoredWriter(self._outermost,
        headers=headers)
    self._opened_layers.append(self._armor)
    self._outermost = self._armor

  def _prepare_encryption(self, algorithm):
    if algorithm is None:
      log.debug("Message is not encrypted")
      return

    session_key = pgpstream.pgp.cipher.generate_session_key(algorithm)
    for method in self._options.encryption.methods:
      if isinstance(method, PublicKeyEncryptionMethod):
        self._outermost.write(pgpstream.encryption.encode_pkesk(
            method.pubkey, algorithm, session_key))
        self._result_builder.add_recipient(method.recipient)
        log.debug("Encrypted session key to '{}'".format(
            method.recipient.short_keyid))

      else:
        self._outermost.write(pgpstream.encryption.encode_skesk(
            method.passphrase, algorithm, session_key))
        log.debug("Encrypted session key with passphrase")

    self._encryptor = pgpstream.encryption.EncryptedDataWriter(
        self._outermost, algorithm, session_key)
    self._opened_layers.append(self._encryptor)
    self._outermost = self._encryptor
    self._result_builder.set_encryption_algorithm(algorithm)

  def _prepare_compression(self, algorithm):
    self._result_builder.set_compression_algorithm(algorithm)
    if algorithm == UNCOMPRESSED:
      return

    self._compressor = pgpstream.compression.CompressedDataWriter(
        self._outermost, algorithm)
    self._opened_layers.append(self._compressor)
    self._outermost = self._compressor

  def _prepare_one_pass_signatures(self):
    # Signatures are written to the layer that holds the literal data
    self._signature_layer = self._outermost

    methods = self._get_signing_methods()
    inline = [identifier for identifier, method in methods
        if not method.detached]
    for identifier, method in methods:
      # All but the last one-pass signature announce further ones
      nested = not method.detached and identifier != inline[-1]
      self._signatures.push(self._outermost, identifier, method, nested)

  def _prepare_literal_data(self):
    if self._options.cleartext_signed:
      hash_names = []
      for _, method in self._get_signing_methods():
        name = HASH_ALGORITHM_NAMES[method.hash_algorithm]
        if name not in hash_names:
          hash_names.append(name)

      self._armor.begin_cleartext(hash_names)
      return

    self._literal = pgpstream.literal.LiteralDataWriter(self._outermost,
        encoding=self._options.encoding, file_name=self._options.file_name,
        modification_date=self._options.modification_date)
    self._opened_layers.append(self._literal)
    self._outermost = self._literal
    self._result_builder.set_file_name(self._options.file_name)
    self._result_builder.set_modification_date(
        self._options.modification_date)
    self._result_builder.set_file_encoding(self._options.encoding)

  def _prepare_signature_tap(self):
    self._tap = pgpstream.signing.SignatureGenerationStream(self._outermost,
        self._signatures.generators)
    self._opened_layers.append(self._tap)
    self._outermost = self._tap

  def _prepare_normalizer(self):
    cleartext = self._options.cleartext_signed
    if not (cleartext or self._options.apply_crlf_encoding):
      return

    # Cleartext signed text cannot carry trailing whitespace (RFC4880 7.1.)
    self._normalizer = pgpstream.crlf.CRLFGeneratorStream(self._outermost,
        strip_trailing_whitespace=cleartext)
    self._opened_layers.append(self._normalizer)
    self._outermost = self._normalizer

  @property
  def closed(self):
    return self._state != OPEN

  def write(self, data):
    if self._state != OPEN:
      raise InvalidStateError("Cannot write to a {} message "
          "stream.".format(self._state))

    if isinstance(data, str):
      raise TypeError("Message stream expects bytes, got str.")

    self._outermost.write(data)
    return len(data)

  def flush(self):
    if self._state == OPEN:
      self._outermost.flush()

  def _write_signatures(self):
    cleartext = self._options.cleartext_signed
    detached = []
    while len(self._signatures):
      identifier, method, signature = self._signatures.pop()
      if method.detached:
        detached.append((identifier, signature))

      if not method.detached or cleartext:
        self._signature_layer.write(signature.encode())

    for identifier, signature in reversed(detached):
      self._result_builder.add_detached_signature(identifier, signature)

  def _close_layers(self):
    if self._normalizer is not None:
      self._normalizer.close()

    self._tap.close()

    if self._literal is not None:
      self._literal.close()

    if self._options.cleartext_signed:
      # The line break before the signature block is not signed
      self._armor.write(b"\r\n")
      self._armor.end_cleartext()

    try:
      self._write_signatures()

    except Exception as e:
      raise LayerIOError("Failed while writing signatures: {}".format(
          e)) from e

    if self._compressor is not None:
      self._compressor.close()

    if self._encryptor is not None:
      self._encryptor.close()

    if self._armor is not None:
      self._armor.close()

    pgpstream.pgp.packets.flush_stream(self._sink)

  def close(self):
    """
    <Purpose>
      Complete the message. Calling close on a closed stream has no effect.

    <Arguments>
      None.

    <Exceptions>
      pgpstream.exceptions.LayerIOError
              If the signatures cannot be created or written.

      pgpstream.exceptions.InvalidStateError
              If the stream was aborted.

      Exceptions of the underlying sink are propagated.

    <Side Effects>
      Writes the remaining message to sink. On failure the remaining layers
      are closed best-effort and the stream is aborted.

    <Returns>
      None.

    """
    if self._state == CLOSED:
      return

    if self._state != OPEN:
      raise InvalidStateError("Cannot close a {} message "
          "stream.".format(self._state))

    self._state = CLOSING
    try:
      self._close_layers()

    except Exception:
      self._abort_layers()
      self._state = ABORTED
      raise

    self._result = self._result_builder.build()
    self._state = CLOSED
    log.debug("Closed message stream")

  def _abort_layers(self):
    for layer in reversed(self._opened_layers):
      if getattr(layer, "closed", False):
        continue

      try:
        layer.close()

      except Exception as e: # pylint: disable=broad-except
        log.warning("Failed to close layer '{}' while aborting: {}".format(
            type(layer).__name__, e))

  def abort(self):
    """Close all opened layers best-effort without writing signatures. The
    written output is incomplete and must be discarded, `result` stays
    unavailable. """
    if self._state in (CLOSED, ABORTED):
      return

    self._abort_layers()
    self._state = ABORTED
    log.info("Aborted message stream")

  @property
  def result(self):
    """The EncryptionResult, only available after the stream was closed. """
    if self._state != CLOSED:
      raise InvalidStateError("The result of a {} message stream is not "
          "available, close the stream first.".format(self._state))

    return self._result

  def __enter__(self):
    return self

  def __exit__(self, exc_type, exc_value, traceback):
    if exc_type is None:
      self.close()

    else:
      self.abort()

    return False


def encrypt_and_or_sign(data, options):
  """
  <Purpose>
    Compose an OpenPGP message from the passed payload in memory.

  <Arguments>
    data:
            The payload bytes

    options:
            A pgpstream.options.ProducerOptions

  <Exceptions>
    See EncryptionStream.

  <Side Effects>
    None.

  <Returns>
    A tuple of the message bytes and the EncryptionResult.

  """
  output = io.BytesIO()
  with EncryptionStream(output, options) as stream:
    stream.write(data)

  return output.getvalue(), stream.result
