#!/usr/bin/env python

# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  test_decryption_stream.py

<Started>
  Oct 15, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Test the decomposition pipeline of pgpstream/decryption_stream.py with
  messages composed by pgpstream/encryption_stream.py and with hand-crafted
  packet sequences.

"""
import io
import os
import datetime
import unittest

import dateutil.tz

import pgpstream.settings
from pgpstream.encryption_stream import encrypt_and_or_sign
from pgpstream.decryption_stream import DecryptionStream, decrypt_and_or_verify
from pgpstream.options import (ProducerOptions, ConsumerOptions,
    EncryptionOptions, SigningOptions)
from pgpstream.policy import AlgorithmPolicy
from pgpstream.literal import LiteralDataWriter
from pgpstream.pgp.keys import SubkeyIdentifier
from pgpstream.pgp.util import encode_packet
from pgpstream.pgp.signature import SignatureGenerator
from pgpstream.exceptions import (InvalidStateError, MalformedMessageError,
    ModificationDetectionError, MissingDecryptionMethodError,
    MissingCertificateError, SignatureVerificationError,
    UnacceptableAlgorithmError)
from pgpstream.pgp.constants import (PACKET_TYPE_COMPRESSED, PACKET_TYPE_SED,
    PACKET_TYPE_MARKER, NULL, AES128, AES256, UNCOMPRESSED, ZIP, ZLIB, BZIP2,
    SHA1, SHA256, SHA512, SIGNATURE_TYPE_BINARY, SIGNATURE_TYPE_TEXT)

import tests.common


def _literal_packet(data, **kwargs):
  output = io.BytesIO()
  writer = LiteralDataWriter(output, **kwargs)
  writer.write(data)
  writer.close()
  return output.getvalue()


def _generator(secret_key, data, hash_algorithm=SHA512):
  """Return a signature generator that has hashed the passed data. """
  generator = SignatureGenerator(secret_key, hash_algorithm)
  generator.update(data)
  return generator


class TestDecryptionStream(unittest.TestCase, tests.common.KeysMixin):
  @classmethod
  def setUpClass(cls):
    cls.set_up_keys()

  def _verifying_options(self, *certificates):
    options = ConsumerOptions()
    for certificate in certificates or [self.alice_cert]:
      options.add_verification_cert(certificate)
    return options

  def test_signed_armored(self):
    message, _ = encrypt_and_or_sign(b"hello world\n", ProducerOptions.sign(
        SigningOptions().add_inline_signature(self.alice, self.alice_cert),
        comment="test message"))

    payload, metadata = decrypt_and_or_verify(message.decode("ascii"),
        self._verifying_options())
    self.assertEqual(payload, b"hello world\n")
    self.assertTrue(metadata.is_verified_signed_by(self.alice_cert))
    self.assertFalse(metadata.is_verified_signed_by(self.carol_cert))
    self.assertEqual(metadata.rejected_inline_signatures, ())
    self.assertEqual(metadata.armor_headers, (("Comment", "test message"),))
    self.assertFalse(metadata.is_encrypted)
    self.assertEqual(metadata.encryption_algorithm, NULL)
    self.assertFalse(metadata.is_using_cleartext_signature_framework)

    verification = metadata.verified_inline_signatures[0]
    self.assertEqual(verification.signing_subkey_keyid, self.alice.keyid)
    self.assertEqual(verification.signing_primary_keyid, self.alice.keyid)
    self.assertEqual(verification.creation_time,
        verification.signature.creation_date)

  def test_signed_encrypted_with_detached(self):
    """Test decryption with a subkey, several signatures and verification of
    the detached signature against the recovered payload. """
    data = os.urandom(10000)
    signing = SigningOptions()
    signing.add_detached_signature(self.carol, self.carol_cert)
    signing.add_inline_signature(self.alice, self.alice_cert)
    signing.add_inline_signature(self.bob, self.bob_cert)
    options = ProducerOptions.sign_and_encrypt(
        EncryptionOptions().add_recipient(self.bob_cert), signing)
    message, result = encrypt_and_or_sign(data, options)

    options = self._verifying_options(self.alice_cert, self.bob_cert)
    options.add_decryption_key(self.bob_subkey, self.bob_cert)
    payload, metadata = decrypt_and_or_verify(message, options)

    self.assertEqual(payload, data)
    self.assertTrue(metadata.is_encrypted)
    self.assertEqual(metadata.encryption_algorithm, AES256)
    self.assertEqual(metadata.decryption_key,
        SubkeyIdentifier(self.bob.keyid, self.bob_subkey.keyid))
    self.assertEqual(metadata.recipient_keyids, (self.bob_subkey.short_keyid,))
    self.assertTrue(metadata.is_encrypted_for(self.bob_subkey.keyid))
    self.assertFalse(metadata.is_encrypted_for(self.alice.keyid))

    # Verifications are reported in the order of the one-pass signatures
    self.assertEqual([verification.signing_primary_keyid
        for verification in metadata.verified_inline_signatures],
        [self.alice.keyid, self.bob.keyid])
    self.assertEqual(metadata.rejected_inline_signatures, ())

    detached = result.detached_signatures[
        SubkeyIdentifier(self.carol.keyid, self.carol.keyid)][0]
    options = self._verifying_options(self.carol_cert)
    options.add_detached_signature(detached.armor())
    payload, metadata = decrypt_and_or_verify(data, options)
    self.assertEqual(payload, data)
    self.assertTrue(metadata.is_verified_signed_by(self.carol_cert))
    self.assertEqual(len(metadata.verified_detached_signatures), 1)
    self.assertEqual(metadata.verified_inline_signatures, ())

    # The detached signature does not match other data
    options = self._verifying_options(self.carol_cert)
    options.add_detached_signature(detached)
    _, metadata = decrypt_and_or_verify(data + b"x", options)
    self.assertEqual(metadata.verified_signatures, ())
    self.assertIsInstance(metadata.rejected_detached_signatures[0].reason,
        SignatureVerificationError)

  def test_missing_decryption_key(self):
    message, _ = encrypt_and_or_sign(b"secret", ProducerOptions.encrypt(
        EncryptionOptions().add_recipient(self.bob_cert)))

    with self.assertRaises(MissingDecryptionMethodError):
      decrypt_and_or_verify(message, ConsumerOptions())

    options = ConsumerOptions().add_decryption_key(self.alice)
    with self.assertRaises(MissingDecryptionMethodError):
      decrypt_and_or_verify(message, options)

    options.add_decryption_key(self.bob_subkey)
    payload, metadata = decrypt_and_or_verify(message, options)
    self.assertEqual(payload, b"secret")
    # Without certificate the subkey is its own primary key
    self.assertEqual(metadata.decryption_key,
        SubkeyIdentifier(self.bob_subkey.keyid, self.bob_subkey.keyid))

  def test_passphrase(self):
    message, _ = encrypt_and_or_sign(b"secret", ProducerOptions.encrypt(
        EncryptionOptions().add_passphrase("correct horse"),
        compression_algorithm=ZIP))

    payload, metadata = decrypt_and_or_verify(message,
        ConsumerOptions().add_decryption_passphrase("correct horse"))
    self.assertEqual(payload, b"secret")
    self.assertIsNone(metadata.decryption_key)
    self.assertEqual(metadata.recipient_keyids, ())
    self.assertEqual(metadata.compression_algorithm, ZIP)

    with self.assertRaises(MissingDecryptionMethodError):
      decrypt_and_or_verify(message,
          ConsumerOptions().add_decryption_passphrase("wrong"))

  def test_unacceptable_symmetric_algorithm(self):
    message, _ = encrypt_and_or_sign(b"secret", ProducerOptions.encrypt(
        EncryptionOptions().add_passphrase("pass")))
    options = ConsumerOptions(AlgorithmPolicy(symmetric_algorithms=[AES128],
        default_symmetric_algorithm=AES128))
    options.add_decryption_passphrase("pass")
    with self.assertRaises(MissingDecryptionMethodError):
      decrypt_and_or_verify(message, options)

  def test_unacceptable_compression_algorithm(self):
    message, _ = encrypt_and_or_sign(b"data",
        ProducerOptions(compression_algorithm=BZIP2))
    options = ConsumerOptions(AlgorithmPolicy(
        compression_algorithms=[ZLIB, UNCOMPRESSED]))
    with self.assertRaises(UnacceptableAlgorithmError):
      decrypt_and_or_verify(message, options)

  def test_compression(self):
    data = b"compressible " * 1000
    for algorithm in [UNCOMPRESSED, ZIP, ZLIB, BZIP2]:
      message, _ = encrypt_and_or_sign(data, ProducerOptions(armor=False,
          compression_algorithm=algorithm))
      payload, metadata = decrypt_and_or_verify(message, ConsumerOptions())
      self.assertEqual(payload, data)
      self.assertEqual(metadata.compression_algorithm, algorithm)

  def test_modification_detection(self):
    message, _ = encrypt_and_or_sign(b"x" * 100, ProducerOptions.encrypt(
        EncryptionOptions().add_passphrase("pass"), armor=False))
    tampered = bytearray(message)
    tampered[-50] ^= 0x01

    with self.assertRaises(ModificationDetectionError):
      decrypt_and_or_verify(bytes(tampered),
          ConsumerOptions().add_decryption_passphrase("pass"))

  def test_literal_metadata(self):
    modification_date = datetime.datetime(2026, 1, 2, 3, 4, 5,
        tzinfo=dateutil.tz.UTC)
    message, _ = encrypt_and_or_sign(b"text\n", ProducerOptions(
        encoding="utf8", file_name="report.txt",
        modification_date=modification_date))
    _, metadata = decrypt_and_or_verify(message, ConsumerOptions())
    self.assertEqual(metadata.file_name, "report.txt")
    self.assertEqual(metadata.file_encoding, "utf8")
    self.assertEqual(metadata.modification_date, modification_date)


class TestDecryptionStreamVerification(unittest.TestCase,
    tests.common.KeysMixin):
  @classmethod
  def setUpClass(cls):
    cls.set_up_keys()

  def _signed_message(self, data=b"original payload"):
    message, _ = encrypt_and_or_sign(data, ProducerOptions.sign(
        SigningOptions().add_inline_signature(self.alice), armor=False))
    return message

  def test_unverified(self):
    """Without certificates signatures are neither verified nor rejected. """
    payload, metadata = decrypt_and_or_verify(self._signed_message(),
        ConsumerOptions())
    self.assertEqual(payload, b"original payload")
    self.assertEqual(metadata.verified_signatures, ())
    self.assertEqual(metadata.rejected_inline_signatures, ())

  def test_missing_certificate(self):
    message = self._signed_message()
    _, metadata = decrypt_and_or_verify(message,
        ConsumerOptions().add_verification_cert(self.carol_cert))
    self.assertEqual(metadata.verified_signatures, ())
    failure = metadata.rejected_inline_signatures[0]
    self.assertIsInstance(failure.reason, MissingCertificateError)
    self.assertEqual(failure.signature.keyid, self.alice.keyid)

    requested = []
    def _callback(keyid):
      requested.append(keyid)
      return self.alice_cert

    _, metadata = decrypt_and_or_verify(message,
        ConsumerOptions().set_missing_certificate_callback(_callback))
    self.assertEqual(requested, [self.alice.keyid])
    self.assertTrue(metadata.is_verified_signed_by(self.alice_cert))

    _, metadata = decrypt_and_or_verify(message,
        ConsumerOptions().set_missing_certificate_callback(lambda keyid: None))
    self.assertIsInstance(metadata.rejected_inline_signatures[0].reason,
        MissingCertificateError)

  def test_tampered_literal_data(self):
    message = self._signed_message().replace(b"original", b"modified")
    payload, metadata = decrypt_and_or_verify(message,
        ConsumerOptions().add_verification_cert(self.alice_cert))
    self.assertEqual(payload, b"modified payload")
    self.assertEqual(metadata.verified_signatures, ())
    self.assertIsInstance(metadata.rejected_inline_signatures[0].reason,
        SignatureVerificationError)

  def test_unacceptable_hash_algorithm(self):
    data = b"payload"
    signature = _generator(self.alice, data, SHA1).generate()
    message = signature.encode() + _literal_packet(data)
    _, metadata = decrypt_and_or_verify(message,
        ConsumerOptions().add_verification_cert(self.alice_cert))
    self.assertEqual(metadata.verified_signatures, ())
    self.assertIsInstance(metadata.rejected_inline_signatures[0].reason,
        UnacceptableAlgorithmError)

    # Accepted with a policy that allows it
    options = ConsumerOptions(AlgorithmPolicy(hash_algorithms=[SHA1],
        default_hash_algorithm=SHA1))
    options.add_verification_cert(self.alice_cert)
    _, metadata = decrypt_and_or_verify(message, options)
    self.assertTrue(metadata.is_verified_signed_by(self.alice_cert))

  def test_prepended_signature(self):
    data = b"payload"
    signature = _generator(self.carol, data).generate()
    message = signature.encode() + _literal_packet(data)
    payload, metadata = decrypt_and_or_verify(message,
        ConsumerOptions().add_verification_cert(self.carol_cert))
    self.assertEqual(payload, data)
    self.assertTrue(metadata.is_verified_signed_by(self.carol_cert))

  def test_one_pass_signature_mismatch(self):
    """A trailing signature by another key than announced is rejected. """
    data = b"payload"
    one_pass = _generator(self.alice, data).one_pass_signature(False)
    signature = _generator(self.carol, data).generate()
    message = one_pass + _literal_packet(data) + signature.encode()

    options = ConsumerOptions()
    options.add_verification_cert(self.alice_cert)
    options.add_verification_cert(self.carol_cert)
    _, metadata = decrypt_and_or_verify(message, options)
    self.assertEqual(metadata.verified_signatures, ())
    self.assertIsInstance(metadata.rejected_inline_signatures[0].reason,
        SignatureVerificationError)

  def test_skipped_packets(self):
    """Marker and unknown packets are skipped. """
    message = (encode_packet(PACKET_TYPE_MARKER, b"PGP") +
        encode_packet(60, b"unknown") + _literal_packet(b"data") +
        encode_packet(PACKET_TYPE_MARKER, b"PGP"))
    payload, _ = decrypt_and_or_verify(message, ConsumerOptions())
    self.assertEqual(payload, b"data")

  def test_malformed(self):
    data = b"payload"
    one_pass = _generator(self.alice, data).one_pass_signature(False)
    signature = _generator(self.alice, data).generate().encode()
    literal = _literal_packet(data)

    for message in [
        # One-pass signature without signature
        one_pass + literal,
        # Signature without one-pass signature
        literal + signature,
        # No literal data
        one_pass,
        b"",
        # Two literal data packets
        literal + literal,
        # Encrypted data without integrity protection
        encode_packet(PACKET_TYPE_SED, b"\x00" * 32)]:
      with self.assertRaises(MalformedMessageError):
        decrypt_and_or_verify(message, ConsumerOptions())

  def test_nesting_depth(self):
    depth = pgpstream.settings.MAX_PACKET_NESTING_DEPTH
    message = _literal_packet(b"deep")
    for _ in range(depth):
      message = encode_packet(PACKET_TYPE_COMPRESSED,
          bytes([UNCOMPRESSED]) + message)

    payload, _ = decrypt_and_or_verify(message, ConsumerOptions())
    self.assertEqual(payload, b"deep")

    message = encode_packet(PACKET_TYPE_COMPRESSED,
        bytes([UNCOMPRESSED]) + message)
    with self.assertRaises(MalformedMessageError):
      decrypt_and_or_verify(message, ConsumerOptions())


class TestCleartext(unittest.TestCase, tests.common.KeysMixin):
  @classmethod
  def setUpClass(cls):
    cls.set_up_keys()

  def _message(self, **kwargs):
    signing = SigningOptions().add_detached_signature(self.alice, **kwargs)
    message, _ = encrypt_and_or_sign(b"Hello  \nworld\n",
        ProducerOptions.sign(signing, cleartext_signed=True))
    return message

  def test_round_trip(self):
    for signature_type in [SIGNATURE_TYPE_BINARY, SIGNATURE_TYPE_TEXT]:
      message = self._message(hash_algorithm=SHA256,
          signature_type=signature_type)
      payload, metadata = decrypt_and_or_verify(message,
          ConsumerOptions().add_verification_cert(self.alice_cert))

      self.assertEqual(payload, b"Hello\r\nworld\r\n")
      self.assertTrue(metadata.is_using_cleartext_signature_framework)
      self.assertEqual(metadata.armor_headers, (("Hash", "SHA256"),))
      self.assertEqual(len(metadata.verified_detached_signatures), 1)
      self.assertEqual(metadata.verified_inline_signatures, ())
      self.assertTrue(metadata.is_verified_signed_by(self.alice_cert))

  def test_tampered(self):
    message = self._message().replace(b"world", b"World")
    payload, metadata = decrypt_and_or_verify(message,
        ConsumerOptions().add_verification_cert(self.alice_cert))
    self.assertEqual(payload, b"Hello\r\nWorld\r\n")
    self.assertEqual(metadata.verified_signatures, ())
    self.assertIsInstance(metadata.rejected_detached_signatures[0].reason,
        SignatureVerificationError)

  def test_undeclared_hash_algorithm(self):
    message = self._message(hash_algorithm=SHA512).replace(
        b"Hash: SHA512", b"Hash: SHA256")
    _, metadata = decrypt_and_or_verify(message,
        ConsumerOptions().add_verification_cert(self.alice_cert))
    self.assertEqual(metadata.verified_signatures, ())
    self.assertIsInstance(metadata.rejected_detached_signatures[0].reason,
        UnacceptableAlgorithmError)


class TestDecryptionStreamState(unittest.TestCase, tests.common.KeysMixin):
  @classmethod
  def setUpClass(cls):
    cls.set_up_keys()

  def setUp(self):
    self.data = os.urandom(5000)
    self.message, _ = encrypt_and_or_sign(self.data, ProducerOptions.sign(
        SigningOptions().add_inline_signature(self.alice)))
    self.options = ConsumerOptions().add_verification_cert(self.alice_cert)

  def test_chunked_read(self):
    stream = DecryptionStream(io.BytesIO(self.message), self.options)
    chunks = []
    while True:
      chunk = stream.read(7)
      if not chunk:
        break
      self.assertLessEqual(len(chunk), 7)
      chunks.append(chunk)

    self.assertEqual(b"".join(chunks), self.data)

    with self.assertRaises(InvalidStateError):
      stream.metadata

    stream.close()
    self.assertTrue(stream.closed)
    self.assertTrue(stream.metadata.is_verified_signed_by(self.alice_cert))

    # Idempotent close
    stream.close()
    with self.assertRaises(InvalidStateError):
      stream.read()

  def test_read_zero(self):
    """An empty read neither ends the payload nor the message. """
    stream = DecryptionStream(io.BytesIO(self.message), self.options)
    self.assertEqual(stream.read(0), b"")
    self.assertEqual(stream.read(3), self.data[:3])
    self.assertEqual(stream.read(0), b"")
    self.assertEqual(stream.read(), self.data[3:])
    self.assertEqual(stream.read(0), b"")
    stream.close()
    self.assertTrue(stream.metadata.is_verified_signed_by(self.alice_cert))

  def test_close_consumes_payload(self):
    """Signatures are verified on close even if the payload was not read to
    the end. """
    with DecryptionStream(io.BytesIO(self.message), self.options) as stream:
      self.assertEqual(stream.read(10), self.data[:10])

    self.assertTrue(stream.metadata.is_verified_signed_by(self.alice_cert))

  def test_failure(self):
    with self.assertRaises(RuntimeError):
      with DecryptionStream(io.BytesIO(self.message), self.options) as stream:
        stream.read(10)
        raise RuntimeError("interrupted")

    self.assertTrue(stream.closed)
    with self.assertRaises(InvalidStateError):
      stream.metadata
    with self.assertRaises(InvalidStateError):
      stream.close()

class TestRoundTrip(unittest.TestCase, tests.common.KeysMixin):
  """Compose messages with combinations of armor, signers and recipients and
  decompose them again with small reads. """
  @classmethod
  def setUpClass(cls):
    cls.set_up_keys()
    cls.data = os.urandom(3000)

  def _signing_options(self, signers):
    if signers == "none":
      return None

    signing = SigningOptions().add_inline_signature(self.alice,
        self.alice_cert)
    if signers == "several":
      signing.add_inline_signature(self.bob, self.bob_cert)
      signing.add_detached_signature(self.carol, self.carol_cert)
    return signing

  def _encryption_options(self, recipients):
    if recipients == "none":
      return None

    encryption = EncryptionOptions().add_recipient(self.bob_cert)
    if recipients == "passphrase":
      encryption.add_passphrase("correct horse")
    return encryption

  def _read(self, message):
    options = ConsumerOptions()
    options.add_decryption_key(self.bob_subkey, self.bob_cert)
    options.add_verification_cert(self.alice_cert)
    options.add_verification_cert(self.bob_cert)

    stream = DecryptionStream(io.BytesIO(message), options)
    self.assertEqual(stream.read(0), b"")
    chunks = []
    while True:
      chunk = stream.read(100)
      if not chunk:
        break
      chunks.append(chunk)
    stream.close()
    return b"".join(chunks), stream.metadata

  def test_round_trip(self):
    expected_signers = {
      "none": set(),
      "one": {self.alice.keyid},
      "several": {self.alice.keyid, self.bob.keyid},
    }
    for armor in (True, False):
      for signers in ("none", "one", "several"):
        for recipients in ("none", "recipient", "passphrase"):
          with self.subTest(armor=armor, signers=signers,
              recipients=recipients):
            message, result = encrypt_and_or_sign(self.data, ProducerOptions(
                armor=armor, signing=self._signing_options(signers),
                encryption=self._encryption_options(recipients)))
            self.assertEqual(message.startswith(b"-----BEGIN PGP MESSAGE"),
                armor)

            payload, metadata = self._read(message)
            self.assertEqual(payload, self.data)
            self.assertEqual(metadata.is_encrypted, recipients != "none")
            self.assertEqual({verification.signing_primary_keyid
                for verification in metadata.verified_inline_signatures},
                expected_signers[signers])
            self.assertEqual(metadata.rejected_inline_signatures, ())

            if signers != "several":
              self.assertEqual(result.detached_signatures, {})
              continue

            detached = result.detached_signatures[
                SubkeyIdentifier(self.carol.keyid, self.carol.keyid)][0]
            options = ConsumerOptions().add_verification_cert(
                self.carol_cert).add_detached_signature(detached)
            _, metadata = decrypt_and_or_verify(payload, options)
            self.assertTrue(metadata.is_verified_signed_by(self.carol_cert))



if __name__ == "__main__":
  unittest.main()
