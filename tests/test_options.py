#!/usr/bin/env python

# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  test_options.py

<Started>
  Oct 13, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Test producer and consumer options of pgpstream/options.py.

"""
import datetime
import unittest

import attr
import dateutil.tz
import securesystemslib.exceptions

from pgpstream.options import (EncryptionOptions, SigningOptions,
    ProducerOptions, ConsumerOptions, PublicKeyEncryptionMethod,
    PassphraseEncryptionMethod)
from pgpstream.policy import AlgorithmPolicy
from pgpstream.selection import UserIdSelector
from pgpstream.pgp.keys import SubkeyIdentifier
from pgpstream.pgp.signature import SignatureGenerator
from pgpstream.exceptions import (InvalidStateError,
    UnacceptableAlgorithmError, MissingCertificateError)
from pgpstream.pgp.exceptions import KeyNotFoundError
from pgpstream.pgp.constants import (SHA1, SHA256, SHA512, ZIP, UNCOMPRESSED,
    SIGNATURE_TYPE_TEXT)

import tests.common


class TestEncryptionOptions(unittest.TestCase, tests.common.KeysMixin):
  @classmethod
  def setUpClass(cls):
    cls.set_up_keys()

  def test_add_recipient(self):
    options = EncryptionOptions().add_recipient(self.bob_cert)
    self.assertEqual(options.recipients, (SubkeyIdentifier(self.bob.keyid,
        self.bob_subkey.keyid),))
    self.assertEqual(options.certificates, [self.bob_cert])
    method = options.methods[0]
    self.assertIsInstance(method, PublicKeyEncryptionMethod)
    self.assertEqual(method.pubkey["keyid"], self.bob_subkey.keyid)

  def test_add_recipient_without_encryption_key(self):
    with self.assertRaises(KeyNotFoundError):
      EncryptionOptions().add_recipient(self.alice_cert)

    with self.assertRaises(securesystemslib.exceptions.FormatError):
      EncryptionOptions().add_recipient({"keyid": "abc"})

  def test_add_recipients(self):
    options = EncryptionOptions().add_recipients(
        [self.alice_cert, self.bob_cert, self.carol_cert],
        UserIdSelector.email("bob@example.org"))
    self.assertEqual(options.certificates, [self.bob_cert])

    with self.assertRaises(KeyNotFoundError):
      EncryptionOptions().add_recipients([self.bob_cert],
          UserIdSelector.exact("Bob"))

  def test_passphrase(self):
    options = EncryptionOptions().add_passphrase("secret")
    self.assertEqual(options.recipients, ())
    self.assertEqual(options.certificates, [])
    self.assertNotIn("secret", repr(options.methods[0]))
    self.assertEqual(options.methods[0], PassphraseEncryptionMethod("secret"))

    with self.assertRaises(ValueError):
      options.add_passphrase("")

  def test_order_and_freeze(self):
    options = EncryptionOptions()
    options.add_passphrase("first").add_recipient(self.bob_cert)
    options.add_recipient(self.bob_cert)
    self.assertEqual(len(options.methods), 3)
    self.assertEqual(options.certificates, [self.bob_cert])
    self.assertIsInstance(options.methods[0], PassphraseEncryptionMethod)

    options.freeze()
    with self.assertRaises(InvalidStateError):
      options.add_passphrase("second")
    with self.assertRaises(InvalidStateError):
      options.add_recipient(self.bob_cert)


class TestSigningOptions(unittest.TestCase, tests.common.KeysMixin):
  @classmethod
  def setUpClass(cls):
    cls.set_up_keys()

  def test_add_signatures(self):
    options = SigningOptions()
    options.add_inline_signature(self.alice, self.alice_cert)
    options.add_detached_signature(self.carol, hash_algorithm=SHA256,
        signature_type=SIGNATURE_TYPE_TEXT)

    methods = options.signing_methods
    self.assertEqual(list(methods), [
        SubkeyIdentifier(self.alice.keyid, self.alice.keyid),
        SubkeyIdentifier(self.carol.keyid, self.carol.keyid)])

    alice_method, carol_method = methods.values()
    self.assertFalse(alice_method.detached)
    self.assertEqual(alice_method.hash_algorithm, SHA512)
    self.assertTrue(carol_method.detached)
    self.assertEqual(carol_method.hash_algorithm, SHA256)
    self.assertEqual(carol_method.signature_type, SIGNATURE_TYPE_TEXT)

    # Every generator starts a new signature
    generator = alice_method.new_generator()
    self.assertIsInstance(generator, SignatureGenerator)
    self.assertIsNot(generator, alice_method.new_generator())

  def test_hash_negotiation(self):
    certificate = dict(self.alice_cert)
    certificate["preferences"] = {"hash": [SHA1, SHA256]}
    options = SigningOptions().add_inline_signature(self.alice, certificate)
    self.assertEqual(list(options.signing_methods.values())[0].hash_algorithm,
        SHA256)

    with self.assertRaises(UnacceptableAlgorithmError):
      SigningOptions().add_inline_signature(self.alice, hash_algorithm=SHA1)

    options = SigningOptions(AlgorithmPolicy(hash_algorithms=[SHA1],
        default_hash_algorithm=SHA1))
    options.add_inline_signature(self.alice)
    self.assertEqual(list(options.signing_methods.values())[0].hash_algorithm,
        SHA1)

  def test_key_must_sign_for_certificate(self):
    # The encryption subkey cannot sign
    with self.assertRaises(KeyNotFoundError):
      SigningOptions().add_inline_signature(self.bob_subkey, self.bob_cert)

    # The key is not part of the certificate
    with self.assertRaises(KeyNotFoundError):
      SigningOptions().add_inline_signature(self.alice, self.bob_cert)

  def test_invalid(self):
    options = SigningOptions().add_inline_signature(self.alice)
    with self.assertRaises(InvalidStateError):
      options.add_detached_signature(self.alice)

    with self.assertRaises(ValueError):
      options.add_inline_signature(self.carol, signature_type=0x13)

    options.freeze()
    with self.assertRaises(InvalidStateError):
      options.add_inline_signature(self.carol)


class TestProducerOptions(unittest.TestCase, tests.common.KeysMixin):
  @classmethod
  def setUpClass(cls):
    cls.set_up_keys()

  def test_defaults(self):
    options = ProducerOptions()
    self.assertTrue(options.armor)
    self.assertEqual(options.comment, ())
    self.assertEqual(options.encoding, "binary")
    self.assertFalse(options.is_encrypted)
    self.assertFalse(options.is_signed)
    self.assertIsNone(options.modification_date)
    self.assertIsInstance(options.policy, AlgorithmPolicy)

    with self.assertRaises(attr.exceptions.FrozenInstanceError):
      options.armor = False

  def test_constructors_freeze_sub_options(self):
    encryption = EncryptionOptions().add_passphrase("secret")
    signing = SigningOptions().add_inline_signature(self.alice)
    options = ProducerOptions.sign_and_encrypt(encryption, signing,
        armor=False)
    self.assertTrue(options.is_encrypted)
    self.assertTrue(options.is_signed)
    self.assertFalse(options.armor)

    with self.assertRaises(InvalidStateError):
      encryption.add_passphrase("other")
    with self.assertRaises(InvalidStateError):
      signing.add_inline_signature(self.carol)

    self.assertTrue(ProducerOptions.encrypt(
        EncryptionOptions().add_recipient(self.bob_cert)).is_encrypted)
    self.assertTrue(ProducerOptions.sign(SigningOptions()
        .add_detached_signature(self.carol)).is_signed)
    self.assertFalse(ProducerOptions.encrypt(EncryptionOptions())
        .is_encrypted)

  def test_comment(self):
    self.assertEqual(ProducerOptions(comment="one\n\n  two  \n").comment,
        ("one", "two"))
    self.assertEqual(ProducerOptions(comment=["a", " ", "b"]).comment,
        ("a", "b"))

  def test_modification_date(self):
    naive = datetime.datetime(2026, 5, 4, 3, 2, 1, 999)
    self.assertEqual(ProducerOptions(modification_date=naive)
        .modification_date, datetime.datetime(2026, 5, 4, 3, 2, 1,
        tzinfo=dateutil.tz.UTC))

    aware = datetime.datetime(2026, 5, 4, 5, 2, 1,
        tzinfo=dateutil.tz.tzoffset(None, 7200))
    self.assertEqual(ProducerOptions(modification_date=aware)
        .modification_date.hour, 3)

    with self.assertRaises(TypeError):
      ProducerOptions(modification_date=1234)

  def test_invalid(self):
    with self.assertRaises(ValueError):
      ProducerOptions(encoding="mime")

    with self.assertRaises(TypeError):
      ProducerOptions(encryption="secret")

    with self.assertRaises(TypeError):
      ProducerOptions(signing=[self.alice])

    with self.assertRaises(UnacceptableAlgorithmError):
      ProducerOptions(compression_algorithm=110)

    with self.assertRaises(UnacceptableAlgorithmError):
      ProducerOptions(compression_algorithm=ZIP, policy=AlgorithmPolicy(
          compression_algorithms=[UNCOMPRESSED]))

  def test_cleartext(self):
    def detached():
      return SigningOptions().add_detached_signature(self.alice)

    options = ProducerOptions.sign(detached(), cleartext_signed=True)
    self.assertTrue(options.cleartext_signed)

    invalid = [
      dict(signing=detached(), armor=False),
      dict(signing=detached(),
          encryption=EncryptionOptions().add_passphrase("secret")),
      dict(signing=SigningOptions()),
      dict(),
      dict(signing=SigningOptions().add_inline_signature(self.alice)),
      dict(signing=detached(), compression_algorithm=ZIP),
    ]
    for kwargs in invalid:
      with self.assertRaises(ValueError):
        ProducerOptions(cleartext_signed=True, **kwargs)


class TestConsumerOptions(unittest.TestCase, tests.common.KeysMixin):
  @classmethod
  def setUpClass(cls):
    cls.set_up_keys()

  def test_decryption_keys(self):
    options = ConsumerOptions()
    options.add_decryption_key(self.bob_subkey, self.bob_cert)
    options.add_decryption_key(self.carol)
    self.assertEqual(options.decryption_keys[0].identifier,
        SubkeyIdentifier(self.bob.keyid, self.bob_subkey.keyid))
    self.assertEqual(options.decryption_keys[1].identifier,
        SubkeyIdentifier(self.carol.keyid, self.carol.keyid))

    with self.assertRaises(KeyNotFoundError):
      options.add_decryption_key(self.alice, self.bob_cert)

    options.add_decryption_passphrase("secret")
    self.assertEqual(options.passphrases, ["secret"])
    with self.assertRaises(ValueError):
      options.add_decryption_passphrase("")

  def test_find_certificate(self):
    options = ConsumerOptions()
    self.assertFalse(options.is_verifying)
    options.add_verification_cert(self.alice_cert)
    options.add_verification_cert(self.bob_cert)
    self.assertTrue(options.is_verifying)

    certificate, key = options.find_certificate(self.bob_subkey.short_keyid)
    self.assertEqual(certificate, self.bob_cert)
    self.assertEqual(key["keyid"], self.bob_subkey.keyid)

    with self.assertRaises(MissingCertificateError):
      options.find_certificate(self.carol.keyid)

  def test_missing_certificate_callback(self):
    requested = []

    def callback(keyid):
      requested.append(keyid)
      if keyid == self.carol.keyid:
        return self.carol_cert
      return None

    options = ConsumerOptions().set_missing_certificate_callback(callback)
    self.assertTrue(options.is_verifying)
    self.assertEqual(options.find_certificate(self.carol.keyid)[0],
        self.carol_cert)

    with self.assertRaises(MissingCertificateError) as context:
      options.find_certificate(self.alice.keyid)
    self.assertEqual(context.exception.keyid, self.alice.keyid)
    self.assertEqual(requested, [self.carol.keyid, self.alice.keyid])

  def test_detached_signatures(self):
    generator = SignatureGenerator(self.alice, SHA256)
    generator.update(b"data")
    signature = generator.generate()

    options = ConsumerOptions()
    options.add_detached_signature(signature)
    options.add_detached_signature(signature.encode())
    options.add_detached_signature(signature.armor())
    options.add_detached_signature(signature.armor().encode("ascii"))
    self.assertEqual(options.detached_signatures, [signature] * 4)


if __name__ == "__main__":
  unittest.main()
