#!/usr/bin/env python

# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  common.py

<Started>
  Oct 10, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Common code for pgpstream unittests, import like so:
  `import tests.common`

  Tests importing this module, should be run from the project root, e.g.:
  `python -m unittest tests.test_encryption_stream`
  or using the aggregator script (preferred way):
  `python tests/runtests.py`.

"""
import cryptography.hazmat.primitives.asymmetric.rsa as rsa
import cryptography.hazmat.primitives.asymmetric.dsa as dsa

import pgpstream.pgp.keys
from pgpstream.pgp.constants import (KEY_FLAG_CERTIFY, KEY_FLAG_SIGN,
    KEY_FLAG_ENCRYPT)

# Fixed creation time, so that fingerprints only depend on key material
KEY_CREATION_TIME = 1791936000

# Generated keys are shared by all test modules of a test run
_KEYS = {}


def _generate_rsa_key():
  return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _generate_dsa_key():
  return dsa.generate_private_key(key_size=2048)


def _create_keys():
  alice = pgpstream.pgp.keys.SecretKey(_generate_rsa_key(),
      KEY_CREATION_TIME, [KEY_FLAG_CERTIFY, KEY_FLAG_SIGN])

  bob = pgpstream.pgp.keys.SecretKey(_generate_rsa_key(),
      KEY_CREATION_TIME, [KEY_FLAG_CERTIFY, KEY_FLAG_SIGN])
  bob_subkey = pgpstream.pgp.keys.SecretKey(_generate_rsa_key(),
      KEY_CREATION_TIME, [KEY_FLAG_ENCRYPT])

  carol = pgpstream.pgp.keys.SecretKey(_generate_dsa_key(),
      KEY_CREATION_TIME)

  return {
    "alice": alice,
    "alice_cert": pgpstream.pgp.keys.create_certificate(alice.pubkey,
        user_ids=["Alice <alice@example.org>"]),
    "bob": bob,
    "bob_subkey": bob_subkey,
    "bob_cert": pgpstream.pgp.keys.create_certificate(bob.pubkey,
        subkeys=[bob_subkey.pubkey], user_ids=["Bob <bob@example.org>"]),
    "carol": carol,
    "carol_cert": pgpstream.pgp.keys.create_certificate(carol.pubkey,
        user_ids=["Carol <carol@example.com>"]),
  }


class KeysMixin():
  """Mixin with classmethod to make test keys available as class attributes:

    alice, alice_cert: RSA signing key and certificate
    bob, bob_subkey, bob_cert: RSA signing primary key with an RSA encryption
        subkey
    carol, carol_cert: DSA signing key and certificate

  Keys are generated once per test run.

  """
  @classmethod
  def set_up_keys(cls):
    if not _KEYS:
      _KEYS.update(_create_keys())

    for name, value in _KEYS.items():
      setattr(cls, name, value)
