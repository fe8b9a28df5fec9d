# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Module Name>
  cipher.py

<Started>
  Oct 6, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Symmetric cryptography for encrypted messages: AES in OpenPGP CFB mode,
  string-to-key specifiers (RFC4880 3.7.) that derive keys from passphrases,
  and the session key encoding shared by public-key and symmetric-key
  encrypted session key packets.

"""
import os
import struct
import logging

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
import cryptography.hazmat.primitives.hashes as hashing

import pgpstream.settings
import pgpstream.pgp.util
from pgpstream.pgp.exceptions import PacketParsingError
from pgpstream.pgp.constants import (SYMMETRIC_KEY_SIZES, CIPHER_BLOCK_SIZE,
    S2K_ITERATED_SALTED, S2K_SALT_LENGTH, SHA256)

log = logging.getLogger(__name__)

S2K_SIMPLE = 0x00
S2K_SALTED = 0x01
SUPPORTED_S2K_TYPES = {S2K_SIMPLE, S2K_SALTED, S2K_ITERATED_SALTED}


def get_key_size(algorithm):
  """Return the key size in octets of the passed symmetric algorithm id. """
  try:
    return SYMMETRIC_KEY_SIZES[algorithm]

  except KeyError:
    raise ValueError("Symmetric algorithm '{}' not supported, must be one of "
        "{} (see RFC4880 9.2. Symmetric-Key Algorithms).".format(algorithm,
        sorted(SYMMETRIC_KEY_SIZES)))


def _create_cipher(algorithm, key):
  if len(key) != get_key_size(algorithm):
    raise ValueError("Invalid key size {} for symmetric algorithm "
        "'{}'.".format(len(key), algorithm))

  # SEIPD and ESK encryption use CFB with an all-zero IV and no resync
  # (see RFC4880 5.7. and 5.13.)
  return Cipher(algorithms.AES(key), modes.CFB(bytes(CIPHER_BLOCK_SIZE)))


def create_encryptor(algorithm, key):
  """Return a streaming pyca/cryptography encryption context. """
  return _create_cipher(algorithm, key).encryptor()


def create_decryptor(algorithm, key):
  """Return a streaming pyca/cryptography decryption context. """
  return _create_cipher(algorithm, key).decryptor()


def generate_session_key(algorithm):
  return os.urandom(get_key_size(algorithm))


def session_key_checksum(key):
  """Return the two-octet sum of the key octets modulo 65536. """
  return struct.pack(">H", sum(bytearray(key)) & 0xFFFF)


def encode_session_key(algorithm, key):
  """Return the session key material encrypted to public keys: algorithm
  octet, key and checksum (see RFC4880 5.1.). """
  return bytes([algorithm]) + bytes(key) + session_key_checksum(key)


def parse_session_key(data):
  """
  <Purpose>
    Parse decrypted public-key session key material.

  <Arguments>
    data:
            algorithm octet, session key and two-octet checksum

  <Exceptions>
    ValueError
            If the algorithm is not supported, the key size does not match
            or the checksum is wrong.

  <Side Effects>
    None.

  <Returns>
    A tuple of symmetric algorithm id and session key

  """
  data = bytes(data)
  if len(data) < 3:
    raise ValueError("Session key material is too short.")

  algorithm = data[0]
  key = data[1:-2]
  if len(key) != get_key_size(algorithm):
    raise ValueError("Session key size {} does not match algorithm "
        "'{}'.".format(len(key), algorithm))

  if session_key_checksum(key) != data[-2:]:
    raise ValueError("Session key checksum mismatch.")

  return algorithm, key


def get_s2k_count(coded_count):
  """Decode the iteration count octet of an iterated and salted S2K. """
  return (16 + (coded_count & 15)) << ((coded_count >> 4) + 6)


def encode_s2k(salt=None, coded_count=None, hash_algorithm=SHA256):
  """Return an iterated and salted S2K specifier, generating a random salt
  if none is passed. """
  if salt is None:
    salt = os.urandom(S2K_SALT_LENGTH)

  if coded_count is None:
    coded_count = pgpstream.settings.S2K_ITERATION_COUNT

  return bytes([S2K_ITERATED_SALTED, hash_algorithm]) + salt + \
      bytes([coded_count])


def parse_s2k(data, ptr=0):
  """
  <Purpose>
    Parse a string-to-key specifier starting at `ptr`.

  <Arguments>
    data:
            A buffer containing an S2K specifier as described in RFC4880
            3.7.1.

    ptr: (optional)
            The position of the specifier in data

  <Exceptions>
    pgpstream.pgp.exceptions.PacketParsingError
            If the specifier type is not supported or the data is truncated.

  <Side Effects>
    None.

  <Returns>
    A tuple of specifier dictionary (type, hash_algorithm, salt, count) and
    the position right after the specifier.

  """
  data = bytes(data)
  if len(data) < ptr + 2:
    raise PacketParsingError("S2K specifier is truncated.")

  s2k_type = data[ptr]
  hash_algorithm = data[ptr + 1]
  ptr += 2
  if s2k_type not in SUPPORTED_S2K_TYPES:
    raise PacketParsingError("S2K specifier type '{}' not supported, must be "
        "one of {}.".format(s2k_type, sorted(SUPPORTED_S2K_TYPES)))

  salt = b""
  count = None
  if s2k_type in (S2K_SALTED, S2K_ITERATED_SALTED):
    salt = data[ptr:ptr + S2K_SALT_LENGTH]
    ptr += S2K_SALT_LENGTH
    if len(salt) != S2K_SALT_LENGTH:
      raise PacketParsingError("S2K salt is truncated.")

  if s2k_type == S2K_ITERATED_SALTED:
    if len(data) <= ptr:
      raise PacketParsingError("S2K iteration count is missing.")
    count = get_s2k_count(data[ptr])
    ptr += 1

  return {
    "type": s2k_type,
    "hash_algorithm": hash_algorithm,
    "salt": salt,
    "count": count,
  }, ptr


def derive_key(passphrase, s2k, key_size):
  """
  <Purpose>
    Derive a symmetric key from the passed passphrase as specified by a
    parsed S2K specifier (see RFC4880 3.7.1.).

  <Arguments>
    passphrase:
            The passphrase as str (UTF-8 encoded) or bytes

    s2k:
            An S2K specifier dictionary as returned by parse_s2k

    key_size:
            The number of key octets to derive

  <Exceptions>
    ValueError
            If the S2K hash algorithm is not supported.

  <Side Effects>
    None.

  <Returns>
    The derived key

  """
  if isinstance(passphrase, str):
    passphrase = passphrase.encode("utf-8")

  hashing_class = pgpstream.pgp.util.get_hashing_class(s2k["hash_algorithm"])
  data = s2k["salt"] + passphrase
  count = len(data)
  if s2k["count"] is not None:
    count = max(s2k["count"], len(data))

  repeated = b""
  if data:
    full, rest = divmod(count, len(data))
    repeated = data * full + data[:rest]

  key = b""
  preload = 0
  # Hash contexts are preloaded with zero octets until enough key material
  # is produced
  while len(key) < key_size:
    hasher = hashing.Hash(hashing_class())
    hasher.update(bytes(preload))
    hasher.update(repeated)
    key += hasher.finalize()
    preload += 1

  return key[:key_size]
