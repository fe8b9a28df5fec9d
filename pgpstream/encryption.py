# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  encryption.py

<Started>
  Oct 6, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Integrity protected encryption (RFC4880 5.13. and 5.14.).

  A random session key encrypts the message in a symmetrically encrypted
  integrity protected data (SEIPD) packet. The session key itself is
  encrypted once per encryption method, i.e. in a public-key encrypted
  session key (PKESK) packet per recipient key and a symmetric-key encrypted
  session key (SKESK) packet per passphrase, all written before the SEIPD
  packet.

"""
import os
import logging
import binascii

import cryptography.hazmat.primitives.hashes as hashing

import pgpstream.settings
import pgpstream.pgp.util
import pgpstream.pgp.keys
import pgpstream.pgp.cipher
import pgpstream.pgp.packets
from pgpstream.exceptions import (MissingDecryptionMethodError,
    ModificationDetectionError)
from pgpstream.pgp.exceptions import (PacketParsingError,
    PacketVersionNotSupportedError)
from pgpstream.pgp.constants import (PACKET_TYPE_PKESK, PACKET_TYPE_SKESK,
    PACKET_TYPE_SEIPD, PKESK_VERSION, SKESK_VERSION, SEIPD_VERSION,
    PUBKEY_ALGORITHM_BY_TYPE, SUPPORTED_PUBKEY_ALGORITHMS, CIPHER_BLOCK_SIZE,
    MDC_HEADER, MDC_LENGTH, SYMMETRIC_ALGORITHM_NAMES, SYMMETRIC_KEY_SIZES)

log = logging.getLogger(__name__)

WILDCARD_KEYID = "0000000000000000"


def encode_pkesk(pubkey_info, algorithm, session_key):
  """Return a PKESK packet encrypting the session key to the passed public
  key dictionary. """
  handler = pgpstream.pgp.keys.get_handler(pubkey_info["type"])
  material = pgpstream.pgp.cipher.encode_session_key(algorithm, session_key)
  body = (bytes([PKESK_VERSION]) +
      binascii.unhexlify(pgpstream.pgp.util.get_short_keyid(
      pubkey_info["keyid"])) +
      bytes([PUBKEY_ALGORITHM_BY_TYPE[pubkey_info["type"]]]) +
      handler.encrypt_session_key(pubkey_info, material))
  return pgpstream.pgp.util.encode_packet(PACKET_TYPE_PKESK, body)


def parse_pkesk(data):
  """Parse a PKESK packet body and return a dictionary with "keyid" (16 hex
  digits), "pubkey_algorithm" and the algorithm specific "encrypted_key"
  fields. """
  data = bytes(data)
  if len(data) < 10:
    raise PacketParsingError("Public-key encrypted session key packet is "
        "truncated.")

  if data[0] != PKESK_VERSION:
    raise PacketVersionNotSupportedError("Public-key encrypted session key "
        "version '{}' not supported, must be {}.".format(data[0],
        PKESK_VERSION))

  return {
    "keyid": binascii.hexlify(data[1:9]).decode("ascii"),
    "pubkey_algorithm": data[9],
    "encrypted_key": data[10:],
  }


def encode_skesk(passphrase, algorithm, session_key):
  """Return a SKESK packet with an iterated and salted S2K specifier and the
  session key encrypted with the key derived from the passphrase. """
  s2k_octets = pgpstream.pgp.cipher.encode_s2k()
  s2k, _ = pgpstream.pgp.cipher.parse_s2k(s2k_octets)
  key_encryption_key = pgpstream.pgp.cipher.derive_key(passphrase, s2k,
      pgpstream.pgp.cipher.get_key_size(algorithm))
  encryptor = pgpstream.pgp.cipher.create_encryptor(algorithm,
      key_encryption_key)
  encrypted_key = encryptor.update(bytes([algorithm]) + session_key) + \
      encryptor.finalize()

  body = bytes([SKESK_VERSION, algorithm]) + s2k_octets + encrypted_key
  return pgpstream.pgp.util.encode_packet(PACKET_TYPE_SKESK, body)


def parse_skesk(data):
  """Parse a SKESK packet body and return a dictionary with "algorithm",
  "s2k" and the optional "encrypted_key". """
  data = bytes(data)
  if len(data) < 2:
    raise PacketParsingError("Symmetric-key encrypted session key packet is "
        "truncated.")

  if data[0] != SKESK_VERSION:
    raise PacketVersionNotSupportedError("Symmetric-key encrypted session key "
        "version '{}' not supported, must be {}.".format(data[0],
        SKESK_VERSION))

  s2k, ptr = pgpstream.pgp.cipher.parse_s2k(data, 2)
  return {
    "algorithm": data[1],
    "s2k": s2k,
    "encrypted_key": data[ptr:],
  }


def decrypt_pkesk(pkesk, secret_key):
  """
  <Purpose>
    Try to decrypt the session key of a parsed PKESK packet with the passed
    secret key.

  <Arguments>
    pkesk:
            A dictionary as returned by parse_pkesk

    secret_key:
            A pgpstream.pgp.keys.SecretKey

  <Exceptions>
    None.

  <Side Effects>
    Uses the secret key to decrypt.

  <Returns>
    A tuple of symmetric algorithm and session key, or None if the packet is
    not addressed to the key or the key cannot decrypt it.

  """
  if pkesk["keyid"] != WILDCARD_KEYID and not \
      pgpstream.pgp.util.keyid_matches(secret_key.keyid, pkesk["keyid"]):
    return None

  algorithm = SUPPORTED_PUBKEY_ALGORITHMS.get(pkesk["pubkey_algorithm"])
  if algorithm is None or algorithm["type"] != secret_key.key_type:
    return None

  handler = pgpstream.pgp.keys.get_handler(secret_key.key_type)
  if not hasattr(handler, "decrypt_session_key"):
    return None

  try:
    material = handler.decrypt_session_key(secret_key.private_key,
        pkesk["encrypted_key"])
    return pgpstream.pgp.cipher.parse_session_key(material)

  except (ValueError, PacketParsingError) as e:
    log.info("Could not decrypt session key with key '{}': {}".format(
        secret_key.short_keyid, e))
    return None


def decrypt_skesk(skesk, passphrase):
  """Return a tuple of symmetric algorithm and session key derived from the
  passed passphrase, or None if the result is obviously invalid. A wrong
  passphrase is usually only detected by the quick check of the encrypted
  data. """
  try:
    key_size = pgpstream.pgp.cipher.get_key_size(skesk["algorithm"])
    key = pgpstream.pgp.cipher.derive_key(passphrase, skesk["s2k"], key_size)

  except ValueError as e:
    log.info("Could not derive key from passphrase: {}".format(e))
    return None

  if not skesk["encrypted_key"]:
    return skesk["algorithm"], key

  decryptor = pgpstream.pgp.cipher.create_decryptor(skesk["algorithm"], key)
  decrypted = decryptor.update(skesk["encrypted_key"]) + decryptor.finalize()
  algorithm, session_key = decrypted[0], decrypted[1:]
  if len(session_key) != SYMMETRIC_KEY_SIZES.get(algorithm):
    return None

  return algorithm, session_key


class EncryptedDataWriter:
  """
  <Purpose>
    Writable stream that encrypts everything written to it into a SEIPD
    packet streamed to sink. The packet starts with a random block-sized
    prefix whose last two octets are repeated (quick check) and ends with a
    modification detection code over prefix and plaintext.

    Closing the writer does not close the sink.

  <Arguments>
    sink:
            A writable binary file-like object, positioned after the session
            key packets

    algorithm:
            The symmetric algorithm id

    session_key:
            The session key

  """
  def __init__(self, sink, algorithm, session_key):
    self._encryptor = pgpstream.pgp.cipher.create_encryptor(algorithm,
        session_key)
    self._mdc = hashing.Hash(hashing.SHA1())
    self.algorithm = algorithm

    self._packet = pgpstream.pgp.packets.PartialBodyWriter(sink,
        PACKET_TYPE_SEIPD)
    self._packet.write(bytes([SEIPD_VERSION]))

    prefix = os.urandom(CIPHER_BLOCK_SIZE)
    prefix += prefix[-2:]
    self._mdc.update(prefix)
    self._packet.write(self._encryptor.update(prefix))
    log.debug("Opened encrypted data packet ({})".format(
        SYMMETRIC_ALGORITHM_NAMES[algorithm]))

  @property
  def closed(self):
    return self._packet.closed

  def write(self, data):
    if self.closed:
      raise ValueError("Write to closed encrypted data packet.")

    data = bytes(data)
    self._mdc.update(data)
    self._packet.write(self._encryptor.update(data))
    return len(data)

  def flush(self):
    self._packet.flush()

  def close(self):
    if self.closed:
      return

    # The MDC covers its own packet header (see RFC4880 5.14.)
    self._mdc.update(MDC_HEADER)
    trailer = MDC_HEADER + self._mdc.finalize()
    self._packet.write(self._encryptor.update(trailer) +
        self._encryptor.finalize())
    self._packet.close()


def open_encrypted_data(body, candidates):
  """
  <Purpose>
    Find the session key of a SEIPD packet among the passed candidates using
    the quick check octets and return a reader over the decrypted content.

  <Arguments>
    body:
            The readable SEIPD packet body

    candidates:
            A list of (algorithm, session_key, identity) tuples, identity is
            opaque and returned with the reader

  <Exceptions>
    pgpstream.exceptions.MissingDecryptionMethodError
            If no candidate passes the quick check.

    pgpstream.pgp.exceptions.PacketParsingError
            If the packet version is not supported or the packet is truncated.

  <Side Effects>
    Consumes the version octet and prefix from body.

  <Returns>
    A tuple of DecryptedDataReader and the identity of the matching
    candidate.

  """
  version = pgpstream.pgp.packets.read_exact(body, 1)[0]
  if version != SEIPD_VERSION:
    raise PacketVersionNotSupportedError("Encrypted data packet version '{}' "
        "not supported, must be {}.".format(version, SEIPD_VERSION))

  encrypted_prefix = pgpstream.pgp.packets.read_exact(body,
      CIPHER_BLOCK_SIZE + 2)

  for algorithm, session_key, identity in candidates:
    decryptor = pgpstream.pgp.cipher.create_decryptor(algorithm, session_key)
    prefix = decryptor.update(encrypted_prefix)
    if prefix[-4:-2] == prefix[-2:]:
      log.debug("Session key for {} passed quick check".format(
          SYMMETRIC_ALGORITHM_NAMES[algorithm]))
      return DecryptedDataReader(body, decryptor, prefix, algorithm), identity

  raise MissingDecryptionMethodError("None of {} candidate session key(s) "
      "decrypts the message.".format(len(candidates)))


class DecryptedDataReader:
  """Readable stream over the plaintext of a SEIPD packet. The trailing
  modification detection code is held back and verified when the end of the
  packet is reached, which raises ModificationDetectionError on mismatch. """

  def __init__(self, body, decryptor, prefix, algorithm):
    self._body = body
    self._decryptor = decryptor
    self._mdc = hashing.Hash(hashing.SHA1())
    self._mdc.update(prefix)
    self._pending = bytearray()
    self._buffer = bytearray()
    self._eof = False
    self.algorithm = algorithm

  def _fill(self):
    data = self._body.read(pgpstream.settings.READ_CHUNK_SIZE)
    if not data:
      self._pending += self._decryptor.finalize()
      self._verify()
      self._eof = True
      return

    self._pending += self._decryptor.update(data)
    if len(self._pending) > MDC_LENGTH:
      release = bytes(self._pending[:-MDC_LENGTH])
      del self._pending[:-MDC_LENGTH]
      self._mdc.update(release)
      self._buffer += release

  def _verify(self):
    trailer = bytes(self._pending)
    if len(trailer) != MDC_LENGTH or not trailer.startswith(MDC_HEADER):
      raise ModificationDetectionError("Encrypted data ends without "
          "modification detection code.")

    self._mdc.update(MDC_HEADER)
    if self._mdc.finalize() != trailer[2:]:
      raise ModificationDetectionError("Modification detection code "
          "mismatch, the encrypted data was modified.")

    log.debug("Modification detection code verified")

  def read(self, size=-1):
    while not self._eof and (size is None or size < 0 or
        len(self._buffer) < size):
      self._fill()

    if size is None or size < 0:
      size = len(self._buffer)

    data = bytes(self._buffer[:size])
    del self._buffer[:size]
    return data
