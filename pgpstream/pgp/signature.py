# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Module Name>
  signature.py

<Started>
  Oct 5, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Version 4 signature packets and version 3 one-pass signature packets.

  Signatures over a document are computed incrementally: a
  `SignatureGenerator` or `SignatureVerifier` is updated with the signed
  content and finalized with the hashed portion of the signature packet and
  the RFC4880 5.2.4. trailer.

"""
import io
import struct
import binascii
import logging
import datetime

import attr
import dateutil.tz

import cryptography.hazmat.primitives.hashes as hashing

import pgpstream.armor
import pgpstream.crlf
import pgpstream.pgp.util
import pgpstream.pgp.keys
from pgpstream.pgp.exceptions import (PacketParsingError,
    PacketVersionNotSupportedError, SignatureAlgorithmNotSupportedError)
from pgpstream.pgp.constants import (PACKET_TYPE_SIGNATURE,
    PACKET_TYPE_ONE_PASS_SIGNATURE, SIGNATURE_VERSION,
    SUPPORTED_SIGNATURE_PACKET_VERSIONS, ONE_PASS_SIGNATURE_VERSION,
    SUPPORTED_PUBKEY_ALGORITHMS, SIGNATURE_TYPE_BINARY, SIGNATURE_TYPE_TEXT,
    SUPPORTED_DOCUMENT_SIGNATURE_TYPES, SIGNATURE_CREATION_TIME_SUBPACKET,
    PARTIAL_KEYID_SUBPACKET, FULL_KEYID_SUBPACKET, PUBKEY_VERSION)

log = logging.getLogger(__name__)


@attr.s(frozen=True)
class Signature:
  """A parsed or generated version 4 signature.

  Attributes:
    signature_type: The RFC4880 5.2.1. signature type, binary or text.
    pubkey_algorithm: The RFC4880 9.1. public key algorithm id.
    hash_algorithm: The RFC4880 9.4. hash algorithm id.
    keyid: The issuer fingerprint or "" if the signature only has an issuer
        key id.
    short_keyid: The 64 bit issuer key id as 16 hex digits.
    creation_time: The signature creation time as UNIX timestamp.
    hashed_headers: The hashed portion of the packet body, i.e. version,
        type, algorithms and hashed subpackets.
    unhashed_subpackets: The encoded unhashed subpackets.
    left16: The left 16 bits of the signed digest.
    signature_params: The algorithm specific MPIs.

  """
  signature_type = attr.ib()
  pubkey_algorithm = attr.ib()
  hash_algorithm = attr.ib()
  keyid = attr.ib()
  short_keyid = attr.ib()
  creation_time = attr.ib()
  hashed_headers = attr.ib(repr=False)
  unhashed_subpackets = attr.ib(repr=False)
  left16 = attr.ib(repr=False)
  signature_params = attr.ib(repr=False)

  @property
  def issuer(self):
    """The most specific issuer identifier available. """
    return self.keyid or self.short_keyid

  @property
  def creation_date(self):
    return datetime.datetime.fromtimestamp(self.creation_time,
        dateutil.tz.UTC)

  @property
  def key_type(self):
    return SUPPORTED_PUBKEY_ALGORITHMS[self.pubkey_algorithm]["type"]

  def encode_body(self):
    return (self.hashed_headers +
        struct.pack(">H", len(self.unhashed_subpackets)) +
        self.unhashed_subpackets + self.left16 + self.signature_params)

  def encode(self):
    """Return the binary signature packet. """
    return pgpstream.pgp.util.encode_packet(PACKET_TYPE_SIGNATURE,
        self.encode_body())

  def armor(self):
    """Return the signature packet as ASCII armored "PGP SIGNATURE" block. """
    output = io.BytesIO()
    writer = pgpstream.armor.ArmoredWriter(output,
        armor_type=pgpstream.armor.ARMOR_SIGNATURE)
    writer.write(self.encode())
    writer.close()
    return output.getvalue().decode("ascii")


def parse_signature_body(data):
  """
  <Purpose>
    Parse the body of an RFC4880 version 4 signature packet.

  <Arguments>
    data:
           the signature packet body as described in section 5.2.3.

  <Exceptions>
    pgpstream.pgp.exceptions.PacketVersionNotSupportedError
           if the signature version is not 4

    pgpstream.pgp.exceptions.SignatureAlgorithmNotSupportedError
           if the public key algorithm is neither RSA nor DSA

    pgpstream.pgp.exceptions.PacketParsingError
           if the data is incomplete or malformed

  <Side Effects>
    None.

  <Returns>
    A Signature

  """
  data = bytes(data)
  try:
    return _parse_signature_body(data)

  except (IndexError, struct.error) as e:
    raise PacketParsingError("This signature packet seems to be "
        "corrupted: {}".format(e)) from e


def _parse_signature_body(data):
  ptr = 0

  version_number = data[ptr]
  ptr += 1
  if version_number not in SUPPORTED_SIGNATURE_PACKET_VERSIONS:
    raise PacketVersionNotSupportedError("Signature version '{}' not "
        "supported, must be one of {}.".format(version_number,
        SUPPORTED_SIGNATURE_PACKET_VERSIONS))

  signature_type = data[ptr]
  ptr += 1

  pubkey_algorithm = data[ptr]
  ptr += 1

  if pubkey_algorithm not in SUPPORTED_PUBKEY_ALGORITHMS:
    raise SignatureAlgorithmNotSupportedError("Signature algorithm '{}' not "
        "supported, must be either DSA or RSA (see RFC4880 9.1. Public-Key "
        "Algorithms).".format(pubkey_algorithm))

  hash_algorithm = data[ptr]
  ptr += 1

  # Obtain the hashed octets
  hashed_octet_count = struct.unpack(">H", data[ptr:ptr+2])[0]
  ptr += 2
  hashed_subpackets = data[ptr:ptr+hashed_octet_count]
  if len(hashed_subpackets) != hashed_octet_count:
    raise PacketParsingError("This signature packet seems to be corrupted. "
        "It is missing hashed octets!")

  hashed_subpacket_info = pgpstream.pgp.util.parse_subpackets(
      hashed_subpackets)

  ptr += hashed_octet_count
  hashed_headers = data[:ptr]

  unhashed_octet_count = struct.unpack(">H", data[ptr: ptr + 2])[0]
  ptr += 2

  unhashed_subpackets = data[ptr:ptr+unhashed_octet_count]
  unhashed_subpacket_info = pgpstream.pgp.util.parse_subpackets(
      unhashed_subpackets)

  ptr += unhashed_octet_count

  keyid = ""
  short_keyid = ""
  creation_time = None

  # Parse Issuer (short keyid) and Issuer Fingerprint (full keyid) from hashed
  # and unhashed signature subpackets. Subpackets found later override earlier
  # ones, hence hashed subpackets are favored over unhashed ones.
  # (see RFC4880 5.2.3.2. and 5.2.4.1.)
  for subpacket_type, subpacket_data in \
      unhashed_subpacket_info + hashed_subpacket_info:
    if subpacket_type == FULL_KEYID_SUBPACKET:
      # NOTE: The first byte of the subpacket payload is a version number
      # (see rfc4880bis-06 5.2.3.28.)
      keyid = binascii.hexlify(subpacket_data[1:]).decode("ascii")

    if subpacket_type == PARTIAL_KEYID_SUBPACKET:
      short_keyid = binascii.hexlify(subpacket_data).decode("ascii")

  # The creation time is only meaningful if it is hashed
  for subpacket_type, subpacket_data in hashed_subpacket_info:
    if subpacket_type == SIGNATURE_CREATION_TIME_SUBPACKET:
      creation_time = struct.unpack(">I", subpacket_data)[0]

  if not (keyid or short_keyid):
    raise PacketParsingError("This signature packet seems to be corrupted. "
        "It does not have an 'Issuer' or 'Issuer Fingerprint' subpacket (see "
        "RFC4880 and rfc4880bis-06 5.2.3.1. Signature Subpacket "
        "Specification).")

  if keyid and not short_keyid:
    short_keyid = pgpstream.pgp.util.get_short_keyid(keyid)

  if keyid and not keyid.endswith(short_keyid):
    raise PacketParsingError("This signature packet seems to be corrupted. "
        "The key ID '{}' of the 'Issuer' subpacket must match the lower 64 "
        "bits of the fingerprint '{}' of the 'Issuer Fingerprint' subpacket "
        "(see RFC4880 and rfc4880bis-06 5.2.3.28. Issuer "
        "Fingerprint).".format(short_keyid, keyid))

  if creation_time is None:
    raise PacketParsingError("This signature packet seems to be corrupted. "
        "It does not have a hashed 'Signature Creation Time' subpacket (see "
        "RFC4880 5.2.3.4.).")

  left16 = data[ptr:ptr + 2]
  ptr += 2
  if len(left16) != 2:
    raise PacketParsingError("This signature packet seems to be corrupted. "
        "It is missing the left 16 bits of the signed hash.")

  return Signature(
      signature_type=signature_type,
      pubkey_algorithm=pubkey_algorithm,
      hash_algorithm=hash_algorithm,
      keyid=keyid,
      short_keyid=short_keyid,
      creation_time=creation_time,
      hashed_headers=hashed_headers,
      unhashed_subpackets=unhashed_subpackets,
      left16=left16,
      signature_params=data[ptr:])


def parse_signature_packet(data):
  """
  <Purpose>
    Parse a complete binary RFC4880 signature packet (header and body).

  <Arguments>
    data:
           the RFC4880-encoded binary signature data buffer as described in
           section 5.2 (and 5.2.3.1).

  <Exceptions>
    pgpstream.pgp.exceptions.PacketParsingError
           if the data is not a signature packet or is malformed

    See parse_signature_body for other exceptions.

  <Side Effects>
    None.

  <Returns>
    A Signature

  """
  try:
    _, header_len, _, packet_len = pgpstream.pgp.util.parse_packet_header(
        data, PACKET_TYPE_SIGNATURE)

  except IndexError as e:
    raise PacketParsingError("Signature packet header is incomplete.") from e

  if len(data) < packet_len:
    raise PacketParsingError("Signature packet is truncated.")

  return parse_signature_body(data[header_len:packet_len])


@attr.s(frozen=True)
class OnePassSignature:
  """A parsed one-pass signature packet (RFC4880 5.4.). nested is True if
  another one-pass signature over the same data follows. """
  signature_type = attr.ib()
  hash_algorithm = attr.ib()
  pubkey_algorithm = attr.ib()
  short_keyid = attr.ib()
  nested = attr.ib()


def encode_one_pass_signature(signature_type, hash_algorithm,
    pubkey_algorithm, short_keyid, nested):
  """Return a one-pass signature packet. A set nested flag is encoded as
  zero octet, which tells that another one-pass signature packet follows. """
  body = (bytes([ONE_PASS_SIGNATURE_VERSION, signature_type, hash_algorithm,
      pubkey_algorithm]) + binascii.unhexlify(short_keyid) +
      bytes([0 if nested else 1]))
  return pgpstream.pgp.util.encode_packet(PACKET_TYPE_ONE_PASS_SIGNATURE,
      body)


def parse_one_pass_signature(data):
  """
  <Purpose>
    Parse the body of a one-pass signature packet.

  <Arguments>
    data:
           the packet body as described in RFC4880 section 5.4.

  <Exceptions>
    pgpstream.pgp.exceptions.PacketVersionNotSupportedError
           if the packet version is not 3

    pgpstream.pgp.exceptions.PacketParsingError
           if the body does not have 13 octets

  <Side Effects>
    None.

  <Returns>
    A OnePassSignature

  """
  data = bytes(data)
  if len(data) != 13:
    raise PacketParsingError("One-pass signature packet must have 13 octets, "
        "got {}.".format(len(data)))

  if data[0] != ONE_PASS_SIGNATURE_VERSION:
    raise PacketVersionNotSupportedError("One-pass signature version '{}' not "
        "supported, must be {}.".format(data[0], ONE_PASS_SIGNATURE_VERSION))

  return OnePassSignature(
      signature_type=data[1],
      hash_algorithm=data[2],
      pubkey_algorithm=data[3],
      short_keyid=binascii.hexlify(data[4:12]).decode("ascii"),
      nested=data[12] == 0)


class _DocumentHasher:
  """Running hash over signed document content, canonicalizing line endings
  for text signatures. """

  def __init__(self, hash_algorithm, signature_type):
    if signature_type not in SUPPORTED_DOCUMENT_SIGNATURE_TYPES:
      raise ValueError("Signature type '{}' not supported, must be one of {} "
          "(see RFC4880 5.2.1. Signature Types).".format(signature_type,
          SUPPORTED_DOCUMENT_SIGNATURE_TYPES))

    hashing_class = pgpstream.pgp.util.get_hashing_class(hash_algorithm)
    self.hash_algorithm = hash_algorithm
    self.signature_type = signature_type
    self._hasher = hashing.Hash(hashing_class())
    self._canonicalizer = None
    if signature_type == SIGNATURE_TYPE_TEXT:
      self._canonicalizer = pgpstream.crlf.CRLFCanonicalizer()

  def update(self, data):
    if self._canonicalizer is not None:
      data = self._canonicalizer.update(data)

    self._hasher.update(data)

  def _finalize(self, hashed_headers):
    # Finalize a copy so that the running hash stays usable
    hasher = self._hasher.copy()
    if self._canonicalizer is not None:
      hasher.update(self._canonicalizer.finish())

    return pgpstream.pgp.util.finalize_digest(hasher, hashed_headers)


class SignatureGenerator(_DocumentHasher):
  """
  <Purpose>
    Compute a document signature with the passed secret key over all data
    passed to `update`.

  <Arguments>
    secret_key:
            A pgpstream.pgp.keys.SecretKey capable of signing

    hash_algorithm:
            The RFC4880 hash algorithm id, see
            pgpstream.pgp.util.get_hashing_class

    signature_type: (optional)
            SIGNATURE_TYPE_BINARY (default) or SIGNATURE_TYPE_TEXT

  <Exceptions>
    ValueError
            If hash algorithm or signature type are not supported.

  """
  def __init__(self, secret_key, hash_algorithm,
      signature_type=SIGNATURE_TYPE_BINARY):
    super().__init__(hash_algorithm, signature_type)
    self.secret_key = secret_key

  def one_pass_signature(self, nested):
    """Return the one-pass signature packet announcing this signature. """
    return encode_one_pass_signature(self.signature_type, self.hash_algorithm,
        self.secret_key.pubkey_algorithm, self.secret_key.short_keyid, nested)

  def generate(self, creation_time=None):
    """
    <Purpose>
      Create the signature over the data passed so far.

    <Arguments>
      creation_time: (optional)
              UNIX timestamp of the signature creation, defaults to now.

    <Exceptions>
      None.

    <Side Effects>
      Uses the secret key to sign.

    <Returns>
      A Signature

    """
    if creation_time is None:
      creation_time = int(datetime.datetime.now(dateutil.tz.UTC).timestamp())

    fingerprint = binascii.unhexlify(self.secret_key.keyid)
    hashed_subpackets = (
        pgpstream.pgp.util.encode_subpacket(SIGNATURE_CREATION_TIME_SUBPACKET,
            struct.pack(">I", creation_time)) +
        pgpstream.pgp.util.encode_subpacket(FULL_KEYID_SUBPACKET,
            bytes([PUBKEY_VERSION]) + fingerprint))
    unhashed_subpackets = pgpstream.pgp.util.encode_subpacket(
        PARTIAL_KEYID_SUBPACKET, fingerprint[-8:])

    hashed_headers = bytes([SIGNATURE_VERSION, self.signature_type,
        self.secret_key.pubkey_algorithm, self.hash_algorithm]) + \
        struct.pack(">H", len(hashed_subpackets)) + hashed_subpackets

    digest = self._finalize(hashed_headers)
    handler = pgpstream.pgp.keys.get_handler(self.secret_key.key_type)
    signature_params = handler.create_signature(self.secret_key.private_key,
        digest, self.hash_algorithm)

    log.debug("Created signature with key '{}'".format(
        self.secret_key.short_keyid))

    return Signature(
        signature_type=self.signature_type,
        pubkey_algorithm=self.secret_key.pubkey_algorithm,
        hash_algorithm=self.hash_algorithm,
        keyid=self.secret_key.keyid,
        short_keyid=self.secret_key.short_keyid,
        creation_time=creation_time,
        hashed_headers=hashed_headers,
        unhashed_subpackets=unhashed_subpackets,
        left16=digest[:2],
        signature_params=signature_params)


class SignatureVerifier(_DocumentHasher):
  """Verify signatures of the passed hash algorithm and signature type over
  all data passed to `update`. """

  def verify(self, signature, pubkey_info):
    """
    <Purpose>
      Verify the passed signature over the data passed so far with the passed
      public key.

    <Arguments>
      signature:
              A Signature

      pubkey_info:
              The signing public key dictionary (see
              pgpstream.pgp.formats.PUBKEY_SCHEMA)

    <Exceptions>
      securesystemslib.exceptions.FormatError
              If pubkey_info is malformed.

    <Side Effects>
      None.

    <Returns>
      True if the signature is valid, False otherwise.

    """
    if (signature.hash_algorithm != self.hash_algorithm or
        signature.signature_type != self.signature_type):
      log.info("Signature algorithms do not match the hashed data "
          "(hash '{}', type '{}').".format(signature.hash_algorithm,
          signature.signature_type))
      return False

    if signature.key_type != pubkey_info["type"]:
      return False

    digest = self._finalize(signature.hashed_headers)
    if digest[:2] != signature.left16:
      log.info("Left 16 bits of signed hash do not match.")
      return False

    handler = pgpstream.pgp.keys.get_handler(pubkey_info["type"])
    return handler.verify_signature(
        handler.get_signature_params(signature.signature_params),
        pubkey_info, digest, self.hash_algorithm)
