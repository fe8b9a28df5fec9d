# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Module Name>
  util.py

<Started>
  Oct 3, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  general-purpose utilities for binary data handling and pgp data parsing
"""
import struct
import binascii
import logging

import cryptography.hazmat.primitives.hashes as hashing

import pgpstream.pgp.exceptions
import pgpstream.pgp.constants

log = logging.getLogger(__name__)

CRC24_INIT = 0xB704CE
CRC24_POLY = 0x1864CFB


def get_mpi_length(data):
  """
  <Purpose>
    parses an MPI (Multi-Precision Integer) buffer and returns the appropriate
    length. This is mostly done to perform bitwise to byte-wise conversion.

  <Arguments>
    data: The MPI data

  <Exceptions>
    None

  <Side Effects>
    None

  <Returns>
    The length of the MPI contained at the beginning of this data buffer.
  """
  bitlength = int(struct.unpack(">H", data)[0])
  # Notice the /8 at the end, this length is the bitlength, not the length of
  # the data in bytes (as len reports it)
  return int((bitlength - 1)/8) + 1


def read_mpi(data, ptr):
  """Read the MPI starting at `ptr` of the passed buffer and return its value
  octets and the position right after it. """
  length = get_mpi_length(data[ptr:ptr + 2])
  ptr += 2
  value = bytes(data[ptr:ptr + length])
  if len(value) != length:
    raise pgpstream.pgp.exceptions.PacketParsingError(
        "This MPI was truncated!")

  return value, ptr + length


def encode_mpi(value):
  """
  <Purpose>
    Encode the passed integer or big-endian octet string as an MPI, i.e. a
    two-octet bit count followed by the value octets without leading zeros
    (see RFC4880 3.2. Multiprecision Integers).

  <Arguments>
    value: A non-negative int or bytes.

  <Exceptions>
    None

  <Side Effects>
    None

  <Returns>
    The MPI encoded bytes
  """
  if isinstance(value, (bytes, bytearray)):
    value = int.from_bytes(value, "big")

  bitlength = value.bit_length()
  return struct.pack(">H", bitlength) + value.to_bytes(
      (bitlength + 7) // 8, "big")


def finalize_digest(hasher, headers):
  """Append the signature headers and trailer to a running hash of the signed
  content and return the digest (see RFC4880 5.2.4.). The passed hasher is
  finalized. """
  # As per RFC4880 Section 5.2.4., we need to hash the content,
  # signature headers and add a very opinionated trailing header
  hasher.update(headers)
  hasher.update(b'\x04\xff')
  hasher.update(struct.pack(">I", len(headers)))

  return hasher.finalize()


def parse_packet_header(data, expected_type=None):
  """
  <Purpose>
    Parse out packet type and header and body lengths from an RFC4880 packet.

  <Arguments>
    data:
            An RFC4880 packet as described in section 4.2 of the rfc.

    expected_type: (optional)
            Used to error out if the packet does not have the expected
            type. See pgpstream.pgp.constants.PACKET_TYPE_* for available
            types.

  <Exceptions>
    pgpstream.pgp.exceptions.PacketParsingError
            If the new format packet length encodes a partial body length
            If the old format packet length encodes an indeterminate length
            If header or body length could not be determined
            If the expected_type was passed and does not match the packet type

    IndexError
            If the passed data is incomplete

  <Side Effects>
    None.

  <Returns>
    A tuple of packet type, header length, body length and packet length.
    (see  RFC4880 4.3. for the list of available packet types)

  """
  data = bytearray(data)
  header_len = None
  body_len = None

  if not data[0] & 0b10000000:
    raise pgpstream.pgp.exceptions.PacketParsingError("Invalid packet tag "
        "octet '{}', bit 7 must be set.".format(data[0]))

  # If Bit 6 of 1st octet is set we parse a New Format Packet Length, and
  # an Old Format Packet Lengths otherwise
  if data[0] & 0b01000000:
    # In new format packet lengths the packet type is encoded in Bits 5-0 of
    # the 1st octet of the packet
    packet_type = data[0] & 0b00111111

    # The rest of the packet header is the body length header, which may
    # consist of one, two or five octets. To disambiguate the RFC, the first
    # octet of the body length header is the second octet of the packet.
    if data[1] < 192:
      header_len = 2
      body_len = data[1]

    elif data[1] >= 192 and data[1] <= 223:
      header_len = 3
      body_len = (data[1] - 192 << 8) + data[2] + 192

    elif data[1] >= 224 and data[1] < 255:
      raise pgpstream.pgp.exceptions.PacketParsingError("New length format "
          " packets of partial body lengths are not supported")

    elif data[1] == 255:
      header_len = 6
      body_len = data[2] << 24 | data[3] << 16 | data[4] << 8 | data[5]

    else: # pragma: no cover
      # Unreachable: octet must be between 0 and 255
      raise pgpstream.pgp.exceptions.PacketParsingError("Invalid new length")

  else:
    # In old format packet lengths the packet type is encoded in Bits 5-2 of
    # the 1st octet and the length type in Bits 1-0
    packet_type = (data[0] & 0b00111100) >> 2
    length_type = data[0] & 0b00000011

    # The body length is encoded using one, two, or four octets, starting
    # with the second octet of the packet
    if length_type == 0:
      body_len = data[1]
      header_len = 2

    elif length_type == 1:
      header_len = 3
      body_len = struct.unpack(">H", data[1:header_len])[0]

    elif length_type == 2:
      header_len = 5
      body_len = struct.unpack(">I", data[1:header_len])[0]

    elif length_type == 3:
      raise pgpstream.pgp.exceptions.PacketParsingError("Old length format "
          "packets of indeterminate length are not supported")

    else: # pragma: no cover (unreachable)
      # Unreachable: bits 1-0 must be one of 0 to 3
      raise pgpstream.pgp.exceptions.PacketParsingError("Invalid old length")

  if header_len is None or body_len is None: # pragma: no cover
    # Unreachable: One of above must have assigned lengths or raised error
    raise pgpstream.pgp.exceptions.PacketParsingError("Could not determine "
        "packet length")

  if expected_type is not None and packet_type != expected_type:
    raise pgpstream.pgp.exceptions.PacketParsingError("Expected packet {}, "
        "but got {} instead!".format(expected_type, packet_type))

  return packet_type, header_len, body_len, header_len + body_len


def encode_length(length):
  """Encode a definite body length in new packet format (RFC4880 4.2.2.). """
  if length < 192:
    return bytes([length])

  if length < 8384:
    length -= 192
    return bytes([(length >> 8) + 192, length & 0xFF])

  return b"\xff" + struct.pack(">I", length)


def encode_packet(packet_type, body):
  """Return a complete new format packet of the passed type with the passed
  body. """
  return bytes([0b11000000 | packet_type]) + encode_length(len(body)) + \
      bytes(body)


def compute_keyid(pubkey_packet_data):
  """
  <Purpose>
    compute a keyid from an RFC4880 public-key buffer

  <Arguments>
    pubkey_packet_data: the public-key packet buffer

  <Exceptions>
    None

  <Side Effects>
    None

  <Returns>
    The V4 fingerprint of the key as lower-case hex string
  """
  hasher = hashing.Hash(hashing.SHA1())
  hasher.update(b'\x99')
  hasher.update(struct.pack(">H", len(pubkey_packet_data)))
  hasher.update(bytes(pubkey_packet_data))
  return binascii.hexlify(hasher.finalize()).decode("ascii")


def get_short_keyid(keyid):
  """Return the 64 bit key id (16 hex digits) of the passed fingerprint. """
  return keyid[-16:].lower()


def keyid_matches(keyid, candidate):
  """Tell whether the passed fingerprint or key id `candidate` identifies the
  key with fingerprint `keyid`. """
  if not keyid or not candidate:
    return False

  return keyid.lower().endswith(candidate.lower())


def parse_subpacket_header(data):
  """ Parse out subpacket header as per RFC4880 5.2.3.1. Signature Subpacket
  Specification. """
  # NOTE: Although the RFC does not state it explicitly, the length encoded
  # in the header must be greater equal 1, as it includes the mandatory
  # subpacket type octet.
  # Hence, passed bytearrays like [0] or [255, 0, 0, 0, 0], which encode a
  # subpacket length 0  are invalid.
  # The caller has to deal with the resulting IndexError.
  if data[0] < 192:
    length_len = 1
    length = data[0]

  elif data[0] >= 192 and data[0] < 255:
    length_len = 2
    length = ((data[0] - 192 << 8) + (data[1] + 192))

  elif data[0] == 255:
    length_len = 5
    length = struct.unpack(">I", data[1:length_len])[0]

  else: # pragma: no cover (unreachable)
    raise pgpstream.pgp.exceptions.PacketParsingError(
        "Invalid subpacket header")

  return data[length_len], length_len + 1, length - 1, length_len + length


def parse_subpackets(data):
  """
  <Purpose>
    parse the subpackets fields

  <Arguments>
    data: the unparsed subpacketoctets

  <Exceptions>
    IndexErrorif the subpackets octets are incomplete or malformed

  <Side Effects>
    None

  <Returns>
    A list of tuples with like:
        [ (packet_type, data),
          (packet_type, data),
          ...
        ]
  """
  parsed_subpackets = []
  position = 0

  while position < len(data):
    subpacket_type, header_len, _, subpacket_len = \
        parse_subpacket_header(data[position:])

    payload = data[position+header_len:position+subpacket_len]
    parsed_subpackets.append((subpacket_type, payload))

    position += subpacket_len

  return parsed_subpackets


def encode_subpacket(subpacket_type, payload):
  """Encode a signature subpacket, the length includes the type octet. """
  # Subpacket lengths use the new format length encoding, except that the
  # two-octet range ends at 16319
  return encode_length(len(payload) + 1) + bytes([subpacket_type]) + \
      bytes(payload)


def get_hashing_class(hash_algorithm_id):
  """
  <Purpose>
    Return a pyca/cryptography hashing class reference for the passed RFC4880
    hash algorithm ID.

  <Arguments>
    hash_algorithm_id:
            one of SHA1, SHA224, SHA256, SHA384, SHA512 (see
            pgpstream.pgp.constants)

  <Exceptions>
    ValueError
            if the passed hash_algorithm_id is not supported.

  <Returns>
    A pyca/cryptography hashing class

  """
  supported_hashing_algorithms = [pgpstream.pgp.constants.SHA1,
      pgpstream.pgp.constants.SHA224, pgpstream.pgp.constants.SHA256,
      pgpstream.pgp.constants.SHA384, pgpstream.pgp.constants.SHA512]
  corresponding_hashing_classes = [hashing.SHA1, hashing.SHA224,
      hashing.SHA256, hashing.SHA384, hashing.SHA512]

  # Map supported hash algorithm ids to corresponding hashing classes
  hashing_class = dict(zip(supported_hashing_algorithms,
      corresponding_hashing_classes))

  try:
    return hashing_class[hash_algorithm_id]

  except KeyError:
    raise ValueError("Hash algorithm '{}' not supported, must be one of '{}' "
        "(see RFC4880 9.4. Hash Algorithms).".format(hash_algorithm_id,
        supported_hashing_algorithms))


def _make_crc24_table():
  table = []
  for octet in range(256):
    crc = octet << 16
    for _ in range(8):
      crc <<= 1
      if crc & 0x1000000:
        crc ^= CRC24_POLY
    table.append(crc & 0xFFFFFF)

  return table

_CRC24_TABLE = _make_crc24_table()


def crc24(data, crc=CRC24_INIT):
  """Update the passed CRC-24 with `data` as used by ASCII armor checksums
  (see RFC4880 6.1.). """
  for octet in bytearray(data):
    crc = ((crc << 8) & 0xFFFFFF) ^ _CRC24_TABLE[((crc >> 16) ^ octet) & 0xFF]

  return crc
