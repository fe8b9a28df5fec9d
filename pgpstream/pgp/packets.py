# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Module Name>
  packets.py

<Started>
  Oct 4, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Streaming packet framing. Data packets (literal, compressed and encrypted
  data) can be arbitrarily large and are therefore written with partial body
  lengths and read through a file-like body reader that transparently follows
  partial body length headers (see RFC4880 4.2. Packet Headers).

"""
import struct
import logging

import pgpstream.settings
from pgpstream.pgp.exceptions import PacketParsingError
from pgpstream.pgp.util import encode_length

log = logging.getLogger(__name__)


def flush_stream(stream):
  """Flush the passed stream if it supports flushing. """
  flush = getattr(stream, "flush", None)
  if flush is not None:
    flush()


def read_exact(stream, length):
  """Read exactly `length` bytes from stream or raise PacketParsingError. """
  data = bytearray()
  while len(data) < length:
    chunk = stream.read(length - len(data))
    if not chunk:
      raise PacketParsingError("Unexpected end of data, expected {} more "
          "octets.".format(length - len(data)))
    data += chunk

  return bytes(data)


def _read_new_format_length(stream):
  """Read a new format body length and return a tuple of length and a
  boolean that tells whether it is a partial body length. """
  first = read_exact(stream, 1)[0]
  if first < 192:
    return first, False

  if first <= 223:
    second = read_exact(stream, 1)[0]
    return ((first - 192) << 8) + second + 192, False

  if first < 255:
    return 1 << (first & 0x1F), True

  return struct.unpack(">I", read_exact(stream, 4))[0], False


def read_packet_header(stream):
  """
  <Purpose>
    Read a packet header from the passed stream.

  <Arguments>
    stream:
            A readable file-like object positioned at a packet boundary.

  <Exceptions>
    pgpstream.pgp.exceptions.PacketParsingError
            If the tag octet is invalid or the header is truncated.

  <Side Effects>
    Consumes the header octets from stream.

  <Returns>
    None at the end of the stream, otherwise a tuple of packet type, body
    length and a boolean telling whether the length is a partial body length.
    The body length is None for old format packets of indeterminate length.

  """
  tag = stream.read(1)
  if not tag:
    return None

  tag = tag[0]
  if not tag & 0b10000000:
    raise PacketParsingError("Invalid packet tag octet '{}', bit 7 must be "
        "set (is this an OpenPGP message?).".format(tag))

  if tag & 0b01000000:
    packet_type = tag & 0b00111111
    body_len, partial = _read_new_format_length(stream)
    return packet_type, body_len, partial

  packet_type = (tag & 0b00111100) >> 2
  length_type = tag & 0b00000011
  if length_type == 0:
    body_len = read_exact(stream, 1)[0]

  elif length_type == 1:
    body_len = struct.unpack(">H", read_exact(stream, 2))[0]

  elif length_type == 2:
    body_len = struct.unpack(">I", read_exact(stream, 4))[0]

  else:
    body_len = None

  return packet_type, body_len, False


class PacketBodyReader:
  """File-like reader for the body of a single packet. Reads end at the end
  of the body, following partial body length headers where necessary. """

  def __init__(self, stream, body_len, partial):
    self._stream = stream
    self._remaining = body_len
    self._partial = partial
    self._indeterminate = body_len is None

  def read(self, size=-1):
    result = bytearray()
    while size is None or size < 0 or len(result) < size:
      wanted = pgpstream.settings.READ_CHUNK_SIZE
      if size is not None and size >= 0:
        wanted = size - len(result)

      if self._indeterminate:
        chunk = self._stream.read(wanted)
        if not chunk:
          break
        result += chunk
        continue

      if self._remaining == 0:
        if not self._partial:
          break
        self._remaining, self._partial = _read_new_format_length(self._stream)
        continue

      chunk = self._stream.read(min(wanted, self._remaining))
      if not chunk:
        raise PacketParsingError("Packet body truncated, {} octets "
            "missing.".format(self._remaining))

      result += chunk
      self._remaining -= len(chunk)

    return bytes(result)

  def drain(self):
    """Consume and return the number of the remaining body octets. """
    count = 0
    while True:
      chunk = self.read(pgpstream.settings.READ_CHUNK_SIZE)
      if not chunk:
        return count
      count += len(chunk)


def read_packet(stream):
  """Read a complete packet and return a tuple of packet type and body, or
  None at the end of the stream. Only meant for small packets. """
  header = read_packet_header(stream)
  if header is None:
    return None

  packet_type, body_len, partial = header
  return packet_type, PacketBodyReader(stream, body_len, partial).read()


class PartialBodyWriter:
  """
  <Purpose>
    Write a new format packet of the passed type to sink, streaming the body
    in chunks of partial body length. The last chunk is written with a
    definite length on close.

    Closing the writer does not close the sink.

  """
  def __init__(self, sink, packet_type, chunk_size=None):
    if chunk_size is None:
      chunk_size = pgpstream.settings.PARTIAL_BODY_CHUNK_SIZE

    if chunk_size < 512 or chunk_size & (chunk_size - 1):
      raise ValueError("Partial body chunk size must be a power of two of "
          "at least 512 octets, got '{}'.".format(chunk_size))

    self._sink = sink
    self._chunk_size = chunk_size
    self._partial_length_octet = bytes([224 + chunk_size.bit_length() - 1])
    self._buffer = bytearray()
    self.packet_type = packet_type
    self.closed = False

    self._sink.write(bytes([0b11000000 | packet_type]))

  def write(self, data):
    if self.closed:
      raise ValueError("Write to closed packet of type '{}'.".format(
          self.packet_type))

    self._buffer += data
    # Keep at least one octet for the final definite length chunk
    while len(self._buffer) > self._chunk_size:
      self._sink.write(self._partial_length_octet)
      self._sink.write(bytes(self._buffer[:self._chunk_size]))
      del self._buffer[:self._chunk_size]

    return len(data)

  def flush(self):
    flush_stream(self._sink)

  def close(self):
    if self.closed:
      return

    self._sink.write(encode_length(len(self._buffer)))
    self._sink.write(bytes(self._buffer))
    self._buffer = bytearray()
    self.closed = True
