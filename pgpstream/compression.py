# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  compression.py

<Started>
  Oct 6, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Compressed data packets (RFC4880 5.6.). ZIP is raw deflate (RFC1951), ZLIB
  is deflate with zlib framing (RFC1950) and BZip2 is the bzip2 format.

"""
import bz2
import zlib
import logging

import pgpstream.settings
import pgpstream.pgp.packets
from pgpstream.pgp.exceptions import PacketParsingError
from pgpstream.pgp.constants import (PACKET_TYPE_COMPRESSED, UNCOMPRESSED,
    ZIP, ZLIB, BZIP2, COMPRESSION_ALGORITHM_NAMES)

log = logging.getLogger(__name__)

# zlib window bits, negative for raw deflate
_WBITS = {
  ZIP: -15,
  ZLIB: 15,
}


def _create_compressor(algorithm):
  if algorithm in _WBITS:
    return zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED,
        _WBITS[algorithm])

  if algorithm == BZIP2:
    return bz2.BZ2Compressor()

  raise ValueError("Compression algorithm '{}' not supported, must be one of "
      "{} (see RFC4880 9.3. Compression Algorithms).".format(algorithm,
      sorted(COMPRESSION_ALGORITHM_NAMES)))


class CompressedDataWriter:
  """Writable stream that compresses everything written to it into a
  compressed data packet streamed to sink. Closing the writer does not close
  the sink. """

  def __init__(self, sink, algorithm):
    self._compressor = _create_compressor(algorithm)
    self.algorithm = algorithm
    self._packet = pgpstream.pgp.packets.PartialBodyWriter(sink,
        PACKET_TYPE_COMPRESSED)
    self._packet.write(bytes([algorithm]))
    log.debug("Opened compressed data packet ({})".format(
        COMPRESSION_ALGORITHM_NAMES[algorithm]))

  @property
  def closed(self):
    return self._packet.closed

  def write(self, data):
    if self.closed:
      raise ValueError("Write to closed compressed data packet.")

    compressed = self._compressor.compress(bytes(data))
    if compressed:
      self._packet.write(compressed)

    return len(data)

  def flush(self):
    self._packet.flush()

  def close(self):
    if self.closed:
      return

    self._packet.write(self._compressor.flush())
    self._packet.close()


class DecompressingReader:
  """
  <Purpose>
    Readable stream over the decompressed content of a compressed data packet
    body (the algorithm octet already consumed). Output is produced in chunks
    of at most pgpstream.settings.READ_CHUNK_SIZE per step, so that highly
    compressed input is never inflated at once.

  <Exceptions>
    pgpstream.pgp.exceptions.PacketParsingError
            If the algorithm is not supported or the compressed data is
            corrupt or truncated.

  """
  def __init__(self, body, algorithm):
    if algorithm not in COMPRESSION_ALGORITHM_NAMES:
      raise PacketParsingError("Compression algorithm '{}' not supported, "
          "must be one of {}.".format(algorithm,
          sorted(COMPRESSION_ALGORITHM_NAMES)))

    self._body = body
    self._buffer = bytearray()
    self._eof = False
    self.algorithm = algorithm
    self._decompressor = None
    if algorithm in _WBITS:
      self._decompressor = zlib.decompressobj(_WBITS[algorithm])

    elif algorithm == BZIP2:
      self._decompressor = bz2.BZ2Decompressor()

  def _fill(self):
    chunk_size = pgpstream.settings.READ_CHUNK_SIZE
    if self.algorithm == UNCOMPRESSED:
      data = self._body.read(chunk_size)
      if not data:
        self._eof = True
      self._buffer += data
      return

    try:
      if self.algorithm in _WBITS:
        self._fill_zlib(chunk_size)
      else:
        self._fill_bz2(chunk_size)

    except (zlib.error, OSError, EOFError) as e:
      raise PacketParsingError("Corrupt compressed data: {}".format(e)) from e

  def _fill_zlib(self, chunk_size):
    data = self._decompressor.unconsumed_tail
    if not data:
      if self._decompressor.eof:
        self._eof = True
        return

      data = self._body.read(chunk_size)
      if not data:
        # Some implementations omit the final deflate block marker
        self._buffer += self._decompressor.flush()
        self._eof = True
        return

    self._buffer += self._decompressor.decompress(data, chunk_size)

  def _fill_bz2(self, chunk_size):
    if self._decompressor.eof:
      self._eof = True
      return

    data = b""
    if self._decompressor.needs_input:
      data = self._body.read(chunk_size)
      if not data:
        raise PacketParsingError("Compressed data is truncated.")

    self._buffer += self._decompressor.decompress(data, chunk_size)

  def read(self, size=-1):
    while not self._eof and (size is None or size < 0 or
        len(self._buffer) < size):
      self._fill()

    if size is None or size < 0:
      size = len(self._buffer)

    data = bytes(self._buffer[:size])
    del self._buffer[:size]
    return data
