# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  util.py

<Started>
  Oct 5, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Helpers for reading from caller supplied sources.

"""
import pgpstream.settings


class PeekableSource:
  """Buffered reader over a file-like source that supports looking ahead
  without consuming data, which is needed to detect the message format. """

  def __init__(self, source):
    self._source = source
    self._buffer = bytearray()
    self._eof = False

  def _fill(self, size):
    while len(self._buffer) < size and not self._eof:
      chunk = self._source.read(max(size - len(self._buffer),
          pgpstream.settings.READ_CHUNK_SIZE))
      if not chunk:
        self._eof = True
        break
      self._buffer += chunk

  def peek(self, size):
    """Return up to `size` bytes without consuming them. """
    self._fill(size)
    return bytes(self._buffer[:size])

  def read(self, size=-1):
    if size is None or size < 0:
      while not self._eof:
        self._fill(len(self._buffer) + pgpstream.settings.READ_CHUNK_SIZE)
      size = len(self._buffer)

    elif not self._buffer:
      if self._eof:
        return b""
      # Avoid copying large reads through the buffer
      chunk = self._source.read(size)
      if not chunk:
        self._eof = True
      return chunk

    data = bytes(self._buffer[:size])
    del self._buffer[:size]
    return data

  def readline(self):
    """Read up to and including the next b"\\n" or to the end of the source. """
    start = 0
    while True:
      position = self._buffer.find(b"\n", start)
      if position >= 0:
        return self.read(position + 1)

      if self._eof:
        return self.read(len(self._buffer))

      start = len(self._buffer)
      self._fill(len(self._buffer) + pgpstream.settings.READ_CHUNK_SIZE)

  def skip_whitespace(self):
    """Consume leading whitespace and return the number of skipped bytes. """
    skipped = 0
    while True:
      self._fill(1)
      if not self._buffer or self._buffer[:1] not in (b" ", b"\t", b"\r",
          b"\n"):
        return skipped
      del self._buffer[:1]
      skipped += 1
