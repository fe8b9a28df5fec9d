#!/usr/bin/env python

# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  test_util.py

<Started>
  Oct 11, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Test util functions.

"""
import io
import unittest

from pgpstream.util import PeekableSource


class _ChunkedSource:
  """Readable source that returns at most three bytes per read. """
  def __init__(self, data):
    self._stream = io.BytesIO(data)

  def read(self, size=-1):
    if size is None or size < 0 or size > 3:
      size = 3
    return self._stream.read(size)


class TestPeekableSource(unittest.TestCase):
  """Test look-ahead reads over a source. """
  def test_peek_does_not_consume(self):
    source = PeekableSource(io.BytesIO(b"0123456789"))
    self.assertEqual(source.peek(4), b"0123")
    self.assertEqual(source.peek(100), b"0123456789")
    self.assertEqual(source.read(3), b"012")
    self.assertEqual(source.peek(2), b"34")
    self.assertEqual(source.read(), b"3456789")
    self.assertEqual(source.read(), b"")
    self.assertEqual(source.peek(1), b"")

  def test_short_reads(self):
    """Peeks are filled from sources that return less than requested. """
    source = PeekableSource(_ChunkedSource(b"abcdefghij"))
    self.assertEqual(source.peek(8), b"abcdefgh")
    self.assertEqual(source.read(), b"abcdefghij")

  def test_readline(self):
    source = PeekableSource(_ChunkedSource(b"first\r\nsecond\nlast"))
    self.assertEqual(source.readline(), b"first\r\n")
    self.assertEqual(source.readline(), b"second\n")
    self.assertEqual(source.readline(), b"last")
    self.assertEqual(source.readline(), b"")

  def test_skip_whitespace(self):
    source = PeekableSource(io.BytesIO(b" \r\n\t -----BEGIN"))
    self.assertEqual(source.skip_whitespace(), 5)
    self.assertEqual(source.skip_whitespace(), 0)
    self.assertEqual(source.read(5), b"-----")

    source = PeekableSource(io.BytesIO(b"  "))
    self.assertEqual(source.skip_whitespace(), 2)
    self.assertEqual(source.read(), b"")


if __name__ == "__main__":
  unittest.main()
