#!/usr/bin/env python

# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  test_crlf.py

<Started>
  Oct 10, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Test line-ending canonicalization in pgpstream/crlf.py.

"""
import io
import unittest

from pgpstream.crlf import (CRLFCanonicalizer, CRLFGeneratorStream,
    canonicalize)


class TestCanonicalize(unittest.TestCase):
  def test_line_endings(self):
    test_data = [
      (b"", b""),
      (b"no line break", b"no line break"),
      (b"unix\nlines\n", b"unix\r\nlines\r\n"),
      (b"dos\r\nlines\r\n", b"dos\r\nlines\r\n"),
      (b"mac\rlines\r", b"mac\r\nlines\r\n"),
      (b"mixed\r\n\n\r", b"mixed\r\n\r\n\r\n"),
    ]
    for data, expected in test_data:
      self.assertEqual(canonicalize(data), expected)

  def test_strip_trailing_whitespace(self):
    self.assertEqual(canonicalize(b"a \t\nb  \r\nc \t", True),
        b"a\r\nb\r\nc")
    # Leading and inner whitespace is kept
    self.assertEqual(canonicalize(b"  a  b\n", True), b"  a  b\r\n")
    # Without stripping whitespace is kept
    self.assertEqual(canonicalize(b"a \n", False), b"a \r\n")

  def test_split_chunks(self):
    """Test that results do not depend on how the input is chunked. """
    data = b"line one  \r\nline two\r\rline three \t\n"
    for strip in [False, True]:
      expected = canonicalize(data, strip)
      for chunk_size in [1, 2, 3, 5]:
        canonicalizer = CRLFCanonicalizer(strip)
        output = b""
        for i in range(0, len(data), chunk_size):
          output += canonicalizer.update(data[i:i + chunk_size])
        output += canonicalizer.finish()
        self.assertEqual(output, expected)

  def test_cr_lf_split(self):
    """Test a <CR><LF> split across chunks followed by another <LF>. """
    canonicalizer = CRLFCanonicalizer()
    output = canonicalizer.update(b"a\r")
    output += canonicalizer.update(b"\n")
    output += canonicalizer.update(b"\n")
    output += canonicalizer.finish()
    self.assertEqual(output, b"a\r\n\r\n")


class TestCRLFGeneratorStream(unittest.TestCase):
  def test_stream(self):
    output = io.BytesIO()
    stream = CRLFGeneratorStream(output, strip_trailing_whitespace=True)
    self.assertEqual(stream.write(b"hello \n"), 7)
    stream.write(b"world  ")
    stream.flush()
    stream.close()
    stream.close()
    self.assertEqual(output.getvalue(), b"hello\r\nworld")
    self.assertFalse(output.closed)

    with self.assertRaises(ValueError):
      stream.write(b"more")


if __name__ == "__main__":
  unittest.main()
