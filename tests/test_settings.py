#!/usr/bin/env python

# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  test_settings.py

<Started>
  Oct 2, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Test pgpstream/settings.py

"""
import unittest
import pgpstream.settings


class TestSettings(unittest.TestCase):
  def test_debug_not_true(self):
    """pgpstream.settings.DEBUG should not be commited with True. """
    self.assertFalse(pgpstream.settings.DEBUG)

  def test_partial_body_chunk_size(self):
    """The chunk size must be a valid partial body length. """
    chunk_size = pgpstream.settings.PARTIAL_BODY_CHUNK_SIZE
    self.assertGreaterEqual(chunk_size, 512)
    self.assertEqual(chunk_size & (chunk_size - 1), 0)

  def test_armor_line_length(self):
    line_length = pgpstream.settings.ARMOR_LINE_LENGTH
    self.assertLessEqual(line_length, 76)
    self.assertEqual(line_length % 4, 0)

if __name__ == "__main__":
  unittest.main()
