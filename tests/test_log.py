#!/usr/bin/env python

# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  test_log.py

<Started>
  Oct 2, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Test pgpstream/log.py

"""
import logging
import unittest

import pgpstream.log


class _RecordingHandler(logging.Handler):
  def __init__(self):
    super().__init__()
    self.records = []

  def emit(self, record):
    self.records.append(record)


class TestPgpStreamLogger(unittest.TestCase):
  def test_set_level_verbose_or_quiet(self):
    """Test set level convenience method. """
    logger = pgpstream.log.PgpStreamLogger("test-pgpstream-logger")

    # Default level if verbose and quiet are false
    logger.setLevelVerboseOrQuiet(False, False)
    self.assertEqual(logger.level, logging.NOTSET)

    # INFO if verbose is true
    logger.setLevelVerboseOrQuiet(True, False)
    self.assertEqual(logger.level, logging.INFO)

    # CRITICAL if quiet is true
    logger.setLevelVerboseOrQuiet(False, True)
    self.assertEqual(logger.level, logger.QUIET)

  def test_error_stacktrace(self):
    """Test that error attaches exception info only in DEBUG level. """
    logger = pgpstream.log.PgpStreamLogger("test-pgpstream-logger-error")
    handler = _RecordingHandler()
    logger.addHandler(handler)

    for level, expect_stacktrace in [(logging.DEBUG, True),
        (logging.INFO, False)]:
      logger.setLevel(level)
      try:
        raise ValueError("boom")

      except ValueError:
        logger.error("failed")

      self.assertEqual(bool(handler.records[-1].exc_info), expect_stacktrace)

  def test_base_logger(self):
    """Test that module loggers inherit from the pgpstream base logger. """
    self.assertIsInstance(pgpstream.log.LOGGER,
        pgpstream.log.PgpStreamLogger)
    self.assertIs(logging.getLogger("pgpstream.armor").parent,
        pgpstream.log.LOGGER)


if __name__ == "__main__":
  unittest.main()
