# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  crlf.py

<Started>
  Oct 5, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Line-ending normalization. Text signatures (RFC4880 5.2.1. signature type
  0x01) and the cleartext signature framework are computed over text with
  canonical <CR><LF> line endings. The canonicalizer converts <CR>, <LF> and
  <CR><LF> line endings incrementally, i.e. a <CR><LF> pair may be split
  across two updates.

"""
import re
import logging

import pgpstream.pgp.packets

log = logging.getLogger(__name__)

_TRAILING_WHITESPACE = re.compile(b"[ \t]+\r\n")
_WHITESPACE = b" \t"


class CRLFCanonicalizer:
  """
  <Purpose>
    Incrementally convert line endings of a byte stream to <CR><LF>.

    If strip_trailing_whitespace is True, spaces and tabs at the end of every
    line are removed, as required for cleartext signed text (RFC4880 7.1.).
    Trailing whitespace of the last chunk is held back until the next update
    tells whether a line break follows.

  """
  def __init__(self, strip_trailing_whitespace=False):
    self.strip_trailing_whitespace = strip_trailing_whitespace
    self._pending_cr = False
    self._pending_whitespace = b""

  def update(self, data):
    data = bytes(data)
    if self._pending_cr and data.startswith(b"\n"):
      data = data[1:]
      self._pending_cr = False

    if not data:
      return b""

    self._pending_cr = data.endswith(b"\r")
    data = data.replace(b"\r\n", b"\n").replace(b"\r", b"\n").replace(
        b"\n", b"\r\n")

    if not self.strip_trailing_whitespace:
      return data

    data = _TRAILING_WHITESPACE.sub(b"\r\n", self._pending_whitespace + data)
    stripped = data.rstrip(_WHITESPACE)
    self._pending_whitespace = data[len(stripped):]
    return stripped

  def finish(self):
    """Return the remaining output. Whitespace at the very end of the text is
    dropped if trailing whitespace is stripped. """
    self._pending_cr = False
    pending = self._pending_whitespace
    self._pending_whitespace = b""
    if self.strip_trailing_whitespace:
      return b""

    return pending


def canonicalize(data, strip_trailing_whitespace=False):
  """Return the passed text with canonical line endings. """
  canonicalizer = CRLFCanonicalizer(strip_trailing_whitespace)
  return canonicalizer.update(data) + canonicalizer.finish()


class CRLFGeneratorStream:
  """Writable stream that canonicalizes line endings before passing data on
  to the wrapped sink. Closing the stream flushes held back data but does not
  close the sink. """

  def __init__(self, sink, strip_trailing_whitespace=False):
    self._sink = sink
    self._canonicalizer = CRLFCanonicalizer(strip_trailing_whitespace)
    self.closed = False

  def write(self, data):
    if self.closed:
      raise ValueError("Write to closed line-ending normalizer.")

    output = self._canonicalizer.update(data)
    if output:
      self._sink.write(output)

    return len(data)

  def flush(self):
    pgpstream.pgp.packets.flush_stream(self._sink)

  def close(self):
    if self.closed:
      return

    output = self._canonicalizer.finish()
    if output:
      self._sink.write(output)

    log.debug("Closed line-ending normalizer")
    self.closed = True
