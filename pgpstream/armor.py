# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  armor.py

<Started>
  Oct 5, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  ASCII armor (RFC4880 6.2.) and the cleartext signature framework (RFC4880
  7.).

  `ArmoredWriter` base64 encodes everything written to it between a
  "-----BEGIN PGP <TYPE>-----" header line with optional armor headers and a
  CRC-24 checksum and "-----END PGP <TYPE>-----" footer line. In its
  cleartext sub-mode, text is written dash-escaped below a
  "-----BEGIN PGP SIGNED MESSAGE-----" line, and the armored part that follows
  holds the signatures.

  `ArmorReader` and `CleartextReader` undo both encodings.

"""
import re
import io
import base64
import binascii
import logging

import pgpstream.settings
import pgpstream.util
import pgpstream.pgp.util
import pgpstream.pgp.packets
from pgpstream.exceptions import MalformedMessageError, InvalidStateError

log = logging.getLogger(__name__)

ARMOR_MESSAGE = "MESSAGE"
ARMOR_SIGNATURE = "SIGNATURE"

ARMOR_HEADER_LINE = "-----BEGIN PGP {}-----"
ARMOR_TAIL_LINE = "-----END PGP {}-----"
CLEARTEXT_HEADER_LINE = b"-----BEGIN PGP SIGNED MESSAGE-----"
ARMOR_BEGIN_PREFIX = b"-----BEGIN PGP "
ARMOR_END_PREFIX = b"-----END PGP "

_ARMOR_HEADER_LINE_PATTERN = re.compile(
    r"^-----BEGIN PGP ([A-Z0-9 ,/]+)-----$")


def encode_crc(crc):
  """Return the armor checksum line for the passed CRC-24. """
  return b"=" + base64.b64encode(crc.to_bytes(3, "big"))


class ArmoredWriter:
  """
  <Purpose>
    Writable stream that ASCII armors all data written to it and writes the
    result to sink. The header line is written with the first data, so that
    `begin_cleartext` can still switch into the cleartext sub-mode before.

    Closing the writer writes checksum and footer and flushes, but does not
    close the sink.

  <Arguments>
    sink:
            A writable binary file-like object

    armor_type: (optional)
            The armor type, e.g. ARMOR_MESSAGE (default) or ARMOR_SIGNATURE

    headers: (optional)
            A list of (key, value) armor headers, e.g. ("Comment", "...")

    line_length: (optional)
            Number of base64 characters per line, a multiple of 4.
            Defaults to pgpstream.settings.ARMOR_LINE_LENGTH

  """
  def __init__(self, sink, armor_type=ARMOR_MESSAGE, headers=None,
      line_length=None):
    if line_length is None:
      line_length = pgpstream.settings.ARMOR_LINE_LENGTH

    if line_length <= 0 or line_length % 4 or line_length > 76:
      raise ValueError("Armor line length must be a positive multiple of 4 "
          "of at most 76, got '{}'.".format(line_length))

    self._sink = sink
    self._octets_per_line = line_length // 4 * 3
    self._buffer = bytearray()
    self._crc = pgpstream.pgp.util.CRC24_INIT
    self._header_written = False
    self._cleartext = False
    self._at_line_start = True
    self.armor_type = armor_type
    self.headers = list(headers or [])
    self.closed = False

  def _write_header(self):
    lines = [ARMOR_HEADER_LINE.format(self.armor_type)]
    if pgpstream.settings.ARMOR_VERSION_HEADER:
      lines.append("Version: {}".format(
          pgpstream.settings.ARMOR_VERSION_HEADER))

    for key, value in self.headers:
      lines.append("{}: {}".format(key, value))

    self._sink.write(("\n".join(lines) + "\n\n").encode("utf-8"))
    self._header_written = True

  def begin_cleartext(self, hash_algorithm_names):
    """
    <Purpose>
      Switch into the cleartext sub-mode. Subsequent writes are written as
      dash-escaped text until `end_cleartext` is called.

    <Arguments>
      hash_algorithm_names:
              A list of hash algorithm names for the "Hash" header, e.g.
              ["SHA512"]

    <Exceptions>
      pgpstream.exceptions.InvalidStateError
              If armored data was already written.

    <Side Effects>
      Writes the cleartext header to the sink.

    <Returns>
      None.

    """
    if self._header_written or self._cleartext:
      raise InvalidStateError("Cleartext mode must be entered before any "
          "armored data is written.")

    lines = [CLEARTEXT_HEADER_LINE.decode("ascii")]
    if hash_algorithm_names:
      lines.append("Hash: {}".format(",".join(hash_algorithm_names)))

    self._sink.write(("\n".join(lines) + "\n\n").encode("ascii"))
    self._cleartext = True
    self._at_line_start = True
    log.debug("Entered cleartext signature framework")

  def end_cleartext(self):
    """Leave the cleartext sub-mode, subsequent writes are armored as
    "PGP SIGNATURE" block. """
    if not self._cleartext:
      raise InvalidStateError("Not in cleartext mode.")

    self._cleartext = False
    self.armor_type = ARMOR_SIGNATURE

  def _write_cleartext(self, data):
    for line in bytes(data).splitlines(True):
      # Dash-escape lines starting with a dash (see RFC4880 7.1.)
      if self._at_line_start and line.startswith(b"-"):
        self._sink.write(b"- ")
      self._sink.write(line)
      self._at_line_start = line.endswith((b"\n", b"\r"))

  def write(self, data):
    if self.closed:
      raise ValueError("Write to closed armored stream.")

    if self._cleartext:
      self._write_cleartext(data)
      return len(data)

    if not self._header_written:
      self._write_header()

    self._crc = pgpstream.pgp.util.crc24(data, self._crc)
    self._buffer += data
    full_lines = len(self._buffer) // self._octets_per_line
    if full_lines:
      end = full_lines * self._octets_per_line
      encoded = base64.b64encode(bytes(self._buffer[:end]))
      line_length = self._octets_per_line // 3 * 4
      self._sink.write(b"".join(
          encoded[i:i + line_length] + b"\n"
          for i in range(0, len(encoded), line_length)))
      del self._buffer[:end]

    return len(data)

  def flush(self):
    pgpstream.pgp.packets.flush_stream(self._sink)

  def close(self):
    if self.closed:
      return

    if self._cleartext:
      self.end_cleartext()

    if not self._header_written:
      self._write_header()

    if self._buffer:
      self._sink.write(base64.b64encode(bytes(self._buffer)) + b"\n")
      self._buffer = bytearray()

    self._sink.write(encode_crc(self._crc) + b"\n")
    self._sink.write(ARMOR_TAIL_LINE.format(self.armor_type).encode("ascii") +
        b"\n")
    self.flush()
    self.closed = True
    log.debug("Closed armor of type '{}'".format(self.armor_type))


def _strip_line(line):
  return line.rstrip(b"\r\n").rstrip(b" \t")


class ArmorReader:
  """
  <Purpose>
    Readable stream that decodes an ASCII armored block from the passed
    pgpstream.util.PeekableSource. The checksum, if present, is verified when
    the end of the block is reached.

  <Exceptions>
    pgpstream.exceptions.MalformedMessageError
            If the armor header line is missing, the base64 data is invalid,
            the checksum does not match or the footer line is missing.

  """
  def __init__(self, source):
    self._source = source
    self._buffer = bytearray()
    self._crc = pgpstream.pgp.util.CRC24_INIT
    self._expected_crc = None
    self._done = False
    self.headers = []

    source.skip_whitespace()
    line = _strip_line(source.readline()).decode("ascii", "replace")
    match = _ARMOR_HEADER_LINE_PATTERN.match(line)
    if not match:
      raise MalformedMessageError("Expected armor header line, got "
          "'{}'.".format(line[:64]))

    self.armor_type = match.group(1)
    self._read_headers()

  def _read_headers(self):
    while True:
      line = self._source.peek(256)
      end = line.find(b"\n")
      if end >= 0:
        line = line[:end]

      stripped = _strip_line(line)
      if not stripped:
        self._source.readline()
        return

      # Tolerate a missing blank line after the header line
      key, separator, value = stripped.partition(b": ")
      if not separator or b" " in key:
        return

      self._source.readline()
      self.headers.append((key.decode("utf-8", "replace"),
          value.decode("utf-8", "replace")))

  def _read_line(self):
    line = self._source.readline()
    if not line:
      raise MalformedMessageError("Armored data ends without footer line "
          "'{}'.".format(ARMOR_TAIL_LINE.format(self.armor_type)))

    line = _strip_line(line).lstrip(b" \t")
    if not line:
      return

    if line.startswith(ARMOR_END_PREFIX):
      self._finish()
      return

    if line.startswith(b"=") and len(line) == 5:
      try:
        self._expected_crc = int.from_bytes(base64.b64decode(line[1:]),
            "big")
      except binascii.Error as e:
        raise MalformedMessageError("Invalid armor checksum line.") from e
      return

    try:
      data = base64.b64decode(line, validate=True)
    except binascii.Error as e:
      raise MalformedMessageError("Invalid base64 line in armored "
          "data.") from e

    self._crc = pgpstream.pgp.util.crc24(data, self._crc)
    self._buffer += data

  def _finish(self):
    self._done = True
    if self._expected_crc is None:
      log.info("Armored data has no checksum.")

    elif self._expected_crc != self._crc:
      raise MalformedMessageError("Armor checksum mismatch, expected "
          "'{:06x}', got '{:06x}'.".format(self._expected_crc, self._crc))

  def read(self, size=-1):
    while not self._done and (size is None or size < 0 or
        len(self._buffer) < size):
      self._read_line()

    if size is None or size < 0:
      size = len(self._buffer)

    data = bytes(self._buffer[:size])
    del self._buffer[:size]
    return data


class CleartextReader:
  """
  <Purpose>
    Readable stream over the signed text of a message using the cleartext
    signature framework. The text is returned dash-unescaped, without
    trailing whitespace, with <CR><LF> line endings and without the line
    ending before the signature block, i.e. exactly as it is signed.

    After the text is exhausted the source is positioned at the armored
    signature block, see `read_signature_block`.

  """
  def __init__(self, source):
    self._source = source
    self._buffer = bytearray()
    self._pending_line = None
    self._done = False
    self.hash_algorithm_names = []
    self.headers = []

    source.skip_whitespace()
    line = _strip_line(source.readline())
    if line != CLEARTEXT_HEADER_LINE:
      raise MalformedMessageError("Expected cleartext header line.")

    while True:
      line = source.readline()
      if not line:
        raise MalformedMessageError("Cleartext header ends unexpectedly.")

      line = _strip_line(line).decode("utf-8", "replace")
      if not line:
        break

      key, _, value = line.partition(": ")
      self.headers.append((key, value))
      if key == "Hash":
        self.hash_algorithm_names += [name.strip() for name in
            value.split(",") if name.strip()]

  def _read_line(self):
    if self._source.peek(len(ARMOR_BEGIN_PREFIX)) == ARMOR_BEGIN_PREFIX:
      # The line ending of the last text line is not part of the signed text
      if self._pending_line is not None:
        self._buffer += self._pending_line
      self._done = True
      return

    line = self._source.readline()
    if not line:
      raise MalformedMessageError("Cleartext signed message ends without "
          "signature block.")

    line = _strip_line(line)
    if line.startswith(b"- "):
      line = line[2:]

    if self._pending_line is not None:
      self._buffer += self._pending_line + b"\r\n"
    self._pending_line = line

  def read(self, size=-1):
    while not self._done and (size is None or size < 0 or
        len(self._buffer) < size):
      self._read_line()

    if size is None or size < 0:
      size = len(self._buffer)

    data = bytes(self._buffer[:size])
    del self._buffer[:size]
    return data

  def read_signature_block(self):
    """Return an ArmorReader over the signature block following the text. """
    if not self._done:
      raise InvalidStateError("Signed text must be read before the "
          "signature block.")

    return ArmorReader(self._source)


def is_armored(data):
  """Tell whether the passed leading bytes of a message look like ASCII
  armor. """
  return data.lstrip().startswith(ARMOR_BEGIN_PREFIX)


def is_cleartext_signed(data):
  """Tell whether the passed leading bytes of a message look like a
  cleartext signed message. """
  return data.lstrip().startswith(CLEARTEXT_HEADER_LINE)


def armor(data, armor_type=ARMOR_MESSAGE, headers=None):
  """Return the passed binary data as ASCII armored block (str). """
  output = io.BytesIO()
  writer = ArmoredWriter(output, armor_type=armor_type, headers=headers)
  writer.write(data)
  writer.close()
  return output.getvalue().decode("utf-8")


def dearmor(data):
  """
  <Purpose>
    Decode the first ASCII armored block of the passed data.

  <Arguments>
    data:
            The armored data as str or bytes

  <Exceptions>
    pgpstream.exceptions.MalformedMessageError
            If the data is not a valid armored block.

  <Side Effects>
    None.

  <Returns>
    The decoded binary data

  """
  if isinstance(data, str):
    data = data.encode("utf-8")

  reader = ArmorReader(pgpstream.util.PeekableSource(io.BytesIO(data)))
  return reader.read()
