# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  literal.py

<Started>
  Oct 6, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Literal data packets (RFC4880 5.9.) frame the payload of a message with a
  format octet, a file name and a modification time.

"""
import struct
import logging
import datetime

import dateutil.tz

import pgpstream.pgp.packets
from pgpstream.pgp.exceptions import PacketParsingError
from pgpstream.pgp.constants import (PACKET_TYPE_LITERAL, STREAM_ENCODINGS,
    LITERAL_FORMAT_BINARY)

log = logging.getLogger(__name__)

_FORMAT_NAMES = {value: name for name, value in STREAM_ENCODINGS.items()}


def to_timestamp(modification_date):
  """Return the literal data modification time for the passed datetime,
  0 means unknown. """
  if modification_date is None:
    return 0

  return int(modification_date.timestamp())


def from_timestamp(timestamp):
  if not timestamp:
    return None

  return datetime.datetime.fromtimestamp(timestamp, dateutil.tz.UTC)


def encode_literal_header(literal_format, file_name, modification_date):
  """Return the literal data packet body fields preceding the data. """
  name = (file_name or "").encode("utf-8")[:255]
  return (literal_format + bytes([len(name)]) + name +
      struct.pack(">I", to_timestamp(modification_date)))


class LiteralDataWriter:
  """
  <Purpose>
    Writable stream wrapping everything written to it in a literal data
    packet that is streamed with partial body lengths to sink.

  <Arguments>
    sink:
            A writable binary file-like object

    encoding: (optional)
            "binary" (default), "text" or "utf8"

    file_name: (optional)
            The original file name, "" if unknown

    modification_date: (optional)
            A timezone aware datetime or None if unknown

  <Exceptions>
    ValueError
            If the encoding is not supported.

  """
  def __init__(self, sink, encoding="binary", file_name="",
      modification_date=None):
    if encoding not in STREAM_ENCODINGS:
      raise ValueError("Literal data encoding '{}' not supported, must be one "
          "of {}.".format(encoding, sorted(STREAM_ENCODINGS)))

    self._packet = pgpstream.pgp.packets.PartialBodyWriter(sink,
        PACKET_TYPE_LITERAL)
    self._packet.write(encode_literal_header(STREAM_ENCODINGS[encoding],
        file_name, modification_date))
    log.debug("Opened literal data packet (encoding '{}', file name "
        "'{}')".format(encoding, file_name))

  @property
  def closed(self):
    return self._packet.closed

  def write(self, data):
    return self._packet.write(data)

  def flush(self):
    self._packet.flush()

  def close(self):
    self._packet.close()


def parse_literal_header(body):
  """
  <Purpose>
    Read the fields preceding the data from a literal data packet body.

  <Arguments>
    body:
            A readable literal data packet body, e.g. a
            pgpstream.pgp.packets.PacketBodyReader

  <Exceptions>
    pgpstream.pgp.exceptions.PacketParsingError
            If the fields are truncated.

  <Side Effects>
    Consumes the fields from body, which is positioned at the data.

  <Returns>
    A tuple of encoding name, file name and modification date (datetime or
    None).

  """
  literal_format = pgpstream.pgp.packets.read_exact(body, 1)
  name_length = pgpstream.pgp.packets.read_exact(body, 1)[0]
  name = pgpstream.pgp.packets.read_exact(body, name_length)
  timestamp = struct.unpack(">I", pgpstream.pgp.packets.read_exact(body, 4))[0]

  encoding = _FORMAT_NAMES.get(literal_format)
  if encoding is None:
    log.info("Unknown literal data format '{}', treating data as "
        "binary.".format(literal_format))
    encoding = _FORMAT_NAMES[LITERAL_FORMAT_BINARY]

  try:
    file_name = name.decode("utf-8")
  except UnicodeDecodeError as e:
    raise PacketParsingError("Literal data file name is not valid "
        "UTF-8.") from e

  return encoding, file_name, from_timestamp(timestamp)
