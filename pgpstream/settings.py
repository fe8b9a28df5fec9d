# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  settings.py

<Started>
  Oct 2, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  A central place to define default settings that can be used throughout the
  package.

  Defaults can be changed here (hardcoded) or programmatically, e.g.
  ```
  import pgpstream.settings
  pgpstream.settings.PARTIAL_BODY_CHUNK_SIZE = 1 << 16
  ```

  Algorithm defaults are not settings, they are part of the
  `pgpstream.policy.AlgorithmPolicy` passed with the producer and consumer
  options.

"""
# The debug setting is used to set the pgpstream base logger to logging.DEBUG
DEBUG = False

# Size of the chunks streamed data packets (literal, compressed, encrypted)
# are split into. RFC4880 4.2.2.4 requires partial body lengths to be powers
# of two and the first partial length to be at least 512 octets.
PARTIAL_BODY_CHUNK_SIZE = 1 << 13

# Number of bytes requested per read from underlying sources
READ_CHUNK_SIZE = 1 << 13

# Characters per base64 line in ASCII armor (RFC4880 6.3. says MUST NOT be
# longer than 76)
ARMOR_LINE_LENGTH = 64

# Optional value of the "Version" armor header, no header is written if None
ARMOR_VERSION_HEADER = None

# Coded iteration count octet for iterated and salted S2K specifiers
# (RFC4880 3.7.1.3.), 0x60 encodes 65536 octets
S2K_ITERATION_COUNT = 0x60

# Maximum depth of nested container packets (encrypted or compressed data)
# accepted when decomposing a message
MAX_PACKET_NESTING_DEPTH = 8
