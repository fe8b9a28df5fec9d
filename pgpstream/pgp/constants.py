# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Module Name>
  constants.py

<Started>
  Oct 3, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  aggregates all the constant definitions and lookup structures for OpenPGP
  packet handling
"""

# See RFC4880 section 4.3. Packet Tags for a list of all packet types
PACKET_TYPE_PKESK = 0x01
PACKET_TYPE_SIGNATURE = 0x02
PACKET_TYPE_SKESK = 0x03
PACKET_TYPE_ONE_PASS_SIGNATURE = 0x04
PACKET_TYPE_PRIMARY_KEY = 0x06
PACKET_TYPE_COMPRESSED = 0x08
PACKET_TYPE_SED = 0x09
PACKET_TYPE_MARKER = 0x0A
PACKET_TYPE_LITERAL = 0x0B
PACKET_TYPE_USER_ID = 0x0D
PACKET_TYPE_SUB_KEY = 0x0E
PACKET_TYPE_SEIPD = 0x12
PACKET_TYPE_MDC = 0x13

PACKET_TYPE_NAMES = {
  PACKET_TYPE_PKESK: "Public-Key Encrypted Session Key",
  PACKET_TYPE_SIGNATURE: "Signature",
  PACKET_TYPE_SKESK: "Symmetric-Key Encrypted Session Key",
  PACKET_TYPE_ONE_PASS_SIGNATURE: "One-Pass Signature",
  PACKET_TYPE_PRIMARY_KEY: "Public-Key",
  PACKET_TYPE_COMPRESSED: "Compressed Data",
  PACKET_TYPE_SED: "Symmetrically Encrypted Data",
  PACKET_TYPE_MARKER: "Marker",
  PACKET_TYPE_LITERAL: "Literal Data",
  PACKET_TYPE_USER_ID: "User ID",
  PACKET_TYPE_SUB_KEY: "Public-Subkey",
  PACKET_TYPE_SEIPD: "Sym. Encrypted Integrity Protected Data",
  PACKET_TYPE_MDC: "Modification Detection Code",
}

# See sections 5.1 (PKESK), 5.2.3 (signature), 5.3 (SKESK), 5.4 (one-pass
# signature), 5.5.2 (public key) and 5.13 (SEIPD) of RFC4880
PKESK_VERSION = 0x03
SKESK_VERSION = 0x04
SIGNATURE_VERSION = 0x04
ONE_PASS_SIGNATURE_VERSION = 0x03
PUBKEY_VERSION = 0x04
SEIPD_VERSION = 0x01
SUPPORTED_SIGNATURE_PACKET_VERSIONS = {0x04}
SUPPORTED_PUBKEY_PACKET_VERSIONS = {0x04}

# See section 9.1 (public-key algorithms) of RFC4880
PUBKEY_ALGORITHM_RSA = 0x01
PUBKEY_ALGORITHM_RSA_ENCRYPT_ONLY = 0x02
PUBKEY_ALGORITHM_RSA_SIGN_ONLY = 0x03
PUBKEY_ALGORITHM_DSA = 0x11

SUPPORTED_PUBKEY_ALGORITHMS = {
  PUBKEY_ALGORITHM_RSA: {
    "type": "rsa",
    "method": "pgp+rsa-pkcsv1.5",
  },
  PUBKEY_ALGORITHM_RSA_ENCRYPT_ONLY: {
    "type": "rsa",
    "method": "pgp+rsa-pkcsv1.5",
  },
  PUBKEY_ALGORITHM_RSA_SIGN_ONLY: {
    "type": "rsa",
    "method": "pgp+rsa-pkcsv1.5",
  },
  PUBKEY_ALGORITHM_DSA: {
    "type": "dsa",
    "method": "pgp+dsa-fips-180-2",
  },
}

PUBKEY_ALGORITHM_BY_TYPE = {
  "rsa": PUBKEY_ALGORITHM_RSA,
  "dsa": PUBKEY_ALGORITHM_DSA,
}

# Key capabilities, a simplified view on RFC4880 5.2.3.21. Key Flags
KEY_FLAG_CERTIFY = "certify"
KEY_FLAG_SIGN = "sign"
KEY_FLAG_ENCRYPT = "encrypt"
ENCRYPTION_CAPABLE_TYPES = {"rsa"}

# The constants for symmetric algorithms are taken from section 9.2 of RFC4880.
NULL = 0x00
AES128 = 0x07
AES192 = 0x08
AES256 = 0x09

SYMMETRIC_KEY_SIZES = {
  AES128: 16,
  AES192: 24,
  AES256: 32,
}
SYMMETRIC_ALGORITHM_NAMES = {
  NULL: "NULL",
  AES128: "AES128",
  AES192: "AES192",
  AES256: "AES256",
}
CIPHER_BLOCK_SIZE = 16

# The constants for compression algorithms are taken from section 9.3 of
# RFC4880.
UNCOMPRESSED = 0x00
ZIP = 0x01
ZLIB = 0x02
BZIP2 = 0x03

COMPRESSION_ALGORITHM_NAMES = {
  UNCOMPRESSED: "UNCOMPRESSED",
  ZIP: "ZIP",
  ZLIB: "ZLIB",
  BZIP2: "BZIP2",
}

# The constants for hash algorithms are taken from section 9.4 of RFC4880.
MD5 = 0x01
SHA1 = 0x02
RIPEMD160 = 0x03
SHA256 = 0x08
SHA384 = 0x09
SHA512 = 0x0A
SHA224 = 0x0B

# Names as used in the "Hash" armor header of cleartext signed messages
# (see RFC4880 7. Cleartext Signature Framework)
HASH_ALGORITHM_NAMES = {
  MD5: "MD5",
  SHA1: "SHA1",
  RIPEMD160: "RIPEMD160",
  SHA256: "SHA256",
  SHA384: "SHA384",
  SHA512: "SHA512",
  SHA224: "SHA224",
}

# See section 5.2.1 of RFC4880
SIGNATURE_TYPE_BINARY = 0x00
SIGNATURE_TYPE_TEXT = 0x01
SUPPORTED_DOCUMENT_SIGNATURE_TYPES = {SIGNATURE_TYPE_BINARY,
    SIGNATURE_TYPE_TEXT}

# See section 5.2.3.1. (Signature Subpacket Specification) of RFC4880 and
# 5.2.3.28. (Issuer Fingerprint) of rfc4880bis-06
SIGNATURE_CREATION_TIME_SUBPACKET = 0x02
PARTIAL_KEYID_SUBPACKET = 0x10
FULL_KEYID_SUBPACKET = 0x21

# See section 3.7.1. (String-to-Key Specifier Types) of RFC4880
S2K_ITERATED_SALTED = 0x03
S2K_SALT_LENGTH = 8

# See section 5.9 (Literal Data Packet) of RFC4880
LITERAL_FORMAT_BINARY = b"b"
LITERAL_FORMAT_TEXT = b"t"
LITERAL_FORMAT_UTF8 = b"u"

STREAM_ENCODINGS = {
  "binary": LITERAL_FORMAT_BINARY,
  "text": LITERAL_FORMAT_TEXT,
  "utf8": LITERAL_FORMAT_UTF8,
}

# See section 5.13. and 5.14. (Modification Detection Code Packet) of RFC4880
MDC_HEADER = b"\xd3\x14"
MDC_LENGTH = 22
