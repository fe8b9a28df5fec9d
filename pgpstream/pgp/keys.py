# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Module Name>
  keys.py

<Started>
  Oct 4, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Provides algorithm-agnostic handling of public key dictionaries
  (certificates) and secret keys as consumed by the message pipelines.

  A certificate is a primary public key dictionary (see
  pgpstream.pgp.formats.PUBKEY_SCHEMA) that may carry subkeys, user ids and
  algorithm preferences. Key generation and key ring management are left to
  the caller, secret keys are pyca/cryptography private key objects bound to
  the creation time that is part of their fingerprint.

"""
import copy
import time
import struct
import logging
import datetime

import attr

import cryptography.hazmat.primitives.asymmetric.rsa as rsa_keys
import cryptography.hazmat.primitives.asymmetric.dsa as dsa_keys

import pgpstream.pgp.util
import pgpstream.pgp.rsa
import pgpstream.pgp.dsa
import pgpstream.pgp.formats
from pgpstream.pgp.exceptions import (PacketVersionNotSupportedError,
    SignatureAlgorithmNotSupportedError)
from pgpstream.pgp.constants import (SUPPORTED_PUBKEY_ALGORITHMS,
    SUPPORTED_PUBKEY_PACKET_VERSIONS, PUBKEY_ALGORITHM_BY_TYPE, PUBKEY_VERSION,
    KEY_FLAG_CERTIFY, KEY_FLAG_SIGN, KEY_FLAG_ENCRYPT,
    ENCRYPTION_CAPABLE_TYPES)

log = logging.getLogger(__name__)

SIGNATURE_HANDLERS = {
  "rsa": pgpstream.pgp.rsa,
  "dsa": pgpstream.pgp.dsa,
}


def get_handler(key_type):
  """Return the module that handles keys of the passed type ("rsa" or
  "dsa"). """
  try:
    return SIGNATURE_HANDLERS[key_type]

  except KeyError:
    raise SignatureAlgorithmNotSupportedError("Key type '{}' not supported, "
        "must be one of {}.".format(key_type, list(SIGNATURE_HANDLERS)))


def _get_key_type(public_key):
  if isinstance(public_key, rsa_keys.RSAPublicKey):
    return "rsa"

  if isinstance(public_key, dsa_keys.DSAPublicKey):
    return "dsa"

  raise SignatureAlgorithmNotSupportedError("Key '{}' not supported, must be "
      "an RSA or DSA key.".format(type(public_key).__name__))


def _to_timestamp(creation_time):
  if isinstance(creation_time, datetime.datetime):
    return int(creation_time.timestamp())

  return int(creation_time)


def build_pubkey_payload(pubkey_info):
  """
  <Purpose>
    Encode the passed public key dictionary as RFC4880 version 4 public key
    packet payload, i.e. the octets a v4 fingerprint is computed over.

  <Arguments>
    pubkey_info:
            A public key dictionary as specified by
            pgpstream.pgp.formats.PUBKEY_SCHEMA (keyid is ignored)

  <Exceptions>
    pgpstream.pgp.exceptions.SignatureAlgorithmNotSupportedError
            If the key type is not supported.

  <Side Effects>
    None.

  <Returns>
    The public key packet payload

  """
  handler = get_handler(pubkey_info["type"])
  return (bytes([PUBKEY_VERSION]) +
      struct.pack(">I", pubkey_info["creation_time"]) +
      bytes([PUBKEY_ALGORITHM_BY_TYPE[pubkey_info["type"]]]) +
      handler.encode_pubkey_params(pubkey_info["keyval"]["public"]))


def create_pubkey_info(public_key, creation_time, flags=None):
  """
  <Purpose>
    Create a public key dictionary for the passed pyca/cryptography public
    key. The keyid is the v4 fingerprint, which depends on the creation time.

  <Arguments>
    public_key:
            An RSAPublicKey or DSAPublicKey

    creation_time:
            The key creation time as UNIX timestamp or datetime

    flags: (optional)
            A list of key capabilities ("certify", "sign", "encrypt"). RSA
            keys default to all of them, DSA keys cannot encrypt.

  <Exceptions>
    pgpstream.pgp.exceptions.SignatureAlgorithmNotSupportedError
            If the public key is neither RSA nor DSA.

    ValueError
            If an encryption flag is requested for a DSA key.

  <Side Effects>
    None.

  <Returns>
    A public key in the format pgpstream.pgp.formats.PUBKEY_SCHEMA

  """
  key_type = _get_key_type(public_key)
  handler = get_handler(key_type)

  if flags is None:
    flags = [KEY_FLAG_CERTIFY, KEY_FLAG_SIGN]
    if key_type in ENCRYPTION_CAPABLE_TYPES:
      flags.append(KEY_FLAG_ENCRYPT)

  if KEY_FLAG_ENCRYPT in flags and key_type not in ENCRYPTION_CAPABLE_TYPES:
    raise ValueError("Keys of type '{}' cannot encrypt.".format(key_type))

  algorithm = SUPPORTED_PUBKEY_ALGORITHMS[PUBKEY_ALGORITHM_BY_TYPE[key_type]]
  pubkey_info = {
    "type": key_type,
    "method": algorithm["method"],
    "hashes": [pgpstream.pgp.formats.GPG_HASH_ALGORITHM_STRING],
    "keyid": "",
    "creation_time": _to_timestamp(creation_time),
    "keyval": {
      "private": "",
      "public": handler.get_pubkey_params_from_key(public_key)
    },
    "flags": list(flags),
  }
  pubkey_info["keyid"] = pgpstream.pgp.util.compute_keyid(
      build_pubkey_payload(pubkey_info))

  return pubkey_info


def parse_pubkey_payload(data):
  """
  <Purpose>
    Parse the passed public-key packet (payload only) and construct a
    public key dictionary.

  <Arguments>
    data:
          An RFC4880 public key packet payload as described in section 5.5.2.
          (version 4) of the RFC.

  <Exceptions>
    ValueError
          If the passed public key data is empty.

    pgpstream.pgp.exceptions.PacketVersionNotSupportedError
          If the packet version does not match
          pgpstream.pgp.constants.SUPPORTED_PUBKEY_PACKET_VERSIONS

    pgpstream.pgp.exceptions.SignatureAlgorithmNotSupportedError
          If the public key algorithm is neither RSA nor DSA

  <Side Effects>
    None.

  <Returns>
    A public key in the format pgpstream.pgp.formats.PUBKEY_SCHEMA

  """
  if not data:
    raise ValueError("Could not parse empty pubkey payload.")

  ptr = 0
  version_number = data[ptr]
  ptr += 1
  if version_number not in SUPPORTED_PUBKEY_PACKET_VERSIONS:
    raise PacketVersionNotSupportedError(
        "Pubkey packet version '{}' not supported, must be one of {}".format(
        version_number, SUPPORTED_PUBKEY_PACKET_VERSIONS))

  creation_time = struct.unpack(">I", data[ptr:ptr + 4])[0]
  ptr += 4

  algorithm = data[ptr]
  ptr += 1

  if algorithm not in SUPPORTED_PUBKEY_ALGORITHMS:
    raise SignatureAlgorithmNotSupportedError("Public key algorithm '{}' not "
        "supported, must be either DSA or RSA (see RFC4880 9.1. Public-Key "
        "Algorithms).".format(algorithm))

  key_type = SUPPORTED_PUBKEY_ALGORITHMS[algorithm]["type"]
  handler = get_handler(key_type)

  return {
    "method": SUPPORTED_PUBKEY_ALGORITHMS[algorithm]["method"],
    "type": key_type,
    "hashes": [pgpstream.pgp.formats.GPG_HASH_ALGORITHM_STRING],
    "keyid": pgpstream.pgp.util.compute_keyid(data),
    "creation_time": creation_time,
    "keyval" : {
      "private": "",
      "public": handler.get_pubkey_params(data[ptr:])
      }
    }


def create_certificate(primary, subkeys=None, user_ids=None,
    preferences=None):
  """
  <Purpose>
    Assemble a certificate from a primary public key dictionary and optional
    subkeys, user ids and algorithm preferences.

  <Arguments>
    primary:
            A public key dictionary (see create_pubkey_info)

    subkeys: (optional)
            A list of public key dictionaries

    user_ids: (optional)
            A list of user id strings, e.g. "Alice <alice@example.org>"

    preferences: (optional)
            A dictionary with optional "symmetric", "compression" and "hash"
            lists of RFC4880 algorithm ids, most preferred first

  <Exceptions>
    securesystemslib.exceptions.FormatError
            If the resulting certificate does not match
            pgpstream.pgp.formats.PUBKEY_SCHEMA

  <Side Effects>
    None.

  <Returns>
    A certificate in the format pgpstream.pgp.formats.PUBKEY_SCHEMA

  """
  certificate = copy.deepcopy(primary)
  certificate.pop("subkeys", None)

  if subkeys:
    certificate["subkeys"] = {
      subkey["keyid"]: copy.deepcopy(subkey) for subkey in subkeys
    }

  if user_ids:
    certificate["userids"] = list(user_ids)

  if preferences:
    certificate["preferences"] = copy.deepcopy(preferences)

  pgpstream.pgp.formats.PUBKEY_SCHEMA.check_match(certificate)
  return certificate


def iter_keys(certificate):
  """Yield the primary key (without subkeys) and all subkeys of the passed
  certificate. """
  primary = dict(certificate)
  primary.pop("subkeys", None)
  yield primary

  for subkey in certificate.get("subkeys", {}).values():
    yield subkey


def find_key(certificate, keyid):
  """
  <Purpose>
    Find the primary key or subkey of the passed certificate, identified by
    full fingerprint or 64 bit key id.

  <Arguments>
    certificate:
            A certificate in the format pgpstream.pgp.formats.PUBKEY_SCHEMA

    keyid:
            A hex fingerprint or 16 hex digit key id

  <Exceptions>
    None.

  <Side Effects>
    None.

  <Returns>
    The matching public key dictionary or None.

  """
  for key in iter_keys(certificate):
    if pgpstream.pgp.util.keyid_matches(key["keyid"], keyid):
      return key

  return None


def _get_flags(key):
  if "flags" in key:
    return key["flags"]

  # Keys without explicit flags may do anything their algorithm allows
  flags = [KEY_FLAG_CERTIFY, KEY_FLAG_SIGN]
  if key["type"] in ENCRYPTION_CAPABLE_TYPES:
    flags.append(KEY_FLAG_ENCRYPT)

  return flags


def get_encryption_keys(certificate):
  """Return all keys of the passed certificate that can encrypt, subkeys
  before the primary key. """
  keys = list(iter_keys(certificate))
  keys = keys[1:] + keys[:1]
  return [key for key in keys if KEY_FLAG_ENCRYPT in _get_flags(key) and
      key["type"] in ENCRYPTION_CAPABLE_TYPES]


def get_signing_keys(certificate):
  """Return all keys of the passed certificate that can sign. """
  return [key for key in iter_keys(certificate)
      if KEY_FLAG_SIGN in _get_flags(key)]


@attr.s(frozen=True)
class SubkeyIdentifier:
  """Identifies a (sub)key together with the primary key of its certificate.

  Attributes:
    primary_keyid: The fingerprint of the certificate's primary key.
    subkey_keyid: The fingerprint of the key that actually signs, encrypts or
        decrypts, equal to primary_keyid if that is the primary key.

  """
  primary_keyid = attr.ib()
  subkey_keyid = attr.ib()

  @property
  def short_keyid(self):
    return pgpstream.pgp.util.get_short_keyid(self.subkey_keyid)

  @classmethod
  def for_key(cls, key, certificate=None):
    """Create an identifier for the passed public key dictionary, which may be
    part of the passed certificate. """
    if certificate is None:
      return cls(key["keyid"], key["keyid"])

    return cls(certificate["keyid"], key["keyid"])


@attr.s
class SecretKey:
  """A pyca/cryptography private key bound to the creation time and flags of
  its public key, which together determine the fingerprint.

  Attributes:
    private_key: An RSAPrivateKey or DSAPrivateKey.
    creation_time: UNIX timestamp or datetime of the key creation, the
        current time if omitted.
    flags: An optional list of capabilities, see create_pubkey_info.

  """
  private_key = attr.ib()
  creation_time = attr.ib(default=None, converter=attr.converters.optional(
      _to_timestamp))
  flags = attr.ib(default=None)
  pubkey = attr.ib(init=False, repr=False)

  def __attrs_post_init__(self):
    if self.creation_time is None:
      self.creation_time = int(time.time())

    self.pubkey = create_pubkey_info(self.private_key.public_key(),
        self.creation_time, self.flags)

  @property
  def keyid(self):
    return self.pubkey["keyid"]

  @property
  def short_keyid(self):
    return pgpstream.pgp.util.get_short_keyid(self.keyid)

  @property
  def key_type(self):
    return self.pubkey["type"]

  @property
  def pubkey_algorithm(self):
    return PUBKEY_ALGORITHM_BY_TYPE[self.key_type]
