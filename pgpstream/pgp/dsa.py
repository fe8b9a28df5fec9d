# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Module Name>
  dsa.py

<Started>
  Oct 3, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  DSA-specific handling routines for signature creation, verification and
  key parsing
"""
import binascii

import cryptography.hazmat.primitives.asymmetric.dsa as dsa
import cryptography.hazmat.primitives.asymmetric.utils as dsautils
import cryptography.exceptions

import pgpstream.pgp.util
import pgpstream.pgp.exceptions
import pgpstream.pgp.formats


def create_pubkey(pubkey_info):
  """
  <Purpose>
    Create and return a DSAPublicKey object from the passed pubkey_info
    using pyca/cryptography.

  <Arguments>
    pubkey_info:
            The DSA pubkey info dictionary as specified by
            pgp.formats.DSA_PUBKEY_SCHEMA

  <Exceptions>
    securesystemslib.exceptions.FormatError if
      pubkey_info does not match pgp.formats.DSA_PUBKEY_SCHEMA

  <Returns>
    A cryptography.hazmat.primitives.asymmetric.dsa.DSAPublicKey based on the
    passed pubkey_info.

  """
  pgpstream.pgp.formats.DSA_PUBKEY_SCHEMA.check_match(pubkey_info)

  y = int(pubkey_info['keyval']['public']['y'], 16)
  g = int(pubkey_info['keyval']['public']['g'], 16)
  p = int(pubkey_info['keyval']['public']['p'], 16)
  q = int(pubkey_info['keyval']['public']['q'], 16)
  parameter_numbers = dsa.DSAParameterNumbers(p, q, g)
  pubkey = dsa.DSAPublicNumbers(y, parameter_numbers).public_key()

  return pubkey


def get_pubkey_params(data):
  """
  <Purpose>
    Parse the public-key parameters as multi-precision-integers.

  <Arguments>
    data:
           the RFC4880-encoded public key parameters data buffer as described
           in the fifth paragraph of section 5.5.2.

  <Exceptions>
    pgpstream.pgp.exceptions.PacketParsingError: if the public key parameters
    are malformed

  <Side Effects>
    None.

  <Returns>
    The public key parameters dictionary
  """
  ptr = 0
  params = []
  for _ in range(4):
    value, ptr = pgpstream.pgp.util.read_mpi(data, ptr)
    params.append(binascii.hexlify(value).decode("ascii"))

  prime_p, group_order_q, generator, value_y = params
  return {
    "y": value_y,
    "p": prime_p,
    "g": generator,
    "q": group_order_q,
  }


def encode_pubkey_params(pubkey_params):
  """Encode the passed public key parameters dictionary as the MPIs of a
  public key packet (p, q, g, y). """
  return b"".join(pgpstream.pgp.util.encode_mpi(int(pubkey_params[name], 16))
      for name in ("p", "q", "g", "y"))


def get_pubkey_params_from_key(public_key):
  """Return the public key parameters dictionary of the passed
  pyca/cryptography DSA public key. """
  numbers = public_key.public_numbers()
  params = numbers.parameter_numbers
  return {
    name: binascii.hexlify(value.to_bytes((value.bit_length() + 7) // 8,
        "big")).decode("ascii")
    for name, value in (("y", numbers.y), ("p", params.p), ("q", params.q),
        ("g", params.g))
  }


def get_signature_params(data):
  """
  <Purpose>
    Parse the signature parameters as multi-precision-integers.

  <Arguments>
    data:
           the RFC4880-encoded public key parameters data buffer as described
           in the fourth paragraph of section 5.2.2.

  <Exceptions>
    pgpstream.pgp.exceptions.PacketParsingError: if the public key parameters
    are malformed

  <Side Effects>
    None.

  <Returns>
    The DER encoded signature as expected by pyca/cryptography
  """
  r, ptr = pgpstream.pgp.util.read_mpi(data, 0)
  s, _ = pgpstream.pgp.util.read_mpi(data, ptr)

  return dsautils.encode_dss_signature(int.from_bytes(r, "big"),
      int.from_bytes(s, "big"))


def create_signature(private_key, digest, hash_algorithm_id):
  """Sign the passed RFC4880 digest with the passed DSA private key and return
  the signature MPIs r and s. """
  hasher = pgpstream.pgp.util.get_hashing_class(hash_algorithm_id)
  der_signature = private_key.sign(digest, dsautils.Prehashed(hasher()))
  r, s = dsautils.decode_dss_signature(der_signature)

  return pgpstream.pgp.util.encode_mpi(r) + pgpstream.pgp.util.encode_mpi(s)


def verify_signature(signature, pubkey_info, digest, hash_algorithm_id):
  """
  <Purpose>
    Verify the passed signature against the passed RFC4880 digest with the
    passed DSA public key using pyca/cryptography.

  <Arguments>
    signature:
            The DER encoded signature as returned by get_signature_params

    pubkey_info:
            The DSA public key info dictionary as specified by
            pgp.formats.DSA_PUBKEY_SCHEMA

    digest:
            The digest over the signed content, signature headers and trailer

    hash_algorithm_id:
            The RFC4880 id of the hash algorithm that produced digest

  <Exceptions>
    securesystemslib.exceptions.FormatError if:
      pubkey_info does not match pgp.formats.DSA_PUBKEY_SCHEMA

  <Returns>
    True if signature verification passes and False otherwise

  """
  hasher = pgpstream.pgp.util.get_hashing_class(hash_algorithm_id)
  pubkey_object = create_pubkey(pubkey_info)

  try:
    pubkey_object.verify(
      signature,
      digest,
      dsautils.Prehashed(hasher())
    )
    return True
  except cryptography.exceptions.InvalidSignature:
    return False
