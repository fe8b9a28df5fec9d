# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Module Name>
  rsa.py

<Started>
  Oct 3, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  RSA-specific handling routines for signature creation and verification,
  session key encryption and key parsing
"""
import binascii

import cryptography.hazmat.primitives.asymmetric.rsa as rsa
import cryptography.hazmat.primitives.asymmetric.padding as padding
import cryptography.hazmat.primitives.asymmetric.utils as utils
import cryptography.exceptions

import pgpstream.pgp.util
import pgpstream.pgp.exceptions
import pgpstream.pgp.formats


def create_pubkey(pubkey_info):
  """
  <Purpose>
    Create and return an RSAPublicKey object from the passed pubkey_info
    using pyca/cryptography.

  <Arguments>
    pubkey_info:
            The RSA pubkey info dictionary as specified by
            pgp.formats.RSA_PUBKEY_SCHEMA

  <Exceptions>
    securesystemslib.exceptions.FormatError if
      pubkey_info does not match pgp.formats.RSA_PUBKEY_SCHEMA

  <Returns>
    A cryptography.hazmat.primitives.asymmetric.rsa.RSAPublicKey based on the
    passed pubkey_info.

  """
  pgpstream.pgp.formats.RSA_PUBKEY_SCHEMA.check_match(pubkey_info)

  e = int(pubkey_info['keyval']['public']['e'], 16)
  n = int(pubkey_info['keyval']['public']['n'], 16)
  pubkey = rsa.RSAPublicNumbers(e, n).public_key()

  return pubkey


def get_pubkey_params(data):
  """
  <Purpose>
    Parse the public key parameters as multi-precision-integers.

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

  modulus_length = pgpstream.pgp.util.get_mpi_length(data[ptr: ptr + 2])
  ptr += 2
  modulus = data[ptr:ptr + modulus_length]
  if len(modulus) != modulus_length: # pragma: no cover
    raise pgpstream.pgp.exceptions.PacketParsingError(
        "This modulus MPI was truncated!")
  ptr += modulus_length

  exponent_e_length = pgpstream.pgp.util.get_mpi_length(data[ptr: ptr + 2])
  ptr += 2
  exponent_e = data[ptr:ptr + exponent_e_length]
  if len(exponent_e) != exponent_e_length: # pragma: no cover
    raise pgpstream.pgp.exceptions.PacketParsingError(
        "This e MPI has been truncated!")

  return {
    "e": binascii.hexlify(exponent_e).decode('ascii'),
    "n": binascii.hexlify(modulus).decode("ascii"),
  }


def encode_pubkey_params(pubkey_params):
  """Encode the passed public key parameters dictionary as the MPIs of a
  public key packet (modulus n followed by exponent e). """
  return (pgpstream.pgp.util.encode_mpi(int(pubkey_params["n"], 16)) +
      pgpstream.pgp.util.encode_mpi(int(pubkey_params["e"], 16)))


def get_pubkey_params_from_key(public_key):
  """Return the public key parameters dictionary of the passed
  pyca/cryptography RSA public key. """
  numbers = public_key.public_numbers()
  return {
    "e": _int_to_hex(numbers.e),
    "n": _int_to_hex(numbers.n),
  }


def _int_to_hex(value):
  return binascii.hexlify(
      value.to_bytes((value.bit_length() + 7) // 8, "big")).decode("ascii")


def get_signature_params(data):
  """
  <Purpose>
    Parse the signature parameters as multi-precision-integers.

  <Arguments>
    data:
           the RFC4880-encoded public key parameters data buffer as described
           in the third paragraph of section 5.2.2.

  <Exceptions>
    pgpstream.pgp.exceptions.PacketParsingError: if the public key parameters
    are malformed

  <Side Effects>
    None.

  <Returns>
    The decoded signature buffer
  """

  ptr = 0
  signature_length = pgpstream.pgp.util.get_mpi_length(data[ptr:ptr+2])
  ptr += 2
  signature = data[ptr:ptr + signature_length]
  if len(signature) != signature_length: # pragma: no cover
    raise pgpstream.pgp.exceptions.PacketParsingError(
        "This signature was truncated!")

  return bytes(signature)


def create_signature(private_key, digest, hash_algorithm_id):
  """
  <Purpose>
    Sign the passed RFC4880 digest with the passed RSA private key using
    PKCS#1 v1.5 and return the signature MPI, ready to be appended to a
    signature packet.

  <Arguments>
    private_key:
            A pyca/cryptography RSAPrivateKey

    digest:
            The digest computed by pgpstream.pgp.util.finalize_digest

    hash_algorithm_id:
            The RFC4880 id of the hash algorithm that produced digest

  <Exceptions>
    ValueError:
      if the passed hash_algorithm_id is not supported (see
      pgpstream.pgp.util.get_hashing_class)

  <Returns>
    The MPI encoded signature

  """
  hasher = pgpstream.pgp.util.get_hashing_class(hash_algorithm_id)
  signature = private_key.sign(digest, padding.PKCS1v15(),
      utils.Prehashed(hasher()))

  return pgpstream.pgp.util.encode_mpi(signature)


def verify_signature(signature, pubkey_info, digest, hash_algorithm_id):
  """
  <Purpose>
    Verify the passed signature against the passed RFC4880 digest with the
    passed RSA public key using pyca/cryptography.

  <Arguments>
    signature:
            The raw signature value as returned by get_signature_params

    pubkey_info:
            The RSA public key info dictionary as specified by
            pgp.formats.RSA_PUBKEY_SCHEMA

    digest:
            The digest over the signed content, signature headers and trailer

    hash_algorithm_id:
            one of SHA1, SHA224, SHA256, SHA384, SHA512 (see
            pgpstream.pgp.constants) used to create the digest

  <Exceptions>
    securesystemslib.exceptions.FormatError if:
      pubkey_info does not match pgp.formats.RSA_PUBKEY_SCHEMA

    ValueError:
      if the passed hash_algorithm_id is not supported (see
      pgpstream.pgp.util.get_hashing_class)

  <Returns>
    True if signature verification passes and False otherwise

  """
  hasher = pgpstream.pgp.util.get_hashing_class(hash_algorithm_id)

  pubkey_object = create_pubkey(pubkey_info)

  # zero-pad the signature due to a discrepancy between the openssl backend
  # and the interpretation of PKCSv1.5 in OpenPGP, where MPIs are stripped of
  # leading zero octets
  key_length = (pubkey_object.key_size + 7) // 8
  if len(signature) < key_length:
    signature = b"\x00" * (key_length - len(signature)) + signature

  try:
    pubkey_object.verify(
      signature,
      digest,
      padding.PKCS1v15(),
      utils.Prehashed(hasher())
    )
    return True
  except cryptography.exceptions.InvalidSignature:
    return False


def encrypt_session_key(pubkey_info, data):
  """Encrypt the passed session key material (algorithm octet, key and
  checksum) to the passed RSA public key and return the MPI for a public-key
  encrypted session key packet (see RFC4880 5.1.). """
  pubkey_object = create_pubkey(pubkey_info)
  encrypted = pubkey_object.encrypt(data, padding.PKCS1v15())
  return pgpstream.pgp.util.encode_mpi(encrypted)


def decrypt_session_key(private_key, data):
  """
  <Purpose>
    Decrypt the session key material contained in the MPI(s) of a public-key
    encrypted session key packet.

  <Arguments>
    private_key:
            A pyca/cryptography RSAPrivateKey

    data:
            The algorithm specific fields of the PKESK packet

  <Exceptions>
    pgpstream.pgp.exceptions.PacketParsingError if the MPI is truncated

    ValueError if decryption fails

  <Returns>
    The decrypted session key material

  """
  encrypted, _ = pgpstream.pgp.util.read_mpi(data, 0)
  key_length = (private_key.key_size + 7) // 8
  if len(encrypted) < key_length:
    encrypted = b"\x00" * (key_length - len(encrypted)) + encrypted

  return private_key.decrypt(encrypted, padding.PKCS1v15())
