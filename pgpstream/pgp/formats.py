# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  formats.py

<Started>
  Oct 3, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Format schemas for certificates (public key dictionaries) based on
  securesystemslib.schema.

  The schemas can be verified using the following methods inherited from
  securesystemslib.schema:

  pgpstream.pgp.formats.<SCHEMA>.check_match(<object to verify>)
  pgpstream.pgp.formats.<SCHEMA>.matches(<object to verify>)

  `check_match` raises a securesystemslib.exceptions.FormatError and `matches`
  returns False if the verified object does not match the schema (True
  otherwise).


  Example Usage:

  >>> rsa_pubkey = {
      'type': 'rsa',
      'method': 'pgp+rsa-pkcsv1.5',
      'hashes': ['pgp+SHA2'],
      'keyid': '8465a1e2e0fb2b40adb2478e18fb3f537e0c8a17',
      'creation_time': 1791936000,
      'keyval': {
        'public': {
          'e': u'010001',
          'n': (u'da59409e6ede307a52f6851954a7bd4b9e309bd40a390f8c0de9722b63101
                  ...
                  60309708c56185f3bce6703b')
          },
        'private': ''
      },
      'flags': ['certify', 'sign'],
      'userids': ['Alice <alice@example.org>'],
      'preferences': {'symmetric': [9, 8, 7], 'compression': [2, 1]}
    }
  >>> RSA_PUBKEY_SCHEMA.matches(rsa_pubkey)
  True

"""
import securesystemslib.schema as ssl_schema
import securesystemslib.formats as ssl_formats


def _create_pubkey_with_subkey_schema(pubkey_schema):
  """Helper method to extend the passed public key schema with an optional
  dictionary of sub public keys "subkeys" with the same schema."""
  schema = pubkey_schema
  subkey_schema_tuple =  ("subkeys", ssl_schema.Optional(
        ssl_schema.DictOf(
          key_schema=ssl_formats.KEYID_SCHEMA,
          value_schema=pubkey_schema
          )
        )
      )
  # Any subclass of `securesystemslib.schema.Object` stores the schemas that
  # define the attributes of the object in its `_required` property, even if
  # such a schema is of type `Optional`.
  schema._required.append(subkey_schema_tuple) # pylint: disable=protected-access
  return schema


GPG_HASH_ALGORITHM_STRING = "pgp+SHA2"
PGP_RSA_PUBKEY_METHOD_STRING = "pgp+rsa-pkcsv1.5"
PGP_DSA_PUBKEY_METHOD_STRING = "pgp+dsa-fips-180-2"

ALGORITHM_IDS_SCHEMA = ssl_schema.ListOf(ssl_schema.Integer(lo=0, hi=255))

PREFERENCES_SCHEMA = ssl_schema.Object(
  object_name = "PREFERENCES_SCHEMA",
  symmetric = ssl_schema.Optional(ALGORITHM_IDS_SCHEMA),
  compression = ssl_schema.Optional(ALGORITHM_IDS_SCHEMA),
  hash = ssl_schema.Optional(ALGORITHM_IDS_SCHEMA)
)

KEY_FLAGS_SCHEMA = ssl_schema.ListOf(ssl_schema.OneOf([
    ssl_schema.String("certify"), ssl_schema.String("sign"),
    ssl_schema.String("encrypt")]))

RSA_PUBKEYVAL_SCHEMA = ssl_schema.Object(
  object_name = "RSA_PUBKEYVAL_SCHEMA",
  e = ssl_schema.AnyString(),
  n = ssl_formats.HEX_SCHEMA
)


# We have to define RSA_PUBKEY_SCHEMA in two steps, because it is
# self-referential. Here we define a shallow _RSA_PUBKEY_SCHEMA, which we use
# below to create the self-referential RSA_PUBKEY_SCHEMA.
_RSA_PUBKEY_SCHEMA = ssl_schema.Object(
  object_name = "RSA_PUBKEY_SCHEMA",
  type = ssl_schema.String("rsa"),
  method = ssl_schema.String(PGP_RSA_PUBKEY_METHOD_STRING),
  hashes = ssl_schema.ListOf(ssl_schema.String(GPG_HASH_ALGORITHM_STRING)),
  keyid = ssl_formats.KEYID_SCHEMA,
  creation_time = ssl_formats.UNIX_TIMESTAMP_SCHEMA,
  keyval = ssl_schema.Object(
      public = RSA_PUBKEYVAL_SCHEMA,
      private = ssl_schema.String("")
    ),
  flags = ssl_schema.Optional(KEY_FLAGS_SCHEMA),
  userids = ssl_schema.Optional(ssl_schema.ListOf(ssl_schema.AnyString())),
  preferences = ssl_schema.Optional(PREFERENCES_SCHEMA)
)
RSA_PUBKEY_SCHEMA = _create_pubkey_with_subkey_schema(
    _RSA_PUBKEY_SCHEMA)


DSA_PUBKEYVAL_SCHEMA = ssl_schema.Object(
  object_name = "DSA_PUBKEYVAL_SCHEMA",
  y = ssl_formats.HEX_SCHEMA,
  p = ssl_formats.HEX_SCHEMA,
  q = ssl_formats.HEX_SCHEMA,
  g = ssl_formats.HEX_SCHEMA
)


# We have to define DSA_PUBKEY_SCHEMA in two steps, because it is
# self-referential. Here we define a shallow _DSA_PUBKEY_SCHEMA, which we use
# below to create the self-referential DSA_PUBKEY_SCHEMA.
_DSA_PUBKEY_SCHEMA = ssl_schema.Object(
  object_name = "DSA_PUBKEY_SCHEMA",
  type = ssl_schema.String("dsa"),
  method = ssl_schema.String(PGP_DSA_PUBKEY_METHOD_STRING),
  hashes = ssl_schema.ListOf(ssl_schema.String(GPG_HASH_ALGORITHM_STRING)),
  keyid = ssl_formats.KEYID_SCHEMA,
  creation_time = ssl_formats.UNIX_TIMESTAMP_SCHEMA,
  keyval = ssl_schema.Object(
      public = DSA_PUBKEYVAL_SCHEMA,
      private = ssl_schema.String("")
    ),
  flags = ssl_schema.Optional(KEY_FLAGS_SCHEMA),
  userids = ssl_schema.Optional(ssl_schema.ListOf(ssl_schema.AnyString())),
  preferences = ssl_schema.Optional(PREFERENCES_SCHEMA)
)
DSA_PUBKEY_SCHEMA = _create_pubkey_with_subkey_schema(
    _DSA_PUBKEY_SCHEMA)


PUBKEY_SCHEMA = ssl_schema.OneOf([RSA_PUBKEY_SCHEMA,
    DSA_PUBKEY_SCHEMA])
