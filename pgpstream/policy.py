# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  policy.py

<Started>
  Oct 7, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Algorithm policy and negotiation.

  An `AlgorithmPolicy` lists the acceptable symmetric, compression and hash
  algorithms, strongest first, plus a default for each. It is passed
  explicitly with the producer and consumer options. The negotiation
  functions pick an algorithm from the preferences stated in certificates
  (see pgpstream.pgp.keys.create_certificate), they are deterministic for a
  given policy and set of preferences.

"""
import logging

import attr

from pgpstream.exceptions import (AlgorithmNegotiationError,
    UnacceptableAlgorithmError)
from pgpstream.pgp.constants import (AES128, AES192, AES256, UNCOMPRESSED,
    ZIP, ZLIB, BZIP2, SHA224, SHA256, SHA384, SHA512,
    SYMMETRIC_ALGORITHM_NAMES, COMPRESSION_ALGORITHM_NAMES,
    HASH_ALGORITHM_NAMES)

log = logging.getLogger(__name__)


def _default_in(list_attribute):
  def _validate(instance, attribute, value):
    if value not in getattr(instance, list_attribute):
      raise ValueError("Default '{}' of '{}' must be one of {}.".format(value,
          attribute.name, getattr(instance, list_attribute)))

  return _validate


@attr.s(frozen=True)
class AlgorithmPolicy:
  """Acceptable algorithms, strongest first, and the defaults used when no
  preferences are stated.

  Attributes:
    symmetric_algorithms: RFC4880 9.2. ids acceptable for encryption and
        decryption.
    default_symmetric_algorithm: Used if no recipient states preferences.
    compression_algorithms: RFC4880 9.3. ids acceptable for compression and
        decompression.
    default_compression_algorithm: Used if no common preference exists.
    hash_algorithms: RFC4880 9.4. ids acceptable for creating and verifying
        signatures.
    default_hash_algorithm: Used if the signer states no preferences.

  """
  symmetric_algorithms = attr.ib(default=(AES256, AES192, AES128),
      converter=tuple)
  default_symmetric_algorithm = attr.ib(default=AES256,
      validator=_default_in("symmetric_algorithms"))
  compression_algorithms = attr.ib(default=(ZLIB, ZIP, BZIP2, UNCOMPRESSED),
      converter=tuple)
  default_compression_algorithm = attr.ib(default=UNCOMPRESSED,
      validator=_default_in("compression_algorithms"))
  hash_algorithms = attr.ib(default=(SHA512, SHA384, SHA256, SHA224),
      converter=tuple)
  default_hash_algorithm = attr.ib(default=SHA512,
      validator=_default_in("hash_algorithms"))

  def check_symmetric_algorithm(self, algorithm):
    """Raise UnacceptableAlgorithmError if the passed symmetric algorithm is
    not acceptable. """
    if algorithm not in self.symmetric_algorithms:
      raise UnacceptableAlgorithmError("Symmetric algorithm '{}' is not "
          "acceptable.".format(SYMMETRIC_ALGORITHM_NAMES.get(algorithm,
          algorithm)))

  def check_compression_algorithm(self, algorithm):
    if algorithm not in self.compression_algorithms:
      raise UnacceptableAlgorithmError("Compression algorithm '{}' is not "
          "acceptable.".format(COMPRESSION_ALGORITHM_NAMES.get(algorithm,
          algorithm)))

  def check_hash_algorithm(self, algorithm):
    if algorithm not in self.hash_algorithms:
      raise UnacceptableAlgorithmError("Hash algorithm '{}' is not "
          "acceptable.".format(HASH_ALGORITHM_NAMES.get(algorithm,
          algorithm)))


def _negotiate(acceptable, stated_preferences):
  """Return the first acceptable algorithm listed in all stated preferences,
  or None. """
  for algorithm in acceptable:
    if all(algorithm in preferences for preferences in stated_preferences):
      return algorithm

  return None


def _get_stated_preferences(certificates, kind):
  return [certificate["preferences"][kind] for certificate in certificates
      if certificate.get("preferences", {}).get(kind)]


def negotiate_symmetric_algorithm(policy, certificates):
  """
  <Purpose>
    Negotiate the symmetric algorithm for encrypting to the passed recipient
    certificates.

  <Arguments>
    policy:
            An AlgorithmPolicy

    certificates:
            A list of recipient certificates, possibly empty (e.g. if only
            passphrases are used)

  <Exceptions>
    pgpstream.exceptions.AlgorithmNegotiationError
            If the stated preferences have no acceptable algorithm in common.

  <Side Effects>
    None.

  <Returns>
    The strongest acceptable algorithm listed by every recipient that states
    preferences, or the policy default if nobody does.

  """
  stated = _get_stated_preferences(certificates, "symmetric")
  if not stated:
    return policy.default_symmetric_algorithm

  algorithm = _negotiate(policy.symmetric_algorithms, stated)
  if algorithm is None:
    raise AlgorithmNegotiationError("Recipients have no acceptable symmetric "
        "algorithm in common (preferences: {}, acceptable: {}).".format(
        stated, list(policy.symmetric_algorithms)))

  log.debug("Negotiated symmetric algorithm {}".format(
      SYMMETRIC_ALGORITHM_NAMES[algorithm]))
  return algorithm


def negotiate_compression_algorithm(policy, certificates, override=None):
  """
  <Purpose>
    Negotiate the compression algorithm for a message to the passed
    recipient certificates.

  <Arguments>
    policy:
            An AlgorithmPolicy

    certificates:
            A list of recipient certificates, possibly empty

    override: (optional)
            An explicitly requested algorithm that takes precedence

  <Exceptions>
    pgpstream.exceptions.UnacceptableAlgorithmError
            If the override is not acceptable.

  <Side Effects>
    None.

  <Returns>
    The override, the strongest commonly preferred acceptable algorithm or
    the policy default.

  """
  if override is not None:
    policy.check_compression_algorithm(override)
    return override

  stated = _get_stated_preferences(certificates, "compression")
  algorithm = None
  if stated:
    algorithm = _negotiate(policy.compression_algorithms, stated)

  if algorithm is None:
    algorithm = policy.default_compression_algorithm

  log.debug("Negotiated compression algorithm {}".format(
      COMPRESSION_ALGORITHM_NAMES[algorithm]))
  return algorithm


def negotiate_hash_algorithm(policy, certificate=None):
  """Return the strongest acceptable hash algorithm preferred by the signer
  certificate, or the policy default. """
  stated = []
  if certificate is not None:
    stated = _get_stated_preferences([certificate], "hash")

  algorithm = None
  if stated:
    algorithm = _negotiate(policy.hash_algorithms, stated)

  if algorithm is None:
    algorithm = policy.default_hash_algorithm

  return algorithm
