# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  signing.py

<Started>
  Oct 7, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  The signature layer of a message.

  Inline signatures bracket the literal data: a one-pass signature packet per
  signature is written before the literal data and the signature packets
  after it, in reverse order, so that a reader matches them with a stack.
  `SignatureStack` enforces this bracketing, `SignatureGenerationStream` feeds
  the written payload to all signature generators.

"""
import logging

import pgpstream.pgp.packets
from pgpstream.exceptions import InvalidStateError

log = logging.getLogger(__name__)


class SignatureGenerationStream:
  """Writable stream that passes data on to sink and updates every passed
  signature generator with it. Closing the stream does not close the sink. """

  def __init__(self, sink, generators):
    self._sink = sink
    self._generators = list(generators)
    self.closed = False

  def write(self, data):
    if self.closed:
      raise ValueError("Write to closed signature layer.")

    for generator in self._generators:
      generator.update(data)

    self._sink.write(data)
    return len(data)

  def flush(self):
    pgpstream.pgp.packets.flush_stream(self._sink)

  def close(self):
    self.closed = True


class SignatureStack:
  """
  <Purpose>
    Brackets signature generation: `push` opens a signature context and
    writes its one-pass signature marker (inline signatures only), `pop`
    closes the most recently opened context and returns its finalized
    signature. Contexts must be pushed in declaration order, the stack then
    pops them in reverse.

  """
  def __init__(self):
    self._contexts = []

  def __len__(self):
    return len(self._contexts)

  @property
  def generators(self):
    return [generator for _, _, generator in self._contexts]

  def push(self, sink, identifier, method, nested):
    """
    <Purpose>
      Open a signature context for the passed signing method.

    <Arguments>
      sink:
              The stream the one-pass signature packet is written to

      identifier:
              The pgpstream.pgp.keys.SubkeyIdentifier of the signing key

      method:
              A pgpstream.options.SigningMethod

      nested:
              Whether further one-pass signature packets follow

    <Exceptions>
      None.

    <Side Effects>
      Writes a one-pass signature packet to sink unless the method is
      detached.

    <Returns>
      The signature generator of the new context.

    """
    generator = method.new_generator()
    if not method.detached:
      sink.write(generator.one_pass_signature(nested))
      log.debug("Wrote one-pass signature for key '{}' (nested: {})".format(
          identifier.short_keyid, nested))

    self._contexts.append((identifier, method, generator))
    return generator

  def pop(self):
    """Close the most recent context and return a tuple of identifier,
    method and signature. """
    if not self._contexts:
      raise InvalidStateError("No open signature context.")

    identifier, method, generator = self._contexts.pop()
    return identifier, method, generator.generate()
