# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Program Name>
  selection.py

<Started>
  Oct 7, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Selection of user ids, e.g. to pick the recipients of a message from a
  list of certificates.

  Example Usage:

  >>> selector = UserIdSelector.email("alice@example.org")
  >>> selector.accept("Alice <alice@example.org>")
  True
  >>> selector.select(["Bob <bob@example.org>", "Alice <alice@example.org>"])
  ['Alice <alice@example.org>']

"""
import attr

SUBSTRING = "substring"
EXACT = "exact"
PREFIX = "prefix"
EMAIL = "email"
KINDS = (SUBSTRING, EXACT, PREFIX, EMAIL)


@attr.s(frozen=True)
class UserIdSelector:
  """A predicate over user id strings.

  Attributes:
    kind: One of "substring", "exact", "prefix" or "email".
    query: The string to match. An email query matches user ids that are
        the bare address or contain it in angle brackets.

  """
  kind = attr.ib(validator=attr.validators.in_(KINDS))
  query = attr.ib(validator=attr.validators.instance_of(str))

  @classmethod
  def substring(cls, query):
    return cls(SUBSTRING, query)

  @classmethod
  def exact(cls, query):
    return cls(EXACT, query)

  @classmethod
  def prefix(cls, query):
    return cls(PREFIX, query)

  @classmethod
  def email(cls, address):
    return cls(EMAIL, address.strip("<>"))

  def accept(self, user_id):
    if self.kind == SUBSTRING:
      return self.query in user_id

    if self.kind == EXACT:
      return self.query == user_id

    if self.kind == PREFIX:
      return user_id.startswith(self.query)

    return user_id == self.query or "<{}>".format(self.query) in user_id

  def select(self, user_ids):
    """Return the accepted user ids in their original order. """
    return [user_id for user_id in user_ids if self.accept(user_id)]

  def first_match(self, user_ids):
    """Return the first accepted user id or None. """
    for user_id in user_ids:
      if self.accept(user_id):
        return user_id

    return None
