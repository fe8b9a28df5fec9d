# Copyright the pgpstream contributors
# SPDX-License-Identifier: Apache-2.0

"""
<Module Name>
  pgp

<Started>
  Oct 3, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  Packet level building blocks for RFC4880 encoded messages: constants,
  packet framing, multi-precision integers, RSA and DSA handlers, public key
  dictionaries, signature packets and the symmetric cipher.

  The modules in this package know nothing about streams of layers, they are
  composed into message pipelines by `pgpstream.encryption_stream` and
  `pgpstream.decryption_stream`.
"""
