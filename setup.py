#!/usr/bin/env python
"""
<Program Name>
  setup.py

<Started>
  Oct 2, 2026

<Copyright>
  See LICENSE for licensing information.

<Purpose>
  setup.py script to install the pgpstream library

  See README.md for usage instructions.

"""
import io
import os
import re

from setuptools import setup, find_packages


base_dir = os.path.dirname(os.path.abspath(__file__))

def get_version(filename="pgpstream/__init__.py"):
  """
  Gather version number from specified file.

  This is done through regex processing, so the file is not imported or
  otherwise executed.

  No format verification of the resulting version number is done.
  """
  with io.open(os.path.join(base_dir, filename), encoding="utf-8") as initfile:
    for line in initfile.readlines():
      m = re.match("__version__ *= *['\"](.*)['\"]", line)
      if m:
        return m.group(1)

with io.open(os.path.join(base_dir, "README.md"), encoding="utf-8") as f:
  long_description = f.read()

setup(
  name="pgpstream",
  author="pgpstream contributors",
  description=("Streaming OpenPGP message composition and decomposition "
    "(encrypt, sign, decrypt, verify)"),
  long_description_content_type="text/markdown",
  long_description=long_description,
  license="Apache-2.0",
  keywords="openpgp encryption signatures streaming",
  classifiers = [
    'Development Status :: 4 - Beta',
    'Intended Audience :: Developers',
    'License :: OSI Approved :: Apache Software License',
    'Natural Language :: English',
    'Operating System :: POSIX',
    'Operating System :: POSIX :: Linux',
    'Operating System :: MacOS :: MacOS X',
    'Programming Language :: Python',
    'Programming Language :: Python :: 3',
    'Programming Language :: Python :: 3 :: Only',
    'Programming Language :: Python :: Implementation :: CPython',
    'Topic :: Security',
    'Topic :: Security :: Cryptography'
  ],
  python_requires=">=3.8, <4",
  packages=find_packages(exclude=["*.tests", "*.tests.*", "tests.*",
      "tests"]),
  # CFB mode leaves cryptography.hazmat.primitives.ciphers.modes in 49.0.0
  install_requires=["cryptography>=3.4,<49",
                    "securesystemslib>=0.28.0,<1.0", "attrs",
                    "python-dateutil"],
  test_suite="tests.runtests",
  version=get_version(),
)
