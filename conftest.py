"""Configures pytest further."""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import math
from typing import NamedTuple

from cryptography.hazmat.primitives.asymmetric import rsa
import pytest

from messenger import codec
from messenger.keygen import PUBLIC_EXPONENT


class ReferenceKey(NamedTuple):
    p: int
    q: int
    n: int
    e: int
    d: int
    public: bytes
    private: bytes


def pytest_addoption(parser):
    parser.addoption("--skip-slow", action="store_true", default=False, help="skip slower tests")
    parser.addoption("--run-extreme", action="store_true", default=False, help="run extreme value extremely slow tests")


def pytest_collection_modifyitems(config, items):
    skipdict = {}
    if config.getoption("--skip-slow"):
        skipdict["slow"] = pytest.mark.skip(reason="Slow test: needs no --skip-slow option")
    if not config.getoption("--run-extreme"):
        skipdict["extreme"] = pytest.mark.skip(reason="Extreme test: needs --run-extreme option")
    if not skipdict:
        return
    for item in items:
        for k, v in skipdict.items():
            if k in item.keywords:
                item.add_marker(v)


@pytest.fixture(scope="session")
def reference_key() -> ReferenceKey:
    """A 1024-bit key pair over primes from an independent implementation, usable with our exponent."""
    while True:
        numbers = rsa.generate_private_key(public_exponent=65537, key_size=1024).private_numbers()
        p, q = numbers.p, numbers.q
        totient = (p - 1) * (q - 1)
        if math.gcd(PUBLIC_EXPONENT, totient) == 1:
            break
    n = p * q
    d = pow(PUBLIC_EXPONENT, -1, totient)
    return ReferenceKey(p, q, n, PUBLIC_EXPONENT, d, codec.encode_key(PUBLIC_EXPONENT, n), codec.encode_key(d, n))
