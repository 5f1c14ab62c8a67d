"""Core Key Generation Utility, mainly focusing on the generation of random large primes.

This module is responsible for the probable-prime search and the derivation of RSA key pairs from those primes. Prime
candidates are raced in parallel batches, each candidate being vetted by a Miller-Rabin test.

Typical usage example:

    is_probably_prime(104729)
    p = generate_prime(256)
    public, private = generate_keys(1024)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from concurrent import futures
import logging
import math
import os
import secrets
import threading
from typing import Literal, NamedTuple, overload

from messenger import codec

PUBLIC_EXPONENT: int = 23227
DEFAULT_WITNESSES: int = 10
BATCH_SIZE: int = 1000
MIN_KEY_SIZE: int = 32

logger = logging.getLogger(__name__)


class KeyBuffers(NamedTuple):
    """Serialized key pair, as produced by `codec.encode_key`."""
    public: bytes
    private: bytes


def is_probably_prime(value: int, witnesses: int = DEFAULT_WITNESSES) -> bool:
    """Perform Miller-Rabin primality test.

    Each witness is drawn from the system CSPRNG. A composite slips through with probability at most
    `4**-witnesses`.

    Args:
        value: The integer to be tested.
        witnesses: Number of Miller-Rabin iterations to perform. Values <= 0 fall back to `DEFAULT_WITNESSES`.

    Returns:
        True if `value` is probably prime, False otherwise.
    """
    if value <= 1:
        return False
    if value <= 3:
        return True
    if value % 2 == 0:
        return False
    if witnesses <= 0:
        witnesses = DEFAULT_WITNESSES
    d = value - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1
    for _ in range(witnesses):
        # Uniform over [2, value - 2).
        a = secrets.randbelow(value - 4) + 2
        x = pow(a, d, value)
        if x == 1 or x == value - 1:
            continue
        for _ in range(1, s):
            x = pow(x, 2, value)
            if x == value - 1:
                break
            if x == 1:
                return False
        else:
            return False
    return True


class PrimeSlot:
    """First-write-wins holder for the prime found by a batch of trials.

    Attributes:
        value: The claimed prime, or None while the slot is empty.
    """

    def __init__(self) -> None:
        self.value: int | None = None
        self._lock = threading.Lock()
        self._filled = threading.Event()

    def claim(self, candidate: int) -> bool:
        """Store `candidate` if the slot is still empty.

        Returns:
            True if this call filled the slot, False if another trial got there first.
        """
        with self._lock:
            if self.value is not None:
                return False
            self.value = candidate
        self._filled.set()
        return True

    @property
    def filled(self) -> bool:
        return self._filled.is_set()


def _draw_candidate(bits: int) -> int:
    """Draw `bits // 8` random bytes and read them as a signed big-endian integer."""
    return codec.bytes_to_integer(secrets.token_bytes(bits // 8))


def _trial(bits: int, slot: PrimeSlot) -> bool:
    """A single generation attempt: one random draw, one primality test."""
    candidate = _draw_candidate(bits)
    if is_probably_prime(candidate):
        return slot.claim(candidate)
    return False


def generate_prime(bits: int,
                   batch_size: int = BATCH_SIZE,
                   workers: int | None = None,
                   max_batches: int | None = None) -> int:
    """Generate a probable prime of up to `bits` bits.

    Launches batches of `batch_size` independent trials on a thread pool. Trials run concurrently but share the GIL,
    so this gives no parallel speed-up over a sequential search. The first successful trial of a batch
    fills the result slot and the call returns; trials already running are left to finish and their results are
    ignored. A batch with no success is followed by a fresh one. The top bit is not forced, so the prime may come out
    shorter than `bits`.

    Args:
        bits: Size of the random draw in bits. Must be a positive multiple of 8.
        batch_size: Number of trials per batch.
        workers: Thread pool size. Defaults to `os.cpu_count()`.
        max_batches: Abort after this many fruitless batches. Defaults to retrying forever.

    Returns:
        A probable prime.

    Raises:
        ValueError: If `bits` or `batch_size` are unusable.
        RuntimeError: If `max_batches` batches ran with no prime found.
    """
    if bits <= 0 or bits % 8 != 0:
        raise ValueError("Bits must be a positive multiple of 8.")
    if batch_size <= 0:
        raise ValueError("Batch size must be positive.")
    slot = PrimeSlot()
    workers = workers or os.cpu_count() or 1
    batches = 0
    while not slot.filled:
        if max_batches is not None and batches >= max_batches:
            raise RuntimeError(f"Ran {batches} batches of {batch_size} trials with no prime found. "
                               "Check system random number generator.")
        batches += 1
        pool = futures.ThreadPoolExecutor(max_workers=min(workers, batch_size), thread_name_prefix="prime-trial")
        try:
            pending = [pool.submit(_trial, bits, slot) for _ in range(batch_size)]
            for done in futures.as_completed(pending):
                # Random source failures are fatal for the generation attempt.
                if done.result():
                    break
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
        logger.debug("Prime batch %d for %d bits finished, found: %s", batches, bits, slot.filled)
    return slot.value


def eea(a: int, b: int) -> tuple[int, int, int]:
    """Implements the Extended Euclidean Algorithm.

    Such that a*s0 + b*t0 = r0 = gcd(a, b).

    Args:
        a: The first natural number.
        b: The second natural number.

    Returns:
        Greatest common divisor of two integers.
        As well as the Bezout coefficients.
    """
    r0, r1 = a, b
    s0, s1, t0, t1 = 1, 0, 0, 1
    while r1 != 0:
        q = r0 // r1
        r0, r1 = r1, r0 - q * r1
        s0, s1 = s1, s0 - q * s1
        t0, t1 = t1, t0 - q * t1
    return r0, s0, t0


def mod_inverse(a: int, n: int) -> int:
    """Computes the inverse of `a` modulo `n`, normalized into `[0, n)`.

    The result is only meaningful when `gcd(a, n) == 1`; callers are expected to guarantee that.
    """
    _, _, t = eea(n, a)
    return t % n


def _byte_bits(value: int) -> int:
    """Bits taken up by the minimal signed byte representation of `value`."""
    return len(codec.integer_to_bytes(value)) * 8


def generate_primes(size: int, pub: int = PUBLIC_EXPONENT) -> tuple[int, int]:
    """Generates a pair of primes suitable for a `size`-bit modulus.

    `p` is drawn from `size // 2` bits. `q` is drawn from the remainder after the bytes `p` actually occupies, which
    keeps the modulus near `size` bits even when `p` comes out short. Pairs that would break the key (equal primes,
    a totient not above `pub`, or a totient sharing a factor with `pub`) are discarded.

    Args:
        size: The key size to generate the prime pair for.
        pub: The public exponent the primes have to be usable with.

    Returns:
        The primes (p, q).

    Raises:
        ValueError: If `size` is too small to split into two byte-aligned primes.
    """
    if size < MIN_KEY_SIZE:
        raise ValueError(f"Size must be at least {MIN_KEY_SIZE}.")
    while True:
        p = generate_prime(size // 2 - (size // 2) % 8)
        q = generate_prime(_q_bits(size, p))
        totient = (p - 1) * (q - 1)
        if p != q and pub < totient and math.gcd(pub, totient) == 1:
            return p, q
        logger.info("Discarding prime pair unusable with exponent %d, regenerating.", pub)


def _q_bits(size: int, p: int) -> int:
    bits = size - _byte_bits(p)
    # Prime draws are whole bytes.
    bits -= bits % 8
    return max(bits, 8)


@overload
def generate_key_pair(size: int,
                      pub: int = PUBLIC_EXPONENT,
                      expose_primes: Literal[False] = False) -> tuple[tuple[int, int], tuple[int, int]]:
    ...


@overload
def generate_key_pair(size: int,
                      pub: int = PUBLIC_EXPONENT,
                      expose_primes: Literal[True] = False) -> tuple[tuple[int, int], tuple[int, int, int, int]]:
    ...


def generate_key_pair(
    size: int,
    pub: int = PUBLIC_EXPONENT,
    expose_primes: bool = False
) -> tuple[tuple[int, int], tuple[int, int]] | tuple[tuple[int, int], tuple[int, int, int, int]]:
    """Generates an RSA key pair.

    Fully generates a valid RSA Key. The private exponent is the inverse of `pub` modulo Euler's totient.

    Args:
        size: The key size in bits.
        pub: The public exponent. Defaults to `PUBLIC_EXPONENT`, which peers expect.
        expose_primes: Whether to export the prime numbers as well or not. Defaults to False.

    Returns:
        A tuple of tuples of (public, private) sub-tuples (modulus, exponent) or if exposed for the private
        (modulus, exponent, p, q)
    """
    p, q = generate_primes(size, pub)
    n = p * q
    totient = (p - 1) * (q - 1)
    d = mod_inverse(pub, totient)
    logger.debug("Generated %d-bit modulus for requested size %d.", n.bit_length(), size)
    if not expose_primes:
        del p, q
        return (n, pub), (n, d)
    return (n, pub), (n, d, p, q)


def generate_keys(size: int) -> KeyBuffers:
    """Generates an RSA key pair and serializes it.

    Args:
        size: The key size in bits.

    Returns:
        The public `(E, N)` and private `(D, N)` key buffers.
    """
    (n, e), (_, d) = generate_key_pair(size)
    return KeyBuffers(codec.encode_key(e, n), codec.encode_key(d, n))
