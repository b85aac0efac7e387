# -----------------------------------------------------------------------------
#  sieve.py
#  Incremental prime generation (segmented Sieve of Eratosthenes)
# -----------------------------------------------------------------------------

from __future__ import annotations

import threading
from bisect import bisect_left
from collections.abc import Iterable
from math import isqrt

from primebag.dataio import load_seed_primes
from primebag.runtime import CFG
from primebag.utility import trace


def mark_multiples(field: bytearray, prime: int, lo: int, hi: int) -> None:
    """
    Clear the flags of every multiple of `prime` inside [lo, hi] in `field`,
    where field[i] describes the number lo + i.

    Marking starts at prime**2: smaller multiples have a smaller prime factor
    and are cleared by that factor instead.
    """
    start = prime * prime
    if start > hi:
        return
    if start < lo:
        start = ((lo + prime - 1) // prime) * prime
    count = (hi - start) // prime + 1
    field[start - lo:hi - lo + 1:prime] = bytes(count)


class PrimeGenerator:
    """
    Produces primes in ascending order on demand and caches every prime found.

    Each call to ``_sieve_segment`` classifies the window
    ``[highest_tested + 1, min(limit, highest_tested + 1 + isqrt(limit))]``;
    ``limit`` doubles whenever the window start catches up with it. Memory per
    segment is O(sqrt(limit)); only the cumulative prime list is kept.

    An optional ascending `seed` of primes warm-starts the cache. It is trusted
    as is: a composite in the seed corrupts every later result.
    """

    def __init__(self, seed: Iterable[int] | None = None):
        primes = [int(p) for p in seed] if seed is not None else []
        if not primes and CFG("SIEVE.WARM_START", False):
            primes = load_seed_primes(CFG("SIEVE.SEED_COUNT", None))

        self._primes: list[int] = primes
        # 0 and 1 are known non-primes
        self._highest_tested = primes[-1] if primes else 1
        self._limit = self._highest_tested
        self._lock = threading.Lock()

    # --- queries -------------------------------------------------------------

    @property
    def highest_tested(self) -> int:
        return self._highest_tested

    @property
    def limit(self) -> int:
        return self._limit

    def count(self) -> int:
        return len(self._primes)

    def __len__(self) -> int:
        return len(self._primes)

    def all_primes(self) -> tuple[int, ...]:
        """Ascending snapshot of the primes computed so far."""
        return tuple(self._primes)

    def prime_at(self, index: int) -> int:
        """Cached prime at `index` without sieving; IndexError past the cache."""
        # the cache only ever grows, so a read needs no lock
        return self._primes[index]

    def index_of(self, prime: int) -> int:
        """Position of `prime` in the cache, or -1 if it has not been computed."""
        i = bisect_left(self._primes, prime)
        if i < len(self._primes) and self._primes[i] == prime:
            return i
        return -1

    def nth_prime(self, index: int) -> int:
        """Return the zero-based index-th prime, sieving further if needed."""
        index = int(index)
        if index < 0:
            raise ValueError(f"prime index must be >= 0, got {index}")
        if index < len(self._primes):
            return self._primes[index]
        with self._lock:
            while len(self._primes) <= index:
                self._sieve_segment()
            return self._primes[index]

    # --- sieving -------------------------------------------------------------

    def _sieve_segment(self) -> None:
        lo = self._highest_tested + 1
        while self._limit <= lo:
            self._limit *= 2
        hi = min(self._limit, lo + isqrt(self._limit))

        field = bytearray(b"\x01") * (hi - lo + 1)
        for p in self._primes:
            if p * p > hi:
                break
            mark_multiples(field, p, lo, hi)

        found = 0
        for offset in range(len(field)):
            if field[offset]:
                prime = lo + offset
                # a prime inside the window can still clear later window slots
                mark_multiples(field, prime, lo, hi)
                self._primes.append(prime)
                found += 1

        self._highest_tested = hi
        trace("sieve", f"segment [{lo}, {hi}] limit={self._limit} +{found} primes (total {len(self._primes)})")
