# -----------------------------------------------------------------------------
#  table.py
#  Value <-> prime assignment with slot recycling and prefetch
# -----------------------------------------------------------------------------

from __future__ import annotations

import contextvars
import heapq
import threading
from collections.abc import Hashable, Iterable, Mapping
from types import MappingProxyType
from typing import Generic, TypeVar

from primebag.runtime import current as _rt_current
from primebag.sieve import PrimeGenerator
from primebag.utility import NO_PRIME, UnassignedPrimeError, trace

V = TypeVar("V", bound=Hashable)


class _PrimeFetch:
    """
    One-shot background computation of ``generator.nth_prime(index)``.

    The thread runs in a copy of the caller's context so it sees the same
    runtime settings. There is no cancellation: once started it runs to
    completion, and ``result()`` joins it. An exception raised in the thread
    is re-raised by ``result()``.
    """

    def __init__(self, generator: PrimeGenerator, index: int):
        self.index = index
        self._generator = generator
        self._value: int | None = None
        self._error: Exception | None = None
        ctx = contextvars.copy_context()
        self._thread = threading.Thread(
            target=ctx.run, args=(self._run,), name=f"primebag-prefetch-{index}", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        try:
            self._value = self._generator.nth_prime(self.index)
        except Exception as e:  # handed to whoever joins
            self._error = e

    def join(self) -> None:
        self._thread.join()

    def result(self) -> int:
        self._thread.join()
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]


class PrimeTable(Generic[V]):
    """
    Assigns each distinct value a unique prime and remembers the inverse.

    New values receive, in order of preference:
      1. the largest prime in the recycle pool (primes freed by ``remove``),
      2. the prefetched next never-used prime, if one is pending,
      3. the next never-used prime computed on the spot.

    Reusing the largest freed prime first keeps bag encodings bounded by the
    primes currently in use instead of growing as values churn.

    Not safe for concurrent mutation from several threads; the only internal
    concurrency is the prefetch thread, which touches nothing but the
    generator.
    """

    def __init__(self, seed: Iterable[int] | None = None, *, generator: PrimeGenerator | None = None):
        if generator is not None and seed is not None:
            raise ValueError("pass either seed or generator, not both")
        self._generator = generator if generator is not None else PrimeGenerator(seed)
        self._primes: dict[V, int] = {}
        self._values: dict[int, V] = {}
        self._holes: list[int] = []          # max-heap of freed primes (negated)
        self._fresh_index = 0                # generator index of the next never-used prime
        self._pending: _PrimeFetch | None = None

    # --- assignment ----------------------------------------------------------

    def add(self, value: V) -> int:
        """Return the prime of `value`, assigning one if it has none yet."""
        prime = self._primes.get(value)
        if prime is not None:
            return prime

        if self._holes:
            prime = -heapq.heappop(self._holes)
            trace("table", f"{value!r} -> {prime} (recycled, {len(self._holes)} left in pool)")
        else:
            prime = self._take_fresh()
            trace("table", f"{value!r} -> {prime} (fresh #{self._fresh_index - 1})")

        self._primes[value] = prime
        self._values[prime] = value
        self._schedule_prefetch()
        return prime

    def _take_fresh(self) -> int:
        fetch, self._pending = self._pending, None
        if fetch is not None:
            prime = fetch.result()
        else:
            prime = self._generator.nth_prime(self._fresh_index)
        self._fresh_index += 1
        return prime

    def _schedule_prefetch(self) -> None:
        if self._pending is not None or not _rt_current().prefetch:
            return
        self._pending = _PrimeFetch(self._generator, self._fresh_index)

    def wait(self) -> None:
        """Block until a pending prefetch (if any) has finished; its prime stays reserved."""
        if self._pending is not None:
            self._pending.join()

    # --- lookup --------------------------------------------------------------

    def get_prime(self, value: V) -> int:
        """Prime assigned to `value`, or NO_PRIME (0) if it has none."""
        return self._primes.get(value, NO_PRIME)

    def contains_prime(self, prime: int) -> bool:
        return prime in self._values

    def get_value(self, prime: int) -> V:
        """Value behind `prime`; UnassignedPrimeError if the prime is not assigned."""
        try:
            return self._values[prime]
        except KeyError:
            raise UnassignedPrimeError(prime) from None

    def get_prime_numbers(self) -> tuple[int, ...]:
        """Every prime the generator has computed so far, ascending."""
        return self._generator.all_primes()

    def prime_map(self) -> Mapping[V, int]:
        """Read-only live view of value -> prime."""
        return MappingProxyType(self._primes)

    def recycled_primes(self) -> list[int]:
        """Freed primes waiting for reuse, in the order they will be handed out."""
        return sorted((-p for p in self._holes), reverse=True)

    @property
    def generator(self) -> PrimeGenerator:
        return self._generator

    def __len__(self) -> int:
        return len(self._primes)

    def __contains__(self, value: object) -> bool:
        try:
            return value in self._primes
        except TypeError:
            return False

    # --- removal -------------------------------------------------------------

    def remove(self, value: V) -> int:
        """
        Forget `value` and return its prime to the recycle pool.
        Returns the freed prime, or NO_PRIME if `value` had none.

        Bags still holding the prime are not touched; if the prime is later
        reassigned their occurrences read back as the new value.
        """
        prime = self._primes.pop(value, None)
        if prime is None:
            return NO_PRIME
        del self._values[prime]
        heapq.heappush(self._holes, -prime)
        trace("table", f"freed {prime} from {value!r}")
        return prime

    def clear(self) -> None:
        """
        Drop every assignment and the recycle pool. A pending prefetch is joined
        first. Afterwards primes are handed out from the generator's first
        prime again; the generator's cache is kept.
        """
        if self._pending is not None:
            self._pending.join()
            self._pending = None
        self._primes.clear()
        self._values.clear()
        self._holes.clear()
        self._fresh_index = 0
        trace("table", "cleared")

    def __repr__(self) -> str:
        return f"PrimeTable(values={len(self._primes)}, recycled={len(self._holes)}, primes_known={len(self._generator)})"
