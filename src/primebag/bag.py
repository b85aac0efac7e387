# -----------------------------------------------------------------------------
#  bag.py
#  Multisets encoded as a product of primes
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator
from typing import Generic, TypeVar

import gmpy2
from gmpy2 import mpz

from primebag.fmt import format_bag
from primebag.table import PrimeTable
from primebag.utility import NO_PRIME, BagEndError, UnassignedPrimeError, factor_encoding

V = TypeVar("V", bound=Hashable)


class PrimeBag(Generic[V]):
    """
    A multiset of values stored as one integer.

    Every value gets a prime from the shared ``PrimeTable``; the bag keeps the
    product of the primes of its members (with multiplicity) plus the number
    of members. Membership and multiplicity are divisibility questions, and
    union and difference of bags on the same table are a multiplication and an
    exact division.

    The bag also remembers which prime it used for each value it was given.
    When the table later forgets a value (``PrimeTable.remove``), the bag still
    answers for the occurrences it holds through that record. The table's
    current assignment always wins, so once a freed prime is handed to a new
    value, occurrences of that prime read back as the new value and the old
    value counts as absent.

    Bags built on different tables are incompatible: ``add_bag``,
    ``remove_bag`` and ``includes`` leave both bags alone and report False.
    """

    def __init__(self, table: PrimeTable[V], values: Iterable[V] | None = None):
        self._table = table
        self._encoding = mpz(1)
        self._count = 0
        self._seen: dict[V, int] = {}
        self._seen_values: dict[int, V] = {}
        if values is not None:
            for v in values:
                self.add(v)

    @property
    def table(self) -> PrimeTable[V]:
        return self._table

    @property
    def encoding(self) -> mpz:
        """Product of the member primes; 1 for the empty bag."""
        return self._encoding

    def _prime_of(self, value: V) -> int:
        prime = self._table.get_prime(value)
        if prime != NO_PRIME:
            return prime
        prime = self._seen.get(value, NO_PRIME)
        # a recorded prime the table has since handed to another value is lost
        if prime != NO_PRIME and self._table.contains_prime(prime):
            return NO_PRIME
        return prime

    def _value_of(self, prime: int) -> V:
        if self._table.contains_prime(prime):
            return self._table.get_value(prime)
        try:
            return self._seen_values[prime]
        except KeyError:
            raise UnassignedPrimeError(prime) from None

    def _remember(self, value: V, prime: int) -> None:
        self._seen[value] = prime
        self._seen_values[prime] = value

    # --- mutation ------------------------------------------------------------

    def add(self, value: V) -> None:
        prime = self._table.add(value)
        self._remember(value, prime)
        self._encoding *= prime
        self._count += 1

    def add_bag(self, other: PrimeBag[V]) -> bool:
        """Union with multiplicity. No-op (False) if `other` uses another table."""
        if other._table is not self._table:
            return False
        for value, prime in list(other._seen.items()):
            self._seen.setdefault(value, prime)
            self._seen_values.setdefault(prime, value)
        self._encoding *= other._encoding
        self._count += other._count
        return True

    def remove(self, value: V) -> bool:
        """Remove one occurrence of `value`; False (and no change) if there is none."""
        prime = self._prime_of(value)
        if prime == NO_PRIME or not gmpy2.is_divisible(self._encoding, prime):
            return False
        self._encoding = gmpy2.divexact(self._encoding, prime)
        self._count -= 1
        return True

    def remove_bag(self, other: PrimeBag[V]) -> bool:
        """
        Remove every occurrence held by `other`, all or nothing. Succeeds only
        when `other` shares this bag's table and is a sub-multiset of it.
        """
        if not self.includes(other):
            return False
        self._encoding = gmpy2.divexact(self._encoding, other._encoding)
        self._count -= other._count
        return True

    def clear(self) -> None:
        """Empty the bag. The table keeps every assignment."""
        self._encoding = mpz(1)
        self._count = 0
        self._seen.clear()
        self._seen_values.clear()

    def copy(self) -> PrimeBag[V]:
        dup: PrimeBag[V] = PrimeBag(self._table)
        dup._encoding = self._encoding
        dup._count = self._count
        dup._seen = dict(self._seen)
        dup._seen_values = dict(self._seen_values)
        return dup

    # --- queries -------------------------------------------------------------

    def contains(self, value: V) -> bool:
        prime = self._prime_of(value)
        return prime != NO_PRIME and gmpy2.is_divisible(self._encoding, prime)

    def __contains__(self, value: object) -> bool:
        try:
            return self.contains(value)  # type: ignore[arg-type]
        except TypeError:
            return False

    def count(self, value: V) -> int:
        """Multiplicity of `value`; 0 if absent or never assigned a prime."""
        prime = self._prime_of(value)
        if prime == NO_PRIME:
            return 0
        _, times = gmpy2.remove(self._encoding, prime)
        return int(times)

    def includes(self, other: PrimeBag[V]) -> bool:
        """True if `other` is a sub-multiset of this bag (same table required)."""
        return (
            other._table is self._table
            and other._count <= self._count
            and gmpy2.is_divisible(self._encoding, other._encoding)
        )

    def size(self) -> int:
        return self._count

    def __len__(self) -> int:
        return self._count

    def __bool__(self) -> bool:
        return self._count > 0

    def factors(self) -> Iterator[tuple[int, int]]:
        """Yield (prime, multiplicity) for each member prime, ascending."""
        remaining = self._count
        work = self._encoding
        for prime in self._table.get_prime_numbers():
            if remaining <= 0:
                break
            work, times = gmpy2.remove(work, prime)
            if times:
                remaining -= times
                yield prime, int(times)

    def as_list(self) -> list[V]:
        """
        All members, one entry per occurrence, ordered by ascending prime, i.e.
        by the order in which the table first assigned each value, not by the
        order of insertion into this bag.
        """
        result: list[V] = []
        for prime, times in self.factors():
            result.extend([self._value_of(prime)] * times)
        return result

    def counts(self) -> dict[V, int]:
        return {self._value_of(prime): times for prime, times in self.factors()}

    def verify(self) -> bool:
        """
        Cross-check the encoding against an independent factorisation: every
        factor must be a prime the table's generator has produced, and the
        exponents must add up to the element count.
        """
        fac = factor_encoding(self._encoding)
        gen = self._table.generator
        if any(gen.index_of(p) < 0 for p in fac):
            return False
        return sum(fac.values()) == self._count

    # --- iteration -----------------------------------------------------------

    def begin(self) -> BagCursor[V]:
        return BagCursor(self, at_end=False)

    def end(self) -> BagCursor[V]:
        return BagCursor(self, at_end=True)

    def __iter__(self) -> Iterator[V]:
        cursor = self.begin()
        while not cursor.at_end:
            yield cursor.value
            cursor.advance()

    def __reversed__(self) -> Iterator[V]:
        cursor = self.end()
        for _ in range(self._count):
            cursor.retreat()
            yield cursor.value

    # --- comparison / display -----------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrimeBag):
            return NotImplemented
        return (
            self._table is other._table
            and self._count == other._count
            and self._encoding == other._encoding
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"PrimeBag({format_bag(self)})"


class BagCursor(Generic[V]):
    """
    Bidirectional position inside a bag, reconstructed from the encoding.

    The cursor snapshots the bag's encoding and size when created and then
    works on a private copy: while positioned, the working encoding holds the
    current occurrence and every occurrence after it. Stepping scans the
    table's prime list linearly, so a step is not constant time.

    Cursors compare equal when they share a table and agree on the end flag,
    the remaining count and the working encoding. Ordering follows position:
    a cursor with more elements still ahead is the smaller one. Cursors on
    different tables are not ordered.
    """

    def __init__(self, bag: PrimeBag[V], at_end: bool = False):
        self._bag = bag
        self._table = bag.table
        self._origin = bag.encoding
        self._index = 0
        if at_end or len(bag) == 0:
            self._to_end()
        else:
            self._encoding = self._origin
            self._remaining = len(bag)
            self._end = False
            self._index = self._seek_forward(0)

    def _to_end(self) -> None:
        self._encoding = mpz(1)
        self._remaining = 0
        self._end = True
        self._index = len(self._table.generator)

    def _seek_forward(self, start: int) -> int:
        gen = self._table.generator
        for i in range(start, len(gen)):
            if gmpy2.is_divisible(self._encoding, gen.prime_at(i)):
                return i
        raise RuntimeError("bag encoding has a factor the table's generator never produced")

    # --- state ---------------------------------------------------------------

    @property
    def at_end(self) -> bool:
        return self._end

    @property
    def remaining(self) -> int:
        """Occurrences from this position to the end, current one included."""
        return self._remaining

    @property
    def prime(self) -> int:
        if self._end:
            raise BagEndError("cursor is past the last element")
        return self._table.generator.prime_at(self._index)

    @property
    def value(self) -> V:
        if self._end:
            raise BagEndError("cursor is past the last element")
        return self._bag._value_of(self.prime)

    # --- movement ------------------------------------------------------------

    def advance(self) -> BagCursor[V]:
        """Step to the next occurrence; a no-op at the end."""
        if self._end:
            return self
        prime = self._table.generator.prime_at(self._index)
        self._encoding = gmpy2.divexact(self._encoding, prime)
        self._remaining -= 1
        if self._remaining == 0:
            self._to_end()
        else:
            # same index first: the prime may occur again
            self._index = self._seek_forward(self._index)
        return self

    def retreat(self) -> BagCursor[V]:
        """
        Step back to the previous occurrence; a no-op on the first one.

        The previous occurrence is the largest prime of the part already
        walked past, which undoes exactly one ``advance``.
        """
        consumed = gmpy2.divexact(self._origin, self._encoding)
        if consumed == 1:
            return self
        gen = self._table.generator
        i = min(self._index, len(gen) - 1)
        while not gmpy2.is_divisible(consumed, gen.prime_at(i)):
            i -= 1
        self._encoding *= gen.prime_at(i)
        self._remaining += 1
        self._end = False
        self._index = i
        return self

    def copy(self) -> BagCursor[V]:
        dup = object.__new__(BagCursor)
        dup.__dict__.update(self.__dict__)
        return dup

    # --- comparison ----------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BagCursor):
            return NotImplemented
        return (
            self._table is other._table
            and self._end == other._end
            and self._remaining == other._remaining
            and self._encoding == other._encoding
        )

    __hash__ = None  # type: ignore[assignment]

    def __lt__(self, other: BagCursor[V]) -> bool:
        if not isinstance(other, BagCursor) or other._table is not self._table:
            return NotImplemented
        return other._remaining < self._remaining

    def __gt__(self, other: BagCursor[V]) -> bool:
        if not isinstance(other, BagCursor) or other._table is not self._table:
            return NotImplemented
        return other._remaining > self._remaining

    def __le__(self, other: BagCursor[V]) -> bool:
        return self < other or self == other

    def __ge__(self, other: BagCursor[V]) -> bool:
        return self > other or self == other

    def __repr__(self) -> str:
        if self._end:
            return "BagCursor(<end>)"
        return f"BagCursor(prime={self.prime}, remaining={self._remaining})"
