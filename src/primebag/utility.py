# -----------------------------------------------------------------------------
#  Utility functions
# -----------------------------------------------------------------------------

from __future__ import annotations

import sys

from colorama import Style
from sympy import factorint

from primebag.runtime import current as _rt_current

# A table lookup that finds no prime reports 0; 0 is never a generated prime.
NO_PRIME = 0


class UserInputError(Exception):
    pass


class UnassignedPrimeError(KeyError):
    """Raised when asking a table for the value behind a prime it has not assigned."""

    def __init__(self, prime: int):
        super().__init__(prime)
        self.prime = prime

    def __str__(self) -> str:
        return f"prime {self.prime} is not assigned to any value"


class BagEndError(IndexError):
    """Raised when reading the value of a cursor that is past the last element."""


def trace(tag: str, msg: str) -> None:
    """Print one debug line to stderr when the runtime debug flag is on."""
    if not _rt_current().debug:
        return
    print(f"{Style.DIM}[{tag}]{Style.RESET_ALL} {msg}", file=sys.stderr)


def dec_digits(n: int) -> int:
    """Exact decimal digit count without str(); handles n >= 0."""
    n = abs(int(n))
    if n == 0:
        return 1
    # floor(log10(n)) ~= floor(bitlen*log10(2))
    bl = n.bit_length()
    est = int((bl * 30103) // 100000)
    p10 = 10 ** est
    if n < p10:
        while n < p10:
            est -= 1
            p10 //= 10
    else:
        p10 *= 10
        while n >= p10:
            est += 1
            p10 *= 10
    return est + 1


def factor_encoding(n: int) -> dict[int, int]:
    """
    Independent factorisation of a bag encoding via sympy.
    Returns {} for 1 so an empty bag compares equal to an empty count map.
    """
    n = int(n)
    if n < 1:
        raise ValueError(f"encoding must be positive, got {n}")
    if n == 1:
        return {}
    return {int(p): int(e) for p, e in factorint(n).items()}
