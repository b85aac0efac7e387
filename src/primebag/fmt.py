# src/primebag/fmt.py
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from primebag.utility import dec_digits


def abbr_int_fast(n: int, head: int = 10, tail: int = 10, threshold: int = 35, ellipsis: str = "…") -> str:
    """Abbreviate very large ints as first<head>…last<tail> without str(n)."""
    n = int(n)
    if n == 0:
        return "0"

    sign = "-" if n < 0 else ""
    a = -n if n < 0 else n

    d = dec_digits(a)
    if d <= threshold or head + tail >= d:
        return sign + str(a)

    first = a // 10 ** (d - head)
    last = a % 10 ** tail
    return f"{sign}{first}{ellipsis}{last:0{tail}d}"


def format_factorization(fac: Mapping[int, int]) -> str:
    """
    Turn {p: e, ...} into a tidy string like: 2^3 × 3 × 5^2
    """
    parts: list[str] = []
    for p, e in sorted(fac.items()):
        parts.append(f"{p}^{e}" if e > 1 else f"{p}")
    return " × ".join(parts) if parts else "1"


def format_counts(counts: Mapping[Any, int]) -> str:
    """{'a': 2, 'b': 1} rendered as: 'a'×2, 'b'"""
    parts = [f"{v!r}×{k}" if k > 1 else f"{v!r}" for v, k in counts.items()]
    return ", ".join(parts) if parts else "∅"


def format_bag(bag: Any) -> str:
    """
    One-line description of a bag: its members and its encoding, e.g.
        {'a'×2, 'b'} = 2^2 × 3 (size 3)
    Huge encodings are abbreviated instead of factored out.
    """
    enc = int(bag.encoding)
    if dec_digits(enc) > 60:
        rendered = abbr_int_fast(enc)
    else:
        rendered = format_factorization(dict(bag.factors()))
    return f"{{{format_counts(bag.counts())}}} = {rendered} (size {len(bag)})"
