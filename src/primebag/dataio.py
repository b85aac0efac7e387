# src/primebag/dataio.py
from __future__ import annotations

from importlib.resources import as_file
from importlib.resources import files as pkg_files
from pathlib import Path

from primebag.utility import UserInputError

SEED_BFILE = "b000040.txt"


def data_path(rel: str) -> Path:
    """
    Resolve a packaged data file (primebag/data/<rel>) to a filesystem Path.
    """
    rel = rel.lstrip("/\\")
    ref = pkg_files("primebag") / "data" / rel
    # materialize to a real path (needed for zip/egg resources)
    with as_file(ref) as real:
        return Path(real)


# ------------------------ OEIS b-file helpers ------------------------

def load_bfile(path: Path) -> list[int]:
    """
    Read an OEIS b-file:
        <n> <a(n)>
    Returns the a(n) column in file order. Blank lines and lines starting
    with '#' are ignored; any other malformed line is a UserInputError.
    """
    values: list[int] = []
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            for lineno, raw_line in enumerate(f, start=1):
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                parts = line.split()
                try:
                    values.append(int(parts[1]))
                except (IndexError, ValueError):
                    raise UserInputError(
                        f"reading {Path(path).name}: bad b-file line {lineno}: {line!r}."
                    ) from None
    except FileNotFoundError:
        raise UserInputError(f"b-file not found: {path}") from None
    return values


def load_seed_primes(count: int | None = None, path: Path | None = None) -> list[int]:
    """
    Warm-start primes for PrimeGenerator, read from the packaged A000040 b-file
    (or `path`). `count` caps how many leading terms are returned.
    """
    primes = load_bfile(path if path is not None else data_path(SEED_BFILE))
    if count is not None:
        primes = primes[:max(0, int(count))]
    return primes
