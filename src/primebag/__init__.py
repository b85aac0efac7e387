from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("primebag")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .bag import BagCursor, PrimeBag
from .config import apply_settings, load_settings
from .runtime import APPLY, CFG
from .sieve import PrimeGenerator, mark_multiples
from .table import PrimeTable
from .utility import NO_PRIME, BagEndError, UnassignedPrimeError, UserInputError

__all__ = [
    "APPLY",
    "CFG",
    "NO_PRIME",
    "BagCursor",
    "BagEndError",
    "PrimeBag",
    "PrimeGenerator",
    "PrimeTable",
    "UnassignedPrimeError",
    "UserInputError",
    "__version__",
    "apply_settings",
    "load_settings",
    "mark_multiples",
]
