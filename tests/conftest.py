# tests/conftest.py
from __future__ import annotations

import pytest

from primebag import runtime


@pytest.fixture(autouse=True)
def fresh_runtime():
    """Every test starts from default runtime settings (prefetch on, debug off)."""
    rt = runtime.reset()
    yield rt
    runtime.reset()


@pytest.fixture(params=[True, False], ids=["prefetch", "no-prefetch"])
def prefetch_mode(request, fresh_runtime):
    fresh_runtime.prefetch = request.param
    return request.param
