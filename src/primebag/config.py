from __future__ import annotations

import os
import tomllib as toml
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from primebag.runtime import APPLY
from primebag.utility import UserInputError

ENV_VAR = "PRIMEBAG_CONFIG"


@dataclass
class Settings:
    """
    Wrap the full TOML dict (without the [PROFILE] section).
    .as_dict() feeds runtime.apply().

      - name:        profile name from [PROFILE] or the file stem
      - description: one-line description from [PROFILE] or "(no description)"
    """
    data: dict[str, Any]
    name: str
    description: str
    _source: Path | None = None

    def as_dict(self) -> dict[str, Any]:
        return self.data


# --- I/O -------------------------------------------------------------------


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return toml.load(f)
    except FileNotFoundError:
        raise UserInputError(f"settings file not found: {path}") from None
    except toml.TOMLDecodeError as e:
        lineno = getattr(e, "lineno", None)
        colno = getattr(e, "colno", None)
        msg = getattr(e, "msg", str(e))
        where = []
        if lineno is not None:
            where.append(f"line {lineno}")
        if colno is not None:
            where.append(f"column {colno}")
        loc = f" (at {', '.join(where)})" if where else ""
        # No traceback chaining
        raise UserInputError(f"reading {path.name}: {msg}{loc}.") from None


def _sanitize_oneline(s: str) -> str:
    return " ".join(str(s).split()) or "(no description)"


def _split_profile_data(raw: dict[str, Any], fallback_name: str) -> tuple[dict[str, Any], str, str]:
    """
    Extract [PROFILE] meta (name, description) and return:
      (settings_without_profile, resolved_name, resolved_description)
    """
    meta = raw.get("PROFILE") or {}
    if "PROFILE" in raw:
        raw = {k: v for k, v in raw.items() if k != "PROFILE"}

    name = str(meta.get("name") or fallback_name)
    description = _sanitize_oneline(str(meta.get("description") or ""))

    return raw, name, description


def _check_types(data: dict[str, Any], path: Path) -> None:
    expected = {
        ("BEHAVIOUR", "DEBUG"): bool,
        ("TABLE", "PREFETCH"): bool,
        ("SIEVE", "WARM_START"): bool,
        ("SIEVE", "SEED_COUNT"): int,
    }
    for (section, key), typ in expected.items():
        sect = data.get(section)
        if not isinstance(sect, dict) or key not in sect:
            continue
        val = sect[key]
        # bool is an int subclass; do not accept it for integer keys
        if not isinstance(val, typ) or (typ is int and isinstance(val, bool)):
            raise UserInputError(
                f"reading {path.name}: {section}.{key} must be {typ.__name__}, got {type(val).__name__}."
            )


# --- Public API ------------------------------------------------------------


def settings_path() -> Path | None:
    """Settings file named by $PRIMEBAG_CONFIG, or None."""
    env = os.environ.get(ENV_VAR)
    if env:
        return Path(env).expanduser().resolve()
    return None


def load_settings(path: str | Path) -> Settings:
    """
    Load a settings file, strip the [PROFILE] metadata, type-check the known
    keys and return Settings(data=..., name=..., description=..., _source=path).
    """
    path = Path(path)
    raw = _load_toml(path)
    data, resolved_name, description = _split_profile_data(raw, path.stem)
    _check_types(data, path)
    return Settings(
        data=data,
        name=resolved_name,
        description=description,
        _source=path,
    )


def apply_settings(path: str | Path | None = None) -> Settings | None:
    """
    Load `path` (or $PRIMEBAG_CONFIG when omitted) into the current runtime.
    Returns the applied Settings, or None when there was nothing to load.
    """
    target = Path(path) if path is not None else settings_path()
    if target is None:
        return None
    settings = load_settings(target)
    APPLY(settings)
    return settings
