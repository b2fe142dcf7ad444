from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from pydantic import TypeAdapter, ValidationError

from .api_models import EnvVarModel, OverridesDocument
from .errors import OverridesError
from .models import EnvEntry
from .settings import Settings

_ENV_LIST = TypeAdapter(list[EnvVarModel])


def parse_overrides(data: Any) -> list[EnvEntry]:
    """Accept either a list of {name, value} objects or {"env": [...]}."""
    try:
        if isinstance(data, list):
            items = _ENV_LIST.validate_python(data)
        elif isinstance(data, dict):
            items = OverridesDocument.model_validate(data).env
        else:
            raise OverridesError(f"Overrides must be a list or an object with 'env', got {type(data).__name__}.")
    except ValidationError as e:
        raise OverridesError(f"Invalid overrides: {e}") from e
    return [m.to_entry() for m in items]


def load_overrides(path: str | Path) -> list[EnvEntry]:
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise OverridesError(f"Cannot read overrides file {p}: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise OverridesError(f"Overrides file {p} is not valid JSON: {e}") from e
    return parse_overrides(data)


def parse_env_pairs(pairs: Iterable[str]) -> list[EnvEntry]:
    """Parse NAME=VALUE strings (split on the first '=')."""
    out: list[EnvEntry] = []
    for item in pairs:
        name, sep, value = item.partition("=")
        name = name.strip()
        if not sep or not name:
            raise OverridesError(f"Expected NAME=VALUE, got {item!r}.")
        out.append(EnvEntry(name=name, value=value))
    return out


def configured_overrides(cfg: Settings) -> list[EnvEntry]:
    if not cfg.overrides_file:
        return []
    return load_overrides(cfg.overrides_file)
