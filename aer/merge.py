from __future__ import annotations

from typing import Iterable, Sequence

from .models import EnvEntry


def _by_name(entries: Iterable[EnvEntry]) -> dict[str, EnvEntry]:
    # dict keeps the first position of a name and the last value assigned to it.
    out: dict[str, EnvEntry] = {}
    for e in entries:
        out[e.name] = e
    return out


def merge_env(existing: Iterable[EnvEntry], overrides: Iterable[EnvEntry]) -> list[EnvEntry]:
    """Merge override entries into an existing env list.

    - a name that appears in `overrides` gets the value of its last occurrence
    - every other existing name is kept with its value
    - the result never contains the same name twice

    Output order is not part of the contract. Currently: untouched existing
    entries first (original order), then overrides in first-seen order.
    """
    wanted = _by_name(overrides)
    merged = {name: e for name, e in _by_name(existing).items() if name not in wanted}
    merged.update(wanted)
    return list(merged.values())


def env_equal(a: Sequence[EnvEntry], b: Sequence[EnvEntry]) -> bool:
    """Order-insensitive comparison of two env lists.

    A list holding a duplicate name never equals a duplicate-free one.
    """
    return len(a) == len(b) and _by_name(a) == _by_name(b)
