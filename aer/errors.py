"""Exception hierarchy for reconciliation passes.

All three pass errors are terminal for the current pass; callers decide
whether to run the whole pass again.
"""

from __future__ import annotations

from .models import ObjectKey


class ReconcileError(Exception):
    """Base class for errors that abort a reconciliation pass."""


class FetchError(ReconcileError):
    """Reading the workload from the gateway failed."""

    def __init__(self, message: str, *, key: ObjectKey | None = None, status_code: int | None = None) -> None:
        self.key = key
        self.status_code = status_code
        super().__init__(message)


class ContainerNotFoundError(ReconcileError):
    """The workload was fetched but has no container with the requested name."""

    def __init__(self, container: str, key: ObjectKey) -> None:
        self.container = container
        self.key = key
        super().__init__(f"Container '{container}' not found in workload {key}.")


class WriteError(ReconcileError):
    """Writing the workload back through the gateway failed."""

    def __init__(self, message: str, *, key: ObjectKey | None = None, status_code: int | None = None) -> None:
        self.key = key
        self.status_code = status_code
        super().__init__(message)


class OverridesError(ValueError):
    """The overrides document could not be read or is malformed."""
