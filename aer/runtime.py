from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock

from .db import utc_now
from .models import EnvEntry


@dataclass
class PassStatus:
    workload: str
    container: str
    state: str  # ok|failed|skipped
    wrote: bool
    message: str
    env_count: int | None = None
    env: list[EnvEntry] = field(default_factory=list)
    at: str = field(default_factory=utc_now)


class RuntimeState:
    """In-memory view of the last pass per workload."""

    def __init__(self) -> None:
        self.lock = Lock()
        self.last_pass: dict[str, PassStatus] = {}  # "namespace/name" -> status
        self.pass_count = 0

    def set_status(self, st: PassStatus) -> None:
        with self.lock:
            self.last_pass[st.workload] = st
            self.pass_count += 1

    def get_status(self, workload: str) -> PassStatus | None:
        with self.lock:
            return self.last_pass.get(workload)

    def list_status(self) -> list[PassStatus]:
        with self.lock:
            return list(self.last_pass.values())
