from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("AER_DB_PATH", "aer.db")
    poll_interval_s: int = _env_int("AER_POLL_INTERVAL_S", 30)
    enable_loop: bool = _env_bool("AER_ENABLE_LOOP", False)

    # Target identity
    workload_name: str = os.getenv("AER_WORKLOAD_NAME", "aws-node")
    namespace: str = os.getenv("AER_NAMESPACE", "kube-system")
    container_name: str = os.getenv("AER_CONTAINER_NAME", "aws-node")

    # Gateway backend: memory|http|docker
    gateway: str = os.getenv("AER_GATEWAY", "memory")
    object_store_url: str = os.getenv("AER_OBJECT_STORE_URL", "http://localhost:8001")
    gateway_timeout_s: int = _env_int("AER_GATEWAY_TIMEOUT_S", 10)
    docker_network: str = os.getenv("AER_DOCKER_NETWORK", "aer")

    # Overrides
    overrides_file: str | None = os.getenv("AER_OVERRIDES_FILE")

    # Behavior knobs
    # Off by default: every pass writes, even when the env did not change.
    skip_unchanged: bool = _env_bool("AER_SKIP_UNCHANGED", False)
    # The agent workload is managed by someone else; passes become no-ops.
    disable_agent: bool = _env_bool("AER_DISABLE_AGENT", False)


settings = Settings()
