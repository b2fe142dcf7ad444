from __future__ import annotations

import time
from threading import Thread
from typing import Callable, Sequence

from . import db
from .errors import ContainerNotFoundError, OverridesError, ReconcileError
from .gateway import Gateway
from .merge import env_equal, merge_env
from .models import EnvEntry, ObjectKey, ReconcileResult
from .runtime import PassStatus, RuntimeState
from .settings import settings


def reconcile(
    gateway: Gateway,
    key: ObjectKey,
    container_name: str,
    overrides: Sequence[EnvEntry],
    *,
    skip_unchanged: bool = False,
) -> ReconcileResult:
    """Run one fetch-merge-write pass against `key`.

    Raises FetchError, ContainerNotFoundError or WriteError; none of them is
    retried here. Writes even when nothing changed unless `skip_unchanged`.
    """
    descriptor = gateway.read(key)

    container = descriptor.find_container(container_name)
    if container is None:
        raise ContainerNotFoundError(container_name, key)

    original = list(container.env)
    merged = merge_env(original, overrides)
    container.env = merged

    if skip_unchanged and env_equal(original, merged):
        return ReconcileResult(key=key, container=container_name, env=merged, wrote=False)

    gateway.write(descriptor)
    return ReconcileResult(key=key, container=container_name, env=merged, wrote=True)


class Reconciler:
    """Runs reconcile passes for one target and keeps a record of them."""

    def __init__(
        self,
        gateway: Gateway,
        runtime: RuntimeState,
        key: ObjectKey | None = None,
        container_name: str | None = None,
        overrides_loader: Callable[[], list[EnvEntry]] | None = None,
        skip_unchanged: bool | None = None,
    ):
        self.gateway = gateway
        self.runtime = runtime
        self.key = key or ObjectKey(namespace=settings.namespace, name=settings.workload_name)
        self.container_name = container_name or settings.container_name
        self.overrides_loader = overrides_loader or (lambda: [])
        self.skip_unchanged = settings.skip_unchanged if skip_unchanged is None else skip_unchanged
        self._stop = False
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop = False
        self._thr = Thread(target=self._loop, daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop = True

    def _loop(self) -> None:
        db.log_event("INFO", "Reconciler started", workload=str(self.key), container=self.container_name)
        while not self._stop:
            try:
                self._tick()
            except Exception as e:
                db.log_event("ERROR", f"Reconciler tick failed: {type(e).__name__}: {e}", workload=str(self.key))
            time.sleep(max(1, settings.poll_interval_s))

    def _tick(self) -> None:
        try:
            self.run_once()
        except (ReconcileError, OverridesError):
            # Already recorded by run_once; the next tick is the retry.
            pass

    def run_once(
        self,
        overrides: Sequence[EnvEntry] | None = None,
        *,
        key: ObjectKey | None = None,
        container_name: str | None = None,
        skip_unchanged: bool | None = None,
    ) -> PassStatus:
        """Run one pass, log it and record it. Pass errors are re-raised."""
        key = key or self.key
        container_name = container_name or self.container_name
        skip = self.skip_unchanged if skip_unchanged is None else skip_unchanged
        workload = str(key)

        if settings.disable_agent:
            st = PassStatus(workload, container_name, "skipped", False, "Agent workload disabled; pass skipped.")
            self._record(st, level="WARN")
            return st

        if overrides is None:
            try:
                overrides = self.overrides_loader()
            except OverridesError as e:
                st = PassStatus(workload, container_name, "failed", False, f"{type(e).__name__}: {e}")
                self._record(st, level="ERROR")
                raise

        try:
            result = reconcile(self.gateway, key, container_name, overrides, skip_unchanged=skip)
        except ReconcileError as e:
            st = PassStatus(workload, container_name, "failed", False, f"{type(e).__name__}: {e}")
            self._record(st, level="ERROR")
            raise

        if result.wrote:
            msg = f"Wrote {len(result.env)} env entries ({len(overrides)} overrides applied)."
        else:
            msg = f"Env unchanged ({len(result.env)} entries); write skipped."
        st = PassStatus(workload, container_name, "ok", result.wrote, msg, env_count=len(result.env), env=result.env)
        self._record(st, level="INFO")
        return st

    def _record(self, st: PassStatus, level: str) -> None:
        self.runtime.set_status(st)
        db.record_pass(st.workload, st.container, st.state, st.wrote, st.message, env_count=st.env_count)
        db.log_event(level, st.message, workload=st.workload, container=st.container)
