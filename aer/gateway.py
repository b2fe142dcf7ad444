from __future__ import annotations

import copy
from typing import Any, Protocol

import docker
import httpx
from docker.errors import DockerException, NotFound

from .errors import FetchError, WriteError
from .models import Container, EnvEntry, ObjectKey, WorkloadDescriptor, descriptor_from_manifest
from .settings import Settings


class Gateway(Protocol):
    """Read/write boundary to the store that owns the workload object."""

    def read(self, key: ObjectKey) -> WorkloadDescriptor: ...

    def write(self, descriptor: WorkloadDescriptor) -> None: ...


class InMemoryGateway:
    """Dict-backed gateway. Hands out deep copies so passes never share state."""

    name = "memory"

    def __init__(self, objects: list[WorkloadDescriptor] | None = None) -> None:
        self._objects: dict[ObjectKey, WorkloadDescriptor] = {}
        self.reads = 0
        self.writes: list[WorkloadDescriptor] = []
        for d in objects or []:
            self.put(d)

    def put(self, descriptor: WorkloadDescriptor) -> None:
        self._objects[descriptor.key] = copy.deepcopy(descriptor)

    def get(self, key: ObjectKey) -> WorkloadDescriptor | None:
        d = self._objects.get(key)
        return copy.deepcopy(d) if d is not None else None

    def read(self, key: ObjectKey) -> WorkloadDescriptor:
        self.reads += 1
        d = self._objects.get(key)
        if d is None:
            raise FetchError(f"Workload {key} not found.", key=key, status_code=404)
        return copy.deepcopy(d)

    def write(self, descriptor: WorkloadDescriptor) -> None:
        stored = copy.deepcopy(descriptor)
        self.writes.append(stored)
        self._objects[stored.key] = copy.deepcopy(stored)


def _daemonset_path(key: ObjectKey) -> str:
    return f"/apis/apps/v1/namespaces/{key.namespace}/daemonsets/{key.name}"


class HttpGateway:
    """Kubernetes-style REST object store (GET/PUT of the whole DaemonSet)."""

    name = "http"

    def __init__(self, base_url: str, timeout_s: float = 10.0, transport: httpx.BaseTransport | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout_s,
            follow_redirects=False,
            transport=self._transport,
        )

    def ping(self) -> bool:
        try:
            with self._client() as client:
                resp = client.get("/healthz")
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

    def read(self, key: ObjectKey) -> WorkloadDescriptor:
        path = _daemonset_path(key)
        try:
            with self._client() as client:
                resp = client.get(path)
        except httpx.HTTPError as e:
            raise FetchError(f"GET {path} failed: {type(e).__name__}: {e}", key=key) from e
        if resp.status_code != 200:
            raise FetchError(f"GET {path} returned HTTP {resp.status_code}", key=key, status_code=resp.status_code)
        try:
            manifest = resp.json()
        except ValueError as e:
            raise FetchError(f"GET {path} returned invalid JSON", key=key, status_code=resp.status_code) from e
        if not isinstance(manifest, dict):
            raise FetchError(f"GET {path} returned {type(manifest).__name__}, expected object", key=key)
        return descriptor_from_manifest(key, manifest)

    def write(self, descriptor: WorkloadDescriptor) -> None:
        key = descriptor.key
        path = _daemonset_path(key)
        try:
            with self._client() as client:
                resp = client.put(path, json=descriptor.to_manifest())
        except httpx.HTTPError as e:
            raise WriteError(f"PUT {path} failed: {type(e).__name__}: {e}", key=key) from e
        if resp.status_code not in {200, 201}:
            raise WriteError(f"PUT {path} returned HTTP {resp.status_code}", key=key, status_code=resp.status_code)


LABEL_WORKLOAD = "aer.workload"
LABEL_NAMESPACE = "aer.namespace"
LABEL_CONTAINER = "aer.container"


def _parse_docker_env(items: list[str] | None) -> list[EnvEntry]:
    out: list[EnvEntry] = []
    for item in items or []:
        name, _, value = item.partition("=")
        if name:
            out.append(EnvEntry(name=name, value=value))
    return out


def _format_docker_env(env: list[EnvEntry]) -> list[str]:
    # Docker has no valueFrom; such entries cannot be expressed and are dropped.
    return [f"{e.name}={e.value}" for e in env if not e.value_from]


class DockerGateway:
    """Local Docker as the object store.

    A workload is the set of containers labelled aer.workload=<name> and
    aer.namespace=<namespace>. Replicas sharing an aer.container label form one
    logical container; its env is read from the first replica and written to
    all of them. Docker cannot edit env in place, so a write recreates every
    replica whose env differs.
    """

    name = "docker"

    def __init__(self, client: Any | None = None, network: str | None = None) -> None:
        self._c = client
        self.network = network

    def _client(self) -> Any:
        if self._c is None:
            self._c = docker.from_env()
        return self._c

    def read(self, key: ObjectKey) -> WorkloadDescriptor:
        filters = {"label": [f"{LABEL_WORKLOAD}={key.name}", f"{LABEL_NAMESPACE}={key.namespace}"]}
        try:
            found = self._client().containers.list(all=True, filters=filters)
        except DockerException as e:
            raise FetchError(f"Docker list failed: {type(e).__name__}: {e}", key=key) from e
        if not found:
            raise FetchError(f"No containers labelled for workload {key}.", key=key, status_code=404)

        containers: list[Container] = []
        replicas: dict[str, list[dict[str, Any]]] = {}  # logical container -> replica refs
        for x in found:
            labels = dict(x.labels or {})
            cname = labels.get(LABEL_CONTAINER) or x.name
            attrs = x.attrs or {}
            config = attrs.get("Config") or {}
            host_config = attrs.get("HostConfig") or {}
            env = _parse_docker_env(config.get("Env"))
            if cname not in replicas:
                containers.append(Container(name=cname, env=env))
                replicas[cname] = []
            replicas[cname].append(
                {
                    "id": x.id,
                    "name": x.name,
                    "image": config.get("Image"),
                    "command": config.get("Cmd"),
                    "labels": labels,
                    "restart_policy": host_config.get("RestartPolicy") or {"Name": "no"},
                    "env": [f"{e.name}={e.value}" for e in env],
                }
            )
        return WorkloadDescriptor(key=key, containers=containers, raw={"docker": replicas})

    def write(self, descriptor: WorkloadDescriptor) -> None:
        key = descriptor.key
        replicas: dict[str, list[dict[str, Any]]] = descriptor.raw.get("docker", {})
        for cont in descriptor.containers:
            refs = replicas.get(cont.name)
            if not refs:
                raise WriteError(f"Container '{cont.name}' was not read from Docker; cannot create it.", key=key)
            new_env = _format_docker_env(cont.env)
            for ref in refs:
                if sorted(new_env) == sorted(ref["env"]):
                    continue
                self._recreate(key, ref, new_env)

    def _recreate(self, key: ObjectKey, ref: dict[str, Any], env: list[str]) -> None:
        """Replace one replica; the old container is only removed once the new one runs."""
        c = self._client()
        try:
            old = c.containers.get(ref["id"])
        except NotFound:
            old = None
        except DockerException as e:
            raise WriteError(f"Looking up {ref['name']} failed: {type(e).__name__}: {e}", key=key) from e

        try:
            if old is not None:
                # Free the name for the replacement.
                old.rename(f"{ref['name']}-aer-old")
            c.containers.run(
                ref["image"],
                command=ref["command"],
                detach=True,
                name=ref["name"],
                environment=env,
                network=self.network,
                labels=ref["labels"],
                restart_policy=ref["restart_policy"],
            )
        except DockerException as e:
            detail = ""
            if old is not None:
                try:
                    old.rename(ref["name"])
                except DockerException as rename_err:
                    detail = f"; restoring the old name failed too: {rename_err}"
            raise WriteError(f"Recreating {ref['name']} failed: {type(e).__name__}: {e}{detail}", key=key) from e

        if old is not None:
            try:
                old.remove(force=True)
            except NotFound:
                pass
            except DockerException as e:
                raise WriteError(
                    f"{ref['name']} was recreated but removing the old container failed: {e}", key=key
                ) from e


def build_gateway(cfg: Settings) -> Gateway:
    """Pick the gateway backend named by AER_GATEWAY."""
    backend = cfg.gateway.strip().lower()
    if backend == "memory":
        return InMemoryGateway()
    if backend == "http":
        return HttpGateway(cfg.object_store_url, timeout_s=cfg.gateway_timeout_s)
    if backend == "docker":
        return DockerGateway(network=cfg.docker_network)
    raise ValueError(f"Unknown gateway backend '{cfg.gateway}'. Use memory, http or docker.")
