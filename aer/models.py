from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ObjectKey:
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class EnvEntry:
    name: str
    value: str = ""
    # Kubernetes `valueFrom` (secret/field refs). Carried through untouched.
    value_from: dict[str, Any] | None = field(default=None, hash=False)

    @classmethod
    def from_manifest(cls, item: dict[str, Any]) -> "EnvEntry":
        value_from = item.get("valueFrom")
        return cls(
            name=str(item["name"]),
            value=str(item.get("value", "")),
            value_from=copy.deepcopy(value_from) if value_from else None,
        )

    def to_manifest(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.value_from:
            out["valueFrom"] = copy.deepcopy(self.value_from)
        else:
            out["value"] = self.value
        return out


@dataclass
class Container:
    name: str
    env: list[EnvEntry] = field(default_factory=list)


@dataclass
class WorkloadDescriptor:
    """A transient copy of the remote workload object.

    `raw` holds the full manifest as fetched so that a write sends the whole
    object back with only the env lists replaced.
    """

    key: ObjectKey
    containers: list[Container] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    def find_container(self, name: str) -> Container | None:
        for c in self.containers:
            if c.name == name:
                return c
        return None

    def to_manifest(self) -> dict[str, Any]:
        manifest = copy.deepcopy(self.raw)
        manifest.setdefault("metadata", {})
        manifest["metadata"]["name"] = self.key.name
        manifest["metadata"]["namespace"] = self.key.namespace
        pod_spec = manifest.setdefault("spec", {}).setdefault("template", {}).setdefault("spec", {})
        raw_containers: list[dict[str, Any]] = pod_spec.setdefault("containers", [])

        by_name = {c.get("name"): c for c in raw_containers}
        for c in self.containers:
            target = by_name.get(c.name)
            if target is None:
                target = {"name": c.name}
                raw_containers.append(target)
                by_name[c.name] = target
            target["env"] = [e.to_manifest() for e in c.env]
        return manifest

    def as_dict(self) -> dict[str, Any]:
        return {
            "namespace": self.key.namespace,
            "name": self.key.name,
            "containers": [
                {"name": c.name, "env": [e.to_manifest() for e in c.env]} for c in self.containers
            ],
        }


def descriptor_from_manifest(key: ObjectKey, manifest: dict[str, Any]) -> WorkloadDescriptor:
    """Build a descriptor from a DaemonSet-shaped manifest.

    Reads spec.template.spec.containers[*].{name, env}.
    """
    pod_spec = (((manifest.get("spec") or {}).get("template") or {}).get("spec") or {})
    containers: list[Container] = []
    for item in pod_spec.get("containers") or []:
        env = [EnvEntry.from_manifest(e) for e in item.get("env") or []]
        containers.append(Container(name=str(item.get("name", "")), env=env))
    return WorkloadDescriptor(key=key, containers=containers, raw=copy.deepcopy(manifest))


@dataclass(frozen=True)
class ReconcileResult:
    key: ObjectKey
    container: str
    env: list[EnvEntry]
    wrote: bool
