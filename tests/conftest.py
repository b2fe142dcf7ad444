import dataclasses
import sys

import pytest

# Ensure project root is importable (so `import main` / `import cli` work without installing)
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from aer import db  # noqa: E402
from aer.models import Container, EnvEntry, ObjectKey, WorkloadDescriptor  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    """Point the event log at a throwaway sqlite file for every test."""
    monkeypatch.setattr(db, "settings", dataclasses.replace(db.settings, db_path=str(tmp_path / "aer.db")))
    db.init_db()
    return tmp_path / "aer.db"


@pytest.fixture
def aws_node_key():
    return ObjectKey(namespace="kube-system", name="aws-node")


def make_descriptor(key, env=None, container="aws-node", extra_containers=()):
    containers = [Container(name=container, env=list(env or []))]
    containers += [Container(name=n) for n in extra_containers]
    return WorkloadDescriptor(key=key, containers=containers)


def pairs(entries):
    return {(e.name, e.value) for e in entries}


def entry(name, value):
    return EnvEntry(name=name, value=value)
