from __future__ import annotations

import argparse
import json
import sys

import requests

from aer.errors import OverridesError
from aer.overrides import load_overrides, parse_env_pairs


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _body(r: requests.Response):
    try:
        return r.json()
    except ValueError:
        return {"status_code": r.status_code, "text": r.text}


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Agent Env Reconciler CLI")
    p.add_argument("--api", default="http://localhost:8000", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_rec = sub.add_parser("reconcile", help="Run one reconcile pass")
    s_rec.add_argument("--env", action="append", default=[], metavar="NAME=VALUE", help="Override (repeatable, last wins)")
    s_rec.add_argument("--overrides-file", help="JSON overrides document; --env entries are applied after it")
    s_rec.add_argument("--name", help="Workload name")
    s_rec.add_argument("--namespace", help="Workload namespace")
    s_rec.add_argument("--container", help="Target container name")
    s_rec.add_argument("--skip-unchanged", action="store_true", help="Skip the write when nothing changed")

    s_show = sub.add_parser("show", help="Show a workload's containers and env")
    s_show.add_argument("--namespace", required=True)
    s_show.add_argument("--name", required=True)

    sub.add_parser("status", help="Last pass per workload")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)

    s_pass = sub.add_parser("passes", help="Show pass history")
    s_pass.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "reconcile":
        payload: dict = {
            "name": args.name,
            "namespace": args.namespace,
            "container": args.container,
        }
        if args.skip_unchanged:
            payload["skip_unchanged"] = True
        if args.overrides_file or args.env:
            try:
                entries = load_overrides(args.overrides_file) if args.overrides_file else []
                entries += parse_env_pairs(args.env)
            except OverridesError as e:
                print(f"error: {e}", file=sys.stderr)
                return 2
            payload["overrides"] = [{"name": e.name, "value": e.value} for e in entries]
        # No overrides given: the server falls back to its configured file.
        r = requests.post(f"{base}/reconcile", json=payload, timeout=30)
        _print(_body(r))
        return 0 if r.ok else 1

    if args.cmd == "show":
        r = requests.get(f"{base}/workloads/{args.namespace}/{args.name}", timeout=10)
        _print(_body(r))
        return 0 if r.ok else 1

    if args.cmd == "status":
        r = requests.get(f"{base}/status", timeout=10)
        _print(_body(r))
        return 0 if r.ok else 1

    if args.cmd == "events":
        r = requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10)
        _print(_body(r))
        return 0 if r.ok else 1

    if args.cmd == "passes":
        r = requests.get(f"{base}/passes", params={"limit": args.limit}, timeout=10)
        _print(_body(r))
        return 0 if r.ok else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
