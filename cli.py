from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Docker Target Sync CLI")
    p.add_argument("--api", default="http://localhost:8000", help="Status API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("health", help="Show pipeline health")
    sub.add_parser("targets", help="List published scrape targets")

    s_ev = sub.add_parser("events", help="Show journal events")
    s_ev.add_argument("--limit", type=int, default=20)

    s_cy = sub.add_parser("cycles", help="Show recent reconciliation cycles")
    s_cy.add_argument("--limit", type=int, default=10)

    sub.add_parser("reconcile", help="Run a reconciliation cycle now")

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd in {"health", "targets"}:
        r = requests.get(f"{base}/{args.cmd}", timeout=10)
    elif args.cmd in {"events", "cycles"}:
        r = requests.get(f"{base}/{args.cmd}", params={"limit": args.limit}, timeout=10)
    elif args.cmd == "reconcile":
        r = requests.post(f"{base}/reconcile", timeout=30)
    else:
        return 2

    _print(r.json())
    return 0 if r.ok else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
