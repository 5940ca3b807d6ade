"""Lightweight REST client for the dfsrelay API."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import httpx


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the dfsrelay REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("slate", type=Path, help="Slate CSV")
    parser.add_argument("--sport", default="NBA", help="Sport key")
    parser.add_argument("--site", default="DK", help="Site key")
    parser.add_argument("--echo-only", action="store_true", help="Only confirm the upload and print a preview")
    parser.add_argument("--timeout", type=float, default=900.0, help="Request timeout in seconds")
    args = parser.parse_args()

    def make_files() -> dict[str, tuple[str, bytes, str]]:
        return {"file": (args.slate.name, args.slate.read_bytes(), "text/csv")}

    with httpx.Client(base_url=args.base_url, timeout=args.timeout) as client:
        if args.echo_only:
            resp = client.post("/api/echo", files=make_files())
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return

        resp = client.post("/api/submit", files=make_files(), data={"sport": args.sport, "site": args.site})
        payload = resp.json()
        if not payload.get("ok"):
            raise SystemExit(f"Pipeline failed ({resp.status_code}): {json.dumps(payload, indent=2)}")
        print("Debug:", json.dumps(payload["debug"], indent=2))
        lineups = payload.get("lineups") or []
        print(f"Received {len(lineups)} lineups")
        if lineups:
            print(json.dumps(lineups[0], indent=2))


if __name__ == "__main__":
    main()
