"""Command-line interface for relaying a slate CSV through the agent pipeline."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dfsrelay.config import load_settings
from dfsrelay.errors import RelayError
from dfsrelay.ingest import parse_csv
from dfsrelay.models import PipelineOptions, Slate
from dfsrelay.pipeline import PipelineOrchestrator, PipelineTrace
from dfsrelay.remote import JobClient


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Relay a DFS slate CSV through the remote agent pipeline")
    parser.add_argument("slate", type=Path, nargs="?", help="Path to slate CSV")
    parser.add_argument("--site", default="DK", help="Site key (e.g., DK, FD)")
    parser.add_argument("--sport", default="NBA", help="Sport key (e.g., NBA, NFL)")
    parser.add_argument("--lineups", type=int, default=20, help="Number of lineups to request")
    parser.add_argument("--salary-cap", type=int, default=50_000, help="Salary cap sent to the optimizer agent")
    parser.add_argument(
        "--min-salary",
        type=float,
        default=3500.0,
        help="Minimum salary kept by the local fallback parser",
    )
    parser.add_argument(
        "--max-players",
        type=int,
        default=120,
        help="Maximum players kept by the local fallback parser",
    )
    parser.add_argument("--output", type=Path, default=None, help="Write the JSON result here instead of stdout")
    parser.add_argument(
        "--local-only",
        action="store_true",
        help="Only run the local CSV parser and print the parsed players",
    )
    parser.add_argument("--serve", action="store_true", help="Serve the REST API instead of running a slate")
    parser.add_argument("--host", default="127.0.0.1", help="Host for --serve")
    parser.add_argument("--port", type=int, default=8000, help="Port for --serve")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def _run_pipeline(slate: Slate, options: PipelineOptions) -> tuple[dict, int]:
    settings = load_settings()
    trace = PipelineTrace()
    try:
        settings.require()
        async with JobClient.from_settings(settings) as client:
            result = await PipelineOrchestrator(client, settings, options=options).run(slate, trace)
    except RelayError as exc:
        payload = {"ok": False, "error": exc.message, "debug": trace.as_dict()}
        if exc.extra is not None:
            payload["extra"] = exc.extra
        return payload, 1
    return {"ok": True, "lineups": result.lineups, "debug": trace.as_dict()}, 0


def _emit(payload: object, output: Path | None) -> None:
    text = json.dumps(payload, indent=2)
    if output:
        output.write_text(text + "\n", encoding="utf-8")
        print(f"Result written to {output}")
    else:
        print(text)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.serve:
        import uvicorn

        from dfsrelay.api import create_app

        uvicorn.run(create_app(), host=args.host, port=args.port)
        return 0

    if args.slate is None:
        raise SystemExit("a slate CSV path is required unless using --serve")
    csv_text = args.slate.read_text(encoding="utf-8-sig")

    if args.local_only:
        players = parse_csv(csv_text, args.min_salary, args.max_players)
        _emit([player.model_dump(mode="json") for player in players], args.output)
        return 0 if players else 1

    slate = Slate(sport=args.sport, site=args.site, csv_text=csv_text)
    options = PipelineOptions(
        n_lineups=args.lineups,
        salary_cap=args.salary_cap,
        ingest_min_salary=args.min_salary,
        ingest_max_players=args.max_players,
    )
    payload, code = asyncio.run(_run_pipeline(slate, options))
    _emit(payload, args.output)
    return code


if __name__ == "__main__":
    sys.exit(main())
