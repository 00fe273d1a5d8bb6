"""CLI entrypoint: run the resource pipeline over a roadmap JSON file, or serve the API."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
import sys

from config import get_settings
from core import PipelineResult
from orchestrator.roadmap_service import build_service, validate_request
from utils.exceptions import InvalidRoadmapInputError
from utils.logger import configure_logging


def _load_json(path: str):
    raw = Path(path).read_text(encoding="utf-8").strip()
    if not raw:
        return {}
    return json.loads(raw)


async def _run(args: argparse.Namespace) -> PipelineResult:
    request = validate_request(_load_json(args.input))
    service = build_service()
    try:
        if args.command == "generate":
            return await service.generate(request, fast_mode=args.fast)
        if args.command == "adapt":
            return await service.adapt(
                request,
                new_hours_per_day=args.hours_per_day,
                total_days=args.total_days,
                fast_mode=args.fast,
            )
        return await service.backfill(request, fast_mode=args.fast)
    finally:
        await service.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Roadmap resource pipeline CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("generate", "adapt", "backfill"):
        cmd = sub.add_parser(name)
        cmd.add_argument("--input", required=True, help="roadmap JSON file")
        cmd.add_argument("--output", default="", help="write result JSON here instead of stdout")
        cmd.add_argument("--fast", action="store_true", help="trim query fan-out")
        if name == "adapt":
            cmd.add_argument("--hours-per-day", type=float, default=None)
            cmd.add_argument("--total-days", type=int, default=None)

    serve = sub.add_parser("serve")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    settings = get_settings()
    configure_logging(settings.general.log_level, settings.general.log_file)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("webapp.app:app", host=args.host, port=args.port)
        return

    try:
        result = asyncio.run(_run(args))
    except InvalidRoadmapInputError as exc:
        print(json.dumps({"error": exc.message, **exc.details}, ensure_ascii=False), file=sys.stderr)
        sys.exit(2)

    text = json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(json.dumps({"output": args.output, "assigned": result.diagnostics.total_assigned}, ensure_ascii=False))
        return
    print(text)


if __name__ == "__main__":
    main()
