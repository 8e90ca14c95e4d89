"""Command-line entry point for the dungeon crawler tools."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Sequence

from dungeoncrawler import (
    Dungeon,
    configure_logging,
    export_document,
    import_dungeons,
    validate_dungeon,
)
from dungeoncrawler.logging_utils import LOG_LEVELS

logger = logging.getLogger("dungeoncrawler.cli")


def _load_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except OSError as exc:
        print(f"Failed to read '{path}': {exc}")
        raise SystemExit(2) from exc
    except ValueError as exc:
        print(f"'{path}' does not contain valid JSON: {exc}")
        raise SystemExit(2) from exc


def _load_dungeons(path: Path, *, first_only: bool) -> list[Dungeon]:
    data = _load_json(path)
    try:
        dungeons = import_dungeons(data)
    except ValueError as exc:
        print(f"Failed to import dungeons from '{path}': {exc}")
        raise SystemExit(2) from exc

    if first_only:
        dungeons = dungeons[:1]
    logger.debug("Loaded %d dungeon(s) from %s", len(dungeons), path)
    return dungeons


def _run_validate(args: argparse.Namespace) -> int:
    dungeons = _load_dungeons(args.path, first_only=args.first_only)

    failures = 0
    for dungeon in dungeons:
        result = validate_dungeon(dungeon)
        label = dungeon.name or dungeon.id
        if result.valid:
            print(f"{label}: valid")
            continue
        failures += 1
        print(f"{label}: invalid")
        for issue in result.errors:
            print(f"  {issue.field}: {issue.message}")

    if failures:
        logger.warning("%d of %d dungeon(s) failed validation", failures, len(dungeons))
        return 1
    return 0


def _run_convert(args: argparse.Namespace) -> int:
    dungeons = _load_dungeons(args.path, first_only=args.first_only)
    rendered = json.dumps(export_document(dungeons), ensure_ascii=False, indent=2)

    if args.output is None:
        print(rendered)
        return 0

    try:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(rendered + "\n", encoding="utf-8")
    except OSError as exc:
        print(f"Failed to write '{args.output}': {exc}")
        raise SystemExit(2) from exc

    print(f"Wrote {len(dungeons)} dungeon(s) to '{args.output}'.")
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "dungeoncrawler.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )
    return 0


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dungeon crawler toolkit")
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging verbosity (default: INFO).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Check the dungeons stored in a JSON file.",
    )
    validate_parser.add_argument("path", type=Path, help="Dungeon or legacy JSON file.")
    validate_parser.add_argument(
        "--first-only",
        action="store_true",
        help="Only consider the first dungeon found in the file.",
    )
    validate_parser.set_defaults(handler=_run_validate)

    convert_parser = subparsers.add_parser(
        "convert",
        help="Rewrite a legacy or current file as a current-format export.",
    )
    convert_parser.add_argument("path", type=Path, help="Dungeon or legacy JSON file.")
    convert_parser.add_argument(
        "--output",
        type=Path,
        help="Destination file. The document is printed when omitted.",
    )
    convert_parser.add_argument(
        "--first-only",
        action="store_true",
        help="Only keep the first dungeon found in the file.",
    )
    convert_parser.set_defaults(handler=_run_convert)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve_parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface for the API server.",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port where the API server should listen.",
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change.",
    )
    serve_parser.set_defaults(handler=_run_serve)

    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    """Run the requested sub-command and exit with its status."""

    args = _parse_args(argv)
    configure_logging(args.log_level)
    status = args.handler(args)
    if status:
        raise SystemExit(status)


if __name__ == "__main__":
    main()
