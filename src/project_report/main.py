"""Command-line entry point: run one project report, optionally serve it."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Sequence

import uvicorn
from pydantic import ValidationError

from project_report.domain.entities import ClassificationResult, RunReport, RunState
from project_report.infrastructure.config import Settings, get_settings
from project_report.interface.app import create_app
from project_report.interface.dependencies import build_completion_service, build_pipeline
from project_report.interface.presenter import render_console, write_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_CANCELLED = 3

# CLI flag -> Settings field
_OVERRIDES = {
    "root": "project_path",
    "depth": "collect_depth",
    "provider": "completion_provider",
    "model": "openai_model",
    "max_concurrency": "max_concurrency",
    "deadline": "run_deadline",
    "unknown_folders": "unknown_folder_policy",
    "host": "host",
    "port": "port",
    "log_level": "log_level",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-report",
        description=(
            "Ask a completion service which folders of a project hold source "
            "code, then summarise every code file in them."
        ),
    )
    parser.add_argument("--root", help="Project directory to analyse (PROJECT_PATH)")
    parser.add_argument(
        "--extra-folder", action="append", default=[], metavar="NAME",
        help="Additional folder (name or relative path) to re-validate; repeatable",
    )
    parser.add_argument(
        "--interactive", action="store_true",
        help="Review the classification and add folders until you type 'ok'",
    )
    parser.add_argument("--depth", type=int, help="Folder nesting depth shown to the classifier")
    parser.add_argument("--provider", choices=["openai", "llama"])
    parser.add_argument("--model", help="OpenAI model name")
    parser.add_argument("--max-concurrency", type=int, help="Maximum in-flight summary requests")
    parser.add_argument("--deadline", type=float, help="Stop issuing summary requests after N seconds")
    parser.add_argument("--unknown-folders", choices=["drop", "reject"])
    parser.add_argument("--output", help="Also write the report as JSON to this path")
    parser.add_argument("--serve", action="store_true", help="Serve the report over HTTP afterwards")
    parser.add_argument("--host")
    parser.add_argument("--port", type=int)
    parser.add_argument("--log-level")
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    overrides = {
        field: getattr(args, flag)
        for flag, field in _OVERRIDES.items()
        if getattr(args, flag) is not None
    }
    if not overrides:
        return get_settings()
    return Settings(**overrides)


def ask_for_more_folders(result: ClassificationResult) -> list[str]:
    """Interactive review: print the selection, read extra folder names."""
    print("Relevant folders: " + (", ".join(sorted(result.relevant_folders)) or "(none)"))
    try:
        answer = input("Folders to add (comma separated), or 'ok' to continue: ").strip()
    except EOFError:
        return []
    if not answer or answer.lower() == "ok":
        return []
    return [name.strip() for name in answer.split(",") if name.strip()]


async def run_report(settings: Settings, args: argparse.Namespace) -> RunReport:
    service = build_completion_service(settings)
    try:
        pipeline = build_pipeline(settings, service)
        return await pipeline.run(
            extra_folders=args.extra_folder,
            review=ask_for_more_folders if args.interactive else None,
            deadline=settings.run_deadline,
        )
    finally:
        await service.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the pipeline once; exit 0 on a report, non-zero on a fatal failure."""
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args)
    except ValidationError as exc:
        print(f"Configuration error:\n{exc}", file=sys.stderr)
        return EXIT_CONFIG

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    report = asyncio.run(run_report(settings, args))
    print(render_console(report))

    if args.output:
        write_report(report, args.output)

    if args.serve:
        logger.info("Serving report on http://%s:%d", settings.host, settings.port)
        uvicorn.run(
            create_app(report),
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )

    if report.state == RunState.FAILED:
        return EXIT_FAILED
    if report.state == RunState.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
