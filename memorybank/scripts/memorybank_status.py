#!/usr/bin/env python3
"""CLI entrypoint for the memory bank status reporter."""
from __future__ import annotations

import argparse
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from memorybank.status_reporter import load_memory_bank, manifest, parser, renderer, vcs
from memorybank.status_reporter.parser import ChecklistParseError, ChecklistProgress
from memorybank.status_reporter.status import Status

DEFAULT_DOCS_DIRNAME = "memory-bank"
DOCS_PATH_ENV = "MEMORYBANK_DOCS_PATH"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

logger = logging.getLogger("memorybank.status_reporter.cli")

_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES and key not in payload:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(verbose: bool = False, quiet: bool = False, json_output: bool = False) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter() if json_output else logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler])


def resolve_docs_path(path: str | None) -> Path:
    value = path or os.environ.get(DOCS_PATH_ENV)
    if value:
        resolved = Path(value).expanduser().resolve()
    else:
        resolved = (Path.cwd() / DEFAULT_DOCS_DIRNAME).resolve()
    if not resolved.is_dir():
        raise SystemExit(f"Docs path does not exist: {resolved}")
    return resolved


def resolve_file(path: str) -> Path:
    return Path(path).expanduser().resolve()


def load_progress(path: Path, args: argparse.Namespace) -> ChecklistProgress:
    section = getattr(args, "section", None)
    if section:
        return parser.parse_section(path, section, getattr(args, "stop_section", None))
    return parser.parse_file(path)


def command_report(args: argparse.Namespace) -> None:
    git = vcs.GitClient.discover(args.git)
    if args.file:
        path = resolve_file(args.file)
        progress = load_progress(path, args)
        print(
            renderer.render_document(
                path.name,
                progress,
                git.tracking_state(path),
                incomplete_only=args.incomplete,
            )
        )
        return
    docs_path = resolve_docs_path(args.docs_path)
    logger.info("Reading memory bank at %s", docs_path)
    # Everything is parsed before printing so a bad document yields no partial report.
    documents = load_memory_bank(
        docs_path, start_title=args.section, stop_title=args.stop_section
    )
    reports = [
        renderer.render_document(
            name,
            progress,
            git.tracking_state(docs_path / name),
            incomplete_only=args.incomplete,
        )
        for name, progress in documents.items()
    ]
    print("\n\n".join(reports))


def command_parse(args: argparse.Namespace) -> None:
    progress = load_progress(resolve_file(args.file), args)
    print(json.dumps(progress.to_dict(), indent=2, ensure_ascii=False))


def command_check(args: argparse.Namespace) -> None:
    docs_path = resolve_docs_path(args.docs_path)
    git = vcs.GitClient.discover(args.git)
    if not git.available:
        logger.info("git executable not found; tracking state unavailable")
    manifest_data = manifest.build_manifest(docs_path, git)
    rows: list[tuple[str, str, str]] = []
    failures = 0
    for entry in manifest.manifest_table(manifest_data):
        if not entry["exists"]:
            rows.append((entry["file"], "missing", "-"))
            failures += 1
            continue
        try:
            progress = parser.parse_file(Path(entry["path"]))
        except (OSError, ChecklistParseError) as exc:
            logger.error("Failed to parse %s: %s", entry["file"], exc)
            rows.append((entry["file"], "error", "-"))
            failures += 1
            continue
        counts = renderer.status_counts(progress)
        done = f"{counts[Status.COMPLETED]}/{sum(counts.values())}"
        rows.append((entry["file"], entry["tracking"], done))
    print_status_table(rows, manifest_data)
    if failures:
        raise SystemExit(1)


def print_status_table(rows: list[tuple[str, str, str]], manifest_data: Mapping[str, Any]) -> None:
    print("File".ljust(30), "Status".ljust(12), "Completed")
    print("-" * 55)
    for file_name, state, done in rows:
        print(file_name.ljust(30), state.ljust(12), done)
    metadata = manifest_data.get("metadata", {})
    print("\nDocs path:", metadata.get("docs_path", "-"))
    print("Remote URL:", metadata.get("remote_url") or "Could not determine remote URL")
    print("Last check:", metadata.get("checked_at", "never"))


def add_window_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--section",
        help="Only parse from the section with this title (progress.md in docs mode)",
    )
    subparser.add_argument(
        "--stop-section",
        help="Stop parsing at the section with this title (requires --section)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser_obj = argparse.ArgumentParser(description="Report memory bank checklist progress")
    parser_obj.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser_obj.add_argument("--quiet", action="store_true", help="Only log errors")
    parser_obj.add_argument("--json", action="store_true", help="Emit log records as JSON lines")
    subparsers = parser_obj.add_subparsers(dest="command")

    report_parser = subparsers.add_parser("report", help="Print checklist progress")
    report_parser.add_argument("file", nargs="?", help="Report a single markdown file")
    report_parser.add_argument(
        "--docs-path",
        help=f"Memory bank directory (overrides {DOCS_PATH_ENV}, defaults to ./{DEFAULT_DOCS_DIRNAME})",
    )
    report_parser.add_argument(
        "--incomplete", action="store_true", help="Only show items that are not completed"
    )
    report_parser.add_argument("--git", help="git executable (overrides MEMORYBANK_GIT)")
    add_window_arguments(report_parser)
    report_parser.set_defaults(func=command_report)

    parse_parser = subparsers.add_parser("parse", help="Dump a file's checklist as JSON")
    parse_parser.add_argument("file", help="Markdown file to parse")
    add_window_arguments(parse_parser)
    parse_parser.set_defaults(func=command_parse)

    check_parser = subparsers.add_parser("check", help="Check documents and git tracking state")
    check_parser.add_argument(
        "--docs-path",
        help=f"Memory bank directory (overrides {DOCS_PATH_ENV}, defaults to ./{DEFAULT_DOCS_DIRNAME})",
    )
    check_parser.add_argument("--git", help="git executable (overrides MEMORYBANK_GIT)")
    check_parser.set_defaults(func=command_check)

    return parser_obj


def main(argv: list[str] | None = None) -> None:
    parser_obj = build_parser()
    args = parser_obj.parse_args(argv)
    if not getattr(args, "command", None):
        parser_obj.print_help()
        return
    if getattr(args, "stop_section", None) and not getattr(args, "section", None):
        parser_obj.error("--stop-section requires --section")
    configure_logging(args.verbose, args.quiet, args.json)
    try:
        args.func(args)
    except (OSError, ChecklistParseError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
