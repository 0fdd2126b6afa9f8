"""Memory bank status reporter package."""
from __future__ import annotations

from pathlib import Path

from . import manifest, parser, renderer, status, vcs
from .parser import ChecklistProgress

__all__ = [
    "parser",
    "status",
    "vcs",
    "manifest",
    "renderer",
    "load_memory_bank",
]


def load_memory_bank(
    docs_path: Path,
    *,
    start_title: str | None = None,
    stop_title: str | None = None,
) -> dict[str, ChecklistProgress]:
    """Parse every required document under ``docs_path``, in display order.

    A ``start_title`` restricts ``progress.md`` to that section window; the
    other documents are always parsed whole.
    """
    results: dict[str, ChecklistProgress] = {}
    for path in manifest.validate_documents(docs_path):
        if start_title is not None and path.name == manifest.PROGRESS_DOCUMENT:
            results[path.name] = parser.parse_section(path, start_title, stop_title)
        else:
            results[path.name] = parser.parse_file(path)
    return results
