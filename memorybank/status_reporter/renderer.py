"""Rendering utilities for checklist progress reports."""
from __future__ import annotations

from collections import Counter

from .parser import (
    DEFAULT_SUBSECTION_TITLE,
    ChecklistItem,
    ChecklistProgress,
    ChecklistSection,
    ChecklistSubsection,
)
from .status import Status
from .vcs import TrackingState

VisibleSubsection = tuple[ChecklistSubsection, list[ChecklistItem]]


def visible_sections(
    progress: ChecklistProgress, incomplete_only: bool = False
) -> list[tuple[ChecklistSection, list[VisibleSubsection]]]:
    """Sections and items to print.

    With ``incomplete_only`` completed items are dropped, along with any
    subsection or section left without items.
    """
    results = []
    for section in progress.sections:
        subsections: list[VisibleSubsection] = []
        for subsection in section.subsections:
            items = [
                item
                for item in subsection.items
                if not (incomplete_only and item.status.is_complete)
            ]
            if incomplete_only and not items:
                continue
            subsections.append((subsection, items))
        if incomplete_only and not subsections:
            continue
        results.append((section, subsections))
    return results


def format_item_line(item: ChecklistItem) -> str:
    glyph = item.status.glyph
    return f"- {glyph} {item.text}" if glyph else f"- {item.text}"


def render_progress(progress: ChecklistProgress, *, incomplete_only: bool = False) -> str:
    lines: list[str] = []
    for section, subsections in visible_sections(progress, incomplete_only):
        lines.append(f"## {section.title}")
        for subsection, items in subsections:
            if subsection.title != DEFAULT_SUBSECTION_TITLE:
                lines.append(f"### {subsection.title}")
            lines.extend(format_item_line(item) for item in items)
        lines.append("")
    return "\n".join(lines).rstrip("\n")


def status_counts(progress: ChecklistProgress) -> Counter[Status]:
    counts: Counter[Status] = Counter()
    for _, _, item in progress.iter_items():
        counts[item.status] += 1
    return counts


def format_summary(progress: ChecklistProgress) -> str:
    counts = status_counts(progress)
    total = sum(counts.values())
    if not total:
        return "No checklist items"
    completed = counts[Status.COMPLETED]
    percent = round(completed * 100 / total)
    return (
        f"Completed {completed}/{total} ({percent}%) "
        f"| partial: {counts[Status.PARTIALLY_IMPLEMENTED]} "
        f"| not implemented: {counts[Status.NOT_IMPLEMENTED]} "
        f"| pending: {counts[Status.PENDING]}"
    )


def render_document(
    name: str,
    progress: ChecklistProgress,
    tracking: TrackingState,
    *,
    incomplete_only: bool = False,
) -> str:
    header = f"# {name} [{tracking.value}]"
    lines = [header, format_summary(progress)]
    if incomplete_only:
        lines.append("(Showing only incomplete items)")
    body = render_progress(progress, incomplete_only=incomplete_only)
    if body:
        lines.extend(["", body])
    return "\n".join(lines)
