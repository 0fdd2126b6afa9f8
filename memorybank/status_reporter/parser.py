"""Parsing utilities for memory bank checklists."""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .status import Status, classify_status

logger = logging.getLogger(__name__)

SECTION_RE = re.compile(r"^##[ \t]+(.*)$")
SUBSECTION_RE = re.compile(r"^###[ \t]+(.*)$")
ITEM_RE = re.compile(r"^-[ \t]+(.*)$")

DEFAULT_SUBSECTION_TITLE = "Default"


class ChecklistParseError(ValueError):
    """Raised when a document cannot be turned into a checklist tree."""


class StructuralParseError(ChecklistParseError):
    """A header or item appeared out of hierarchical order."""

    def __init__(
        self, message: str, *, line_number: int | None = None, line: str | None = None
    ) -> None:
        if line_number is not None:
            message = f"{message} (line {line_number})"
        super().__init__(message)
        self.line_number = line_number
        self.line = line


class SectionNotFoundError(ChecklistParseError):
    """The start section of a section window never appeared."""

    def __init__(self, title: str) -> None:
        super().__init__(f"No {title} section found")
        self.title = title


@dataclass(frozen=True)
class ChecklistItem:
    text: str
    status: Status = Status.PENDING

    def to_dict(self) -> dict[str, object]:
        return {"text": self.text, "status": self.status.value}


@dataclass(frozen=True)
class ChecklistSubsection:
    title: str
    items: tuple[ChecklistItem, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {"title": self.title, "items": [item.to_dict() for item in self.items]}


@dataclass(frozen=True)
class ChecklistSection:
    title: str
    subsections: tuple[ChecklistSubsection, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "title": self.title,
            "subsections": [subsection.to_dict() for subsection in self.subsections],
        }


@dataclass(frozen=True)
class ChecklistProgress:
    """Root of a parsed document: sections in document order."""

    sections: tuple[ChecklistSection, ...] = ()

    def iter_items(
        self,
    ) -> Iterator[tuple[ChecklistSection, ChecklistSubsection, ChecklistItem]]:
        for section in self.sections:
            for subsection in section.subsections:
                for item in subsection.items:
                    yield section, subsection, item

    def to_dict(self) -> dict[str, Any]:
        return {"sections": [section.to_dict() for section in self.sections]}


class LineKind(str, Enum):
    SECTION = "section"
    SUBSECTION = "subsection"
    ITEM = "item"


@dataclass(frozen=True)
class ParsedLine:
    kind: LineKind
    title: str = ""
    item: ChecklistItem | None = None


def parse_line(raw_line: str) -> ParsedLine | None:
    """Classify one raw line; ``None`` means the line carries no checklist data.

    Markers must start at column 0. ``##`` never matches a ``###`` line since
    the section pattern requires whitespace right after the second hash.
    """
    if not raw_line.strip():
        return None
    match = SECTION_RE.match(raw_line)
    if match:
        return ParsedLine(LineKind.SECTION, title=match.group(1).strip())
    match = SUBSECTION_RE.match(raw_line)
    if match:
        return ParsedLine(LineKind.SUBSECTION, title=match.group(1).strip())
    match = ITEM_RE.match(raw_line)
    if match:
        status, text = classify_status(match.group(1))
        return ParsedLine(LineKind.ITEM, item=ChecklistItem(text=text, status=status))
    return None


@dataclass
class _SubsectionDraft:
    title: str
    items: list[ChecklistItem] = field(default_factory=list)

    def freeze(self) -> ChecklistSubsection:
        return ChecklistSubsection(self.title, tuple(self.items))


@dataclass
class _SectionDraft:
    title: str
    subsections: list[_SubsectionDraft] = field(default_factory=list)

    def freeze(self) -> ChecklistSection:
        return ChecklistSection(
            self.title, tuple(subsection.freeze() for subsection in self.subsections)
        )


class ChecklistBuilder:
    """Accumulates lines of one document into a checklist tree.

    The builder is scratch state for a single parse: create one per document
    and call :meth:`build` once all lines have been fed.
    """

    done = False

    def __init__(self) -> None:
        self._sections: list[_SectionDraft] = []
        self._section: _SectionDraft | None = None
        self._subsection: _SubsectionDraft | None = None
        self._line_number = 0

    def feed(self, raw_line: str) -> None:
        self._line_number += 1
        parsed = parse_line(raw_line)
        if parsed is not None:
            self.apply(parsed, self._line_number, raw_line)

    def apply(
        self, parsed: ParsedLine, line_number: int | None = None, raw_line: str | None = None
    ) -> None:
        if parsed.kind is LineKind.SECTION:
            self._start_section(parsed.title)
        elif parsed.kind is LineKind.SUBSECTION:
            if self._section is None:
                raise StructuralParseError(
                    "Found subsection before section", line_number=line_number, line=raw_line
                )
            self._start_subsection(parsed.title)
        elif parsed.item is not None:
            if self._section is None:
                raise StructuralParseError(
                    "Found item before section", line_number=line_number, line=raw_line
                )
            self._ensure_subsection().items.append(parsed.item)

    def _start_section(self, title: str) -> None:
        self._section = _SectionDraft(title)
        self._sections.append(self._section)
        self._subsection = None

    def _start_subsection(self, title: str) -> None:
        assert self._section is not None
        self._subsection = _SubsectionDraft(title)
        self._section.subsections.append(self._subsection)

    def _ensure_subsection(self) -> _SubsectionDraft:
        # Items directly under a section land in a synthesized "Default" subsection.
        if self._subsection is None:
            self._start_subsection(DEFAULT_SUBSECTION_TITLE)
        assert self._subsection is not None
        return self._subsection

    def build(self) -> ChecklistProgress:
        return ChecklistProgress(tuple(section.freeze() for section in self._sections))


class SectionWindowBuilder:
    """Builds only the part of a document between two named sections.

    Lines before the ``start_title`` section are discarded. Once started, a
    section titled ``stop_title`` ends processing; every other section in
    between is kept.
    """

    def __init__(self, start_title: str, stop_title: str | None = None) -> None:
        self.start_title = start_title
        self.stop_title = stop_title
        self._builder = ChecklistBuilder()
        self._started = False
        self._stopped = False
        self._line_number = 0

    @property
    def done(self) -> bool:
        return self._stopped

    def feed(self, raw_line: str) -> None:
        self._line_number += 1
        if self._stopped:
            return
        parsed = parse_line(raw_line)
        if parsed is None:
            return
        if parsed.kind is LineKind.SECTION:
            if not self._started:
                if parsed.title != self.start_title:
                    return
                self._started = True
            elif self.stop_title is not None and parsed.title == self.stop_title:
                logger.debug("Reached stop section %r at line %d", parsed.title, self._line_number)
                self._stopped = True
                return
        elif not self._started:
            return
        self._builder.apply(parsed, self._line_number, raw_line)

    def build(self) -> ChecklistProgress:
        if not self._started:
            raise SectionNotFoundError(self.start_title)
        return self._builder.build()


def build_progress(
    lines: Iterable[str],
    builder: ChecklistBuilder | SectionWindowBuilder | None = None,
) -> ChecklistProgress:
    active = builder if builder is not None else ChecklistBuilder()
    for raw_line in lines:
        active.feed(raw_line)
        if active.done:
            break
    return active.build()


def read_document(path: str | Path) -> str:
    """Read a whole document; I/O errors propagate unchanged."""
    return Path(path).read_text(encoding="utf-8-sig", errors="replace")


def parse_text(
    text: str, *, start_title: str | None = None, stop_title: str | None = None
) -> ChecklistProgress:
    builder: ChecklistBuilder | SectionWindowBuilder
    if start_title is not None:
        builder = SectionWindowBuilder(start_title, stop_title)
    else:
        builder = ChecklistBuilder()
    # Only "\n" ends a line; read_text has already folded "\r\n" and "\r" into it.
    return build_progress(text.split("\n"), builder)


def parse_file(path: str | Path) -> ChecklistProgress:
    """Parse every checklist section of the markdown file at ``path``.

    Raises ``OSError`` when the file cannot be read and
    :class:`StructuralParseError` when a subsection or item precedes the
    first section.
    """
    progress = parse_text(read_document(path))
    logger.debug(
        "Parsed %s: %d sections, %d items",
        path,
        len(progress.sections),
        sum(1 for _ in progress.iter_items()),
    )
    return progress


def parse_section(
    path: str | Path, start_title: str, stop_title: str | None = None
) -> ChecklistProgress:
    """Parse only the window from ``start_title`` up to ``stop_title``.

    Raises :class:`SectionNotFoundError` when no section is titled
    ``start_title``.
    """
    progress = parse_text(read_document(path), start_title=start_title, stop_title=stop_title)
    logger.debug(
        "Parsed %s from section %r: %d sections", path, start_title, len(progress.sections)
    )
    return progress
