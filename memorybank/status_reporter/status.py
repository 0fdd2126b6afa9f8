"""Status markers recognised at the start of checklist items."""
from __future__ import annotations

from enum import Enum

VARIATION_SELECTORS = "\ufe0f\ufe0e"


class Status(str, Enum):
    COMPLETED = "completed"
    PARTIALLY_IMPLEMENTED = "partially implemented"
    NOT_IMPLEMENTED = "not implemented"
    PENDING = "pending"

    @property
    def glyph(self) -> str:
        return STATUS_GLYPHS.get(self, "")

    @property
    def is_complete(self) -> bool:
        return self is Status.COMPLETED


# Base code points only; a trailing variation selector is dropped after matching.
STATUS_MARKERS: dict[str, Status] = {
    "✅": Status.COMPLETED,
    "⚠": Status.PARTIALLY_IMPLEMENTED,
    "❌": Status.NOT_IMPLEMENTED,
}

STATUS_GLYPHS: dict[Status, str] = {
    Status.COMPLETED: "✅",
    Status.PARTIALLY_IMPLEMENTED: "\u26a0\ufe0f",
    Status.NOT_IMPLEMENTED: "❌",
}


def classify_status(text: str) -> tuple[Status, str]:
    """Split list-item text into its status and the remaining description.

    ``text`` is the item content after the ``- `` marker. Only a marker at the
    very start counts; anything else leaves the item ``PENDING`` with the
    trimmed text untouched.
    """
    stripped = text.strip()
    for marker, status in STATUS_MARKERS.items():
        if stripped.startswith(marker):
            remainder = stripped[len(marker):].lstrip(VARIATION_SELECTORS)
            return status, remainder.strip()
    return Status.PENDING, stripped
