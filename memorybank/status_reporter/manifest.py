"""Manifest of the memory bank document set."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, cast

from .vcs import GitClient, TrackingState

REQUIRED_DOCUMENTS = (
    "productContext.md",
    "activeContext.md",
    "systemPatterns.md",
    "techContext.md",
    "progress.md",
)

PROGRESS_DOCUMENT = "progress.md"


class MissingDocumentError(FileNotFoundError):
    """A required memory bank document or its directory does not exist."""


@dataclass
class DocumentEntry:
    file: str
    path: Path
    exists: bool
    tracking: TrackingState = TrackingState.UNAVAILABLE

    def to_dict(self) -> dict[str, object]:
        return {
            "file": self.file,
            "path": str(self.path),
            "exists": self.exists,
            "tracking": self.tracking.value,
        }


def now_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


def validate_documents(
    docs_path: Path, documents: Iterable[str] = REQUIRED_DOCUMENTS
) -> list[Path]:
    if not docs_path.is_dir():
        raise MissingDocumentError(f"Documents directory not found: {docs_path}")
    paths = []
    for name in documents:
        path = docs_path / name
        if not path.is_file():
            raise MissingDocumentError(f"Required file not found: {name}")
        paths.append(path)
    return paths


def build_manifest(
    docs_path: Path,
    git: GitClient,
    documents: Iterable[str] = REQUIRED_DOCUMENTS,
) -> dict[str, Any]:
    files: dict[str, dict[str, object]] = {}
    missing: list[str] = []
    for name in documents:
        path = docs_path / name
        exists = path.is_file()
        entry = DocumentEntry(file=name, path=path, exists=exists)
        if exists:
            entry.tracking = git.tracking_state(path)
        else:
            missing.append(name)
        files[name] = entry.to_dict()
    return {
        "metadata": {
            "docs_path": str(docs_path),
            "remote_url": git.remote_url(docs_path) if docs_path.is_dir() else None,
            "file_count": len(files) - len(missing),
            "missing": missing,
            "checked_at": now_iso(),
        },
        "files": files,
    }


def manifest_table(manifest: Mapping[str, Any]) -> Iterable[dict[str, Any]]:
    files = cast(Mapping[str, dict[str, Any]], manifest.get("files", {}))
    yield from files.values()
