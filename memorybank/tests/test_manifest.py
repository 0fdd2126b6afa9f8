from __future__ import annotations

import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

import pytest

from memorybank.status_reporter import load_memory_bank, manifest, vcs
from memorybank.status_reporter.manifest import MissingDocumentError
from memorybank.status_reporter.parser import SectionNotFoundError
from memorybank.status_reporter.vcs import GitClient, TrackingState

SAMPLE_DIR = Path(__file__).resolve().parent / "_samples"


@pytest.fixture()
def sandbox(tmp_path: Path) -> Path:
    docs = tmp_path / "memory-bank"
    docs.mkdir()
    for sample_file in SAMPLE_DIR.glob("*.md"):
        shutil.copy(sample_file, docs / sample_file.name)
    return docs


class FakeGit:
    """Answers git commands from a table of tracked and modified file names."""

    def __init__(
        self,
        *,
        repository: bool = True,
        tracked: set[str] | None = None,
        modified: set[str] | None = None,
        remote: str | None = "git@github.com:example/memory-bank.git",
    ) -> None:
        self.repository = repository
        self.tracked = tracked or set()
        self.modified = modified or set()
        self.remote = remote
        self.calls: list[list[str]] = []

    def __call__(self, command: Sequence[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        args = list(command[1:])
        self.calls.append(args)
        if args[0] == "rev-parse":
            if self.repository:
                return self._result(command, 0, "true\n")
            return self._result(command, 128, "")
        if args[0] == "ls-files":
            return self._result(command, 0 if args[-1] in self.tracked else 1, "")
        if args[0] == "status":
            output = f" M {args[-1]}\n" if args[-1] in self.modified else ""
            return self._result(command, 0, output)
        if args[:2] == ["remote", "get-url"]:
            if self.remote is None:
                return self._result(command, 2, "")
            return self._result(command, 0, self.remote + "\n")
        raise AssertionError(f"unexpected git command: {args}")

    @staticmethod
    def _result(
        command: Sequence[str], returncode: int, stdout: str
    ) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(list(command), returncode, stdout, "")


def test_validate_documents_returns_paths_in_order(sandbox: Path) -> None:
    paths = manifest.validate_documents(sandbox)
    assert [path.name for path in paths] == list(manifest.REQUIRED_DOCUMENTS)


def test_validate_documents_reports_missing_file(sandbox: Path) -> None:
    (sandbox / "productContext.md").unlink()
    with pytest.raises(MissingDocumentError, match="Required file not found: productContext.md"):
        manifest.validate_documents(sandbox)


def test_validate_documents_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Documents directory not found"):
        manifest.validate_documents(tmp_path / "non-existent")


def test_tracking_states() -> None:
    fake = FakeGit(tracked={"progress.md", "techContext.md"}, modified={"techContext.md"})
    git = GitClient("git", runner=fake)
    docs = Path("/docs")
    assert git.tracking_state(docs / "progress.md") is TrackingState.TRACKED
    assert git.tracking_state(docs / "techContext.md") is TrackingState.MODIFIED
    assert git.tracking_state(docs / "activeContext.md") is TrackingState.UNTRACKED


def test_tracking_state_outside_repository() -> None:
    git = GitClient("git", runner=FakeGit(repository=False))
    assert git.tracking_state(Path("/docs/progress.md")) is TrackingState.UNAVAILABLE


def test_missing_git_executable_degrades() -> None:
    fake = FakeGit(tracked={"progress.md"})
    git = GitClient(None, runner=fake)
    assert not git.available
    assert git.tracking_state(Path("/docs/progress.md")) is TrackingState.UNAVAILABLE
    assert git.remote_url(Path("/docs")) is None
    assert fake.calls == []


def test_git_start_failure_degrades() -> None:
    def broken(command: Sequence[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        raise FileNotFoundError(command[0])

    git = GitClient("/usr/bin/git", runner=broken)
    assert git.tracking_state(Path("/docs/progress.md")) is TrackingState.UNAVAILABLE
    assert git.remote_url(Path("/docs")) is None


def test_remote_url() -> None:
    assert GitClient("git", runner=FakeGit()).remote_url(Path("/docs")) == (
        "git@github.com:example/memory-bank.git"
    )
    assert GitClient("git", runner=FakeGit(remote=None)).remote_url(Path("/docs")) is None


def test_resolve_git_executable_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MEMORYBANK_GIT", str(tmp_path / "no-such-git"))
    assert vcs.resolve_git_executable() is None


def test_build_manifest(sandbox: Path) -> None:
    (sandbox / "activeContext.md").unlink()
    fake = FakeGit(tracked={"progress.md", "productContext.md"}, modified={"productContext.md"})
    data = manifest.build_manifest(sandbox, GitClient("git", runner=fake))
    metadata = data["metadata"]
    assert metadata["docs_path"] == str(sandbox)
    assert metadata["remote_url"] == "git@github.com:example/memory-bank.git"
    assert metadata["missing"] == ["activeContext.md"]
    assert metadata["file_count"] == 4
    rows = {entry["file"]: entry for entry in manifest.manifest_table(data)}
    assert list(rows) == list(manifest.REQUIRED_DOCUMENTS)
    assert rows["progress.md"]["tracking"] == "tracked"
    assert rows["productContext.md"]["tracking"] == "modified"
    assert rows["systemPatterns.md"]["tracking"] == "untracked"
    assert rows["activeContext.md"]["exists"] is False
    assert rows["activeContext.md"]["tracking"] == "unavailable"


def test_load_memory_bank(sandbox: Path) -> None:
    documents = load_memory_bank(sandbox)
    assert list(documents) == list(manifest.REQUIRED_DOCUMENTS)
    assert len(documents["progress.md"].sections) == 2


def test_load_memory_bank_section_window_applies_to_progress(sandbox: Path) -> None:
    documents = load_memory_bank(
        sandbox, start_title="Implementation Status", stop_title="Priority Tasks"
    )
    assert [section.title for section in documents["progress.md"].sections] == [
        "Implementation Status"
    ]
    assert [section.title for section in documents["productContext.md"].sections] == [
        "Goals",
        "Users",
    ]


def test_load_memory_bank_section_window_missing(sandbox: Path) -> None:
    with pytest.raises(SectionNotFoundError):
        load_memory_bank(sandbox, start_title="Roadmap")
