"""Git tracking state for memory bank documents."""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Callable, Sequence
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

GitRunner = Callable[[Sequence[str], Path], "subprocess.CompletedProcess[str]"]


class TrackingState(str, Enum):
    TRACKED = "tracked"
    MODIFIED = "modified"
    UNTRACKED = "untracked"
    UNAVAILABLE = "unavailable"


def run_git(command: Sequence[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        list(command),
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )


def resolve_git_executable(value: str | None = None) -> str | None:
    candidate = value or os.environ.get("MEMORYBANK_GIT")
    if candidate:
        resolved = shutil.which(candidate)
        if resolved is None:
            logger.debug("Configured git executable not found: %s", candidate)
        return resolved
    return shutil.which("git")


class GitClient:
    """Thin wrapper around the git executable.

    Every query degrades to ``UNAVAILABLE`` or ``None`` when git is missing,
    fails to start, or the directory is not inside a work tree.
    """

    def __init__(self, executable: str | None, runner: GitRunner = run_git) -> None:
        self.executable = executable
        self._runner = runner

    @classmethod
    def discover(cls, value: str | None = None, runner: GitRunner = run_git) -> GitClient:
        return cls(resolve_git_executable(value), runner)

    @property
    def available(self) -> bool:
        return self.executable is not None

    def _run(self, args: Sequence[str], cwd: Path) -> subprocess.CompletedProcess[str] | None:
        if self.executable is None:
            return None
        try:
            return self._runner([self.executable, *args], cwd)
        except OSError as exc:
            logger.debug("git %s failed in %s: %s", " ".join(args), cwd, exc)
            return None

    def is_repository(self, directory: Path) -> bool:
        result = self._run(["rev-parse", "--is-inside-work-tree"], directory)
        return result is not None and result.returncode == 0 and result.stdout.strip() == "true"

    def tracking_state(self, path: Path) -> TrackingState:
        directory = path.parent
        if not self.is_repository(directory):
            return TrackingState.UNAVAILABLE
        listed = self._run(["ls-files", "--error-unmatch", "--", path.name], directory)
        if listed is None:
            return TrackingState.UNAVAILABLE
        if listed.returncode != 0:
            return TrackingState.UNTRACKED
        status = self._run(["status", "--porcelain", "--", path.name], directory)
        if status is None or status.returncode != 0:
            return TrackingState.UNAVAILABLE
        return TrackingState.MODIFIED if status.stdout.strip() else TrackingState.TRACKED

    def remote_url(self, directory: Path, remote: str = "origin") -> str | None:
        result = self._run(["remote", "get-url", remote], directory)
        if result is None or result.returncode != 0:
            return None
        return result.stdout.strip() or None
