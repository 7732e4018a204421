# SPDX-License-Identifier: MIT
"""Version control metadata for template contexts.

Reads the current tag, commit and commit date from git. Every lookup is
best effort: outside a repository (or without git) the fields stay empty
and the caller may supply them explicitly.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitInfo:
    """Facts about the checked out revision.

    Attributes:
        tag: Most recent tag reachable from HEAD, or "".
        commit: Full commit hash, or "".
        commit_date: Commit timestamp, or None.
    """

    tag: str = ""
    commit: str = ""
    commit_date: datetime | None = None

    @property
    def version(self) -> str:
        """The tag without a leading "v"."""
        return self.tag.removeprefix("v")


def _git(args: list[str], cwd: Path) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.debug("git %s failed: %s", " ".join(args), e)
        return None
    if result.returncode != 0:
        logger.debug("git %s: %s", " ".join(args), result.stderr.strip())
        return None
    return result.stdout.strip()


def read_git_info(cwd: Path | str = ".") -> GitInfo:
    """Ask git for tag, commit and commit date.

    Args:
        cwd: Directory inside the repository.
    """
    cwd = Path(cwd)
    tag = _git(["describe", "--tags", "--abbrev=0"], cwd) or ""
    commit = _git(["rev-parse", "HEAD"], cwd) or ""
    commit_date = None
    timestamp = _git(["log", "-1", "--format=%ct"], cwd)
    if timestamp:
        try:
            commit_date = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
        except ValueError:
            logger.debug("Unexpected commit timestamp: %r", timestamp)
    return GitInfo(tag=tag, commit=commit, commit_date=commit_date)
