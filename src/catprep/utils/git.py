"""Version-control collaborator.

Only two questions are ever asked of git: "is this a working tree?" and "who
committed this file last?". Everything else about history is out of scope.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from catprep.config.exceptions import GitUnavailableError, NotARepositoryError
from catprep.exceptions import GitCommandError

logger = logging.getLogger(__name__)

_FIELD_SEP = "\x1f"


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """Author identity and timestamp of a commit."""

    name: str
    email: str
    timestamp: str


class HistoryProvider(Protocol):
    """Anything able to answer the two questions above."""

    def ensure_repository(self, path: Path) -> None: ...

    def last_commit(self, path: Path) -> CommitInfo | None: ...


class GitHistory:
    """:class:`HistoryProvider` backed by the ``git`` executable."""

    def __init__(self, timeout: float = 10.0, executable: str = "git") -> None:
        self.timeout = timeout
        self.executable = executable

    def _run(self, args: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [self.executable, *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            timeout=self.timeout,
        )

    def ensure_repository(self, path: Path) -> None:
        """Check that ``path`` lies inside a non-bare working tree.

        Raises:
            GitUnavailableError: If git cannot be executed.
            NotARepositoryError: If ``path`` is not inside a working tree.

        """
        try:
            result = self._run(["rev-parse", "--is-inside-work-tree"], cwd=path)
        except FileNotFoundError as e:
            raise GitUnavailableError(str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise GitUnavailableError(f"'git rev-parse' timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            raise NotARepositoryError(path, (e.stderr or "").strip()) from e

        if result.stdout.strip() != "true":
            raise NotARepositoryError(path, result.stdout.strip())

    def last_commit(self, path: Path) -> CommitInfo | None:
        """Return the most recent commit touching ``path``, or None without history.

        Raises:
            GitCommandError: If git fails or times out.

        """
        fmt = _FIELD_SEP.join(("%an", "%ae", "%aI"))
        args = ["log", "-1", f"--format={fmt}", "--", path.name]
        try:
            result = self._run(args, cwd=path.parent)
        except FileNotFoundError as e:
            raise GitCommandError("git log", None, str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise GitCommandError("git log", None, f"timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            raise GitCommandError("git log", e.returncode, (e.stderr or "").strip()) from e

        line = result.stdout.strip()
        if not line:
            return None
        parts = line.split(_FIELD_SEP)
        if len(parts) != 3:
            raise GitCommandError("git log", 0, f"unexpected output {line!r}")
        name, email, timestamp = parts
        logger.debug("Last commit of %s by %s <%s>", path, name, email)
        return CommitInfo(name=name, email=email, timestamp=timestamp)


__all__ = ["CommitInfo", "GitHistory", "HistoryProvider"]
