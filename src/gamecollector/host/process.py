"""Process capability.

Runs an external executable to completion and captures its output as UTF-8
text. The engine imposes no timeout of its own; ``SubprocessRunner`` accepts
one and reports expiry as a ``ToolError``.
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from gamecollector.exceptions import ToolError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Captured result of one process run.

    Attributes:
        exit_code: Process exit status.
        stdout: Standard output decoded as UTF-8.
        stderr: Standard error decoded as UTF-8.
    """

    exit_code: int
    stdout: str
    stderr: str = ""


class ProcessRunner(ABC):
    """Runs external tools on behalf of the engine."""

    @abstractmethod
    def run(self, executable: Path | str, args: Sequence[str]) -> ProcessResult:
        """Run ``executable`` with ``args`` and block until it exits.

        Raises:
            ToolError: If the executable is missing or cannot be started.
        """


class SubprocessRunner(ProcessRunner):
    """``ProcessRunner`` backed by :func:`subprocess.run`.

    Args:
        timeout: Seconds to wait before giving up, or None to wait forever.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    def run(self, executable: Path | str, args: Sequence[str]) -> ProcessResult:
        command = [str(executable), *args]
        logger.debug("Running %s", " ".join(command))
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolError(f"{executable} not found") from exc
        except PermissionError as exc:
            raise ToolError(f"{executable} is not executable") from exc
        except subprocess.TimeoutExpired as exc:
            raise ToolError(f"{executable} did not exit within {self.timeout}s") from exc
        except OSError as exc:
            raise ToolError(f"Unable to start {executable}: {exc}") from exc
        return ProcessResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
