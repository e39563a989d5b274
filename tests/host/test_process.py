"""Tests for the subprocess runner."""

from __future__ import annotations

import sys

import pytest

from gamecollector.exceptions import ToolError
from gamecollector.host.process import SubprocessRunner


class TestSubprocessRunner:
    """Running real processes."""

    def test_captures_output(self) -> None:
        result = SubprocessRunner().run(sys.executable, ["-c", "print('hello')"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "hello"

    def test_nonzero_exit_is_not_an_error(self) -> None:
        result = SubprocessRunner().run(sys.executable, ["-c", "import sys; sys.exit(3)"])
        assert result.exit_code == 3

    def test_missing_executable(self, tmp_path) -> None:
        with pytest.raises(ToolError, match="not found"):
            SubprocessRunner().run(tmp_path / "winget.exe", ["list"])

    def test_timeout(self) -> None:
        runner = SubprocessRunner(timeout=0.5)
        with pytest.raises(ToolError, match="did not exit"):
            runner.run(sys.executable, ["-c", "import time; time.sleep(5)"])
