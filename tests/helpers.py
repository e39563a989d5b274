"""Shared test doubles: a scripted process runner and sample hardware."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from gamecollector.exceptions import ToolError
from gamecollector.formats.crypto import HardwareInfo
from gamecollector.host.process import ProcessResult, ProcessRunner


class FakeRunner(ProcessRunner):
    """Scripted ``ProcessRunner`` that records every call.

    Responses are looked up by the joined argument string. A response may
    be a string (stdout), a ``ProcessResult``, an exception to raise, or a
    callable taking the argument list.
    """

    def __init__(self, responses: dict[str, object] | None = None) -> None:
        self.responses: dict[str, object] = dict(responses or {})
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def run(self, executable: Path | str, args: Sequence[str]) -> ProcessResult:
        self.calls.append((str(executable), tuple(args)))
        key = " ".join(args)
        if key not in self.responses:
            raise ToolError(f"{executable} {key}: no scripted response")
        response = self.responses[key]
        if callable(response):
            response = response(list(args))
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, ProcessResult):
            return response
        return ProcessResult(exit_code=0, stdout=str(response))

    def calls_with(self, *args: str) -> int:
        """Count calls made with exactly ``args``."""
        return sum(1 for _, called in self.calls if called == args)


SAMPLE_HARDWARE = HardwareInfo(
    base_board_manufacturer="ASUSTeK COMPUTER INC.",
    base_board_serial="210685788800047",
    bios_manufacturer="American Megatrends Inc.",
    bios_serial="System Serial Number",
    volume_serial=0x2A3B4C5D,
    video_controller_pnp_id="PCI\\VEN_10DE&DEV_1C82&SUBSYS_37131458&REV_A1\\4&2A5C2BB4&0&0008",
    processor_manufacturer="GenuineIntel",
    processor_id="BFEBFBFF000906EA",
    processor_name="Intel(R) Core(TM) i7-8700K CPU @ 3.70GHz",
)


def render_table(columns: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render rows as a fixed-width table the way package-manager CLIs print them."""
    widths = [
        max(len(str(value)) for value in (name, *(row[i] if i < len(row) else "" for row in rows)))
        for i, name in enumerate(columns)
    ]

    def line(values: Sequence[str]) -> str:
        cells = [str(v).ljust(widths[i]) for i, v in enumerate(values)]
        return " ".join(cells).rstrip()

    header = line(columns)
    return "\n".join([header, "-" * len(header), *(line(row) for row in rows)]) + "\n"
