"""Console reporting: path lines, progress dots, and the run summary."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import rich_click as click

from catalog_find.traversal.walker import WalkCounters

_BINARY_UNITS: tuple[str, ...] = ("KiB", "MiB", "GiB", "TiB", "PiB", "EiB", "ZiB", "YiB")


class ConsoleReporter:
    """Reporting sink the walker emits paths and counters to."""

    def __init__(
        self,
        *,
        quiet: bool = False,
        progress_every: int = 0,
        echo: Callable[..., None] = click.echo,
    ) -> None:
        self.quiet = quiet
        self.progress_every = progress_every
        self._echo = echo

    def info(self, line: str) -> None:
        """Informational line, suppressed in quiet mode."""

        if not self.quiet:
            self._echo(line)

    def message(self, line: str) -> None:
        """Line that is always printed."""

        self._echo(line)

    def fetched(self, fetches: int) -> None:
        if self.progress_every > 0 and fetches % self.progress_every == 0:
            self._echo(".", nl=False)


def format_size(total: int) -> str:
    """Render a byte count right-aligned with a binary unit suffix."""

    if total < 1024:
        return f"{total:>24} B"
    value = total
    unit = "B"
    for candidate in _BINARY_UNITS:
        if value < 1024:
            break
        value //= 1024
        unit = candidate
    return f"{value:>24} {unit}"


def render_summary_lines(
    *,
    counters: WalkCounters,
    started_at: datetime,
    finished_at: datetime,
) -> list[str]:
    """Render operator-facing summary lines for CLI output."""

    lines = [
        f"{counters.rows:>24} records seen",
        f"{counters.directories:>24} directories",
        f"{counters.files:>24} files",
        f"{counters.total_bytes:>24} bytes grand total",
        f"{format_size(counters.total_bytes)} grand total",
    ]
    if counters.malformed > 0:
        lines.append(f"{counters.malformed:>24} malformed")
    if counters.statements > 0:
        lines.append(f"{counters.statements:>24} statements executed")

    duration = int((finished_at - started_at).total_seconds())
    if duration <= 0:
        lines.append(f"{'n/a':>24} Finished in less than a second")
        return lines

    bytes_per_second = counters.total_bytes // duration
    lines.extend(
        [
            f"{duration:>24} seconds duration",
            f"{bytes_per_second:>24} bytes/s",
            f"{format_size(bytes_per_second)} / second",
        ],
    )
    return lines
