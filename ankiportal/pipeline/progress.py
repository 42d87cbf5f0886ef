"""Progress reporting for pipeline runs."""

import sys
from typing import Protocol, TextIO

from ..models import PipelineResult

MAX_LISTED_ERRORS = 5


class ProgressSink(Protocol):
    """
    Where a pipeline reports progress.

    ``update`` replaces the current status line; ``send`` emits a
    standalone message and is used once, for the final summary.
    """

    async def update(self, text: str) -> None:
        ...

    async def send(self, text: str) -> None:
        ...


class ConsoleProgress:
    """Single rewritten status line on a terminal, summary printed below it."""

    def __init__(self, stream: TextIO = sys.stdout):
        self.stream = stream
        self._width = 0

    async def update(self, text: str) -> None:
        line = text.replace("\n", " ")
        padding = " " * max(0, self._width - len(line))
        self.stream.write(f"\r{line}{padding}")
        self.stream.flush()
        self._width = len(line)

    async def send(self, text: str) -> None:
        if self._width:
            self.stream.write("\n")
            self._width = 0
        self.stream.write(text + "\n")
        self.stream.flush()


def format_summary(result: PipelineResult) -> str:
    """Human-readable report of a pipeline run."""
    lines = ["Done!"]
    if result.created > 0:
        lines.append(f"Created: {result.created} cards")
    if result.duplicates > 0:
        lines.append(f"Duplicates skipped: {result.duplicates}")

    for dist in result.distribution:
        if dist.success:
            lines.append(f"Distributed to {dist.profile}: {dist.notes_distributed} note(s)")

    if result.errors:
        lines.append(f"\nErrors ({len(result.errors)}):")
        for err in result.errors[:MAX_LISTED_ERRORS]:
            lines.append(f"  - {err}")
        if len(result.errors) > MAX_LISTED_ERRORS:
            lines.append(f"  ...and {len(result.errors) - MAX_LISTED_ERRORS} more")

    if result.created > 0 and not result.errors:
        lines.append("\nAll cards fully enriched with text, audio, and images.")
    return "\n".join(lines)
