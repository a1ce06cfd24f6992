"""Append-only generation report."""

import logging
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


class GenerationReport:
    """Human-readable transcript of every stage of a run.

    Entries are never edited or removed once written. A new run gets a new
    report.
    """

    HEADER = "--- STORYBOARD GENERATION REPORT ---"

    def __init__(self, generated_at: Optional[datetime] = None) -> None:
        self.generated_at = generated_at or datetime.now(timezone.utc)
        self._entries: list[tuple[bool, str]] = []

    def section(self, title: str) -> None:
        """Start a new section."""
        self._write(True, f"--- {title.upper()} ---")

    def entry(self, text: str) -> None:
        """Append one entry to the current section."""
        self._write(False, text.rstrip("\n"))

    def note(self, text: str) -> None:
        self.entry(f"NOTE: {text}")

    def failure(self, message: str) -> None:
        """Record the terminal failure of a run."""
        self.section("Generation Failed")
        self.entry(f"Error: {message}")

    def _write(self, is_section: bool, text: str) -> None:
        logger.debug(f"report: {text.splitlines()[0] if text else ''}")
        self._entries.append((is_section, text))

    @property
    def entries(self) -> tuple[str, ...]:
        return tuple(text for _, text in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def render(self) -> str:
        """Render the whole report as a single text artifact."""
        text = f"{self.HEADER}\n\nGeneration Date: {self.generated_at.isoformat()}\n\n"
        for is_section, entry in self._entries:
            text += f"{entry}\n" if is_section else f"{entry}\n\n"
        return text
