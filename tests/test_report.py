"""
Tests for the generation report.

Tests for sbg/pipeline/report.py
"""

from datetime import datetime, timezone

from sbg.pipeline import GenerationReport


class TestGenerationReport:
    """Tests for GenerationReport."""

    def test_render_header(self):
        report = GenerationReport(generated_at=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc))

        text = report.render()

        assert text.startswith("--- STORYBOARD GENERATION REPORT ---\n\n")
        assert "Generation Date: 2024-05-01T09:30:00+00:00" in text

    def test_sections_are_uppercased(self):
        report = GenerationReport()
        report.section("Story Analysis")
        report.entry("Characters: Jane")

        assert "--- STORY ANALYSIS ---\nCharacters: Jane\n\n" in report.render()

    def test_entries_are_append_only(self):
        report = GenerationReport()
        report.entry("first")
        report.note("second")

        entries = report.entries
        report.entry("third")

        assert entries == ("first", "NOTE: second")
        assert len(report) == 3

    def test_failure_section(self):
        report = GenerationReport()
        report.entry("partial work")
        report.failure("script service down")

        text = report.render()
        assert text.index("partial work") < text.index("--- GENERATION FAILED ---")
        assert "Error: script service down" in text
