"""Tests for the diagnostics aggregator and its rendered reports."""

from __future__ import annotations

import json
import logging
import threading

from entity_compiler.diagnostics import (
    SECTIONS,
    DiagnosticCategory,
    DiagnosticKind,
    DiagnosticsReport,
)


class TestRecording:
    def test_record_dedupes_identifiers(self):
        report = DiagnosticsReport()
        report.record(DiagnosticCategory.MISSING_TEXTURE, "bulbasaur", "shiny_bulbasaur.png", log=False)
        report.record(DiagnosticCategory.MISSING_TEXTURE, "bulbasaur", "shiny_bulbasaur.png", log=False)
        report.record(DiagnosticCategory.MISSING_TEXTURE, "bulbasaur", "bulbasaur.png", log=False)

        assert report.identifiers(DiagnosticCategory.MISSING_TEXTURE, "bulbasaur") == [
            "shiny_bulbasaur.png",
            "bulbasaur.png",
        ]
        assert len(report) == 2
        assert report.species(DiagnosticCategory.MISSING_TEXTURE) == ["bulbasaur"]

    def test_record_accepts_category_value(self):
        report = DiagnosticsReport()
        diagnostic = report.record("missing_geometry", "eevee", "eevee_winter", log=False)
        assert diagnostic.category is DiagnosticCategory.MISSING_GEOMETRY
        assert diagnostic.kind is DiagnosticKind.MISSING_ASSET
        assert diagnostic.message == "missing geometry: eevee_winter"

    def test_has_and_count(self):
        report = DiagnosticsReport()
        assert report.is_empty
        report.record(DiagnosticCategory.MISSING_SPRITE, "abra", "abra", log=False)
        assert report.has(DiagnosticCategory.MISSING_SPRITE)
        assert report.has(DiagnosticCategory.MISSING_SPRITE, "abra")
        assert not report.has(DiagnosticCategory.MISSING_SPRITE, "kadabra")
        assert report.count(DiagnosticCategory.MISSING_SPRITE) == 1
        assert report.count(DiagnosticCategory.MISSING_TEXTURE) == 0

    def test_every_category_has_a_kind_and_a_section(self):
        for category in DiagnosticCategory:
            assert isinstance(category.kind, DiagnosticKind)
            assert category in SECTIONS

    def test_logging_levels(self, caplog):
        report = DiagnosticsReport()
        with caplog.at_level(logging.DEBUG, logger="entity_compiler.diagnostics"):
            report.record(DiagnosticCategory.MISSING_GEOMETRY, "eevee", "eevee", "Missing geometry file x")
            report.record(DiagnosticCategory.MISSING_ANIMATION, "eevee", "walking")
            report.record(DiagnosticCategory.MISSING_TEXTURE, "eevee", "shiny_eevee.png", level=logging.WARNING)

        levels = [record.levelno for record in caplog.records]
        assert levels == [logging.ERROR, logging.WARNING, logging.WARNING]
        first = caplog.records[0]
        assert first.getMessage() == "eevee: Missing geometry file x"
        assert first.species_id == "eevee"
        assert first.diagnostic_category == "missing_geometry"
        assert first.identifier == "eevee"

    def test_merge_does_not_log_again(self, caplog):
        source = DiagnosticsReport()
        source.record(DiagnosticCategory.MISSING_TEXTURE, "abra", "abra.png", log=False)
        target = DiagnosticsReport()
        with caplog.at_level(logging.DEBUG, logger="entity_compiler.diagnostics"):
            target.merge(source)
        assert caplog.records == []
        assert target.identifiers(DiagnosticCategory.MISSING_TEXTURE, "abra") == ["abra.png"]

    def test_concurrent_producers(self):
        report = DiagnosticsReport()

        def produce(worker):
            for index in range(50):
                report.record(DiagnosticCategory.MISSING_TEXTURE, f"s{worker}", f"{index}.png", log=False)

        threads = [threading.Thread(target=produce, args=(worker,)) for worker in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(report) == 200


class TestRendering:
    def _report(self):
        report = DiagnosticsReport()
        report.record(DiagnosticCategory.MISSING_GEOMETRY, "sandshrew", "sandshrew_halloween", log=False)
        report.record(DiagnosticCategory.MISSING_TEXTURE, "bulbasaur", "shiny_bulbasaur.png", log=False)
        report.record(DiagnosticCategory.MISSING_SPRITE, "abra", "abra", log=False)
        report.record(DiagnosticCategory.MISSING_SPRITE, "abra", "abra_winter", log=False)
        report.record(DiagnosticCategory.MISSING_ANIMATION, "psyduck", "swimming", log=False)
        report.record(DiagnosticCategory.INVALID_BLINK_ANIMATION, "slowpoke", "head", log=False)
        return report

    def test_markdown_sections_in_order(self):
        markdown = self._report().render_markdown()

        assert markdown.startswith("# Missing Information Report\n")
        titles = [line[3:] for line in markdown.splitlines() if line.startswith("## ")]
        assert titles == [section.title for section in SECTIONS.values()]
        assert markdown.endswith("\n") and not markdown.endswith("\n\n")

    def test_markdown_lines(self):
        markdown = self._report().render_markdown()

        assert "- sandshrew: [sandshrew_halloween](models/entity/pokemon/sandshrew_halloween.geo.json)" in markdown
        assert "- [bulbasaur](textures/entity/pokemon/bulbasaur/): shiny_bulbasaur.png" in markdown
        assert "- [abra](textures/sprites/default/abra.png)\n- [abra_winter](textures/sprites/default/abra_winter.png)" in markdown
        assert "- [psyduck](animations/pokemon/psyduck.animation.json): swimming" in markdown
        assert "> [!NOTE]" in markdown
        assert "Modifies non-eye bones: head" in markdown
        assert "No species have invalid geometry files!" in markdown
        assert "No invalid particle customizations found." in markdown

    def test_empty_report_lists_every_section(self):
        markdown = DiagnosticsReport().render_markdown()
        for section in SECTIONS.values():
            assert section.empty_message in markdown
        assert "[!NOTE]" not in markdown

    def test_render_is_stable(self):
        assert self._report().render_markdown() == self._report().render_markdown()

    def test_json(self):
        payload = json.loads(self._report().render_json())
        assert payload["total"] == 6
        assert list(payload["categories"]) == [category.value for category in SECTIONS]
        assert payload["categories"]["missing_sprite"] == {"abra": ["abra", "abra_winter"]}
        assert payload["categories"]["invalid_geometry"] == {}
