"""
Diagnostics Aggregator.

Every non-fatal resolution failure (a missing file, an asset that does not
declare what it should, a schema that disagrees with the animations) is
recorded here as a diagnostic and logged at the moment it is recorded.

Each species is resolved against its own ``DiagnosticsReport``; the batch
merges them in species-table order, which keeps the rendered report stable
no matter how many workers compiled the species.

Usage:
    report = DiagnosticsReport()
    report.record(DiagnosticCategory.MISSING_TEXTURE, "bulbasaur", "shiny_bulbasaur.png")
    markdown = report.render_markdown(layout)
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from entity_compiler.config import AssetLayout

logger = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    """Taxonomy of recoverable resolution failures."""
    MISSING_ASSET = "missing_asset"
    INVALID_ASSET = "invalid_asset"
    SCHEMA_MISMATCH = "schema_mismatch"
    NAME_FORMAT_ERROR = "name_format_error"


class DiagnosticCategory(str, Enum):
    MISSING_GEOMETRY = "missing_geometry"
    INVALID_GEOMETRY = "invalid_geometry"
    MISSING_ANIMATION_FILE = "missing_animation_file"
    INVALID_ANIMATION_FILE = "invalid_animation_file"
    INVALID_ANIMATION_NAME = "invalid_animation_name"
    MISSING_ANIMATION = "missing_animation"
    MISSING_TEXTURE = "missing_texture"
    MISSING_PARTICLE_CUSTOMIZATION = "missing_particle_customization"
    INVALID_PARTICLE_CUSTOMIZATION = "invalid_particle_customization"
    MISSING_SPRITE = "missing_sprite"
    INVALID_BLINK_ANIMATION = "invalid_blink_animation"

    @property
    def kind(self) -> DiagnosticKind:
        return CATEGORY_KINDS[self]


CATEGORY_KINDS: Dict[DiagnosticCategory, DiagnosticKind] = {
    DiagnosticCategory.MISSING_GEOMETRY: DiagnosticKind.MISSING_ASSET,
    DiagnosticCategory.INVALID_GEOMETRY: DiagnosticKind.INVALID_ASSET,
    DiagnosticCategory.MISSING_ANIMATION_FILE: DiagnosticKind.MISSING_ASSET,
    DiagnosticCategory.INVALID_ANIMATION_FILE: DiagnosticKind.INVALID_ASSET,
    DiagnosticCategory.INVALID_ANIMATION_NAME: DiagnosticKind.NAME_FORMAT_ERROR,
    DiagnosticCategory.MISSING_ANIMATION: DiagnosticKind.MISSING_ASSET,
    DiagnosticCategory.MISSING_TEXTURE: DiagnosticKind.MISSING_ASSET,
    DiagnosticCategory.MISSING_PARTICLE_CUSTOMIZATION: DiagnosticKind.SCHEMA_MISMATCH,
    DiagnosticCategory.INVALID_PARTICLE_CUSTOMIZATION: DiagnosticKind.SCHEMA_MISMATCH,
    DiagnosticCategory.MISSING_SPRITE: DiagnosticKind.MISSING_ASSET,
    DiagnosticCategory.INVALID_BLINK_ANIMATION: DiagnosticKind.INVALID_ASSET,
}

# Logged at WARNING by default; everything else at ERROR unless a level is given.
WARNING_CATEGORIES = frozenset({DiagnosticCategory.MISSING_ANIMATION})


@dataclass(frozen=True)
class Diagnostic:
    category: DiagnosticCategory
    species_id: str
    identifier: str
    message: str

    @property
    def kind(self) -> DiagnosticKind:
        return self.category.kind

    def to_dict(self) -> Dict[str, str]:
        return {
            "category": self.category.value,
            "kind": self.kind.value,
            "species_id": self.species_id,
            "identifier": self.identifier,
            "message": self.message,
        }


@dataclass(frozen=True)
class _Section:
    title: str
    empty_message: str
    # Renders one bullet from (species_id, identifiers, layout).
    render_line: Callable[[str, List[str], AssetLayout], str]
    preamble: str = ""


def _geometry_line(species_id: str, identifiers: List[str], layout: AssetLayout) -> str:
    links = ", ".join(f"[{name}]({layout.geometry_file(name)})" for name in identifiers)
    return f"- {species_id}: {links}"


def _animation_line(species_id: str, identifiers: List[str], layout: AssetLayout) -> str:
    return f"- [{species_id}]({layout.animation_file(species_id)}): {', '.join(identifiers)}"


def _animation_file_line(species_id: str, identifiers: List[str], layout: AssetLayout) -> str:
    return f"- [{species_id}]({layout.animation_file(species_id)})"


def _texture_line(species_id: str, identifiers: List[str], layout: AssetLayout) -> str:
    return f"- [{species_id}]({layout.texture_dir}/{species_id}/): {', '.join(identifiers)}"


def _sprite_line(species_id: str, identifiers: List[str], layout: AssetLayout) -> str:
    return "\n".join(f"- [{name}]({layout.sprite_file(name)})" for name in identifiers)


def _blink_line(species_id: str, identifiers: List[str], layout: AssetLayout) -> str:
    return (
        f"- [{species_id}]({layout.animation_file(species_id)}): "
        f"Modifies non-eye bones: {', '.join(identifiers)}"
    )


SECTIONS: Dict[DiagnosticCategory, _Section] = {
    DiagnosticCategory.MISSING_GEOMETRY: _Section(
        "Species Missing Geometry Files",
        "No species missing geometry files found!",
        _geometry_line,
    ),
    DiagnosticCategory.INVALID_GEOMETRY: _Section(
        "Species With Invalid Geometry Files",
        "No species have invalid geometry files!",
        _geometry_line,
    ),
    DiagnosticCategory.MISSING_ANIMATION_FILE: _Section(
        "Species With Missing Animation Files",
        "No species are missing animation files!",
        _animation_file_line,
    ),
    DiagnosticCategory.MISSING_TEXTURE: _Section(
        "Missing Species Textures",
        "No species have missing textures!",
        _texture_line,
    ),
    DiagnosticCategory.MISSING_SPRITE: _Section(
        "Missing Species Sprite Textures",
        "No species have missing sprite textures!",
        _sprite_line,
    ),
    DiagnosticCategory.INVALID_ANIMATION_NAME: _Section(
        "Species With Invalid Animation Names",
        "No species have invalid animation names!",
        _animation_line,
    ),
    DiagnosticCategory.INVALID_ANIMATION_FILE: _Section(
        "Species With Invalid Animation Files",
        "No species have invalid animation files!",
        _animation_file_line,
    ),
    DiagnosticCategory.MISSING_PARTICLE_CUSTOMIZATION: _Section(
        "Missing Particle Customizations",
        "No missing particle customizations found.",
        _animation_line,
    ),
    DiagnosticCategory.INVALID_PARTICLE_CUSTOMIZATION: _Section(
        "Invalid Particle Customizations",
        "No invalid particle customizations found.",
        _animation_line,
    ),
    DiagnosticCategory.MISSING_ANIMATION: _Section(
        "Missing Species Animations",
        "No missing species animations found.",
        _animation_line,
        preamble=(
            "> [!NOTE]\n"
            "> Some of these could be a result of missing behavior capabilities in the species table.\n"
        ),
    ),
    DiagnosticCategory.INVALID_BLINK_ANIMATION: _Section(
        "Species With Problematic Blink Animations",
        "No species have problematic blink animations that modify non-eye bones!",
        _blink_line,
        preamble=(
            "These species have blink animations that modify bones other than eye-related bones.\n"
            "This can cause visible twitching when the entity is idle or blinks.\n"
        ),
    ),
}

REPORT_HEADER = (
    "# Missing Information Report\n\n"
    "This report contains details about missing or problematic elements found "
    "while compiling entity descriptors.\n"
)


class DiagnosticsReport:
    """Category -> species -> identifiers multimap, safe for concurrent producers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[DiagnosticCategory, Dict[str, List[str]]] = {}
        self._diagnostics: List[Diagnostic] = []

    def record(
        self,
        category: DiagnosticCategory,
        species_id: str,
        identifier: str,
        message: Optional[str] = None,
        *,
        log: bool = True,
        level: Optional[int] = None,
    ) -> Diagnostic:
        """Record (and log) one diagnostic. Duplicate identifiers are kept once."""
        category = DiagnosticCategory(category)
        message = message or f"{category.value.replace('_', ' ')}: {identifier}"
        diagnostic = Diagnostic(category=category, species_id=species_id, identifier=identifier, message=message)

        with self._lock:
            identifiers = self._entries.setdefault(category, {}).setdefault(species_id, [])
            if identifier in identifiers:
                return diagnostic
            identifiers.append(identifier)
            self._diagnostics.append(diagnostic)

        if log:
            if level is None:
                level = logging.WARNING if category in WARNING_CATEGORIES else logging.ERROR
            logger.log(
                level,
                f"{species_id}: {message}",
                extra={
                    "species_id": species_id,
                    "diagnostic_category": category.value,
                    "identifier": identifier,
                },
            )
        return diagnostic

    def merge(self, other: "DiagnosticsReport") -> None:
        """Append every diagnostic of ``other`` without logging it again."""
        for diagnostic in other.diagnostics():
            self.record(
                diagnostic.category,
                diagnostic.species_id,
                diagnostic.identifier,
                diagnostic.message,
                log=False,
            )

    def diagnostics(self) -> List[Diagnostic]:
        with self._lock:
            return list(self._diagnostics)

    def identifiers(self, category: DiagnosticCategory, species_id: str) -> List[str]:
        with self._lock:
            return list(self._entries.get(DiagnosticCategory(category), {}).get(species_id, []))

    def species(self, category: DiagnosticCategory) -> List[str]:
        with self._lock:
            return list(self._entries.get(DiagnosticCategory(category), {}))

    def has(self, category: DiagnosticCategory, species_id: Optional[str] = None) -> bool:
        with self._lock:
            by_species = self._entries.get(DiagnosticCategory(category), {})
            if species_id is None:
                return bool(by_species)
            return bool(by_species.get(species_id))

    def count(self, category: Optional[DiagnosticCategory] = None) -> int:
        with self._lock:
            if category is None:
                return len(self._diagnostics)
            return sum(1 for d in self._diagnostics if d.category == DiagnosticCategory(category))

    def __len__(self) -> int:
        return self.count()

    @property
    def is_empty(self) -> bool:
        return self.count() == 0

    def to_dict(self) -> Dict[str, Any]:
        """Every category, in report order, even when empty."""
        with self._lock:
            categories = {
                category.value: {
                    species_id: list(identifiers)
                    for species_id, identifiers in self._entries.get(category, {}).items()
                }
                for category in SECTIONS
            }
        return {
            "total": self.count(),
            "categories": categories,
        }

    def render_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"

    def render_markdown(self, layout: Optional[AssetLayout] = None) -> str:
        """Human-readable report; contains no timestamps so reruns are byte-identical."""
        layout = layout or AssetLayout()
        lines: List[str] = [REPORT_HEADER]
        with self._lock:
            snapshot = {category: dict(self._entries.get(category, {})) for category in SECTIONS}

        for category, section in SECTIONS.items():
            lines.append(f"## {section.title}\n")
            by_species = snapshot[category]
            if not by_species:
                lines.append(f"{section.empty_message}\n")
                continue
            if section.preamble:
                lines.append(section.preamble)
            for species_id, identifiers in by_species.items():
                lines.append(section.render_line(species_id, identifiers, layout))
            lines.append("")
        return "\n".join(lines).rstrip("\n") + "\n"
