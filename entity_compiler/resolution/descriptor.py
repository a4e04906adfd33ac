from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from entity_compiler.assets.probe import AssetProbe
from entity_compiler.customization.schema import CustomizationSchema
from entity_compiler.diagnostics import DiagnosticsReport
from entity_compiler.species import SpeciesEntry
from entity_compiler.variants import AppearanceVariant

ANIMATED_MATERIAL = "custom_animated"


@dataclass
class ResolvedDescriptor:
    """Everything the emitter needs to know about one species' assets.

    Owned by the resolver while one species is being resolved; treated as
    read-only once handed to the emitter.
    """
    species_id: str
    has_model: bool = True
    geometry: Dict[str, str] = field(default_factory=dict)
    textures: Dict[str, str] = field(default_factory=dict)
    animations: Dict[str, str] = field(default_factory=dict)
    particle_effects: Dict[str, str] = field(default_factory=dict)
    materials: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "species_id": self.species_id,
            "has_model": self.has_model,
            "geometry": dict(self.geometry),
            "textures": dict(self.textures),
            "animations": dict(self.animations),
            "particle_effects": dict(self.particle_effects),
            "materials": dict(self.materials),
        }


@dataclass
class ResolutionContext:
    """Inputs shared by the geometry, animation, particle and texture steps."""
    species_id: str
    entry: SpeciesEntry
    schema: Optional[CustomizationSchema]
    variants: List[AppearanceVariant]
    probe: AssetProbe
    report: DiagnosticsReport

    def inherited(self, key: str) -> Optional[str]:
        return self.schema.inherited(key) if self.schema else None
