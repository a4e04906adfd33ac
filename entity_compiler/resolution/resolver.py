"""
Descriptor Resolver.

Runs the geometry, animation, particle and texture steps for one species
against its own diagnostics report. Resolution never raises for asset
problems: each unresolved slot gets a deterministic fallback and a
diagnostic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from entity_compiler.assets.probe import AssetProbe
from entity_compiler.customization.schema import CustomizationSchema
from entity_compiler.diagnostics import DiagnosticsReport
from entity_compiler.species import SpeciesEntry
from entity_compiler.variants import expand_variants

from .animations import load_animation_document, resolve_animations
from .descriptor import ANIMATED_MATERIAL, ResolutionContext, ResolvedDescriptor
from .geometry import resolve_geometry
from .particles import resolve_particle_effects
from .textures import resolve_textures

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    descriptor: ResolvedDescriptor
    context: ResolutionContext

    @property
    def report(self) -> DiagnosticsReport:
        return self.context.report


def resolve_materials(schema: Optional[CustomizationSchema]) -> Dict[str, str]:
    """``custom_animated`` for the default form and every skin with its own animated texture."""
    materials: Dict[str, str] = {}
    if schema is None:
        return materials
    if schema.animated_texture_config is not None:
        materials["default"] = ANIMATED_MATERIAL
    for skin_id, skin in schema.skins.items():
        if skin.animated_texture_config is not None:
            materials[skin_id] = ANIMATED_MATERIAL
    return materials


class DescriptorResolver:
    """Resolves species descriptors against one asset probe."""

    def __init__(self, probe: AssetProbe):
        self.probe = probe

    def resolve(
        self,
        species_id: str,
        entry: SpeciesEntry,
        schema: Optional[CustomizationSchema],
        *,
        has_model: bool = True,
        report: Optional[DiagnosticsReport] = None,
    ) -> ResolutionResult:
        """
        Resolve one species.

        Args:
            species_id: Species to resolve.
            entry: Its species-table entry (behavior capabilities).
            schema: Its customization entry, if any.
            has_model: False for substitute species, which skip asset resolution.
            report: Report to record into; a fresh one by default.

        Returns:
            ResolutionResult holding the descriptor and the context (variants,
            report) it was built from.
        """
        ctx = ResolutionContext(
            species_id=species_id,
            entry=entry,
            schema=schema,
            variants=expand_variants(species_id, schema),
            probe=self.probe,
            report=report if report is not None else DiagnosticsReport(),
        )
        descriptor = ResolvedDescriptor(species_id=species_id, has_model=has_model)
        if not has_model:
            logger.debug(f"{species_id} has no model; emitting substitute descriptor")
            return ResolutionResult(descriptor=descriptor, context=ctx)

        descriptor.geometry = resolve_geometry(ctx)
        document = load_animation_document(ctx)
        descriptor.animations = resolve_animations(ctx, document)
        descriptor.particle_effects = resolve_particle_effects(ctx, document)
        descriptor.textures = resolve_textures(ctx)
        descriptor.materials = resolve_materials(schema)

        logger.debug(
            f"Resolved {species_id}: {len(ctx.variants)} variant(s), "
            f"{len(descriptor.geometry)} geometry slot(s), {len(descriptor.textures)} texture slot(s)"
        )
        return ResolutionResult(descriptor=descriptor, context=ctx)
