from __future__ import annotations

from typing import Dict

from entity_compiler.assets.probe import AnimationDocument
from entity_compiler.customization.schema import local_effect_name
from entity_compiler.diagnostics import DiagnosticCategory

from .descriptor import ResolutionContext


def resolve_particle_effects(ctx: ResolutionContext, document: AnimationDocument) -> Dict[str, str]:
    """
    Match declared particle effects against the effects the animations use.

    A declared effect is bound under its local name only when some animation
    references that name. Mismatches are reported in both directions: a
    declared effect nothing uses, and a used effect nothing declares.
    """
    if not document.usable:
        return {}

    used = document.used_effects()
    declared = ctx.schema.declared_particle_effects() if ctx.schema else []

    bindings: Dict[str, str] = {}
    for effect_id in declared:
        local_name = local_effect_name(effect_id)
        if local_name is not None and local_name in used:
            bindings[local_name] = effect_id
            continue
        ctx.report.record(
            DiagnosticCategory.INVALID_PARTICLE_CUSTOMIZATION,
            ctx.species_id,
            local_name or effect_id,
            f"Customization declares particle effect '{effect_id}' "
            f"but {document.path} does not use '{local_name or effect_id}'",
        )

    for effect in used:
        if effect in bindings:
            continue
        ctx.report.record(
            DiagnosticCategory.MISSING_PARTICLE_CUSTOMIZATION,
            ctx.species_id,
            effect,
            f"{document.path} uses particle effect '{effect}' but no customization declares it",
        )
    return bindings
