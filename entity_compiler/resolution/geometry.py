"""Geometry resolution: one geometry id per geometry-bearing variant."""

from __future__ import annotations

import logging
from typing import Dict

from entity_compiler.assets.probe import GEOMETRY_PREFIX
from entity_compiler.diagnostics import DiagnosticCategory
from entity_compiler.variants import AppearanceVariant, geometry_variants

from .descriptor import ResolutionContext

logger = logging.getLogger(__name__)


def geometry_candidate(ctx: ResolutionContext, variant: AppearanceVariant) -> str:
    """``{gender_}{base}`` for the default form, ``{gender_}{species}_{skin}`` for skins."""
    if variant.is_default:
        base = ctx.inherited("model") or ctx.species_id
    else:
        base = f"{ctx.species_id}_{variant.skin_id}"
    if variant.gendered_model and variant.gender is not None:
        return f"{variant.gender.value}_{base}"
    return base


def check_geometry(ctx: ResolutionContext, candidate: str) -> bool:
    """True when ``<candidate>.geo.json`` exists and declares ``geometry.<candidate>``."""
    document = ctx.probe.geometry(candidate)
    if not document.exists:
        ctx.report.record(
            DiagnosticCategory.MISSING_GEOMETRY,
            ctx.species_id,
            candidate,
            f"Missing geometry file {document.path}",
        )
        return False
    if not document.parsed:
        ctx.report.record(
            DiagnosticCategory.INVALID_GEOMETRY,
            ctx.species_id,
            candidate,
            f"Geometry file {document.path} could not be parsed: {document.parse_error}",
        )
        return False
    if not document.declares(GEOMETRY_PREFIX + candidate):
        ctx.report.record(
            DiagnosticCategory.INVALID_GEOMETRY,
            ctx.species_id,
            candidate,
            f"Geometry file {document.path} does not declare {GEOMETRY_PREFIX}{candidate}",
        )
        return False
    return True


def resolve_geometry(ctx: ResolutionContext) -> Dict[str, str]:
    """
    Resolve the entity ``geometry`` map.

    Returns:
        Geometry slot -> geometry id, in variant order. A candidate that is
        missing or invalid falls back to the species' own base geometry.
    """
    fallback = GEOMETRY_PREFIX + ctx.species_id
    geometry: Dict[str, str] = {}
    for variant in geometry_variants(ctx.variants):
        candidate = geometry_candidate(ctx, variant)
        if check_geometry(ctx, candidate):
            geometry[variant.geometry_slot] = GEOMETRY_PREFIX + candidate
        else:
            logger.debug(f"{ctx.species_id}: geometry slot {variant.geometry_slot} falls back to {fallback}")
            geometry[variant.geometry_slot] = fallback
    return geometry
