"""
Texture resolution.

Slot names and file names:

==========================  ===================================  =========================
slot                        file                                 fallback when missing
==========================  ===================================  =========================
``default``                 ``<species>.png``                    same path (reported)
``shiny_default``           ``shiny_<species>.png``              ``default`` path
``<g>_default``             ``<g>_<species>.png``                ``<species>.png``
``shiny_<g>_default``       ``<g>_shiny_<species>.png``          ``<species>.png``
``[<g>_]<skin>``            ``[<g>_]<species>_<skin>.png``       the form's default slot
``shiny_[<g>_]<skin>``      ``shiny_[<g>_]<species>_<skin>.png`` the skin's own slot
==========================  ===================================  =========================

Textures inherited from another species point into that species' texture
directory and are not checked.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from entity_compiler.diagnostics import DiagnosticCategory
from entity_compiler.variants import AppearanceVariant, texture_variants

from .descriptor import ResolutionContext

logger = logging.getLogger(__name__)


def _report_missing(ctx: ResolutionContext, file_name: str, *, shiny: bool) -> None:
    ctx.report.record(
        DiagnosticCategory.MISSING_TEXTURE,
        ctx.species_id,
        file_name,
        f"Missing texture {file_name}",
        level=logging.WARNING if shiny else None,
    )


def _texture_source_exists(ctx: ResolutionContext, source: str, file_name: str) -> bool:
    """Inherited textures always count as present."""
    if source != ctx.species_id:
        return True
    return ctx.probe.texture_exists(source, file_name)


def _gender_prefix(variant: AppearanceVariant) -> str:
    if variant.gendered_texture and variant.gender is not None:
        return f"{variant.gender.value}_"
    return ""


def _resolve_default(ctx: ResolutionContext, variant: AppearanceVariant, textures: Dict[str, str]) -> None:
    probe = ctx.probe
    source = ctx.inherited("texture") or ctx.species_id
    shiny_source = ctx.inherited("shiny_texture") or ctx.species_id
    base_path = probe.texture_path(source, f"{source}.png")
    prefix = _gender_prefix(variant)

    if prefix:
        file_name = f"{prefix}{source}.png"
        if _texture_source_exists(ctx, source, file_name):
            textures[variant.texture_slot] = probe.texture_path(source, file_name)
        else:
            _report_missing(ctx, file_name, shiny=False)
            textures[variant.texture_slot] = base_path

        shiny_name = f"{prefix}shiny_{shiny_source}.png"
        if _texture_source_exists(ctx, shiny_source, shiny_name):
            textures[variant.shiny_texture_slot] = probe.texture_path(shiny_source, shiny_name)
        else:
            _report_missing(ctx, shiny_name, shiny=True)
            textures[variant.shiny_texture_slot] = probe.texture_path(shiny_source, f"{shiny_source}.png")
        return

    file_name = f"{source}.png"
    if not _texture_source_exists(ctx, source, file_name):
        # Nothing better exists; the slot keeps the conventional path.
        _report_missing(ctx, file_name, shiny=False)
    textures[variant.texture_slot] = base_path

    shiny_name = f"shiny_{shiny_source}.png"
    if _texture_source_exists(ctx, shiny_source, shiny_name):
        textures[variant.shiny_texture_slot] = probe.texture_path(shiny_source, shiny_name)
    else:
        _report_missing(ctx, shiny_name, shiny=True)
        textures[variant.shiny_texture_slot] = base_path


def _default_slot_for(variant: AppearanceVariant) -> str:
    prefix = _gender_prefix(variant)
    return f"{prefix}default"


def _resolve_skin(ctx: ResolutionContext, variant: AppearanceVariant, textures: Dict[str, str]) -> None:
    probe = ctx.probe
    skinned_id = f"{_gender_prefix(variant)}{ctx.species_id}_{variant.skin_id}"
    file_name = f"{skinned_id}.png"
    if probe.texture_exists(ctx.species_id, file_name):
        textures[variant.texture_slot] = probe.texture_path(ctx.species_id, file_name)
    else:
        _report_missing(ctx, file_name, shiny=False)
        fallback: Optional[str] = textures.get(_default_slot_for(variant))
        textures[variant.texture_slot] = fallback or probe.texture_path(ctx.species_id, file_name)

    if not variant.requires_shiny_texture:
        return
    shiny_name = f"shiny_{skinned_id}.png"
    if probe.texture_exists(ctx.species_id, shiny_name):
        textures[variant.shiny_texture_slot] = probe.texture_path(ctx.species_id, shiny_name)
    else:
        _report_missing(ctx, shiny_name, shiny=True)
        textures[variant.shiny_texture_slot] = textures[variant.texture_slot]


def resolve_textures(ctx: ResolutionContext) -> Dict[str, str]:
    """
    Resolve the entity ``textures`` map.

    Returns:
        Texture slot -> pack-relative texture path, in variant order with
        each shiny slot right after its non-shiny twin.
    """
    textures: Dict[str, str] = {}
    for variant in texture_variants(ctx.variants):
        if variant.is_default:
            _resolve_default(ctx, variant, textures)
        else:
            _resolve_skin(ctx, variant, textures)
    return textures
