"""
Variant Expander.

Expands a species' customization entry into the ordered list of appearance
variants it supports (gender x skin). The order returned by
``expand_variants`` is the array order of the render controller, so it is
part of the output contract: gender-major, ``default`` first, then skins in
declaration order. Skins are never re-sorted.

``skin_index`` on a variant is the runtime skin selector: ``0`` for the
default form and ``n`` for the n-th declared skin, counting every declared
skin (visual or not).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from entity_compiler.customization.schema import CustomizationSchema

DEFAULT_APPEARANCE = "default"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


GENDERS = (Gender.MALE, Gender.FEMALE)


@dataclass(frozen=True)
class AppearanceVariant:
    """One renderable gender x skin combination of a species."""
    species_id: str
    gender: Optional[Gender] = None
    skin_id: Optional[str] = None
    skin_index: int = 0
    requires_model: bool = False
    requires_texture: bool = False
    requires_shiny_texture: bool = False
    # Whether the gender prefix applies to geometry / texture slot names.
    gendered_model: bool = False
    gendered_texture: bool = False

    @property
    def is_default(self) -> bool:
        return self.skin_id is None

    @property
    def appearance_id(self) -> str:
        return self.skin_id or DEFAULT_APPEARANCE

    def _prefixed(self, prefixed: bool) -> str:
        if prefixed and self.gender is not None:
            return f"{self.gender.value}_{self.appearance_id}"
        return self.appearance_id

    @property
    def geometry_slot(self) -> str:
        """Key in the entity ``geometry`` map, e.g. ``male_default``."""
        return self._prefixed(self.gendered_model)

    @property
    def texture_slot(self) -> str:
        """Key in the entity ``textures`` map, e.g. ``female_halloween``."""
        return self._prefixed(self.gendered_texture)

    @property
    def shiny_texture_slot(self) -> str:
        return f"shiny_{self.texture_slot}"

    @property
    def has_shiny_texture(self) -> bool:
        """The default form always has a shiny twin; skins only when declared."""
        return self.is_default or self.requires_shiny_texture

    @property
    def has_own_geometry(self) -> bool:
        return self.is_default or self.requires_model


def expand_variants(species_id: str, schema: Optional[CustomizationSchema]) -> List[AppearanceVariant]:
    """
    Expand a customization entry into its ordered appearance variants.

    Args:
        species_id: Species being compiled.
        schema: Its customization entry, or None.

    Returns:
        Deduplicated variants, gender-major, ``default`` first. A species
        without customization (or with neither gender differences nor skins)
        yields exactly one ungendered default variant.
    """
    if schema is None or (not schema.gendered and not schema.skins):
        return [AppearanceVariant(species_id=species_id, requires_model=True, requires_texture=True,
                                  requires_shiny_texture=True)]

    genders: List[Optional[Gender]] = list(GENDERS) if schema.gendered else [None]
    gendered_model = schema.gender_model
    gendered_texture = schema.gender_texture

    variants: List[AppearanceVariant] = []
    seen = set()
    for gender in genders:
        axis = [(None, 0, None)] + [
            (skin_id, index, skin) for index, (skin_id, skin) in enumerate(schema.skins.items(), start=1)
        ]
        for skin_id, skin_index, skin in axis:
            if skin is None:
                variant = AppearanceVariant(
                    species_id=species_id,
                    gender=gender,
                    skin_index=0,
                    requires_model=True,
                    requires_texture=True,
                    requires_shiny_texture=True,
                    gendered_model=gendered_model,
                    gendered_texture=gendered_texture,
                )
            elif skin.is_visual:
                variant = AppearanceVariant(
                    species_id=species_id,
                    gender=gender,
                    skin_id=skin_id,
                    skin_index=skin_index,
                    requires_model=skin.requires_model,
                    requires_texture=skin.requires_texture,
                    requires_shiny_texture=skin.requires_shiny_texture,
                    gendered_model=gendered_model,
                    gendered_texture=gendered_texture,
                )
            else:
                continue
            if variant in seen:
                continue
            seen.add(variant)
            variants.append(variant)
    return variants


def geometry_variants(variants: List[AppearanceVariant]) -> List[AppearanceVariant]:
    """Variants that carry their own geometry slot, deduplicated by slot name."""
    result: List[AppearanceVariant] = []
    slots = set()
    for variant in variants:
        if variant.has_own_geometry and variant.geometry_slot not in slots:
            slots.add(variant.geometry_slot)
            result.append(variant)
    return result


def texture_variants(variants: List[AppearanceVariant]) -> List[AppearanceVariant]:
    """Variants that carry their own texture slot, deduplicated by slot name."""
    result: List[AppearanceVariant] = []
    slots = set()
    for variant in variants:
        if variant.requires_texture and variant.texture_slot not in slots:
            slots.add(variant.texture_slot)
            result.append(variant)
    return result
