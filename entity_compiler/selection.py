"""
Selection Expression Compiler.

Builds the geometry / texture / material index arrays of a render controller
and the runtime expressions that pick an array slot from the entity's skin
index, gender and shiny state.

Array slots and expression indices both come from ``SlotTable.index_of``, so
an expression can never point at a different slot than the array holds.

Expressions are chains of ``(condition) ? index : ...`` terms ending in the
default index ``0``. Evaluation is left to right and the first match wins.
Terms are emitted skin-major (skin index ascending, male before female);
terms whose index is the default are left out since the conditions of a
chain are mutually exclusive. Skins with no slot of their own are caught by
trailing gender / shiny terms that ignore the skin index.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from entity_compiler.config import ExpressionConfig
from entity_compiler.customization.schema import CustomizationSchema
from entity_compiler.variants import (
    DEFAULT_APPEARANCE,
    AppearanceVariant,
    geometry_variants,
    texture_variants,
)

logger = logging.getLogger(__name__)

DEFAULT_INDEX = 0

GEOMETRY_ARRAY = "Array.geometryVariants"
TEXTURE_ARRAY = "Array.textureVariants"
MATERIAL_ARRAY = "Array.materialVariants"


class SlotTable:
    """An ordered, de-duplicated render controller array."""

    def __init__(self, prefix: str, slots: Iterable[str] = ()):
        self.prefix = prefix
        self._slots: List[str] = []
        for slot in slots:
            self.add(slot)

    def add(self, slot: str) -> int:
        if slot not in self._slots:
            self._slots.append(slot)
        return self._slots.index(slot)

    def index_of(self, slot: str) -> int:
        try:
            return self._slots.index(slot)
        except ValueError:
            raise KeyError(f"{self.prefix}.{slot} is not in the array") from None

    @property
    def slots(self) -> List[str]:
        return list(self._slots)

    def entries(self) -> List[str]:
        return [f"{self.prefix}.{slot}" for slot in self._slots]

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, slot: object) -> bool:
        return slot in self._slots


@dataclass(frozen=True)
class SelectionTerm:
    condition: str
    index: int


def compile_chain(terms: Sequence[SelectionTerm], default: int = DEFAULT_INDEX) -> str:
    """Chain ``terms`` into ``(c1) ? i1 : (c2) ? i2 : default``."""
    parts = [f"({term.condition}) ? {term.index}" for term in terms if term.index != default]
    parts.append(str(default))
    return " : ".join(parts)


class ConditionBuilder:
    """Formats the runtime conditions used by selection chains."""

    def __init__(self, expressions: Optional[ExpressionConfig] = None):
        self.expressions = expressions or ExpressionConfig()

    def skin(self, skin_index: int) -> str:
        return f"{self.expressions.skin_index} == {skin_index}"

    def gender(self, gender: str) -> str:
        return f"{self.expressions.gender_property} == '{gender}'"

    def shiny(self, shiny: bool) -> str:
        return f"{self.expressions.shiny_property} == {'true' if shiny else 'false'}"

    def variant(
        self,
        variant: AppearanceVariant,
        *,
        gendered: bool,
        shiny: Optional[bool] = None,
        any_skin: bool = False,
    ) -> str:
        clauses = [] if any_skin else [self.skin(variant.skin_index)]
        if gendered and variant.gender is not None:
            clauses.append(self.gender(variant.gender.value))
        if shiny is not None:
            clauses.append(self.shiny(shiny))
        return " && ".join(clauses)


def _skin_major(variants: Sequence[AppearanceVariant]) -> List[AppearanceVariant]:
    # sorted() is stable, so male stays ahead of female within a skin.
    return sorted(variants, key=lambda variant: variant.skin_index)


def _uncovered_skins(variants: Sequence[AppearanceVariant], skin_count: int) -> bool:
    """Whether some skin index has no variant of its own in ``variants``."""
    covered = {variant.skin_index for variant in variants}
    return not covered.issuperset(range(skin_count + 1))


@dataclass
class CompiledArray:
    table: SlotTable
    expression: str

    @property
    def entries(self) -> List[str]:
        return self.table.entries()


def compile_geometry(
    variants: Sequence[AppearanceVariant],
    conditions: ConditionBuilder,
    skin_count: int = 0,
) -> CompiledArray:
    """Geometry array in variant order plus its selection expression.

    Skins without a geometry of their own render their gender's default
    geometry, so a trailing gender-only term is added when such skins exist.
    """
    geo_variants = geometry_variants(list(variants))
    table = SlotTable("Geometry", (variant.geometry_slot for variant in geo_variants))
    if len(table) <= 1:
        only = table.slots[0] if len(table) else DEFAULT_APPEARANCE
        return CompiledArray(table=table, expression=f"Geometry.{only}")

    terms = [
        SelectionTerm(
            condition=conditions.variant(variant, gendered=variant.gendered_model),
            index=table.index_of(variant.geometry_slot),
        )
        for variant in _skin_major(geo_variants)
    ]
    if _uncovered_skins(geo_variants, skin_count):
        terms.extend(
            SelectionTerm(
                conditions.variant(variant, gendered=True, any_skin=True),
                table.index_of(variant.geometry_slot),
            )
            for variant in geo_variants
            if variant.is_default and variant.gendered_model and variant.gender is not None
        )
    return CompiledArray(table=table, expression=f"{GEOMETRY_ARRAY}[{compile_chain(terms)}]")


def compile_textures(
    variants: Sequence[AppearanceVariant],
    conditions: ConditionBuilder,
    skin_count: int = 0,
) -> CompiledArray:
    """Texture array (each shiny slot after its twin) plus its selection expression."""
    tex_variants = texture_variants(list(variants))
    table = SlotTable("Texture")
    for variant in tex_variants:
        table.add(variant.texture_slot)
        if variant.has_shiny_texture:
            table.add(variant.shiny_texture_slot)

    terms: List[SelectionTerm] = []
    for variant in _skin_major(tex_variants):
        gendered = variant.gendered_texture
        if variant.has_shiny_texture:
            terms.append(SelectionTerm(
                conditions.variant(variant, gendered=gendered, shiny=False),
                table.index_of(variant.texture_slot),
            ))
            terms.append(SelectionTerm(
                conditions.variant(variant, gendered=gendered, shiny=True),
                table.index_of(variant.shiny_texture_slot),
            ))
        else:
            terms.append(SelectionTerm(
                conditions.variant(variant, gendered=gendered),
                table.index_of(variant.texture_slot),
            ))
    if _uncovered_skins(tex_variants, skin_count):
        # Skins without a texture of their own show the default texture.
        for variant in tex_variants:
            if not variant.is_default:
                continue
            gendered = variant.gendered_texture and variant.gender is not None
            if gendered:
                terms.append(SelectionTerm(
                    conditions.variant(variant, gendered=True, shiny=False, any_skin=True),
                    table.index_of(variant.texture_slot),
                ))
            terms.append(SelectionTerm(
                conditions.variant(variant, gendered=gendered, shiny=True, any_skin=True),
                table.index_of(variant.shiny_texture_slot),
            ))
    return CompiledArray(table=table, expression=f"{TEXTURE_ARRAY}[{compile_chain(terms)}]")


def compile_materials(schema: CustomizationSchema, conditions: ConditionBuilder) -> CompiledArray:
    """``Material.default`` plus one material per skin with its own animated texture."""
    table = SlotTable("Material", [DEFAULT_APPEARANCE])
    terms: List[SelectionTerm] = []
    for skin_index, (skin_id, skin) in enumerate(schema.skins.items(), start=1):
        if skin.animated_texture_config is None:
            continue
        terms.append(SelectionTerm(conditions.skin(skin_index), table.add(skin_id)))
    if len(table) == 1:
        return CompiledArray(table=table, expression="Material.default")
    return CompiledArray(table=table, expression=f"{MATERIAL_ARRAY}[{compile_chain(terms)}]")


def compile_uv_animation(
    schema: CustomizationSchema,
    conditions: ConditionBuilder,
) -> Optional[Dict[str, List[Any]]]:
    """
    UV offset/scale for animated texture atlases.

    Skins with their own config get a chain on the skin index, ending with
    the species config, or with a static ``0.0``/``1.0`` when the species
    has none. Returns None when nothing is animated.
    """
    life_time = conditions.expressions.life_time
    species_config = schema.animated_texture_config
    offsets: List[str] = []
    scales: List[str] = []
    for skin_index, skin in enumerate(schema.skins.values(), start=1):
        config = skin.animated_texture_config
        if config is None:
            continue
        condition = conditions.skin(skin_index)
        offsets.append(f"({condition}) ? {config.offset_expression(life_time)}")
        scales.append(f"({condition}) ? {config.scale_expression()}")

    if not offsets and species_config is None:
        return None
    if species_config is not None:
        offsets.append(species_config.offset_expression(life_time))
        scales.append(species_config.scale_expression())
    else:
        offsets.append("0.0")
        scales.append("1.0")
    return {
        "offset": [0.0, " : ".join(offsets)],
        "scale": [1.0, " : ".join(scales)],
    }


@dataclass
class RenderSelection:
    """Compiled arrays and expressions of one species' render controller."""
    species_id: str
    geometry: CompiledArray
    textures: CompiledArray
    materials: CompiledArray
    uv_anim: Optional[Dict[str, List[Any]]] = None
    custom_evolve: bool = False
    variants: List[AppearanceVariant] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "species_id": self.species_id,
            "geometry_array": self.geometry.entries,
            "geometry_expression": self.geometry.expression,
            "texture_array": self.textures.entries,
            "texture_expression": self.textures.expression,
            "material_array": self.materials.entries,
            "material_expression": self.materials.expression,
            "uv_anim": self.uv_anim,
            "custom_evolve": self.custom_evolve,
        }


def compile_selection(
    species_id: str,
    schema: Optional[CustomizationSchema],
    variants: Sequence[AppearanceVariant],
    expressions: Optional[ExpressionConfig] = None,
) -> Optional[RenderSelection]:
    """
    Compile the render controller selection for a species.

    Args:
        species_id: Species being compiled.
        schema: Its customization entry.
        variants: Output of ``expand_variants`` for the same schema.
        expressions: Runtime query names.

    Returns:
        RenderSelection, or None for a species without visual customization,
        which uses the shared static render controller instead.
    """
    if schema is None or not schema.has_visual_customization:
        return None

    conditions = ConditionBuilder(expressions)
    skin_count = len(schema.skins)
    selection = RenderSelection(
        species_id=species_id,
        geometry=compile_geometry(variants, conditions, skin_count),
        textures=compile_textures(variants, conditions, skin_count),
        materials=compile_materials(schema, conditions),
        uv_anim=compile_uv_animation(schema, conditions),
        custom_evolve=schema.needs_custom_evolve_controller,
        variants=list(variants),
    )
    logger.debug(
        f"Compiled selection for {species_id}: "
        f"{len(selection.geometry.table)} geometries, {len(selection.textures.table)} textures"
    )
    return selection
