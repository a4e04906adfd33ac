"""
Customization schema models.

A customization entry describes everything about a species' appearance that
is out of the norm: gender differences, cosmetic skins, animated textures,
particle effects used by its animations, and assets inherited from another
species.

Skins are written either as a bare list of difference kinds or as an
extended record::

    sandshrew:
      skins:
        halloween: [model, texture]
    torterra:
      skins:
        stpatrick:
          differences: [model, texture, shiny_texture, animation_walking]
          animatedTextureConfig: [3, 8]
          animationParticleEffects: ["pokeb:clover"]

Both forms normalize into one ``SkinSpec`` shape at validation time, so
nothing downstream needs to know which form was written.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


TEXTURE = "texture"
SHINY_TEXTURE = "shiny_texture"
MODEL = "model"
SOUND = "sound"
ANIMATION_PREFIX = "animation_"

PLAIN_DIFFERENCE_KINDS = (TEXTURE, SHINY_TEXTURE, MODEL, SOUND)

# Behaviors that may appear as ``animation_<behavior>`` difference kinds.
KNOWN_BEHAVIORS = (
    "flying",
    "air_idle",
    "swimming",
    "water_idle",
    "walking",
    "ground_idle",
    "sleeping",
    "blink",
    "attack",
    "faint",
)

INHERITABLE_KEYS = (MODEL, TEXTURE, SHINY_TEXTURE, "animations")


def validate_difference_kind(kind: str) -> str:
    kind = str(kind).strip()
    if kind in PLAIN_DIFFERENCE_KINDS:
        return kind
    if kind.startswith(ANIMATION_PREFIX):
        behavior = kind[len(ANIMATION_PREFIX):]
        if behavior in KNOWN_BEHAVIORS:
            return kind
        raise ValueError(f"Unknown animation behavior in difference kind '{kind}'")
    raise ValueError(
        f"Unknown difference kind '{kind}' "
        f"(expected one of {', '.join(PLAIN_DIFFERENCE_KINDS)} or animation_<behavior>)"
    )


def normalize_differences(kinds: Tuple[str, ...]) -> Tuple[str, ...]:
    """Validate, de-duplicate, and apply ``model`` ⇒ ``texture``."""
    normalized: List[str] = []
    for kind in kinds:
        kind = validate_difference_kind(kind)
        if kind not in normalized:
            normalized.append(kind)
    if MODEL in normalized and TEXTURE not in normalized:
        normalized.insert(normalized.index(MODEL) + 1, TEXTURE)
    return tuple(normalized)


def local_effect_name(effect_id: str) -> Optional[str]:
    """``"pokeb:poison_smoke"`` -> ``"poison_smoke"``; None without a namespace."""
    _, separator, local = effect_id.partition(":")
    if not separator or not local:
        return None
    return local


class AnimatedTextureConfig(BaseModel):
    """Frame count and playback speed of a vertically stacked texture atlas."""
    model_config = ConfigDict(frozen=True)

    frame_count: int = Field(..., ge=1)
    fps: int = Field(..., ge=1)

    @model_validator(mode="before")
    @classmethod
    def _coerce_pair(cls, value):
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError("animatedTextureConfig must be [frameCount, fps]")
            return {"frame_count": value[0], "fps": value[1]}
        return value

    def offset_expression(self, life_time: str) -> str:
        return (
            f"math.mod(math.floor({life_time} * {self.fps}), {self.frame_count}) / {self.frame_count}"
        )

    def scale_expression(self) -> str:
        return f"1.0 / {self.frame_count}"


class SkinSpec(BaseModel):
    """Normalized skin declaration (bare list or extended record)."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    differences: Tuple[str, ...] = ()
    animated_texture_config: Optional[AnimatedTextureConfig] = Field(
        default=None, alias="animatedTextureConfig"
    )
    animation_particle_effects: Optional[Tuple[str, ...]] = Field(
        default=None, alias="animationParticleEffects"
    )

    @model_validator(mode="before")
    @classmethod
    def _coerce_simple(cls, value):
        if isinstance(value, (list, tuple)):
            return {"differences": list(value)}
        return value

    @field_validator("differences")
    @classmethod
    def _normalize(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        return normalize_differences(value)

    def has(self, kind: str) -> bool:
        return kind in self.differences

    @property
    def requires_model(self) -> bool:
        return self.has(MODEL)

    @property
    def requires_texture(self) -> bool:
        return self.has(TEXTURE)

    @property
    def requires_shiny_texture(self) -> bool:
        return self.has(SHINY_TEXTURE)

    @property
    def is_visual(self) -> bool:
        """Whether the skin needs its own geometry or texture resolution."""
        return self.requires_model or self.requires_texture

    @property
    def animation_behaviors(self) -> Tuple[str, ...]:
        return tuple(
            kind[len(ANIMATION_PREFIX):] for kind in self.differences if kind.startswith(ANIMATION_PREFIX)
        )


class CustomizationSchema(BaseModel):
    """Customization entry of one species."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    gender_differences: Tuple[str, ...] = Field(default=(), alias="genderDifferences")
    skins: Dict[str, SkinSpec] = Field(default_factory=dict)
    animated_texture_config: Optional[AnimatedTextureConfig] = Field(
        default=None, alias="animatedTextureConfig"
    )
    animation_particle_effects: Tuple[str, ...] = Field(default=(), alias="animationParticleEffects")
    inherits: Dict[str, str] = Field(default_factory=dict)

    @field_validator("gender_differences", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return () if value is None else value

    @field_validator("gender_differences")
    @classmethod
    def _normalize_gender(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        return normalize_differences(value)

    @field_validator("skins", mode="before")
    @classmethod
    def _skins_none_is_empty(cls, value):
        return {} if value is None else value

    @field_validator("inherits")
    @classmethod
    def _validate_inherits(cls, value: Dict[str, str]) -> Dict[str, str]:
        for key, source in value.items():
            if key in INHERITABLE_KEYS:
                pass
            elif key.startswith(ANIMATION_PREFIX) and key[len(ANIMATION_PREFIX):] in KNOWN_BEHAVIORS:
                pass
            else:
                raise ValueError(f"Unknown inherits key '{key}'")
            if not str(source).strip():
                raise ValueError(f"inherits.{key} must name a species")
        return value

    @property
    def gendered(self) -> bool:
        return bool(self.gender_differences)

    @property
    def gender_model(self) -> bool:
        return MODEL in self.gender_differences

    @property
    def gender_texture(self) -> bool:
        return TEXTURE in self.gender_differences

    @property
    def has_visual_customization(self) -> bool:
        """Whether the species gets its own render controller."""
        return bool(self.animated_texture_config or self.gendered or self.skins)

    @property
    def needs_custom_evolve_controller(self) -> bool:
        """The model can change, so the evolve controller must select it too."""
        return self.gender_model or any(skin.requires_model for skin in self.skins.values())

    def skin_ids(self) -> List[str]:
        """Skin ids in declaration order; this order is the runtime skin index."""
        return list(self.skins)

    def effective_animated_texture(self, skin_id: Optional[str] = None) -> Optional[AnimatedTextureConfig]:
        """Skin-level override, else the species default."""
        if skin_id is not None:
            skin = self.skins.get(skin_id)
            if skin is not None and skin.animated_texture_config is not None:
                return skin.animated_texture_config
        return self.animated_texture_config

    def declared_particle_effects(self) -> List[str]:
        """Species effects followed by skin overrides, de-duplicated in order."""
        effects: List[str] = []
        for effect_id in self.animation_particle_effects:
            if effect_id not in effects:
                effects.append(effect_id)
        for skin in self.skins.values():
            for effect_id in skin.animation_particle_effects or ():
                if effect_id not in effects:
                    effects.append(effect_id)
        return effects

    def inherited(self, key: str) -> Optional[str]:
        return self.inherits.get(key)

    def inherited_animation(self, behavior: str) -> Optional[str]:
        return self.inherits.get("animations") or self.inherits.get(f"{ANIMATION_PREFIX}{behavior}")


class CustomizationCatalog:
    """All customization entries, keyed by species id."""

    def __init__(self, entries: Optional[Dict[str, CustomizationSchema]] = None):
        self.entries: Dict[str, CustomizationSchema] = dict(entries or {})

    def get(self, species_id: str) -> Optional[CustomizationSchema]:
        return self.entries.get(species_id)

    def __contains__(self, species_id: object) -> bool:
        return species_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)
