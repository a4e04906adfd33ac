"""
Animation resolution.

Binds behavior slots (``walking``, ``ground_idle``, ...) to animation ids from
the species' animation document. A behavior is required only when the species'
capability flag for it is set; a required animation that is missing is
reported and bound to the ``ground_idle`` animation instead, except ``blink``
which has no sensible stand-in.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from entity_compiler.assets.probe import AnimationDocument
from entity_compiler.diagnostics import DiagnosticCategory

from .descriptor import ResolutionContext

logger = logging.getLogger(__name__)

GROUND_IDLE = "ground_idle"
BLINK = "blink"

# Behavior -> capability flag gating it. None marks a behavior that is
# never required, except ground_idle which is always required.
BEHAVIOR_REQUIREMENTS: Dict[str, Optional[str]] = {
    "flying": "canFly",
    "air_idle": "canFly",
    "swimming": "canSwim",
    "water_idle": "canSwim",
    "walking": "canWalk",
    GROUND_IDLE: None,
    "sleeping": "canSleep",
    BLINK: "canLook",
    "attack": None,
    "faint": None,
}

# Longer patterns must match a bone name exactly; short ones match as substrings.
BLINK_BONE_PATTERNS = (
    "eyes", "pupiles", "eyelids", "eyelid_left", "eyelid_right", "eye_left", "eye_right",
    "blinkle", "blinkre", "blinkright", "blinkleft", "blink_left", "blink_right",
    "leftblink1", "leftblink2", "rightblink1", "rightblink2", "rightblink", "leftblink",
    "left_pupil", "right_pupil", "pupils", "closed", "opened", "iris", "iris2", "iris3",
    "pupil2", "pupil3", "lids", "lids2", "eye", "pupil", "eyelid", "blink",
)
EXACT_MATCH_MIN_LENGTH = 4


def parse_animation_key(key: str) -> Optional[Tuple[str, str]]:
    """``animation.<owner>.<name>`` -> ``(owner, name)``; None if malformed."""
    parts = key.split(".")
    if len(parts) != 3 or parts[0] != "animation" or not all(parts):
        return None
    return parts[1], parts[2]


def available_animations(ctx: ResolutionContext, document: AnimationDocument) -> Dict[str, str]:
    """Map animation name -> key for every well-formed key in the document.

    When two keys share a name, the one owned by the species itself wins.
    Malformed keys are reported and left out.
    """
    available: Dict[str, str] = {}
    for key in document.keys():
        parsed = parse_animation_key(key)
        if parsed is None:
            ctx.report.record(
                DiagnosticCategory.INVALID_ANIMATION_NAME,
                ctx.species_id,
                key,
                f"Invalid animation name '{key}' in {document.path}",
            )
            continue
        owner, name = parsed
        if name not in available or owner == ctx.species_id:
            available[name] = key
    return available


def is_eye_bone(bone_name: str) -> bool:
    lowered = bone_name.lower()
    for pattern in BLINK_BONE_PATTERNS:
        if len(pattern) >= EXACT_MATCH_MIN_LENGTH:
            if lowered == pattern:
                return True
        elif pattern in lowered:
            return True
    return False


def invalid_blink_bones(document: AnimationDocument, blink_key: str) -> List[str]:
    return [bone for bone in document.animated_bones(blink_key) if not is_eye_bone(bone)]


def default_animation_id(species_id: str) -> str:
    return f"animation.{species_id}.{GROUND_IDLE}"


def _is_required(ctx: ResolutionContext, behavior: str, capability: Optional[str]) -> bool:
    if behavior == GROUND_IDLE:
        return True
    return capability is not None and ctx.entry.behavior.allows(capability)


def load_animation_document(ctx: ResolutionContext) -> AnimationDocument:
    """Probe the species' animation document, reporting a missing or invalid file."""
    document = ctx.probe.animation(ctx.species_id)
    if not document.exists:
        ctx.report.record(
            DiagnosticCategory.MISSING_ANIMATION_FILE,
            ctx.species_id,
            document.path,
            f"Missing animation file {document.path}",
        )
    elif not document.usable:
        ctx.report.record(
            DiagnosticCategory.INVALID_ANIMATION_FILE,
            ctx.species_id,
            document.path,
            f"Animation file {document.path} is invalid: {document.parse_error}",
        )
    return document


def resolve_animations(ctx: ResolutionContext, document: AnimationDocument) -> Dict[str, str]:
    """
    Resolve behavior and skin animation bindings.

    Args:
        ctx: Resolution context of the species.
        document: The species' probed animation document.

    Returns:
        Animation slot -> animation id. Slots are behavior names, plus
        ``<skin>_<behavior>`` for skin-specific animations.
    """
    available = available_animations(ctx, document) if document.usable else {}
    # Without any usable animation, required slots point at the conventional
    # ground_idle id so the animation controller never drives an unbound slot.
    fallback = (
        available.get(GROUND_IDLE)
        or next(iter(available.values()), None)
        or default_animation_id(ctx.species_id)
    )

    bindings: Dict[str, str] = {}
    for behavior, capability in BEHAVIOR_REQUIREMENTS.items():
        inherited_from = ctx.schema.inherited_animation(behavior) if ctx.schema else None
        if inherited_from:
            bindings[behavior] = f"animation.{inherited_from}.{behavior}"
            continue
        if behavior in available:
            bindings[behavior] = available[behavior]
            continue
        if not _is_required(ctx, behavior, capability):
            continue
        if document.usable:
            ctx.report.record(
                DiagnosticCategory.MISSING_ANIMATION,
                ctx.species_id,
                behavior,
                f"Missing required animation '{behavior}'",
            )
        if behavior == BLINK:
            continue
        bindings[behavior] = fallback

    if BLINK in available and not (ctx.schema and ctx.schema.inherited_animation(BLINK)):
        for bone in invalid_blink_bones(document, available[BLINK]):
            ctx.report.record(
                DiagnosticCategory.INVALID_BLINK_ANIMATION,
                ctx.species_id,
                bone,
                f"Blink animation {available[BLINK]} modifies non-eye bone '{bone}'",
                level=logging.WARNING,
            )

    if ctx.schema:
        bindings.update(_resolve_skin_animations(ctx, document, bindings))
    return bindings


def _resolve_skin_animations(
    ctx: ResolutionContext,
    document: AnimationDocument,
    base_bindings: Dict[str, str],
) -> Dict[str, str]:
    bindings: Dict[str, str] = {}
    for skin_id, skin in ctx.schema.skins.items():
        for behavior in skin.animation_behaviors:
            slot = f"{skin_id}_{behavior}"
            key = f"animation.{ctx.species_id}_{skin_id}.{behavior}"
            if document.has_key(key):
                bindings[slot] = key
                continue
            if document.usable:
                ctx.report.record(
                    DiagnosticCategory.MISSING_ANIMATION,
                    ctx.species_id,
                    slot,
                    f"Missing skin animation '{key}'",
                )
            if behavior in base_bindings:
                bindings[slot] = base_bindings[behavior]
    return bindings
