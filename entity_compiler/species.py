"""
Species table models.

The species table is the hand-maintained ``pokemon.json`` document listing
every species, its behavior capabilities, and which species ship a real
model (the rest render as a substitute).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from entity_compiler.error_handling.errors import SpeciesTableError

logger = logging.getLogger(__name__)


class BehaviorCapabilities(BaseModel):
    """What a species can physically do; gates which animations are required."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    can_move: bool = Field(default=False, alias="canMove")
    can_walk: bool = Field(default=False, alias="canWalk")
    can_swim: bool = Field(default=False, alias="canSwim")
    can_fly: bool = Field(default=False, alias="canFly")
    can_look: bool = Field(default=False, alias="canLook")
    can_sleep: bool = Field(default=False, alias="canSleep")

    def allows(self, capability: str) -> bool:
        """Look a capability up by its table name, e.g. ``"canFly"``."""
        for name, field_info in type(self).model_fields.items():
            if capability in (name, field_info.alias):
                return bool(getattr(self, name))
        raise KeyError(f"Unknown behavior capability: {capability}")


class SpeciesEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: str = ""
    genderless: bool = False
    skins: List[str] = Field(default_factory=list)
    can_mount: bool = Field(default=False, alias="canMount")
    behavior: BehaviorCapabilities = Field(default_factory=BehaviorCapabilities)


class SpeciesTable(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    with_models: List[str] = Field(default_factory=list, alias="pokemonWithModels")
    species: Dict[str, SpeciesEntry] = Field(alias="pokemon")

    @field_validator("species", mode="before")
    @classmethod
    def _skip_empty_entries(cls, value):
        if not isinstance(value, dict):
            return value
        empty = [species_id for species_id, entry in value.items() if entry is None]
        if empty:
            logger.warning(f"Skipping species with empty table entries: {', '.join(empty)}")
        return {species_id: entry for species_id, entry in value.items() if entry is not None}

    def ids(self) -> List[str]:
        """Species ids in declaration order."""
        return list(self.species)

    def has_model(self, species_id: str) -> bool:
        return species_id in self.with_models

    def get(self, species_id: str) -> SpeciesEntry:
        return self.species[species_id]


def load_species_table(path: Union[str, Path]) -> SpeciesTable:
    """
    Load and validate the species table.

    Raises:
        SpeciesTableError: If the file is missing, is not JSON, or does not
            match the expected shape. The run cannot continue without it.
    """
    path = Path(path)
    if not path.is_file():
        raise SpeciesTableError(f"Species table not found: {path}", path=str(path))

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SpeciesTableError(
            f"Species table {path} is not valid JSON: {exc}",
            path=str(path),
            cause=exc,
        ) from exc

    try:
        table = SpeciesTable.model_validate(payload)
    except ValidationError as exc:
        issues = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        raise SpeciesTableError(
            f"Species table {path} failed validation ({len(issues)} issue(s))",
            path=str(path),
            issues=issues,
            cause=exc,
        ) from exc

    unknown = [species_id for species_id in table.with_models if species_id not in table.species]
    if unknown:
        logger.warning(f"Species listed with models but missing from the table: {', '.join(unknown)}")

    logger.info(f"Loaded {len(table.species)} species from {path}")
    return table
