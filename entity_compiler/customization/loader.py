from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Union

import yaml
from pydantic import ValidationError

from entity_compiler.error_handling.errors import SchemaLoadError

from .schema import CustomizationCatalog, CustomizationSchema

logger = logging.getLogger(__name__)


def _format_issues(species_id: str, exc: ValidationError) -> List[str]:
    issues = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"])
        prefix = f"{species_id}.{location}" if location else species_id
        issues.append(f"{prefix}: {err['msg']}")
    return issues


def parse_customizations(payload: object, *, source: str = "<memory>") -> CustomizationCatalog:
    """Validate an already-parsed customization mapping.

    Every entry is validated before failing so the error lists all problems
    at once.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise SchemaLoadError(
            f"Customizations in {source} must be a mapping of species id to entry",
            path=source,
        )

    entries: Dict[str, CustomizationSchema] = {}
    issues: List[str] = []
    for species_id, raw_entry in payload.items():
        species_id = str(species_id)
        try:
            entries[species_id] = CustomizationSchema.model_validate(raw_entry or {})
        except ValidationError as exc:
            issues.extend(_format_issues(species_id, exc))

    if issues:
        raise SchemaLoadError(
            f"Customizations in {source} failed validation ({len(issues)} issue(s))",
            path=source,
            issues=issues,
        )
    return CustomizationCatalog(entries)


def load_customizations(path: Union[str, Path]) -> CustomizationCatalog:
    """
    Load the customization schema from a YAML or JSON file.

    Args:
        path: ``.yaml``/``.yml`` or ``.json`` file keyed by species id.

    Returns:
        CustomizationCatalog with one validated entry per species.

    Raises:
        SchemaLoadError: The file is missing, unparsable or invalid. This is
            fatal for the whole run.
    """
    path = Path(path)
    if not path.is_file():
        raise SchemaLoadError(f"Customization file not found: {path}", path=str(path))

    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise SchemaLoadError(
            f"Customization file {path} could not be parsed: {exc}",
            path=str(path),
            cause=exc,
        ) from exc

    catalog = parse_customizations(payload, source=str(path))
    logger.info(f"Loaded {len(catalog)} customization entries from {path}")
    return catalog
