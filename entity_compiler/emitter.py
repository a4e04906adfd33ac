"""
Entity / Render-Controller Emitter.

Turns a resolved descriptor and a compiled selection into the two output
documents, starting from JSON templates in which ``{speciesId}`` and
``{namespace}`` are substituted. Documents are written atomically and only
when their bytes change, so a rerun on unchanged inputs touches nothing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from entity_compiler.config import DEFAULT_NAMESPACE, AssetLayout
from entity_compiler.error_handling.errors import EmitError, TemplateError
from entity_compiler.resolution.descriptor import ResolvedDescriptor
from entity_compiler.selection import GEOMETRY_ARRAY, MATERIAL_ARRAY, TEXTURE_ARRAY, RenderSelection
from entity_compiler.utils.atomic_write import write_json_atomic

logger = logging.getLogger(__name__)

ENTITY_TEMPLATE = "entity"
SUBSTITUTE_TEMPLATE = "substitute"
RENDER_CONTROLLER_TEMPLATE = "render_controller"

TEMPLATE_FILES = {
    ENTITY_TEMPLATE: "entity.json",
    SUBSTITUTE_TEMPLATE: "substitute.entity.json",
    RENDER_CONTROLLER_TEMPLATE: "render_controller.json",
}

CLIENT_ENTITY = "minecraft:client_entity"
PRIMARY_CONDITION = "query.variant==0"
EVOLVE_CONDITION = "query.variant==1"
SHARED_EVOLVE_CONTROLLER = "controller.render.evolve"
ENTITY_SUFFIX = ".entity.json"
RENDER_CONTROLLER_SUFFIX = ".rc.json"


class TemplateSet:
    """Raw template texts, instantiated per species."""

    def __init__(self, texts: Dict[str, str]):
        self.texts = dict(texts)

    @classmethod
    def load(cls, templates_dir: Path) -> "TemplateSet":
        """Read and validate every template; a missing or broken one is fatal."""
        templates_dir = Path(templates_dir)
        texts: Dict[str, str] = {}
        for name, file_name in TEMPLATE_FILES.items():
            path = templates_dir / file_name
            if not path.is_file():
                raise TemplateError(f"Template {file_name} not found in {templates_dir}", template_name=name)
            text = path.read_text(encoding="utf-8")
            try:
                json.loads(text)
            except json.JSONDecodeError as exc:
                raise TemplateError(
                    f"Template {path} is not valid JSON: {exc}",
                    template_name=name,
                    cause=exc,
                ) from exc
            texts[name] = text
        logger.debug(f"Loaded {len(texts)} templates from {templates_dir}")
        return cls(texts)

    def instantiate(self, name: str, species_id: str, namespace: str = DEFAULT_NAMESPACE) -> Dict[str, Any]:
        try:
            text = self.texts[name]
        except KeyError:
            raise TemplateError(f"Unknown template '{name}'", template_name=name) from None
        text = text.replace("{speciesId}", species_id).replace("{namespace}", namespace)
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise TemplateError(
                f"Template '{name}' is not valid JSON for species {species_id}: {exc}",
                template_name=name,
                cause=exc,
            ) from exc


def _description(document: Dict[str, Any], template_name: str) -> Dict[str, Any]:
    try:
        return document[CLIENT_ENTITY]["description"]
    except (KeyError, TypeError):
        raise TemplateError(
            f"Template '{template_name}' has no {CLIENT_ENTITY}.description",
            template_name=template_name,
        ) from None


def primary_controller_id(species_id: str, namespace: str) -> str:
    return f"controller.render.{namespace}:{species_id}"


def evolve_controller_id(species_id: str, namespace: str) -> str:
    return f"{primary_controller_id(species_id, namespace)}.evolve"


def build_entity_document(
    templates: TemplateSet,
    descriptor: ResolvedDescriptor,
    selection: Optional[RenderSelection],
    namespace: str = DEFAULT_NAMESPACE,
) -> Dict[str, Any]:
    """
    Build the entity descriptor document of one species.

    Geometry, textures and particle effects replace the template's maps;
    animations and materials are merged into them (the ``aura`` material
    stays last).
    """
    species_id = descriptor.species_id
    if not descriptor.has_model:
        document = templates.instantiate(SUBSTITUTE_TEMPLATE, species_id, namespace)
        _description(document, SUBSTITUTE_TEMPLATE)
        return document

    document = templates.instantiate(ENTITY_TEMPLATE, species_id, namespace)
    description = _description(document, ENTITY_TEMPLATE)

    description["geometry"] = dict(descriptor.geometry)
    description["textures"] = dict(descriptor.textures)
    description["particle_effects"] = dict(descriptor.particle_effects)

    animations = dict(description.get("animations") or {})
    animations.update(descriptor.animations)
    description["animations"] = animations

    materials = dict(description.get("materials") or {})
    aura = materials.pop("aura", None)
    materials.update(descriptor.materials)
    if aura is not None:
        materials["aura"] = aura
    description["materials"] = materials

    if selection is None:
        description["render_controllers"] = [
            {f"controller.render.{namespace}": PRIMARY_CONDITION},
            {SHARED_EVOLVE_CONTROLLER: EVOLVE_CONDITION},
        ]
    else:
        evolve = (
            evolve_controller_id(species_id, namespace) if selection.custom_evolve else SHARED_EVOLVE_CONTROLLER
        )
        description["render_controllers"] = [
            {primary_controller_id(species_id, namespace): PRIMARY_CONDITION},
            {evolve: EVOLVE_CONDITION},
        ]
    return document


def build_render_controller_document(
    templates: TemplateSet,
    selection: RenderSelection,
    namespace: str = DEFAULT_NAMESPACE,
) -> Dict[str, Any]:
    """Fill the render controller template with the compiled arrays and expressions."""
    species_id = selection.species_id
    document = templates.instantiate(RENDER_CONTROLLER_TEMPLATE, species_id, namespace)
    controllers = document.get("render_controllers") or {}
    primary_id = primary_controller_id(species_id, namespace)
    evolve_id = evolve_controller_id(species_id, namespace)
    if primary_id not in controllers:
        raise TemplateError(
            f"Render controller template does not define {primary_id}",
            template_name=RENDER_CONTROLLER_TEMPLATE,
        )

    renderer = controllers[primary_id]
    arrays = renderer.setdefault("arrays", {})
    arrays.setdefault("geometries", {})[GEOMETRY_ARRAY] = selection.geometry.entries
    arrays.setdefault("textures", {})[TEXTURE_ARRAY] = selection.textures.entries
    arrays.setdefault("materials", {})[MATERIAL_ARRAY] = selection.materials.entries
    renderer["geometry"] = selection.geometry.expression
    renderer["textures"] = [selection.textures.expression]
    renderer["materials"] = [{"*": selection.materials.expression}]
    if selection.uv_anim is not None:
        renderer["uv_anim"] = selection.uv_anim

    if selection.custom_evolve and evolve_id in controllers:
        evolve = controllers[evolve_id]
        evolve.setdefault("arrays", {}).setdefault("geometries", {})[GEOMETRY_ARRAY] = selection.geometry.entries
        evolve["geometry"] = selection.geometry.expression
    else:
        controllers.pop(evolve_id, None)
    return document


@dataclass
class EmittedDocuments:
    species_id: str
    entity_path: Path
    render_controller_path: Optional[Path] = None
    written: List[Path] = field(default_factory=list)


class DocumentEmitter:
    """Writes entity and render controller documents under the asset pack root."""

    def __init__(
        self,
        root: Path,
        templates: TemplateSet,
        layout: Optional[AssetLayout] = None,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        self.root = Path(root)
        self.templates = templates
        self.layout = layout or AssetLayout.for_namespace(namespace)
        self.namespace = namespace

    @property
    def entity_dir(self) -> Path:
        return self.root / self.layout.entity_output_dir

    @property
    def render_controller_dir(self) -> Path:
        return self.root / self.layout.render_controller_output_dir

    def entity_path(self, species_id: str) -> Path:
        return self.entity_dir / f"{species_id}{ENTITY_SUFFIX}"

    def render_controller_path(self, species_id: str) -> Path:
        return self.render_controller_dir / f"{species_id}{RENDER_CONTROLLER_SUFFIX}"

    def _write(self, path: Path, payload: Dict[str, Any]) -> bool:
        try:
            return write_json_atomic(path, payload)
        except OSError as exc:
            raise EmitError(f"Could not write {path}: {exc}", path=str(path), cause=exc) from exc

    def emit(self, descriptor: ResolvedDescriptor, selection: Optional[RenderSelection]) -> EmittedDocuments:
        species_id = descriptor.species_id
        result = EmittedDocuments(species_id=species_id, entity_path=self.entity_path(species_id))

        entity = build_entity_document(self.templates, descriptor, selection, self.namespace)
        if self._write(result.entity_path, entity):
            result.written.append(result.entity_path)

        if selection is not None:
            result.render_controller_path = self.render_controller_path(species_id)
            controller = build_render_controller_document(self.templates, selection, self.namespace)
            if self._write(result.render_controller_path, controller):
                result.written.append(result.render_controller_path)

        if result.written:
            logger.info(f"Wrote {len(result.written)} document(s) for {species_id}")
        return result

    def prune(self, keep_entities: Iterable[str], keep_render_controllers: Iterable[str]) -> List[Path]:
        """Delete generated documents of species that no longer produce them."""
        removed: List[Path] = []
        for directory, suffix, keep in (
            (self.entity_dir, ENTITY_SUFFIX, set(keep_entities)),
            (self.render_controller_dir, RENDER_CONTROLLER_SUFFIX, set(keep_render_controllers)),
        ):
            if not directory.is_dir():
                continue
            for path in sorted(directory.glob(f"*{suffix}")):
                species_id = path.name[: -len(suffix)]
                if species_id in keep:
                    continue
                try:
                    path.unlink()
                except OSError as exc:
                    raise EmitError(f"Could not remove stale document {path}: {exc}", path=str(path)) from exc
                logger.info(f"Removed stale document {path}")
                removed.append(path)
        return removed
