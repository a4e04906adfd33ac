"""
Batch orchestration.

Loads the species table, the customization schema and the templates (any
failure there is fatal), then compiles every species independently:

    expand variants -> resolve descriptor -> compile selection -> emit -> sprites

Per-species diagnostics are merged in table order, stale documents are
pruned, and the Markdown (and optional JSON) report is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from entity_compiler.assets.probe import AssetProbe
from entity_compiler.assets.sprites import ItemTextureAtlas, SpriteCheckResult, SpriteProcessor
from entity_compiler.config import CompilerConfig
from entity_compiler.customization import CustomizationCatalog, load_customizations
from entity_compiler.diagnostics import DiagnosticsReport
from entity_compiler.emitter import DocumentEmitter, EmittedDocuments, TemplateSet
from entity_compiler.error_handling import (
    EmitError,
    SpeciesBatchResult,
    process_species_with_partial_failure,
)
from entity_compiler.resolution import DescriptorResolver, ResolvedDescriptor
from entity_compiler.selection import RenderSelection, compile_selection
from entity_compiler.species import SpeciesTable, load_species_table
from entity_compiler.utils.atomic_write import write_json_atomic, write_text_atomic

logger = logging.getLogger(__name__)


@dataclass
class SpeciesCompilation:
    """Everything produced for one species."""
    species_id: str
    descriptor: ResolvedDescriptor
    selection: Optional[RenderSelection]
    report: DiagnosticsReport
    documents: EmittedDocuments
    sprites: Optional[SpriteCheckResult] = None


@dataclass
class CompileResult:
    batch: SpeciesBatchResult[SpeciesCompilation]
    report: DiagnosticsReport
    pruned: List[Path] = field(default_factory=list)
    report_written: bool = False

    @property
    def compilations(self) -> Dict[str, SpeciesCompilation]:
        return self.batch.successful

    @property
    def failed_species(self) -> List[str]:
        return [failure["species_id"] for failure in self.batch.failed]

    @property
    def exit_code(self) -> int:
        """0 for a clean or diagnostics-only run, 2 if any species crashed."""
        return 2 if self.batch.failed else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch": self.batch.to_dict(),
            "diagnostics": self.report.to_dict(),
            "pruned": [path.as_posix() for path in self.pruned],
        }


class EntityCompiler:
    """Compiles every species of a species table into entity descriptors."""

    def __init__(
        self,
        config: CompilerConfig,
        species_table: SpeciesTable,
        customizations: CustomizationCatalog,
        templates: TemplateSet,
    ):
        self.config = config
        self.species_table = species_table
        self.customizations = customizations
        self.templates = templates
        self.probe = AssetProbe(config.root, config.layout)
        self.resolver = DescriptorResolver(self.probe)
        self.emitter = DocumentEmitter(config.root, templates, config.layout, config.namespace)
        self.sprites = SpriteProcessor(config.root, config.layout, generate_dark=config.generate_dark_sprites)

    @classmethod
    def from_config(cls, config: CompilerConfig) -> "EntityCompiler":
        """Load all run-wide inputs.

        Raises:
            SpeciesTableError, SchemaLoadError, TemplateError: Fatal; no
                species is compiled.
        """
        species_table = load_species_table(config.species_table_file)
        customizations = load_customizations(config.customizations_file)
        templates = TemplateSet.load(config.templates_dir)

        unknown = sorted(species_id for species_id in customizations.entries if species_id not in species_table.species)
        if unknown:
            logger.warning(f"Customizations for species not in the species table: {', '.join(unknown)}")
        return cls(config, species_table, customizations, templates)

    def compile_species(self, species_id: str) -> SpeciesCompilation:
        """Resolve, compile and emit one species against its own report."""
        entry = self.species_table.get(species_id)
        schema = self.customizations.get(species_id)
        has_model = self.species_table.has_model(species_id)
        report = DiagnosticsReport()

        resolution = self.resolver.resolve(species_id, entry, schema, has_model=has_model, report=report)
        selection = None
        if has_model:
            selection = compile_selection(
                species_id,
                schema,
                resolution.context.variants,
                self.config.expressions,
            )
        documents = self.emitter.emit(resolution.descriptor, selection)
        sprites = self.sprites.check(species_id, schema.skin_ids() if schema else [], report)

        return SpeciesCompilation(
            species_id=species_id,
            descriptor=resolution.descriptor,
            selection=selection,
            report=report,
            documents=documents,
            sprites=sprites,
        )

    def run(self) -> CompileResult:
        """Compile every species, then write the report and shared documents."""
        species_ids = self.species_table.ids()
        batch = process_species_with_partial_failure(
            species_ids,
            self.compile_species,
            max_workers=self.config.workers,
        )

        report = DiagnosticsReport()
        for compilation in batch.successful.values():
            report.merge(compilation.report)

        result = CompileResult(batch=batch, report=report)
        self._update_item_textures(batch)
        if self.config.prune_stale_outputs:
            result.pruned = self._prune(batch)
        result.report_written = self.write_report(report, failed_species=result.failed_species)

        logger.info(
            f"Compiled {batch.success_count}/{batch.total_attempted} species "
            f"with {len(report)} diagnostic(s)"
        )
        return result

    def _update_item_textures(self, batch: SpeciesBatchResult[SpeciesCompilation]) -> None:
        atlas = ItemTextureAtlas.load(self.config.resolve(self.config.layout.item_texture_path))
        if not atlas.available:
            return
        for compilation in batch.successful.values():
            if compilation.sprites is not None:
                atlas.update(compilation.sprites.texture_entries)
        if atlas.save():
            logger.info(f"Updated item texture atlas {atlas.path}")

    def _prune(self, batch: SpeciesBatchResult[SpeciesCompilation]) -> List[Path]:
        # Documents of species that crashed this run are left alone.
        failed = {failure["species_id"] for failure in batch.failed}
        keep_entities = set(batch.successful) | failed
        keep_controllers = {
            species_id for species_id, compilation in batch.successful.items() if compilation.selection is not None
        } | failed
        return self.emitter.prune(keep_entities, keep_controllers)

    def write_report(self, report: DiagnosticsReport, failed_species: Optional[List[str]] = None) -> bool:
        """Write the Markdown report, and the JSON report when configured."""
        written = False
        targets = [(self.config.report_file, report.render_markdown(self.config.layout), False)]
        if self.config.report_json_file is not None:
            payload = report.to_dict()
            payload["failed_species"] = list(failed_species or [])
            targets.append((self.config.report_json_file, payload, True))

        for path, content, is_json in targets:
            try:
                if is_json:
                    changed = write_json_atomic(path, content)
                else:
                    changed = write_text_atomic(path, content)
            except OSError as exc:
                raise EmitError(f"Could not write report {path}: {exc}", path=str(path), cause=exc) from exc
            if changed:
                logger.info(f"Report updated at {path}")
            written = written or changed
        return written


def compile_pack(config: CompilerConfig) -> CompileResult:
    """Load inputs for ``config`` and compile the whole pack."""
    return EntityCompiler.from_config(config).run()
