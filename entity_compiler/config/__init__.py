"""Compiler Configuration Module.

Settings are layered: dataclass defaults, then an optional YAML/JSON config
file, then ``ENTITY_COMPILER_*`` environment variables. The command line
applies its own overrides last.

Example config file::

    root: ./resource_pack
    species_table: pokemon.json
    customizations: data/customizations.yaml
    report: missing_info.md
    report_json: reports/missing_info.json
    workers: 4
    namespace: pokemon
    expressions:
      gender_property: "query.property('pokeb:gender')"
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from entity_compiler.error_handling.errors import ConfigurationError

from .env import parse_bool_env, parse_int_env, parse_path_env

logger = logging.getLogger(__name__)


PACKAGE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_TEMPLATES_DIR = PACKAGE_DIR / "templates"
DEFAULT_NAMESPACE = "pokemon"

ENV_PREFIX = "ENTITY_COMPILER_"


@dataclass(frozen=True)
class AssetLayout:
    """Locations of inputs and outputs, relative to the asset pack root."""
    geometry_dir: str = f"models/entity/{DEFAULT_NAMESPACE}"
    animation_dir: str = f"animations/{DEFAULT_NAMESPACE}"
    texture_dir: str = f"textures/entity/{DEFAULT_NAMESPACE}"
    sprite_dir: str = "textures/sprites/default"
    dark_sprite_dir: str = "textures/sprites/dark"
    item_texture_path: str = "textures/item_texture.json"
    entity_output_dir: str = f"entity/{DEFAULT_NAMESPACE}"
    render_controller_output_dir: str = f"render_controllers/{DEFAULT_NAMESPACE}"

    @classmethod
    def for_namespace(cls, namespace: str) -> "AssetLayout":
        return cls(
            geometry_dir=f"models/entity/{namespace}",
            animation_dir=f"animations/{namespace}",
            texture_dir=f"textures/entity/{namespace}",
            entity_output_dir=f"entity/{namespace}",
            render_controller_output_dir=f"render_controllers/{namespace}",
        )

    def geometry_file(self, geometry_name: str) -> str:
        return f"{self.geometry_dir}/{geometry_name}.geo.json"

    def animation_file(self, species_id: str) -> str:
        return f"{self.animation_dir}/{species_id}.animation.json"

    def texture_file(self, species_id: str, file_name: str) -> str:
        return f"{self.texture_dir}/{species_id}/{file_name}"

    def sprite_file(self, sprite_name: str) -> str:
        return f"{self.sprite_dir}/{sprite_name}.png"


@dataclass(frozen=True)
class ExpressionConfig:
    """Runtime query names used inside synthesized selection expressions."""
    skin_index: str = "v.skin_index"
    gender_property: str = "query.property('pokeb:gender')"
    shiny_property: str = "query.property('pokeb:shiny')"
    life_time: str = "q.life_time"


@dataclass
class CompilerConfig:
    """Configuration for one compiler run."""
    root: Path = Path(".")
    species_table_path: Path = Path("pokemon.json")
    customizations_path: Path = Path("customizations.yaml")
    templates_dir: Path = DEFAULT_TEMPLATES_DIR
    report_path: Path = Path("missing_info.md")
    report_json_path: Optional[Path] = None
    workers: int = 1
    generate_dark_sprites: bool = True
    prune_stale_outputs: bool = True
    namespace: str = DEFAULT_NAMESPACE
    layout: AssetLayout = field(default_factory=AssetLayout)
    expressions: ExpressionConfig = field(default_factory=ExpressionConfig)

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ConfigurationError(
                f"workers must be >= 1 (got {self.workers})",
                config_key="workers",
            )

    def resolve(self, path: Union[str, Path]) -> Path:
        """Resolve ``path`` against the asset pack root."""
        path = Path(path)
        return path if path.is_absolute() else Path(self.root) / path

    @property
    def species_table_file(self) -> Path:
        return self.resolve(self.species_table_path)

    @property
    def customizations_file(self) -> Path:
        return self.resolve(self.customizations_path)

    @property
    def report_file(self) -> Path:
        return self.resolve(self.report_path)

    @property
    def report_json_file(self) -> Optional[Path]:
        return self.resolve(self.report_json_path) if self.report_json_path else None

    def with_overrides(self, **overrides: Any) -> "CompilerConfig":
        """Return a copy with every non-None override applied."""
        applied = {key: value for key, value in overrides.items() if value is not None}
        if "namespace" in applied and "layout" not in applied:
            applied["layout"] = AssetLayout.for_namespace(applied["namespace"])
        return replace(self, **applied)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], base: Optional["CompilerConfig"] = None) -> "CompilerConfig":
        """Build a config from a parsed config-file mapping."""
        config = base or cls()
        namespace = payload.get("namespace")
        layout = config.layout
        if namespace:
            layout = AssetLayout.for_namespace(str(namespace))
        layout_overrides = payload.get("layout") or {}
        expression_overrides = payload.get("expressions") or {}
        try:
            if layout_overrides:
                layout = replace(layout, **dict(layout_overrides))
            expressions = replace(config.expressions, **dict(expression_overrides))
        except TypeError as exc:
            raise ConfigurationError(f"Unknown config key: {exc}", config_key="layout/expressions") from exc

        workers = payload.get("workers")
        if workers is not None and not isinstance(workers, int):
            raise ConfigurationError(
                f"workers must be an integer (got {workers!r})",
                config_key="workers",
            )

        return config.with_overrides(
            root=_optional_path(payload.get("root")),
            species_table_path=_optional_path(payload.get("species_table")),
            customizations_path=_optional_path(payload.get("customizations")),
            templates_dir=_optional_path(payload.get("templates_dir")),
            report_path=_optional_path(payload.get("report")),
            report_json_path=_optional_path(payload.get("report_json")),
            workers=workers,
            generate_dark_sprites=payload.get("dark_sprites"),
            prune_stale_outputs=payload.get("prune"),
            namespace=namespace,
            layout=layout,
            expressions=expressions,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path], base: Optional["CompilerConfig"] = None) -> "CompilerConfig":
        """Load a YAML or JSON config file."""
        path = Path(path)
        if not path.is_file():
            raise ConfigurationError(f"Config file not found: {path}", config_key="config")
        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix.lower() == ".json":
                payload = json.loads(text)
            else:
                payload = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Config file {path} is not parseable: {exc}", config_key="config") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping", config_key="config")
        logger.debug(f"Loaded compiler config from {path}")
        return cls.from_mapping(payload, base=base)

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        base: Optional["CompilerConfig"] = None,
    ) -> "CompilerConfig":
        """Apply ``ENTITY_COMPILER_*`` environment overrides."""
        env = os.environ if env is None else env
        config = base or cls()

        def _get(key: str) -> Optional[str]:
            return env.get(ENV_PREFIX + key)

        try:
            workers = parse_int_env(_get("WORKERS"), min_value=1, name=ENV_PREFIX + "WORKERS")
        except ValueError as exc:
            raise ConfigurationError(str(exc), config_key=ENV_PREFIX + "WORKERS") from exc

        namespace = _get("NAMESPACE")
        return config.with_overrides(
            root=parse_path_env(_get("ROOT")),
            species_table_path=parse_path_env(_get("SPECIES_TABLE")),
            customizations_path=parse_path_env(_get("CUSTOMIZATIONS")),
            templates_dir=parse_path_env(_get("TEMPLATES_DIR")),
            report_path=parse_path_env(_get("REPORT")),
            report_json_path=parse_path_env(_get("REPORT_JSON")),
            workers=workers,
            generate_dark_sprites=parse_bool_env(_get("DARK_SPRITES")),
            prune_stale_outputs=parse_bool_env(_get("PRUNE")),
            namespace=namespace.strip() if namespace and namespace.strip() else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for config_field in fields(self):
            value = getattr(self, config_field.name)
            if isinstance(value, Path):
                value = value.as_posix()
            elif isinstance(value, (AssetLayout, ExpressionConfig)):
                value = {f.name: getattr(value, f.name) for f in fields(value)}
            payload[config_field.name] = value
        return payload


def _optional_path(value: Any) -> Optional[Path]:
    if value is None or value == "":
        return None
    return Path(str(value)).expanduser()


def load_compiler_config(
    config_path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> CompilerConfig:
    """Load defaults, then the optional config file, then env overrides."""
    config = CompilerConfig()
    if config_path is not None:
        config = CompilerConfig.from_file(config_path, base=config)
    return CompilerConfig.from_env(env, base=config)


__all__ = [
    "AssetLayout",
    "CompilerConfig",
    "DEFAULT_NAMESPACE",
    "DEFAULT_TEMPLATES_DIR",
    "ExpressionConfig",
    "load_compiler_config",
]
