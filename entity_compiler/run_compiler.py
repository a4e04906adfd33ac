#!/usr/bin/env python3
"""Compile entity descriptors for an asset pack.

Usage:
    compile-entity-descriptors --root ./resource_pack
    compile-entity-descriptors --config compiler.yaml --workers 4 --report-json reports/missing.json

Exit codes:
    0  compiled (the diagnostics report may still list problems)
    1  fatal error (config, species table, customization schema, templates, output)
    2  one or more species crashed; the rest were compiled
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from entity_compiler.compiler import EntityCompiler
from entity_compiler.config import load_compiler_config
from entity_compiler.error_handling import CompilerError, log_compiler_error
from entity_compiler.logging_config import init_logging

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compile entity descriptors and render controllers.")
    parser.add_argument("--config", type=Path, help="YAML or JSON compiler config file.")
    parser.add_argument("--root", type=Path, help="Asset pack root directory.")
    parser.add_argument("--species-table", type=Path, help="Species table, relative to the root.")
    parser.add_argument("--customizations", type=Path, help="Customization schema (YAML or JSON).")
    parser.add_argument("--templates-dir", type=Path, help="Directory overriding the bundled templates.")
    parser.add_argument("--report", type=Path, help="Markdown diagnostics report path.")
    parser.add_argument("--report-json", type=Path, help="Also write the report as JSON.")
    parser.add_argument("--namespace", help="Entity namespace (default: pokemon).")
    parser.add_argument("--workers", type=int, help="Species compiled in parallel.")
    parser.add_argument(
        "--no-dark-sprites",
        dest="dark_sprites",
        action="store_false",
        default=None,
        help="Skip dark sprite generation.",
    )
    parser.add_argument(
        "--no-prune",
        dest="prune",
        action="store_false",
        default=None,
        help="Keep documents of species no longer in the table.",
    )
    parser.add_argument("--print-config", action="store_true", help="Print the effective config and exit.")
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO).")
    parser.add_argument("--log-json", dest="log_json", action="store_true", default=None)
    parser.add_argument("--log-plain", dest="log_json", action="store_false")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    level = None
    if args.log_level:
        level = getattr(logging, args.log_level.upper(), logging.INFO)
    init_logging(level=level, json_enabled=args.log_json)

    try:
        config = load_compiler_config(args.config).with_overrides(
            root=args.root,
            species_table_path=args.species_table,
            customizations_path=args.customizations,
            templates_dir=args.templates_dir,
            report_path=args.report,
            report_json_path=args.report_json,
            namespace=args.namespace,
            workers=args.workers,
            generate_dark_sprites=args.dark_sprites,
            prune_stale_outputs=args.prune,
        )
        if args.print_config:
            print(json.dumps(config.to_dict(), indent=2))
            return 0
        result = EntityCompiler.from_config(config).run()
    except CompilerError as exc:
        log_compiler_error(exc, f"Compilation aborted: {exc.message}", logger=logger)
        return 1

    if result.failed_species:
        logger.error(f"Species that failed to compile: {', '.join(result.failed_species)}")
    return result.exit_code


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
