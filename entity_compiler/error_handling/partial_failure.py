"""
Partial failure handling for the per-species batch.

Every species is compiled independently. An unexpected exception while
compiling one species is recorded and logged, and the remaining species are
still compiled, so a run always finishes with a report.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Sequence, TypeVar

from entity_compiler.error_handling.errors import SpeciesProcessingError
from entity_compiler.error_handling.logging import log_compiler_error

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass
class SpeciesBatchResult(Generic[R]):
    """Result of compiling a batch of species."""
    successful: Dict[str, R] = field(default_factory=dict)
    failed: List[Dict[str, Any]] = field(default_factory=list)
    total_attempted: int = 0
    duration_seconds: float = 0.0

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def all_succeeded(self) -> bool:
        return self.failure_count == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "total_attempted": self.total_attempted,
            "duration_seconds": self.duration_seconds,
            "failed_species": self.failed,
        }


def _failure_info(index: int, species_id: str, exc: Exception) -> Dict[str, Any]:
    return {
        "item_index": index,
        "species_id": species_id,
        "error": str(exc),
        "error_type": type(exc).__name__,
    }


def _record_failure(
    result: SpeciesBatchResult,
    index: int,
    species_id: str,
    exc: Exception,
) -> None:
    result.failed.append(_failure_info(index, species_id, exc))
    error = SpeciesProcessingError(
        f"Unexpected error while compiling {species_id}: {exc}",
        species_id=species_id,
        cause=exc,
    )
    log_compiler_error(error, f"Failed to compile species {species_id}: {exc}", logger=logger)


def process_species_with_partial_failure(
    species_ids: Sequence[str],
    process_fn: Callable[[str], R],
    *,
    max_workers: int = 1,
) -> SpeciesBatchResult[R]:
    """
    Compile species with partial failure handling.

    Args:
        species_ids: Species to compile, in table order.
        process_fn: Function compiling one species.
        max_workers: Worker threads; 1 compiles sequentially.

    Returns:
        SpeciesBatchResult whose ``successful`` mapping and ``failed`` list
        are both in input order, whatever the completion order was.
    """
    start_time = time.time()
    result: SpeciesBatchResult[R] = SpeciesBatchResult(total_attempted=len(species_ids))

    logger.info(f"Compiling {len(species_ids)} species with {max_workers} worker(s)")

    if max_workers <= 1:
        for index, species_id in enumerate(species_ids):
            try:
                result.successful[species_id] = process_fn(species_id)
            except Exception as exc:
                _record_failure(result, index, species_id, exc)
    else:
        completed: Dict[str, R] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(process_fn, species_id): (index, species_id)
                for index, species_id in enumerate(species_ids)
            }
            for future in as_completed(futures):
                index, species_id = futures[future]
                try:
                    completed[species_id] = future.result()
                except Exception as exc:
                    _record_failure(result, index, species_id, exc)
        for species_id in species_ids:
            if species_id in completed:
                result.successful[species_id] = completed[species_id]
        result.failed.sort(key=lambda failure: failure["item_index"])

    result.duration_seconds = time.time() - start_time

    logger.info(
        f"Species compilation complete: "
        f"{result.success_count}/{result.total_attempted} compiled "
        f"in {result.duration_seconds:.2f}s"
    )
    return result
