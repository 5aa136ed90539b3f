"""Three-phase monument scan: discover, analyze, merge.

Each phase is meant to run in its own short-lived process. Phases hand work to
each other only through the files of a ``ResultStore``, so a process can exit
between batches to release every world-state cache it accumulated.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Protocol

from .environment import EnvironmentFilter
from .errors import CandidateSourceMissingError, ConfigurationError
from .layout import LayoutIntrospector
from .models import NO_INSTANCE, BatchRange, ChunkPos, MergeSummary, MonumentResult
from .placement import OCEAN_MONUMENT, RandomSpreadPlacement, find_start_chunks
from .store import ResultStore

DEFAULT_PER_ROOM_YIELD = 30
DEFAULT_PER_INSTANCE_YIELD = 3


class ProcessControl(Protocol):
    """Lets a phase end the hosting process."""

    def request_graceful_stop(self) -> None:
        """Ask the host to shut down normally."""

    def force_halt(self, exit_code: int) -> None:
        """Terminate immediately with ``exit_code``."""


def result_sort_key(result: MonumentResult) -> tuple[int, int, int, int]:
    # x, z break distance ties
    return -result.sponge_rooms, result.distance_sq, result.x, result.z


def summarize(
    results: list[MonumentResult],
    *,
    per_room_yield: int = DEFAULT_PER_ROOM_YIELD,
    per_instance_yield: int = DEFAULT_PER_INSTANCE_YIELD,
) -> MergeSummary:
    counts = Counter(result.sponge_rooms for result in results)
    distribution = {rooms: counts[rooms] for rooms in sorted(counts, reverse=True)}
    total_rooms = sum(result.sponge_rooms for result in results)
    return MergeSummary(
        distribution=distribution,
        instance_count=len(results),
        total_rooms=total_rooms,
        estimated_sponges=total_rooms * per_room_yield + len(results) * per_instance_yield,
    )


class BatchPipeline:
    """Runs one phase of a monument scan against a result store."""

    def __init__(
        self,
        store: ResultStore,
        *,
        placement: RandomSpreadPlacement = OCEAN_MONUMENT,
        environment: EnvironmentFilter | None = None,
        introspector: LayoutIntrospector | None = None,
        per_room_yield: int = DEFAULT_PER_ROOM_YIELD,
        per_instance_yield: int = DEFAULT_PER_INSTANCE_YIELD,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._placement = placement
        self._environment = environment
        self._introspector = introspector
        self._per_room_yield = per_room_yield
        self._per_instance_yield = per_instance_yield
        self._logger = logger or logging.getLogger("sponge_monument.pipeline")

    @property
    def store(self) -> ResultStore:
        return self._store

    def discover(self, world_seed: int, center: ChunkPos, radius_chunks: int, max_results: int) -> Path:
        """Predict and biome-filter candidates, then write the candidate file."""
        if self._environment is None:
            raise ConfigurationError("discover requires an environment filter")
        self._placement.validate()
        if radius_chunks < 0:
            raise ConfigurationError(f"radius must not be negative, got {radius_chunks}")

        self._store.clear_intermediate()
        self._logger.info(
            "discover_started",
            extra={
                "seed": world_seed,
                "center_x": center.x,
                "center_z": center.z,
                "radius_chunks": radius_chunks,
                "max_results": max_results,
            },
        )
        candidates = find_start_chunks(
            world_seed,
            center,
            radius_chunks,
            max_results,
            placement=self._placement,
            refine=self._environment.refine,
            refine_reach=self._environment.refine_radius,
        )
        path = self._store.write_candidates(candidates)
        self._logger.info("discover_complete", extra={"candidates": len(candidates)})
        return path

    def analyze(self, batch_start: int, batch_size: int, candidates_file: str | Path | None = None) -> Path | None:
        """Confirm one batch of candidates and write its partial result file.

        Returns ``None`` without writing when ``batch_start`` is past the end of
        the candidate list.
        """
        if self._introspector is None:
            raise ConfigurationError("analyze requires a layout introspector")
        if batch_start < 0:
            raise ConfigurationError(f"batch start must not be negative, got {batch_start}")
        if batch_size <= 0:
            raise ConfigurationError(f"batch size must be positive, got {batch_size}")

        source = Path(candidates_file) if candidates_file else self._store.candidates_path
        if not source.exists():
            raise CandidateSourceMissingError(source)

        candidates = self._store.read_candidates(source)
        batch = BatchRange(batch_start, batch_size)
        if not batch.contains_start(len(candidates)):
            self._logger.warning(
                "batch_start_out_of_range",
                extra={"batch_start": batch_start, "candidates": len(candidates)},
            )
            return None

        stop = batch.stop(len(candidates))
        self._logger.info("analyze_started", extra={"batch_start": batch_start, "batch_stop": stop})

        results: list[MonumentResult] = []
        for index, chunk in enumerate(candidates[batch.slice(len(candidates))], start=batch.start):
            rooms = self._introspector.count_sponge_rooms(chunk)
            if rooms == NO_INSTANCE:
                self._logger.info(
                    "no_valid_instance",
                    extra={"index": index, "chunk_x": chunk.x, "chunk_z": chunk.z},
                )
                continue
            results.append(MonumentResult(chunk.x * 16, chunk.z * 16, rooms))
            self._logger.info(
                "instance_analyzed",
                extra={"index": index, "chunk_x": chunk.x, "chunk_z": chunk.z, "sponge_rooms": rooms},
            )

        return self._store.write_results(self._store.partial_path(batch_start), results)

    def merge(self) -> MergeSummary | None:
        """Combine partial files into the final sorted result file."""
        partials = self._store.partial_files()
        if not partials:
            self._logger.warning(
                "merge_no_partial_files_found",
                extra={"output_dir": str(self._store.output_dir)},
            )
            return None

        results: list[MonumentResult] = []
        for path in partials:
            results.extend(self._store.read_results(path))
        results.sort(key=result_sort_key)

        self._store.write_results(self._store.results_path, results)
        self._store.clear_intermediate()

        summary = summarize(
            results,
            per_room_yield=self._per_room_yield,
            per_instance_yield=self._per_instance_yield,
        )
        for rooms, count in summary.distribution.items():
            self._logger.info("room_distribution", extra={"sponge_rooms": rooms, "monuments": count})
        self._logger.info(
            "merge_complete",
            extra={
                "partial_files": len(partials),
                "monuments": summary.instance_count,
                "total_rooms": summary.total_rooms,
                "estimated_sponges": summary.estimated_sponges,
            },
        )
        return summary
