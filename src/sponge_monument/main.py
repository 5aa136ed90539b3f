"""CLI entrypoint for the monument scan phases.

An external driver runs ``discover`` once, then ``analyze`` for increasing
``--batch-start`` values (one process per batch), then ``merge`` once.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import typer
from rich import print

from sponge_monument.adapters import CubiomesCliBiomeSampler, StructureExportWorld
from sponge_monument.config import settings
from sponge_monument.environment import EnvironmentFilter
from sponge_monument.errors import ConfigurationError, SpongeMonumentError
from sponge_monument.layout import ClassificationPolicy, LayoutIntrospector
from sponge_monument.models import ChunkPos, MergeSummary
from sponge_monument.pipeline import BatchPipeline, ProcessControl
from sponge_monument.placement import radius_blocks_to_chunks
from sponge_monument.store import ResultStore
from sponge_monument.telemetry import LoggerTelemetry, configure_logging

app = typer.Typer(help="Ocean monument sponge-room scanner")

logger = logging.getLogger("sponge_monument.main")


class CliProcessControl:
    """Ends the CLI process through typer's exit mechanism."""

    def request_graceful_stop(self) -> None:
        raise typer.Exit(code=0)

    def force_halt(self, exit_code: int) -> None:
        raise typer.Exit(code=exit_code)


def _run_phase(
    phase: Callable[[], object],
    report: Callable[[object], None],
    control: ProcessControl | None = None,
) -> None:
    """Run one phase, report its outcome and end the process."""
    control = control or CliProcessControl()
    try:
        outcome = phase()
    except SpongeMonumentError as exc:
        logger.error("phase_failed", extra={"error": str(exc), "error_type": type(exc).__name__})
        print({"error": str(exc)})
        control.force_halt(1)
        return
    report(outcome)
    control.request_graceful_stop()


def _store(output_dir: str | None) -> ResultStore:
    return ResultStore(Path(output_dir or settings.output_dir))


@app.callback()
def main(log_level: str = typer.Option(None, help="Override SPONGE_MONUMENT_LOG_LEVEL")) -> None:
    configure_logging(log_level or settings.log_level)


@app.command("show-config")
def show_config() -> None:
    """Show the effective scan configuration."""
    print(settings.model_dump())


@app.command()
def discover(
    seed: int = typer.Option(None, help="World seed (defaults to SPONGE_MONUMENT_SEED)"),
    center_x: int = typer.Option(0, help="Centre chunk X"),
    center_z: int = typer.Option(0, help="Centre chunk Z"),
    radius_chunks: int = typer.Option(None, help="Square search radius in chunks"),
    max_results: int = typer.Option(None, help="Maximum candidates to keep"),
    output_dir: str = typer.Option(None, help="Scan directory"),
    cubiomes_bin: str = typer.Option(None, help="cubiomes-compatible biome CLI"),
) -> None:
    """Predict monument start chunks and keep those passing the biome filter."""

    def _discover() -> Path:
        effective_seed = seed if seed is not None else settings.seed
        if effective_seed is None:
            raise ConfigurationError("A world seed is required (--seed or SPONGE_MONUMENT_SEED)")
        binary = cubiomes_bin or settings.cubiomes_bin
        if not binary:
            raise ConfigurationError("A biome sampler is required (--cubiomes-bin or SPONGE_MONUMENT_CUBIOMES_BIN)")

        sampler = CubiomesCliBiomeSampler(binary, seed=effective_seed, minecraft_version=settings.minecraft_version)
        sampler.ensure_available()
        pipeline = BatchPipeline(
            _store(output_dir),
            placement=settings.placement(),
            environment=EnvironmentFilter(
                sampler,
                sea_level=settings.sea_level,
                refine_radius=settings.refine_radius,
            ),
        )
        return pipeline.discover(
            effective_seed,
            ChunkPos(center_x, center_z),
            radius_chunks if radius_chunks is not None else radius_blocks_to_chunks(settings.radius_blocks),
            max_results if max_results is not None else settings.max_results,
        )

    _run_phase(_discover, lambda path: print({"candidates_file": str(path)}))


@app.command()
def analyze(
    batch_start: int = typer.Option(..., help="First candidate index of this batch"),
    batch_size: int = typer.Option(None, help="Candidates per batch"),
    candidates_file: str = typer.Option(None, help="Candidate CSV (defaults to <output-dir>/candidates.csv)"),
    output_dir: str = typer.Option(None, help="Scan directory"),
    structure_export: str = typer.Option(None, help="JSON-lines structure export"),
    policy: ClassificationPolicy = typer.Option(None, help="Sponge-room classification policy"),
) -> None:
    """Confirm one batch of candidates and write its partial result file."""

    def _analyze() -> Path | None:
        export = structure_export or settings.structure_export
        if not export:
            raise ConfigurationError("A structure export is required (--structure-export)")

        with StructureExportWorld(export) as world:
            introspector = LayoutIntrospector(
                world,
                policy=policy or settings.classification_policy,
                telemetry=LoggerTelemetry(),
            )
            pipeline = BatchPipeline(_store(output_dir), introspector=introspector)
            return pipeline.analyze(
                batch_start,
                batch_size if batch_size is not None else settings.batch_size,
                candidates_file=candidates_file,
            )

    _run_phase(_analyze, lambda path: print({"partial_file": str(path) if path else None}))


def _print_summary(summary: MergeSummary | None) -> None:
    if summary is None:
        print({"merged": False, "reason": "no partial files found"})
        return
    print(
        {
            "merged": True,
            "distribution": summary.distribution,
            "monuments": summary.instance_count,
            "estimated_sponges": summary.estimated_sponges,
        }
    )


@app.command()
def merge(output_dir: str = typer.Option(None, help="Scan directory")) -> None:
    """Merge partial files into results.csv and print the room distribution."""

    def _merge() -> MergeSummary | None:
        pipeline = BatchPipeline(
            _store(output_dir),
            per_room_yield=settings.per_room_yield,
            per_instance_yield=settings.per_instance_yield,
        )
        return pipeline.merge()

    _run_phase(_merge, _print_summary)


if __name__ == "__main__":
    app()
