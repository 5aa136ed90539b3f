from __future__ import annotations

import logging
from pathlib import Path

import pytest

from sponge_monument.environment import EnvironmentFilter
from sponge_monument.errors import CandidateSourceMissingError, ConfigurationError
from sponge_monument.layout import LayoutIntrospector
from sponge_monument.models import BatchRange, BlockBox, ChunkPos, ContainerPiece, MonumentResult, RoomPiece
from sponge_monument.pipeline import BatchPipeline, result_sort_key, summarize
from sponge_monument.placement import RandomSpreadPlacement
from sponge_monument.store import ResultStore


def _monument(rooms: int) -> list:
    children = [
        RoomPiece(bounding_box=None, room_index=index, is_sponge_room=index < rooms) for index in range(8)
    ]
    return [ContainerPiece(children=children)]


def _pipeline(tmp_path: Path, world=None, sampler=None) -> BatchPipeline:
    return BatchPipeline(
        ResultStore(tmp_path),
        environment=EnvironmentFilter(sampler) if sampler else None,
        introspector=LayoutIntrospector(world) if world else None,
    )


def test_seed_15_scenario_end_to_end(tmp_path: Path, world, deep_ocean) -> None:
    pipeline = _pipeline(tmp_path, world, deep_ocean)

    candidates_path = pipeline.discover(15, ChunkPos(0, 0), 64, 5)
    candidates = pipeline.store.read_candidates(candidates_path)
    assert 0 < len(candidates) <= 5
    for chunk in candidates:
        assert abs(chunk.x) <= 64 and abs(chunk.z) <= 64

    for offset, chunk in enumerate(candidates):
        world.add_monument(chunk, _monument(offset % 4))

    partial = pipeline.analyze(0, 5)
    assert partial is not None
    rows = pipeline.store.read_results(partial)
    assert len(rows) == len(candidates)
    assert all(0 <= row.sponge_rooms <= 8 for row in rows)

    summary = pipeline.merge()
    merged = pipeline.store.read_results(pipeline.store.results_path)
    assert summary is not None
    assert merged == sorted(rows, key=result_sort_key)
    assert merged[0].sponge_rooms == max(row.sponge_rooms for row in rows)
    assert not pipeline.store.candidates_path.exists()
    assert pipeline.store.partial_files() == []


def test_discover_deletes_stale_intermediate_files(tmp_path: Path, deep_ocean) -> None:
    store = ResultStore(tmp_path)
    store.write_results(store.partial_path(40), [MonumentResult(1, 1, 1)])

    _pipeline(tmp_path, sampler=deep_ocean).discover(15, ChunkPos(0, 0), 64, 5)

    assert store.partial_files() == []
    assert store.candidates_path.exists()


def test_discover_rejects_invalid_placement_before_io(tmp_path: Path, deep_ocean) -> None:
    store = ResultStore(tmp_path)
    store.write_results(store.partial_path(0), [])
    pipeline = BatchPipeline(
        store,
        placement=RandomSpreadPlacement(spacing=4, separation=8),
        environment=EnvironmentFilter(deep_ocean),
    )

    with pytest.raises(ConfigurationError):
        pipeline.discover(15, ChunkPos(0, 0), 64, 5)
    assert store.partial_path(0).exists()


def test_analyze_without_candidates_is_fatal(tmp_path: Path, world) -> None:
    with pytest.raises(CandidateSourceMissingError):
        _pipeline(tmp_path, world).analyze(0, 5)


def test_analyze_out_of_range_is_a_logged_noop(tmp_path: Path, world, caplog) -> None:
    caplog.set_level(logging.INFO, logger="sponge_monument")
    pipeline = _pipeline(tmp_path, world)
    pipeline.store.write_candidates([ChunkPos(0, 0), ChunkPos(1, 1)])

    assert pipeline.analyze(2, 5) is None
    assert pipeline.store.partial_files() == []
    assert "batch_start_out_of_range" in caplog.text


def test_analyze_rejects_non_positive_batch_size(tmp_path: Path, world) -> None:
    with pytest.raises(ConfigurationError):
        _pipeline(tmp_path, world).analyze(0, 0)


def test_analyze_excludes_missing_instances(tmp_path: Path, world, caplog) -> None:
    caplog.set_level(logging.INFO, logger="sponge_monument")
    pipeline = _pipeline(tmp_path, world)
    pipeline.store.write_candidates([ChunkPos(3, 4), ChunkPos(10, -2)])
    world.add_monument(ChunkPos(10, -2), _monument(2))

    partial = pipeline.analyze(0, 5)

    assert pipeline.store.read_results(partial) == [MonumentResult(160, -32, 2)]
    assert "no_valid_instance" in caplog.text


def test_analyze_processes_only_its_window(tmp_path: Path, world) -> None:
    pipeline = _pipeline(tmp_path, world)
    chunks = [ChunkPos(i, i) for i in range(7)]
    pipeline.store.write_candidates(chunks)
    for chunk in chunks:
        world.add_monument(chunk, _monument(1))

    partial = pipeline.analyze(5, 5)

    assert partial.name == "partial_000005.csv"
    assert [r.x for r in pipeline.store.read_results(partial)] == [80, 96]
    assert [(x, z) for x, z, _ in world.realized] == [(5, 5), (6, 6)]


def test_rerunning_a_batch_overwrites_its_partial(tmp_path: Path, world) -> None:
    pipeline = _pipeline(tmp_path, world)
    pipeline.store.write_candidates([ChunkPos(0, 0)])
    world.add_monument(ChunkPos(0, 0), _monument(3))

    first = pipeline.analyze(0, 5)
    second = pipeline.analyze(0, 5)

    assert first == second
    assert len(pipeline.store.partial_files()) == 1
    assert len(pipeline.store.read_results(second)) == 1


def test_analyze_reads_explicit_candidate_file(tmp_path: Path, world) -> None:
    source = tmp_path / "elsewhere.csv"
    source.write_text("chunk_x,chunk_z\n2,2\n", encoding="utf-8")
    world.add_monument(ChunkPos(2, 2), _monument(4))

    partial = _pipeline(tmp_path / "out", world).analyze(0, 1, candidates_file=source)

    assert partial.parent == tmp_path / "out"


def test_merge_sorts_by_rooms_then_distance(tmp_path: Path) -> None:
    store = ResultStore(tmp_path)
    store.write_results(store.partial_path(0), [MonumentResult(1000, 0, 2), MonumentResult(10, 10, 1)])
    store.write_results(store.partial_path(5), [MonumentResult(-20, 5, 2), MonumentResult(3000, 3000, 4)])

    summary = BatchPipeline(store, per_room_yield=30, per_instance_yield=3).merge()

    merged = store.read_results(store.results_path)
    assert merged == [
        MonumentResult(3000, 3000, 4),
        MonumentResult(-20, 5, 2),
        MonumentResult(1000, 0, 2),
        MonumentResult(10, 10, 1),
    ]
    assert summary.distribution == {4: 1, 2: 2, 1: 1}
    assert list(summary.distribution) == [4, 2, 1]
    assert summary.estimated_sponges == 9 * 30 + 4 * 3


def test_second_merge_finds_nothing_and_keeps_results(tmp_path: Path, caplog) -> None:
    caplog.set_level(logging.INFO, logger="sponge_monument")
    store = ResultStore(tmp_path)
    store.write_results(store.partial_path(0), [MonumentResult(16, 16, 3)])
    pipeline = BatchPipeline(store)

    assert pipeline.merge() is not None
    before = store.results_path.read_text(encoding="utf-8")

    assert pipeline.merge() is None
    assert "merge_no_partial_files_found" in caplog.text
    assert store.results_path.read_text(encoding="utf-8") == before


def test_merged_order_is_canonical_for_identical_inputs(tmp_path: Path) -> None:
    rows = [MonumentResult(x * 16, -x * 32, x % 3) for x in range(-5, 6)]

    first = ResultStore(tmp_path / "a")
    first.write_results(first.partial_path(0), rows)
    second = ResultStore(tmp_path / "b")
    second.write_results(second.partial_path(0), list(reversed(rows)))
    BatchPipeline(first).merge()
    BatchPipeline(second).merge()

    assert first.read_results(first.results_path) == second.read_results(second.results_path)


def test_summarize_empty_results() -> None:
    summary = summarize([])

    assert summary.distribution == {}
    assert summary.estimated_sponges == 0


def test_phases_require_their_collaborators(tmp_path: Path) -> None:
    pipeline = BatchPipeline(ResultStore(tmp_path))

    with pytest.raises(ConfigurationError):
        pipeline.discover(15, ChunkPos(0, 0), 64, 5)
    with pytest.raises(ConfigurationError):
        pipeline.analyze(0, 5)


def test_room_piece_without_box_uses_flag_in_pipeline(tmp_path: Path, world) -> None:
    pipeline = _pipeline(tmp_path, world)
    pipeline.store.write_candidates([ChunkPos(0, 0)])
    world.add_monument(
        ChunkPos(0, 0),
        [RoomPiece(bounding_box=BlockBox(0, 40, 0, 1, 41, 1)), RoomPiece(is_sponge_room=True)],
    )

    partial = pipeline.analyze(0, 1)

    assert pipeline.store.read_results(partial) == [MonumentResult(0, 0, 1)]


def test_batch_range_slices_the_candidate_window() -> None:
    candidates = list(range(7))

    assert candidates[BatchRange(5, 5).slice(len(candidates))] == [5, 6]
    assert candidates[BatchRange(0, 3).slice(len(candidates))] == [0, 1, 2]
    assert BatchRange(7, 5).contains_start(len(candidates)) is False
