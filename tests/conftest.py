from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from sponge_monument.layout import ChunkStatus
from sponge_monument.models import ChunkPos, Piece


@dataclass
class FakeInstance:
    structure_id: str
    chunk: ChunkPos
    pieces: list[Piece | None] = field(default_factory=list)


class FakeWorld:
    """In-memory world: structure starts keyed by chunk plus sparse blocks."""

    def __init__(self) -> None:
        self.instances: dict[ChunkPos, list[FakeInstance]] = {}
        self.blocks: dict[tuple[int, int, int], str] = {}
        self.realized: list[tuple[int, int, ChunkStatus]] = []
        self.block_reads = 0

    def add_monument(self, chunk: ChunkPos, pieces: list[Piece | None], structure_id: str = "minecraft:monument") -> None:
        self.instances.setdefault(chunk, []).append(FakeInstance(structure_id, chunk, pieces))

    def realize(self, chunk_x: int, chunk_z: int, minimum_status: ChunkStatus) -> None:
        self.realized.append((chunk_x, chunk_z, minimum_status))

    def query_instances(self, chunk_x: int, chunk_z: int, structure_id: str) -> list[FakeInstance]:
        return [i for i in self.instances.get(ChunkPos(chunk_x, chunk_z), []) if i.structure_id == structure_id]

    def block_at(self, x: int, y: int, z: int) -> str:
        self.block_reads += 1
        return self.blocks.get((x, y, z), "minecraft:water")


class ConstantSampler:
    def __init__(self, biome: str) -> None:
        self.biome = biome
        self.calls: list[tuple[int, int, int]] = []

    def sample(self, quart_x: int, quart_y: int, quart_z: int) -> str:
        self.calls.append((quart_x, quart_y, quart_z))
        return self.biome


@pytest.fixture
def world() -> FakeWorld:
    return FakeWorld()


@pytest.fixture
def deep_ocean() -> ConstantSampler:
    return ConstantSampler("minecraft:deep_ocean")
