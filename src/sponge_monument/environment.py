"""Biome pre-filter for predicted monument start chunks.

Samples the biome source directly so no terrain has to be generated. Passing
the filter only makes a monument likely; the layout introspector confirms it.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .models import ChunkPos

CORE_BIOMES = frozenset(
    {
        "deep_ocean",
        "deep_lukewarm_ocean",
        "deep_cold_ocean",
        "deep_frozen_ocean",
    }
)
FOOTPRINT_BIOMES = CORE_BIOMES | frozenset(
    {
        "ocean",
        "cold_ocean",
        "lukewarm_ocean",
        "warm_ocean",
        "frozen_ocean",
        "river",
        "frozen_river",
    }
)

DEFAULT_SEA_LEVEL = 63
FOOTPRINT_SIZE = 29

logger = logging.getLogger("sponge_monument.environment")


class BiomeSampler(Protocol):
    """Biome lookup in quart (4x4x4 block) coordinates."""

    def sample(self, quart_x: int, quart_y: int, quart_z: int) -> str:
        """Return the biome identifier at the given quart position."""


def biome_path(biome_id: str) -> str:
    """Strip the namespace from ``minecraft:deep_ocean`` style identifiers."""
    return biome_id.rsplit(":", 1)[-1].strip().lower()


def _footprint_offsets(size: int) -> tuple[int, ...]:
    half = size // 2
    return (-half, -(half // 2), 0, half // 2, half)


class EnvironmentFilter:
    """Cheap core + footprint biome check around a chunk's centre block."""

    def __init__(
        self,
        sampler: BiomeSampler,
        *,
        sea_level: int = DEFAULT_SEA_LEVEL,
        refine_radius: int = 0,
        footprint_size: int = FOOTPRINT_SIZE,
    ) -> None:
        self._sampler = sampler
        self._sample_y = sea_level if sea_level > 0 else DEFAULT_SEA_LEVEL
        self._refine_radius = max(0, refine_radius)
        self._offsets = _footprint_offsets(footprint_size)

    @property
    def refine_radius(self) -> int:
        return self._refine_radius

    def passes(self, chunk: ChunkPos) -> bool:
        center_x, center_z = chunk.center_block()
        return self._core_ok(center_x, center_z) and self._footprint_ok(center_x, center_z)

    def refine(self, chunk: ChunkPos) -> ChunkPos | None:
        """Return ``chunk`` or the nearest passing neighbour within the refine radius."""
        if self.passes(chunk):
            return chunk

        for ring in range(1, self._refine_radius + 1):
            for dx in range(-ring, ring + 1):
                for dz in range(-ring, ring + 1):
                    if abs(dx) != ring and abs(dz) != ring:
                        continue
                    probe = ChunkPos(chunk.x + dx, chunk.z + dz)
                    if self.passes(probe):
                        logger.debug(
                            "candidate_refined",
                            extra={"from_chunk": (chunk.x, chunk.z), "to_chunk": (probe.x, probe.z)},
                        )
                        return probe
        return None

    def _biome_at(self, block_x: int, block_z: int) -> str:
        return biome_path(self._sampler.sample(block_x >> 2, self._sample_y >> 2, block_z >> 2))

    def _core_ok(self, center_x: int, center_z: int) -> bool:
        return self._biome_at(center_x, center_z) in CORE_BIOMES

    def _footprint_ok(self, center_x: int, center_z: int) -> bool:
        for dx in self._offsets:
            for dz in self._offsets:
                if self._biome_at(center_x + dx, center_z + dz) not in FOOTPRINT_BIOMES:
                    return False
        return True
