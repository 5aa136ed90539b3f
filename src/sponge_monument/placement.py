"""Random-spread structure placement math.

Reproduces the region-seeded placement used by the world generator so candidate
start chunks can be predicted from the world seed alone. Results are candidates
only: biome checks during real generation may still reject a region.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .errors import ConfigurationError
from .models import ChunkPos

REGION_MAGIC_X = 341873128712
REGION_MAGIC_Z = 132897987541

_LCG_MULTIPLIER = 0x5DEECE66D
_LCG_INCREMENT = 0xB
_LCG_MASK = (1 << 48) - 1
_INT32_MAX = 0x7FFFFFFF

logger = logging.getLogger("sponge_monument.placement")

ChunkRefiner = Callable[[ChunkPos], ChunkPos | None]


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _java_div(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator >= 0) else -quotient


class JavaRandom:
    """48-bit linear congruential generator compatible with ``java.util.Random``."""

    def __init__(self, seed: int) -> None:
        self._seed = (seed ^ _LCG_MULTIPLIER) & _LCG_MASK

    def next(self, bits: int) -> int:
        self._seed = (self._seed * _LCG_MULTIPLIER + _LCG_INCREMENT) & _LCG_MASK
        return _to_signed(self._seed >> (48 - bits), 32)

    def next_int(self, bound: int | None = None) -> int:
        if bound is None:
            return self.next(32)
        if bound <= 0:
            raise ValueError("bound must be positive")

        m = bound - 1
        if bound & m == 0:
            return (bound * self.next(31)) >> 31

        while True:
            u = self.next(31)
            r = u % bound
            # u - r + m overflowing int32 means u fell in the biased tail.
            if u - r + m <= _INT32_MAX:
                return r


@dataclass(frozen=True, slots=True)
class RandomSpreadPlacement:
    """Placement parameters for one structure type."""

    spacing: int = 32
    separation: int = 5
    salt: int = 10387313
    triangular: bool = True
    buggy_coord_math: bool = False

    @property
    def offset_bound(self) -> int:
        return self.spacing - self.separation

    def validate(self) -> None:
        if self.spacing <= 0:
            raise ConfigurationError(f"spacing must be positive, got {self.spacing}")
        if self.offset_bound <= 0:
            raise ConfigurationError(
                f"spacing ({self.spacing}) must be greater than separation ({self.separation})"
            )


OCEAN_MONUMENT = RandomSpreadPlacement()


def region_seed(world_seed: int, region_x: int, region_z: int, salt: int) -> int:
    return _to_signed(region_x * REGION_MAGIC_X + region_z * REGION_MAGIC_Z + world_seed + salt, 64)


def region_coord(chunk_coord: int, spacing: int, buggy: bool = False) -> int:
    """Region index holding ``chunk_coord``.

    Negative coordinates are shifted before the truncating division so the
    result behaves like floor division. ``buggy`` reproduces the historical
    off-by-two shift.
    """
    if chunk_coord < 0:
        chunk_coord = chunk_coord - spacing - 1 if buggy else chunk_coord - spacing + 1
    return _java_div(chunk_coord, spacing)


def _draw_offset(rand: JavaRandom, bound: int, triangular: bool) -> int:
    if triangular:
        return (rand.next_int(bound) + rand.next_int(bound)) // 2
    return rand.next_int(bound)


def start_chunk_in_region(
    world_seed: int,
    region_x: int,
    region_z: int,
    placement: RandomSpreadPlacement = OCEAN_MONUMENT,
) -> ChunkPos:
    rand = JavaRandom(region_seed(world_seed, region_x, region_z, placement.salt))
    bound = placement.offset_bound
    offset_x = _draw_offset(rand, bound, placement.triangular)
    offset_z = _draw_offset(rand, bound, placement.triangular)
    return ChunkPos(region_x * placement.spacing + offset_x, region_z * placement.spacing + offset_z)


def radius_blocks_to_chunks(radius_blocks: int) -> int:
    return max(1, (radius_blocks + 15) // 16)


def find_start_chunks(
    world_seed: int,
    center: ChunkPos,
    radius_chunks: int,
    max_results: int,
    placement: RandomSpreadPlacement = OCEAN_MONUMENT,
    refine: ChunkRefiner | None = None,
    refine_reach: int = 0,
) -> list[ChunkPos]:
    """Predict structure start chunks within a square radius of ``center``.

    ``refine`` may move a predicted chunk by at most ``refine_reach`` chunks
    per axis or reject it by returning ``None``; the radius check applies to
    the refined position. Starts that cannot reach the square are skipped
    without calling ``refine``. Results are ordered by distance to ``center``
    and truncated to ``max_results`` when it is positive.
    """
    placement.validate()
    if radius_chunks < 0:
        raise ConfigurationError(f"radius must not be negative, got {radius_chunks}")

    spacing = placement.spacing
    buggy = placement.buggy_coord_math
    min_region_x = region_coord(center.x - radius_chunks, spacing, buggy)
    max_region_x = region_coord(center.x + radius_chunks, spacing, buggy)
    min_region_z = region_coord(center.z - radius_chunks, spacing, buggy)
    max_region_z = region_coord(center.z + radius_chunks, spacing, buggy)

    reach = radius_chunks + max(0, refine_reach)
    found: list[ChunkPos] = []
    seen: set[ChunkPos] = set()
    rejected = 0
    for region_x in range(min_region_x, max_region_x + 1):
        for region_z in range(min_region_z, max_region_z + 1):
            start = start_chunk_in_region(world_seed, region_x, region_z, placement)
            if abs(start.x - center.x) > reach or abs(start.z - center.z) > reach:
                continue
            if refine is not None:
                refined = refine(start)
                if refined is None:
                    rejected += 1
                    continue
                start = refined

            if abs(start.x - center.x) > radius_chunks or abs(start.z - center.z) > radius_chunks:
                continue
            if start in seen:
                continue
            seen.add(start)
            found.append(start)

    found.sort(key=lambda chunk: chunk.distance_sq(center))
    logger.debug(
        "placement_scan_complete",
        extra={
            "regions": (max_region_x - min_region_x + 1) * (max_region_z - min_region_z + 1),
            "candidates": len(found),
            "rejected": rejected,
        },
    )
    if max_results > 0:
        return found[:max_results]
    return found
