from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

NO_INSTANCE = -1


@dataclass(frozen=True, slots=True)
class ChunkPos:
    """A 16x16 column of the world lattice, addressed in chunk coordinates."""

    x: int
    z: int

    @classmethod
    def from_block(cls, block_x: int, block_z: int) -> ChunkPos:
        return cls(block_x >> 4, block_z >> 4)

    def center_block(self) -> tuple[int, int]:
        return self.x * 16 + 8, self.z * 16 + 8

    def distance_sq(self, other: ChunkPos) -> int:
        dx = self.x - other.x
        dz = self.z - other.z
        return dx * dx + dz * dz


@dataclass(frozen=True, slots=True)
class BlockBox:
    """Inclusive axis-aligned block volume."""

    min_x: int
    min_y: int
    min_z: int
    max_x: int
    max_y: int
    max_z: int

    @property
    def volume(self) -> int:
        return (
            (self.max_x - self.min_x + 1)
            * (self.max_y - self.min_y + 1)
            * (self.max_z - self.min_z + 1)
        )

    def as_list(self) -> list[int]:
        return [self.min_x, self.min_y, self.min_z, self.max_x, self.max_y, self.max_z]


class PieceKind(str, Enum):
    """Discriminator for structure piece variants."""

    CONTAINER = "container"
    ROOM = "room"
    OTHER = "other"


@dataclass(slots=True)
class ContainerPiece:
    children: list[Piece | None] = field(default_factory=list)
    kind: PieceKind = field(default=PieceKind.CONTAINER, init=False)


@dataclass(slots=True)
class RoomPiece:
    bounding_box: BlockBox | None = None
    room_index: int | None = None
    is_sponge_room: bool = False
    kind: PieceKind = field(default=PieceKind.ROOM, init=False)


@dataclass(slots=True)
class OtherPiece:
    bounding_box: BlockBox | None = None
    kind: PieceKind = field(default=PieceKind.OTHER, init=False)


Piece = ContainerPiece | RoomPiece | OtherPiece


class StructureInstance(Protocol):
    """A confirmed structure start as exposed by a world-access adapter."""

    structure_id: str
    chunk: ChunkPos
    pieces: Sequence[Piece | None]


@dataclass(frozen=True, slots=True)
class BatchRange:
    """Half-open index window ``[start, start + size)`` into the candidate list."""

    start: int
    size: int

    def stop(self, total: int) -> int:
        return min(total, self.start + self.size)

    def contains_start(self, total: int) -> bool:
        return 0 <= self.start < total

    def slice(self, total: int) -> slice:
        return slice(self.start, self.stop(total))


@dataclass(frozen=True, slots=True)
class MonumentResult:
    x: int
    z: int
    sponge_rooms: int

    @property
    def distance_sq(self) -> int:
        return self.x * self.x + self.z * self.z


@dataclass(slots=True)
class SpongeRoomObservation:
    chunk: ChunkPos
    piece_index: int
    room_index: int | None
    wet_sponges: int
    bounding_box: BlockBox | None


@dataclass(slots=True)
class LayoutReport:
    chunk: ChunkPos
    piece_count: int
    observations: list[SpongeRoomObservation] = field(default_factory=list)

    @property
    def sponge_rooms(self) -> int:
        return len(self.observations)


@dataclass(slots=True)
class MergeSummary:
    """Aggregate view of a merged result file."""

    distribution: dict[int, int]
    instance_count: int
    total_rooms: int
    estimated_sponges: int
