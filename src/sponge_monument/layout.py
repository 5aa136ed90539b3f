"""Piece-tree introspection for confirmed ocean monuments."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from typing import Protocol

from .models import (
    NO_INSTANCE,
    BlockBox,
    ChunkPos,
    ContainerPiece,
    LayoutReport,
    Piece,
    RoomPiece,
    SpongeRoomObservation,
    StructureInstance,
)
from .telemetry import Telemetry

MONUMENT_STRUCTURE_ID = "minecraft:monument"
WET_SPONGE_BLOCK = "minecraft:wet_sponge"
MAX_SCAN_VOLUME = 2_000_000


class ChunkStatus(str, Enum):
    """Chunk generation phases, in order."""

    EMPTY = "empty"
    STRUCTURE_STARTS = "structure_starts"
    STRUCTURE_REFERENCES = "structure_references"
    BIOMES = "biomes"
    NOISE = "noise"
    SURFACE = "surface"
    CARVERS = "carvers"
    FEATURES = "features"
    LIGHT = "light"
    SPAWN = "spawn"
    FULL = "full"


class ClassificationPolicy(str, Enum):
    """How a room piece is judged to be a sponge room."""

    TYPE_IDENTITY = "type_identity"
    VOLUMETRIC = "volumetric"


class WorldAccess(Protocol):
    """Read access to a running or exported world."""

    def realize(self, chunk_x: int, chunk_z: int, minimum_status: ChunkStatus) -> None:
        """Generate the chunk up to at least ``minimum_status``."""

    def query_instances(self, chunk_x: int, chunk_z: int, structure_id: str) -> list[StructureInstance]:
        """Return structure starts of type ``structure_id`` anchored at the chunk."""

    def block_at(self, x: int, y: int, z: int) -> str:
        """Return the block identifier at a block position."""


def room_pieces(top_level: Sequence[Piece | None]) -> Sequence[Piece | None]:
    """Return the per-room piece list of a structure start.

    Monument starts usually hold a single container piece whose children are
    the rooms; when no container is present the top-level list is the room list.
    """
    for piece in top_level:
        if isinstance(piece, ContainerPiece):
            return piece.children
    return top_level


class LayoutIntrospector:
    """Counts sponge rooms in the monument anchored at a chunk."""

    def __init__(
        self,
        world: WorldAccess,
        *,
        structure_id: str = MONUMENT_STRUCTURE_ID,
        policy: ClassificationPolicy = ClassificationPolicy.VOLUMETRIC,
        marker_block: str = WET_SPONGE_BLOCK,
        max_scan_volume: int = MAX_SCAN_VOLUME,
        telemetry: Telemetry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._world = world
        self._structure_id = structure_id
        self._policy = policy
        self._marker_block = marker_block
        self._max_scan_volume = max_scan_volume
        self._telemetry = telemetry
        self._logger = logger or logging.getLogger("sponge_monument.layout")

    def count_sponge_rooms(self, chunk: ChunkPos) -> int:
        """Return the sponge-room count, or ``NO_INSTANCE`` when nothing generated here."""
        report = self.inspect(chunk)
        if report is None:
            return NO_INSTANCE
        return report.sponge_rooms

    def inspect(self, chunk: ChunkPos) -> LayoutReport | None:
        self._world.realize(chunk.x, chunk.z, ChunkStatus.STRUCTURE_STARTS)
        instances = self._world.query_instances(chunk.x, chunk.z, self._structure_id)
        if not instances:
            return None

        pieces = room_pieces(instances[0].pieces)
        report = LayoutReport(chunk=chunk, piece_count=len(pieces))
        for index, piece in enumerate(pieces):
            if piece is None:
                continue
            observation = self._classify(chunk, index, piece)
            if observation is not None:
                report.observations.append(observation)
                self._emit(observation)

        if report.sponge_rooms:
            self._logger.info(
                "sponge_rooms_detected",
                extra={"chunk_x": chunk.x, "chunk_z": chunk.z, "sponge_rooms": report.sponge_rooms},
            )
        return report

    def _classify(self, chunk: ChunkPos, index: int, piece: Piece) -> SpongeRoomObservation | None:
        if isinstance(piece, ContainerPiece):
            return None

        box = piece.bounding_box
        room_index = piece.room_index if isinstance(piece, RoomPiece) else None
        is_flagged = isinstance(piece, RoomPiece) and piece.is_sponge_room

        if self._policy is ClassificationPolicy.TYPE_IDENTITY or box is None:
            if not is_flagged:
                return None
            return SpongeRoomObservation(chunk, index, room_index, wet_sponges=0, bounding_box=box)

        wet_sponges = self._count_marker_blocks(box)
        if wet_sponges == 0:
            return None
        return SpongeRoomObservation(chunk, index, room_index, wet_sponges=wet_sponges, bounding_box=box)

    def _count_marker_blocks(self, box: BlockBox) -> int:
        if box.volume > self._max_scan_volume:
            self._logger.debug("scan_skipped_volume_too_large", extra={"volume": box.volume})
            return 0

        count = 0
        for y in range(box.min_y, box.max_y + 1):
            for x in range(box.min_x, box.max_x + 1):
                for z in range(box.min_z, box.max_z + 1):
                    if self._world.block_at(x, y, z) == self._marker_block:
                        count += 1
        return count

    def _emit(self, observation: SpongeRoomObservation) -> None:
        payload = {
            "chunk_x": observation.chunk.x,
            "chunk_z": observation.chunk.z,
            "piece_index": observation.piece_index,
            "room_index": observation.room_index,
            "wet_sponges": observation.wet_sponges,
            "bounding_box": observation.bounding_box.as_list() if observation.bounding_box else None,
        }
        if self._telemetry is not None:
            self._telemetry.emit("sponge_room", payload)
        else:
            self._logger.info("sponge_room", extra=payload)
