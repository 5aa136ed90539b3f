"""World access over a structure export written by the host server mod.

The export is JSON lines, one structure start per line::

    {"chunk_x": 12, "chunk_z": -3, "structure": "minecraft:monument",
     "pieces": [{"type": "container", "children": [
         {"type": "room", "box": [x0, y0, z0, x1, y1, z1], "room_index": 7, "sponge": true},
         {"type": "other", "box": [...]}]}],
     "markers": {"minecraft:wet_sponge": [[x, y, z], ...]}}

Pieces are mapped onto the container/room/other variants here so the layout
introspector never sees the host's own class names.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sponge_monument.errors import SpongeMonumentError
from sponge_monument.layout import ChunkStatus
from sponge_monument.models import BlockBox, ChunkPos, ContainerPiece, OtherPiece, Piece, RoomPiece

DEFAULT_BLOCK = "minecraft:water"

logger = logging.getLogger("sponge_monument.adapters.structure_export")


class StructureExportError(SpongeMonumentError):
    """Raised when the structure export is missing or cannot be parsed."""


@dataclass(slots=True)
class ExportedStructure:
    structure_id: str
    chunk: ChunkPos
    pieces: list[Piece | None] = field(default_factory=list)


def _box_from_payload(raw: Any) -> BlockBox | None:
    if not isinstance(raw, (list, tuple)) or len(raw) != 6:
        return None
    try:
        return BlockBox(*(int(value) for value in raw))
    except (TypeError, ValueError):
        return None


def piece_from_payload(payload: Any) -> Piece | None:
    """Map one exported piece onto the piece variants; unknown shapes become ``None``."""
    if not isinstance(payload, dict):
        return None

    kind = str(payload.get("type", "")).lower()
    if kind == "container" or (not kind and isinstance(payload.get("children"), list)):
        return ContainerPiece(children=[piece_from_payload(child) for child in payload.get("children") or []])

    box = _box_from_payload(payload.get("box"))
    if kind == "room":
        room_index = payload.get("room_index")
        return RoomPiece(
            bounding_box=box,
            room_index=room_index if isinstance(room_index, int) else None,
            is_sponge_room=bool(payload.get("sponge", False)),
        )
    return OtherPiece(bounding_box=box)


def _markers_from_payload(raw: Any) -> dict[tuple[int, int, int], str] | None:
    """Map ``{"block": [[x, y, z], ...]}`` onto positions; malformed shapes return ``None``."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        return None

    markers: dict[tuple[int, int, int], str] = {}
    for block_id, positions in raw.items():
        if not isinstance(positions, list):
            return None
        for position in positions:
            if not isinstance(position, list) or len(position) != 3:
                return None
            if not all(isinstance(value, int) and not isinstance(value, bool) for value in position):
                return None
            markers[(position[0], position[1], position[2])] = str(block_id)
    return markers


class StructureExportWorld:
    """Read-only world access backed by an exported structure file.

    Only the records of realized chunks are kept in memory, so a batch holds
    at most ``batch_size`` structure starts and their marker blocks.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._structures: dict[tuple[int, int], list[ExportedStructure]] = {}
        self._markers: dict[tuple[int, int, int], str] = {}
        self._realized: set[tuple[int, int]] = set()

    def __enter__(self) -> StructureExportWorld:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release every cached structure and marker block."""
        self._structures = {}
        self._markers = {}
        self._realized = set()

    def realize(self, chunk_x: int, chunk_z: int, minimum_status: ChunkStatus) -> None:
        if minimum_status not in (ChunkStatus.EMPTY, ChunkStatus.STRUCTURE_STARTS):
            logger.debug(
                "export_status_capped",
                extra={"chunk_x": chunk_x, "chunk_z": chunk_z, "requested": minimum_status.value},
            )
        if (chunk_x, chunk_z) in self._realized:
            return
        self._index_chunk(chunk_x, chunk_z)
        self._realized.add((chunk_x, chunk_z))

    def query_instances(self, chunk_x: int, chunk_z: int, structure_id: str) -> list[ExportedStructure]:
        if (chunk_x, chunk_z) not in self._realized:
            return []
        starts = self._structures.get((chunk_x, chunk_z), [])
        return [start for start in starts if start.structure_id == structure_id]

    def block_at(self, x: int, y: int, z: int) -> str:
        return self._markers.get((x, y, z), DEFAULT_BLOCK)

    def _index_chunk(self, chunk_x: int, chunk_z: int) -> None:
        if not self._path.exists():
            raise StructureExportError(f"Structure export does not exist: {self._path}")

        starts: list[ExportedStructure] = []
        with self._path.open("r", encoding="utf-8") as handle:
            for line_no, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    payload = json.loads(line)
                    chunk = ChunkPos(int(payload["chunk_x"]), int(payload["chunk_z"]))
                except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                    raise StructureExportError(f"Malformed export line {line_no} in {self._path}") from exc

                pieces = payload.get("pieces") or []
                markers = _markers_from_payload(payload.get("markers"))
                if not isinstance(pieces, list) or markers is None:
                    raise StructureExportError(f"Malformed export line {line_no} in {self._path}")
                if (chunk.x, chunk.z) != (chunk_x, chunk_z):
                    continue

                starts.append(
                    ExportedStructure(
                        structure_id=str(payload.get("structure", "")),
                        chunk=chunk,
                        pieces=[piece_from_payload(piece) for piece in pieces],
                    )
                )
                self._markers.update(markers)

        self._structures[(chunk_x, chunk_z)] = starts
        logger.debug(
            "structure_export_indexed",
            extra={"path": str(self._path), "chunk_x": chunk_x, "chunk_z": chunk_z, "starts": len(starts)},
        )
