"""World and biome capability adapters."""

from .cubiomes import CubiomesCliBiomeSampler
from .structure_export import StructureExportError, StructureExportWorld, piece_from_payload

__all__ = [
    "CubiomesCliBiomeSampler",
    "StructureExportError",
    "StructureExportWorld",
    "piece_from_payload",
]
