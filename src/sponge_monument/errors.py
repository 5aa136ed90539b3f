"""Error types raised by the monument scan phases."""

from __future__ import annotations

from pathlib import Path


class SpongeMonumentError(RuntimeError):
    """Base class for fatal scan errors."""


class ConfigurationError(SpongeMonumentError, ValueError):
    """Raised before any I/O when seed, bounds or placement parameters are invalid."""


class CandidateSourceMissingError(SpongeMonumentError):
    """Raised when ``analyze`` runs without a candidate file from ``discover``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"Candidate file does not exist: {self.path}. Run discover first.")


class ResultStoreError(SpongeMonumentError):
    """Raised when a candidate or result CSV cannot be read or written."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"{message}: {self.path}")
