"""CSV persistence for candidates and per-batch results."""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable
from pathlib import Path

from .errors import ResultStoreError
from .models import ChunkPos, MonumentResult

CANDIDATES_FILE = "candidates.csv"
RESULTS_FILE = "results.csv"
PARTIAL_PREFIX = "partial_"

CANDIDATE_HEADER = ("chunk_x", "chunk_z")
RESULT_HEADER = ("x", "z", "inferred_sponge_rooms")


def partial_file_name(batch_start: int) -> str:
    return f"{PARTIAL_PREFIX}{batch_start:06d}.csv"


def _is_header(row: list[str], header: tuple[str, ...]) -> bool:
    return [cell.strip().lower() for cell in row] == list(header)


def _read_int_rows(path: Path, header: tuple[str, ...]) -> list[list[int]]:
    rows: list[list[int]] = []
    seen_first = False
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            for line_no, row in enumerate(csv.reader(handle), start=1):
                if not row or all(not cell.strip() for cell in row):
                    continue
                if not seen_first:
                    seen_first = True
                    if _is_header(row, header):
                        continue
                if len(row) != len(header):
                    raise ResultStoreError(path, f"Expected {len(header)} columns on line {line_no}")
                try:
                    rows.append([int(cell.strip()) for cell in row])
                except ValueError as exc:
                    raise ResultStoreError(path, f"Non-integer value on line {line_no}") from exc
    except OSError as exc:
        raise ResultStoreError(path, f"Failed reading {type(exc).__name__}") from exc
    return rows


def _write_rows(path: Path, header: tuple[str, ...], rows: Iterable[tuple[int, ...]]) -> int:
    written = 0
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle, lineterminator="\n")
            writer.writerow(header)
            for row in rows:
                writer.writerow(row)
                written += 1
    except OSError as exc:
        raise ResultStoreError(path, f"Failed writing {type(exc).__name__}") from exc
    return written


class ResultStore:
    """File layout of one scan inside an explicit output directory."""

    def __init__(self, output_dir: str | Path, logger: logging.Logger | None = None) -> None:
        self._dir = Path(output_dir)
        self._logger = logger or logging.getLogger("sponge_monument.store")

    @property
    def output_dir(self) -> Path:
        return self._dir

    @property
    def candidates_path(self) -> Path:
        return self._dir / CANDIDATES_FILE

    @property
    def results_path(self) -> Path:
        return self._dir / RESULTS_FILE

    def partial_path(self, batch_start: int) -> Path:
        return self._dir / partial_file_name(batch_start)

    def partial_files(self) -> list[Path]:
        if not self._dir.is_dir():
            return []
        return sorted(self._dir.glob(f"{PARTIAL_PREFIX}*.csv"))

    def write_candidates(self, candidates: Iterable[ChunkPos]) -> Path:
        path = self.candidates_path
        count = _write_rows(path, CANDIDATE_HEADER, ((chunk.x, chunk.z) for chunk in candidates))
        self._logger.info("candidates_written", extra={"path": str(path), "rows": count})
        return path

    def read_candidates(self, path: str | Path | None = None) -> list[ChunkPos]:
        return [ChunkPos(x, z) for x, z in _read_int_rows(Path(path or self.candidates_path), CANDIDATE_HEADER)]

    def write_results(self, path: str | Path, results: Iterable[MonumentResult]) -> Path:
        path = Path(path)
        count = _write_rows(path, RESULT_HEADER, ((r.x, r.z, r.sponge_rooms) for r in results))
        self._logger.info("results_written", extra={"path": str(path), "rows": count})
        return path

    def read_results(self, path: str | Path) -> list[MonumentResult]:
        return [MonumentResult(x, z, rooms) for x, z, rooms in _read_int_rows(Path(path), RESULT_HEADER)]

    def clear_intermediate(self) -> list[Path]:
        """Delete candidate and partial files; returns what was removed."""
        targets = [self.candidates_path, *self.partial_files()]
        removed: list[Path] = []
        for path in targets:
            if not path.exists():
                continue
            try:
                path.unlink()
            except OSError as exc:
                raise ResultStoreError(path, "Failed deleting intermediate file") from exc
            removed.append(path)
        if removed:
            self._logger.info("intermediate_files_removed", extra={"count": len(removed)})
        return removed
