from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path

from sponge_monument.errors import ConfigurationError

UNKNOWN_BIOME = "unknown"

logger = logging.getLogger("sponge_monument.adapters.cubiomes")


class CubiomesCliBiomeSampler:
    """Biome sampler backed by an external cubiomes-compatible CLI.

    The binary must support:
      - biome-at --seed <seed> --x <qx> --y <qy> --z <qz> --scale 4 --version <v> --json

    and print JSON with at least the key ``biome``. A binary that cannot be
    started is a configuration error; a failed or unparsable sample yields
    ``"unknown"``, which no biome rule accepts.
    """

    def __init__(self, binary_path: str, *, seed: int, minecraft_version: str = "1.21.1"):
        self.binary_path = str(Path(binary_path))
        self.seed = seed
        self.minecraft_version = minecraft_version

    def ensure_available(self) -> None:
        """Raise ``ConfigurationError`` unless the binary resolves to an executable."""
        if shutil.which(self.binary_path) is None:
            raise ConfigurationError(f"Biome sampler is not an executable: {self.binary_path}")

    def sample(self, quart_x: int, quart_y: int, quart_z: int) -> str:
        payload = self._run_sampler(quart_x, quart_y, quart_z)
        if payload is None:
            return UNKNOWN_BIOME
        return str(payload["biome"])

    def _run_sampler(self, quart_x: int, quart_y: int, quart_z: int) -> dict | None:
        cmd = [
            self.binary_path,
            "biome-at",
            "--seed",
            str(self.seed),
            "--x",
            str(quart_x),
            "--y",
            str(quart_y),
            "--z",
            str(quart_z),
            "--scale",
            "4",
            "--version",
            self.minecraft_version,
            "--json",
        ]

        try:
            result = subprocess.run(cmd, check=True, text=True, capture_output=True)
        except subprocess.CalledProcessError as exc:
            logger.warning("biome_sampler_failed", extra={"binary": self.binary_path, "error": str(exc)})
            return None
        except OSError as exc:
            raise ConfigurationError(f"Biome sampler cannot be started: {self.binary_path}") from exc

        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError:
            return None

        if not isinstance(payload, dict) or "biome" not in payload:
            return None

        return payload
