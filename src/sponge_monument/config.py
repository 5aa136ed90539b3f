"""Runtime configuration for the monument scanner."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sponge_monument.layout import ClassificationPolicy
from sponge_monument.placement import RandomSpreadPlacement


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="SPONGE_MONUMENT_", env_file=".env", extra="ignore")

    app_name: str = "sponge-monument"
    log_level: str = "INFO"
    output_dir: str = Field(default="scan", description="Directory holding candidate, partial and result CSVs.")

    seed: int | None = Field(default=None, description="World seed to scan.")
    radius_blocks: int = 200_000
    max_results: int = 100
    batch_size: int = 5

    spacing: int = 32
    separation: int = 5
    salt: int = 10387313
    triangular: bool = True
    buggy_coord_math: bool = False

    refine_radius: int = Field(default=0, ge=0, description="Neighbour chunks probed when a candidate fails the biome check.")
    sea_level: int = 63
    classification_policy: ClassificationPolicy = ClassificationPolicy.VOLUMETRIC

    per_room_yield: int = Field(default=30, description="Wet sponges expected per sponge room.")
    per_instance_yield: int = Field(default=3, description="Wet sponges expected per monument outside rooms.")

    cubiomes_bin: str | None = Field(default=None, description="Path to a cubiomes-compatible biome CLI.")
    minecraft_version: str = "1.21.1"
    structure_export: str | None = Field(
        default=None,
        description="JSON-lines structure export written by the host server mod.",
    )

    @field_validator("radius_blocks", "max_results", "batch_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    def placement(self) -> RandomSpreadPlacement:
        return RandomSpreadPlacement(
            spacing=self.spacing,
            separation=self.separation,
            salt=self.salt,
            triangular=self.triangular,
            buggy_coord_math=self.buggy_coord_math,
        )


settings = Settings()
