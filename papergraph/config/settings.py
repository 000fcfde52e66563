"""papergraph configuration via environment / .env file."""

from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PAPERGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Overview ---
    GRAPH_LIMIT_DEFAULT: int = 100
    GRAPH_LIMIT_MAX: int = 1000

    # --- Search ---
    MAX_SEEDS: int = 50
    DEFAULT_MAX_DISTANCE: int = 2
    MAX_DISTANCE_CEILING: int = 4

    # --- Path finding ---
    DEFAULT_MAX_HOPS: int = 5
    MAX_HOPS_CEILING: int = 8

    # --- Resource caps ---
    VISITED_NODE_CAP: int = 5000
    QUERY_TIMEOUT_SECONDS: float = 0.0  # 0 disables the per-query deadline

    # --- Snapshot (CLI / default app) ---
    SNAPSHOT_PATH: str = ""

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    # --- CORS ---
    CORS_ORIGINS: list[str] = ["*"]

    @model_validator(mode="after")
    def _check_bounds(self) -> "Settings":
        if self.GRAPH_LIMIT_DEFAULT > self.GRAPH_LIMIT_MAX:
            raise ValueError("GRAPH_LIMIT_DEFAULT exceeds GRAPH_LIMIT_MAX")
        if self.DEFAULT_MAX_DISTANCE > self.MAX_DISTANCE_CEILING:
            raise ValueError("DEFAULT_MAX_DISTANCE exceeds MAX_DISTANCE_CEILING")
        if self.DEFAULT_MAX_HOPS > self.MAX_HOPS_CEILING:
            raise ValueError("DEFAULT_MAX_HOPS exceeds MAX_HOPS_CEILING")
        if min(self.GRAPH_LIMIT_MAX, self.MAX_SEEDS, self.VISITED_NODE_CAP) < 1:
            raise ValueError("limits and caps must be positive")
        return self


settings = Settings()
