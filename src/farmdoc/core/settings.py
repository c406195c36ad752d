from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", env_prefix="FARMDOC_", extra="ignore")

    # App
    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=8080)
    log_level: str = Field(default="INFO")

    # Storage
    data_dir: Path = Field(default=Path("data"))
    snapshot_subdir: str = Field(default="snapshots")

    # Extraction
    fallback_headers: Dict[str, List[str]] = Field(default_factory=dict)  # family -> names, JSON in env
    max_upload_mb: int = Field(default=100)

    # Build metadata (populated by CI or docker build args)
    build_version: str | None = Field(default=os.getenv("BUILD_VERSION"))
    build_git_commit: str | None = Field(default=os.getenv("BUILD_GIT_COMMIT"))
    build_time: str | None = Field(default=os.getenv("BUILD_TIME"))

    @property
    def snapshot_dir(self) -> Path:
        return self.data_dir / self.snapshot_subdir

    def fallback_for(self, family: str) -> list[str]:
        return [name.strip() for name in self.fallback_headers.get(family, []) if name and name.strip()]

    def ensure_data_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()  # type: ignore[call-arg]
