"""
config/settings.py
──────────────────
Comparison, ranking, search and logging settings, read from the
environment or a .env file via pydantic-settings. Weights here are defaults;
callers may still pass their own RankingWeights per call.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: str = "development"

    # Data
    data_dir: Path = Path("./data")
    manufacturers_file: str = "manufacturers.json"

    # Comparison / ranking
    similarity_threshold: float = Field(50.0, ge=0, le=100)   # 0–100 scale
    certification_cap: int = Field(10, gt=0)
    services_cap: int = Field(10, gt=0)

    rank_weight_profile_score: float = Field(0.4, ge=0)
    rank_weight_match_score: float = Field(0.3, ge=0)
    rank_weight_certification_count: float = Field(0.2, ge=0)
    rank_weight_services_count: float = Field(0.1, ge=0)

    # Search
    search_default_limit: int = Field(20, ge=1)
    search_max_limit: int = Field(100, ge=1)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = Path("./logs/app.log")

    @property
    def manufacturers_path(self) -> Path:
        return self.data_dir / self.manufacturers_file

    def ranking_weights(self) -> dict[str, float]:
        return {
            "profile_score":       self.rank_weight_profile_score,
            "match_score":         self.rank_weight_match_score,
            "certification_count": self.rank_weight_certification_count,
            "services_count":      self.rank_weight_services_count,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()
