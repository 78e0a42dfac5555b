"""Application configuration modeled with Pydantic for type safety."""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    env: str = Field("development", alias="ENV")
    api_key: Optional[str] = Field(None, alias="JOTD_API_KEY")

    github_token: Optional[str] = Field(None, alias="GITHUB_TOKEN")
    github_owner: Optional[str] = Field(None, alias="GITHUB_OWNER")
    github_repo: Optional[str] = Field(None, alias="GITHUB_REPO")
    github_branch: str = Field("main", alias="GITHUB_BRANCH")
    github_api_url: str = Field("https://api.github.com", alias="GITHUB_API_URL")
    jokes_path: str = Field("jokes.json", alias="JOKES_PATH")
    data_dir: str = Field(".data", alias="DATA_DIR")

    timezone: str = Field("UTC", alias="TZ")
    similarity_threshold: float = Field(0.82, ge=0.0, le=1.0, alias="SIMILARITY_THRESHOLD")
    cache_ttl_seconds: float = Field(30.0, ge=0.0, alias="CACHE_TTL_SECONDS")
    store_timeout_seconds: float = Field(8.0, gt=0.0, alias="STORE_TIMEOUT_SECONDS")

    allowed_origins: Annotated[List[str], NoDecode] = Field(default_factory=list, alias="ALLOWED_ORIGINS")
    user_agent: str = Field("jotd-worker/1.0", alias="USER_AGENT")

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Optional[str]) -> List[str]:
        if not value:
            return []
        if isinstance(value, list):
            return value
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def has_github(self) -> bool:
        return bool(self.github_token and self.github_owner and self.github_repo)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings instance."""
    return Settings()
