"""Configuration loader for the site mirror."""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class CrawlLimits(BaseModel):
    """Crawl limits configuration."""

    wave_size: int = Field(default=15, ge=1)
    max_total_bytes: int = Field(default=500 * 1024 * 1024, ge=1)


class FetchPolicy(BaseModel):
    """Per-request timeouts and body ceiling."""

    page_timeout: float = Field(default=30.0, gt=0)
    asset_timeout: float = Field(default=10.0, gt=0)
    max_content_bytes: int = Field(default=50 * 1024 * 1024, ge=1)
    user_agent: str = Field(default=DEFAULT_USER_AGENT)


class RetryPolicy(BaseModel):
    """Retry configuration for transient failures."""

    max_attempts: int = Field(default=3, ge=1)
    backoff_seconds: float = Field(default=1.0, ge=0)


class StorageConfig(BaseModel):
    """Where working areas live and how the archive is named."""

    temp_dir: str = Field(default="./temp")
    archive_name: str = Field(default="webflow-site.zip")
    compression_level: int = Field(default=9, ge=0, le=9)


class JanitorConfig(BaseModel):
    """Stale working-area sweep."""

    max_age_seconds: float = Field(default=3600.0, gt=0)
    interval_seconds: float = Field(default=3600.0, gt=0)


class ServerConfig(BaseModel):
    """HTTP surface configuration."""

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class Config(BaseModel):
    """Full system configuration."""

    allowed_host_suffixes: list[str] = Field(
        default_factory=lambda: ["webflow.io", "webflow.com"]
    )
    rewrite_external_links: bool = Field(default=True)
    crawl_limits: CrawlLimits = Field(default_factory=CrawlLimits)
    fetch_policy: FetchPolicy = Field(default_factory=FetchPolicy)
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    janitor: JanitorConfig = Field(default_factory=JanitorConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load config from YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Load config from dictionary."""
        return cls(**data)


def load_config(path: str | Path) -> Config:
    """Load configuration from a YAML (.yaml/.yml) or JSON file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    if path.suffix in (".yaml", ".yml"):
        return Config.from_yaml(path)
    return Config.from_dict(json.loads(path.read_text(encoding="utf-8")))
