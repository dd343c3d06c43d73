"""
Configuration management for the legal research aggregator.
Loads and validates settings from YAML files and environment variables.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field


class GeneralConfig(BaseModel):
    """General configuration."""

    project_name: str = "legal-research"
    version: str = "0.1.0"
    log_level: str = "INFO"
    data_dir: str = "data"
    logs_dir: str = "logs"


class StorageConfig(BaseModel):
    """Persistent store configuration."""

    database_path: str = "data/legal_research.db"


class CacheConfig(BaseModel):
    """Result cache configuration."""

    max_entries: int = Field(default=1000, ge=1)
    ttl_hours: float = Field(default=24.0, gt=0)


class SearchConfig(BaseModel):
    """Aggregation pipeline configuration."""

    default_limit: int = Field(default=20, ge=1)
    # Upper bound for one upstream call; the rate-limiter wait is not counted
    adapter_timeout_seconds: float = Field(default=30.0, gt=0)
    # Most records any one adapter is asked for, whatever the page
    max_fetch: int = Field(default=200, ge=1)
    apis: list[str] = Field(default_factory=lambda: ["courtlistener", "caselaw", "pubmed"])
    scrapers: list[str] = Field(default_factory=lambda: ["stanford_law_review"])


class CrawlerConfig(BaseModel):
    """Scraper and robots.txt configuration."""

    user_agent: str = "Legal Research Bot (contact@inmysquare.app)"
    robots_agent_token: str = "LegalResearchBot"
    robots_timeout_seconds: float = 10.0
    request_timeout_seconds: float = 30.0
    fallback_crawl_delay_seconds: float = 60.0


class RateLimitConfig(BaseModel):
    """Request budget for one limiter key: `requests` per `per_seconds`."""

    model_config = ConfigDict(extra="forbid")

    requests: int = Field(default=1, ge=1)
    per_seconds: float = Field(default=60.0, gt=0)

    @property
    def min_interval_seconds(self) -> float:
        return self.per_seconds / self.requests


class RateLimitsConfig(BaseModel):
    """Per-domain and per-API rate limit table."""

    default: RateLimitConfig = Field(default_factory=RateLimitConfig)
    domains: dict[str, RateLimitConfig] = Field(
        default_factory=lambda: {
            "lawreview.stanford.edu": RateLimitConfig(requests=1, per_seconds=60),
            "harvardlawreview.org": RateLimitConfig(requests=1, per_seconds=60),
            "www.supremecourt.gov": RateLimitConfig(requests=5, per_seconds=60),
            "www.govinfo.gov": RateLimitConfig(requests=5, per_seconds=60),
        }
    )
    apis: dict[str, RateLimitConfig] = Field(
        default_factory=lambda: {
            "courtlistener": RateLimitConfig(requests=5, per_seconds=1),
            "caselaw": RateLimitConfig(requests=2, per_seconds=1),
            "pubmed": RateLimitConfig(requests=3, per_seconds=1),
        }
    )

    def for_key(self, key: str) -> RateLimitConfig:
        """Resolve the limit for an API name or a domain, falling back to default."""
        if key in self.apis:
            return self.apis[key]
        if key in self.domains:
            return self.domains[key]
        return self.default


class APIConfig(BaseModel):
    """Configuration for a single external API."""

    enabled: bool = True
    base_url: str
    timeout_seconds: float = 30.0
    token_env: str | None = None  # Environment variable holding the API token
    headers: dict[str, str] | None = None


def _default_apis() -> dict[str, APIConfig]:
    return {
        "courtlistener": APIConfig(
            base_url="https://www.courtlistener.com/api/rest/v3",
            token_env="COURTLISTENER_API_KEY",
        ),
        "caselaw": APIConfig(
            base_url="https://api.case.law/v1",
            token_env="CASELAW_API_KEY",
        ),
        "pubmed": APIConfig(
            base_url="https://eutils.ncbi.nlm.nih.gov/entrez/eutils",
        ),
    }


class Settings(BaseModel):
    """Main settings container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    rate_limits: RateLimitsConfig = Field(default_factory=RateLimitsConfig)
    apis: dict[str, APIConfig] = Field(default_factory=_default_apis)

    def get_api_config(self, api_name: str) -> APIConfig:
        """Get API configuration, falling back to the built-in defaults.

        Raises:
            KeyError: If the API is neither configured nor known.
        """
        if api_name in self.apis:
            return self.apis[api_name]
        return _default_apis()[api_name]


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Override dictionary.

    Returns:
        Merged dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_config(config_dir: Path) -> dict[str, Any]:
    """Load settings.yaml with the `settings` section of local.yaml applied.

    Args:
        config_dir: Configuration directory path.

    Returns:
        Merged configuration dictionary.
    """
    config: dict[str, Any] = {}

    base_path = config_dir / "settings.yaml"
    if base_path.exists():
        with open(base_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

    local_path = config_dir / "local.yaml"
    if local_path.exists():
        with open(local_path, encoding="utf-8") as f:
            local_overrides = yaml.safe_load(f) or {}
        if "settings" in local_overrides:
            config = _deep_merge(config, local_overrides["settings"])

    return config


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables should be prefixed with LEGAL_RESEARCH_ and use
    double underscores for nested keys.

    Example:
        LEGAL_RESEARCH_GENERAL__LOG_LEVEL=DEBUG

    Args:
        config: Configuration dictionary.

    Returns:
        Configuration with environment overrides.
    """
    prefix = "LEGAL_RESEARCH_"

    for key, value in os.environ.items():
        if not key.startswith(prefix) or key == "LEGAL_RESEARCH_CONFIG_DIR":
            continue

        key_path = key[len(prefix) :].lower().split("__")

        current = config
        for part in key_path[:-1]:
            if part not in current or not isinstance(current[part], dict):
                current[part] = {}
            current = current[part]

        final_key = key_path[-1]
        try:
            if value.lower() in ("true", "false"):
                current[final_key] = value.lower() == "true"
            elif "." in value:
                current[final_key] = float(value)
            else:
                current[final_key] = int(value)
        except ValueError:
            current[final_key] = value

    return config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get application settings.

    Settings are loaded from:
    1. Default values
    2. YAML configuration files
    3. Environment variables (highest priority)

    Returns:
        Settings instance.
    """
    config_dir = Path(os.environ.get("LEGAL_RESEARCH_CONFIG_DIR", "config"))

    config = _load_yaml_config(config_dir)
    config = _apply_env_overrides(config)

    return Settings(**config)


def get_project_root() -> Path:
    """Get the project root directory.

    Returns:
        Project root path.
    """
    # This file lives at legal_research/utils/config.py
    return Path(__file__).parent.parent.parent


def ensure_directories() -> None:
    """Ensure data and log directories exist."""
    settings = get_settings()
    root = get_project_root()

    for dir_path in (root / settings.general.data_dir, root / settings.general.logs_dir):
        dir_path.mkdir(parents=True, exist_ok=True)
