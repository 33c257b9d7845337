"""Configuration management."""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class GitHubConfig:
    """GitHub API settings."""
    api_url: str = "https://api.github.com"
    graphql_url: str = "https://api.github.com/graphql"
    user_agent: str = "label-corpus/1.0"
    timeout: float = 60.0
    page_size: int = 100


@dataclass
class RetryConfig:
    """Retry and backoff settings."""
    max_retries: int = 5
    retry_delay: float = 5.0
    rate_limit_buffer: float = 60.0


@dataclass
class LabelsConfig:
    """Label-of-interest settings."""
    service_color: str = "e99695"
    category_color: str = "ffeb77"
    mode: str = "any"


@dataclass
class PathsConfig:
    """Path settings."""
    output_dir: Path = Path("data")
    log_file: Path = Path("trace.log")


@dataclass
class ResolverConfig:
    """Missing item recovery settings."""
    progress_interval: int = 100


@dataclass
class Settings:
    """Application settings."""

    # API token (from environment only)
    github_token: Optional[str] = None

    # Config sections
    github: GitHubConfig = field(default_factory=GitHubConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    labels: LabelsConfig = field(default_factory=LabelsConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)

    @property
    def page_size(self) -> int:
        return self.github.page_size

    @property
    def rate_limit_buffer(self) -> timedelta:
        return timedelta(seconds=self.retry.rate_limit_buffer)

    @property
    def output_dir(self) -> Path:
        return self.paths.output_dir

    @property
    def log_file(self) -> Path:
        return self.paths.log_file


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_settings(config_path: Path = Path("config.yaml")) -> Settings:
    """Get application settings from YAML config and environment."""
    config = load_config(config_path)

    settings = Settings(github_token=os.getenv("GITHUB_TOKEN") or None)

    for section in ("github", "retry", "labels", "resolver"):
        for key, value in (config.get(section) or {}).items():
            target = getattr(settings, section)
            if not hasattr(target, key):
                raise ValueError(f"Unknown setting '{section}.{key}' in {config_path}")
            setattr(target, key, value)

    for key, value in (config.get("paths") or {}).items():
        if not hasattr(settings.paths, key):
            raise ValueError(f"Unknown setting 'paths.{key}' in {config_path}")
        setattr(settings.paths, key, Path(value))

    # Unquoted hex codes such as 123456 load as integers
    settings.labels.service_color = str(settings.labels.service_color)
    settings.labels.category_color = str(settings.labels.category_color)

    return settings
