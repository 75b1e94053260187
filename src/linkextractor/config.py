"""Configuration model and helpers for the external link extractor."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, ValidationError

__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_EXCLUDED_DOMAINS",
    "DEFAULT_USER_AGENT",
    "ExtractorConfig",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "data" / "extractor.json"
CONFIG_ENV_VAR = "LINKEXTRACTOR_CONFIG"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/129.0.0.0 Safari/537.36"
)

# Social networks, search engines and stock photo hosts. Only the domain
# reports consult this list; extraction itself never filters on it.
DEFAULT_EXCLUDED_DOMAINS = [
    "youtube.com",
    "facebook.com",
    "instagram.com",
    "twitter.com",
    "linkedin.com",
    "tiktok.com",
    "pinterest.com",
    "snapchat.com",
    "google.com",
    "unsplash.com",
    ".gov",
    "freepik.com",
    "pexels.com",
    "pixabay.com",
    "reddit.com",
    "whatsapp.com",
    "telegram.org",
    "tumblr.com",
    "discord.com",
    "vimeo.com",
    "x.com",
    "bsky.app",
    "threads.net",
]


class ExtractorConfig(BaseModel):
    """Tunables for a single extraction run."""

    seed_timeout: float = Field(
        default=15.0, gt=0, description="Deadline in seconds for fetching the seed page"
    )
    article_timeout: float = Field(
        default=10.0, gt=0, description="Deadline in seconds for fetching each article"
    )
    batch_size: int = Field(
        default=5,
        ge=1,
        description="Number of articles fetched concurrently; also the in-flight limit",
    )
    batch_pause: float = Field(
        default=1.0, ge=0, description="Pause in seconds between two article batches"
    )
    max_articles: int = Field(
        default=50, ge=1, description="Maximum number of classified articles to crawl"
    )
    min_title_length: int = Field(
        default=5, ge=1, description="Shortest anchor text accepted for an article link"
    )
    max_body_bytes: int = Field(
        default=5 * 1024 * 1024,
        gt=0,
        description="Response bodies are truncated after this many bytes",
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    excluded_domains: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_DOMAINS),
        description=(
            "Domains left out of the per-domain reports and exports. "
            "Matching is by substring in either direction."
        ),
    )

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> "ExtractorConfig":
        """Load configuration data from a JSON file."""

        config_path = _resolve_path(path)
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise FileNotFoundError(f"Configuration file not found: {config_path}") from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in configuration file: {config_path}") from exc

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Configuration file is invalid: {config_path}\n{exc}") from exc

    def dump(self, path: Path | str | None = None) -> None:
        """Persist the configuration back to disk as JSON."""

        config_path = _resolve_path(path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(self.model_dump_json(indent=2), encoding="utf-8")


def _resolve_path(path: Path | str | None) -> Path:
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config(path: Path | str | None = None) -> ExtractorConfig:
    """Return the configuration on disk, or the defaults when there is none.

    Invalid files still raise :class:`ValueError`; only a missing file falls
    back to :class:`ExtractorConfig` defaults.
    """

    try:
        return ExtractorConfig.from_file(path)
    except FileNotFoundError:
        return ExtractorConfig()
