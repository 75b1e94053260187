"""External link extractor: crawl a listing page, its articles and their outbound links."""

from __future__ import annotations

import os
from pathlib import Path


def _load_local_env() -> None:
    """Populate ``os.environ`` from a project-level ``.env`` file, if present.

    Variables already set in the environment win.
    """

    env_path = Path(__file__).resolve().parent.parent.parent / ".env"
    if not env_path.exists():
        return

    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if key and key not in os.environ:
            os.environ[key] = value.strip()


_load_local_env()

from .config import ExtractorConfig, load_config  # noqa: E402,F401
from .models import ArticleLink, ExternalLink, ExtractionResult  # noqa: E402,F401

__all__ = [
    "ArticleLink",
    "ExternalLink",
    "ExtractionResult",
    "ExtractorConfig",
    "load_config",
]
