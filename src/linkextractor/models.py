"""Domain models returned by the extraction pipeline."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

__all__ = ["ArticleLink", "ExternalLink", "ExtractionResult"]


class _WireModel(BaseModel):
    """Immutable model serialised with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ArticleLink(_WireModel):
    """An internal link from the seed page that was classified as an article."""

    url: str
    title: str = Field(..., min_length=1)
    domain: str


class ExternalLink(_WireModel):
    """A link found inside an article that points at another host."""

    url: str
    title: Optional[str] = None
    source: str = Field(..., description="Title of the article the link was found in")
    source_article: str = Field(..., description="URL of the article the link was found in")
    domain: str


class ExtractionResult(_WireModel):
    """Aggregated outcome of one extraction request."""

    total_articles: int
    total_external_links: int
    unique_domains: int
    articles: List[ArticleLink] = Field(default_factory=list)
    external_links: List[ExternalLink] = Field(default_factory=list)
    processing_time: float
    articles_with_external_links: int

    def to_wire(self) -> dict:
        """Return the JSON-ready representation used by the API and CLI."""

        return self.model_dump(by_alias=True, exclude_none=True)
