"""API routes exposing the link extraction pipeline."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from linkextractor.config import ExtractorConfig, load_config
from linkextractor.models import ExtractionResult
from linkextractor.services.errors import ExtractionError
from linkextractor.services.extractor import LinkExtractor
from linkextractor.services.reports import domains_to_csv, domains_to_json, summarize_domains

logger = logging.getLogger(__name__)

router = APIRouter()

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred while extracting links"


class ConfigurationError(Exception):
    """The extractor configuration on disk could not be loaded."""


def get_config() -> ExtractorConfig:
    """Return the extractor configuration for the current request."""

    try:
        return load_config()
    except ValueError as exc:
        logger.exception("Invalid extractor configuration")
        raise ConfigurationError(str(exc)) from exc


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Report a broken configuration without leaking its path or contents."""

    return _error_response(500, UNEXPECTED_ERROR_MESSAGE)


async def _read_url(request: Request) -> object:
    """Return the ``url`` member of the JSON body, or ``None`` when there is none."""

    try:
        payload = await request.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        return payload.get("url")
    return None


def _extract_and_close(extractor: LinkExtractor, url: object) -> ExtractionResult:
    with extractor:
        return extractor.extract(url)


async def run_extraction(url: object, config: ExtractorConfig) -> ExtractionResult:
    """Run the blocking extraction in the threadpool.

    If the awaiting task is cancelled (client went away) the extractor's
    cancellation event is set so in-flight fetches and pending batches stop.
    """

    cancel_event = threading.Event()
    extractor = LinkExtractor(config=config, cancel_event=cancel_event)
    try:
        return await run_in_threadpool(_extract_and_close, extractor, url)
    except asyncio.CancelledError:
        cancel_event.set()
        raise


async def _extract_or_error(url: object, config: ExtractorConfig) -> ExtractionResult | JSONResponse:
    try:
        return await run_extraction(url, config)
    except ExtractionError as exc:
        logger.info("Extraction rejected for %r: %s", url, exc)
        return _error_response(400, str(exc))
    except Exception:
        logger.exception("Link extraction error for %r", url)
        return _error_response(500, UNEXPECTED_ERROR_MESSAGE)


@router.post(
    "/extract-links",
    response_model=ExtractionResult,
    response_model_exclude_none=True,
)
async def extract_links_endpoint(
    request: Request, config: ExtractorConfig = Depends(get_config)
) -> ExtractionResult | JSONResponse:
    """Crawl the posted seed URL and return every external link found in its articles."""

    url = await _read_url(request)
    return await _extract_or_error(url, config)


@router.post("/extract-links/domains")
async def export_domains(
    request: Request,
    export_format: Literal["json", "csv"] = Query(default="json", alias="format"),
    config: ExtractorConfig = Depends(get_config),
) -> Response:
    """Crawl the posted seed URL and export its per-domain summary.

    Domains listed in ``excluded_domains`` of the configuration are left out.
    """

    url = await _read_url(request)
    outcome = await _extract_or_error(url, config)
    if isinstance(outcome, JSONResponse):
        return outcome

    summaries = summarize_domains(outcome, config.excluded_domains)
    if export_format == "csv":
        return Response(content=domains_to_csv(summaries), media_type="text/csv")

    body = domains_to_json(
        summaries,
        outcome,
        source_url=str(url),
        excluded_domains=config.excluded_domains,
    )
    return Response(content=body, media_type="application/json")


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
