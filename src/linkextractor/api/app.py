"""FastAPI application entrypoint."""

from __future__ import annotations

from fastapi import FastAPI

from linkextractor.api.routes import ConfigurationError, configuration_error_handler, router


def create_app() -> FastAPI:
    app = FastAPI(
        title="External Link Extractor",
        description="Finds the external links published in a site's articles",
    )
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.include_router(router, prefix="/api")
    return app


app = create_app()
