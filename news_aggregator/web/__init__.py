"""FastAPI application exposing the search form."""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from fastapi.templating import Jinja2Templates

from ..search import SearchService
from .routes import router

TEMPLATES_DIR = Path(__file__).parent / "templates"


def create_app(
    search_service: SearchService,
    templates_dir: Path | None = None,
    debug: bool = False,
) -> FastAPI:
    app = FastAPI(title="News Aggregator", debug=debug)
    app.state.templates = Jinja2Templates(directory=str(templates_dir or TEMPLATES_DIR))
    app.state.search_service = search_service
    app.include_router(router)
    return app


__all__ = ["TEMPLATES_DIR", "create_app"]
