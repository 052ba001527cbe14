"""Search form routes."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from starlette.formparsers import MultiPartException

from ..errors import StorageError
from ..logging_conf import component_logger

router = APIRouter()


def _render(request: Request, results=None, query: str = "", status_code: int = 200):
    templates = request.app.state.templates
    context = {"results": results, "query": query}
    return templates.TemplateResponse(request, "index.html", context, status_code=status_code)


@router.get("/", response_class=HTMLResponse)
def index(request: Request):
    return _render(request)


@router.post("/search", response_class=HTMLResponse)
async def handle_search(request: Request):
    logger = component_logger("web")
    try:
        form = await request.form()
    except MultiPartException as exc:
        logger.warning("search_form_unparseable", error=str(exc))
        return _render(request)
    # An empty string is a real query: it matches every title.
    query = form.get("search")
    if not isinstance(query, str):
        return _render(request)

    service = request.app.state.search_service
    try:
        results = await run_in_threadpool(service.search, query)
    except StorageError as exc:
        logger.error("search_failed", query=query, error=str(exc))
        return _render(request, query=query, status_code=500)
    return _render(request, results=results, query=query)
