from __future__ import annotations

import functools
import logging

import anyio
from anyio.lowlevel import RunVar
from fastapi import APIRouter
from fastapi.responses import HTMLResponse, PlainTextResponse

from ..deps import ComparisonServiceDep
from ..services.comparison import ComparisonService
from ..services.image_page import render_image_page

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])

# Separate from the default threadpool, which /backstop handlers hold for a
# whole CLI run while the CLI polls this endpoint.
_PAGE_READ_TOKENS = 8
_page_read_limiter: RunVar[anyio.CapacityLimiter] = RunVar("visreg_page_read_limiter")


def page_read_limiter() -> anyio.CapacityLimiter:
    try:
        return _page_read_limiter.get()
    except LookupError:
        limiter = anyio.CapacityLimiter(_PAGE_READ_TOKENS)
        _page_read_limiter.set(limiter)
        return limiter


def load_page(service: ComparisonService, test_case: str, role: str) -> str | None:
    record = service.get_image(test_case, role)
    if record is None or not record.path.is_file():
        return None
    try:
        return render_image_page(record=record, test_case=test_case)
    except OSError as exc:
        logger.debug("serve_image read failed: %s (%s)", record.path, exc)
        return None


@router.get("/serve-image/{test_case:path}", response_class=HTMLResponse)
async def serve_image(test_case: str, service: ComparisonServiceDep, mode: str | None = None):
    # Polled by BackstopJS during capture; anything but "current" serves the reference.
    role = "current" if mode == "current" else "reference"
    page = await anyio.to_thread.run_sync(
        functools.partial(load_page, service, test_case, role),
        limiter=page_read_limiter(),
    )
    if page is None:
        return PlainTextResponse("Image not found", status_code=404)
    return HTMLResponse(page)
