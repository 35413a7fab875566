from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from .services.comparison import ComparisonService


async def get_comparison_service(request: Request) -> ComparisonService:
    service = getattr(request.app.state, "comparison_service", None)
    if service is None:
        raise RuntimeError("comparison_service_not_ready")
    return service


ComparisonServiceDep = Annotated[ComparisonService, Depends(get_comparison_service)]
