from __future__ import annotations

import logging

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..deps import ComparisonServiceDep
from ..services.comparison import MissingReferenceError, SubmissionResult
from ..services.image_store import ROLES, stage_upload
from ..settings import Settings
from ..utils.errors import http_error

logger = logging.getLogger(__name__)

router = APIRouter(tags=["backstop"])


class BackstopResponse(BaseModel):
    success: bool
    message: str
    testCase: str | None = None
    result: str | None = None
    diffImage: str | None = None
    diffImageBase64: str | None = None


def build_response(*, outcome: SubmissionResult, settings: Settings) -> BackstopResponse:
    if outcome.mode == "reference":
        return BackstopResponse(success=True, message=f"Reference screenshot captured for: {outcome.test_case}")

    response = BackstopResponse(
        success=True,
        testCase=outcome.test_case,
        result=outcome.verdict,
        message="No visual differences detected" if outcome.passed else "Visual differences found",
    )
    if outcome.diff is not None:
        if settings.diff_image_mode == "url":
            response.diffImage = f"{settings.resolved_public_base_url()}/diff-images/{outcome.diff.name}"
        else:
            response.diffImage = str(outcome.diff.path)
            response.diffImageBase64 = outcome.diff.base64
    return response


@router.post("/backstop", response_model=BackstopResponse, response_model_exclude_none=True)
def submit_screenshot(
    service: ComparisonServiceDep,
    test_case_field: str | None = Form(None, alias="testCase"),
    mode: str | None = Form(None),
    image: UploadFile | None = File(None),
):
    test_case = test_case_field or ""
    if not test_case.strip() or not mode or image is None:
        http_error(400, "Missing required parameters: testCase, mode, and image file")
    if mode not in ROLES:
        http_error(400, "Mode must be 'reference' or 'current'")

    try:
        record = stage_upload(image, uploads_dir=service.paths.uploads_dir)
        outcome = service.submit(test_case=test_case, mode=mode, record=record)  # type: ignore[arg-type]
    except HTTPException:
        raise
    except MissingReferenceError as exc:
        http_error(400, str(exc))
    except Exception as exc:
        logger.exception("backstop request failed: test_case=%s mode=%s", test_case, mode)
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

    return build_response(outcome=outcome, settings=service.settings)
