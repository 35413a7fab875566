#
# Error helpers.
#
from __future__ import annotations

from fastapi import HTTPException


def http_error(status_code: int, message: str):
    raise HTTPException(status_code=status_code, detail={"success": False, "message": message})
