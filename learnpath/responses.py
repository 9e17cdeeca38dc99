## JSON envelope helpers: every response carries a success flag
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(status_code: int = 200, **payload: Any) -> JSONResponse:
    return JSONResponse(jsonable_encoder({"success": True, **payload}), status_code=status_code)


def fail(error: str, status_code: int = 500, **payload: Any) -> JSONResponse:
    return JSONResponse(
        jsonable_encoder({"success": False, "error": error, **payload}),
        status_code=status_code,
    )
