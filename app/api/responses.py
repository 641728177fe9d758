"""Helpers that wrap handler results in the ``{data, error}`` envelope."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.errors import MarketplaceError, ValidationFailed


def ok(schema: type[BaseModel], obj: Any) -> dict[str, Any]:
    if isinstance(obj, list):
        data = [schema.model_validate(o) for o in obj]
    else:
        data = schema.model_validate(obj)
    return {"data": data, "error": None}


def error_response(err: MarketplaceError) -> JSONResponse:
    return JSONResponse(status_code=err.http_status, content={"data": None, "error": err.to_dict()})


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [
        {"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return error_response(ValidationFailed("Request body is invalid", fields=fields))
