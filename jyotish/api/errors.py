"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Toutes les erreurs sortent sous la forme `{success: false, error, code, sessionId?}`. Le message
exposé est le `public_message` de l'erreur classée; le détail technique n'est que journalisé.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from jyotish.core.http_constants import (
    HTTP_BAD_REQUEST,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_STATUS_SERVER_ERROR_MIN,
)
from jyotish.domain.errors import ComputeError, InternalError, ValidationError

log = structlog.get_logger(__name__)


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    session_id: str | None = None,
    details: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Crée une réponse d'erreur standardisée."""
    content: dict[str, Any] = {"success": False, "error": message, "code": code}
    if session_id:
        content["sessionId"] = session_id
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def compute_error_handler(request: Request, exc: ComputeError) -> JSONResponse:
    """Convertit une erreur classée du pipeline en réponse HTTP."""
    server_side = exc.http_status >= HTTP_STATUS_SERVER_ERROR_MIN
    event = "request_failed" if server_side else "request_rejected"
    log.warning(
        event,
        path=request.url.path,
        code=exc.code,
        detail=exc.detail,
        session_id=exc.session_id,
    )
    return create_error_response(exc.http_status, exc.code, exc.public_message, exc.session_id)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Erreurs de validation Pydantic -> 400 avec le détail des champs."""
    details = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    log.info("request_invalid", path=request.url.path, fields=[d["field"] for d in details])
    return create_error_response(
        HTTP_BAD_REQUEST, ValidationError.code, ValidationError.public_message, details=details
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Dernier recours: 500 sans trace ni détail."""
    log.error("request_crashed", path=request.url.path, exc_info=exc)
    return create_error_response(
        HTTP_INTERNAL_SERVER_ERROR, InternalError.code, InternalError.public_message
    )


def register_error_handlers(app: FastAPI) -> None:
    """Installe les gestionnaires d'erreurs sur l'application."""
    app.add_exception_handler(ComputeError, compute_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
