"""
Conversión de excepciones del dominio a respuestas HTTP

Cuerpo común: ``{"success": false, "error": <mensaje>, "errores": [...]}``.
Nada se reintenta: el operador decide si reenvía.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.exceptions import (
    CambioError, ValidacionError, ConfirmacionRequeridaError, TransicionInvalidaError,
    SolicitudEnCursoError, ApiError, ApiConnectionError
)

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, errores: Optional[List[str]] = None,
                   **extra: Any) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": message, "errores": errores or [message]}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def validacion_handler(request: Request, exc: ValidacionError) -> JSONResponse:
    logger.info(f"Validación rechazada en {request.url.path}: {exc.message}")
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc.message, exc.errores)


async def confirmacion_handler(request: Request, exc: ConfirmacionRequeridaError) -> JSONResponse:
    return error_response(
        status.HTTP_409_CONFLICT, exc.message,
        requiere_confirmacion=True,
        cambio_compra=float(exc.cambio_compra),
        cambio_venta=float(exc.cambio_venta),
    )


async def transicion_handler(request: Request, exc: TransicionInvalidaError) -> JSONResponse:
    return error_response(status.HTTP_409_CONFLICT, exc.message, estado=exc.estado, accion=exc.accion)


async def en_curso_handler(request: Request, exc: SolicitudEnCursoError) -> JSONResponse:
    return error_response(status.HTTP_409_CONFLICT, exc.message)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    # Los 4xx del backend se conservan; el resto es un fallo del upstream
    code = exc.status_code if exc.status_code and 400 <= exc.status_code < 500 else status.HTTP_502_BAD_GATEWAY
    logger.warning(f"API remota rechazó {request.method} {request.url.path}: {exc.message} ({exc.status_code})")
    return error_response(code, exc.message)


async def connection_error_handler(request: Request, exc: ApiConnectionError) -> JSONResponse:
    logger.error(f"Sin conexión con la API remota en {request.url.path}: {exc.message}")
    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc.message)


async def cambio_error_handler(request: Request, exc: CambioError) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, exc.message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidacionError, validacion_handler)
    app.add_exception_handler(ConfirmacionRequeridaError, confirmacion_handler)
    app.add_exception_handler(TransicionInvalidaError, transicion_handler)
    app.add_exception_handler(SolicitudEnCursoError, en_curso_handler)
    app.add_exception_handler(ApiConnectionError, connection_error_handler)
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(CambioError, cambio_error_handler)
