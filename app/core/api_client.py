"""
Cliente REST para la API remota de la casa de cambio.

Todas las respuestas siguen el sobre ``{success, data, message, error}``.
Un ``success: false`` o un status no-2xx se convierte en ``ApiError`` con el
mensaje del backend.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

import httpx
from pydantic import BaseModel

from app.core.config import settings
from app.core.exceptions import ApiConnectionError, ApiError, DEFAULT_API_ERROR

logger = logging.getLogger(__name__)

T = TypeVar("T")

TokenProvider = Callable[[], Optional[str]]


class ApiResponse(BaseModel, Generic[T]):
    """Sobre estándar de respuesta del backend."""
    success: Optional[bool] = None
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None


class ApiClient:
    """Wrapper asíncrono sobre httpx con token bearer."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_provider: Optional[TokenProvider] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._token_provider = token_provider
        self._token: Optional[str] = None
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    def set_token(self, token: Optional[str]) -> None:
        """Fija un token explícito (tiene prioridad sobre el proveedor)."""
        self._token = token

    def _current_token(self) -> Optional[str]:
        if self._token:
            return self._token
        if self._token_provider:
            return self._token_provider()
        return None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._current_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            detail = body if isinstance(body, dict) else {}
            message = detail.get("error") or detail.get("message") or f"HTTP error! status: {response.status_code}"
            raise ApiError(message, status_code=response.status_code)
        return body

    @classmethod
    def _handle_response(cls, response: httpx.Response) -> ApiResponse[Any]:
        body = cls._parse_body(response)
        if not isinstance(body, dict):
            body = {"data": body}

        if body.get("success") is False:
            message = body.get("error") or body.get("message") or DEFAULT_API_ERROR
            raise ApiError(message, status_code=response.status_code)

        return ApiResponse[Any].model_validate(body)

    async def _send(self, method: str, endpoint: str, data: Any = None,
                    params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        clean_params = {k: v for k, v in (params or {}).items() if v is not None} or None
        try:
            response = await self._client.request(
                method,
                endpoint,
                json=data,
                params=clean_params,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            raise ApiConnectionError(f"No se pudo conectar con el servidor: {e}") from e

        logger.debug(f"{method} {endpoint} -> {response.status_code}")
        return response

    async def request(self, method: str, endpoint: str, data: Any = None,
                      params: Optional[Dict[str, Any]] = None) -> ApiResponse[Any]:
        response = await self._send(method, endpoint, data=data, params=params)
        return self._handle_response(response)

    async def get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET para endpoints que responden el DTO sin el sobre ``{success, data}``."""
        response = await self._send("GET", endpoint, params=params)
        return self._parse_body(response)

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> ApiResponse[Any]:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, data: Any = None) -> ApiResponse[Any]:
        return await self.request("POST", endpoint, data=data)

    async def put(self, endpoint: str, data: Any = None) -> ApiResponse[Any]:
        return await self.request("PUT", endpoint, data=data)

    async def patch(self, endpoint: str, data: Any = None) -> ApiResponse[Any]:
        return await self.request("PATCH", endpoint, data=data)

    async def delete(self, endpoint: str) -> ApiResponse[Any]:
        return await self.request("DELETE", endpoint)

    async def aclose(self) -> None:
        await self._client.aclose()
