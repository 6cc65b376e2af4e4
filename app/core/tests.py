"""
Tests del cliente de la API remota y de la configuración
"""

import httpx
import pytest

from app.core.api_client import ApiClient
from app.core.config import Settings
from app.core.exceptions import ApiConnectionError, ApiError, DEFAULT_API_ERROR


# ===== API CLIENT =====

class TestApiClient:

    @pytest.mark.anyio
    async def test_envelope_is_unwrapped(self, remote_api, api_client):
        remote_api.ok("GET", "/monedas", [{"id": 1, "codigo": "PEN"}])
        response = await api_client.get("/monedas")
        assert response.success is True
        assert response.data == [{"id": 1, "codigo": "PEN"}]

    @pytest.mark.anyio
    async def test_success_false_raises_backend_message(self, remote_api, api_client):
        remote_api.add("GET", "/monedas", {"success": False, "error": "Moneda inactiva"})
        with pytest.raises(ApiError, match="Moneda inactiva"):
            await api_client.get("/monedas")

    @pytest.mark.anyio
    async def test_success_false_without_message(self, remote_api, api_client):
        remote_api.add("GET", "/monedas", {"success": False})
        with pytest.raises(ApiError) as exc_info:
            await api_client.get("/monedas")
        assert exc_info.value.message == DEFAULT_API_ERROR

    @pytest.mark.anyio
    async def test_non_2xx_without_body(self, remote_api, api_client):
        remote_api.add("GET", "/monedas", handler=lambda request: httpx.Response(503, text="down"))
        with pytest.raises(ApiError) as exc_info:
            await api_client.get("/monedas")
        assert exc_info.value.message == "HTTP error! status: 503"
        assert exc_info.value.status_code == 503

    @pytest.mark.anyio
    async def test_non_2xx_uses_message_field(self, remote_api, api_client):
        remote_api.add("POST", "/monedas", {"message": "Código duplicado"}, status_code=409)
        with pytest.raises(ApiError, match="Código duplicado"):
            await api_client.post("/monedas", {"codigo": "PEN"})

    @pytest.mark.anyio
    async def test_connection_error(self):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        api = ApiClient(base_url="http://api.test/api", transport=httpx.MockTransport(unreachable))
        with pytest.raises(ApiConnectionError):
            await api.get("/monedas")
        await api.aclose()

    @pytest.mark.anyio
    async def test_get_json_returns_raw_body(self, remote_api, api_client):
        remote_api.add("GET", "/reportes/dashboard", {"ventas": 3})
        assert await api_client.get_json("/reportes/dashboard") == {"ventas": 3}

    @pytest.mark.anyio
    async def test_none_params_are_dropped(self, remote_api, api_client):
        remote_api.ok("GET", "/transacciones", [])
        await api_client.get("/transacciones", params={"limit": 10, "estado": None})
        assert str(remote_api.calls[0].url.query, "ascii") == "limit=10"

    @pytest.mark.anyio
    async def test_bearer_token_from_provider(self, remote_api):
        remote_api.ok("GET", "/monedas", [])
        api = ApiClient(
            base_url="http://api.test/api",
            token_provider=lambda: "tok-9",
            transport=httpx.MockTransport(remote_api),
        )
        await api.get("/monedas")
        await api.aclose()
        assert remote_api.calls[0].headers["Authorization"] == "Bearer tok-9"
        assert remote_api.calls[0].headers["Content-Type"] == "application/json"

    @pytest.mark.anyio
    async def test_no_token_no_header(self, remote_api, api_client):
        remote_api.ok("GET", "/monedas", [])
        await api_client.get("/monedas")
        assert "Authorization" not in remote_api.calls[0].headers


# ===== CONFIGURACIÓN =====

class TestSettings:

    def test_explicit_url_wins(self):
        assert Settings(CAMBIO_API_URL="http://otra/api/").api_base_url == "http://otra/api"

    def test_localhost_default(self):
        assert Settings(CAMBIO_API_URL=None, API_HOSTNAME="localhost").api_base_url == "http://localhost:3000/api"

    def test_remote_default(self):
        settings = Settings(CAMBIO_API_URL=None, API_HOSTNAME="backoffice.example.com")
        assert settings.api_base_url == settings.DEFAULT_REMOTE_API_URL

    def test_log_level(self):
        assert Settings(ENVIRONMENT="production", LOG_LEVEL=None).log_level == "INFO"
        assert Settings(LOG_LEVEL="warning").log_level == "WARNING"

    def test_invalid_preferences_backend(self):
        with pytest.raises(ValueError):
            Settings(PREFERENCES_BACKEND="redis")
