"""
Fixtures compartidas de pruebas

La API remota se simula con ``httpx.MockTransport``: cada prueba registra
las rutas que necesita y luego inspecciona las solicitudes recibidas.
"""
import json
import os

# Antes de importar la app: preferencias en memoria y sin .env local
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("PREFERENCES_BACKEND", "memory")
os.environ.setdefault("CAMBIO_API_URL", "http://api.test/api")

import httpx
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from app.common.inflight import InFlightGuard
from app.core.api_client import ApiClient
from app.dependencies.apiDependencies import get_api_client
from app.main import app
from app.modules.auth.dependencies import get_auth_context
from app.modules.auth.schemas import AuthContext
from app.modules.preferences.storage import InMemoryStorage

API_BASE_URL = "http://api.test/api"


class RemoteApi:
    """API remota simulada: rutas registradas + historial de solicitudes"""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, json_body=None, status_code=200, handler=None):
        self.routes[(method, path)] = handler or (
            lambda request: httpx.Response(status_code, json=json_body)
        )

    def ok(self, method, path, data=None):
        """Respuesta con el sobre estándar {success, data}"""
        self.add(method, path, {"success": True, "data": data})

    def fail(self, method, path, error, status_code=400):
        self.add(method, path, {"success": False, "error": error}, status_code=status_code)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = request.url.path.removeprefix("/api")
        handler = self.routes.get((request.method, path))
        if handler is None:
            return httpx.Response(404, json={"success": False, "error": f"Ruta no simulada: {request.method} {path}"})
        return handler(request)

    def requests_to(self, method, path):
        return [r for r in self.calls if r.method == method and r.url.path.removeprefix("/api") == path]

    def body(self, request: httpx.Request):
        return json.loads(request.content)

    def client(self, token_provider=None) -> ApiClient:
        return ApiClient(base_url=API_BASE_URL, token_provider=token_provider, transport=httpx.MockTransport(self))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def remote_api():
    return RemoteApi()


@pytest.fixture
def api_client(remote_api):
    return remote_api.client()


@pytest.fixture
def guard():
    return InFlightGuard()


@pytest.fixture
def client(remote_api):
    """
    TestClient con la API remota simulada y estado limpio.
    Igual que en producción, cada solicitud reenvía su propio token.
    """
    async def override_api_client(auth: AuthContext = Depends(get_auth_context)):
        api = remote_api.client(token_provider=lambda: auth.token)
        try:
            yield api
        finally:
            await api.aclose()

    app.dependency_overrides[get_api_client] = override_api_client
    app.state.inflight_guard = InFlightGuard()
    app.state.preference_storage = InMemoryStorage()
    yield TestClient(app)
    app.dependency_overrides.clear()
