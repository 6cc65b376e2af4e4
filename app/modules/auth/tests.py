"""
Tests para el módulo de Auth

El back-office no emite tokens: el login se delega a la API remota y el
token se reenvía como Bearer en las solicitudes siguientes, ya sea el del
header Authorization o el de la sesión del mismo cliente.
"""

import jwt
import pytest
from fastapi.testclient import TestClient

from app.core.exceptions import ApiError
from app.modules.auth.dependencies import (
    SESSION_COOKIE, build_auth_context, get_auth_context, session_preferences
)
from app.modules.auth.schemas import LoginRequest
from app.modules.auth.service import AuthService
from app.modules.preferences.service import PreferencesService
from app.modules.preferences.storage import InMemoryStorage

CAJERO_TOKEN = jwt.encode(
    {"id": 7, "username": "caja1", "rol": "CAJERO"},
    "clave-de-prueba-que-no-conoce-el-back-office", algorithm="HS256"
)

LOGIN_DATA = {
    "usuario": {"id": 7, "username": "caja1", "rol": "CAJERO", "casa_de_cambio_id": 1},
    "token": CAJERO_TOKEN,
}

VENTANILLA = {
    "id": 1, "identificador": "V-01", "nombre": "Ventanilla Principal",
    "estado": "CERRADA", "activa": True, "casa_de_cambio_id": 1,
}


@pytest.fixture
def preferences():
    return PreferencesService(InMemoryStorage())


class TestAuthContext:

    def test_no_token(self):
        context = build_auth_context(None)
        assert context.is_authenticated is False
        assert context.usuario_id is None

    def test_claims_are_read_without_verifying_signature(self):
        token = jwt.encode(
            {"id": "7", "username": "caja1", "rol": "CAJERO"},
            "clave-de-prueba-que-no-conoce-el-back-office", algorithm="HS256"
        )
        context = build_auth_context(token)
        assert context.usuario_id == 7
        assert context.username == "caja1"
        assert context.token == token

    def test_opaque_token(self):
        context = build_auth_context("no-es-jwt")
        assert context.is_authenticated is True
        assert context.usuario_id is None

    def test_session_token(self):
        storage = InMemoryStorage()
        session_preferences(storage, "s-1").set_token(CAJERO_TOKEN)

        context = get_auth_context(credentials=None, session_id="s-1", storage=storage)

        assert context.token == CAJERO_TOKEN
        assert context.usuario_id == 7

    def test_unknown_session_has_no_token(self):
        storage = InMemoryStorage()
        session_preferences(storage, "s-1").set_token(CAJERO_TOKEN)

        assert get_auth_context(credentials=None, session_id="otra", storage=storage).is_authenticated is False

    def test_default_scope_token_is_never_used(self):
        storage = InMemoryStorage()
        PreferencesService(storage).set_token(CAJERO_TOKEN)

        assert get_auth_context(credentials=None, session_id=None, storage=storage).is_authenticated is False


class TestAuthService:

    @pytest.mark.anyio
    async def test_login_keeps_token(self, remote_api, api_client, preferences):
        remote_api.ok("POST", "/usuarios/login", LOGIN_DATA)

        login = await AuthService(api_client, preferences).login(LoginRequest(username=" caja1 ", password="x"))

        assert login.usuario.username == "caja1"
        assert preferences.get_token() == CAJERO_TOKEN
        body = remote_api.body(remote_api.requests_to("POST", "/usuarios/login")[0])
        assert body == {"username": "caja1", "password": "x"}

    @pytest.mark.anyio
    async def test_token_is_sent_as_bearer(self, remote_api, api_client, preferences):
        remote_api.ok("POST", "/usuarios/login", LOGIN_DATA)
        remote_api.ok("GET", "/monedas", [])

        await AuthService(api_client, preferences).login(LoginRequest(username="caja1", password="x"))
        await api_client.get("/monedas")

        assert remote_api.requests_to("GET", "/monedas")[0].headers["Authorization"] == f"Bearer {CAJERO_TOKEN}"

    @pytest.mark.anyio
    async def test_login_without_token(self, remote_api, api_client, preferences):
        remote_api.add("POST", "/usuarios/login", {"success": True, "data": {}, "message": "Credenciales inválidas"})

        with pytest.raises(ApiError, match="Credenciales inválidas"):
            await AuthService(api_client, preferences).login(LoginRequest(username="caja1", password="x"))
        assert preferences.get_token() is None

    def test_logout(self, api_client, preferences):
        preferences.set_token(CAJERO_TOKEN)
        api_client.set_token(CAJERO_TOKEN)

        AuthService(api_client, preferences).logout()

        assert preferences.get_token() is None
        assert "Authorization" not in api_client._headers()


class TestAuthEndpoints:

    def test_login_opens_a_client_session(self, client, remote_api):
        remote_api.ok("POST", "/usuarios/login", LOGIN_DATA)

        response = client.post("/auth/login", json={"username": "caja1", "password": "x"})
        assert response.status_code == 200
        assert response.json()["token"] == CAJERO_TOKEN

        session_id = response.cookies[SESSION_COOKIE]
        storage = client.app.state.preference_storage
        assert storage.get(f"sesion:{session_id}:auth_token") == CAJERO_TOKEN
        assert storage.get("default:auth_token") is None

        client.post("/auth/logout")
        assert storage.get(f"sesion:{session_id}:auth_token") is None

    def test_session_token_is_forwarded(self, client, remote_api):
        remote_api.ok("POST", "/usuarios/login", LOGIN_DATA)
        remote_api.ok("GET", "/ventanillas/1", VENTANILLA)

        client.post("/auth/login", json={"username": "caja1", "password": "x"})
        client.get("/ventanillas/1")

        assert remote_api.requests_to("GET", "/ventanillas/1")[0].headers["Authorization"] == f"Bearer {CAJERO_TOKEN}"

    def test_header_token_is_forwarded(self, client, remote_api):
        remote_api.ok("GET", "/ventanillas/1", VENTANILLA)

        client.get("/ventanillas/1", headers={"Authorization": "Bearer tok-9"})

        assert remote_api.requests_to("GET", "/ventanillas/1")[0].headers["Authorization"] == "Bearer tok-9"

    def test_header_wins_over_session(self, client, remote_api):
        remote_api.ok("POST", "/usuarios/login", LOGIN_DATA)
        remote_api.ok("GET", "/ventanillas/1", VENTANILLA)

        client.post("/auth/login", json={"username": "caja1", "password": "x"})
        client.get("/ventanillas/1", headers={"Authorization": "Bearer tok-9"})

        assert remote_api.requests_to("GET", "/ventanillas/1")[0].headers["Authorization"] == "Bearer tok-9"

    def test_request_without_token_travels_without_one(self, client, remote_api):
        remote_api.ok("GET", "/ventanillas/1", VENTANILLA)

        client.get("/ventanillas/1")

        assert "Authorization" not in remote_api.requests_to("GET", "/ventanillas/1")[0].headers

    def test_login_does_not_authenticate_other_clients(self, client, remote_api):
        """Otro cliente sin token ni cookie no hereda el token ni el usuario del login"""
        remote_api.ok("POST", "/usuarios/login", LOGIN_DATA)
        remote_api.ok("GET", "/ventanillas/1", VENTANILLA)
        remote_api.ok("POST", "/ventanillas/1/aperturar", {"id": 10})
        client.post("/auth/login", json={"username": "caja1", "password": "x"})

        anonimo = TestClient(client.app)
        response = anonimo.post("/ventanillas/1/aperturar", json={
            "montos_apertura": [{"moneda_id": 1, "monto": 1000}],
        })

        assert response.status_code == 422
        assert remote_api.requests_to("POST", "/ventanillas/1/aperturar") == []
        otras = [r for r in remote_api.calls if r.url.path != "/api/usuarios/login"]
        assert all("Authorization" not in r.headers for r in otras)

    def test_opening_takes_user_from_session(self, client, remote_api):
        remote_api.ok("POST", "/usuarios/login", LOGIN_DATA)
        remote_api.ok("GET", "/ventanillas/1", VENTANILLA)
        remote_api.ok("POST", "/ventanillas/1/aperturar", {"id": 10})
        client.post("/auth/login", json={"username": "caja1", "password": "x"})

        response = client.post("/ventanillas/1/aperturar", json={
            "montos_apertura": [{"moneda_id": 1, "monto": 1000}],
        })

        assert response.status_code == 200
        request = remote_api.requests_to("POST", "/ventanillas/1/aperturar")[0]
        assert remote_api.body(request)["usuario_id"] == 7
        assert request.headers["Authorization"] == f"Bearer {CAJERO_TOKEN}"

    def test_rejected_credentials(self, client, remote_api):
        remote_api.fail("POST", "/usuarios/login", "Credenciales inválidas", 401)
        response = client.post("/auth/login", json={"username": "caja1", "password": "mala"})
        assert response.status_code == 401
        assert response.json()["error"] == "Credenciales inválidas"
        assert SESSION_COOKIE not in response.cookies
