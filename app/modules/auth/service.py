"""
Servicio de autenticación

El login lo resuelve la API remota; aquí solo se conserva el token en las
preferencias de la sesión del cliente para reenviarlo después.
"""

import logging

from app.core.api_client import ApiClient
from app.core.exceptions import ApiError
from app.modules.auth.schemas import LoginRequest, LoginResponse
from app.modules.preferences.service import PreferencesService

logger = logging.getLogger(__name__)


class AuthService:

    def __init__(self, api: ApiClient, preferences: PreferencesService):
        self.api = api
        self.preferences = preferences

    async def login(self, credentials: LoginRequest) -> LoginResponse:
        response = await self.api.post("/usuarios/login", credentials.model_dump())
        if not response.data or not response.data.get("token"):
            raise ApiError(response.message or "Error de autenticación", status_code=401)

        login = LoginResponse.model_validate(response.data)
        self.api.set_token(login.token)
        self.preferences.set_token(login.token, login.usuario.model_dump(mode="json"))
        logger.info(f"Sesión iniciada: {login.usuario.username}")
        return login

    def logout(self) -> None:
        self.api.set_token(None)
        self.preferences.clear_token()
        logger.info("Sesión cerrada")
