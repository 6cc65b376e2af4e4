import secrets
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response

from app.core.api_client import ApiClient
from app.core.config import settings
from app.dependencies.apiDependencies import get_api_client
from app.dependencies.preferencesDependencies import get_preference_storage
from app.modules.auth.dependencies import SESSION_COOKIE, session_preferences
from app.modules.auth.schemas import LoginRequest, LoginResponse
from app.modules.auth.service import AuthService
from app.modules.preferences.storage import PreferenceStorage

auth_router = APIRouter()


@auth_router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    response: Response,
    api: ApiClient = Depends(get_api_client),
    storage: PreferenceStorage = Depends(get_preference_storage)
):
    """
    Iniciar sesión contra la API remota.
    El token queda guardado bajo una sesión nueva; la cookie de sesión permite
    a este mismo cliente omitir el header Authorization.
    """
    session_id = secrets.token_urlsafe(32)
    login = await AuthService(api, session_preferences(storage, session_id)).login(credentials)
    response.set_cookie(
        SESSION_COOKIE, session_id,
        httponly=True, samesite="lax", secure=settings.ENVIRONMENT == "production"
    )
    return login


@auth_router.post("/logout", response_model=dict)
async def logout(
    response: Response,
    api: ApiClient = Depends(get_api_client),
    storage: PreferenceStorage = Depends(get_preference_storage),
    session_id: Optional[str] = Cookie(None, alias=SESSION_COOKIE)
):
    """Cerrar sesión: descarta el token de la sesión de este cliente."""
    if session_id:
        AuthService(api, session_preferences(storage, session_id)).logout()
    response.delete_cookie(SESSION_COOKIE)
    return {"message": "Sesión cerrada"}
