"""
Dependencias de autenticación para FastAPI.

El back-office no valida la firma del token: la API remota es la autoridad.
Solo se leen los claims para conocer al operador (p. ej. el usuario_id de
la apertura).
"""
import logging
from typing import Any, Dict, Optional

import jwt
from fastapi import Cookie, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.dependencies.preferencesDependencies import get_preference_storage
from app.modules.auth.schemas import AuthContext
from app.modules.preferences.service import PreferencesService
from app.modules.preferences.storage import PreferenceStorage

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

# Sesión creada por /auth/login; cada cliente tiene la suya
SESSION_COOKIE = "cambio_sesion"


def session_preferences(storage: PreferenceStorage, session_id: str) -> PreferencesService:
    return PreferencesService(storage, scope=f"sesion:{session_id}")


def read_claims(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        logger.debug(f"Token sin claims legibles: {e}")
        return {}


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def build_auth_context(token: Optional[str]) -> AuthContext:
    if not token:
        return AuthContext()
    claims = read_claims(token)
    return AuthContext(
        token=token,
        usuario_id=_as_int(claims.get("id", claims.get("sub"))),
        username=claims.get("username"),
        rol=claims.get("rol"),
        casa_de_cambio_id=_as_int(claims.get("casa_de_cambio_id")),
    )


def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session_id: Optional[str] = Cookie(None, alias=SESSION_COOKIE),
    storage: PreferenceStorage = Depends(get_preference_storage)
) -> AuthContext:
    """
    Token del header Authorization; si no viene, el de la sesión de este
    cliente (cookie emitida por /auth/login). Sin ninguno, la solicitud
    viaja a la API remota sin token.
    """
    if credentials:
        return build_auth_context(credentials.credentials)
    if session_id:
        return build_auth_context(session_preferences(storage, session_id).get_token())
    return AuthContext()
