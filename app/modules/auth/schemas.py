from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
import enum


class RolUsuario(str, enum.Enum):
    ADMINISTRADOR_MAESTRO = "ADMINISTRADOR_MAESTRO"
    ADMINISTRADOR = "ADMINISTRADOR"
    ENCARGADO_VENTANILLA = "ENCARGADO_VENTANILLA"
    CAJERO = "CAJERO"


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)

    @field_validator('username')
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()


class UsuarioOut(BaseModel):
    id: Optional[int] = None
    username: str
    email: Optional[str] = None
    rol: Optional[RolUsuario] = None
    activo: bool = True
    persona_id: Optional[int] = None
    casa_de_cambio_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    usuario: UsuarioOut
    token: str


class AuthContext(BaseModel):
    """Identidad del operador según el token reenviado a la API"""
    token: Optional[str] = None
    usuario_id: Optional[int] = None
    username: Optional[str] = None
    rol: Optional[str] = None
    casa_de_cambio_id: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)
