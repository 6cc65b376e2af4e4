from pydantic import BaseModel, Field, field_validator
from typing import List

from app.modules.tipos_cambio.schemas import HistorialFiltros


class FiltroGuardado(BaseModel):
    """Preset de filtros del historial de tipos de cambio"""
    name: str = Field(..., min_length=1, max_length=100, description="Nombre del preset")
    filtros: HistorialFiltros

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError('El nombre del filtro no puede estar vacío')
        return cleaned


class FiltrosGuardadosOut(BaseModel):
    filtros: List[FiltroGuardado] = []
