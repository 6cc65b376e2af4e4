from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class MonedaResumen(BaseModel):
    """Datos mínimos de moneda embebidos en otras respuestas"""
    codigo: Optional[str] = None
    nombre: Optional[str] = None
    simbolo: Optional[str] = None


class MonedaOut(BaseModel):
    id: int = Field(description="ID de la moneda")
    codigo: str = Field(description="Código ISO, p. ej. USD")
    nombre: str
    simbolo: str = ""
    decimales: int = 2
    activa: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def resumen(self) -> MonedaResumen:
        return MonedaResumen(codigo=self.codigo, nombre=self.nombre, simbolo=self.simbolo)
