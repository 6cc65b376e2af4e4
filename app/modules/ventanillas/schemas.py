"""
Esquemas Pydantic para el módulo de Ventanillas

Define los contratos con la API remota y con los clientes del back-office:
- Ventanilla: datos de la unidad de atención
- Apertura: montos iniciales por moneda
- Cierre: resumen esperado y montos físicos confirmados
"""

from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from datetime import datetime

from app.common.validators import JsonDecimal
from app.modules.monedas.schemas import MonedaResumen
from app.modules.ventanillas.models import EstadoVentanilla, AccionVentanilla


# ===== VENTANILLA =====

class CasaDeCambioRef(BaseModel):
    id: int
    nombre: Optional[str] = None


class VentanillaOut(BaseModel):
    """Ventanilla tal como la devuelve la API"""
    id: int = Field(description="ID de la ventanilla")
    identificador: Optional[str] = Field(None, description="Código de la ventanilla")
    nombre: str = Field(description="Nombre de la ventanilla")
    estado: EstadoVentanilla = Field(description="Estado actual")
    activa: bool = Field(True, description="Indica si la ventanilla está habilitada")
    casa_de_cambio_id: Optional[int] = Field(None, description="ID de la casa de cambio")
    casa_de_cambio: Optional[CasaDeCambioRef] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VentanillaDetail(VentanillaOut):
    """Ventanilla con las acciones que admite su estado"""
    acciones_permitidas: List[AccionVentanilla] = Field(default=[], description="Acciones disponibles")


class VentanillaCreate(BaseModel):
    identificador: str = Field(..., min_length=1, max_length=50)
    nombre: str = Field(..., min_length=1, max_length=100)
    casa_de_cambio_id: int = Field(..., gt=0)
    activa: bool = True

    @field_validator('nombre', 'identificador')
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError('El campo no puede estar vacío')
        return cleaned


class VentanillaUpdate(BaseModel):
    identificador: Optional[str] = Field(None, max_length=50)
    nombre: Optional[str] = Field(None, max_length=100)
    activa: Optional[bool] = None


# ===== APERTURA =====

class MontoApertura(BaseModel):
    """Monto inicial por moneda"""
    moneda_id: int = Field(..., gt=0, description="ID de la moneda")
    monto: JsonDecimal = Field(..., ge=0, description="Monto inicial en caja")


class AperturarVentanillaRequest(BaseModel):
    """Cuerpo de POST /ventanillas/{id}/aperturar"""
    usuario_id: int = Field(..., gt=0)
    montos_apertura: List[MontoApertura]
    observaciones_apertura: Optional[str] = None


class AperturaIn(BaseModel):
    """Solicitud de apertura recibida por el back-office"""
    montos_apertura: List[MontoApertura] = Field(..., description="Montos iniciales por moneda")
    observaciones_apertura: Optional[str] = Field(None, max_length=500)
    usuario_id: Optional[int] = Field(None, gt=0, description="Por defecto, el usuario del token")


class FilaApertura(BaseModel):
    moneda_id: int
    moneda: Optional[MonedaResumen] = None
    monto: JsonDecimal = Decimal("0")


class PlanApertura(BaseModel):
    """Formulario inicial de apertura: una fila por moneda activa"""
    ventanilla_id: int
    filas: List[FilaApertura]


# ===== CIERRE =====

class MontoEsperado(BaseModel):
    moneda_id: int
    monto_esperado: JsonDecimal
    moneda: Optional[MonedaResumen] = None


class ResumenCierre(BaseModel):
    """Respuesta de GET /ventanillas/{id}/resumen-cierre"""
    apertura_ventanilla_id: int
    montos_esperados: List[MontoEsperado]
    total_transacciones: int = 0
    ganancia_total_calculada: JsonDecimal = Decimal("0")


class MontoCierreRequest(BaseModel):
    moneda_id: int
    monto_fisico_real: JsonDecimal
    confirmado_fisicamente: bool
    observaciones_desfase: Optional[str] = None


class CierreVentanillaRequest(BaseModel):
    """Cuerpo de POST /ventanillas/{id}/procesar-cierre"""
    apertura_ventanilla_id: int
    observaciones_cierre: Optional[str] = None
    montos_cierre: List[MontoCierreRequest]


class FilaCierreIn(BaseModel):
    moneda_id: int = Field(..., gt=0)
    monto_fisico_real: JsonDecimal = Field(..., ge=0, description="Monto contado físicamente")
    confirmado_fisicamente: bool = Field(False, description="El operador confirmó el conteo")
    observaciones_desfase: Optional[str] = Field(None, max_length=500)


class CierreIn(BaseModel):
    """Solicitud de cierre recibida por el back-office"""
    montos_cierre: List[FilaCierreIn]
    observaciones_cierre: Optional[str] = Field(None, max_length=500)


class FilaCierreOut(BaseModel):
    moneda_id: int
    moneda: Optional[MonedaResumen] = None
    monto_esperado: JsonDecimal
    monto_fisico_real: JsonDecimal
    desfase: JsonDecimal = Field(description="Físico - esperado")
    desfase_porcentaje: JsonDecimal
    nivel_desfase: str = Field(description="verde / ambar / rojo (solo visual)")
    confirmado_fisicamente: bool
    requiere_observacion: bool
    observaciones_desfase: Optional[str] = None


class ResumenCierreOut(BaseModel):
    ventanilla_id: int
    apertura_ventanilla_id: int
    total_transacciones: int
    ganancia_total_calculada: JsonDecimal
    filas: List[FilaCierreOut]
    puede_cerrar: bool
    errores: List[str] = []
