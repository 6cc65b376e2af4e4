"""
Esquemas Pydantic del módulo de Reportes
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
import enum

from pydantic import BaseModel, Field, model_validator

from app.common.validators import JsonDecimal


class TipoReporte(str, enum.Enum):
    DIARIO = "DIARIO"
    SEMANAL = "SEMANAL"
    MENSUAL = "MENSUAL"
    ANUAL = "ANUAL"

    @property
    def ruta(self) -> str:
        return {
            TipoReporte.DIARIO: "diario",
            TipoReporte.SEMANAL: "semanal",
            TipoReporte.MENSUAL: "mensual",
            TipoReporte.ANUAL: "anual",
        }[self]


class ReporteFiltros(BaseModel):
    """Rango de fechas y casa de cambio del reporte"""
    tipo: TipoReporte = TipoReporte.DIARIO
    casa_de_cambio_id: int = Field(..., gt=0)
    fecha_inicio: date
    fecha_fin: date

    @model_validator(mode="after")
    def validate_rango(self):
        if self.fecha_fin < self.fecha_inicio:
            raise ValueError("La fecha fin debe ser mayor o igual a la fecha inicio")
        return self

    def to_params(self) -> dict:
        return {
            "casa_de_cambio_id": self.casa_de_cambio_id,
            "fecha_inicio": self.fecha_inicio.isoformat(),
            "fecha_fin": self.fecha_fin.isoformat(),
        }


class ReporteVentanilla(BaseModel):
    ventanilla_id: int
    ventanilla_nombre: str
    ganancia: JsonDecimal
    total_transacciones: int
    monto_operado: JsonDecimal


class ReporteMoneda(BaseModel):
    moneda_id: int
    moneda_codigo: str
    moneda_nombre: Optional[str] = None
    monto_origen: JsonDecimal
    monto_destino: JsonDecimal
    ganancia: JsonDecimal
    total_transacciones: int


class ReporteDiario(BaseModel):
    fecha: date
    ganancia: JsonDecimal
    total_transacciones: int
    monto_operado: JsonDecimal


class ReporteGanancias(BaseModel):
    tipo: TipoReporte
    fecha_inicio: date
    fecha_fin: date
    ganancia_total: JsonDecimal = Decimal("0")
    total_transacciones: int = 0
    monto_total_operado: JsonDecimal = Decimal("0")
    casa_de_cambio_id: Optional[int] = None
    ventanilla_id: Optional[int] = None
    ventanillas: List[ReporteVentanilla] = []
    monedas: List[ReporteMoneda] = []
    transacciones_por_dia: List[ReporteDiario] = []
    created_at: Optional[datetime] = None


class TransaccionDestacada(BaseModel):
    numero_transaccion: str
    monto_origen: JsonDecimal
    monto_destino: JsonDecimal
    ganancia: JsonDecimal
    fecha: Optional[datetime] = None


class ResumenTransacciones(BaseModel):
    total_completadas: int = 0
    total_canceladas: int = 0
    total_pendientes: int = 0
    monto_total_completadas: JsonDecimal = Decimal("0")
    ganancia_total: JsonDecimal = Decimal("0")
    transacciones_mas_grandes: List[TransaccionDestacada] = []
