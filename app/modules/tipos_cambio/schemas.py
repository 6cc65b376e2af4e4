"""
Esquemas Pydantic para el módulo de Tipos de Cambio

- TipoCambio: par de monedas con tasa de compra y venta
- Verificación: resultado del chequeo previo al guardado
- Historial: filtros, estadísticas de spread
"""

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator
from decimal import Decimal
from typing import Optional, List, Literal
from datetime import datetime, date

from app.common.validators import JsonDecimal
from app.modules.monedas.schemas import MonedaResumen


def spread_porcentaje(tipo_compra: Decimal, tipo_venta: Decimal) -> Decimal:
    """(venta - compra) / compra * 100"""
    if tipo_compra == 0:
        return Decimal("0")
    return (tipo_venta - tipo_compra) / tipo_compra * 100


# ===== TIPO DE CAMBIO =====

class TipoCambioOut(BaseModel):
    """Tipo de cambio tal como lo devuelve la API"""
    id: int
    tipo_compra: JsonDecimal = Field(description="Tasa a la que la casa compra la moneda origen")
    tipo_venta: JsonDecimal = Field(description="Tasa a la que la casa vende la moneda origen")
    activo: bool = True
    fecha_vigencia: Optional[datetime] = None
    mantener_cambio_diario: bool = False
    casa_de_cambio_id: Optional[int] = None
    moneda_origen_id: int
    moneda_destino_id: int
    moneda_origen: Optional[MonedaResumen] = None
    moneda_destino: Optional[MonedaResumen] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def spread(self) -> Decimal:
        return spread_porcentaje(self.tipo_compra, self.tipo_venta)

    @property
    def par_monedas(self) -> str:
        origen = self.moneda_origen.codigo if self.moneda_origen else None
        destino = self.moneda_destino.codigo if self.moneda_destino else None
        return f"{origen}/{destino}"


class TipoCambioActivo(BaseModel):
    """Respuesta de GET /tipos-cambio/casa-de-cambio/{id} (solo activos)"""
    id: int
    par_monedas: Optional[str] = None
    tipo_compra: JsonDecimal
    tipo_venta: JsonDecimal
    moneda_origen_id: int
    moneda_destino_id: int
    moneda_origen: Optional[MonedaResumen] = None
    moneda_destino: Optional[MonedaResumen] = None


class TipoCambioCreate(BaseModel):
    """Cuerpo de POST /tipos-cambio"""
    tipo_compra: JsonDecimal = Field(..., ge=Decimal("0.01"), le=Decimal("1000"))
    tipo_venta: JsonDecimal = Field(..., ge=Decimal("0.01"), le=Decimal("1000"))
    casa_de_cambio_id: int = Field(..., gt=0, description="Debe seleccionar una casa de cambio")
    moneda_origen_id: int = Field(..., gt=0, description="Debe seleccionar una moneda origen")
    moneda_destino_id: int = Field(..., gt=0, description="Debe seleccionar una moneda destino")

    @model_validator(mode="after")
    def validate_monedas_diferentes(self):
        if self.moneda_origen_id == self.moneda_destino_id:
            raise ValueError("La moneda origen y destino deben ser diferentes")
        return self


class TipoCambioUpdate(BaseModel):
    """Cuerpo de PUT /tipos-cambio/{id}"""
    tipo_compra: Optional[JsonDecimal] = Field(None, ge=Decimal("0.01"), le=Decimal("1000"))
    tipo_venta: Optional[JsonDecimal] = Field(None, ge=Decimal("0.01"), le=Decimal("1000"))
    activo: Optional[bool] = None
    mantener_cambio_diario: Optional[bool] = None
    fecha_vigencia: Optional[datetime] = None


class TipoCambioVigenteRequest(BaseModel):
    moneda_origen_id: int
    moneda_destino_id: int
    casa_de_cambio_id: int
    fecha: Optional[date] = None


class TipoCambioIn(TipoCambioCreate):
    """Solicitud de creación recibida por el back-office"""
    confirmar: bool = Field(False, description="Confirma un cambio drástico ya advertido")


class TipoCambioUpdateIn(TipoCambioUpdate):
    confirmar: bool = Field(False, description="Confirma un cambio drástico ya advertido")


# ===== VERIFICACIÓN =====

class CambioDrastico(BaseModel):
    """Variación porcentual contra el tipo anterior del mismo par"""
    tipo_anterior_id: Optional[int] = None
    cambio_compra: JsonDecimal = Decimal("0")
    cambio_venta: JsonDecimal = Decimal("0")
    es_drastico: bool = False


class VerificacionTipoCambio(BaseModel):
    """Resultado de los chequeos previos al guardado"""
    existe_par_activo: bool = False
    cambio: CambioDrastico = Field(default_factory=CambioDrastico)
    errores: List[str] = []

    @computed_field
    @property
    def puede_guardar(self) -> bool:
        return not self.existe_par_activo and not self.errores


# ===== HISTORIAL =====

EstadoFiltro = Literal["todos", "activo", "inactivo"]
OrdenHistorial = Literal[
    "fecha_desc", "fecha_asc", "compra_desc", "compra_asc",
    "venta_desc", "venta_asc", "spread_desc", "spread_asc"
]


class HistorialFiltros(BaseModel):
    """Filtros avanzados del historial de tipos de cambio"""
    busqueda: str = ""
    estado: EstadoFiltro = "todos"
    moneda_origen_id: Optional[int] = None
    moneda_destino_id: Optional[int] = None
    compra_minima: Optional[JsonDecimal] = None
    compra_maxima: Optional[JsonDecimal] = None
    venta_minima: Optional[JsonDecimal] = None
    venta_maxima: Optional[JsonDecimal] = None
    fecha_desde: Optional[date] = None
    fecha_hasta: Optional[date] = None
    spread_minimo: Optional[JsonDecimal] = None
    spread_maximo: Optional[JsonDecimal] = None
    solo_mantener_diario: bool = False
    ordenar_por: OrdenHistorial = "fecha_desc"

    @field_validator("busqueda")
    @classmethod
    def strip_busqueda(cls, v: str) -> str:
        return v.strip()

    def activos(self) -> int:
        """Cantidad de filtros distintos de su valor inicial"""
        count = 0
        if self.busqueda:
            count += 1
        if self.estado != "todos":
            count += 1
        if self.moneda_origen_id:
            count += 1
        if self.moneda_destino_id:
            count += 1
        if self.compra_minima is not None or self.compra_maxima is not None:
            count += 1
        if self.venta_minima is not None or self.venta_maxima is not None:
            count += 1
        if self.fecha_desde or self.fecha_hasta:
            count += 1
        if self.spread_minimo is not None or self.spread_maximo is not None:
            count += 1
        if self.solo_mantener_diario:
            count += 1
        return count


class HistorialOut(BaseModel):
    total_registros: int
    registros_filtrados: int
    filtros_activos: int
    tipos_cambio: List[TipoCambioOut]


class EstadisticasHistorial(BaseModel):
    total: int = 0
    activos: int = 0
    inactivos: int = 0
    con_mantener_diario: int = 0
    spread_promedio: JsonDecimal = Decimal("0.00")
    spread_maximo: JsonDecimal = Decimal("0.00")
    spread_minimo: JsonDecimal = Decimal("0.00")
