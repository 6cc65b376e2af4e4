"""
Esquemas Pydantic para el módulo de Transacciones

- TransaccionOut: transacción registrada por el backend
- ProcesarCambioRequest: cuerpo de POST /transacciones/procesar-cambio (camelCase)
- CalculoIn / CalculoOut: cálculo bidireccional de montos
- RegistrarTransaccionIn: cálculo + ventanilla + comprobante
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from decimal import Decimal
from typing import Optional, List, Literal, Any, Dict
from datetime import datetime, date
import enum

from app.common.validators import JsonDecimal
from app.modules.clientes.schemas import ClienteTemporal


class TipoOperacion(str, enum.Enum):
    COMPRA = "COMPRA"   # La casa compra la moneda origen al cliente
    VENTA = "VENTA"     # La casa vende la moneda origen al cliente


class EstadoTransaccion(str, enum.Enum):
    COMPLETADA = "COMPLETADA"
    CANCELADA = "CANCELADA"
    PENDIENTE = "PENDIENTE"


class OpcionComprobante(str, enum.Enum):
    SIN_COMPROBANTE = "SIN_COMPROBANTE"
    CLIENTE_EXISTENTE = "CLIENTE_EXISTENTE"
    CLIENTE_TEMPORAL = "CLIENTE_TEMPORAL"


# ===== LECTURA =====

class MonedaCodigo(BaseModel):
    codigo: str
    simbolo: Optional[str] = None


class VentanillaRef(BaseModel):
    identificador: Optional[str] = None
    nombre: Optional[str] = None


class TransaccionOut(BaseModel):
    id: int
    numero_transaccion: str
    monto_origen: JsonDecimal
    monto_destino: JsonDecimal
    tipo_cambio_aplicado: JsonDecimal
    ganancia: JsonDecimal = Decimal("0")
    estado: EstadoTransaccion
    tipo_operacion: TipoOperacion
    fecha_transaccion: Optional[datetime] = None
    observaciones: Optional[str] = None
    cliente_id: Optional[int] = None
    ventanilla_id: int
    moneda_origen_id: int
    moneda_destino_id: int
    tipo_cambio_id: Optional[int] = None
    cliente: Optional[Dict[str, Any]] = None
    cliente_temporal: Optional[ClienteTemporal] = None
    moneda_origen: Optional[MonedaCodigo] = None
    moneda_destino: Optional[MonedaCodigo] = None
    ventanilla: Optional[VentanillaRef] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FiltrosTransaccion(BaseModel):
    limit: Optional[int] = Field(None, ge=1, le=500)
    offset: Optional[int] = Field(None, ge=0)
    ordenar: Optional[Literal["fecha_desc", "fecha_asc", "monto_desc", "monto_asc"]] = None
    ventanilla_id: Optional[int] = None
    estado: Optional[EstadoTransaccion] = None
    fecha_inicio: Optional[date] = None
    fecha_fin: Optional[date] = None

    def to_params(self) -> Dict[str, Any]:
        return {
            "limit": self.limit or None,
            "offset": self.offset or None,
            "ordenar": self.ordenar,
            "ventanillaId": self.ventanilla_id,
            "estado": self.estado.value if self.estado else None,
            "fechaInicio": self.fecha_inicio.isoformat() if self.fecha_inicio else None,
            "fechaFin": self.fecha_fin.isoformat() if self.fecha_fin else None,
        }


# ===== ENVÍO =====

class ProcesarCambioRequest(BaseModel):
    """Se serializa con ``by_alias=True``: la API espera camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    cliente_id: Optional[int] = None
    cliente_temp: Optional[ClienteTemporal] = None
    ventanilla_id: int
    moneda_origen_id: int
    moneda_destino_id: int
    monto_origen: JsonDecimal
    tipo_operacion: TipoOperacion
    observaciones: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CancelarTransaccionRequest(BaseModel):
    motivo: Optional[str] = None


# ===== CÁLCULO =====

class CalculoIn(BaseModel):
    """
    Estado del formulario de cambio.

    Los montos llegan como texto tal cual se teclean. Con
    ``modo_calculo_inverso`` manda ``monto_destino``; si no, ``monto_origen``.
    """
    tipo_cambio_id: int
    tipo_operacion: TipoOperacion
    monto_origen: Optional[str] = None
    monto_destino: Optional[str] = None
    modo_calculo_inverso: bool = False
    tipo_cambio_preferencial: Optional[Decimal] = None
    casa_de_cambio_id: Optional[int] = None


class CalculoOut(BaseModel):
    tipo_cambio_id: int
    par_monedas: Optional[str] = None
    tipo_operacion: TipoOperacion
    monto_origen: Optional[JsonDecimal] = None
    monto_destino: Optional[JsonDecimal] = None
    tipo_cambio_aplicado: Optional[JsonDecimal] = None
    ganancia: Optional[JsonDecimal] = None
    modo_calculo_inverso: bool = False
    es_preferencial: bool = False
    es_valido: bool = False
    mensaje_error: Optional[str] = None


class RegistrarTransaccionIn(CalculoIn):
    ventanilla_id: Optional[int] = None
    comprobante: OpcionComprobante = OpcionComprobante.SIN_COMPROBANTE
    cliente_id: Optional[int] = None
    cliente_temp: Optional[ClienteTemporal] = None

    @model_validator(mode="after")
    def validate_comprobante(self):
        if self.comprobante == OpcionComprobante.CLIENTE_EXISTENTE and not self.cliente_id:
            raise ValueError("Debe seleccionar un cliente")
        if self.comprobante == OpcionComprobante.CLIENTE_TEMPORAL and self.cliente_temp is None:
            raise ValueError("Debe registrar los datos del cliente")
        return self
