"""
Esquemas Pydantic para el módulo de Clientes

Los clientes son una unión etiquetada por ``tipo``; cada variante lleva
solo sus propios atributos:
- REGISTRADO: persona natural con datos completos
- EMPRESARIAL: empresa con representante legal
- OCASIONAL: sin identidad registrada
"""

from pydantic import BaseModel, Field, TypeAdapter
from typing import Optional, List, Literal, Union, Annotated, Any, Dict
from datetime import datetime
import enum


class TipoCliente(str, enum.Enum):
    REGISTRADO = "REGISTRADO"
    EMPRESARIAL = "EMPRESARIAL"
    OCASIONAL = "OCASIONAL"


class PersonaData(BaseModel):
    """Datos de persona natural (cliente registrado o representante legal)"""
    nombres: str = ""
    apellido_paterno: str = ""
    apellido_materno: str = ""
    fecha_nacimiento: Optional[str] = Field(None, description="YYYY-MM-DD")
    numero_telefono: Optional[str] = None
    direccion: Optional[str] = None
    tipo_documento: str = ""
    numero_documento: str = ""
    nacionalidad: Optional[str] = None
    ocupacion: Optional[str] = None

    @property
    def nombre_completo(self) -> str:
        return " ".join(p for p in [self.nombres, self.apellido_paterno, self.apellido_materno] if p)


# ===== CREACIÓN =====

class ClienteRegistradoCreate(BaseModel):
    tipo: Literal["REGISTRADO"] = "REGISTRADO"
    persona: PersonaData
    ruc: Optional[str] = None
    razon_social: Optional[str] = None
    direccion_fiscal: Optional[str] = None
    estado_civil: Optional[str] = None
    profesion: Optional[str] = None
    descripcion: Optional[str] = None


class ClienteEmpresarialCreate(BaseModel):
    tipo: Literal["EMPRESARIAL"] = "EMPRESARIAL"
    razon_social: str = ""
    ruc: str = ""
    direccion_fiscal: str = ""
    representante_legal: PersonaData
    descripcion: Optional[str] = None


class ClienteOcasionalCreate(BaseModel):
    tipo: Literal["OCASIONAL"] = "OCASIONAL"
    descripcion: Optional[str] = None


ClienteCreate = Annotated[
    Union[ClienteRegistradoCreate, ClienteEmpresarialCreate, ClienteOcasionalCreate],
    Field(discriminator="tipo")
]


# ===== LECTURA =====

class ClienteBase(BaseModel):
    id: int
    descripcion: Optional[str] = None
    es_activo: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClienteRegistrado(ClienteBase):
    tipo: Literal["REGISTRADO"]
    persona_id: Optional[int] = None
    persona: Optional[PersonaData] = None
    estado_civil: Optional[str] = None
    profesion: Optional[str] = None


class ClienteEmpresarial(ClienteBase):
    tipo: Literal["EMPRESARIAL"]
    ruc: Optional[str] = None
    razon_social: Optional[str] = None
    direccion_fiscal: Optional[str] = None
    persona_id: Optional[int] = None
    persona: Optional[PersonaData] = Field(None, description="Representante legal")


class ClienteOcasional(ClienteBase):
    tipo: Literal["OCASIONAL"]


ClienteOut = Annotated[
    Union[ClienteRegistrado, ClienteEmpresarial, ClienteOcasional],
    Field(discriminator="tipo")
]

cliente_adapter = TypeAdapter(ClienteOut)
cliente_list_adapter = TypeAdapter(List[ClienteOut])


class ClienteTemporal(BaseModel):
    """Cliente de paso capturado solo para el comprobante"""
    nombres: str = Field(..., min_length=1)
    apellidos: str = Field(..., min_length=1)
    numero_documento: str = Field(..., min_length=1)
    tipo_documento: str = Field(..., min_length=1)


# ===== BÚSQUEDA =====

class BuscarClienteRequest(BaseModel):
    nombres: Optional[str] = None
    apellido_paterno: Optional[str] = None
    apellido_materno: Optional[str] = None
    numero_documento: Optional[str] = None
    tipo_documento: Optional[str] = None
    ruc: Optional[str] = None
    razon_social: Optional[str] = None
    tipo_cliente: Optional[TipoCliente] = None
    es_activo: Optional[bool] = None
    direccion_fiscal: Optional[str] = None
    profesion: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1, le=500)
    offset: Optional[int] = Field(None, ge=0)

    def to_params(self) -> Dict[str, Any]:
        """Parámetros de query con los nombres que espera la API"""
        return {
            "nombres": self.nombres or None,
            "apellidoPaterno": self.apellido_paterno or None,
            "apellidoMaterno": self.apellido_materno or None,
            "numeroDocumento": self.numero_documento or None,
            "tipo_documento": self.tipo_documento or None,
            "ruc": self.ruc or None,
            "razonSocial": self.razon_social or None,
            "tipo": self.tipo_cliente.value if self.tipo_cliente else None,
            "esActivo": str(self.es_activo).lower() if self.es_activo is not None else None,
            "direccion_fiscal": self.direccion_fiscal or None,
            "profesion": self.profesion or None,
            "limit": self.limit or None,
            "offset": self.offset or None,
        }
