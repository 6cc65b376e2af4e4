"""
Servicio remoto de Clientes con validaciones locales por variante
"""

import logging
from typing import Any, List, Optional

from app.common.validators import validate_ruc
from app.core.api_client import ApiClient
from app.core.exceptions import ValidacionError
from app.modules.clientes.schemas import (
    ClienteOut, ClienteRegistradoCreate, ClienteEmpresarialCreate, ClienteOcasionalCreate,
    BuscarClienteRequest, cliente_adapter, cliente_list_adapter
)

logger = logging.getLogger(__name__)


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def validar_cliente_registrado(data: ClienteRegistradoCreate) -> List[str]:
    errores = []
    persona = data.persona
    if _blank(persona.nombres):
        errores.append("Nombres son obligatorios")
    if _blank(persona.apellido_paterno):
        errores.append("Apellido paterno es obligatorio")
    if _blank(persona.numero_documento):
        errores.append("Número de documento es obligatorio")
    if _blank(persona.tipo_documento):
        errores.append("Tipo de documento es obligatorio")
    if data.ruc and not validate_ruc(data.ruc):
        errores.append("RUC debe tener 11 dígitos")
    return errores


def validar_cliente_empresarial(data: ClienteEmpresarialCreate) -> List[str]:
    errores = []
    representante = data.representante_legal
    if _blank(data.ruc):
        errores.append("RUC es obligatorio")
    if _blank(data.razon_social):
        errores.append("Razón social es obligatoria")
    if _blank(data.direccion_fiscal):
        errores.append("Dirección fiscal es obligatoria")
    if _blank(representante.nombres):
        errores.append("Nombres del representante legal son obligatorios")
    if _blank(representante.apellido_paterno):
        errores.append("Apellido paterno del representante es obligatorio")
    if _blank(representante.numero_documento):
        errores.append("Documento del representante es obligatorio")
    if data.ruc and not validate_ruc(data.ruc):
        errores.append("RUC debe tener 11 dígitos")
    return errores


class ClienteService:
    """Servicio para los endpoints /clientes"""

    def __init__(self, api: ApiClient):
        self.api = api

    @staticmethod
    def _one(data: Any) -> ClienteOut:
        return cliente_adapter.validate_python(data)

    @staticmethod
    def _many(data: Any) -> List[ClienteOut]:
        return cliente_list_adapter.validate_python(data or [])

    async def get_all(self) -> List[ClienteOut]:
        response = await self.api.get("/clientes")
        return self._many(response.data)

    async def get_by_id(self, cliente_id: int) -> ClienteOut:
        response = await self.api.get(f"/clientes/{cliente_id}")
        return self._one(response.data)

    async def get_by_documento(self, numero_documento: str) -> ClienteOut:
        response = await self.api.get(f"/clientes/documento/{numero_documento}")
        return self._one(response.data)

    async def search(self, params: BuscarClienteRequest) -> List[ClienteOut]:
        response = await self.api.get("/clientes/search", params=params.to_params())
        return self._many(response.data)

    async def create(self, data) -> ClienteOut:
        """Despacha según la variante del cliente."""
        if isinstance(data, ClienteRegistradoCreate):
            return await self.create_registrado(data)
        if isinstance(data, ClienteEmpresarialCreate):
            return await self.create_empresarial(data)
        return await self.create_ocasional(data)

    async def create_registrado(self, data: ClienteRegistradoCreate) -> ClienteOut:
        errores = validar_cliente_registrado(data)
        if errores:
            raise ValidacionError("Datos de cliente registrado inválidos", errores)
        response = await self.api.post("/clientes/registrado", data.model_dump(exclude={"tipo"}, exclude_none=True))
        cliente = self._one(response.data)
        logger.info(f"Cliente registrado {cliente.id} creado")
        return cliente

    async def create_empresarial(self, data: ClienteEmpresarialCreate) -> ClienteOut:
        errores = validar_cliente_empresarial(data)
        if errores:
            raise ValidacionError("Datos de cliente empresarial inválidos", errores)
        response = await self.api.post("/clientes/empresarial", data.model_dump(exclude={"tipo"}, exclude_none=True))
        cliente = self._one(response.data)
        logger.info(f"Cliente empresarial {cliente.id} creado")
        return cliente

    async def create_ocasional(self, data: ClienteOcasionalCreate) -> ClienteOut:
        response = await self.api.post("/clientes/ocasional", data.model_dump(exclude={"tipo"}, exclude_none=True))
        cliente = self._one(response.data)
        logger.info(f"Cliente ocasional {cliente.id} creado")
        return cliente

    async def toggle_estado(self, cliente_id: int) -> ClienteOut:
        response = await self.api.patch(f"/clientes/{cliente_id}/toggle-estado")
        return self._one(response.data)

    async def existe_ruc(self, ruc: str, exclude_id: Optional[int] = None) -> bool:
        endpoint = f"/clientes/ruc/{ruc}/existe"
        if exclude_id:
            endpoint = f"{endpoint}?excludeId={exclude_id}"
        response = await self.api.get(endpoint)
        return bool((response.data or {}).get("existe"))
