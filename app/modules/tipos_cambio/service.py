"""
Servicio remoto de Tipos de Cambio
"""
from typing import Any, List, Optional

from app.core.api_client import ApiClient
from app.modules.tipos_cambio.schemas import (
    TipoCambioOut, TipoCambioActivo, TipoCambioCreate, TipoCambioUpdate, TipoCambioVigenteRequest
)


def _as_list(data: Any) -> List[TipoCambioOut]:
    return [TipoCambioOut.model_validate(item) for item in data or []]


class TipoCambioService:
    """Servicio para los endpoints /tipos-cambio"""

    def __init__(self, api: ApiClient):
        self.api = api

    async def get_by_id(self, tipo_cambio_id: int) -> TipoCambioOut:
        response = await self.api.get(f"/tipos-cambio/{tipo_cambio_id}")
        return TipoCambioOut.model_validate(response.data)

    async def get_vigente(self, data: TipoCambioVigenteRequest) -> TipoCambioOut:
        response = await self.api.post("/tipos-cambio/vigente", data.model_dump(mode="json", exclude_none=True))
        return TipoCambioOut.model_validate(response.data)

    async def get_by_casa_de_cambio(self, casa_de_cambio_id: int) -> List[TipoCambioOut]:
        """Todos los tipos de la casa, activos e inactivos."""
        response = await self.api.get(f"/tipos-cambio/casa-de-cambio/{casa_de_cambio_id}/completo")
        return _as_list(response.data)

    async def get_activos_por_casa(self, casa_de_cambio_id: int) -> List[TipoCambioActivo]:
        response = await self.api.get(f"/tipos-cambio/casa-de-cambio/{casa_de_cambio_id}")
        return [TipoCambioActivo.model_validate(item) for item in response.data or []]

    async def get_historial(self, moneda_origen_id: int, moneda_destino_id: int, casa_de_cambio_id: int,
                            limit: Optional[int] = None, offset: Optional[int] = None) -> List[TipoCambioOut]:
        response = await self.api.get(
            f"/tipos-cambio/historial/{moneda_origen_id}/{moneda_destino_id}/{casa_de_cambio_id}",
            params={"limit": limit or None, "offset": offset or None},
        )
        return _as_list(response.data)

    async def create(self, data: TipoCambioCreate) -> TipoCambioOut:
        response = await self.api.post("/tipos-cambio", data.model_dump(mode="json"))
        return TipoCambioOut.model_validate(response.data)

    async def update(self, tipo_cambio_id: int, data: TipoCambioUpdate) -> TipoCambioOut:
        response = await self.api.put(
            f"/tipos-cambio/{tipo_cambio_id}", data.model_dump(mode="json", exclude_none=True)
        )
        return TipoCambioOut.model_validate(response.data)

    async def delete(self, tipo_cambio_id: int) -> None:
        await self.api.delete(f"/tipos-cambio/{tipo_cambio_id}")

    async def activar(self, tipo_cambio_id: int) -> TipoCambioOut:
        response = await self.api.patch(f"/tipos-cambio/{tipo_cambio_id}/activar")
        return TipoCambioOut.model_validate(response.data)

    async def desactivar(self, tipo_cambio_id: int) -> TipoCambioOut:
        response = await self.api.patch(f"/tipos-cambio/{tipo_cambio_id}/desactivar")
        return TipoCambioOut.model_validate(response.data)
