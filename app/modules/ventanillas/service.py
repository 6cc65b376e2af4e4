"""
Servicio remoto de Ventanillas

Wrapper fino sobre los endpoints /ventanillas de la API. No contiene reglas
de negocio: las validaciones del ciclo de vida viven en workflows.py.
"""

from typing import Any, List, Optional

from app.core.api_client import ApiClient
from app.modules.ventanillas.models import EstadoVentanilla
from app.modules.ventanillas.schemas import (
    VentanillaOut, VentanillaCreate, VentanillaUpdate,
    AperturarVentanillaRequest, ResumenCierre, CierreVentanillaRequest
)


def _as_list(data: Any) -> List[VentanillaOut]:
    return [VentanillaOut.model_validate(item) for item in data or []]


class VentanillaService:
    """Servicio para los endpoints de ventanillas"""

    def __init__(self, api: ApiClient):
        self.api = api

    async def get_all(self) -> List[VentanillaOut]:
        response = await self.api.get("/ventanillas")
        return _as_list(response.data)

    async def get_by_casa_de_cambio(self, casa_de_cambio_id: int) -> List[VentanillaOut]:
        response = await self.api.get(f"/ventanillas/casa-de-cambio/{casa_de_cambio_id}")
        return _as_list(response.data)

    async def get_by_estado(self, casa_de_cambio_id: int, estado: EstadoVentanilla) -> List[VentanillaOut]:
        response = await self.api.get(
            f"/ventanillas/casa-de-cambio/{casa_de_cambio_id}/estado/{EstadoVentanilla(estado).value}"
        )
        return _as_list(response.data)

    async def get_by_id(self, ventanilla_id: int) -> VentanillaOut:
        response = await self.api.get(f"/ventanillas/{ventanilla_id}")
        return VentanillaOut.model_validate(response.data)

    async def get_historial(self, ventanilla_id: int) -> List[dict]:
        response = await self.api.get(f"/ventanillas/{ventanilla_id}/historial")
        return list(response.data or [])

    async def get_apertura_activa(self, ventanilla_id: int) -> Optional[dict]:
        response = await self.api.get(f"/ventanillas/{ventanilla_id}/apertura-activa")
        return response.data

    async def verificar_tipos_cambio(self, ventanilla_id: int) -> Optional[dict]:
        response = await self.api.get(f"/ventanillas/{ventanilla_id}/verificar-tipos-cambio")
        return response.data

    async def verificar_permisos_operacion(self, ventanilla_id: int) -> Optional[dict]:
        response = await self.api.get(f"/ventanillas/{ventanilla_id}/verificar-permisos")
        return response.data

    async def create(self, data: VentanillaCreate) -> VentanillaOut:
        response = await self.api.post("/ventanillas", data.model_dump(mode="json"))
        return VentanillaOut.model_validate(response.data)

    async def update(self, ventanilla_id: int, data: VentanillaUpdate) -> VentanillaOut:
        response = await self.api.put(
            f"/ventanillas/{ventanilla_id}", data.model_dump(mode="json", exclude_none=True)
        )
        return VentanillaOut.model_validate(response.data)

    async def toggle_active(self, ventanilla_id: int) -> VentanillaOut:
        response = await self.api.patch(f"/ventanillas/{ventanilla_id}/toggle-active")
        return VentanillaOut.model_validate(response.data)

    async def delete(self, ventanilla_id: int) -> None:
        await self.api.delete(f"/ventanillas/{ventanilla_id}")

    # ===== CICLO DE VIDA =====

    async def aperturar(self, ventanilla_id: int, data: AperturarVentanillaRequest) -> None:
        await self.api.post(
            f"/ventanillas/{ventanilla_id}/aperturar", data.model_dump(mode="json", exclude_none=True)
        )

    async def pausar(self, ventanilla_id: int) -> None:
        await self.api.patch(f"/ventanillas/{ventanilla_id}/pausar")

    async def reanudar(self, ventanilla_id: int) -> None:
        await self.api.patch(f"/ventanillas/{ventanilla_id}/reanudar")

    async def get_resumen_cierre(self, ventanilla_id: int) -> ResumenCierre:
        response = await self.api.get(f"/ventanillas/{ventanilla_id}/resumen-cierre")
        return ResumenCierre.model_validate(response.data)

    async def procesar_cierre(self, ventanilla_id: int, data: CierreVentanillaRequest) -> None:
        await self.api.post(
            f"/ventanillas/{ventanilla_id}/procesar-cierre", data.model_dump(mode="json", exclude_none=True)
        )
