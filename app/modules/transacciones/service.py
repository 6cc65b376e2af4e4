"""
Servicio remoto de Transacciones
"""
from datetime import date
from typing import Any, List, Optional

from app.core.api_client import ApiClient
from app.modules.transacciones.schemas import (
    TransaccionOut, FiltrosTransaccion, ProcesarCambioRequest, CancelarTransaccionRequest
)


def _as_list(data: Any) -> List[TransaccionOut]:
    return [TransaccionOut.model_validate(item) for item in data or []]


class TransaccionService:
    """Servicio para los endpoints /transacciones"""

    def __init__(self, api: ApiClient):
        self.api = api

    async def get_all(self, filtros: Optional[FiltrosTransaccion] = None) -> List[TransaccionOut]:
        params = filtros.to_params() if filtros else None
        response = await self.api.get("/transacciones", params=params)
        return _as_list(response.data)

    async def get_by_id(self, transaccion_id: int) -> TransaccionOut:
        response = await self.api.get(f"/transacciones/{transaccion_id}")
        return TransaccionOut.model_validate(response.data)

    async def get_by_ventanilla(self, ventanilla_id: int) -> List[TransaccionOut]:
        response = await self.api.get(f"/transacciones/ventanilla/{ventanilla_id}")
        return _as_list(response.data)

    async def get_by_numero(self, numero_transaccion: str) -> TransaccionOut:
        response = await self.api.get(f"/transacciones/numero/{numero_transaccion}")
        return TransaccionOut.model_validate(response.data)

    async def procesar_cambio(self, request: ProcesarCambioRequest) -> TransaccionOut:
        response = await self.api.post("/transacciones/procesar-cambio", request.to_payload())
        return TransaccionOut.model_validate(response.data)

    async def cancelar(self, transaccion_id: int, motivo: Optional[str] = None) -> None:
        await self.api.patch(
            f"/transacciones/{transaccion_id}/cancelar",
            CancelarTransaccionRequest(motivo=motivo).model_dump()
        )

    async def get_reporte(self, fecha_inicio: Optional[date] = None, fecha_fin: Optional[date] = None,
                          ventanilla_id: Optional[int] = None,
                          casa_de_cambio_id: Optional[int] = None) -> Any:
        response = await self.api.get("/transacciones/reporte", params={
            "fechaInicio": fecha_inicio.isoformat() if fecha_inicio else None,
            "fechaFin": fecha_fin.isoformat() if fecha_fin else None,
            "ventanillaId": ventanilla_id,
            "casaDeCambioId": casa_de_cambio_id,
        })
        return response.data
