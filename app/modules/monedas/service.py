"""
Servicio remoto de monedas
"""
from typing import List

from app.core.api_client import ApiClient
from app.modules.monedas.schemas import MonedaOut


class MonedaService:
    """Consultas de monedas contra la API remota"""

    def __init__(self, api: ApiClient):
        self.api = api

    async def get_all(self, include_inactive: bool = False) -> List[MonedaOut]:
        params = {"includeInactive": "true"} if include_inactive else None
        response = await self.api.get("/monedas", params=params)
        return [MonedaOut.model_validate(item) for item in response.data or []]

    async def get_activas(self) -> List[MonedaOut]:
        response = await self.api.get("/monedas/active")
        return [MonedaOut.model_validate(item) for item in response.data or []]

    async def get_by_id(self, moneda_id: int) -> MonedaOut:
        response = await self.api.get(f"/monedas/{moneda_id}")
        return MonedaOut.model_validate(response.data)
