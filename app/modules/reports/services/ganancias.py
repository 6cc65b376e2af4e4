"""
Servicio de reportes de ganancias

Los endpoints /reportes no usan el sobre estándar: se leen con
``ApiClient.get_json``.
"""

import logging
from typing import Any, Optional

from app.core.api_client import ApiClient
from ..schemas import ReporteFiltros, ReporteGanancias, ResumenTransacciones

logger = logging.getLogger(__name__)


class ReporteService:
    """Consultas de reportes sobre la API remota"""

    def __init__(self, api: ApiClient):
        self.api = api

    async def get_ganancias(self, filtros: ReporteFiltros) -> ReporteGanancias:
        data = await self.api.get_json(f"/reportes/ganancias/{filtros.tipo.ruta}", params=filtros.to_params())
        reporte = ReporteGanancias.model_validate(data)
        logger.debug(
            f"Reporte {filtros.tipo.value} casa {filtros.casa_de_cambio_id}: "
            f"{reporte.total_transacciones} transacciones"
        )
        return reporte

    async def get_resumen_transacciones(self, filtros: ReporteFiltros, ventanilla_id: Optional[int] = None,
                                        moneda_id: Optional[int] = None) -> ResumenTransacciones:
        params = {**filtros.to_params(), "ventanilla_id": ventanilla_id, "moneda_id": moneda_id}
        data = await self.api.get_json("/reportes/transacciones/resumen", params=params)
        return ResumenTransacciones.model_validate(data)

    async def get_dashboard(self, casa_de_cambio_id: int) -> Any:
        return await self.api.get_json("/reportes/dashboard", params={"casa_de_cambio_id": casa_de_cambio_id})
