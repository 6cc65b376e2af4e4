"""
Router de reportes de ganancias

Proxy de los reportes de ganancias de la API remota con exportación CSV.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.common.csv_export import create_csv_response
from app.core.config import settings
from app.core.exceptions import ValidacionError
from app.dependencies.apiDependencies import get_reporte_service
from ..services import ReporteService
from ..schemas import TipoReporte, ReporteFiltros, ResumenTransacciones
from ..utils import CSV_HEADERS, prepare_ganancias_csv, prepare_ventanillas_csv, nombre_archivo_reporte


router = APIRouter(prefix="/reportes", tags=["Reportes"])


def _filtros(tipo: TipoReporte, casa_de_cambio_id: Optional[int],
             fecha_inicio: date, fecha_fin: date) -> ReporteFiltros:
    if fecha_fin < fecha_inicio:
        raise ValidacionError("La fecha fin debe ser mayor o igual a la fecha inicio")
    return ReporteFiltros(
        tipo=tipo,
        casa_de_cambio_id=casa_de_cambio_id or settings.DEFAULT_CASA_DE_CAMBIO_ID,
        fecha_inicio=fecha_inicio,
        fecha_fin=fecha_fin,
    )


@router.get("/ganancias", response_model=None)
async def get_reporte_ganancias(
    fecha_inicio: date = Query(..., description="Inicio del periodo"),
    fecha_fin: date = Query(..., description="Fin del periodo"),
    tipo: TipoReporte = Query(TipoReporte.DIARIO, description="Agrupación del reporte"),
    casa_de_cambio_id: Optional[int] = Query(None),
    export: Optional[str] = Query(None, pattern="^(csv|csv_ventanillas)$", description="Export format"),
    service: ReporteService = Depends(get_reporte_service)
):
    """
    Reporte de ganancias por periodo

    Con `export=csv` descarga la serie diaria; con `export=csv_ventanillas`,
    el detalle por ventanilla.
    """
    filtros = _filtros(tipo, casa_de_cambio_id, fecha_inicio, fecha_fin)
    reporte = await service.get_ganancias(filtros)

    if export == "csv":
        return create_csv_response(
            prepare_ganancias_csv(reporte),
            nombre_archivo_reporte("ganancias", fecha_inicio, fecha_fin),
            CSV_HEADERS["ganancias_diarias"]
        )
    if export == "csv_ventanillas":
        return create_csv_response(
            prepare_ventanillas_csv(reporte),
            nombre_archivo_reporte("ganancias_ventanillas", fecha_inicio, fecha_fin),
            CSV_HEADERS["ganancias_ventanillas"]
        )
    return reporte


@router.get("/transacciones/resumen", response_model=ResumenTransacciones)
async def get_resumen_transacciones(
    fecha_inicio: date = Query(...),
    fecha_fin: date = Query(...),
    casa_de_cambio_id: Optional[int] = Query(None),
    ventanilla_id: Optional[int] = Query(None),
    moneda_id: Optional[int] = Query(None),
    service: ReporteService = Depends(get_reporte_service)
):
    filtros = _filtros(TipoReporte.DIARIO, casa_de_cambio_id, fecha_inicio, fecha_fin)
    return await service.get_resumen_transacciones(filtros, ventanilla_id, moneda_id)


@router.get("/dashboard")
async def get_dashboard(
    casa_de_cambio_id: Optional[int] = Query(None),
    service: ReporteService = Depends(get_reporte_service)
):
    """Datos del dashboard tal como los entrega la API"""
    return await service.get_dashboard(casa_de_cambio_id or settings.DEFAULT_CASA_DE_CAMBIO_ID)
