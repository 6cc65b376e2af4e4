"""
Router para el módulo de Tipos de Cambio

- Listado por casa de cambio (todos o solo activos)
- Creación, edición y reactivación con guardia de par duplicado y cambio drástico
- Tipo vigente por par
- Verificación en vivo para el formulario
- Historial filtrado, historial por par, estadísticas de spread y exportación CSV
"""

from fastapi import APIRouter, Depends, Query, status
from datetime import date
from decimal import Decimal
from typing import Annotated, List, Optional

from app.common.csv_export import create_csv_response
from app.core.config import settings
from app.dependencies.apiDependencies import get_tipo_cambio_service, get_tipo_cambio_guard
from app.modules.tipos_cambio.guard import TipoCambioGuard
from app.modules.tipos_cambio.history import (
    HISTORIAL_CSV_HEADERS, filtrar_historial, calcular_estadisticas,
    prepare_historial_csv, nombre_archivo_historial
)
from app.modules.tipos_cambio.schemas import (
    TipoCambioOut, TipoCambioActivo, TipoCambioIn, TipoCambioUpdateIn, TipoCambioCreate,
    TipoCambioUpdate, TipoCambioVigenteRequest, VerificacionTipoCambio, HistorialFiltros, HistorialOut,
    EstadisticasHistorial
)
from app.modules.tipos_cambio.service import TipoCambioService

router = APIRouter(
    prefix="/tipos-cambio",
    tags=["Tipos de Cambio"],
    responses={404: {"description": "Not found"}}
)


def _casa(casa_de_cambio_id: Optional[int]) -> int:
    return casa_de_cambio_id or settings.DEFAULT_CASA_DE_CAMBIO_ID


@router.get("/", response_model=List[TipoCambioOut])
async def get_tipos_cambio(
    casa_de_cambio_id: Optional[int] = Query(None, description="Por defecto, la casa configurada"),
    service: TipoCambioService = Depends(get_tipo_cambio_service)
):
    """Todos los tipos de cambio de la casa, activos e inactivos"""
    return await service.get_by_casa_de_cambio(_casa(casa_de_cambio_id))


@router.get("/activos", response_model=List[TipoCambioActivo])
async def get_tipos_cambio_activos(
    casa_de_cambio_id: Optional[int] = Query(None),
    service: TipoCambioService = Depends(get_tipo_cambio_service)
):
    return await service.get_activos_por_casa(_casa(casa_de_cambio_id))


@router.get("/vigente", response_model=TipoCambioOut)
async def get_tipo_cambio_vigente(
    moneda_origen_id: int = Query(..., gt=0),
    moneda_destino_id: int = Query(..., gt=0),
    casa_de_cambio_id: Optional[int] = Query(None),
    fecha: Optional[date] = Query(None, description="Por defecto, hoy"),
    service: TipoCambioService = Depends(get_tipo_cambio_service)
):
    """Tipo de cambio vigente para el par según el backend"""
    return await service.get_vigente(TipoCambioVigenteRequest(
        moneda_origen_id=moneda_origen_id, moneda_destino_id=moneda_destino_id,
        casa_de_cambio_id=_casa(casa_de_cambio_id), fecha=fecha,
    ))


@router.get("/verificar", response_model=VerificacionTipoCambio)
async def verificar_tipo_cambio(
    moneda_origen_id: int = Query(..., gt=0),
    moneda_destino_id: int = Query(..., gt=0),
    casa_de_cambio_id: Optional[int] = Query(None),
    tipo_compra: Optional[Decimal] = Query(None),
    tipo_venta: Optional[Decimal] = Query(None),
    tipo_cambio_id: Optional[int] = Query(None, description="Registro en edición"),
    guard: TipoCambioGuard = Depends(get_tipo_cambio_guard)
):
    """
    Chequeo en vivo del formulario

    Informa si el par ya tiene un tipo activo, la variación contra el tipo
    anterior y los errores de tasas. No escribe nada.
    """
    return await guard.verificar(
        _casa(casa_de_cambio_id), moneda_origen_id, moneda_destino_id,
        tipo_compra, tipo_venta, tipo_cambio_id
    )


@router.post("/", response_model=TipoCambioOut, status_code=status.HTTP_201_CREATED)
async def create_tipo_cambio(
    data: TipoCambioIn,
    guard: TipoCambioGuard = Depends(get_tipo_cambio_guard)
):
    """
    Crear un tipo de cambio

    - Rechaza el par si ya tiene un tipo activo (en cualquier sentido)
    - Si compra o venta varían más del umbral contra el tipo anterior,
      responde 409 con `requiere_confirmacion`; reenviar con `confirmar=true`
    """
    return await guard.crear(TipoCambioCreate(**data.model_dump(exclude={"confirmar"})), data.confirmar)


@router.put("/{tipo_cambio_id}", response_model=TipoCambioOut)
async def update_tipo_cambio(
    tipo_cambio_id: int,
    data: TipoCambioUpdateIn,
    guard: TipoCambioGuard = Depends(get_tipo_cambio_guard)
):
    """Editar un tipo de cambio (misma confirmación en dos fases que la creación)"""
    return await guard.actualizar(
        tipo_cambio_id, TipoCambioUpdate(**data.model_dump(exclude={"confirmar"})), data.confirmar
    )


@router.delete("/{tipo_cambio_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tipo_cambio(
    tipo_cambio_id: int,
    service: TipoCambioService = Depends(get_tipo_cambio_service)
):
    await service.delete(tipo_cambio_id)


@router.patch("/{tipo_cambio_id}/activar", response_model=TipoCambioOut)
async def activar_tipo_cambio(
    tipo_cambio_id: int,
    guard: TipoCambioGuard = Depends(get_tipo_cambio_guard)
):
    """Reactivar un tipo de cambio; se rechaza si el par ya tiene otro activo"""
    return await guard.activar(tipo_cambio_id)


@router.patch("/{tipo_cambio_id}/desactivar", response_model=TipoCambioOut)
async def desactivar_tipo_cambio(
    tipo_cambio_id: int,
    guard: TipoCambioGuard = Depends(get_tipo_cambio_guard)
):
    return await guard.desactivar(tipo_cambio_id)


# ===== HISTORIAL =====

@router.get("/historial", response_model=HistorialOut)
async def get_historial(
    filtros: Annotated[HistorialFiltros, Query()],
    casa_de_cambio_id: Optional[int] = Query(None),
    service: TipoCambioService = Depends(get_tipo_cambio_service)
):
    """Historial de la casa con filtros avanzados y orden"""
    tipos = await service.get_by_casa_de_cambio(_casa(casa_de_cambio_id))
    filtrados = filtrar_historial(tipos, filtros)
    return HistorialOut(
        total_registros=len(tipos),
        registros_filtrados=len(filtrados),
        filtros_activos=filtros.activos(),
        tipos_cambio=filtrados,
    )


@router.get("/historial/export")
async def export_historial(
    filtros: Annotated[HistorialFiltros, Query()],
    casa_de_cambio_id: Optional[int] = Query(None),
    service: TipoCambioService = Depends(get_tipo_cambio_service)
):
    """Descarga CSV del historial filtrado"""
    tipos = await service.get_by_casa_de_cambio(_casa(casa_de_cambio_id))
    filas = prepare_historial_csv(filtrar_historial(tipos, filtros))
    return create_csv_response(filas, nombre_archivo_historial(), HISTORIAL_CSV_HEADERS)


@router.get("/historial/{moneda_origen_id}/{moneda_destino_id}", response_model=List[TipoCambioOut])
async def get_historial_par(
    moneda_origen_id: int,
    moneda_destino_id: int,
    casa_de_cambio_id: Optional[int] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: Optional[int] = Query(None, ge=0),
    service: TipoCambioService = Depends(get_tipo_cambio_service)
):
    """Historial de un par tal como lo pagina el backend"""
    return await service.get_historial(
        moneda_origen_id, moneda_destino_id, _casa(casa_de_cambio_id), limit, offset
    )


@router.get("/estadisticas", response_model=EstadisticasHistorial)
async def get_estadisticas(
    filtros: Annotated[HistorialFiltros, Query()],
    casa_de_cambio_id: Optional[int] = Query(None),
    service: TipoCambioService = Depends(get_tipo_cambio_service)
):
    """Conteos y spread promedio/máximo/mínimo del historial filtrado"""
    tipos = await service.get_by_casa_de_cambio(_casa(casa_de_cambio_id))
    return calcular_estadisticas(filtrar_historial(tipos, filtros))
