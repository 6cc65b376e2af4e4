"""
Router para el módulo de Monedas

Solo lectura: el catálogo de monedas se administra en la API remota.
"""

from fastapi import APIRouter, Depends, Query
from typing import List

from app.dependencies.apiDependencies import get_moneda_service
from app.modules.monedas.schemas import MonedaOut
from app.modules.monedas.service import MonedaService

router = APIRouter(
    prefix="/monedas",
    tags=["Monedas"],
    responses={404: {"description": "Not found"}}
)


@router.get("/", response_model=List[MonedaOut])
async def get_monedas(
    include_inactive: bool = Query(False, description="Incluir monedas inactivas"),
    service: MonedaService = Depends(get_moneda_service)
):
    return await service.get_all(include_inactive)


@router.get("/activas", response_model=List[MonedaOut])
async def get_monedas_activas(service: MonedaService = Depends(get_moneda_service)):
    """Monedas disponibles para aperturar y operar"""
    return await service.get_activas()


@router.get("/{moneda_id}", response_model=MonedaOut)
async def get_moneda(
    moneda_id: int,
    service: MonedaService = Depends(get_moneda_service)
):
    return await service.get_by_id(moneda_id)
