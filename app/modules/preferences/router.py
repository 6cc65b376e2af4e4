"""
Router de preferencias: presets de filtros del historial de tipos de cambio
"""

from fastapi import APIRouter

from app.dependencies.preferencesDependencies import preferences_dependency
from app.modules.preferences.schemas import FiltroGuardado, FiltrosGuardadosOut

router = APIRouter(prefix="/preferencias", tags=["Preferencias"])


@router.get("/filtros", response_model=FiltrosGuardadosOut)
async def list_filtros(preferences: preferences_dependency):
    return FiltrosGuardadosOut(filtros=preferences.list_filtros())


@router.post("/filtros", response_model=FiltrosGuardadosOut)
async def save_filtro(data: FiltroGuardado, preferences: preferences_dependency):
    """Agrega un preset al final de la lista"""
    return FiltrosGuardadosOut(filtros=preferences.save_filtro(data.name, data.filtros))


@router.delete("/filtros/{index}", response_model=FiltrosGuardadosOut)
async def delete_filtro(index: int, preferences: preferences_dependency):
    """Elimina el preset en la posición indicada (base 0)"""
    return FiltrosGuardadosOut(filtros=preferences.delete_filtro(index))
