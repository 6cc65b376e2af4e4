"""
Router para el módulo de Transacciones

- Cálculo en vivo del formulario de cambio (sin registrar)
- Registro de la transacción con su comprobante
- Consulta de transacciones con filtros, por ventanilla o por número
- Reporte de transacciones del backend
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from datetime import date

from app.core.exceptions import ValidacionError
from app.dependencies.apiDependencies import get_transaccion_service, get_transaccion_workflow
from app.modules.transacciones.schemas import (
    TransaccionOut, FiltrosTransaccion, EstadoTransaccion, CalculoIn, CalculoOut,
    RegistrarTransaccionIn, CancelarTransaccionRequest
)
from app.modules.transacciones.service import TransaccionService
from app.modules.transacciones.workflow import TransaccionWorkflow

router = APIRouter(
    prefix="/transacciones",
    tags=["Transacciones"],
    responses={404: {"description": "Not found"}}
)


@router.post("/calcular", response_model=CalculoOut)
async def calcular_transaccion(
    entrada: CalculoIn,
    workflow: TransaccionWorkflow = Depends(get_transaccion_workflow)
):
    """
    Calcula montos para el formulario de cambio

    - **modo_calculo_inverso**: si es true, manda `monto_destino`
    - **tipo_cambio_preferencial**: tasa de sesión, no se guarda en el tipo de cambio
    """
    return await workflow.calcular(entrada)


@router.post("/registrar", response_model=TransaccionOut, status_code=status.HTTP_201_CREATED)
async def registrar_transaccion(
    entrada: RegistrarTransaccionIn,
    workflow: TransaccionWorkflow = Depends(get_transaccion_workflow)
):
    """
    Registra la transacción en la ventanilla indicada

    - **comprobante**: SIN_COMPROBANTE, CLIENTE_EXISTENTE (requiere `cliente_id`)
      o CLIENTE_TEMPORAL (requiere `cliente_temp`)
    """
    return await workflow.registrar(entrada)


@router.get("/", response_model=List[TransaccionOut])
async def get_transacciones(
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: Optional[int] = Query(None, ge=0),
    ordenar: Optional[str] = Query(None, pattern="^(fecha|monto)_(asc|desc)$"),
    ventanilla_id: Optional[int] = Query(None),
    estado: Optional[EstadoTransaccion] = Query(None),
    fecha_inicio: Optional[date] = Query(None),
    fecha_fin: Optional[date] = Query(None),
    service: TransaccionService = Depends(get_transaccion_service)
):
    """Listar transacciones con filtros opcionales"""
    filtros = FiltrosTransaccion(
        limit=limit, offset=offset, ordenar=ordenar, ventanilla_id=ventanilla_id,
        estado=estado, fecha_inicio=fecha_inicio, fecha_fin=fecha_fin
    )
    return await service.get_all(filtros)


@router.get("/ventanilla/{ventanilla_id}", response_model=List[TransaccionOut])
async def get_transacciones_ventanilla(
    ventanilla_id: int,
    service: TransaccionService = Depends(get_transaccion_service)
):
    return await service.get_by_ventanilla(ventanilla_id)


@router.get("/numero/{numero_transaccion}", response_model=TransaccionOut)
async def get_transaccion_por_numero(
    numero_transaccion: str,
    service: TransaccionService = Depends(get_transaccion_service)
):
    """Buscar por número de comprobante (p. ej. TX-0001)"""
    return await service.get_by_numero(numero_transaccion)


@router.get("/reporte")
async def get_reporte_transacciones(
    fecha_inicio: Optional[date] = Query(None),
    fecha_fin: Optional[date] = Query(None),
    ventanilla_id: Optional[int] = Query(None),
    casa_de_cambio_id: Optional[int] = Query(None),
    service: TransaccionService = Depends(get_transaccion_service)
):
    """Reporte de transacciones del backend, sin transformar"""
    if fecha_inicio and fecha_fin and fecha_fin < fecha_inicio:
        raise ValidacionError("La fecha fin no puede ser anterior a la fecha inicio")
    return await service.get_reporte(fecha_inicio, fecha_fin, ventanilla_id, casa_de_cambio_id)


@router.get("/{transaccion_id}", response_model=TransaccionOut)
async def get_transaccion(
    transaccion_id: int,
    service: TransaccionService = Depends(get_transaccion_service)
):
    return await service.get_by_id(transaccion_id)


@router.patch("/{transaccion_id}/cancelar", status_code=status.HTTP_204_NO_CONTENT)
async def cancelar_transaccion(
    transaccion_id: int,
    data: CancelarTransaccionRequest,
    service: TransaccionService = Depends(get_transaccion_service)
):
    """Cancelar una transacción con motivo opcional"""
    await service.cancelar(transaccion_id, data.motivo)
