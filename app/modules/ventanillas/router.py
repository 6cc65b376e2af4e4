"""
Router para el módulo de Ventanillas

Endpoints del ciclo de vida de una ventanilla:
- Consulta con acciones permitidas según su estado
- Alta, edición, activación y baja
- Historial de aperturas y cierres
- Apertura con montos iniciales por moneda
- Pausa / reanudación
- Arqueo y cierre con confirmación física por moneda

El cierre no guarda estado entre solicitudes: cada envío se valida contra
el resumen vigente del backend.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Any, Dict, List, Optional

from app.dependencies.apiDependencies import (
    get_ventanilla_service, get_apertura_workflow, get_pausa_workflow, get_cierre_workflow,
    get_administracion_workflow
)
from app.dependencies.userDependencies import auth_dependency
from app.modules.ventanillas.models import EstadoVentanilla, VentanillaStateMachine
from app.modules.ventanillas.schemas import (
    VentanillaOut, VentanillaDetail, VentanillaCreate, VentanillaUpdate, AperturaIn, PlanApertura,
    CierreIn, ResumenCierreOut
)
from app.modules.ventanillas.service import VentanillaService
from app.modules.ventanillas.workflows import (
    AperturaWorkflow, PausaWorkflow, CierreWorkflow, AdministracionWorkflow, CierreReconciliacion
)

router = APIRouter(
    prefix="/ventanillas",
    tags=["Ventanillas"],
    responses={404: {"description": "Not found"}}
)


def _detail(ventanilla: VentanillaOut) -> VentanillaDetail:
    maquina = VentanillaStateMachine(ventanilla.estado, ventanilla.activa)
    return VentanillaDetail(**ventanilla.model_dump(), acciones_permitidas=maquina.allowed_actions())


@router.get("/", response_model=List[VentanillaDetail])
async def get_ventanillas(
    casa_de_cambio_id: Optional[int] = Query(None, description="Filtrar por casa de cambio"),
    estado: Optional[EstadoVentanilla] = Query(None, description="Requiere casa_de_cambio_id"),
    service: VentanillaService = Depends(get_ventanilla_service)
):
    """Listar ventanillas con sus acciones disponibles"""
    if casa_de_cambio_id and estado:
        ventanillas = await service.get_by_estado(casa_de_cambio_id, estado)
    elif casa_de_cambio_id:
        ventanillas = await service.get_by_casa_de_cambio(casa_de_cambio_id)
    else:
        ventanillas = await service.get_all()
    return [_detail(v) for v in ventanillas]


@router.get("/{ventanilla_id}", response_model=VentanillaDetail)
async def get_ventanilla(
    ventanilla_id: int,
    service: VentanillaService = Depends(get_ventanilla_service)
):
    return _detail(await service.get_by_id(ventanilla_id))


# ===== ADMINISTRACIÓN =====

@router.post("/", response_model=VentanillaDetail, status_code=status.HTTP_201_CREATED)
async def create_ventanilla(
    data: VentanillaCreate,
    workflow: AdministracionWorkflow = Depends(get_administracion_workflow)
):
    """
    Crear una ventanilla

    - **identificador**: código visible (p. ej. V-01)
    - **activa**: por defecto true
    """
    return _detail(await workflow.crear(data))


@router.put("/{ventanilla_id}", response_model=VentanillaDetail)
async def update_ventanilla(
    ventanilla_id: int,
    data: VentanillaUpdate,
    workflow: AdministracionWorkflow = Depends(get_administracion_workflow)
):
    return _detail(await workflow.actualizar(ventanilla_id, data))


@router.patch("/{ventanilla_id}/toggle-active", response_model=VentanillaDetail)
async def toggle_ventanilla(
    ventanilla_id: int,
    workflow: AdministracionWorkflow = Depends(get_administracion_workflow)
):
    """Activar o desactivar; una ventanilla inactiva no puede aperturarse"""
    return _detail(await workflow.alternar_activa(ventanilla_id))


@router.delete("/{ventanilla_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ventanilla(
    ventanilla_id: int,
    workflow: AdministracionWorkflow = Depends(get_administracion_workflow)
):
    await workflow.eliminar(ventanilla_id)


# ===== CONSULTAS =====

@router.get("/{ventanilla_id}/historial", response_model=List[Dict[str, Any]])
async def get_historial_ventanilla(
    ventanilla_id: int,
    service: VentanillaService = Depends(get_ventanilla_service)
):
    """Aperturas y cierres de la ventanilla, como los devuelve el backend"""
    return await service.get_historial(ventanilla_id)


@router.get("/{ventanilla_id}/apertura-activa", response_model=Optional[Dict[str, Any]])
async def get_apertura_activa(
    ventanilla_id: int,
    service: VentanillaService = Depends(get_ventanilla_service)
):
    return await service.get_apertura_activa(ventanilla_id)


@router.get("/{ventanilla_id}/verificar-tipos-cambio", response_model=Optional[Dict[str, Any]])
async def verificar_tipos_cambio(
    ventanilla_id: int,
    service: VentanillaService = Depends(get_ventanilla_service)
):
    return await service.verificar_tipos_cambio(ventanilla_id)


@router.get("/{ventanilla_id}/verificar-permisos", response_model=Optional[Dict[str, Any]])
async def verificar_permisos(
    ventanilla_id: int,
    service: VentanillaService = Depends(get_ventanilla_service)
):
    return await service.verificar_permisos_operacion(ventanilla_id)


# ===== APERTURA =====

@router.get("/{ventanilla_id}/plan-apertura", response_model=PlanApertura)
async def get_plan_apertura(
    ventanilla_id: int,
    workflow: AperturaWorkflow = Depends(get_apertura_workflow)
):
    """Una fila por moneda activa para capturar los montos iniciales"""
    return await workflow.plan_apertura(ventanilla_id)


@router.post("/{ventanilla_id}/aperturar", response_model=VentanillaDetail)
async def aperturar_ventanilla(
    ventanilla_id: int,
    data: AperturaIn,
    auth: auth_dependency,
    workflow: AperturaWorkflow = Depends(get_apertura_workflow)
):
    """
    Aperturar una ventanilla CERRADA y activa

    - **montos_apertura**: al menos un monto mayor a 0; los montos en 0 no se envían
    - **usuario_id**: por defecto, el del token del operador
    """
    ventanilla = await workflow.aperturar(
        ventanilla_id,
        data.usuario_id or auth.usuario_id,
        data.montos_apertura,
        data.observaciones_apertura,
    )
    return _detail(ventanilla)


# ===== PAUSA =====

@router.patch("/{ventanilla_id}/pausar", response_model=VentanillaDetail)
async def pausar_ventanilla(
    ventanilla_id: int,
    workflow: PausaWorkflow = Depends(get_pausa_workflow)
):
    return _detail(await workflow.pausar(ventanilla_id))


@router.patch("/{ventanilla_id}/reanudar", response_model=VentanillaDetail)
async def reanudar_ventanilla(
    ventanilla_id: int,
    workflow: PausaWorkflow = Depends(get_pausa_workflow)
):
    return _detail(await workflow.reanudar(ventanilla_id))


# ===== CIERRE =====

@router.get("/{ventanilla_id}/resumen-cierre", response_model=ResumenCierreOut)
async def get_resumen_cierre(
    ventanilla_id: int,
    workflow: CierreWorkflow = Depends(get_cierre_workflow)
):
    """
    Arqueo inicial: el monto físico arranca igual al esperado y ninguna
    moneda está confirmada.
    """
    reconciliacion = await workflow.iniciar_cierre(ventanilla_id)
    return reconciliacion.to_out()


def _aplicar_arqueo(reconciliacion: CierreReconciliacion, data: CierreIn) -> None:
    for fila in data.montos_cierre:
        # El monto primero: editarlo invalida la confirmación
        reconciliacion.set_monto_fisico(fila.moneda_id, fila.monto_fisico_real)
        reconciliacion.confirmar(fila.moneda_id, fila.confirmado_fisicamente)
        reconciliacion.set_observaciones_desfase(fila.moneda_id, fila.observaciones_desfase)
    reconciliacion.observaciones_cierre = data.observaciones_cierre


@router.post("/{ventanilla_id}/verificar-cierre", response_model=ResumenCierreOut)
async def verificar_cierre(
    ventanilla_id: int,
    data: CierreIn,
    workflow: CierreWorkflow = Depends(get_cierre_workflow)
):
    """Desfases, colores y errores del arqueo sin cerrar la ventanilla"""
    reconciliacion = await workflow.iniciar_cierre(ventanilla_id)
    _aplicar_arqueo(reconciliacion, data)
    return reconciliacion.to_out()


@router.post("/{ventanilla_id}/procesar-cierre", response_model=VentanillaDetail)
async def procesar_cierre(
    ventanilla_id: int,
    data: CierreIn,
    workflow: CierreWorkflow = Depends(get_cierre_workflow)
):
    """
    Cerrar la ventanilla

    Se rechaza sin contactar al backend si alguna moneda no está confirmada
    o si hay desfase sin observaciones.
    """
    reconciliacion = await workflow.iniciar_cierre(ventanilla_id)
    _aplicar_arqueo(reconciliacion, data)
    return _detail(await workflow.procesar_cierre(reconciliacion))
