"""
Dependencias de acceso a la API remota y a los flujos de trabajo.
"""
from typing import Annotated, AsyncIterator
from fastapi import Depends, Request

from app.common.inflight import InFlightGuard
from app.core.api_client import ApiClient
from app.modules.auth.dependencies import get_auth_context
from app.modules.auth.schemas import AuthContext
from app.modules.clientes.service import ClienteService
from app.modules.monedas.service import MonedaService
from app.modules.reports.services import ReporteService
from app.modules.tipos_cambio.guard import TipoCambioGuard
from app.modules.tipos_cambio.service import TipoCambioService
from app.modules.transacciones.service import TransaccionService
from app.modules.transacciones.workflow import TransaccionWorkflow
from app.modules.ventanillas.service import VentanillaService
from app.modules.ventanillas.workflows import (
    AperturaWorkflow, PausaWorkflow, CierreWorkflow, AdministracionWorkflow
)


async def get_api_client(auth: AuthContext = Depends(get_auth_context)) -> AsyncIterator[ApiClient]:
    """Un cliente por solicitud, con el token del operador."""
    client = ApiClient(token_provider=lambda: auth.token)
    try:
        yield client
    finally:
        await client.aclose()


def get_inflight_guard(request: Request) -> InFlightGuard:
    """Guardia compartida por todas las solicitudes del proceso"""
    return request.app.state.inflight_guard


api_dependency = Annotated[ApiClient, Depends(get_api_client)]
guard_dependency = Annotated[InFlightGuard, Depends(get_inflight_guard)]


# ===== SERVICIOS =====

def get_ventanilla_service(api: api_dependency) -> VentanillaService:
    return VentanillaService(api)


def get_moneda_service(api: api_dependency) -> MonedaService:
    return MonedaService(api)


def get_tipo_cambio_service(api: api_dependency) -> TipoCambioService:
    return TipoCambioService(api)


def get_transaccion_service(api: api_dependency) -> TransaccionService:
    return TransaccionService(api)


def get_cliente_service(api: api_dependency) -> ClienteService:
    return ClienteService(api)


def get_reporte_service(api: api_dependency) -> ReporteService:
    return ReporteService(api)


# ===== FLUJOS =====

def get_apertura_workflow(
    guard: guard_dependency,
    service: VentanillaService = Depends(get_ventanilla_service),
    monedas: MonedaService = Depends(get_moneda_service)
) -> AperturaWorkflow:
    return AperturaWorkflow(service, guard, monedas)


def get_pausa_workflow(
    guard: guard_dependency,
    service: VentanillaService = Depends(get_ventanilla_service)
) -> PausaWorkflow:
    return PausaWorkflow(service, guard)


def get_cierre_workflow(
    guard: guard_dependency,
    service: VentanillaService = Depends(get_ventanilla_service)
) -> CierreWorkflow:
    return CierreWorkflow(service, guard)


def get_administracion_workflow(
    guard: guard_dependency,
    service: VentanillaService = Depends(get_ventanilla_service)
) -> AdministracionWorkflow:
    return AdministracionWorkflow(service, guard)


def get_tipo_cambio_guard(
    guard: guard_dependency,
    service: TipoCambioService = Depends(get_tipo_cambio_service)
) -> TipoCambioGuard:
    return TipoCambioGuard(service, guard)


def get_transaccion_workflow(
    guard: guard_dependency,
    service: TransaccionService = Depends(get_transaccion_service),
    tipos_cambio: TipoCambioService = Depends(get_tipo_cambio_service)
) -> TransaccionWorkflow:
    return TransaccionWorkflow(service, tipos_cambio, guard)
