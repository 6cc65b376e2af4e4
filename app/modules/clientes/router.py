"""
Router para el módulo de Clientes

El cuerpo de creación es una unión etiquetada por ``tipo``
(REGISTRADO, EMPRESARIAL, OCASIONAL).
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from app.dependencies.apiDependencies import get_cliente_service
from app.modules.clientes.schemas import ClienteCreate, ClienteOut, BuscarClienteRequest, TipoCliente
from app.modules.clientes.service import ClienteService

router = APIRouter(
    prefix="/clientes",
    tags=["Clientes"],
    responses={404: {"description": "Not found"}}
)


@router.get("/", response_model=List[ClienteOut])
async def search_clientes(
    nombres: Optional[str] = Query(None),
    apellido_paterno: Optional[str] = Query(None),
    numero_documento: Optional[str] = Query(None),
    ruc: Optional[str] = Query(None),
    razon_social: Optional[str] = Query(None),
    tipo_cliente: Optional[TipoCliente] = Query(None),
    es_activo: Optional[bool] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: Optional[int] = Query(None, ge=0),
    service: ClienteService = Depends(get_cliente_service)
):
    """
    Buscar clientes

    Sin filtros devuelve todos; con cualquier filtro usa la búsqueda del backend.
    """
    params = BuscarClienteRequest(
        nombres=nombres, apellido_paterno=apellido_paterno, numero_documento=numero_documento,
        ruc=ruc, razon_social=razon_social, tipo_cliente=tipo_cliente, es_activo=es_activo,
        limit=limit, offset=offset
    )
    if not any(v is not None for v in params.model_dump().values()):
        return await service.get_all()
    return await service.search(params)


@router.get("/documento/{numero_documento}", response_model=ClienteOut)
async def get_cliente_by_documento(
    numero_documento: str,
    service: ClienteService = Depends(get_cliente_service)
):
    return await service.get_by_documento(numero_documento)


@router.get("/{cliente_id}", response_model=ClienteOut)
async def get_cliente(
    cliente_id: int,
    service: ClienteService = Depends(get_cliente_service)
):
    return await service.get_by_id(cliente_id)


@router.post("/", response_model=ClienteOut, status_code=status.HTTP_201_CREATED)
async def create_cliente(
    data: ClienteCreate,
    service: ClienteService = Depends(get_cliente_service)
):
    """
    Crear un cliente

    - **REGISTRADO**: `persona` con nombres, apellido paterno y documento
    - **EMPRESARIAL**: RUC de 11 dígitos, razón social, dirección fiscal y representante legal
    - **OCASIONAL**: solo descripción opcional
    """
    return await service.create(data)


@router.patch("/{cliente_id}/toggle-estado", response_model=ClienteOut)
async def toggle_estado_cliente(
    cliente_id: int,
    service: ClienteService = Depends(get_cliente_service)
):
    return await service.toggle_estado(cliente_id)
