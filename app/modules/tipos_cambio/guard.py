"""
Guardia de creación/edición de tipos de cambio

Antes de escribir un tipo de cambio se verifica:
- venta > compra y spread dentro del máximo permitido
- que no exista otro tipo activo para el mismo par (sin importar el sentido)
- si la variación contra el tipo anterior supera el umbral, se exige confirmación

El guardado es en dos fases: el primer intento con un cambio drástico lanza
ConfirmacionRequeridaError; el segundo, con ``confirmar=True``, escribe.
Estos chequeos son ayudas para el operador; el backend sigue siendo la
autoridad sobre sus invariantes.
"""

import logging
from decimal import Decimal
from typing import Optional

from app.common.inflight import InFlightGuard
from app.common.validators import percent_change, round_money, to_decimal
from app.core.config import settings
from app.core.exceptions import ConfirmacionRequeridaError, ParDuplicadoError, TipoCambioInvalidoError
from app.modules.tipos_cambio.schemas import (
    TipoCambioOut, TipoCambioCreate, TipoCambioUpdate, CambioDrastico, VerificacionTipoCambio,
    spread_porcentaje
)
from app.modules.tipos_cambio.service import TipoCambioService

logger = logging.getLogger(__name__)

PAR_DUPLICADO = "Ya existe un tipo de cambio activo para este par de monedas"


def validar_tasas(tipo_compra, tipo_venta, spread_maximo: Optional[Decimal] = None) -> None:
    """Lanza TipoCambioInvalidoError si las tasas son inconsistentes."""
    compra = to_decimal(tipo_compra)
    venta = to_decimal(tipo_venta)
    limite = spread_maximo if spread_maximo is not None else settings.MAX_SPREAD_PERCENT
    if compra <= 0 or venta <= 0:
        raise TipoCambioInvalidoError("Las tasas de compra y venta deben ser mayores a 0")
    if venta <= compra:
        raise TipoCambioInvalidoError("El tipo de venta debe ser mayor que el tipo de compra")
    if spread_porcentaje(compra, venta) > limite:
        raise TipoCambioInvalidoError(f"La diferencia entre venta y compra no puede exceder el {limite}%")


def _fecha(tipo: TipoCambioOut):
    return tipo.fecha_vigencia or tipo.updated_at or tipo.created_at


def calcular_cambio(anterior: Optional[TipoCambioOut], tipo_compra, tipo_venta,
                    umbral: Optional[Decimal] = None) -> CambioDrastico:
    if anterior is None:
        return CambioDrastico()
    limite = umbral if umbral is not None else settings.DRASTIC_CHANGE_PERCENT
    cambio_compra = percent_change(tipo_compra, anterior.tipo_compra)
    cambio_venta = percent_change(tipo_venta, anterior.tipo_venta)
    return CambioDrastico(
        tipo_anterior_id=anterior.id,
        cambio_compra=round_money(cambio_compra),
        cambio_venta=round_money(cambio_venta),
        es_drastico=abs(cambio_compra) > limite or abs(cambio_venta) > limite,
    )


class TipoCambioGuard:
    """Chequeos previos y guardado en dos fases de tipos de cambio"""

    def __init__(self, service: TipoCambioService, guard: InFlightGuard,
                 umbral_drastico: Optional[Decimal] = None, spread_maximo: Optional[Decimal] = None):
        self.service = service
        self.guard = guard
        self.umbral_drastico = umbral_drastico if umbral_drastico is not None else settings.DRASTIC_CHANGE_PERCENT
        self.spread_maximo = spread_maximo if spread_maximo is not None else settings.MAX_SPREAD_PERCENT

    async def existe_par_activo(self, casa_de_cambio_id: int, moneda_origen_id: int, moneda_destino_id: int,
                                excluir_id: Optional[int] = None) -> bool:
        activos = await self.service.get_activos_por_casa(casa_de_cambio_id)
        par = {moneda_origen_id, moneda_destino_id}
        return any(
            {t.moneda_origen_id, t.moneda_destino_id} == par and t.id != excluir_id
            for t in activos
        )

    async def tipo_anterior(self, casa_de_cambio_id: int, moneda_origen_id: int, moneda_destino_id: int,
                            excluir_id: Optional[int] = None) -> Optional[TipoCambioOut]:
        """Tipo más reciente registrado para el mismo par, distinto de ``excluir_id``."""
        tipos = await self.service.get_by_casa_de_cambio(casa_de_cambio_id)
        candidatos = [
            t for t in tipos
            if t.moneda_origen_id == moneda_origen_id
            and t.moneda_destino_id == moneda_destino_id
            and t.id != excluir_id
        ]
        if not candidatos:
            return None
        con_fecha = [t for t in candidatos if _fecha(t)]
        if con_fecha:
            return max(con_fecha, key=lambda t: (_fecha(t), t.id))
        return max(candidatos, key=lambda t: t.id)

    async def verificar(self, casa_de_cambio_id: int, moneda_origen_id: int, moneda_destino_id: int,
                        tipo_compra=None, tipo_venta=None,
                        tipo_cambio_id: Optional[int] = None) -> VerificacionTipoCambio:
        """Chequeo en vivo para el formulario; no lanza por errores de validación."""
        errores = []
        if moneda_origen_id == moneda_destino_id:
            errores.append("La moneda origen y destino deben ser diferentes")

        existe = False
        if tipo_cambio_id is None and not errores:
            existe = await self.existe_par_activo(casa_de_cambio_id, moneda_origen_id, moneda_destino_id)
            if existe:
                errores.append(PAR_DUPLICADO)

        cambio = CambioDrastico()
        if tipo_compra is not None and tipo_venta is not None:
            try:
                validar_tasas(tipo_compra, tipo_venta, self.spread_maximo)
            except TipoCambioInvalidoError as e:
                errores.append(e.message)
            anterior = await self._referencia(casa_de_cambio_id, moneda_origen_id, moneda_destino_id, tipo_cambio_id)
            cambio = calcular_cambio(anterior, tipo_compra, tipo_venta, self.umbral_drastico)

        return VerificacionTipoCambio(existe_par_activo=existe, cambio=cambio, errores=errores)

    async def crear(self, data: TipoCambioCreate, confirmar: bool = False) -> TipoCambioOut:
        validar_tasas(data.tipo_compra, data.tipo_venta, self.spread_maximo)
        key = self._key(data.casa_de_cambio_id, data.moneda_origen_id, data.moneda_destino_id)
        async with self.guard.hold(key):
            if await self.existe_par_activo(data.casa_de_cambio_id, data.moneda_origen_id, data.moneda_destino_id):
                raise ParDuplicadoError(PAR_DUPLICADO)

            anterior = await self.tipo_anterior(data.casa_de_cambio_id, data.moneda_origen_id, data.moneda_destino_id)
            self._exigir_confirmacion(anterior, data.tipo_compra, data.tipo_venta, confirmar)

            creado = await self.service.create(data)
            logger.info(
                f"Tipo de cambio {creado.id} creado: {data.moneda_origen_id}->{data.moneda_destino_id} "
                f"compra={data.tipo_compra} venta={data.tipo_venta}"
            )
            return creado

    async def actualizar(self, tipo_cambio_id: int, data: TipoCambioUpdate, confirmar: bool = False) -> TipoCambioOut:
        actual = await self.service.get_by_id(tipo_cambio_id)
        compra = data.tipo_compra if data.tipo_compra is not None else actual.tipo_compra
        venta = data.tipo_venta if data.tipo_venta is not None else actual.tipo_venta
        validar_tasas(compra, venta, self.spread_maximo)

        async with self.guard.hold(("tipo-cambio", tipo_cambio_id)):
            if data.activo and not actual.activo and actual.casa_de_cambio_id:
                # Reactivar no puede duplicar un par ya activo
                if await self.existe_par_activo(actual.casa_de_cambio_id, actual.moneda_origen_id,
                                                actual.moneda_destino_id, excluir_id=tipo_cambio_id):
                    raise ParDuplicadoError(PAR_DUPLICADO)

            self._exigir_confirmacion(actual, compra, venta, confirmar)

            actualizado = await self.service.update(tipo_cambio_id, data)
            logger.info(f"Tipo de cambio {tipo_cambio_id} actualizado: compra={compra} venta={venta}")
            return actualizado

    async def activar(self, tipo_cambio_id: int) -> TipoCambioOut:
        async with self.guard.hold(("tipo-cambio", tipo_cambio_id)):
            actual = await self.service.get_by_id(tipo_cambio_id)
            if actual.activo:
                return actual
            if actual.casa_de_cambio_id and await self.existe_par_activo(
                    actual.casa_de_cambio_id, actual.moneda_origen_id, actual.moneda_destino_id,
                    excluir_id=tipo_cambio_id):
                raise ParDuplicadoError(PAR_DUPLICADO)

            activado = await self.service.activar(tipo_cambio_id)
            logger.info(f"Tipo de cambio {tipo_cambio_id} activado")
            return activado

    async def desactivar(self, tipo_cambio_id: int) -> TipoCambioOut:
        async with self.guard.hold(("tipo-cambio", tipo_cambio_id)):
            desactivado = await self.service.desactivar(tipo_cambio_id)
            logger.info(f"Tipo de cambio {tipo_cambio_id} desactivado")
            return desactivado

    async def _referencia(self, casa_de_cambio_id: int, moneda_origen_id: int, moneda_destino_id: int,
                          tipo_cambio_id: Optional[int]) -> Optional[TipoCambioOut]:
        # Al editar, la referencia es el propio registro antes del cambio
        if tipo_cambio_id is not None:
            return await self.service.get_by_id(tipo_cambio_id)
        return await self.tipo_anterior(casa_de_cambio_id, moneda_origen_id, moneda_destino_id)

    def _exigir_confirmacion(self, anterior: Optional[TipoCambioOut], tipo_compra, tipo_venta,
                             confirmar: bool) -> None:
        cambio = calcular_cambio(anterior, tipo_compra, tipo_venta, self.umbral_drastico)
        if cambio.es_drastico and not confirmar:
            logger.info(
                f"Cambio drástico contra tipo {cambio.tipo_anterior_id}: "
                f"compra {cambio.cambio_compra}%, venta {cambio.cambio_venta}%"
            )
            raise ConfirmacionRequeridaError(
                f"El cambio supera el {self.umbral_drastico}% respecto al tipo anterior y requiere confirmación",
                cambio.cambio_compra, cambio.cambio_venta,
            )

    @staticmethod
    def _key(casa_de_cambio_id: int, moneda_origen_id: int, moneda_destino_id: int):
        return ("tipo-cambio", casa_de_cambio_id, frozenset((moneda_origen_id, moneda_destino_id)))
