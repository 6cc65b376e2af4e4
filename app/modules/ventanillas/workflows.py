"""
Flujos de trabajo de Ventanillas

- AperturaWorkflow, PausaWorkflow, CierreWorkflow: transiciones sobre la máquina de estados
- AdministracionWorkflow: alta, edición, activación y baja
- CierreReconciliacion: arqueo físico por moneda previo al cierre

El backend es la autoridad sobre los montos esperados y la persistencia; aquí
solo se garantiza que ninguna solicitud salga sin cumplir las reglas locales.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from app.common.inflight import InFlightGuard
from app.common.validators import to_decimal
from app.core.config import settings
from app.core.exceptions import (
    ApiError, CierreNoConfirmadoError, DesfaseSinObservacionError,
    MontoInvalidoError, ValidacionError
)
from app.modules.monedas.schemas import MonedaResumen
from app.modules.monedas.service import MonedaService
from app.modules.ventanillas.models import AccionVentanilla, VentanillaStateMachine
from app.modules.ventanillas.schemas import (
    VentanillaOut, VentanillaCreate, VentanillaUpdate, MontoApertura, AperturarVentanillaRequest,
    FilaApertura, PlanApertura, ResumenCierre, MontoCierreRequest, CierreVentanillaRequest,
    FilaCierreOut, ResumenCierreOut
)
from app.modules.ventanillas.service import VentanillaService

logger = logging.getLogger(__name__)


# ===== ARQUEO DE CIERRE =====

@dataclass
class FilaCierre:
    """Fila editable del arqueo: una por moneda"""
    moneda_id: int
    monto_esperado: Decimal
    monto_fisico_real: Decimal
    confirmado_fisicamente: bool = False
    observaciones_desfase: Optional[str] = None
    moneda: Optional[MonedaResumen] = None

    @property
    def desfase(self) -> Decimal:
        return self.monto_fisico_real - self.monto_esperado

    @property
    def desfase_porcentaje(self) -> Decimal:
        if self.monto_esperado == 0:
            return Decimal("0")
        return abs(self.desfase / self.monto_esperado) * 100

    def tiene_desfase(self, epsilon: Decimal) -> bool:
        return abs(self.desfase) > epsilon

    def nivel_desfase(self, umbral: Decimal) -> str:
        porcentaje = self.desfase_porcentaje
        if porcentaje == 0:
            return "verde"
        if porcentaje <= umbral:
            return "ambar"
        return "rojo"


class CierreReconciliacion:
    """
    Arqueo de cierre de una ventanilla.

    Se inicializa con el resumen calculado por el backend: el monto físico
    arranca igual al esperado y ninguna moneda está confirmada. Cambiar el
    monto físico de una fila invalida su confirmación.
    """

    def __init__(self, ventanilla_id: int, resumen: ResumenCierre,
                 epsilon: Optional[Decimal] = None, umbral_alerta: Optional[Decimal] = None):
        self.ventanilla_id = ventanilla_id
        self.resumen = resumen
        self.epsilon = epsilon if epsilon is not None else settings.VARIANCE_EPSILON
        self.umbral_alerta = umbral_alerta if umbral_alerta is not None else settings.VARIANCE_WARNING_PERCENT
        self.observaciones_cierre: Optional[str] = None
        self._filas: Dict[int, FilaCierre] = {
            monto.moneda_id: FilaCierre(
                moneda_id=monto.moneda_id,
                monto_esperado=to_decimal(monto.monto_esperado),
                monto_fisico_real=to_decimal(monto.monto_esperado),
                moneda=monto.moneda,
            )
            for monto in resumen.montos_esperados
        }

    @property
    def filas(self) -> List[FilaCierre]:
        return list(self._filas.values())

    def fila(self, moneda_id: int) -> FilaCierre:
        try:
            return self._filas[moneda_id]
        except KeyError:
            raise ValidacionError(f"La moneda {moneda_id} no forma parte del cierre")

    def set_monto_fisico(self, moneda_id: int, monto) -> FilaCierre:
        monto_d = to_decimal(monto)
        if monto_d < 0:
            raise MontoInvalidoError("El monto físico no puede ser negativo")
        fila = self.fila(moneda_id)
        fila.monto_fisico_real = monto_d
        fila.confirmado_fisicamente = False
        return fila

    def confirmar(self, moneda_id: int, confirmado: bool = True) -> FilaCierre:
        fila = self.fila(moneda_id)
        fila.confirmado_fisicamente = confirmado
        return fila

    def set_observaciones_desfase(self, moneda_id: int, observaciones: Optional[str]) -> FilaCierre:
        fila = self.fila(moneda_id)
        fila.observaciones_desfase = (observaciones or "").strip() or None
        return fila

    def errores(self) -> List[str]:
        errores = []
        for fila in self.filas:
            codigo = fila.moneda.codigo if fila.moneda and fila.moneda.codigo else str(fila.moneda_id)
            if not fila.confirmado_fisicamente:
                errores.append(f"Debe confirmar físicamente el monto de {codigo}")
            if fila.tiene_desfase(self.epsilon) and not fila.observaciones_desfase:
                errores.append(f"Debe explicar el desfase de {codigo}")
        return errores

    @property
    def puede_cerrar(self) -> bool:
        return not self.errores()

    def validar(self) -> None:
        pendientes = [f for f in self.filas if not f.confirmado_fisicamente]
        if pendientes:
            raise CierreNoConfirmadoError(
                "Debe confirmar físicamente todos los montos antes de proceder", self.errores()
            )
        sin_observacion = [
            f for f in self.filas
            if f.tiene_desfase(self.epsilon) and not f.observaciones_desfase
        ]
        if sin_observacion:
            raise DesfaseSinObservacionError(
                "Debe registrar observaciones para cada moneda con desfase", self.errores()
            )

    def to_request(self) -> CierreVentanillaRequest:
        return CierreVentanillaRequest(
            apertura_ventanilla_id=self.resumen.apertura_ventanilla_id,
            observaciones_cierre=(self.observaciones_cierre or "").strip() or None,
            montos_cierre=[
                MontoCierreRequest(
                    moneda_id=f.moneda_id,
                    monto_fisico_real=f.monto_fisico_real,
                    confirmado_fisicamente=f.confirmado_fisicamente,
                    observaciones_desfase=f.observaciones_desfase,
                )
                for f in self.filas
            ],
        )

    def to_out(self) -> ResumenCierreOut:
        return ResumenCierreOut(
            ventanilla_id=self.ventanilla_id,
            apertura_ventanilla_id=self.resumen.apertura_ventanilla_id,
            total_transacciones=self.resumen.total_transacciones,
            ganancia_total_calculada=self.resumen.ganancia_total_calculada,
            filas=[
                FilaCierreOut(
                    moneda_id=f.moneda_id,
                    moneda=f.moneda,
                    monto_esperado=f.monto_esperado,
                    monto_fisico_real=f.monto_fisico_real,
                    desfase=f.desfase,
                    desfase_porcentaje=f.desfase_porcentaje.quantize(Decimal("0.01")),
                    nivel_desfase=f.nivel_desfase(self.umbral_alerta),
                    confirmado_fisicamente=f.confirmado_fisicamente,
                    requiere_observacion=f.tiene_desfase(self.epsilon),
                    observaciones_desfase=f.observaciones_desfase,
                )
                for f in self.filas
            ],
            puede_cerrar=self.puede_cerrar,
            errores=self.errores(),
        )


# ===== CICLO DE VIDA =====

class VentanillaWorkflow:
    """Base de los flujos: máquina de estados + guardia de envíos por ventanilla"""

    def __init__(self, service: VentanillaService, guard: InFlightGuard):
        self.service = service
        self.guard = guard

    @staticmethod
    def _key(ventanilla_id: int):
        return ("ventanilla", ventanilla_id)

    async def _state_machine(self, ventanilla_id: int) -> VentanillaStateMachine:
        ventanilla = await self.service.get_by_id(ventanilla_id)
        return VentanillaStateMachine(ventanilla.estado, ventanilla.activa)

    async def _call(self, accion: str, ventanilla_id: int, coro):
        try:
            return await coro
        except ApiError as e:
            logger.warning(f"Backend rechazó '{accion}' en ventanilla {ventanilla_id}: {e.message}")
            raise


class AperturaWorkflow(VentanillaWorkflow):
    """CERRADA -> ABIERTA con los montos iniciales por moneda"""

    def __init__(self, service: VentanillaService, guard: InFlightGuard, moneda_service: MonedaService):
        super().__init__(service, guard)
        self.moneda_service = moneda_service

    async def plan_apertura(self, ventanilla_id: int) -> PlanApertura:
        """Una fila por moneda activa, con monto 0."""
        monedas = await self.moneda_service.get_activas()
        return PlanApertura(
            ventanilla_id=ventanilla_id,
            filas=[FilaApertura(moneda_id=m.id, moneda=m.resumen()) for m in monedas],
        )

    async def aperturar(self, ventanilla_id: int, usuario_id: Optional[int],
                        montos: List[MontoApertura],
                        observaciones: Optional[str] = None) -> VentanillaOut:
        if not usuario_id or usuario_id <= 0:
            raise ValidacionError("ID de usuario inválido")
        if any(to_decimal(m.monto) < 0 for m in montos):
            raise MontoInvalidoError("Los montos de apertura no pueden ser negativos")
        # Solo viajan las monedas con monto positivo
        montos_validos = [m for m in montos if to_decimal(m.monto) > 0]
        if not montos_validos:
            raise MontoInvalidoError("Debe ingresar al menos un monto de apertura mayor a 0")

        async with self.guard.hold(self._key(ventanilla_id)):
            maquina = await self._state_machine(ventanilla_id)
            maquina.check(AccionVentanilla.APERTURAR)

            request = AperturarVentanillaRequest(
                usuario_id=usuario_id,
                montos_apertura=montos_validos,
                observaciones_apertura=(observaciones or "").strip() or None,
            )
            await self._call("aperturar", ventanilla_id, self.service.aperturar(ventanilla_id, request))
            maquina.apply(AccionVentanilla.APERTURAR)
            return await self.service.get_by_id(ventanilla_id)


class PausaWorkflow(VentanillaWorkflow):
    """ABIERTA <-> PAUSA sin cerrar la sesión"""

    async def pausar(self, ventanilla_id: int) -> VentanillaOut:
        return await self._flip(ventanilla_id, AccionVentanilla.PAUSAR)

    async def reanudar(self, ventanilla_id: int) -> VentanillaOut:
        return await self._flip(ventanilla_id, AccionVentanilla.REANUDAR)

    async def _flip(self, ventanilla_id: int, accion: AccionVentanilla) -> VentanillaOut:
        async with self.guard.hold(self._key(ventanilla_id)):
            maquina = await self._state_machine(ventanilla_id)
            maquina.check(accion)
            if accion == AccionVentanilla.PAUSAR:
                await self._call("pausar", ventanilla_id, self.service.pausar(ventanilla_id))
            else:
                await self._call("reanudar", ventanilla_id, self.service.reanudar(ventanilla_id))
            maquina.apply(accion)
            return await self.service.get_by_id(ventanilla_id)


class CierreWorkflow(VentanillaWorkflow):
    """ABIERTA/PAUSA -> CERRADA tras el arqueo físico"""

    async def iniciar_cierre(self, ventanilla_id: int) -> CierreReconciliacion:
        """Obtiene el resumen del backend y prepara el arqueo."""
        maquina = await self._state_machine(ventanilla_id)
        maquina.check(AccionVentanilla.CERRAR)
        resumen = await self.service.get_resumen_cierre(ventanilla_id)
        return CierreReconciliacion(ventanilla_id, resumen)

    async def procesar_cierre(self, reconciliacion: CierreReconciliacion) -> VentanillaOut:
        # La validación local corre antes de cualquier solicitud
        reconciliacion.validar()
        ventanilla_id = reconciliacion.ventanilla_id
        async with self.guard.hold(self._key(ventanilla_id)):
            maquina = await self._state_machine(ventanilla_id)
            maquina.check(AccionVentanilla.CERRAR)
            await self._call(
                "procesar-cierre", ventanilla_id,
                self.service.procesar_cierre(ventanilla_id, reconciliacion.to_request())
            )
            maquina.apply(AccionVentanilla.CERRAR)
            return await self.service.get_by_id(ventanilla_id)


class AdministracionWorkflow(VentanillaWorkflow):
    """Alta, edición, activación y baja de ventanillas"""

    async def crear(self, data: VentanillaCreate) -> VentanillaOut:
        async with self.guard.hold(("ventanilla-nueva", data.casa_de_cambio_id, data.identificador)):
            ventanilla = await self.service.create(data)
            logger.info(f"Ventanilla {ventanilla.id} creada: {ventanilla.identificador}")
            return ventanilla

    async def actualizar(self, ventanilla_id: int, data: VentanillaUpdate) -> VentanillaOut:
        async with self.guard.hold(self._key(ventanilla_id)):
            return await self._call("actualizar", ventanilla_id, self.service.update(ventanilla_id, data))

    async def alternar_activa(self, ventanilla_id: int) -> VentanillaOut:
        async with self.guard.hold(self._key(ventanilla_id)):
            ventanilla = await self._call("toggle-active", ventanilla_id, self.service.toggle_active(ventanilla_id))
            logger.info(f"Ventanilla {ventanilla_id} {'activada' if ventanilla.activa else 'desactivada'}")
            return ventanilla

    async def eliminar(self, ventanilla_id: int) -> None:
        async with self.guard.hold(self._key(ventanilla_id)):
            await self._call("eliminar", ventanilla_id, self.service.delete(ventanilla_id))
            logger.info(f"Ventanilla {ventanilla_id} eliminada")
