"""
Registro de transacciones de cambio

TransaccionForm reproduce el formulario del operador: selección de tasa,
cálculo bidireccional, tasa preferencial de sesión y comprobante.
TransaccionWorkflow lo alimenta con las tasas activas y envía el resultado.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from app.common.inflight import InFlightGuard
from app.common.validators import accepts_amount_input, parse_amount, round_money, round_rate, to_decimal
from app.core.config import settings
from app.core.exceptions import ApiError, MontoInvalidoError, TipoCambioInvalidoError, ValidacionError
from app.modules.clientes.schemas import ClienteTemporal
from app.modules.tipos_cambio.schemas import TipoCambioActivo
from app.modules.tipos_cambio.service import TipoCambioService
from app.modules.transacciones import calculator
from app.modules.transacciones.schemas import (
    TipoOperacion, OpcionComprobante, TransaccionOut, ProcesarCambioRequest,
    CalculoIn, CalculoOut, RegistrarTransaccionIn
)
from app.modules.transacciones.service import TransaccionService

logger = logging.getLogger(__name__)

DATOS_INCOMPLETOS = "Datos incompletos para el cálculo"
SIN_VENTANILLA = "No hay ventanilla activa. Debe aperturar una ventanilla primero."


class TransaccionForm:
    """
    Formulario de una transacción.

    El campo editado por última vez es el que manda: editar el monto origen
    recalcula el destino y viceversa (``modo_calculo_inverso``). Los textos
    que no cumplen el patrón de 2 decimales se rechazan sin tocar el estado.
    """

    def __init__(self):
        self.tipo_cambio: Optional[TipoCambioActivo] = None
        self.tipo_operacion: TipoOperacion = TipoOperacion.COMPRA
        self.monto_origen: str = ""
        self.monto_destino: str = ""
        self.modo_calculo_inverso: bool = False
        self.tipo_cambio_preferencial: Optional[Decimal] = None

    def seleccionar_tipo_cambio(self, tipo_cambio: TipoCambioActivo, operacion: TipoOperacion) -> None:
        if to_decimal(tipo_cambio.tipo_compra) <= 0 or to_decimal(tipo_cambio.tipo_venta) <= 0:
            raise TipoCambioInvalidoError("El tipo de cambio seleccionado tiene tasas inválidas")
        self.tipo_cambio = tipo_cambio
        self.tipo_operacion = TipoOperacion(operacion)
        self.tipo_cambio_preferencial = None
        self._derivar()

    @property
    def tasa_aplicada(self) -> Optional[Decimal]:
        if self.tipo_cambio is None:
            return None
        if self.tipo_cambio_preferencial is not None:
            return self.tipo_cambio_preferencial
        if self.tipo_operacion == TipoOperacion.COMPRA:
            return to_decimal(self.tipo_cambio.tipo_compra)
        return to_decimal(self.tipo_cambio.tipo_venta)

    def aplicar_preferencial(self, tasa) -> None:
        """La tasa preferencial vale solo para esta transacción; no se persiste."""
        valor = to_decimal(tasa) if tasa is not None else None
        if valor is None or valor <= 0:
            raise TipoCambioInvalidoError("Tipo de cambio personalizado inválido")
        self.tipo_cambio_preferencial = valor
        self._derivar()

    def quitar_preferencial(self) -> None:
        self.tipo_cambio_preferencial = None
        self._derivar()

    def set_monto_origen(self, texto: str) -> bool:
        if not accepts_amount_input(texto):
            return False
        self.monto_origen = texto
        self.modo_calculo_inverso = False
        self._derivar()
        return True

    def set_monto_destino(self, texto: str) -> bool:
        if not accepts_amount_input(texto):
            return False
        self.monto_destino = texto
        self.modo_calculo_inverso = True
        self._derivar()
        return True

    def _montos(self):
        """(origen, destino) con precisión completa, o None si faltan datos."""
        tasa = self.tasa_aplicada
        if tasa is None:
            return None
        if self.modo_calculo_inverso:
            destino = parse_amount(self.monto_destino)
            if destino is None:
                return None
            return calculator.monto_origen(destino, tasa, self.tipo_operacion), destino
        origen = parse_amount(self.monto_origen)
        if origen is None:
            return None
        return origen, calculator.monto_destino(origen, tasa, self.tipo_operacion)

    def _derivar(self) -> None:
        montos = self._montos()
        if self.modo_calculo_inverso:
            self.monto_origen = str(round_money(montos[0])) if montos else ""
        else:
            self.monto_destino = str(round_money(montos[1])) if montos else ""

    def calcular(self) -> CalculoOut:
        base = CalculoOut(
            tipo_cambio_id=self.tipo_cambio.id if self.tipo_cambio else 0,
            par_monedas=self.tipo_cambio.par_monedas if self.tipo_cambio else None,
            tipo_operacion=self.tipo_operacion,
            modo_calculo_inverso=self.modo_calculo_inverso,
            es_preferencial=self.tipo_cambio_preferencial is not None,
        )
        montos = self._montos()
        if montos is None or montos[0] <= 0:
            return base.model_copy(update={"mensaje_error": DATOS_INCOMPLETOS})

        origen, destino = montos
        tasa = self.tasa_aplicada
        ganancia = calculator.ganancia(
            origen, tasa, self.tipo_operacion,
            to_decimal(self.tipo_cambio.tipo_compra), to_decimal(self.tipo_cambio.tipo_venta)
        )
        return base.model_copy(update={
            "monto_origen": round_money(origen),
            "monto_destino": round_money(destino),
            "tipo_cambio_aplicado": round_rate(tasa),
            "ganancia": round_money(ganancia),
            "es_valido": True,
        })

    def validar(self) -> CalculoOut:
        if self.tipo_cambio is None:
            raise ValidacionError("Debe seleccionar un tipo de cambio")
        calculo = self.calcular()
        if not calculo.es_valido:
            raise MontoInvalidoError("Complete todos los campos requeridos")
        return calculo

    def build_request(self, ventanilla_id: Optional[int],
                      comprobante: OpcionComprobante = OpcionComprobante.SIN_COMPROBANTE,
                      cliente_id: Optional[int] = None,
                      cliente_temp: Optional[ClienteTemporal] = None) -> ProcesarCambioRequest:
        calculo = self.validar()
        if not ventanilla_id:
            raise ValidacionError(SIN_VENTANILLA)
        if comprobante == OpcionComprobante.CLIENTE_EXISTENTE and not cliente_id:
            raise ValidacionError("Debe seleccionar un cliente")
        if comprobante == OpcionComprobante.CLIENTE_TEMPORAL and cliente_temp is None:
            raise ValidacionError("Debe registrar los datos del cliente")

        observaciones = None
        if self.tipo_cambio_preferencial is not None:
            observaciones = f"Tipo de cambio preferencial: {self.tipo_cambio_preferencial}"

        return ProcesarCambioRequest(
            cliente_id=cliente_id if comprobante == OpcionComprobante.CLIENTE_EXISTENTE else None,
            cliente_temp=cliente_temp if comprobante == OpcionComprobante.CLIENTE_TEMPORAL else None,
            ventanilla_id=ventanilla_id,
            # El par siempre viaja como está definido en la tasa, sea compra o venta
            moneda_origen_id=self.tipo_cambio.moneda_origen_id,
            moneda_destino_id=self.tipo_cambio.moneda_destino_id,
            monto_origen=calculo.monto_origen,
            tipo_operacion=self.tipo_operacion,
            observaciones=observaciones,
        )

    def reset(self) -> None:
        """Limpia montos y tasa preferencial; la tasa seleccionada se conserva."""
        self.monto_origen = ""
        self.monto_destino = ""
        self.modo_calculo_inverso = False
        self.tipo_cambio_preferencial = None


class TransaccionWorkflow:
    """Carga de tasas activas, cálculo y registro de transacciones"""

    def __init__(self, service: TransaccionService, tipo_cambio_service: TipoCambioService,
                 guard: InFlightGuard):
        self.service = service
        self.tipo_cambio_service = tipo_cambio_service
        self.guard = guard

    async def cargar_tipos_cambio(self, casa_de_cambio_id: Optional[int] = None) -> List[TipoCambioActivo]:
        return await self.tipo_cambio_service.get_activos_por_casa(
            casa_de_cambio_id or settings.DEFAULT_CASA_DE_CAMBIO_ID
        )

    async def formulario(self, entrada: CalculoIn) -> TransaccionForm:
        """Reconstruye el formulario a partir de lo que envió el operador."""
        tipos = await self.cargar_tipos_cambio(entrada.casa_de_cambio_id)
        tipo_cambio = next((t for t in tipos if t.id == entrada.tipo_cambio_id), None)
        if tipo_cambio is None:
            raise ValidacionError("El tipo de cambio seleccionado no está activo")

        form = TransaccionForm()
        form.seleccionar_tipo_cambio(tipo_cambio, entrada.tipo_operacion)
        if entrada.tipo_cambio_preferencial is not None:
            form.aplicar_preferencial(entrada.tipo_cambio_preferencial)

        if entrada.modo_calculo_inverso:
            aceptado = form.set_monto_destino(entrada.monto_destino or "")
        else:
            aceptado = form.set_monto_origen(entrada.monto_origen or "")
        if not aceptado:
            raise MontoInvalidoError("Monto inválido: solo números con máximo 2 decimales")
        return form

    async def calcular(self, entrada: CalculoIn) -> CalculoOut:
        form = await self.formulario(entrada)
        return form.calcular()

    async def registrar(self, entrada: RegistrarTransaccionIn) -> TransaccionOut:
        form = await self.formulario(entrada)
        return await self.procesar(
            form, entrada.ventanilla_id, entrada.comprobante, entrada.cliente_id, entrada.cliente_temp
        )

    async def procesar(self, form: TransaccionForm, ventanilla_id: Optional[int],
                       comprobante: OpcionComprobante = OpcionComprobante.SIN_COMPROBANTE,
                       cliente_id: Optional[int] = None,
                       cliente_temp: Optional[ClienteTemporal] = None) -> TransaccionOut:
        """
        Envía la transacción. Si el backend la rechaza, el formulario queda
        intacto para corregir y reenviar; si la acepta, se limpia.
        """
        request = form.build_request(ventanilla_id, comprobante, cliente_id, cliente_temp)

        async with self.guard.hold(("transaccion", ventanilla_id)):
            try:
                transaccion = await self.service.procesar_cambio(request)
            except ApiError as e:
                logger.warning(f"Backend rechazó transacción en ventanilla {ventanilla_id}: {e.message}")
                raise

        logger.info(
            f"Transacción {transaccion.numero_transaccion} registrada en ventanilla {ventanilla_id} "
            f"({request.tipo_operacion.value} {request.monto_origen})"
        )
        form.reset()
        return transaccion
