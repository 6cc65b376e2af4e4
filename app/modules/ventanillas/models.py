"""
Máquina de estados de ventanilla

La ventanilla es la unidad física de atención que se apertura, pausa y cierra.
El ciclo de vida se modela como una tabla explícita de transiciones,
independiente de cualquier interfaz:

    CERRADA --aperturar--> ABIERTA --pausar--> PAUSA --reanudar--> ABIERTA
    ABIERTA --cerrar--> CERRADA
    PAUSA   --cerrar--> CERRADA

Solo una ventanilla activa puede aperturarse.
"""

import enum
import logging
from typing import Dict, List, Tuple

from app.core.exceptions import TransicionInvalidaError

logger = logging.getLogger(__name__)


# ===== ENUMS =====

class EstadoVentanilla(str, enum.Enum):
    """Estados de la ventanilla"""
    CERRADA = "CERRADA"
    ABIERTA = "ABIERTA"
    PAUSA = "PAUSA"


class AccionVentanilla(str, enum.Enum):
    """Acciones del ciclo de vida"""
    APERTURAR = "aperturar"
    PAUSAR = "pausar"
    REANUDAR = "reanudar"
    CERRAR = "cerrar"


TRANSICIONES: Dict[Tuple[EstadoVentanilla, AccionVentanilla], EstadoVentanilla] = {
    (EstadoVentanilla.CERRADA, AccionVentanilla.APERTURAR): EstadoVentanilla.ABIERTA,
    (EstadoVentanilla.ABIERTA, AccionVentanilla.PAUSAR): EstadoVentanilla.PAUSA,
    (EstadoVentanilla.PAUSA, AccionVentanilla.REANUDAR): EstadoVentanilla.ABIERTA,
    (EstadoVentanilla.ABIERTA, AccionVentanilla.CERRAR): EstadoVentanilla.CERRADA,
    (EstadoVentanilla.PAUSA, AccionVentanilla.CERRAR): EstadoVentanilla.CERRADA,
}


class VentanillaStateMachine:
    """Estado + tabla de transiciones permitidas de una ventanilla."""

    def __init__(self, estado: EstadoVentanilla = EstadoVentanilla.CERRADA, activa: bool = True):
        self.estado = EstadoVentanilla(estado)
        self.activa = activa

    def can(self, accion: AccionVentanilla) -> bool:
        accion = AccionVentanilla(accion)
        if accion == AccionVentanilla.APERTURAR and not self.activa:
            return False
        return (self.estado, accion) in TRANSICIONES

    def allowed_actions(self) -> List[AccionVentanilla]:
        return [accion for accion in AccionVentanilla if self.can(accion)]

    def check(self, accion: AccionVentanilla) -> EstadoVentanilla:
        """Valida la acción y devuelve el estado destino sin aplicarlo."""
        accion = AccionVentanilla(accion)
        if accion == AccionVentanilla.APERTURAR and not self.activa:
            raise TransicionInvalidaError(
                self.estado.value, accion.value,
                "La ventanilla está inactiva y no puede aperturarse"
            )
        destino = TRANSICIONES.get((self.estado, accion))
        if destino is None:
            raise TransicionInvalidaError(self.estado.value, accion.value)
        return destino

    def apply(self, accion: AccionVentanilla) -> EstadoVentanilla:
        destino = self.check(accion)
        logger.info(f"Ventanilla {self.estado.value} --{AccionVentanilla(accion).value}--> {destino.value}")
        self.estado = destino
        return destino
