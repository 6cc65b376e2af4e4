"""
Jerarquía de excepciones del back-office.

Las validaciones locales nunca llegan a la red; los rechazos del backend
conservan su mensaje original para mostrarlo al operador tal cual.
"""
from decimal import Decimal
from typing import List, Optional

DEFAULT_API_ERROR = "Error en la respuesta del servidor"


class CambioError(Exception):
    """Base de todos los errores del back-office."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidacionError(CambioError):
    """Validación local previa al envío."""

    def __init__(self, message: str, errores: Optional[List[str]] = None):
        super().__init__(message)
        self.errores = errores or [message]


class CierreNoConfirmadoError(ValidacionError):
    """Alguna moneda del cierre no fue confirmada físicamente."""


class DesfaseSinObservacionError(ValidacionError):
    """Existe desfase sin observación que lo justifique."""


class ParDuplicadoError(ValidacionError):
    """Ya existe un tipo de cambio activo para el par de monedas."""


class TipoCambioInvalidoError(ValidacionError):
    """Tasas de compra/venta inconsistentes."""


class MontoInvalidoError(ValidacionError):
    """Monto ausente, negativo o con formato inválido."""


class ConfirmacionRequeridaError(CambioError):
    """El cambio de tasa supera el umbral y requiere confirmación explícita."""

    def __init__(self, message: str, cambio_compra: Decimal, cambio_venta: Decimal):
        super().__init__(message)
        self.cambio_compra = cambio_compra
        self.cambio_venta = cambio_venta


class TransicionInvalidaError(CambioError):
    """Acción no permitida desde el estado actual de la ventanilla."""

    def __init__(self, estado: str, accion: str, motivo: Optional[str] = None):
        message = motivo or f"No se puede '{accion}' una ventanilla en estado {estado}"
        super().__init__(message)
        self.estado = estado
        self.accion = accion


class SolicitudEnCursoError(CambioError):
    """Ya hay una solicitud idéntica en vuelo."""

    def __init__(self, clave: str):
        super().__init__(f"Ya existe una operación en curso: {clave}")
        self.clave = clave


class ApiError(CambioError):
    """Rechazo del backend remoto."""

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or DEFAULT_API_ERROR)
        self.status_code = status_code


class ApiConnectionError(ApiError):
    """Fallo de red al contactar el backend."""
