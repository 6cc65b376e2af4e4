"""
Aritmética del cambio de moneda.

COMPRA: la casa recibe moneda origen y entrega ``origen * tasa``.
VENTA: la casa recibe moneda origen y entrega ``origen / tasa``.

Los cálculos trabajan con precisión completa; redondear es cosa de quien
muestra o envía el resultado.
"""
from decimal import Decimal

from app.modules.transacciones.schemas import TipoOperacion


def monto_destino(origen: Decimal, tasa: Decimal, operacion: TipoOperacion) -> Decimal:
    if operacion == TipoOperacion.COMPRA:
        return origen * tasa
    return origen / tasa


def monto_origen(destino: Decimal, tasa: Decimal, operacion: TipoOperacion) -> Decimal:
    """Inversa de ``monto_destino``."""
    if operacion == TipoOperacion.COMPRA:
        return destino / tasa
    return destino * tasa


def ganancia(origen: Decimal, tasa: Decimal, operacion: TipoOperacion,
             tipo_compra: Decimal, tipo_venta: Decimal) -> Decimal:
    """
    Ganancia estimada frente a las tasas oficiales del par.

    En una compra se compara lo pagado con lo que se obtendría vendiendo;
    en una venta, lo cobrado con lo que costó comprar.
    """
    if operacion == TipoOperacion.COMPRA:
        return origen * (tipo_venta - tasa)
    return (origen / tasa) * (tasa - tipo_compra)
