"""
Validadores y utilidades numéricas para montos y tasas
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated, Optional, Union

from pydantic import PlainSerializer

# Solo dígitos y un punto decimal, máximo 2 decimales
AMOUNT_INPUT_PATTERN = re.compile(r'\d*\.?\d{0,2}')

CENT = Decimal("0.01")
FOUR_PLACES = Decimal("0.0001")

Number = Union[Decimal, int, float, str]


def accepts_amount_input(value: str) -> bool:
    """
    Indica si el texto tecleado es un monto válido mientras se escribe.
    Acepta cadenas parciales como "", "12." o ".5".
    """
    return AMOUNT_INPUT_PATTERN.fullmatch(value) is not None


def parse_amount(value: Optional[str]) -> Optional[Decimal]:
    """Convierte el texto del campo en Decimal; None si está vacío o no es numérico."""
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned or cleaned == ".":
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() evita arrastrar el error binario de los float
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_rate(value: Number) -> Decimal:
    return to_decimal(value).quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)


def percent_change(new: Number, old: Number) -> Decimal:
    """Variación porcentual de ``old`` a ``new``; 0 si ``old`` es 0."""
    old_d = to_decimal(old)
    if old_d == 0:
        return Decimal("0")
    return (to_decimal(new) - old_d) / old_d * 100


def validate_ruc(ruc: str) -> bool:
    """RUC peruano: exactamente 11 dígitos."""
    return bool(re.fullmatch(r'\d{11}', ruc or ""))


# Decimal que viaja como número JSON (la API remota no acepta strings)
JsonDecimal = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
