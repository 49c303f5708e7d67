"""Funciones canónicas de precisión numérica.

Política de precisión:
- Cálculos internos: Python float, sin redondeo intermedio
- Redondeo: SOLO en frontera (UI, mensajes) y siempre half-up
"""

from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, List


def safe_float(value, default: float = 0.0) -> float:
    """Convierte un valor a float con validación de NaN/Infinity.

    Args:
        value: Valor a convertir (puede ser None, str, Decimal, etc.)
        default: Valor por defecto si es inválido

    Returns:
        Float válido o default si el valor es None, NaN o Infinity
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        f = float(value)
        if not math.isfinite(f):
            return default
        return f
    except (TypeError, ValueError):
        return default


def is_valid_number(value) -> bool:
    """True si el valor es un número finito."""
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def round_half_up(value: float, decimals: int = 0) -> float:
    """Redondeo half-up (no bancario) para display.

    USAR SOLO para display en UI, nunca para cálculos intermedios.
    """
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-decimals)
    try:
        rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return value
    return float(rounded)


def format_number(value, decimals: int = 1) -> str:
    """Formatea un número sin ceros finales ("190.0" -> "190").

    Valores no numéricos se formatean como "0".
    """
    if not is_valid_number(value):
        return "0"
    rounded = round_half_up(float(value), decimals)
    if decimals <= 0:
        return str(int(rounded))
    text = f"{rounded:.{decimals}f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def compute_pct_change(current: float, previous: float) -> float:
    """Cambio porcentual (+ = subió). 0 si previous == 0 o no es finito."""
    if not math.isfinite(current) or not math.isfinite(previous):
        return 0.0
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def mean(values: Iterable[float]) -> float:
    """Promedio simple; 0.0 para una secuencia vacía."""
    items: List[float] = [safe_float(v) for v in values]
    if not items:
        return 0.0
    return sum(items) / len(items)
