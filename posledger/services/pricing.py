"""Price rules for bulk adjustments.

``compute_new_price`` is pure: the same price, kind and value always give the
same result, and nothing outside the arguments is read or written.
"""
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

from posledger.errors import ValidationError
from posledger.models.price_adjustment import AdjustmentKind

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Largest magnitudes the price (Numeric(12, 2)) and rule value (Numeric(12, 4)) columns hold
MAX_PRICE = Decimal("9999999999.99")
MAX_RULE_VALUE = Decimal("99999999.9999")


def to_decimal(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError("Valor inválido")
    try:
        # str() keeps floats like 0.1 from dragging in their binary expansion
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError("Valor inválido") from e
    if not result.is_finite():
        raise ValidationError("Valor inválido")
    return result


def rule_value(value) -> Decimal:
    """Validate the value of an adjustment rule before any product is touched."""
    value = to_decimal(value)
    if abs(value) > MAX_RULE_VALUE:
        raise ValidationError(f"El valor no puede superar {MAX_RULE_VALUE} en valor absoluto")
    return value


def round_price(amount: Decimal) -> Decimal:
    try:
        rounded = amount.quantize(CENT, rounding=ROUND_HALF_EVEN)
    except InvalidOperation as e:
        raise ValidationError("El precio resultante es demasiado grande") from e
    if rounded > MAX_PRICE:
        raise ValidationError(f"El precio resultante supera el máximo permitido ({MAX_PRICE})")
    return rounded


def compute_new_price(price, kind: AdjustmentKind | str, value) -> Decimal:
    """Apply one rule to one price.

    percentage: p * (1 + value / 100)
    fixed:      p + value

    The result is floored at zero, then rounded once to cents (half to even).
    """
    price = to_decimal(price)
    value = to_decimal(value)
    try:
        kind = AdjustmentKind(kind)
    except ValueError as e:
        raise ValidationError(f"Tipo de ajuste inválido: {kind}") from e

    if kind is AdjustmentKind.PERCENTAGE:
        raw = price * (1 + value / HUNDRED)
    else:
        raw = price + value
    if raw <= ZERO:
        raw = ZERO
    return round_price(raw)
