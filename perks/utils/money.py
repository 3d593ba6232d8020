# perks/utils/money.py

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

Money = Decimal

CENT = Decimal("0.01")

def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))

def round_money(x: Money) -> Money:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)

def to_string_money(x) -> str:
    return str(round_money(x))

def to_float_money(x) -> float:
    return float(round_money(x))

def percent_of(amount: Money, percentage) -> Money:
    return round_money(D(amount) * D(percentage) / Decimal(100))

def parse_amount(value) -> Money | None:
    """Strict parse for user-supplied amounts; None when not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount
