"""Input checks shared by the ledger services.

Each check runs before the first write and raises ``ValidationError`` with
a message that can be shown to the user as-is.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation

from services.exceptions import ValidationError

# Money columns are Numeric(18, 6): six decimal places, twelve integer digits
AMOUNT_PLACES = Decimal("0.000001")
MAX_AMOUNT = Decimal(10) ** 12


def require_positive_shares(shares, field: str = "Shares") -> int:
    """Return ``shares`` as an int, or raise if it is not a positive integer."""
    if isinstance(shares, bool) or not isinstance(shares, int):
        raise ValidationError(f"{field} must be a whole number")
    if shares <= 0:
        raise ValidationError(f"{field} must be positive")
    return shares


def require_positive_price(price, field: str = "Price per share") -> Decimal:
    """Return ``price`` as a Decimal, or raise if it is not positive.

    Floats are refused rather than converted so binary rounding never
    leaks into stored amounts. Prices must be storable exactly: at most
    six decimal places and below ``MAX_AMOUNT``.
    """
    if isinstance(price, (bool, float)):
        raise ValidationError(f"{field} must be a decimal amount")
    try:
        value = Decimal(price)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a decimal amount")
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"{field} must be positive")
    require_storable_amount(value, field)
    if value != value.quantize(AMOUNT_PLACES, rounding=ROUND_DOWN):
        raise ValidationError(f"{field} can have at most 6 decimal places")
    return value


def require_storable_amount(amount: Decimal, field: str = "Total amount") -> Decimal:
    """Return ``amount``, or raise if it does not fit a money column."""
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(f"{field} must be less than {MAX_AMOUNT:,}")
    return amount


def require_ids(ids, noun: str) -> list[str]:
    """Return the distinct ids in request order, or raise if there are none."""
    if not ids:
        raise ValidationError(f"Please select at least one {noun}")
    return list(dict.fromkeys(ids))
