"""
Amount parsing for manual entry.

EUR amounts are written the German way ("1.234,56"); every other
currency uses the English convention ("1,234.56"). Garbage is never
coerced to zero: it raises InvalidAmountError.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from src.models.finance import Currency


CENT = Decimal("0.01")


class InvalidAmountError(ValueError):
    """The entered amount is not a number."""

    def __init__(self, value: str):
        self.value = value
        super().__init__("Invalid amount format")


def parse_amount(value: str, currency: Currency) -> Decimal:
    """
    Parse a user-entered amount in the conventions of a currency.

    Args:
        value: Raw input, may include the currency symbol
        currency: Currency whose separators apply

    Returns:
        Amount rounded half-up to two decimals

    Raises:
        InvalidAmountError: If the input is not a finite number
    """
    cleaned = value.replace(currency.symbol, "").strip()

    if currency.code == "EUR":
        normalized = cleaned.replace(".", "").replace(",", ".", 1)
    else:
        normalized = cleaned.replace(",", "")

    if not normalized:
        raise InvalidAmountError(value)

    try:
        amount = Decimal(normalized)
    except InvalidOperation:
        raise InvalidAmountError(value)

    if not amount.is_finite():
        raise InvalidAmountError(value)

    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value) -> Decimal:
    """Coerce a number or numeric string to a two-decimal Decimal."""
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidAmountError(str(value))
    if not amount.is_finite():
        raise InvalidAmountError(str(value))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
