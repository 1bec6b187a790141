"""Minor-unit money helpers. Every stored amount is an integer number of grosz."""

from decimal import ROUND_FLOOR, Decimal, InvalidOperation

MINOR_UNITS_PER_MAJOR = 100


class InvalidAmountError(ValueError):
    pass


def parse_major_amount(value: str | int | float | Decimal) -> int:
    """Convert a major-unit amount ("10.01", "10,01", 10) to minor units, flooring sub-grosz fractions."""
    text = str(value).strip().replace(" ", "").replace(",", ".")
    if not text:
        raise InvalidAmountError("Amount is required")
    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise InvalidAmountError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    return int((amount * MINOR_UNITS_PER_MAJOR).to_integral_value(rounding=ROUND_FLOOR))


def major_to_minor(amount: int | Decimal) -> int:
    return int(Decimal(amount) * MINOR_UNITS_PER_MAJOR)


def format_minor(amount: int, currency: str = "PLN") -> str:
    major = Decimal(amount) / MINOR_UNITS_PER_MAJOR
    return f"{major:.2f} {currency}"
