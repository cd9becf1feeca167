import re
from decimal import Decimal, InvalidOperation

_NON_NUMERIC = re.compile(r"[^0-9.,-]")
_THOUSANDS_DOT = re.compile(r"\.(?=\d{3}(?:\D|$))")
_NUMBER = re.compile(r"\d+(?:[.,]\d+)+|\d+")
_DECIMAL_NUMBER = re.compile(r"\d+[.,]\d+(?:[.,]\d+)*")


def parse_rate(value) -> Decimal | None:
    """Parse a machine-formatted rate as found in JSON payloads (5.425, "5.425").

    The dot is always the decimal separator. Returns None when the value is not
    a finite number.
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def parse_price(value) -> Decimal | None:
    """Parse a price as published on Argentine/Brazilian pages ("1.234,56", "$ 985,50").

    Dots followed by exactly three digits are thousands separators and a comma is
    the decimal separator. Numbers are taken as they are. Returns None when
    nothing usable is found.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int | float | Decimal):
        return parse_rate(value)

    text = _NON_NUMERIC.sub("", str(value).strip())
    if not text:
        return None

    text = _THOUSANDS_DOT.sub("", text).replace(",", ".")
    try:
        result = Decimal(text)
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def find_price(text: str | None) -> Decimal | None:
    """First number-looking token inside a longer piece of text."""
    if not text:
        return None
    match = _NUMBER.search(text)
    return parse_price(match.group(0)) if match else None


def find_decimal_prices(text: str | None) -> list[Decimal]:
    """Every number with a decimal part inside text, in order of appearance."""
    if not text:
        return []
    prices = (parse_price(match) for match in _DECIMAL_NUMBER.findall(text))
    return [price for price in prices if price is not None]
