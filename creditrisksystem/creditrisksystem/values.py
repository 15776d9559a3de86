from decimal import Decimal, ROUND_HALF_UP

import pandas as pd

CENTS = Decimal('0.01')


def is_missing(value):
    return value is None or (not isinstance(value, str) and pd.isna(value))


def to_decimal(value, places=2):
    """Numeric cell -> Decimal rounded half up (SQL ROUND semantics), None stays None."""
    if is_missing(value):
        return None
    return Decimal(str(value)).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def to_int(value):
    if is_missing(value):
        return None
    return int(value)


def to_text(value):
    if is_missing(value):
        return None
    return str(value)


def percentage(part, whole):
    """100 * part / whole rounded to 2 places, None when whole is 0 or missing."""
    if is_missing(whole) or not whole:
        return None
    return to_decimal(Decimal(100) * Decimal(str(part or 0)) / Decimal(str(whole)), 2)
