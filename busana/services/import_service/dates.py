"""Date normalization for spreadsheet cells."""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from busana.models.import_batch import ImportType

from .constants import DATE_FORMATS

# Spreadsheet serial day 0. Using 1899-12-30 absorbs the 1900 leap-year bug.
SERIAL_EPOCH = datetime(1899, 12, 30)

MIN_DATE = datetime(1990, 1, 1)
MAX_DATE = datetime(2100, 12, 31, 23, 59, 59)

# Two-digit years at or above this pivot belong to the 1900s; the rest to
# the 2000s. Matches MIN_DATE so every two-digit year stays in range.
TWO_DIGIT_YEAR_PIVOT = 90


@dataclass(frozen=True)
class NormalizedDate:
    """A parsed date and how it was recognized."""

    value: datetime
    fmt: str  # strptime format, "serial" or "native"


def date_formats_for(import_type: ImportType) -> tuple[str, ...]:
    return DATE_FORMATS[import_type]


def _in_range(value: datetime) -> bool:
    return MIN_DATE <= value <= MAX_DATE


def _from_serial(serial: float) -> datetime | None:
    if not math.isfinite(serial):
        return None
    try:
        value = SERIAL_EPOCH + timedelta(days=serial)
    except OverflowError:
        return None
    # Drop sub-second noise from float day fractions
    return value.replace(microsecond=0) if value.microsecond else value


def normalize_date(value: Any, formats: tuple[str, ...]) -> NormalizedDate | None:
    """Turn a cell value into a datetime, or None if it is not a plausible date.

    Strings are tried against ``formats`` in order with strict parsing;
    the first format that matches wins. Numbers, and strings holding only a
    number, are spreadsheet serial day counts. Anything outside 1990-2100
    is rejected, so small integers such as ``2`` never become 1900 dates.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = NormalizedDate(value.replace(tzinfo=None), "native")
    elif isinstance(value, date):
        parsed = NormalizedDate(datetime.combine(value, time.min), "native")
    elif isinstance(value, (int, float)):
        converted = _from_serial(float(value))
        parsed = NormalizedDate(converted, "serial") if converted else None
    elif isinstance(value, str):
        parsed = _parse_string(value.strip(), formats)
    else:
        return None

    if parsed is None or not _in_range(parsed.value):
        return None
    return parsed


def _parse_string(text: str, formats: tuple[str, ...]) -> NormalizedDate | None:
    if not text:
        return None

    try:
        serial = float(text)
    except ValueError:
        pass
    else:
        converted = _from_serial(serial)
        return NormalizedDate(converted, "serial") if converted else None

    for fmt in formats:
        try:
            value = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if "%y" in fmt:
            yy = value.year % 100
            value = value.replace(year=(1900 if yy >= TWO_DIGIT_YEAR_PIVOT else 2000) + yy)
        return NormalizedDate(value, fmt)

    return None
