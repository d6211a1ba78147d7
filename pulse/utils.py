# pulse/utils.py
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Union

from dateutil import parser


def as_utc(dt: Union[datetime, str]) -> datetime:
    """Parse strings and coerce to an aware UTC datetime (naive input is taken as UTC)."""
    if isinstance(dt, str):
        dt = parser.parse(dt)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: Union[datetime, str]) -> datetime:
    # duckdb TIMESTAMP columns are stored naive, in UTC
    return as_utc(dt).replace(tzinfo=None)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor
