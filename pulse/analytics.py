# pulse/analytics.py
"""Read side of the activity log, shaped for callers (admin views, APIs)."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union, get_args

import config
from pulse.db import baseline_averages_by_region, recent_logs, rolling_averages, trend
from pulse.schema import Region
from pulse.utils import as_utc, utcnow

VALID_REGIONS = frozenset(get_args(Region))


class InvalidRegionError(ValueError):
    pass


def clamp_days(days: int) -> int:
    return max(1, min(int(days), config.MAX_TREND_DAYS))


def activity_overview(
    limit: int = 100,
    now: Optional[datetime] = None,
    db_path: Optional[Union[str, Path]] = None,
) -> Dict[str, Any]:
    now = as_utc(now or utcnow())
    return {
        "averages": rolling_averages(now=now, db_path=db_path),
        "baselines": baseline_averages_by_region(now=now, db_path=db_path),
        "recent_logs": recent_logs(limit=limit, db_path=db_path),
        "meta": {"generated_at": now.isoformat(), "window_days": config.ROLLING_WINDOW_DAYS},
    }


def activity_trend(
    region: str,
    days: int = 7,
    now: Optional[datetime] = None,
    db_path: Optional[Union[str, Path]] = None,
) -> Dict[str, Any]:
    if region not in VALID_REGIONS:
        raise InvalidRegionError(f"unknown region: {region!r}")
    now = as_utc(now or utcnow())
    days = clamp_days(days)
    return {
        "region": region,
        "trend": trend(region, days=days, now=now, db_path=db_path),
        "meta": {"generated_at": now.isoformat(), "days": days},
    }
