# pulse/region_activity.py
"""Region activity levels against 6h baselines.

Flat 6h baselines under-expect daytime and over-expect nighttime, so each
baseline is scaled by a UTC time-of-day multiplier. The four multipliers sum
to 4.0, which keeps the daily expectation unchanged.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

import config
from pulse.schema import TRACKED_REGIONS, Item, RegionActivity, RegionBaselineAverage
from pulse.utils import as_utc, round_half_up, utcnow

MIN_ELEVATED_COUNT = 25
MIN_CRITICAL_COUNT = 50
ELEVATED_MULTIPLIER = 2.5
CRITICAL_MULTIPLIER = 5.0


def time_of_day_multiplier(now: Optional[datetime] = None) -> float:
    hour = as_utc(now or utcnow()).hour
    return config.TIME_OF_DAY_MULTIPLIERS[hour // 6]


def baselines_from_averages(averages: Iterable[RegionBaselineAverage]) -> Dict[str, float]:
    return {a.region: a.avg_posts_6h for a in averages}


def _level(region: str, multiplier: float, count: int) -> str:
    if region in config.SCORING_EXCLUDED_REGIONS:
        return "normal"
    if multiplier >= CRITICAL_MULTIPLIER and count >= MIN_CRITICAL_COUNT:
        return "critical"
    if multiplier >= ELEVATED_MULTIPLIER and count >= MIN_ELEVATED_COUNT:
        return "elevated"
    return "normal"


def _vs_normal(multiplier: float) -> str:
    if multiplier >= 1.5:
        return "above"
    if multiplier <= 0.5:
        return "below"
    return "normal"


def calculate_region_activity(
    items: List[Item],
    baselines: Mapping[str, float],
    now: Optional[datetime] = None,
    regions: Iterable[str] = TRACKED_REGIONS,
) -> Dict[str, RegionActivity]:
    """Single pass over a batch already filtered to the 6h window."""
    counts = Counter(item.region for item in items)
    tod = time_of_day_multiplier(now)

    activity: Dict[str, RegionActivity] = {}
    for region in regions:
        count = counts.get(region, 0)
        raw = baselines.get(region) or config.DEFAULT_REGION_BASELINE_6H
        baseline = max(1, int(round_half_up(raw * tod)))
        multiplier = round_half_up(count / baseline, 1)
        activity[region] = RegionActivity(
            level=_level(region, multiplier, count),
            count=count,
            baseline=baseline,
            multiplier=multiplier,
            vs_normal=_vs_normal(multiplier),
            percent_change=int(round_half_up((count - baseline) / baseline * 100)),
        )
    return activity
