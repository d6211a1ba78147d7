# pulse/sources.py
"""Source catalog and the effective posts-per-day rule.

Catalog rates are a mix of measured values and hand-entered guesses. Guesses
are almost always round numbers and run high, so they are tagged Estimated at
the catalog boundary and replaced by a conservative default for expectation
math. Measured rates are used as-is.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

import config
from pulse.schema import ALL_REGIONS, Baseline, Estimated, Measured, Source
from pulse.utils import round_half_up

CONSERVATIVE_DEFAULT_PPD = config.CONSERVATIVE_DEFAULT_PPD


def baseline_from_catalog(posts_per_day: Optional[float], measured_at: Optional[str] = None) -> Optional[Baseline]:
    if not posts_per_day or posts_per_day <= 0:
        return None
    value = float(posts_per_day)
    if measured_at or not value.is_integer():
        return Measured(posts_per_day=value)
    return Estimated(posts_per_day=value)


def effective_ppd(baseline: Optional[Baseline]) -> float:
    if baseline is None or baseline.posts_per_day <= 0:
        return CONSERVATIVE_DEFAULT_PPD
    if isinstance(baseline, Measured):
        return baseline.posts_per_day
    return CONSERVATIVE_DEFAULT_PPD


def load_catalog(rows: Iterable[Dict[str, Any]]) -> List[Source]:
    """
    Build Source models from raw catalog rows.
    Accepts camelCase (postsPerDay, baselineMeasuredAt) or snake_case keys.
    """
    out: List[Source] = []
    for r in rows:
        ppd = r.get("posts_per_day", r.get("postsPerDay"))
        measured_at = r.get("baseline_measured_at", r.get("baselineMeasuredAt"))
        out.append(
            Source(
                id=str(r["id"]),
                name=str(r.get("name") or r["id"]),
                tier=r["tier"],
                baseline=baseline_from_catalog(ppd, measured_at),
                region=r.get("region"),
                platform=r.get("platform"),
            )
        )
    return out


def catalog_region_baselines(sources: Iterable[Source]) -> Dict[str, int]:
    """Expected posts per 6h window by region; every source also counts toward "all"."""
    totals: Dict[str, float] = defaultdict(float)
    for s in sources:
        ppd = effective_ppd(s.baseline)
        if s.region and s.region != ALL_REGIONS:
            totals[s.region] += ppd
        totals[ALL_REGIONS] += ppd
    return {region: int(round_half_up(total / 4)) for region, total in totals.items()}
