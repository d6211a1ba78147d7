# pulse/source_activity.py
from __future__ import annotations

from typing import Dict, List, Optional

import config
from pulse.schema import Baseline, Item, SourceActivity, SourceActivityProfile
from pulse.sources import effective_ppd
from pulse.utils import round_half_up


def expected_in_window(posts_per_day: float, window_hours: int = config.WINDOW_HOURS) -> float:
    return posts_per_day * window_hours / 24


def anomaly_ratio(observed: int, expected: float) -> float:
    if expected <= 0:
        return 0.0
    return round_half_up(observed / expected, 1)


def is_anomalous(ratio: float, observed: int) -> bool:
    # count floor: one extra post from a quiet source gives a huge ratio
    return ratio >= config.ANOMALY_THRESHOLD and observed >= config.MIN_ANOMALOUS_COUNT


def evaluate(items: List[Item], window_hours: int = config.WINDOW_HOURS) -> Dict[str, SourceActivityProfile]:
    """
    Per-source activity for a batch already filtered to one window.
    Items without a source are skipped. Only sources with posts appear.
    """
    counts: Dict[str, int] = {}
    baselines: Dict[str, Optional[Baseline]] = {}
    for item in items:
        if item.source is None:
            continue
        sid = item.source.id
        if sid in counts:
            counts[sid] += 1
        else:
            counts[sid] = 1
            baselines[sid] = item.source.baseline

    profiles: Dict[str, SourceActivityProfile] = {}
    for sid, observed in counts.items():
        ppd = effective_ppd(baselines[sid])
        expected = expected_in_window(ppd, window_hours)
        ratio = anomaly_ratio(observed, expected)
        profiles[sid] = SourceActivityProfile(
            source_id=sid,
            baseline_posts_per_day=ppd,
            recent_posts=observed,
            recent_window_hours=window_hours,
            expected_posts=expected,
            anomaly_ratio=ratio,
            is_anomalous=is_anomalous(ratio, observed),
        )
    return profiles


def attach(items: List[Item], profiles: Dict[str, SourceActivityProfile]) -> List[Item]:
    """Return copies of `items` carrying their source's activity summary."""
    out: List[Item] = []
    for item in items:
        profile = profiles.get(item.source.id) if item.source else None
        if profile is None:
            out.append(item)
            continue
        out.append(
            item.model_copy(
                update={
                    "source_activity": SourceActivity(
                        is_anomalous=profile.is_anomalous,
                        anomaly_ratio=profile.anomaly_ratio,
                        recent_count=profile.recent_posts,
                        window_hours=profile.recent_window_hours,
                        baseline=profile.baseline_posts_per_day,
                    )
                }
            )
        )
    return out
