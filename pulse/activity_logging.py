# pulse/activity_logging.py
"""Post-count snapshots for rolling baselines.

Writes are fire-and-forget: the caller gets a Future back and is never
expected to wait on it. Failures are logged here and never re-raised.
"""
from __future__ import annotations

import atexit
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import config
from pulse.db import bucket_for, record_snapshot
from pulse.schema import ALL_REGIONS, Item
from pulse.utils import as_utc, utcnow

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="activity-log")
atexit.register(_executor.shutdown, wait=True)


def build_snapshot(items: Iterable[Item]) -> Tuple[int, Dict[str, int], Dict[str, int]]:
    """Return (post_count, region_breakdown, platform_breakdown)."""
    total = 0
    regions: Dict[str, int] = {}
    platforms: Dict[str, int] = {}
    for item in items:
        total += 1
        regions[item.region] = regions.get(item.region, 0) + 1
        platform = item.platform or (item.source.platform if item.source else None)
        if platform:
            platforms[platform] = platforms.get(platform, 0) + 1
    return total, regions, platforms


def window_items(
    items: Iterable[Item],
    now: Optional[datetime] = None,
    hours: int = config.WINDOW_HOURS,
) -> List[Item]:
    cutoff = as_utc(now or utcnow()) - timedelta(hours=hours)
    return [i for i in items if i.timestamp > cutoff]


def log_activity_snapshot(
    region: str,
    items: List[Item],
    source_count: int,
    fetch_duration_ms: Optional[int] = None,
    now: Optional[datetime] = None,
    db_path: Optional[Union[str, Path]] = None,
) -> bool:
    """Record one snapshot for the bucket containing `now`. Returns False on failure."""
    try:
        count, regions, platforms = build_snapshot(items)
        record_snapshot(
            region=region,
            bucket_start=bucket_for(now or utcnow()),
            count=count,
            source_count=source_count,
            # only the aggregate row carries the per-region decomposition
            region_breakdown=regions if region == ALL_REGIONS else None,
            platform_breakdown=platforms,
            fetch_duration_ms=fetch_duration_ms,
            recorded_at=now,
            db_path=db_path,
        )
    except Exception:
        logger.exception("[ACTIVITY] Failed to log snapshot for region=%s", region)
        return False
    logger.debug("[ACTIVITY] logged region=%s posts=%d sources=%d", region, count, source_count)
    return True


def log_activity_in_background(
    region: str,
    items: List[Item],
    source_count: int,
    fetch_duration_ms: Optional[int] = None,
    now: Optional[datetime] = None,
    db_path: Optional[Union[str, Path]] = None,
) -> Future:
    # snapshot the list so later caller mutations don't leak into the write
    return _executor.submit(
        log_activity_snapshot,
        region,
        list(items),
        source_count,
        fetch_duration_ms,
        now,
        db_path,
    )
