# pulse/db.py
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Union

import duckdb
import pandas as pd

import config
from pulse.schema import ALL_REGIONS, ActivityLogEntry, RegionBaselineAverage, RollingAverage
from pulse.utils import as_utc, round_half_up, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

BUCKET_HOURS = 6

# Canonical column order (queries select by name, keep this list as truth)
LOG_COLUMNS: List[str] = [
    "id",
    "bucket_timestamp",
    "region",
    "post_count",
    "source_count",
    "region_breakdown",
    "platform_breakdown",
    "recorded_at",
    "fetch_duration_ms",
]

# Serializes writers in this process; duckdb rejects concurrent updates of one row.
# The database file admits one writing process at a time.
_write_lock = threading.Lock()
_schema_lock = threading.Lock()


def connect(db_path: Optional[Union[str, Path]] = None) -> duckdb.DuckDBPyConnection:
    con = duckdb.connect(str(db_path or config.DB_PATH))
    with _schema_lock:
        _ensure_schema(con)
    return con


def _ensure_schema(con: duckdb.DuckDBPyConnection) -> None:
    con.execute("CREATE SEQUENCE IF NOT EXISTS post_activity_logs_id_seq START 1")
    con.execute(
        """
        CREATE TABLE IF NOT EXISTS post_activity_logs (
          id INTEGER DEFAULT nextval('post_activity_logs_id_seq'),

          -- 6-hour boundary: 00:00, 06:00, 12:00, 18:00 UTC (stored naive)
          bucket_timestamp TIMESTAMP NOT NULL,
          region VARCHAR NOT NULL,

          post_count INTEGER NOT NULL DEFAULT 0,
          source_count INTEGER NOT NULL DEFAULT 0,

          region_breakdown VARCHAR,
          platform_breakdown VARCHAR,

          recorded_at TIMESTAMP,
          fetch_duration_ms INTEGER,

          PRIMARY KEY (bucket_timestamp, region)
        );
        """
    )


def bucket_for(instant: Union[datetime, str]) -> datetime:
    """
    Floor an instant to the start of its 6-hour UTC bucket.
    Naive datetimes are taken as UTC; the result is always aware.
    """
    ts = as_utc(instant)
    hour = (ts.hour // BUCKET_HOURS) * BUCKET_HOURS
    return ts.replace(hour=hour, minute=0, second=0, microsecond=0)


def _dump(breakdown: Optional[Dict[str, int]]) -> Optional[str]:
    if breakdown is None:
        return None
    return json.dumps(breakdown, sort_keys=True)


def record_snapshot(
    region: str,
    bucket_start: Union[datetime, str],
    count: int,
    source_count: int,
    region_breakdown: Optional[Dict[str, int]] = None,
    platform_breakdown: Optional[Dict[str, int]] = None,
    fetch_duration_ms: Optional[int] = None,
    recorded_at: Optional[datetime] = None,
    db_path: Optional[Union[str, Path]] = None,
) -> None:
    """
    Upsert one (bucket, region) row.
    - post_count keeps the max of stored and incoming (a later partial snapshot never lowers it)
    - every other column is overwritten, recorded_at refreshed
    """
    params = [
        to_naive_utc(bucket_for(bucket_start)),
        region,
        int(count),
        int(source_count),
        _dump(region_breakdown),
        _dump(platform_breakdown),
        to_naive_utc(recorded_at or utcnow()),
        int(fetch_duration_ms) if fetch_duration_ms else None,
    ]

    with _write_lock:
        con = connect(db_path)
        try:
            con.execute(
                """
                INSERT INTO post_activity_logs
                  (bucket_timestamp, region, post_count, source_count,
                   region_breakdown, platform_breakdown, recorded_at, fetch_duration_ms)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (bucket_timestamp, region)
                DO UPDATE SET
                  post_count = greatest(post_count, EXCLUDED.post_count),
                  source_count = EXCLUDED.source_count,
                  region_breakdown = EXCLUDED.region_breakdown,
                  platform_breakdown = EXCLUDED.platform_breakdown,
                  recorded_at = EXCLUDED.recorded_at,
                  fetch_duration_ms = EXCLUDED.fetch_duration_ms
                """,
                params,
            )
        finally:
            con.close()


def _window_start(days: int, now: Optional[datetime]) -> datetime:
    return to_naive_utc((now or utcnow()) - timedelta(days=days))


def _entries(cursor: duckdb.DuckDBPyConnection) -> List[ActivityLogEntry]:
    cols = [d[0] for d in cursor.description]
    return [ActivityLogEntry.model_validate(dict(zip(cols, row))) for row in cursor.fetchall()]


def recent_logs(limit: int = 50, db_path: Optional[Union[str, Path]] = None) -> List[ActivityLogEntry]:
    con = connect(db_path)
    try:
        cur = con.execute(
            f"""
            SELECT {", ".join(LOG_COLUMNS)} FROM post_activity_logs
            ORDER BY bucket_timestamp DESC, region
            LIMIT ?
            """,
            [int(limit)],
        )
        return _entries(cur)
    finally:
        con.close()


def rolling_averages(
    days: int = config.ROLLING_WINDOW_DAYS,
    now: Optional[datetime] = None,
    db_path: Optional[Union[str, Path]] = None,
) -> List[RollingAverage]:
    con = connect(db_path)
    try:
        rows = con.execute(
            """
            SELECT
              region,
              avg(post_count) AS avg_posts_6h,
              count(*) AS sample_count,
              min(post_count) AS min_posts,
              max(post_count) AS max_posts,
              arg_max(post_count, bucket_timestamp) AS latest_count
            FROM post_activity_logs
            WHERE bucket_timestamp > ?
            GROUP BY region
            ORDER BY region
            """,
            [_window_start(days, now)],
        ).fetchall()
    finally:
        con.close()

    return [
        RollingAverage(
            region=region,
            avg_posts_6h=round_half_up(avg, 1),
            sample_count=n,
            min_posts=lo,
            max_posts=hi,
            latest_count=latest,
        )
        for region, avg, n, lo, hi, latest in rows
    ]


def trend(
    region: str,
    days: int = 7,
    now: Optional[datetime] = None,
    db_path: Optional[Union[str, Path]] = None,
) -> List[ActivityLogEntry]:
    con = connect(db_path)
    try:
        cur = con.execute(
            f"""
            SELECT {", ".join(LOG_COLUMNS)} FROM post_activity_logs
            WHERE region = ?
              AND bucket_timestamp > ?
            ORDER BY bucket_timestamp DESC
            """,
            [region, _window_start(days, now)],
        )
        return _entries(cur)
    finally:
        con.close()


def baseline_averages_by_region(
    days: int = config.ROLLING_WINDOW_DAYS,
    now: Optional[datetime] = None,
    db_path: Optional[Union[str, Path]] = None,
) -> List[RegionBaselineAverage]:
    """
    Per-region 6h averages decomposed from the "all" rows' region_breakdown.
    The aggregate row reflects the region each post was finally attributed to,
    so nothing is counted twice.
    """
    con = connect(db_path)
    try:
        df = con.execute(
            """
            SELECT region_breakdown FROM post_activity_logs
            WHERE region = ?
              AND bucket_timestamp > ?
              AND region_breakdown IS NOT NULL
            """,
            [ALL_REGIONS, _window_start(days, now)],
        ).df()
    finally:
        con.close()

    if df.empty:
        return []

    wide = pd.DataFrame(df["region_breakdown"].map(json.loads).tolist())
    if wide.empty:
        return []
    long = wide.melt(var_name="region", value_name="count").dropna(subset=["count"])

    agg = (
        long.groupby("region")["count"]
        .agg(avg_posts_6h="mean", sample_count="count")
        .reset_index()
        .sort_values("region")
    )
    return [
        RegionBaselineAverage(
            region=str(r.region),
            avg_posts_6h=round_half_up(float(r.avg_posts_6h), 1),
            sample_count=int(r.sample_count),
        )
        for r in agg.itertuples(index=False)
    ]


def prune_logs(
    retention_days: int = config.RETENTION_DAYS,
    now: Optional[datetime] = None,
    db_path: Optional[Union[str, Path]] = None,
) -> int:
    cutoff = _window_start(retention_days, now)
    with _write_lock:
        con = connect(db_path)
        try:
            (n,) = con.execute(
                "SELECT count(*) FROM post_activity_logs WHERE bucket_timestamp < ?", [cutoff]
            ).fetchone()
            con.execute("DELETE FROM post_activity_logs WHERE bucket_timestamp < ?", [cutoff])
        finally:
            con.close()
    logger.info("[ACTIVITY] pruned %d rows older than %s", n, cutoff)
    return int(n)
