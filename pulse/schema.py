# pulse/schema.py
from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from pulse.utils import as_utc

Region = Literal[
    "all",
    "middle-east",
    "ukraine-russia",
    "china-taiwan",
    "venezuela",
    "us-domestic",
    "us",
    "latam",
    "europe-russia",
    "asia",
    "africa",
    "seismic",
]

# Pseudo-region holding the sum across all regions
ALL_REGIONS = "all"

TRACKED_REGIONS = ["us", "latam", "middle-east", "europe-russia", "asia", "africa"]


class SourceTier(str, Enum):
    GROUND = "ground"
    OSINT = "osint"
    REPORTER = "reporter"
    OFFICIAL = "official"

    @property
    def precedence(self) -> int:
        return TIER_PRECEDENCE[self]

    @property
    def is_first_mover(self) -> bool:
        return self in FIRST_MOVER_TIERS

    @property
    def is_confirmation(self) -> bool:
        return self in CONFIRMATION_TIERS


TIER_PRECEDENCE = {
    SourceTier.GROUND: 1,
    SourceTier.OSINT: 2,
    SourceTier.REPORTER: 3,
    SourceTier.OFFICIAL: 4,
}
FIRST_MOVER_TIERS = frozenset({SourceTier.GROUND, SourceTier.OSINT})
CONFIRMATION_TIERS = frozenset({SourceTier.REPORTER, SourceTier.OFFICIAL})


class AlertStatus(str, Enum):
    FIRST = "first"
    DEVELOPING = "developing"
    CONFIRMED = "confirmed"


class Measured(BaseModel):
    """Posts-per-day rate taken from an actual measurement run."""

    kind: Literal["measured"] = "measured"
    posts_per_day: float


class Estimated(BaseModel):
    """Posts-per-day rate entered by hand; not trusted for expectation math."""

    kind: Literal["estimated"] = "estimated"
    posts_per_day: float


Baseline = Annotated[Union[Measured, Estimated], Field(discriminator="kind")]


class Source(BaseModel):
    id: str
    name: str
    tier: SourceTier
    baseline: Optional[Baseline] = None
    region: Optional[Region] = None
    platform: Optional[str] = None  # "bluesky" | "rss" | "telegram" | "mastodon" | ...


class SourceActivity(BaseModel):
    is_anomalous: bool
    anomaly_ratio: float
    recent_count: int
    window_hours: int
    baseline: float


class Item(BaseModel):
    id: str
    title: str
    content: str = ""
    timestamp: datetime
    region: Region
    source: Optional[Source] = None
    platform: Optional[str] = None
    url: Optional[str] = None

    # decorations; never persisted
    alert_status: Optional[AlertStatus] = None
    confirms_source: Optional[str] = None
    source_activity: Optional[SourceActivity] = None

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)

    @property
    def tier(self) -> Optional[SourceTier]:
        return self.source.tier if self.source else None


class SourceActivityProfile(BaseModel):
    source_id: str
    baseline_posts_per_day: float
    recent_posts: int
    recent_window_hours: int
    expected_posts: float
    anomaly_ratio: float
    is_anomalous: bool


def _load_breakdown(v):
    if isinstance(v, str):
        return json.loads(v)
    return v


class ActivityLogEntry(BaseModel):
    id: Optional[int] = None
    bucket_timestamp: datetime
    region: str
    post_count: int
    source_count: int
    region_breakdown: Optional[Dict[str, int]] = None
    platform_breakdown: Optional[Dict[str, int]] = None
    recorded_at: Optional[datetime] = None
    fetch_duration_ms: Optional[int] = None

    @field_validator("region_breakdown", "platform_breakdown", mode="before")
    @classmethod
    def _json_breakdown(cls, v):
        return _load_breakdown(v)

    @field_validator("bucket_timestamp", "recorded_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None


class RollingAverage(BaseModel):
    region: str
    avg_posts_6h: float
    sample_count: int
    min_posts: int
    max_posts: int
    latest_count: int


class RegionBaselineAverage(BaseModel):
    region: str
    avg_posts_6h: float
    sample_count: int


class RegionActivity(BaseModel):
    level: str  # "critical" | "elevated" | "normal"
    count: int
    baseline: int
    multiplier: float
    vs_normal: str  # "above" | "below" | "normal"
    percent_change: int
