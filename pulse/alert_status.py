# pulse/alert_status.py
"""Cascade badges.

first       early report from an osint/ground source (< 30 min, significant)
developing  several osint/ground sources reporting a similar story
confirmed   reporter/official coverage, or an early report later matched by one

Badges are recomputed from scratch for every batch; nothing carries over.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

import config
from pulse.schema import AlertStatus, Item, SourceTier
from pulse.utils import as_utc, utcnow

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")

STATUS_PRECEDENCE = {
    AlertStatus.FIRST: 1,
    AlertStatus.DEVELOPING: 2,
    AlertStatus.CONFIRMED: 3,
}
UNSET_PRECEDENCE = 4


class CascadeConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    significant_keywords: Tuple[str, ...] = Field(default_factory=lambda: tuple(config.SIGNIFICANT_KEYWORDS))
    stop_words: FrozenSet[str] = Field(default_factory=lambda: frozenset(config.STOP_WORDS))
    similarity_threshold: float = config.SIMILARITY_THRESHOLD
    first_window_minutes: int = config.FIRST_WINDOW_MINUTES
    developing_min_corroborations: int = config.DEVELOPING_MIN_CORROBORATIONS

    @property
    def first_window(self) -> timedelta:
        return timedelta(minutes=self.first_window_minutes)


DEFAULT_CONFIG = CascadeConfig()


def has_significant_keywords(title: str, content: str, cfg: CascadeConfig = DEFAULT_CONFIG) -> bool:
    text = f"{title or ''} {content or ''}".lower()
    return any(kw in text for kw in cfg.significant_keywords)


def extract_keywords(text: str, cfg: CascadeConfig = DEFAULT_CONFIG) -> List[str]:
    cleaned = _NON_ALNUM.sub("", (text or "").lower())
    return [w for w in cleaned.split() if len(w) > 2 and w not in cfg.stop_words]


def is_similar(title1: str, title2: str, cfg: CascadeConfig = DEFAULT_CONFIG) -> bool:
    words1 = extract_keywords(title1, cfg)
    words2 = extract_keywords(title2, cfg)
    longest = max(len(words1), len(words2))
    if longest == 0:
        return False
    other = set(words2)
    shared = sum(1 for w in words1 if w in other)
    return shared / longest >= cfg.similarity_threshold


def find_similar_items(item: Item, all_items: List[Item], first_movers: bool, cfg: CascadeConfig) -> List[Item]:
    return [
        other
        for other in all_items
        if other.id != item.id
        and other.tier is not None
        and other.tier.is_first_mover == first_movers
        and is_similar(item.title, other.title, cfg)
    ]


def classify(
    item: Item,
    all_items: List[Item],
    now: Optional[datetime] = None,
    cfg: CascadeConfig = DEFAULT_CONFIG,
) -> Optional[AlertStatus]:
    tier = item.tier
    if tier is None:
        return None

    significant = has_significant_keywords(item.title, item.content, cfg)

    if tier.is_confirmation:
        return AlertStatus.CONFIRMED if significant else None

    if not tier.is_first_mover or not significant:
        return None

    age = as_utc(now or utcnow()) - item.timestamp
    if age < cfg.first_window:
        corroborating = find_similar_items(item, all_items, True, cfg)
        if len(corroborating) >= cfg.developing_min_corroborations:
            return AlertStatus.DEVELOPING
        return AlertStatus.FIRST

    # aged out of the first window: only a later confirmation keeps the badge
    confirmed_later = any(
        other.tier is not None
        and other.tier.is_confirmation
        and other.timestamp > item.timestamp
        and is_similar(item.title, other.title, cfg)
        for other in all_items
    )
    return AlertStatus.CONFIRMED if confirmed_later else None


def find_original_report(item: Item, all_items: List[Item], cfg: CascadeConfig = DEFAULT_CONFIG) -> Optional[Item]:
    """Earliest first-mover item with a similar title published before `item`."""
    candidates = [
        other
        for other in all_items
        if other.tier is not None
        and other.tier.is_first_mover
        and other.timestamp < item.timestamp
        and is_similar(item.title, other.title, cfg)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda o: o.timestamp)


def dedupe_by_id(items: List[Item]) -> List[Item]:
    seen = set()
    out: List[Item] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        out.append(item)
    return out


def classify_all(
    items: List[Item],
    now: Optional[datetime] = None,
    cfg: CascadeConfig = DEFAULT_CONFIG,
) -> List[Item]:
    """Return copies of the batch with alert_status and confirms_source set."""
    now = as_utc(now or utcnow())
    batch = dedupe_by_id(items)

    out: List[Item] = []
    for item in batch:
        status = classify(item, batch, now, cfg)

        confirms: Optional[str] = None
        if status is AlertStatus.CONFIRMED and item.tier is not None and item.tier.is_confirmation:
            original = find_original_report(item, batch, cfg)
            if original is not None and original.source is not None:
                confirms = original.source.name

        out.append(item.model_copy(update={"alert_status": status, "confirms_source": confirms}))
    return out


def _display_key(item: Item) -> Tuple[int, int, float]:
    tier = item.tier.precedence if item.tier is not None else SourceTier.OFFICIAL.precedence + 1
    status = STATUS_PRECEDENCE.get(item.alert_status, UNSET_PRECEDENCE)
    return tier, status, -item.timestamp.timestamp()


def rank_for_display(items: List[Item]) -> List[Item]:
    """
    Cascade ordering: ground, osint, reporter, official; then first, developing,
    confirmed, unset; then newest first. First-mover tiers always lead.
    """
    return sorted(items, key=_display_key)
