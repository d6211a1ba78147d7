# pulse/pipeline.py
from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel

from pulse import source_activity
from pulse.activity_logging import log_activity_in_background, window_items
from pulse.alert_status import CascadeConfig, DEFAULT_CONFIG, classify_all, dedupe_by_id, rank_for_display
from pulse.db import baseline_averages_by_region
from pulse.logging_config import configure_logging
from pulse.region_activity import baselines_from_averages, calculate_region_activity
from pulse.schema import ALL_REGIONS, Item, RegionActivity, Source, SourceActivityProfile
from pulse.sources import catalog_region_baselines, load_catalog
from pulse.utils import as_utc, utcnow

logger = logging.getLogger(__name__)


class DecoratedBatch(BaseModel):
    items: List[Item]
    source_activity: Dict[str, SourceActivityProfile]
    activity: Dict[str, RegionActivity]


def load_region_baselines(
    db_path: Optional[Union[str, Path]] = None,
    now: Optional[datetime] = None,
    catalog: Optional[Iterable[Source]] = None,
) -> Dict[str, float]:
    """
    Catalog-derived baselines overlaid with rolling store averages.
    A failed store read keeps the catalog layer; regions in neither get the flat default.
    """
    baselines: Dict[str, float] = dict(catalog_region_baselines(catalog)) if catalog else {}
    try:
        baselines.update(baselines_from_averages(baseline_averages_by_region(now=now, db_path=db_path)))
    except Exception:
        logger.exception("[INGEST] baseline read failed, using catalog baselines")
    return baselines


def process_batch(
    items: List[Item],
    region: str = ALL_REGIONS,
    source_count: Optional[int] = None,
    fetch_duration_ms: Optional[int] = None,
    now: Optional[datetime] = None,
    log_activity: bool = True,
    region_baselines: Optional[Mapping[str, float]] = None,
    cfg: CascadeConfig = DEFAULT_CONFIG,
    db_path: Optional[Union[str, Path]] = None,
    catalog: Optional[Iterable[Source]] = None,
) -> DecoratedBatch:
    """
    Decorate one batch for a response.
    - repeated item ids are dropped once, before any counting
    - the activity snapshot write is submitted in the background and never awaited
    - source activity, cascade badges and ordering are computed synchronously
    """
    now = as_utc(now or utcnow())
    items = dedupe_by_id(items)
    recent = window_items(items, now)

    if source_count is None:
        source_count = len({i.source.id for i in recent if i.source is not None})

    if log_activity and region == ALL_REGIONS:
        log_activity_in_background(region, recent, source_count, fetch_duration_ms, now, db_path)

    profiles = source_activity.evaluate(recent)
    decorated = source_activity.attach(items, profiles)
    decorated = classify_all(decorated, now, cfg)
    ranked = rank_for_display(decorated)

    if region_baselines is None:
        region_baselines = load_region_baselines(db_path, now, catalog)
    activity = calculate_region_activity(recent, region_baselines, now)

    anomalous = sum(1 for p in profiles.values() if p.is_anomalous)
    logger.info(
        "[INGEST] items=%d window=%d sources=%d anomalous=%d",
        len(ranked), len(recent), len(profiles), anomalous,
    )
    return DecoratedBatch(items=ranked, source_activity=profiles, activity=activity)


def load_items(path: Union[str, Path]) -> List[Item]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("items", [])
    return [Item.model_validate(r) for r in raw]


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Decorate a batch of items with cascade badges and source activity")
    ap.add_argument("items", help="JSON file with a list of items (or {'items': [...]})")
    ap.add_argument("--region", default=ALL_REGIONS)
    ap.add_argument("--catalog", help="JSON file with source catalog rows, used for region baselines")
    ap.add_argument("--no-log", action="store_true", help="skip the activity snapshot write")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)

    configure_logging(level=args.log_level)
    items = load_items(args.items)
    if not items:
        print("[INGEST] No items in file.")
        return

    catalog = None
    if args.catalog:
        catalog = load_catalog(json.loads(Path(args.catalog).read_text(encoding="utf-8")))

    batch = process_batch(items, region=args.region, log_activity=not args.no_log, catalog=catalog)
    for item in batch.items:
        tier = item.tier.value if item.tier else "-"
        status = item.alert_status.value if item.alert_status else "-"
        surge = " SURGE" if item.source_activity and item.source_activity.is_anomalous else ""
        confirms = f" (confirms {item.confirms_source})" if item.confirms_source else ""
        print(f"{tier:<9} {status:<10} {item.timestamp:%Y-%m-%d %H:%M} {item.title}{confirms}{surge}")


if __name__ == "__main__":
    main()
