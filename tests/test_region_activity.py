from datetime import datetime, timezone

import pytest

from pulse.region_activity import baselines_from_averages, calculate_region_activity, time_of_day_multiplier
from pulse.schema import RegionBaselineAverage


def _items(make_item, region, n):
    return [make_item(region=region, minutes_ago=i) for i in range(n)]


@pytest.mark.parametrize("hour, expected", [(0, 0.4), (5, 0.4), (6, 0.8), (13, 1.5), (18, 1.3), (23, 1.3)])
def test_time_of_day_multiplier(hour, expected):
    assert time_of_day_multiplier(datetime(2026, 3, 1, hour, tzinfo=timezone.utc)) == expected


def test_counts_every_tracked_region(make_item, now):
    items = _items(make_item, "us", 10) + _items(make_item, "middle-east", 20) + _items(make_item, "europe-russia", 5)
    activity = calculate_region_activity(items, {}, now)
    assert set(activity) == {"us", "latam", "middle-east", "europe-russia", "asia", "africa"}
    assert activity["us"].count == 10
    assert activity["middle-east"].count == 20
    assert activity["latam"].count == 0


def test_elevated_when_above_ratio_and_count_floor(make_item, now):
    activity = calculate_region_activity(_items(make_item, "us", 80), {"us": 20}, now)
    us = activity["us"]
    assert us.baseline == 30
    assert us.multiplier == 2.7
    assert us.level == "elevated"
    assert us.vs_normal == "above"
    assert us.percent_change == 167


def test_critical_needs_five_times_and_fifty_posts(make_item, now):
    activity = calculate_region_activity(_items(make_item, "middle-east", 80), {"middle-east": 10}, now)
    assert activity["middle-east"].multiplier == 5.3
    assert activity["middle-east"].level == "critical"

    small = calculate_region_activity(_items(make_item, "middle-east", 20), {"middle-east": 1}, now)
    assert small["middle-east"].multiplier == 10.0
    assert small["middle-east"].level == "normal"


def test_excluded_regions_stay_normal(make_item, now):
    items = _items(make_item, "latam", 200) + _items(make_item, "asia", 200)
    activity = calculate_region_activity(items, {"latam": 1, "asia": 1}, now)
    assert activity["latam"].level == "normal"
    assert activity["asia"].level == "normal"
    assert activity["latam"].count == 200


def test_missing_baseline_falls_back_and_quiet_is_below(now):
    activity = calculate_region_activity([], {}, now)
    assert activity["us"].baseline == 45
    assert activity["us"].multiplier == 0.0
    assert activity["us"].vs_normal == "below"
    assert activity["us"].percent_change == -100


def test_baseline_never_below_one(make_item):
    night = datetime(2026, 3, 1, 2, tzinfo=timezone.utc)
    activity = calculate_region_activity([], {"us": 0.5}, night)
    assert activity["us"].baseline == 1


def test_baselines_from_averages():
    averages = [
        RegionBaselineAverage(region="us", avg_posts_6h=42.5, sample_count=12),
        RegionBaselineAverage(region="asia", avg_posts_6h=3.0, sample_count=4),
    ]
    assert baselines_from_averages(averages) == {"us": 42.5, "asia": 3.0}
