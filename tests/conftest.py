from datetime import datetime, timedelta, timezone

import pytest

from pulse.schema import Item, Source

NOW = datetime(2026, 3, 1, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "activity.duckdb"


@pytest.fixture
def make_item():
    counter = {"n": 0}

    def _make(
        title="Routine update",
        tier="osint",
        minutes_ago=0,
        content="",
        source_id=None,
        source_name=None,
        region="middle-east",
        baseline=None,
        platform="bluesky",
        item_id=None,
        now=NOW,
    ):
        counter["n"] += 1
        sid = source_id or f"src-{counter['n']}"
        return Item(
            id=item_id or f"item-{counter['n']}",
            title=title,
            content=content,
            timestamp=now - timedelta(minutes=minutes_ago),
            region=region,
            platform=platform,
            source=Source(
                id=sid,
                name=source_name or sid.upper(),
                tier=tier,
                baseline=baseline,
                platform=platform,
            ),
        )

    return _make
