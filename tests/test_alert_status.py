from datetime import timedelta

import pytest

from pulse.alert_status import (
    CascadeConfig,
    classify,
    classify_all,
    extract_keywords,
    has_significant_keywords,
    is_similar,
    rank_for_display,
)
from pulse.schema import AlertStatus


def test_reordered_headline_is_similar():
    assert is_similar("Missile strike hits Kyiv power plant", "Kyiv power plant hit by missile strike")


def test_unrelated_headline_is_not_similar():
    assert not is_similar("Missile strike hits Kyiv", "Local bakery wins award")


def test_titles_without_keywords_never_match():
    assert not is_similar("It is on", "to be or")


def test_extract_keywords_strips_punctuation_stop_words_and_short_tokens():
    assert extract_keywords("BREAKING: IDF says it's in Gaza, 3 km!") == ["breaking", "idf", "gaza"]


def test_keyword_gate_is_case_insensitive_substring():
    assert has_significant_keywords("MARTIAL LAW declared", "")
    assert has_significant_keywords("Quiet morning", "airstrikes reported overnight")
    assert not has_significant_keywords("Weather is nice", "Sunny all week")


def test_confirmation_tier_is_confirmed_when_significant(make_item, now):
    official = make_item("Ministry confirms missile attack", tier="official")
    reporter = make_item("Markets close higher", tier="reporter")
    assert classify(official, [official], now) is AlertStatus.CONFIRMED
    assert classify(reporter, [reporter], now) is None


def test_first_mover_without_keywords_gets_nothing(make_item, now):
    item = make_item("Local bakery wins award", tier="ground")
    assert classify(item, [item], now) is None


def test_lone_early_report_is_first(make_item, now):
    item = make_item("Explosion reported near capital", tier="osint", minutes_ago=2)
    assert classify(item, [item], now) is AlertStatus.FIRST


def test_corroborated_early_reports_are_developing(make_item, now):
    items = [
        make_item("Explosion reported near capital", tier="osint", minutes_ago=10),
        make_item("Explosion reported near the capital city", tier="ground", minutes_ago=6),
        make_item("Large explosion reported near capital", tier="osint", minutes_ago=4),
    ]
    assert [classify(i, items, now) for i in items] == [AlertStatus.DEVELOPING] * 3


def test_single_corroboration_stays_first(make_item, now):
    items = [
        make_item("Explosion reported near capital", tier="osint", minutes_ago=10),
        make_item("Explosion reported near the capital city", tier="osint", minutes_ago=5),
    ]
    assert [classify(i, items, now) for i in items] == [AlertStatus.FIRST] * 2


def test_confirmation_tier_items_do_not_count_as_corroboration(make_item, now):
    items = [
        make_item("Explosion reported near capital", tier="osint", minutes_ago=10),
        make_item("Explosion reported near capital", tier="official", minutes_ago=5),
        make_item("Explosion reported near capital", tier="reporter", minutes_ago=5),
    ]
    assert classify(items[0], items, now) is AlertStatus.FIRST


def test_aged_report_without_confirmation_drops_badge(make_item, now):
    item = make_item("Explosion reported near capital", tier="osint", minutes_ago=45)
    assert classify(item, [item], now) is None


def test_aged_report_needs_strictly_later_confirmation(make_item, now):
    early = make_item("Drone attack on refinery", tier="ground", minutes_ago=60)
    earlier_official = make_item("Drone attack on refinery", tier="official", minutes_ago=90)
    same_time = make_item("Drone attack on refinery", tier="reporter", minutes_ago=60)
    assert classify(early, [early, earlier_official, same_time], now) is None

    later = make_item("Officials confirm drone attack on refinery", tier="reporter", minutes_ago=20)
    assert classify(early, [early, later], now) is AlertStatus.CONFIRMED


def test_item_without_source_gets_nothing(make_item, now):
    item = make_item("Breaking: explosion").model_copy(update={"source": None})
    assert classify(item, [item], now) is None


def test_cascade_scenario(make_item, now):
    t0 = now - timedelta(minutes=40)
    osint1 = make_item("Explosion reported near capital", tier="osint",
                       source_name="OSINTdefender", now=t0)
    osint2 = make_item("Explosion reported near the capital city", tier="osint", now=t0 + timedelta(minutes=5))
    osint3 = make_item("Large explosion reported near capital", tier="ground", now=t0 + timedelta(minutes=6))
    official = make_item("Officials confirm explosion near capital", tier="official", now=now)

    (only,) = classify_all([osint1], now=t0 + timedelta(minutes=1))
    assert only.alert_status is AlertStatus.FIRST

    statuses = [i.alert_status for i in classify_all([osint1, osint2, osint3], now=t0 + timedelta(minutes=7))]
    assert statuses == [AlertStatus.DEVELOPING] * 3

    out = {i.id: i for i in classify_all([osint1, osint2, osint3, official], now=now)}
    assert out[official.id].alert_status is AlertStatus.CONFIRMED
    assert out[official.id].confirms_source == "OSINTdefender"
    assert out[osint1.id].alert_status is AlertStatus.CONFIRMED
    assert out[osint1.id].confirms_source is None
    assert out[osint2.id].alert_status is AlertStatus.CONFIRMED


def test_confirms_source_picks_earliest_first_mover(make_item, now):
    late = make_item("Hostage release underway in Gaza", tier="osint", source_name="Late", minutes_ago=20)
    early = make_item("Hostage release underway in Gaza", tier="ground", source_name="Early", minutes_ago=50)
    official = make_item("Hostage release underway in Gaza", tier="official", minutes_ago=5)
    out = classify_all([late, official, early], now=now)
    assert out[1].confirms_source == "Early"


def test_classify_all_does_not_mutate_input(make_item, now):
    item = make_item("Breaking: troops cross border", tier="osint")
    (out,) = classify_all([item], now=now)
    assert out.alert_status is AlertStatus.FIRST
    assert item.alert_status is None


def test_classify_all_drops_duplicate_ids(make_item, now):
    a = make_item("Explosion reported near capital", tier="osint", item_id="dup", minutes_ago=2)
    b = make_item("Explosion reported near capital", tier="osint", minutes_ago=3)
    out = classify_all([a, a, b], now=now)
    assert [i.id for i in out] == ["dup", b.id]
    assert all(i.alert_status is AlertStatus.FIRST for i in out)


def test_custom_config_is_injectable(make_item, now):
    cfg = CascadeConfig(significant_keywords=("bakery",), developing_min_corroborations=1)
    items = [
        make_item("Local bakery wins award", tier="osint", minutes_ago=1),
        make_item("Bakery wins local award", tier="osint", minutes_ago=2),
    ]
    assert [classify(i, items, now, cfg) for i in items] == [AlertStatus.DEVELOPING] * 2
    assert classify(items[0], items, now) is None


def test_stricter_threshold_rejects_loose_match():
    strict = CascadeConfig(similarity_threshold=0.9)
    assert not is_similar("Missile strike hits Kyiv power plant", "Kyiv power plant hit by missile strike", strict)


def test_ground_ranks_above_official_at_same_time(make_item, now):
    official = make_item("Missile attack confirmed", tier="official")
    ground = make_item("Quiet street", tier="ground")
    ranked = rank_for_display(classify_all([official, ground], now=now))
    assert [i.id for i in ranked] == [ground.id, official.id]


@pytest.mark.parametrize("tier", ["ground", "osint", "reporter", "official"])
def test_status_then_recency_within_tier(make_item, now, tier):
    plain_new = make_item("Nothing to see", tier=tier, minutes_ago=0)
    badged_old = make_item("Explosion at depot", tier=tier, minutes_ago=10)
    plain_old = make_item("Nothing to see here", tier=tier, minutes_ago=20)
    ranked = rank_for_display(classify_all([plain_old, plain_new, badged_old], now=now))
    assert [i.id for i in ranked] == [badged_old.id, plain_new.id, plain_old.id]


def test_full_tier_order(make_item, now):
    items = [
        make_item("a", tier="official", minutes_ago=0),
        make_item("b", tier="reporter", minutes_ago=1),
        make_item("c", tier="osint", minutes_ago=2),
        make_item("d", tier="ground", minutes_ago=300),
    ]
    ranked = rank_for_display(items)
    assert [i.tier.value for i in ranked] == ["ground", "osint", "reporter", "official"]


def test_ranking_is_stable_for_ties(make_item, now):
    a = make_item("same", tier="osint", item_id="a")
    b = make_item("same", tier="osint", item_id="b")
    assert [i.id for i in rank_for_display([a, b])] == ["a", "b"]
    assert [i.id for i in rank_for_display([b, a])] == ["b", "a"]
