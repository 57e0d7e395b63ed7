from __future__ import annotations

import pytest

from marketlens.matching.scoring import (
    is_open_ended_query,
    jaccard,
    match_score,
    phrase_hit,
    volume_boost,
)


def test_bitcoin_200k_scores_on_single_overlap():
    # {"bitcoin", "200k"} vs {"bitcoin", "reach", "200", "000", "end", "2025"}
    score = match_score("bitcoin 200k", "Will Bitcoin reach $200,000 by end of 2025?", 500_000)
    assert score == pytest.approx(0.5 * 0.58 + (1 / 7) * 0.24 + 0.1)
    assert score > 0


def test_empty_tokens_score_zero():
    assert match_score("", "Will Bitcoin reach 100k?", 1000) == 0
    assert match_score("bitcoin", "the of a", 1000) == 0
    assert match_score("the", "Bitcoin", 1000) == 0


def test_long_query_needs_two_overlapping_tokens():
    # 4-token query, one shared token, no phrase containment
    assert match_score("democratic primary winner 2028", "2028 Olympics host city", 10_000_000) == 0


def test_short_query_accepts_single_overlap():
    assert match_score("bitcoin ethereum", "Bitcoin above 100k", 0) > 0


def test_phrase_hit_overrides_overlap_gate():
    query = "will tesla stock close higher than nvidia friday"
    score = match_score(query, "Tesla", 0)
    assert score == pytest.approx((1 / 7) * 0.58 + (1 / 7) * 0.24 + 0.18)


def test_phrase_hit_requires_six_characters():
    assert phrase_hit("ai act", "EU AI Act enforcement")
    assert not phrase_hit("ai", "AI regulation")
    assert phrase_hit("bitcoin price", "Bitcoin price above 100k")


def test_exact_title_match_takes_every_component():
    score = match_score("Fed rate cut March", "Fed rate cut March", 0)
    assert score == pytest.approx(0.58 + 0.24 + 0.18)


@pytest.mark.parametrize("shorter,longer", [
    ("bitcoin price", "bitcoin price 2025"),
    ("bitcoin price ethereum", "bitcoin price ethereum 2025"),
])
def test_adding_matching_query_token_does_not_decrease_score(shorter, longer):
    title = "Will the price of Bitcoin exceed 100k in 2025?"
    assert match_score(longer, title, 5000) >= match_score(shorter, title, 5000)


def test_monotonic_cases_values():
    title = "Will the price of Bitcoin exceed 100k in 2025?"
    assert match_score("bitcoin price", title, 0) == pytest.approx(0.58 + 0.4 * 0.24)
    assert match_score("bitcoin price 2025", title, 0) == pytest.approx(0.58 + 0.6 * 0.24)


def test_volume_boost_saturates_and_ignores_negative():
    assert volume_boost(0) == 0
    assert volume_boost(-500) == 0
    assert volume_boost(999) == pytest.approx(0.1)
    assert volume_boost(1e12) == 0.1
    assert volume_boost(9) == pytest.approx(1 / 30)


def test_score_never_negative():
    for query, title, volume in [
        ("bitcoin", "ethereum", -1e9),
        ("x", "y", 0),
        ("fed chair", "Fed Chair nominee", -5),
    ]:
        assert match_score(query, title, volume) >= 0


def test_jaccard():
    assert jaccard({"a1", "b1"}, {"b1", "c1"}) == pytest.approx(1 / 3)
    assert jaccard(set(), {"a1"}) == 0


@pytest.mark.parametrize("query,expected", [
    ("Who will Trump nominate as Fed Chair?", True),
    ("who wins the super bowl", True),
    ("Which party controls the Senate", True),
    ("best odds for which candidate wins", True),
    ("so who will it be", True),
    ("Will Bitcoin hit 200k?", False),
    ("whoever wins", False),
    ("Fed rate cut", False),
])
def test_is_open_ended_query(query, expected):
    assert is_open_ended_query(query) is expected
