from datetime import datetime, timedelta

from scoring.home_confidence import build_signals_map
from scoring.models import ReplacementWindow, SystemTimelineEntry
from scoring.recommendations import (
    generate_recommendations,
    pass_freshness,
    pass_planning,
    remaining_years,
)

NOW = datetime(2026, 6, 1)


def test_empty_home_top_three():
    recs = generate_recommendations([], [], [], [], None, NOW)
    assert [r.id for r in recs] == [
        "documentation:hvac:has_install_year",
        "documentation:roof:has_install_year",
        "documentation:electrical:has_install_year",
    ]
    assert recs[0].priority_score == 9.0
    assert recs[0].route == "/systems/hvac"


def test_dismissed_never_resurface():
    dismissed = {
        "documentation:hvac:has_install_year",
        "documentation:roof:has_install_year",
        "documentation:electrical:has_install_year",
    }
    recs = generate_recommendations([], [], [], dismissed, None, NOW)
    ids = [r.id for r in recs]
    assert not dismissed & set(ids)
    assert ids == [
        "documentation:water_heater:has_install_year",
        "documentation:plumbing:has_install_year",
        "documentation:hvac:has_photo",
    ]


def test_freshness_pass():
    assert len(pass_freshness(None, set(), NOW)) == 1
    assert pass_freshness(NOW - timedelta(days=30), set(), NOW) == []
    stale = pass_freshness(NOW - timedelta(days=600), set(), NOW)
    assert stale[0].id == "freshness:home:data_freshness"
    assert stale[0].priority_score == 3.5
    assert pass_freshness(None, {"freshness:home:data_freshness"}, NOW) == []


def test_planning_pass_targets_late_life_unconfirmed():
    window = ReplacementWindow(early_year=2024, late_year=2028)
    inferred = [SystemTimelineEntry("hvac", install_source="inferred", install_year=2010, replacement_window=window)]
    assert remaining_years(inferred[0], NOW) == 0
    recs = pass_planning(inferred, build_signals_map(inferred, [], []), set(), NOW)
    assert [r.id for r in recs] == ["planning:hvac:has_owner_confirmation"]
    assert recs[0].route == "/systems/hvac/plan"

    confirmed = [SystemTimelineEntry("hvac", install_source="owner_reported", install_year=2010, replacement_window=window)]
    assert pass_planning(confirmed, build_signals_map(confirmed, [], []), set(), NOW) == []


def test_remaining_years_needs_window():
    assert remaining_years(SystemTimelineEntry("roof", install_year=2010), NOW) is None


def test_cap_and_order():
    recs = generate_recommendations([], [], [], [], NOW - timedelta(days=900), NOW, year_built=1980)
    assert len(recs) == 3
    scores = [r.priority_score for r in recs]
    assert scores == sorted(scores, reverse=True)
