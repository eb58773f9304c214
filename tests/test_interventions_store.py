from datetime import datetime, timedelta

import pytest

from db.interventions import (
    CooldownActiveError,
    InterventionConflictError,
    InterventionNotFoundError,
    InterventionStore,
)
from scoring.intervention import SystemForEligibility
from scoring.models import Home
from scoring.risk_context import RiskContext

T0 = datetime(2026, 7, 1, 12, 0)
ELIGIBILITY = {
    "score": 4500.0,
    "threshold": 1000,
    "risk_outlook_12mo": 50,
    "breakdown": {"base_risk": 4000.0, "urgency_premium": 500},
    "urgency_factors": {"peak_season": True},
}


@pytest.fixture
def store(con):
    return InterventionStore(con, policy={})


def test_open_and_get(store):
    iid = store.open_intervention("h1", "sys-1", "risk_threshold_crossed", ELIGIBILITY, T0)
    row = store.get(iid)
    assert row["opened_at"] == T0
    assert row["urgency_premium_snapshot"] == 500
    assert row["urgency_factors_snapshot"] == {"peak_season": True}
    assert store.has_open_intervention("sys-1")
    assert not store.has_open_intervention("sys-2")


def test_one_open_per_system(store):
    store.open_intervention("h1", "sys-1", "risk_threshold_crossed", ELIGIBILITY, T0)
    with pytest.raises(InterventionConflictError):
        store.open_intervention("h1", "sys-1", "user_initiated", ELIGIBILITY, T0)


def test_no_action_starts_thirty_day_cooldown(store):
    iid = store.open_intervention("h1", "sys-1", "risk_threshold_crossed", ELIGIBILITY, T0)
    event_id = store.record_decision(iid, "no_action", T0, assumptions={"emergency_cost": 8000})
    row = store.get(iid)
    assert row["closed_reason"] == "decision_made"
    assert row["cooldown_until"] == T0 + timedelta(days=30)
    assert store.decisions_for(iid)[0]["id"] == event_id
    assert store.decisions_for(iid)[0]["assumptions_json"] == {"emergency_cost": 8000}

    assert store.has_active_cooldown("sys-1", T0 + timedelta(days=29))
    assert not store.has_active_cooldown("sys-1", T0 + timedelta(days=31))
    with pytest.raises(CooldownActiveError):
        store.open_intervention("h1", "sys-1", "risk_threshold_crossed", ELIGIBILITY, T0 + timedelta(days=10))
    store.open_intervention("h1", "sys-1", "risk_threshold_crossed", ELIGIBILITY, T0 + timedelta(days=31))


def test_deferral_uses_short_cooldown(store):
    iid = store.open_intervention("h1", "sys-1", "seasonal_risk_event", ELIGIBILITY, T0)
    store.record_decision(iid, "defer_with_date", T0, defer_until=T0 + timedelta(days=90))
    row = store.get(iid)
    assert row["closed_reason"] == "user_deferred"
    assert row["cooldown_until"] == T0 + timedelta(days=7)


def test_configured_cooldowns(con):
    store = InterventionStore(con, policy={"cooldown_days": {"no_action": 60, "default": 3}})
    assert store.cooldown_days("no_action") == 60
    assert store.cooldown_days("replace_now") == 3


def test_close_without_decision_sets_no_cooldown(store):
    iid = store.open_intervention("h1", "sys-1", "user_initiated", ELIGIBILITY, T0)
    store.close_session(iid, T0 + timedelta(minutes=5))
    row = store.get(iid)
    assert row["closed_reason"] == "closed_without_decision"
    assert row["cooldown_until"] is None
    assert not store.has_active_cooldown("sys-1", T0 + timedelta(minutes=6))
    with pytest.raises(InterventionConflictError):
        store.record_decision(iid, "no_action", T0 + timedelta(minutes=7))


def test_stale_sessions_time_out(store):
    iid = store.open_intervention("h1", "sys-1", "risk_threshold_crossed", ELIGIBILITY, T0)
    store.mark_viewed(iid, T0 + timedelta(days=10))
    assert store.close_stale(T0 + timedelta(days=20), max_idle_days=14) == 0
    assert store.close_stale(T0 + timedelta(days=25), max_idle_days=14) == 1
    assert store.get(iid)["closed_reason"] == "timed_out"
    assert not store.has_open_intervention("sys-1")


def test_unknown_ids_and_values(store):
    with pytest.raises(InterventionNotFoundError):
        store.get("nope")
    with pytest.raises(ValueError):
        store.open_intervention("h1", "sys-1", "boredom", ELIGIBILITY, T0)
    iid = store.open_intervention("h1", "sys-1", "user_initiated", ELIGIBILITY, T0)
    with pytest.raises(ValueError):
        store.record_decision(iid, "panic", T0)


def test_evaluate_system_reads_cooldown(store, no_policy):
    system = SystemForEligibility("sys-1", "hvac", risk_outlook_12mo=80)
    assert store.evaluate_system(system, Home("h1"), RiskContext(), T0)["eligible"] is True

    iid = store.open_intervention("h1", "sys-1", "risk_threshold_crossed", ELIGIBILITY, T0)
    open_result = store.evaluate_system(system, Home("h1"), RiskContext(), T0)
    assert open_result["eligible"] is False
    assert open_result["has_active_intervention"] is True

    store.record_decision(iid, "replace_now", T0)
    cooled = store.evaluate_system(system, Home("h1"), RiskContext(), T0 + timedelta(days=1))
    assert cooled["eligible"] is False
    assert cooled["has_active_cooldown"] is True
    assert cooled["cooldown_until"] == (T0 + timedelta(days=7)).isoformat()


class _FailOnClose:
    """Connection wrapper whose closing UPDATE fails."""

    def __init__(self, con):
        self._con = con

    def __getattr__(self, name):
        return getattr(self._con, name)

    def execute(self, sql, params=None):
        if sql.lstrip().startswith("UPDATE interventions SET closed_at"):
            raise RuntimeError("write failed")
        return self._con.execute(sql, params or [])


def test_decision_rolls_back_when_close_fails(store, con):
    iid = store.open_intervention("h1", "sys-1", "risk_threshold_crossed", ELIGIBILITY, T0)
    store.con = _FailOnClose(con)
    with pytest.raises(RuntimeError):
        store.record_decision(iid, "no_action", T0)
    store.con = con
    assert store.decisions_for(iid) == []
    assert store.has_open_intervention("sys-1")
    assert not store.has_active_cooldown("sys-1", T0)
    store.record_decision(iid, "no_action", T0)
    assert len(store.decisions_for(iid)) == 1


def test_close_session_rejects_decision_reasons(store):
    iid = store.open_intervention("h1", "sys-1", "user_initiated", ELIGIBILITY, T0)
    for reason in ("decision_made", "user_deferred", "bogus"):
        with pytest.raises(ValueError):
            store.close_session(iid, T0, reason=reason)
    assert store.has_open_intervention("sys-1")
    store.close_session(iid, T0, reason="timed_out")
    assert store.get(iid)["closed_reason"] == "timed_out"
