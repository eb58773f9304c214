from datetime import datetime

import pytest

from scoring.chat_mode import (
    ChatModeInput,
    ChatModeSession,
    SystemModeInput,
    build_chat_mode_context,
    chat_mode_label,
    compute_critical_systems_coverage,
    compute_individual_confidence,
    default_chat_mode_context,
    derive_system_confidence,
    derive_system_state,
    determine_chat_mode,
    should_enter_interpretive,
)
from scoring.models import HomeSystem

NOW = datetime(2026, 10, 1)


@pytest.mark.parametrize("confidence,months,deviation,flags,expected", [
    (0.3, 6, True, ["noise"], "data_gap"),
    (0.8, 60, True, [], "elevated"),
    (0.8, 8, False, ["short_cycling"], "elevated"),
    (0.8, 8, False, [], "planning_window"),
    (0.8, 30, False, ["short_cycling"], "planning_window"),
    (0.8, 48, False, [], "stable"),
    (0.8, None, False, [], "stable"),
])
def test_system_state_priority(confidence, months, deviation, flags, expected):
    assert derive_system_state(confidence, months, deviation, flags) == expected


def _sys(state, confidence=0.8, months=None, deviation=False, flags=None):
    return SystemModeInput("hvac", state, confidence, months, deviation, flags or [])


@pytest.mark.parametrize("ctx,expected", [
    (ChatModeInput("Early", 0.0, systems=[_sys("elevated", months=6, deviation=True)]), "elevated_attention"),
    (ChatModeInput("High", 1.0, systems=[_sys("data_gap", confidence=0.2)]), "baseline_establishment"),
    (ChatModeInput("High", 0.25, systems=[_sys("stable")]), "baseline_establishment"),
    (ChatModeInput("Early", 1.0, systems=[_sys("planning_window", months=20)]), "baseline_establishment"),
    (ChatModeInput("Moderate", 0.5, systems=[_sys("planning_window", months=20)]), "planning_window_advisory"),
    (ChatModeInput("High", 1.0, systems=[_sys("stable", months=80)]), "silent_steward"),
])
def test_mode_priority(ctx, expected):
    assert determine_chat_mode(ctx) == expected


def test_individual_confidence():
    assert compute_individual_confidence(HomeSystem("hvac")) == pytest.approx(0.10)
    permitted = HomeSystem("hvac", install_year=2015, data_sources=["permit"])
    assert compute_individual_confidence(permitted) == pytest.approx(0.65)
    full = HomeSystem("hvac", install_year=2015, manufacture_year=2014, data_sources=["permit", "user"])
    assert compute_individual_confidence(full) == 1.0
    stored = HomeSystem("roof", confidence=0.9)
    assert compute_individual_confidence(stored) == 0.9


def test_confidence_bucket_and_coverage():
    assert derive_system_confidence([HomeSystem("plumbing", install_year=2000)]) == "Early"
    systems = [
        HomeSystem("hvac", install_year=2015),
        HomeSystem("roof", manufacture_year=2010),
        HomeSystem("plumbing", install_year=2000),
    ]
    assert compute_critical_systems_coverage(systems) == 0.5


def test_interpretive_intent():
    assert should_enter_interpretive("Why is my HVAC in a planning window?")
    assert should_enter_interpretive("Can you explain the estimate")
    assert should_enter_interpretive("What does moderate confidence mean")
    assert not should_enter_interpretive("Somehow the fan stopped")
    assert not should_enter_interpretive("Schedule a visit")


def test_session_restores_previous_mode():
    session = ChatModeSession()
    assert session.observe_message("ok thanks", "planning_window_advisory") == "planning_window_advisory"
    assert session.observe_message("why?", "planning_window_advisory") == "interpretive"
    assert session.previous_mode == "planning_window_advisory"
    assert session.exit_interpretive() == "planning_window_advisory"
    assert session.current_mode("silent_steward") == "silent_steward"


def test_labels():
    assert chat_mode_label("silent_steward") is None
    assert chat_mode_label("planning_window_advisory") is None
    assert chat_mode_label("baseline_establishment") == "• Establishing baseline"
    assert chat_mode_label("interpretive") == "• Explaining"


def test_context_snapshot():
    systems = [
        HomeSystem("hvac", install_year=2024, data_sources=["user"], expected_lifespan_years=15),
        HomeSystem("roof", install_year=2010, data_sources=["permit"], expected_lifespan_years=18),
    ]
    ctx = build_chat_mode_context(systems, permits_found=True, now=NOW)
    assert ctx["system_confidence"] == "Moderate"
    assert ctx["critical_systems_coverage"] == 0.5
    assert ctx["user_confirmed_systems"] is True
    assert ctx["mode"] == "planning_window_advisory"
    assert ctx["label"] is None
    states = {s["key"]: s["state"] for s in ctx["systems"]}
    assert states == {"hvac": "stable", "roof": "planning_window"}

    session = ChatModeSession()
    session.enter_interpretive(ctx["base_mode"])
    ctx = build_chat_mode_context(systems, permits_found=True, now=NOW, session=session)
    assert ctx["mode"] == "interpretive"
    assert ctx["previous_mode"] == "planning_window_advisory"


def test_default_context_is_baseline():
    ctx = default_chat_mode_context()
    assert ctx["mode"] == "baseline_establishment"
    assert ctx["is_baseline_complete"] is False
