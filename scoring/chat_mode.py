"""Chat-mode selection for the home assistant.

The assistant does not advise until it can explain why it believes
something: while the baseline is incomplete, advisory modes are blocked.
Both the per-system state and the overall mode are picked by fixed
priority order, first match wins.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List

from scoring.failure_window import as_utc, DAYS_PER_YEAR
from scoring.models import HomeSystem, base_kind

CRITICAL_SYSTEMS = ("hvac", "roof", "water_heater", "electrical")

DATA_GAP_CONFIDENCE = 0.4
PLANNING_MONTHS = 36
ELEVATED_MONTHS = 12
BASELINE_COVERAGE = 0.5

INTERPRETIVE_PATTERN = re.compile(
    r"\b(why|how|what does|what is|explain|tell me about|understand|meaning)\b",
    re.IGNORECASE,
)

USER_SOURCE_MARKERS = ("user", "manual", "owner")


def is_critical_system(system_key: str) -> bool:
    return base_kind(system_key) in CRITICAL_SYSTEMS


def _has_source(system: HomeSystem, *markers: str) -> bool:
    return any(m in (s or "").lower() for s in system.data_sources for m in markers)


def compute_individual_confidence(system: HomeSystem) -> float:
    score = 0.10  # the system exists
    if system.install_date or system.install_year:
        score += 0.30
    if system.manufacture_year:
        score += 0.25
    if _has_source(system, "permit"):
        score += 0.25
    if _has_source(system, *USER_SOURCE_MARKERS):
        score += 0.20
    if system.confidence is not None and system.confidence > score:
        score = system.confidence
    return min(round(score, 4), 1.0)


def derive_system_confidence(systems: List[HomeSystem]) -> str:
    critical = [s for s in systems if is_critical_system(s.key)]
    if not critical:
        return "Early"
    avg = sum(compute_individual_confidence(s) for s in critical) / len(critical)
    if avg < 0.40:
        return "Early"
    if avg < 0.70:
        return "Moderate"
    return "High"


def compute_critical_systems_coverage(systems: List[HomeSystem]) -> float:
    covered = {
        base_kind(s.key)
        for s in systems
        if is_critical_system(s.key) and (s.install_date or s.install_year or s.manufacture_year)
    }
    return len(covered) / len(CRITICAL_SYSTEMS)


def has_user_confirmed_systems(systems: List[HomeSystem]) -> bool:
    return any(_has_source(s, *USER_SOURCE_MARKERS) for s in systems)


def find_low_confidence_systems(systems: List[HomeSystem]) -> List[str]:
    return [s.key for s in systems if compute_individual_confidence(s) < DATA_GAP_CONFIDENCE]


def months_remaining_for(system: HomeSystem, now: datetime) -> Optional[float]:
    if not system.expected_lifespan_years:
        return None
    if system.install_date is not None:
        installed = as_utc(system.install_date)
    elif system.install_year:
        installed = as_utc(datetime(system.install_year, system.install_month or 1, 1))
    else:
        return None
    age_years = (as_utc(now) - installed).total_seconds() / (DAYS_PER_YEAR * 86400)
    return (system.expected_lifespan_years - age_years) * 12


def derive_system_state(
    confidence: float,
    months_remaining: Optional[float] = None,
    deviation_detected: bool = False,
    anomaly_flags: Optional[List[str]] = None,
) -> str:
    if confidence < DATA_GAP_CONFIDENCE:
        return "data_gap"
    if deviation_detected or (
        months_remaining is not None and months_remaining < ELEVATED_MONTHS and anomaly_flags
    ):
        return "elevated"
    if months_remaining is not None and months_remaining < PLANNING_MONTHS:
        return "planning_window"
    return "stable"


def state_label(state: str) -> str:
    return {
        "stable": "Stable",
        "planning_window": "Planning Window",
        "elevated": "Elevated",
        "data_gap": "Establishing baseline",
    }.get(state, state)


@dataclass
class SystemModeInput:
    key: str
    state: str
    confidence: float
    months_remaining: Optional[float] = None
    deviation_detected: bool = False
    anomaly_flags: List[str] = field(default_factory=list)


@dataclass
class ChatModeInput:
    system_confidence: str  # "Early" | "Moderate" | "High"
    critical_systems_coverage: float
    permits_found: bool = False
    user_confirmed_systems: bool = False
    systems: List[SystemModeInput] = field(default_factory=list)


def system_mode_input(system: HomeSystem, now: datetime) -> SystemModeInput:
    confidence = compute_individual_confidence(system)
    months = months_remaining_for(system, now)
    state = derive_system_state(confidence, months, system.deviation_detected, system.anomaly_flags)
    return SystemModeInput(
        key=system.key,
        state=state,
        confidence=confidence,
        months_remaining=months,
        # a data-gap system cannot carry a deviation
        deviation_detected=state == "elevated",
        anomaly_flags=[] if state == "data_gap" else list(system.anomaly_flags),
    )


def _has_elevated(systems: List[SystemModeInput]) -> bool:
    return any(
        s.deviation_detected
        or (s.months_remaining is not None and s.months_remaining < ELEVATED_MONTHS and s.anomaly_flags)
        for s in systems
    )


def _has_planning_window(systems: List[SystemModeInput]) -> bool:
    return any(
        s.state == "planning_window" or (s.months_remaining is not None and s.months_remaining < PLANNING_MONTHS)
        for s in systems
    )


def _has_data_gap(systems: List[SystemModeInput]) -> bool:
    return any(s.state == "data_gap" or s.confidence < DATA_GAP_CONFIDENCE for s in systems)


def is_baseline_complete(ctx: ChatModeInput) -> bool:
    return ctx.system_confidence != "Early" and ctx.critical_systems_coverage >= BASELINE_COVERAGE


def determine_chat_mode(ctx: ChatModeInput) -> str:
    """Select the base mode. Interpretive is never chosen here; see ChatModeSession."""
    if _has_elevated(ctx.systems):
        return "elevated_attention"
    if not is_baseline_complete(ctx) or _has_data_gap(ctx.systems):
        return "baseline_establishment"
    if _has_planning_window(ctx.systems):
        return "planning_window_advisory"
    return "silent_steward"


def should_enter_interpretive(message: str) -> bool:
    return bool(INTERPRETIVE_PATTERN.search(message or ""))


def chat_mode_label(mode: str) -> Optional[str]:
    # silent modes carry no indicator
    return {
        "baseline_establishment": "• Establishing baseline",
        "interpretive": "• Explaining",
        "elevated_attention": "• Elevated attention",
    }.get(mode)


class ChatModeSession:
    """Ephemeral interpretive override layered on top of the derived mode."""

    def __init__(self):
        self.in_interpretive = False
        self.previous_mode: Optional[str] = None

    def current_mode(self, base_mode: str) -> str:
        return "interpretive" if self.in_interpretive else base_mode

    def enter_interpretive(self, base_mode: str) -> str:
        if not self.in_interpretive:
            self.previous_mode = base_mode
            self.in_interpretive = True
        return "interpretive"

    def exit_interpretive(self, base_mode: Optional[str] = None) -> str:
        restored = self.previous_mode or base_mode or "silent_steward"
        self.in_interpretive = False
        self.previous_mode = None
        return restored

    def observe_message(self, message: str, base_mode: str) -> str:
        if should_enter_interpretive(message):
            return self.enter_interpretive(base_mode)
        return self.current_mode(base_mode)


def build_chat_mode_context(
    systems: List[HomeSystem],
    permits_found: bool,
    now: datetime,
    session: Optional[ChatModeSession] = None,
) -> Dict[str, Any]:
    mode_input = ChatModeInput(
        system_confidence=derive_system_confidence(systems),
        critical_systems_coverage=compute_critical_systems_coverage(systems),
        permits_found=permits_found,
        user_confirmed_systems=has_user_confirmed_systems(systems),
        systems=[system_mode_input(s, now) for s in systems],
    )
    base_mode = determine_chat_mode(mode_input)
    mode = session.current_mode(base_mode) if session else base_mode

    return {
        "mode": mode,
        "base_mode": base_mode,
        "label": chat_mode_label(mode),
        "system_confidence": mode_input.system_confidence,
        "critical_systems_coverage": mode_input.critical_systems_coverage,
        "permits_found": permits_found,
        "user_confirmed_systems": mode_input.user_confirmed_systems,
        "systems_with_low_confidence": find_low_confidence_systems(systems),
        "previous_mode": session.previous_mode if session and session.in_interpretive else None,
        "is_baseline_complete": is_baseline_complete(mode_input),
        "systems": [
            {
                "key": s.key,
                "state": s.state,
                "confidence": s.confidence,
                "months_remaining": None if s.months_remaining is None else round(s.months_remaining, 1),
            }
            for s in mode_input.systems
        ],
    }


def default_chat_mode_context() -> Dict[str, Any]:
    return {
        "mode": "baseline_establishment",
        "base_mode": "baseline_establishment",
        "label": chat_mode_label("baseline_establishment"),
        "system_confidence": "Early",
        "critical_systems_coverage": 0.0,
        "permits_found": False,
        "user_confirmed_systems": False,
        "systems_with_low_confidence": [],
        "previous_mode": None,
        "is_baseline_complete": False,
        "systems": [],
    }
