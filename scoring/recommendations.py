"""Recommendation generator.

Four deterministic passes surface the highest-leverage actions for raising
home confidence. At most three are returned. Dismissed ids never resurface,
and dismissing has no effect on the confidence score.
"""
from dataclasses import asdict
from datetime import datetime
from typing import Optional, List, Dict, Iterable

from scoring.formatting import system_display_name
from scoring.home_confidence import (
    KEY_SYSTEMS,
    MATERIAL_APPLICABLE_SYSTEMS,
    SIGNAL_POINTS,
    SystemSignals,
    build_signals_map,
    months_between,
)
from scoring.models import HomeAssetRecord, HomeEventRecord, Recommendation, SystemTimelineEntry

MAX_RECOMMENDATIONS = 3
LATE_LIFE_YEARS = 2
STALE_MONTHS = 18
FRESHNESS_ID = "freshness:home:data_freshness"

SYSTEM_TIER_WEIGHT = {
    "hvac": 1.0,
    "roof": 1.0,
    "electrical": 1.0,
    "water_heater": 0.7,
    "plumbing": 0.7,
}

RATIONALE = {
    "add_year": "Knowing the {name} installation year improves replacement planning accuracy",
    "upload_doc": "A permit or invoice for your {name} strengthens data confidence",
    "upload_photo": "A photo helps verify {name} condition and age",
    "add_serial": "Adding the {name} serial number enables warranty and recall tracking",
    "confirm_material": "Confirming {name} material improves lifespan estimates",
    "log_maintenance": "Logging {name} service confirms active maintenance",
    "acknowledge": "Acknowledging the {name} replacement window reduces surprise risk",
}

TITLES = {
    "add_year": "Add {name} install year",
    "upload_doc": "Add {name} permit or invoice",
    "upload_photo": "Add {name} photo",
    "add_serial": "Add {name} serial number",
    "confirm_material": "Confirm {name} material",
}

DOCUMENTATION_CHECKS = [
    ("has_install_year", "add_year"),
    ("has_permit_or_invoice", "upload_doc"),
    ("has_material", "confirm_material"),
    ("has_photo", "upload_photo"),
    ("has_serial", "add_serial"),
]


def route_for(action_type: str, system_key: Optional[str] = None) -> str:
    if action_type in ("add_year", "upload_doc", "upload_photo", "add_serial", "confirm_material"):
        return f"/systems/{system_key}" if system_key else "/home-profile"
    if action_type in ("log_maintenance", "acknowledge"):
        return f"/systems/{system_key}/plan" if system_key else "/home-profile"
    return "/home-profile"


def uncertainty_multiplier(signals: SystemSignals) -> float:
    values = list(asdict(signals).values())
    missing = sum(1 for v in values if not v)
    return 1 + (missing / len(values)) * 0.5


def remaining_years(system: SystemTimelineEntry, now: datetime) -> Optional[int]:
    if system.install_year is None or system.replacement_window is None:
        return None
    age = now.year - system.install_year
    window = system.replacement_window
    lifespan_mid = ((window.early_year - system.install_year) + (window.late_year - system.install_year)) / 2
    return max(0, round(lifespan_mid - age))


def _priority(kind: str, signals: SystemSignals, delta: int) -> float:
    return delta * SYSTEM_TIER_WEIGHT.get(kind, 0.7) * uncertainty_multiplier(signals)


def pass_documentation(signals_map: Dict[str, SystemSignals], dismissed: set) -> List[Recommendation]:
    recs = []
    for kind in KEY_SYSTEMS:
        signals = signals_map.get(kind)
        if signals is None:
            continue
        name = system_display_name(kind)
        for signal, action in DOCUMENTATION_CHECKS:
            if action == "confirm_material" and kind not in MATERIAL_APPLICABLE_SYSTEMS:
                continue
            if getattr(signals, signal):
                continue
            rec_id = f"documentation:{kind}:{signal}"
            if rec_id in dismissed:
                continue
            delta = SIGNAL_POINTS[signal]
            recs.append(Recommendation(
                id=rec_id,
                type="documentation",
                system_id=kind,
                title=TITLES[action].format(name=name),
                rationale=RATIONALE[action].format(name=name.lower()),
                confidence_delta=delta,
                priority_score=_priority(kind, signals, delta),
                action_type=action,
                route=route_for(action, kind),
            ))
    return recs


def pass_maintenance(signals_map: Dict[str, SystemSignals], dismissed: set) -> List[Recommendation]:
    recs = []
    for kind in KEY_SYSTEMS:
        signals = signals_map.get(kind)
        if signals is None or signals.has_maintenance_record:
            continue
        rec_id = f"maintenance:{kind}:has_maintenance_record"
        if rec_id in dismissed:
            continue
        name = system_display_name(kind)
        delta = SIGNAL_POINTS["has_maintenance_record"]
        recs.append(Recommendation(
            id=rec_id,
            type="maintenance",
            system_id=kind,
            title=f"Log recent {name} service",
            rationale=RATIONALE["log_maintenance"].format(name=name.lower()),
            confidence_delta=delta,
            priority_score=_priority(kind, signals, delta),
            action_type="log_maintenance",
            route=route_for("log_maintenance", kind),
        ))
    return recs


def pass_planning(
    systems: List[SystemTimelineEntry],
    signals_map: Dict[str, SystemSignals],
    dismissed: set,
    now: datetime,
) -> List[Recommendation]:
    recs = []
    by_id = {s.system_id: s for s in systems}
    for kind in KEY_SYSTEMS:
        system = by_id.get(kind)
        if system is None:
            continue
        remaining = remaining_years(system, now)
        if remaining is None or remaining > LATE_LIFE_YEARS:
            continue
        signals = signals_map.get(kind)
        if signals is None or signals.has_owner_confirmation:
            continue
        rec_id = f"planning:{kind}:has_owner_confirmation"
        if rec_id in dismissed:
            continue
        name = system_display_name(kind)
        delta = SIGNAL_POINTS["has_owner_confirmation"]
        recs.append(Recommendation(
            id=rec_id,
            type="planning",
            system_id=kind,
            title=f"Confirm {name} details",
            rationale=RATIONALE["acknowledge"].format(name=name.lower()),
            confidence_delta=delta,
            priority_score=_priority(kind, signals, delta),
            action_type="acknowledge",
            route=route_for("acknowledge", kind),
        ))
    return recs


def pass_freshness(last_touch_at: Optional[datetime], dismissed: set, now: datetime) -> List[Recommendation]:
    if FRESHNESS_ID in dismissed:
        return []
    if last_touch_at is None:
        rationale = "Confirming your home profile keeps planning data current"
    elif months_between(last_touch_at, now) >= STALE_MONTHS:
        rationale = "Your home record may have drifted since your last review; a quick check keeps confidence accurate"
    else:
        return []
    return [Recommendation(
        id=FRESHNESS_ID,
        type="freshness",
        title="Review and confirm home details",
        rationale=rationale,
        confidence_delta=5,
        priority_score=3.5,
        action_type="review_freshness",
        route=route_for("review_freshness"),
    )]


def generate_recommendations(
    systems: List[SystemTimelineEntry],
    assets: List[HomeAssetRecord],
    events: List[HomeEventRecord],
    dismissed_ids: Iterable[str],
    last_touch_at: Optional[datetime],
    now: datetime,
    year_built: Optional[int] = None,
) -> List[Recommendation]:
    dismissed = set(dismissed_ids)
    signals_map = build_signals_map(systems, assets, events, year_built)

    recs = (
        pass_documentation(signals_map, dismissed)
        + pass_maintenance(signals_map, dismissed)
        + pass_planning(systems, signals_map, dismissed, now)
        + pass_freshness(last_touch_at, dismissed, now)
    )
    # sorted() is stable, so equal priorities keep pass order
    recs = sorted(recs, key=lambda r: r.priority_score, reverse=True)
    return recs[:MAX_RECOMMENDATIONS]
