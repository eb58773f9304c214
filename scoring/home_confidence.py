"""Home confidence scoring.

Two formulas live here and are deliberately kept apart:

* ``calculate_home_confidence`` - additive data-quality score used by
  enrichment jobs. Base 30, capped at 85.
* ``compute_home_confidence`` - per-system evidence signals over the key
  systems, normalised to 0-100 with a freshness decay.

Both measure how well the home is understood, not its condition.
"""
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, Dict, Any, List, Iterable

from scoring.failure_window import as_utc
from scoring.formatting import system_display_name
from scoring.models import HomeAssetRecord, HomeEventRecord, SystemTimelineEntry

# -- data-quality score -------------------------------------------------------

BASE_SCORE = 30
YEAR_BUILT_BONUS = 10
PERMITS_FOUND_BONUS = 5
SCORE_CAP = 85

# Highest tier only; bonuses never stack.
INSTALL_SOURCE_BONUS = {
    "permit": 25,
    "permit_verified": 25,
    "inspection": 20,
    "owner_reported": 20,
    "user": 20,
}


@dataclass
class ConfidenceFactors:
    address_known: bool = True
    year_built_known: bool = False
    square_feet_known: bool = False
    hvac_age_known: bool = False
    hvac_source: str = "unknown"
    permits_count: int = 0


def calculate_home_confidence(factors: ConfidenceFactors) -> Dict[str, Any]:
    breakdown = {"base": BASE_SCORE, "year_built": 0, "hvac": 0, "permits": 0, "total": 0}
    score = BASE_SCORE

    if factors.year_built_known:
        score += YEAR_BUILT_BONUS
        breakdown["year_built"] = YEAR_BUILT_BONUS

    hvac_bonus = INSTALL_SOURCE_BONUS.get(factors.hvac_source or "unknown", 0)
    score += hvac_bonus
    breakdown["hvac"] = hvac_bonus

    if factors.permits_count and factors.permits_count > 0:
        score += PERMITS_FOUND_BONUS
        breakdown["permits"] = PERMITS_FOUND_BONUS

    score = min(score, SCORE_CAP)  # never claim certainty
    breakdown["total"] = score

    if score >= 70:
        summary = "High confidence from permit records and property data"
    elif score >= 50:
        summary = "Moderate confidence from property enrichment"
    elif score >= 40:
        summary = "Basic property data verified"
    else:
        summary = "Based on available public data"

    return {"score": score, "breakdown": breakdown, "summary": summary}


def extract_confidence_factors(home: Dict[str, Any], system: Optional[Dict[str, Any]], permits_count: int) -> ConfidenceFactors:
    system = system or {}
    return ConfidenceFactors(
        address_known=True,  # a home record implies a known address
        year_built_known=bool(home.get("year_built")),
        square_feet_known=bool(home.get("square_feet")),
        hvac_age_known=bool(system.get("install_year")),
        hvac_source=system.get("install_source") or "unknown",
        permits_count=permits_count or 0,
    )


# -- evidence-signal score ----------------------------------------------------

KEY_SYSTEMS = ("hvac", "roof", "electrical", "water_heater", "plumbing")
MAX_POINTS_PER_SYSTEM = 20
MAX_BASE_POINTS = len(KEY_SYSTEMS) * MAX_POINTS_PER_SYSTEM

MATERIAL_APPLICABLE_SYSTEMS = frozenset({"roof", "plumbing"})
# Assumed original to the home unless a permit or override says otherwise.
ORIGINAL_TO_HOME_SYSTEMS = frozenset({"electrical", "plumbing"})

SIGNAL_POINTS = {
    "has_install_year": 6,
    "has_material": 3,
    "has_serial": 1,
    "has_photo": 4,
    "has_permit_or_invoice": 2,
    "has_owner_confirmation": 3,
    "has_maintenance_record": 2,
    "has_professional_service": 1,
    "has_maintenance_notes": 1,
}

STATE_MAP = [
    (80, "solid", "Most systems are understood and tracked"),
    (55, "developing", "Key gaps exist, but nothing critical is hidden"),
    (30, "unclear", "Too many unknowns to plan confidently"),
    (0, "at-risk", "Major systems lack basic information"),
]


@dataclass
class SystemSignals:
    has_install_year: bool = False
    has_material: bool = False
    has_serial: bool = False
    has_photo: bool = False
    has_permit_or_invoice: bool = False
    has_owner_confirmation: bool = False
    has_maintenance_record: bool = False
    has_professional_service: bool = False
    has_maintenance_notes: bool = False


def _events_for(kind: str, assets: List[HomeAssetRecord], events: Iterable[HomeEventRecord]) -> List[HomeEventRecord]:
    asset_ids = {a.id for a in assets}
    spaced = kind.replace("_", " ")
    out = []
    for e in events:
        if e.asset_id and e.asset_id in asset_ids:
            out.append(e)
            continue
        title = (e.title or "").lower()
        if kind in title or spaced in title:
            out.append(e)
    return out


def derive_system_signals(
    kind: str,
    system: Optional[SystemTimelineEntry],
    assets: List[HomeAssetRecord],
    events: List[HomeEventRecord],
    year_built: Optional[int] = None,
) -> SystemSignals:
    system_assets = [a for a in assets if a.kind == kind and a.status == "active"]
    maintenance = [e for e in _events_for(kind, system_assets, events) if e.event_type == "maintenance"]
    source = system.install_source if system else None

    return SystemSignals(
        has_install_year=(system is not None and system.install_year is not None)
        or (kind in ORIGINAL_TO_HOME_SYSTEMS and year_built is not None),
        has_material=kind in MATERIAL_APPLICABLE_SYSTEMS
        and system is not None
        and system.material_type not in (None, "unknown"),
        has_serial=any(a.serial for a in system_assets),
        has_photo=any(
            (a.metadata or {}).get("photo_url") is not None or (a.metadata or {}).get("has_photo") is True
            for a in system_assets
        ),
        has_permit_or_invoice=source == "permit",
        has_owner_confirmation=source is not None and source not in ("inferred", "unknown"),
        has_maintenance_record=len(maintenance) > 0,
        has_professional_service=any(
            e.source == "professional" or (e.metadata or {}).get("professional") is True for e in maintenance
        ),
        has_maintenance_notes=any(e.description for e in maintenance),
    )


def score_system(kind: str, signals: SystemSignals) -> Dict[str, int]:
    documentation = 0
    maintenance = 0
    if signals.has_install_year:
        documentation += SIGNAL_POINTS["has_install_year"]
    if kind in MATERIAL_APPLICABLE_SYSTEMS and signals.has_material:
        documentation += SIGNAL_POINTS["has_material"]
    if signals.has_serial:
        documentation += SIGNAL_POINTS["has_serial"]
    if signals.has_photo:
        documentation += SIGNAL_POINTS["has_photo"]
    if signals.has_permit_or_invoice:
        documentation += SIGNAL_POINTS["has_permit_or_invoice"]
    if signals.has_owner_confirmation:
        documentation += SIGNAL_POINTS["has_owner_confirmation"]

    if signals.has_maintenance_record:
        maintenance += SIGNAL_POINTS["has_maintenance_record"]
    if signals.has_professional_service:
        maintenance += SIGNAL_POINTS["has_professional_service"]
    if signals.has_maintenance_notes:
        maintenance += SIGNAL_POINTS["has_maintenance_notes"]

    total = min(MAX_POINTS_PER_SYSTEM, documentation + maintenance)
    return {"total": total, "documentation": documentation, "maintenance": maintenance, "planning": 0}


def months_between(earlier: datetime, later: datetime) -> float:
    return (as_utc(later) - as_utc(earlier)).total_seconds() / (86400 * 30)


def freshness_decay(last_touch_at: Optional[datetime], now: datetime) -> int:
    if last_touch_at is None:
        return -10
    months = months_between(last_touch_at, now)
    if months >= 36:
        return -10
    if months >= 18:
        return -5
    return 0


def confidence_state(score: int) -> Dict[str, str]:
    for minimum, state, meaning in STATE_MAP:
        if score >= minimum:
            return {"state": state, "meaning": meaning}
    return {"state": STATE_MAP[-1][1], "meaning": STATE_MAP[-1][2]}


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


def build_evidence_chips(signals_map: Dict[str, SystemSignals]) -> List[str]:
    documented = serviced = confirmed = 0
    for kind, s in signals_map.items():
        doc = [s.has_install_year, s.has_owner_confirmation]
        if kind in MATERIAL_APPLICABLE_SYSTEMS:
            doc.append(s.has_material)
        if all(doc):
            documented += 1
        if s.has_professional_service or s.has_maintenance_record:
            serviced += 1
        if s.has_owner_confirmation:
            confirmed += 1

    chips = []
    if documented:
        chips.append(_plural(documented, "system") + " documented")
    if serviced:
        chips.append(_plural(serviced, "service") + " confirmed")
    if confirmed:
        chips.append(_plural(confirmed, "system") + " confirmed")
    return chips[:3]


def _tier_weight(kind: str) -> float:
    return 1.0 if kind in ("hvac", "roof", "electrical") else 0.7


def find_next_gain(signals_map: Dict[str, SystemSignals]) -> Optional[Dict[str, Any]]:
    candidates = []
    for kind, s in signals_map.items():
        weight = _tier_weight(kind)
        name = system_display_name(kind)
        if not s.has_photo:
            # photos are the most accessible action
            candidates.append((SIGNAL_POINTS["has_photo"] * weight * 1.2, f"Upload a photo of your {name}", SIGNAL_POINTS["has_photo"], kind))
        if not s.has_install_year:
            candidates.append((SIGNAL_POINTS["has_install_year"] * weight, f"Confirm when your {name} was installed", SIGNAL_POINTS["has_install_year"], kind))
        if kind in MATERIAL_APPLICABLE_SYSTEMS and not s.has_material:
            candidates.append((SIGNAL_POINTS["has_material"] * weight, f"Confirm your {name} material type", SIGNAL_POINTS["has_material"], kind))
        if not s.has_maintenance_record:
            candidates.append((SIGNAL_POINTS["has_maintenance_record"] * weight, f"Log a {name} service visit", SIGNAL_POINTS["has_maintenance_record"], kind))

    if not candidates:
        return None
    # stable sort keeps first-seen order among equal priorities
    best = sorted(candidates, key=lambda c: c[0], reverse=True)[0]
    return {"action": best[1], "delta": best[2], "system_key": best[3]}


def build_signals_map(
    systems: List[SystemTimelineEntry],
    assets: List[HomeAssetRecord],
    events: List[HomeEventRecord],
    year_built: Optional[int] = None,
) -> Dict[str, SystemSignals]:
    by_id = {s.system_id: s for s in systems if s.system_id in KEY_SYSTEMS}
    return {
        kind: derive_system_signals(kind, by_id.get(kind), assets, events, year_built)
        for kind in KEY_SYSTEMS
    }


def compute_home_confidence(
    systems: List[SystemTimelineEntry],
    assets: List[HomeAssetRecord],
    events: List[HomeEventRecord],
    last_touch_at: Optional[datetime],
    now: datetime,
    year_built: Optional[int] = None,
) -> Dict[str, Any]:
    signals_map = build_signals_map(systems, assets, events, year_built)

    earned = documentation = maintenance = planning = 0
    for kind, signals in signals_map.items():
        part = score_system(kind, signals)
        earned += part["total"]
        documentation += part["documentation"]
        maintenance += part["maintenance"]
        planning += part["planning"]

    normalized = min(100, round(earned / MAX_BASE_POINTS * 100))
    decay = freshness_decay(last_touch_at, now)
    score = max(0, normalized + decay)
    state = confidence_state(score)

    return {
        "score": score,
        "state": state["state"],
        "state_meaning": state["meaning"],
        "evidence_chips": build_evidence_chips(signals_map),
        "next_gain": find_next_gain(signals_map),
        "signals": {kind: asdict(s) for kind, s in signals_map.items()},
        "breakdown": {
            "documentation": documentation,
            "maintenance": maintenance,
            "planning": planning,
            "freshness": decay,
        },
    }
