"""Permit keyword signals for hvac, roof and water heater.

All permit keyword matching lives here; callers consume the signal dict.
"""
from datetime import datetime
from typing import Optional, Dict, Any, List

import pandas as pd

PERMIT_SYSTEM_TYPES = ("hvac", "roof", "water_heater")
SIGNAL_VERSION = "v2"

SYSTEM_KEYWORDS = {
    "hvac": ["hvac", "air condition", "a/c", "ac unit", "heat pump", "condenser",
             "air handler", "furnace", "cooling", "heating"],
    "roof": ["roof", "re-roof", "reroof", "shingle", "tile roof", "metal roof",
             "roofing", "tear off", "tear-off"],
    "water_heater": ["water heater", "hot water", "tankless", "water heat", "tank water"],
}

REPLACEMENT_KEYWORDS = {
    "hvac": ["replace", "change out", "changeout", "change-out", "upgrade", "new unit"],
    "roof": ["re-roof", "reroof", "tear off", "tear-off", "replacement", "new roof", "replace"],
    "water_heater": ["replace", "new", "install", "conversion", "upgrade"],
}

INSTALL_KEYWORDS = {
    "hvac": ["install", "new system", "conversion"],
    "roof": ["new roof", "install"],
    "water_heater": ["install", "new"],
}

# Most authoritative first.
DATE_FIELDS = ("date_finaled", "final_date", "approval_date", "date_issued", "issue_date")


def _text(permit: Dict[str, Any]) -> str:
    parts = [permit.get("description"), permit.get("permit_type") or permit.get("type"), permit.get("work_class")]
    return " ".join(str(p) for p in parts if p).lower()


def _permit_date(permit: Dict[str, Any]) -> Optional[datetime]:
    """First usable date in priority order, as naive UTC so mixed inputs compare."""
    for key in DATE_FIELDS:
        raw = permit.get(key)
        if raw is None or pd.isna(raw):
            continue
        parsed = pd.to_datetime(raw, errors="coerce", utc=True)
        if not pd.isna(parsed):
            return parsed.tz_localize(None).to_pydatetime()
    return None


def is_system_permit(system_type: str, permit: Dict[str, Any]) -> bool:
    text = _text(permit)
    keywords = SYSTEM_KEYWORDS.get(system_type, [])
    return any(kw in text for kw in keywords) or (system_type == "hvac" and "mechanical" in text)


def is_replacement_permit(system_type: str, permit: Dict[str, Any]) -> bool:
    desc = str(permit.get("description") or "").lower()
    return any(kw in desc for kw in REPLACEMENT_KEYWORDS.get(system_type, []))


def empty_signal(system_type: str) -> Dict[str, Any]:
    return {
        "system_type": system_type,
        "verified": False,
        "install_year": None,
        "install_source": None,
        "permit_number": None,
        "permit_description": None,
        "confidence_boost": 0,
        "signal_version": SIGNAL_VERSION,
    }


def derive_system_permit_signal(system_type: str, permits: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Signal from the most recent dated permit matching ``system_type``.

    ``verified`` means a dated permit exists, not that a full install happened:
    mechanical permits can cover modifications.
    """
    if not permits or system_type not in PERMIT_SYSTEM_TYPES:
        return empty_signal(system_type)

    dated = []
    for p in permits:
        when = _permit_date(p)
        if when is not None and is_system_permit(system_type, p):
            dated.append((when, p))
    if not dated:
        return empty_signal(system_type)

    when, latest = max(dated, key=lambda pair: pair[0])
    desc = str(latest.get("description") or "").lower()
    replacement = is_replacement_permit(system_type, latest)
    new_install = not replacement and any(kw in desc for kw in INSTALL_KEYWORDS[system_type])

    if replacement:
        source, boost = "permit_replacement", 0.25
    elif new_install:
        source, boost = "permit_install", 0.30
    else:
        source, boost = None, 0.15

    return {
        "system_type": system_type,
        "verified": True,
        "install_year": when.year,
        "install_source": source,
        "permit_number": latest.get("permit_number") or latest.get("number"),
        "permit_description": latest.get("description"),
        "confidence_boost": boost,
        "signal_version": SIGNAL_VERSION,
    }
