"""Install-source tiers and the rules for changing them.

Automatic enrichment may only raise a system's tier. Lowering it takes an
explicit user correction.
"""
from dataclasses import replace
from typing import Optional, Dict, Any, Tuple

from scoring.models import HomeSystem

SOURCE_RANK = {
    "unknown": 0,
    "heuristic": 1,
    "inferred": 2,
    "owner_reported": 3,
    "inspection": 4,
    "permit": 5,
}

# Older rows carry the edge-function spelling.
SOURCE_ALIASES = {"permit_verified": "permit", "user": "owner_reported"}

BASE_SCORES = {
    "unknown": 0.30,
    "heuristic": 0.30,
    "inferred": 0.30,
    "owner_reported": 0.60,
    "inspection": 0.75,
    "permit": 0.85,
}

REPLACEMENT_STATUSES = ("original", "replaced", "unknown")

INSTALLED_LINE_SUFFIX = {
    "owner_reported": "owner-reported",
    "inspection": "verified",
    "permit": "permit-verified",
}


def normalize_source(source: Optional[str]) -> str:
    source = SOURCE_ALIASES.get(source or "unknown", source or "unknown")
    return source if source in SOURCE_RANK else "unknown"


def source_rank(source: Optional[str]) -> int:
    return SOURCE_RANK[normalize_source(source)]


def merge_install_source(current: Optional[str], discovered: Optional[str], explicit: bool = False) -> str:
    if explicit:
        return normalize_source(discovered)
    if source_rank(discovered) > source_rank(current):
        return normalize_source(discovered)
    return normalize_source(current)


def score_install_confidence(source: Optional[str], has_month: bool) -> Dict[str, Any]:
    score = BASE_SCORES[normalize_source(source)]
    if has_month:
        score += 0.05
    score = round(min(1.0, score), 2)
    level = "high" if score >= 0.80 else "medium" if score >= 0.50 else "low"
    return {"score": score, "level": level}


def format_installed_line(install_year: Optional[int], install_source: Optional[str], replacement_status: str) -> str:
    if not install_year:
        return "Install date unknown"
    if replacement_status == "original":
        return f"Installed {install_year} (original system)"
    source = normalize_source(install_source)
    if source in ("heuristic", "inferred"):
        return f"Installed ~{install_year} (estimated)"
    if source in INSTALLED_LINE_SUFFIX:
        return f"Installed {install_year} ({INSTALLED_LINE_SUFFIX[source]})"
    return f"Installed {install_year}"


def apply_install_update(
    system: HomeSystem,
    replacement_status: str,
    install_year: Optional[int] = None,
    install_month: Optional[int] = None,
    install_source: Optional[str] = None,
    year_built: Optional[int] = None,
    install_metadata: Optional[Dict[str, Any]] = None,
) -> Tuple[HomeSystem, Dict[str, Any]]:
    """Apply a user's correction to a system's install data.

    Returns the superseding record and an audit entry; the input is not mutated.
    Raises ValueError on an unrecognised ``replacement_status``.
    """
    if replacement_status not in REPLACEMENT_STATUSES:
        raise ValueError(f"replacement_status must be one of {REPLACEMENT_STATUSES}, got {replacement_status!r}")

    new_year = system.install_year
    new_month = system.install_month
    new_source = normalize_source(system.install_source) if system.install_source != "unknown" else "heuristic"
    metadata = dict(system.install_metadata)
    metadata.update(install_metadata or {})

    if replacement_status == "unknown":
        # acknowledge uncertainty without overwriting anything
        metadata["user_acknowledged_unknown"] = True
    elif replacement_status == "replaced":
        if install_year:
            new_year = install_year
            new_source = merge_install_source(new_source, install_source or "owner_reported", explicit=True)
            new_month = install_month
    else:
        new_year = year_built if year_built is not None else install_year
        new_source = "owner_reported"
        metadata["is_original_system"] = True

    conf = score_install_confidence(new_source, bool(new_month))
    updated = replace(
        system,
        install_year=new_year,
        install_month=new_month,
        install_source=new_source,
        replacement_status=replacement_status,
        confidence=conf["score"],
        install_metadata=metadata,
    )
    audit = {
        "prev_install_year": system.install_year,
        "new_install_year": new_year,
        "prev_install_source": system.install_source,
        "new_install_source": new_source,
        "prev_replacement_status": system.replacement_status,
        "new_replacement_status": replacement_status,
        "confidence_level": conf["level"],
        "confidence_score": conf["score"],
        "installed_line": format_installed_line(new_year, new_source, replacement_status),
    }
    return updated, audit


def apply_permit_evidence(system: HomeSystem, signal: Dict[str, Any]) -> HomeSystem:
    """Fold a permit signal into a system; never lowers the current tier."""
    if not signal.get("verified"):
        return system

    already_permit = source_rank(system.install_source) >= source_rank("permit")
    merged = merge_install_source(system.install_source, "permit")
    if already_permit and system.install_year:
        install_year = system.install_year
    else:
        install_year = signal.get("install_year") or system.install_year
    boosted = min(1.0, max(system.confidence or 0.0, score_install_confidence(merged, bool(system.install_month))["score"]))
    data_sources = list(system.data_sources)
    if "permit" not in data_sources:
        data_sources.append("permit")
    return replace(
        system,
        install_source=merged,
        install_year=install_year,
        confidence=round(boosted, 2),
        data_sources=data_sources,
    )
