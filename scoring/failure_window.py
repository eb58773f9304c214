"""HVAC failure-window model (hvac_failure_v1).

Deterministic: the reference time is always passed in, never read from the
clock. Indices are clamped to [0, 1] before any multiplier is derived.
"""
import copy
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Dict, Any, Union

HVAC_FAILURE_CONSTANTS = {
    "model_version": "hvac_failure_v1",
    "baseline": {
        "median_lifespan_years": 13,
        "sigma_years": 2.5,
    },
    "clamps": {
        "multiplier_min": 0.6,
        "multiplier_max": 1.3,
    },
}

Z_10 = 1.2816  # 10th/90th percentile of the standard normal
LIFESPAN_MIN_YEARS = 3
LIFESPAN_MAX_YEARS = 30
DAYS_PER_YEAR = 365.25


@dataclass
class HVACFailureInputs:
    install_date: Union[date, datetime]
    climate_stress_index: float
    maintenance_score: float
    feature_completeness: float
    install_verified: bool
    has_usage_signal: bool
    usage_index: Optional[float] = None
    environment_index: Optional[float] = None


def normalize_index(value: Optional[float]) -> float:
    return min(max(value if value is not None else 0.0, 0.0), 1.0)


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def as_utc(d: Union[date, datetime]) -> datetime:
    """Dates become midnight UTC; naive datetimes are taken as UTC."""
    if not isinstance(d, datetime):
        return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
    if d.tzinfo is None:
        return d.replace(tzinfo=timezone.utc)
    return d.astimezone(timezone.utc)


def years_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / (DAYS_PER_YEAR * 86400)


def add_years(start: datetime, years: float) -> datetime:
    return start + timedelta(days=years * DAYS_PER_YEAR)


def score_hvac_failure(inputs: HVACFailureInputs, now: Union[date, datetime]) -> Dict[str, Any]:
    now = as_utc(now)
    installed = as_utc(inputs.install_date)

    climate = normalize_index(inputs.climate_stress_index)
    maintenance = normalize_index(inputs.maintenance_score)
    completeness = normalize_index(inputs.feature_completeness)
    usage = normalize_index(inputs.usage_index)
    environment = normalize_index(inputs.environment_index)

    m_climate = 1 - 0.18 * climate                       # [0.82, 1.00]
    m_maintenance = 0.85 + 0.25 * maintenance            # [0.85, 1.10]
    m_install = 0.97 + (0.06 if inputs.install_verified else 0)  # [0.97, 1.03]
    m_usage = 1 - 0.12 * usage                           # [0.88, 1.00]
    m_environment = 1 - 0.10 * environment               # [0.90, 1.00]
    m_unknowns = 0.90 + 0.10 * completeness              # [0.90, 1.00]

    clamps = HVAC_FAILURE_CONSTANTS["clamps"]
    m_total = clamp(
        m_climate * m_maintenance * m_install * m_usage * m_environment * m_unknowns,
        clamps["multiplier_min"],
        clamps["multiplier_max"],
    )

    l50_base = HVAC_FAILURE_CONSTANTS["baseline"]["median_lifespan_years"]
    sigma_base = HVAC_FAILURE_CONSTANTS["baseline"]["sigma_years"]
    l50 = l50_base * m_total

    age_years = max(years_between(installed, now), 0)
    years_remaining_p50 = max(l50 - age_years, 0)

    # Incomplete data widens the band; full completeness keeps the baseline sigma.
    sigma = sigma_base * (1 + 0.9 * (1 - completeness))
    l10 = clamp(l50 - Z_10 * sigma, LIFESPAN_MIN_YEARS, LIFESPAN_MAX_YEARS)
    l90 = clamp(l50 + Z_10 * sigma, LIFESPAN_MIN_YEARS, LIFESPAN_MAX_YEARS)

    def not_before_now(d: datetime) -> datetime:
        return now if d < now else d

    # Measures data quality, not system condition.
    confidence = clamp(
        0.25
        + (0.30 if inputs.install_verified else 0)
        + 0.25 * maintenance
        + 0.10 * completeness
        + 0.10 * (1 if inputs.has_usage_signal else 0),
        0,
        1,
    )

    provenance = {
        "model_version": HVAC_FAILURE_CONSTANTS["model_version"],
        "multipliers": {
            "M_climate": m_climate,
            "M_maintenance": m_maintenance,
            "M_install": m_install,
            "M_usage": m_usage,
            "M_environment": m_environment,
            "M_unknowns": m_unknowns,
            "M_total": m_total,
        },
        "baseline": {"L50_base": l50_base, "sigma_base": sigma_base},
        "effective": {"L50_effective": l50, "sigma_effective": sigma},
        "inputs": asdict(inputs),
    }

    return {
        "p10_failure_date": not_before_now(add_years(installed, l10)).isoformat(),
        "p50_failure_date": not_before_now(add_years(installed, l50)).isoformat(),
        "p90_failure_date": not_before_now(add_years(installed, l90)).isoformat(),
        "years_remaining_p50": round(years_remaining_p50, 1),
        "confidence_0_1": round(confidence, 2),
        "provenance": provenance,
    }


def get_hvac_failure_constants() -> Dict[str, Any]:
    return copy.deepcopy(HVAC_FAILURE_CONSTANTS)
