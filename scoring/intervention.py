"""Intervention scoring.

    InterventionScore = (FailureProbability x EmergencyCost) + UrgencyPremium

Dollar-denominated only: no engagement multipliers, no normalisation away
from dollars. The urgency premium is derived at calculation time and
snapshotted when an intervention opens.
"""
from dataclasses import dataclass
from typing import Optional, Dict, Any

from scoring.models import EstimatedImpactCost, Home, base_kind
from scoring.policy import policy_section
from scoring.risk_context import RiskContext

HURRICANE_ROOF_PREMIUM = 2000
FREEZE_PREMIUM = 1500
HEAT_WAVE_HVAC_PREMIUM = 1200
PEAK_SEASON_PREMIUM = 500

DEFAULT_THRESHOLD = 1000
DEFAULT_RISK_OUTLOOK = 50


@dataclass
class SystemForEligibility:
    id: str
    system_key: str
    risk_outlook_12mo: Optional[float] = None
    estimated_impact_cost: Any = None  # raw JSON blob from the systems row


def calculate_intervention_score(failure_probability_12mo: float, emergency_cost: float, urgency_premium: float) -> Dict[str, Any]:
    probability = max(0.0, min(1.0, failure_probability_12mo))
    emergency = max(0.0, emergency_cost)
    premium = max(0.0, urgency_premium)

    base_risk = probability * emergency
    score = base_risk + premium
    return {
        "score": round(score, 2),
        "breakdown": {"base_risk": round(base_risk, 2), "urgency_premium": premium},
    }


def is_contractor_peak_season(context: RiskContext, system_type: str) -> bool:
    if system_type == "hvac" and context.peak_season_hvac:
        return True
    if system_type == "roof" and context.peak_season_roofing:
        return True
    return False


def calculate_urgency_premium(system_type: str, context: RiskContext) -> Dict[str, Any]:
    system_type = base_kind(system_type)
    premium = 0
    factors = {"hurricane_season": False, "freeze_warning": False, "heat_wave": False, "peak_season": False}

    if context.hurricane_season and system_type == "roof":
        premium += HURRICANE_ROOF_PREMIUM
        factors["hurricane_season"] = True
    if context.freeze_warning and system_type in ("water_heater", "hvac"):
        premium += FREEZE_PREMIUM
        factors["freeze_warning"] = True
    if context.heat_wave and system_type == "hvac":
        premium += HEAT_WAVE_HVAC_PREMIUM
        factors["heat_wave"] = True
    if is_contractor_peak_season(context, system_type):
        premium += PEAK_SEASON_PREMIUM
        factors["peak_season"] = True

    return {"premium": premium, "factors": factors}


def risk_outlook_to_failure_probability(risk_outlook: float) -> float:
    """Risk outlook is 0-100; 100 means certain failure within 12 months."""
    return max(0.0, min(100.0, risk_outlook)) / 100


def should_trigger_intervention(score: float, threshold: float) -> bool:
    return score >= threshold


def calculate_intervention_eligibility(
    risk_outlook_12mo: float,
    costs: EstimatedImpactCost,
    system_type: str,
    context: RiskContext,
    home_threshold: float,
) -> Dict[str, Any]:
    urgency = calculate_urgency_premium(system_type, context)
    result = calculate_intervention_score(
        risk_outlook_to_failure_probability(risk_outlook_12mo),
        costs.emergency,
        urgency["premium"],
    )
    return {
        "eligible": should_trigger_intervention(result["score"], home_threshold),
        "score": result["score"],
        "threshold": home_threshold,
        "breakdown": result["breakdown"],
        "urgency_factors": urgency["factors"],
        "costs": {
            "proactive": costs.proactive,
            "emergency": costs.emergency,
            "potential_damage": costs.potential_damage,
        },
    }


def check_intervention_eligibility(
    system: SystemForEligibility,
    home: Home,
    context: RiskContext,
    has_active_cooldown: bool,
    has_open_intervention: bool,
    cooldown_until: Optional[str] = None,
) -> Dict[str, Any]:
    """Score gate AND no cooldown AND no open intervention.

    The two lookups come from persisted state; a high score never overrides them.
    """
    cfg = policy_section("intervention")
    costs = EstimatedImpactCost.from_json(system.estimated_impact_cost, cfg.get("default_costs"))
    risk_outlook = system.risk_outlook_12mo
    if risk_outlook is None:
        risk_outlook = cfg.get("default_risk_outlook", DEFAULT_RISK_OUTLOOK)
    threshold = home.intervention_threshold
    if threshold is None:
        threshold = cfg.get("default_threshold", DEFAULT_THRESHOLD)

    result = calculate_intervention_eligibility(risk_outlook, costs, system.system_key, context, threshold)
    result.update({
        "eligible": result["eligible"] and not has_active_cooldown and not has_open_intervention,
        "score_eligible": result["eligible"],
        "system_id": system.id,
        "has_active_cooldown": has_active_cooldown,
        "has_active_intervention": has_open_intervention,
        "cooldown_until": cooldown_until,
        "risk_outlook_12mo": risk_outlook,
    })
    return result
