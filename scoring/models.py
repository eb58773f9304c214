from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Dict, Any, List

SYSTEM_KINDS = ("hvac", "roof", "water_heater", "electrical", "plumbing", "foundation", "exterior")


def base_kind(system_key: str) -> str:
    """'hvac_carrier_abc123' -> 'hvac'; 'water_heater' stays whole."""
    key = (system_key or "").lower()
    for kind in SYSTEM_KINDS:
        if key == kind or key.startswith(kind + "_"):
            return kind
    return key.split("_")[0]


@dataclass
class HomeSystem:
    key: str
    install_year: Optional[int] = None
    install_month: Optional[int] = None
    install_date: Optional[date] = None
    install_source: str = "unknown"
    confidence: Optional[float] = None
    material: Optional[str] = None
    status: str = "active"
    replacement_status: str = "unknown"
    manufacture_year: Optional[int] = None
    data_sources: List[str] = field(default_factory=list)
    expected_lifespan_years: Optional[float] = None
    deviation_detected: bool = False
    anomaly_flags: List[str] = field(default_factory=list)
    install_metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Home:
    id: str
    year_built: Optional[int] = None
    square_feet: Optional[int] = None
    state: Optional[str] = None
    intervention_threshold: Optional[float] = None


@dataclass
class ReplacementWindow:
    early_year: int
    late_year: int


@dataclass
class SystemTimelineEntry:
    system_id: str
    install_source: str = "unknown"
    install_year: Optional[int] = None
    material_type: Optional[str] = None
    replacement_window: Optional[ReplacementWindow] = None


@dataclass
class HomeAssetRecord:
    id: str
    kind: str
    serial: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    status: str = "active"


@dataclass
class HomeEventRecord:
    id: str
    event_type: str
    title: str = ""
    description: Optional[str] = None
    source: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    asset_id: Optional[str] = None


DEFAULT_PROACTIVE_COST = 5000.0
DEFAULT_EMERGENCY_COST = 8000.0
DEFAULT_POTENTIAL_DAMAGE = 2000.0


def _cost(raw: Any, default: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if value != value or value < 0:  # NaN or negative
        return default
    return value


@dataclass
class EstimatedImpactCost:
    proactive: float = DEFAULT_PROACTIVE_COST
    emergency: float = DEFAULT_EMERGENCY_COST
    potential_damage: float = DEFAULT_POTENTIAL_DAMAGE

    @classmethod
    def from_json(cls, raw: Any, defaults: Optional[Dict[str, float]] = None) -> "EstimatedImpactCost":
        """Validate the loosely-typed cost blob stored alongside a system row."""
        defaults = defaults or {}
        proactive = float(defaults.get("proactive", DEFAULT_PROACTIVE_COST))
        emergency = float(defaults.get("emergency", DEFAULT_EMERGENCY_COST))
        damage = float(defaults.get("potential_damage", DEFAULT_POTENTIAL_DAMAGE))
        if not isinstance(raw, dict):
            return cls(proactive, emergency, damage)
        return cls(
            proactive=_cost(raw.get("proactive"), proactive),
            emergency=_cost(raw.get("emergency"), emergency),
            potential_damage=_cost(raw.get("potential_damage"), damage),
        )


@dataclass
class Recommendation:
    id: str
    type: str  # "documentation" | "maintenance" | "planning" | "freshness"
    title: str
    rationale: str
    confidence_delta: int
    priority_score: float
    action_type: str
    route: str
    system_id: Optional[str] = None
