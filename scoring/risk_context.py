import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, Dict, Any, List

import requests
import requests_cache
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from scoring.policy import policy_section

logger = logging.getLogger(__name__)

NWS_ALERTS_URL = "https://api.weather.gov/alerts/active"

# Atlantic and Gulf coast states
HURRICANE_STATES = frozenset({
    "TX", "LA", "MS", "AL", "FL", "GA", "SC", "NC", "VA", "MD", "DE", "NJ",
    "NY", "CT", "RI", "MA", "NH", "ME", "PR", "VI", "HI",
})

FREEZE_EVENTS = ("freeze", "frost", "wind chill", "winter storm", "ice storm")
HEAT_EVENTS = ("excessive heat", "extreme heat", "heat advisory")
HURRICANE_EVENTS = ("hurricane", "tropical storm")


class FetchError(Exception): pass


@dataclass
class RiskContext:
    hurricane_season: bool = False
    freeze_warning: bool = False
    heat_wave: bool = False
    peak_season_hvac: bool = False
    peak_season_roofing: bool = False
    state: str = ""
    climate_zone: str = ""
    current_date: Optional[date] = None


def default_risk_context(state: str, climate_zone: str, today: date) -> RiskContext:
    """Calendar-only context: seasons on, active warnings off."""
    state = (state or "").upper()
    in_hurricane_window = date(today.year, 6, 1) <= today <= date(today.year, 11, 30)
    return RiskContext(
        hurricane_season=state in HURRICANE_STATES and in_hurricane_window,
        freeze_warning=False,
        heat_wave=False,
        peak_season_hvac=today.month in (6, 7, 8),
        peak_season_roofing=4 <= today.month <= 10,
        state=state,
        climate_zone=climate_zone or "",
        current_date=today,
    )


def risk_context_from_row(row: Dict[str, Any], today: date) -> RiskContext:
    return RiskContext(
        hurricane_season=bool(row.get("hurricane_season")),
        freeze_warning=bool(row.get("freeze_warning")),
        heat_wave=bool(row.get("heat_wave")),
        peak_season_hvac=bool(row.get("peak_season_hvac")),
        peak_season_roofing=bool(row.get("peak_season_roofing")),
        state=row.get("state") or "",
        climate_zone=row.get("climate_zone") or "",
        current_date=today,
    )


def risk_context_from_alerts(alerts: List[Dict[str, Any]], base: RiskContext) -> RiskContext:
    """Overlay active weather alerts onto a calendar context. Flags only turn on."""
    events = [str(a.get("event") or "").lower() for a in alerts]
    return replace(
        base,
        freeze_warning=base.freeze_warning or any(k in e for e in events for k in FREEZE_EVENTS),
        heat_wave=base.heat_wave or any(k in e for e in events for k in HEAT_EVENTS),
        hurricane_season=base.hurricane_season or any(k in e for e in events for k in HURRICANE_EVENTS),
    )


def _session() -> requests.Session:
    cfg = policy_section("weather")
    session = requests_cache.CachedSession(
        cfg.get("cache_path", "data/http_cache"),
        expire_after=int(cfg.get("cache_expire_seconds", 1800)),
    )
    session.headers.update({
        "User-Agent": cfg.get("user_agent", "home-steward-core"),
        "Accept": "application/geo+json",
    })
    return session


@retry(
    reraise=True,
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.7, min=1, max=6),
    retry=retry_if_exception_type(FetchError),
)
def _get_alerts(session: requests.Session, state: str) -> List[Dict[str, Any]]:
    try:
        resp = session.get(NWS_ALERTS_URL, params={"area": state}, timeout=20)
    except requests.RequestException as e:
        raise FetchError(str(e))
    if resp.status_code >= 400:
        raise FetchError(f"HTTP {resp.status_code}")
    try:
        payload = resp.json()
    except ValueError as e:
        raise FetchError(f"bad JSON: {e}")
    return [f.get("properties") or {} for f in payload.get("features", [])]


def fetch_active_alerts(state: str, session: Optional[requests.Session] = None) -> List[Dict[str, Any]]:
    """Active NWS alerts for a two-letter state code; empty when unreachable."""
    if not state:
        return []
    try:
        alerts = _get_alerts(session or _session(), state.upper())
    except FetchError as e:
        logger.warning("Weather alerts unavailable for %s: %s", state, e)
        return []
    logger.info("Fetched %d active alerts for %s", len(alerts), state)
    return alerts
