"""Persisted intervention lifecycle: open, view, decide, close, time out.

At most one open intervention per system. A decision starts a cooldown
during which no new intervention may open for that system; closing a
session without a decision does not.
"""
import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from db.schema import ensure_schema
from db.sql_utils import fetch_dicts
from scoring.intervention import SystemForEligibility, check_intervention_eligibility
from scoring.models import Home
from scoring.policy import policy_section
from scoring.risk_context import RiskContext

logger = logging.getLogger(__name__)

TRIGGER_REASONS = (
    "risk_threshold_crossed",
    "seasonal_risk_event",
    "financial_planning_window",
    "user_initiated",
    "new_evidence_arrived",
)

DECISION_TYPES = (
    "replace_now",
    "defer_with_date",
    "schedule_inspection",
    "schedule_maintenance",
    "no_action",
    "get_quotes",
)

# decision_made and user_deferred are set only by record_decision
SESSION_CLOSE_REASONS = ("closed_without_decision", "timed_out")

NO_ACTION_COOLDOWN_DAYS = 30
DEFAULT_COOLDOWN_DAYS = 7
STALE_AFTER_DAYS = 14


class InterventionError(Exception): pass
class InterventionConflictError(InterventionError): pass
class CooldownActiveError(InterventionError): pass
class InterventionNotFoundError(InterventionError): pass


def naive_utc(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


class InterventionStore:
    def __init__(self, con, policy: Optional[Dict[str, Any]] = None):
        self.con = ensure_schema(con)
        self.cfg = policy if policy is not None else policy_section("intervention")

    def cooldown_days(self, decision_type: str) -> int:
        days = self.cfg.get("cooldown_days") or {}
        if decision_type == "no_action":
            return int(days.get("no_action", NO_ACTION_COOLDOWN_DAYS))
        return int(days.get("default", DEFAULT_COOLDOWN_DAYS))

    # -- lookups --------------------------------------------------------------

    def get(self, intervention_id: str) -> Dict[str, Any]:
        rows = fetch_dicts(self.con, "SELECT * FROM interventions WHERE id = ?", [intervention_id])
        if not rows:
            raise InterventionNotFoundError(intervention_id)
        row = rows[0]
        row["urgency_factors_snapshot"] = json.loads(row["urgency_factors_snapshot"] or "{}")
        return row

    def has_open_intervention(self, system_id: str) -> bool:
        row = self.con.execute(
            "SELECT COUNT(*) FROM interventions WHERE system_id = ? AND closed_at IS NULL",
            [system_id],
        ).fetchone()
        return row[0] > 0

    def active_cooldown_until(self, system_id: str, now: datetime) -> Optional[datetime]:
        row = self.con.execute(
            "SELECT MAX(cooldown_until) FROM interventions WHERE system_id = ? AND cooldown_until > ?",
            [system_id, naive_utc(now)],
        ).fetchone()
        return row[0]

    def has_active_cooldown(self, system_id: str, now: datetime) -> bool:
        return self.active_cooldown_until(system_id, now) is not None

    def decisions_for(self, intervention_id: str):
        rows = fetch_dicts(
            self.con,
            "SELECT * FROM decision_events WHERE intervention_id = ? ORDER BY created_at",
            [intervention_id],
        )
        for row in rows:
            row["assumptions_json"] = json.loads(row["assumptions_json"])
        return rows

    # -- lifecycle ------------------------------------------------------------

    def evaluate_system(self, system: SystemForEligibility, home: Home, context: RiskContext, now: datetime) -> Dict[str, Any]:
        """Eligibility with cooldown and open-session state read from the store."""
        until = self.active_cooldown_until(system.id, now)
        return check_intervention_eligibility(
            system,
            home,
            context,
            has_active_cooldown=until is not None,
            has_open_intervention=self.has_open_intervention(system.id),
            cooldown_until=until.isoformat() if until else None,
        )

    def open_intervention(
        self,
        home_id: str,
        system_id: str,
        trigger_reason: str,
        eligibility: Dict[str, Any],
        now: datetime,
    ) -> str:
        """Open a planning session, snapshotting the score that triggered it."""
        if trigger_reason not in TRIGGER_REASONS:
            raise ValueError(f"unknown trigger_reason {trigger_reason!r}")
        if self.has_open_intervention(system_id):
            raise InterventionConflictError(f"system {system_id} already has an open intervention")
        until = self.active_cooldown_until(system_id, now)
        if until is not None:
            logger.info("Refused intervention for %s: cooldown until %s", system_id, until)
            raise CooldownActiveError(f"system {system_id} is in cooldown until {until.isoformat()}")

        intervention_id = str(uuid.uuid4())
        breakdown = eligibility.get("breakdown") or {}
        self.con.execute(
            """
            INSERT INTO interventions (
              id, home_id, system_id, trigger_reason, intervention_score,
              intervention_threshold_used, risk_outlook_snapshot,
              urgency_premium_snapshot, urgency_factors_snapshot, opened_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                intervention_id,
                home_id,
                system_id,
                trigger_reason,
                eligibility["score"],
                eligibility["threshold"],
                eligibility.get("risk_outlook_12mo", 0),
                breakdown.get("urgency_premium", 0),
                json.dumps(eligibility.get("urgency_factors") or {}),
                naive_utc(now),
            ],
        )
        logger.info("Opened intervention %s for system %s (score %.2f)", intervention_id, system_id, eligibility["score"])
        return intervention_id

    def _require_open(self, intervention_id: str) -> Dict[str, Any]:
        row = self.get(intervention_id)
        if row["closed_at"] is not None:
            raise InterventionConflictError(f"intervention {intervention_id} is already closed ({row['closed_reason']})")
        return row

    def mark_viewed(self, intervention_id: str, now: datetime):
        self._require_open(intervention_id)
        self.con.execute(
            "UPDATE interventions SET last_viewed_at = ? WHERE id = ?",
            [naive_utc(now), intervention_id],
        )

    def record_decision(
        self,
        intervention_id: str,
        decision_type: str,
        now: datetime,
        assumptions: Optional[Dict[str, Any]] = None,
        defer_until: Optional[datetime] = None,
        next_review_at: Optional[datetime] = None,
        user_notes: Optional[str] = None,
    ) -> str:
        """Write a decision event, close the session and start the cooldown."""
        if decision_type not in DECISION_TYPES:
            raise ValueError(f"unknown decision_type {decision_type!r}")
        row = self._require_open(intervention_id)
        now = naive_utc(now)

        event_id = str(uuid.uuid4())
        reason = "user_deferred" if decision_type == "defer_with_date" else "decision_made"
        cooldown_until = now + timedelta(days=self.cooldown_days(decision_type))

        # the event and the close land together or not at all
        self.con.begin()
        try:
            self.con.execute(
                """
                INSERT INTO decision_events (
                  id, home_id, system_id, intervention_id, decision_type,
                  defer_until, next_review_at, assumptions_json, user_notes, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    event_id,
                    row["home_id"],
                    row["system_id"],
                    intervention_id,
                    decision_type,
                    naive_utc(defer_until) if defer_until else None,
                    naive_utc(next_review_at) if next_review_at else None,
                    json.dumps(assumptions or {}),
                    user_notes,
                    now,
                ],
            )
            self.con.execute(
                "UPDATE interventions SET closed_at = ?, closed_reason = ?, cooldown_until = ? WHERE id = ?",
                [now, reason, cooldown_until, intervention_id],
            )
            self.con.commit()
        except Exception:
            self.con.rollback()
            raise
        logger.info("Closed intervention %s: %s (%s), cooldown until %s", intervention_id, reason, decision_type, cooldown_until)
        return event_id

    def close_session(self, intervention_id: str, now: datetime, reason: str = "closed_without_decision"):
        """Close without a decision; no event is written and no cooldown starts."""
        if reason not in SESSION_CLOSE_REASONS:
            raise ValueError(f"close_session reason must be one of {SESSION_CLOSE_REASONS}, got {reason!r}")
        self._require_open(intervention_id)
        self.con.execute(
            "UPDATE interventions SET closed_at = ?, closed_reason = ? WHERE id = ?",
            [naive_utc(now), reason, intervention_id],
        )
        logger.info("Closed intervention %s: %s", intervention_id, reason)

    def close_stale(self, now: datetime, max_idle_days: Optional[int] = None) -> int:
        """Time out open sessions idle since their last view (or open) for too long."""
        if max_idle_days is None:
            max_idle_days = int(self.cfg.get("stale_after_days", STALE_AFTER_DAYS))
        now = naive_utc(now)
        cutoff = now - timedelta(days=max_idle_days)
        stale = [
            r[0]
            for r in self.con.execute(
                """
                SELECT id FROM interventions
                WHERE closed_at IS NULL AND COALESCE(last_viewed_at, opened_at) < ?
                """,
                [cutoff],
            ).fetchall()
        ]
        for intervention_id in stale:
            self.con.execute(
                "UPDATE interventions SET closed_at = ?, closed_reason = 'timed_out' WHERE id = ?",
                [now, intervention_id],
            )
        if stale:
            logger.info("Timed out %d stale interventions", len(stale))
        return len(stale)
