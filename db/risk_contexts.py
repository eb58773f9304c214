import logging
import pathlib
from datetime import date
from typing import List, Dict, Any

import yaml

from db.schema import ensure_schema
from db.sql_utils import fetch_dicts
from scoring.risk_context import RiskContext, default_risk_context, risk_context_from_row

logger = logging.getLogger(__name__)

FLAG_COLUMNS = ("hurricane_season", "freeze_warning", "heat_wave", "peak_season_hvac", "peak_season_roofing")


class RiskContextStore:
    def __init__(self, con):
        self.con = ensure_schema(con)

    def upsert(self, row: Dict[str, Any]):
        """Insert a context window, replacing any with the same state, zone and start date."""
        state = str(row["state"]).upper()
        climate_zone = row.get("climate_zone") or ""
        valid_from = row["valid_from"]
        self.con.execute(
            "DELETE FROM risk_contexts WHERE state = ? AND climate_zone = ? AND valid_from = ?",
            [state, climate_zone, valid_from],
        )
        self.con.execute(
            """
            INSERT INTO risk_contexts (
              state, climate_zone, hurricane_season, freeze_warning, heat_wave,
              peak_season_hvac, peak_season_roofing, valid_from, valid_until
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [state, climate_zone] + [bool(row.get(c)) for c in FLAG_COLUMNS] + [valid_from, row["valid_until"]],
        )

    def load(self, state: str, today: date, climate_zone: str = "") -> RiskContext:
        """The stored context valid on ``today``, else calendar defaults."""
        state = (state or "").upper()
        rows = fetch_dicts(
            self.con,
            """
            SELECT * FROM risk_contexts
            WHERE state = ? AND valid_from <= ? AND valid_until >= ?
            ORDER BY (climate_zone = ?) DESC, valid_from DESC
            LIMIT 1
            """,
            [state, today, today, climate_zone],
        )
        if rows:
            return risk_context_from_row(rows[0], today)
        return default_risk_context(state, climate_zone, today)

    def seed_from_yaml(self, path) -> int:
        path = pathlib.Path(path)
        doc = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        rows: List[Dict[str, Any]] = doc.get("risk_contexts") or []
        for row in rows:
            self.upsert(row)
        logger.info("Seeded %d risk contexts from %s", len(rows), path)
        return len(rows)
