import logging
from datetime import datetime
from typing import Set

from db.interventions import naive_utc
from db.schema import ensure_schema

logger = logging.getLogger(__name__)


class DismissalStore:
    """Dismissed recommendation ids per home. Permanent; dismissing twice is a no-op."""

    def __init__(self, con):
        self.con = ensure_schema(con)

    def dismiss(self, home_id: str, recommendation_id: str, now: datetime) -> bool:
        if self.is_dismissed(home_id, recommendation_id):
            return False
        self.con.execute(
            "INSERT INTO dismissed_recommendations (home_id, recommendation_id, dismissed_at) VALUES (?, ?, ?)",
            [home_id, recommendation_id, naive_utc(now)],
        )
        logger.info("Dismissed recommendation %s for home %s", recommendation_id, home_id)
        return True

    def is_dismissed(self, home_id: str, recommendation_id: str) -> bool:
        row = self.con.execute(
            "SELECT COUNT(*) FROM dismissed_recommendations WHERE home_id = ? AND recommendation_id = ?",
            [home_id, recommendation_id],
        ).fetchone()
        return row[0] > 0

    def dismissed_ids(self, home_id: str) -> Set[str]:
        rows = self.con.execute(
            "SELECT recommendation_id FROM dismissed_recommendations WHERE home_id = ?",
            [home_id],
        ).fetchall()
        return {r[0] for r in rows}
