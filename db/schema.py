# Timestamps are stored as naive UTC TIMESTAMP; JSON blobs as VARCHAR.

TABLES = {
    "interventions": """
        CREATE TABLE IF NOT EXISTS interventions (
          id TEXT PRIMARY KEY,
          home_id TEXT NOT NULL,
          system_id TEXT NOT NULL,
          trigger_reason TEXT NOT NULL,
          intervention_score DOUBLE NOT NULL,
          intervention_threshold_used DOUBLE NOT NULL,
          risk_outlook_snapshot DOUBLE NOT NULL,
          urgency_premium_snapshot DOUBLE DEFAULT 0,
          urgency_factors_snapshot TEXT,
          opened_at TIMESTAMP NOT NULL,
          last_viewed_at TIMESTAMP,
          closed_at TIMESTAMP,
          closed_reason TEXT,
          cooldown_until TIMESTAMP
        );
    """,
    "decision_events": """
        CREATE TABLE IF NOT EXISTS decision_events (
          id TEXT PRIMARY KEY,
          home_id TEXT NOT NULL,
          system_id TEXT NOT NULL,
          intervention_id TEXT,
          decision_type TEXT NOT NULL,
          defer_until TIMESTAMP,
          next_review_at TIMESTAMP,
          assumptions_json TEXT NOT NULL,
          user_notes TEXT,
          created_at TIMESTAMP NOT NULL
        );
    """,
    "risk_contexts": """
        CREATE TABLE IF NOT EXISTS risk_contexts (
          state TEXT NOT NULL,
          climate_zone TEXT NOT NULL,
          hurricane_season BOOLEAN DEFAULT false,
          freeze_warning BOOLEAN DEFAULT false,
          heat_wave BOOLEAN DEFAULT false,
          peak_season_hvac BOOLEAN DEFAULT false,
          peak_season_roofing BOOLEAN DEFAULT false,
          valid_from DATE NOT NULL,
          valid_until DATE NOT NULL
        );
    """,
    "dismissed_recommendations": """
        CREATE TABLE IF NOT EXISTS dismissed_recommendations (
          home_id TEXT NOT NULL,
          recommendation_id TEXT NOT NULL,
          dismissed_at TIMESTAMP NOT NULL,
          PRIMARY KEY (home_id, recommendation_id)
        );
    """,
    "permits": """
        CREATE TABLE IF NOT EXISTS permits (
          home_id TEXT NOT NULL,
          permit_number TEXT,
          description TEXT,
          permit_type TEXT,
          work_class TEXT,
          status TEXT,
          date_issued DATE,
          date_finaled DATE
        );
    """,
}


def ensure_schema(con):
    for ddl in TABLES.values():
        con.execute(ddl)
    return con
