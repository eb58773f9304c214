import logging
import pathlib
from typing import List, Dict, Any

import pandas as pd

from db.schema import ensure_schema
from db.sql_utils import fetch_dicts

logger = logging.getLogger(__name__)

TEXT_COLUMNS = ["permit_number", "description", "permit_type", "work_class", "status"]
DATE_COLUMNS = ["date_issued", "date_finaled"]

# County exports disagree on headers.
COLUMN_ALIASES = {
    "permit_no": "permit_number",
    "permit_num": "permit_number",
    "number": "permit_number",
    "type": "permit_type",
    "work_description": "description",
    "issue_date": "date_issued",
    "issued_date": "date_issued",
    "final_date": "date_finaled",
    "finaled_date": "date_finaled",
    "approval_date": "date_finaled",
}


def normalize_permits(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    df = df.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if v not in df.columns})

    for col in TEXT_COLUMNS:
        if col not in df.columns:
            df[col] = None
        df[col] = df[col].map(lambda v: None if pd.isna(v) else str(v).strip())
    for col in DATE_COLUMNS:
        if col not in df.columns:
            df[col] = None
        df[col] = pd.to_datetime(df[col], errors="coerce")
    return df[TEXT_COLUMNS + DATE_COLUMNS]


def load_permits_csv(con, csv_path, home_id: str) -> int:
    """Replace a home's permits with the rows of a CSV export. Returns the row count."""
    csv_path = pathlib.Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Permit CSV not found: {csv_path}")
    ensure_schema(con)

    df = normalize_permits(pd.read_csv(csv_path))
    con.execute("DELETE FROM permits WHERE home_id = ?", [home_id])  # full refresh per home
    con.register("permits_in", df)
    con.execute(
        """
        INSERT INTO permits
        SELECT ?, CAST(permit_number AS TEXT), CAST(description AS TEXT),
               CAST(permit_type AS TEXT), CAST(work_class AS TEXT), CAST(status AS TEXT),
               CAST(date_issued AS DATE), CAST(date_finaled AS DATE)
        FROM permits_in
        """,
        [home_id],
    )
    con.unregister("permits_in")
    logger.info("Loaded %d permits for home %s from %s", len(df), home_id, csv_path)
    return len(df)


def permits_for_home(con, home_id: str) -> List[Dict[str, Any]]:
    return fetch_dicts(
        con,
        "SELECT * FROM permits WHERE home_id = ? ORDER BY date_finaled DESC NULLS LAST, date_issued DESC NULLS LAST",
        [home_id],
    )


def permit_count(con, home_id: str) -> int:
    return con.execute("SELECT COUNT(*) FROM permits WHERE home_id = ?", [home_id]).fetchone()[0]
