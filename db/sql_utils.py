import os
from pathlib import Path
from typing import Optional

import duckdb

from scoring.policy import policy_section

DB_PATH = Path("db/home.duckdb")


def db_path() -> Path:
    env = os.getenv("HOME_DB_PATH")
    if env:
        return Path(env)
    return Path(policy_section("storage").get("db_path", DB_PATH.as_posix()))


def duckdb_conn(path: Optional[str] = None):
    """Open the home database. Pass ":memory:" for a throwaway connection."""
    target = path or db_path().as_posix()
    return duckdb.connect(target, read_only=False)


def fetch_dicts(con, sql: str, params=None):
    cur = con.execute(sql, params or [])
    cols = [d[0] for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]
