"""Create the home database and optionally load permits and risk contexts.

    python -m db.init_duckdb
    python -m db.init_duckdb --permits data/permits.csv --home-id h1
    python -m db.init_duckdb --risk-contexts config/risk_contexts.yaml
"""
import argparse
import pathlib

from db.permits import load_permits_csv
from db.risk_contexts import RiskContextStore
from db.schema import TABLES, ensure_schema
from db.sql_utils import db_path, duckdb_conn

RISK_CONTEXTS_YAML = pathlib.Path("config/risk_contexts.yaml")


def main(argv=None):
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    ap.add_argument("--db", default=None, help="database path (default: HOME_DB_PATH or policy storage.db_path)")
    ap.add_argument("--permits", default=None, help="permit CSV export to load")
    ap.add_argument("--home-id", default=None, help="home the permit CSV belongs to")
    ap.add_argument("--risk-contexts", default=None, help="YAML file of seasonal risk windows")
    args = ap.parse_args(argv)

    if args.permits and not args.home_id:
        raise SystemExit("--permits needs --home-id")

    target = args.db or db_path().as_posix()
    pathlib.Path(target).parent.mkdir(parents=True, exist_ok=True)
    con = duckdb_conn(target)
    ensure_schema(con)
    print(f"[OK] Schema ready in {target} ({', '.join(TABLES)})")

    if args.permits:
        csv_path = pathlib.Path(args.permits)
        if not csv_path.exists():
            raise SystemExit(f"CSV not found: {csv_path}. Place the permit export under data/.")
        n = load_permits_csv(con, csv_path, args.home_id)
        print(f"[OK] Loaded {n} permits for home {args.home_id}")

    seed = pathlib.Path(args.risk_contexts) if args.risk_contexts else RISK_CONTEXTS_YAML
    if seed.exists():
        n = RiskContextStore(con).seed_from_yaml(seed)
        print(f"[OK] Seeded {n} risk contexts from {seed}")
    elif args.risk_contexts:
        print(f"[WARN] Risk context file not found: {seed}")

    con.close()


if __name__ == "__main__":
    main()
