import duckdb
import pytest

from db import init_duckdb


def test_creates_schema_and_seeds(tmp_path, capsys):
    db_file = tmp_path / "home.duckdb"
    seed = tmp_path / "risk.yaml"
    seed.write_text(
        "risk_contexts:\n"
        "  - {state: FL, climate_zone: hot_humid, heat_wave: true, valid_from: 2026-06-01, valid_until: 2026-08-31}\n",
        encoding="utf-8",
    )
    csv = tmp_path / "permits.csv"
    csv.write_text("permit_number,description,date_issued\nM-1,HVAC replace,2020-05-01\n", encoding="utf-8")

    init_duckdb.main(["--db", str(db_file), "--risk-contexts", str(seed), "--permits", str(csv), "--home-id", "h1"])

    out = capsys.readouterr().out
    assert "[OK] Schema ready" in out
    assert "[OK] Loaded 1 permits for home h1" in out
    assert "[OK] Seeded 1 risk contexts" in out
    con = duckdb.connect(str(db_file))
    assert con.execute("SELECT COUNT(*) FROM permits").fetchone()[0] == 1
    con.close()


def test_permits_need_home_id(tmp_path):
    with pytest.raises(SystemExit):
        init_duckdb.main(["--db", str(tmp_path / "x.duckdb"), "--permits", "data/permits.csv"])
