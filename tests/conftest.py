import duckdb
import pytest

from db.schema import ensure_schema


@pytest.fixture
def con():
    c = duckdb.connect(":memory:")
    ensure_schema(c)
    yield c
    c.close()


@pytest.fixture
def no_policy(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME_POLICY_PATH", str(tmp_path / "missing.yaml"))
