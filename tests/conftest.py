import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def store(tmp_path):
    from storage.record_store import RecordStore

    return RecordStore(str(tmp_path / "data"))


@pytest.fixture
def broker_id():
    return "broker-1"


@pytest.fixture
def no_geolocation(monkeypatch):
    """Views are recorded without calling the geolocation service."""
    monkeypatch.setattr("crm.analytics.lookup_ip", lambda ip: None)


@pytest.fixture
def client(store, monkeypatch, no_geolocation):
    from app import app

    monkeypatch.setitem(app.config, "STORE", store)
    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def auth(broker_id):
    return {"X-Broker-Id": broker_id}


@pytest.fixture(autouse=True)
def no_smtp(monkeypatch):
    monkeypatch.setattr("config.Config.SMTP_HOST", "")
