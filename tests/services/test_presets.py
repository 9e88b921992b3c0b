import pytest

from crm import presets
from crm.errors import NotFoundError, ValidationError


def test_appreciation_preset_requires_rates(store, broker_id):
    with pytest.raises(ValidationError) as excinfo:
        presets.create_preset(store, broker_id, "appreciation", {"name": "Prime", "construction_appreciation": 12})

    assert "growth_appreciation is required" in excinfo.value.issues
    assert "rent_growth_rate is required" not in excinfo.value.issues


def test_appreciation_preset_roundtrip(store, broker_id):
    row = presets.create_preset(store, broker_id, "appreciation", {
        "name": "Prime", "construction_appreciation": "12", "growth_appreciation": 8,
        "mature_appreciation": 4, "growth_period_years": 5,
    })

    assert row["user_id"] == broker_id
    assert row["construction_appreciation"] == 12.0
    assert row["rent_growth_rate"] is None
    assert presets.list_presets(store, broker_id, "appreciation") == [row]


def test_exit_preset_normalizes_months(store, broker_id):
    row = presets.create_preset(store, broker_id, "exit", {"name": "Flip", "exit_months": [24, 12, 12, 0]})

    assert row["exit_months"] == [12, 24]
    assert row["minimum_exit_threshold"] == 30.0

    with pytest.raises(ValidationError):
        presets.update_preset(store, broker_id, "exit", row["id"], {"name": "Flip", "minimum_exit_threshold": 140})


def test_presets_are_private(store, broker_id):
    row = presets.create_preset(store, broker_id, "exit", {"name": "Flip", "exit_months": [18]})

    with pytest.raises(NotFoundError):
        presets.delete_preset(store, "broker-2", "exit", row["id"])
    presets.delete_preset(store, broker_id, "exit", row["id"])
    assert presets.list_presets(store, broker_id, "exit") == []


def test_unknown_kind(store, broker_id):
    with pytest.raises(NotFoundError):
        presets.list_presets(store, broker_id, "rental")


def test_exit_months_must_be_a_list(store, broker_id):
    with pytest.raises(ValidationError) as excinfo:
        presets.create_preset(store, broker_id, "exit", {"name": "Flip", "exit_months": "24"})

    assert "exit_months must be a list of whole months" in excinfo.value.issues


def test_preset_name_must_be_text(store, broker_id):
    with pytest.raises(ValidationError) as excinfo:
        presets.create_preset(store, broker_id, "exit", {"name": 42, "exit_months": [12]})

    assert "Preset name is required" in excinfo.value.issues
