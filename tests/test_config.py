"""Tests for configuration loading."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from twofa.config import CONFIG_DIR, SLOTS_FILE, Settings, load_slots_config


def test_settings_defaults():
    s = Settings(_env_file=None)
    assert s.period_s == 30
    assert s.digits == 6
    assert s.max_auto_refresh == 3
    assert s.slots == ["primary"]
    assert s.resync_interval_s == 0.0


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("TWOFA_PERIOD_S", "60")
    monkeypatch.setenv("TWOFA_SLOTS", '["work", "home"]')
    monkeypatch.setenv("TWOFA_TIME_AUTHORITY_URL", "http://localhost:8080/")
    s = Settings(_env_file=None)
    assert s.period_s == 60
    assert s.slots == ["work", "home"]
    assert s.time_authority_url == "http://localhost:8080/"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"period_s": 0},
        {"digits": -1},
        {"max_auto_refresh": -1},
        {"slots": []},
        {"slots": ["a", "a"]},
        {"time_authority_url": "ftp://example.com"},
    ],
)
def test_settings_rejects_bad_values(kwargs):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **kwargs)


def test_slots_file_shipped():
    assert SLOTS_FILE.parent == CONFIG_DIR
    assert load_slots_config() == ["primary", "secondary"]


def test_load_slots_list_and_mapping(tmp_path):
    listed = tmp_path / "list.yaml"
    listed.write_text("- a\n- b\n")
    mapped = tmp_path / "map.yaml"
    mapped.write_text("slots:\n  - c\n")
    assert load_slots_config(listed) == ["a", "b"]
    assert load_slots_config(mapped) == ["c"]


def test_load_slots_missing_or_empty(tmp_path):
    assert load_slots_config(tmp_path / "nope.yaml") == []
    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert load_slots_config(empty) == []


def test_load_slots_bad_shape(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("slots: primary\n")
    with pytest.raises(ValueError, match="must be a list"):
        load_slots_config(bad)
