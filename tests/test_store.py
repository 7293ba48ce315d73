"""Tests for secret history storage."""

from __future__ import annotations

import json
from datetime import date

from twofa.store import (
    HISTORY_KEY,
    LAST_SECRET_KEY,
    JsonFileStore,
    MemoryStore,
    SecretHistory,
    format_history_line,
)

A = "AAAAAAAAAAAAAAAA"
B = "BBBBBBBBBBBBBBBB"


def test_history_line_date_not_padded():
    assert format_history_line(A, date(2024, 3, 5)) == f"2024.3.5 - {A}"


def test_remember_most_recent_first_deduplicated():
    store = MemoryStore()
    hist = SecretHistory(store)
    day = date(2025, 1, 2)
    hist.remember(A, day)
    hist.remember(B, day)
    hist.remember(A, day)
    assert hist.lines() == [f"2025.1.2 - {A}", f"2025.1.2 - {B}"]
    assert store.get(HISTORY_KEY) == f"2025.1.2 - {A}\n2025.1.2 - {B}"


def test_same_secret_on_another_day_is_kept():
    hist = SecretHistory(MemoryStore())
    hist.remember(A, date(2025, 1, 1))
    hist.remember(A, date(2025, 1, 2))
    assert len(hist.lines()) == 2


def test_last_secret_and_clear():
    store = MemoryStore()
    hist = SecretHistory(store)
    assert hist.last_secret is None
    hist.set_last_secret(A)
    hist.remember(A)
    assert store.get(LAST_SECRET_KEY) == A
    hist.clear()
    assert hist.lines() == []
    assert hist.last_secret == A


def test_json_file_store_persists(tmp_path):
    path = tmp_path / "nested" / "store.json"
    store = JsonFileStore(path)
    assert store.get(LAST_SECRET_KEY) is None
    store.set(LAST_SECRET_KEY, A)
    assert json.loads(path.read_text()) == {LAST_SECRET_KEY: A}
    assert JsonFileStore(path).get(LAST_SECRET_KEY) == A
    store.remove(LAST_SECRET_KEY)
    assert store.get(LAST_SECRET_KEY) is None
    store.remove("missing")


def test_json_file_store_tolerates_corruption(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json")
    store = JsonFileStore(path)
    assert store.get(LAST_SECRET_KEY) is None
    store.set(LAST_SECRET_KEY, B)
    assert store.get(LAST_SECRET_KEY) == B
