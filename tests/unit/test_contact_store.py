"""Unit tests for the SQLite contact store."""

from __future__ import annotations

import json
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from recipient_suggest.contacts import ContactStore
from recipient_suggest.exceptions import ContactStoreError
from recipient_suggest.models import ContactObservation

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _obs(email: str, weight: int = 1, name: str | None = None) -> ContactObservation:
    return ContactObservation(email=email, name=name, weight=weight)


def _fixed_store(tmp_path, *times: datetime) -> ContactStore:
    remaining = list(times)

    def clock() -> datetime:
        return remaining.pop(0) if len(remaining) > 1 else remaining[0]

    store = ContactStore(tmp_path / "fixed.sqlite3", clock=clock)
    store.initialize()
    return store


def _write_raw(store: ContactStore, db_path, account_id: str, value: str) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "INSERT OR REPLACE INTO kv_store(key, value, updated_at_iso) VALUES (?, ?, ?)",
            (f"contacts:{account_id}", value, T0.isoformat()),
        )


class TestContactStore:
    """Tests for the SQLite contact store."""

    def test_get_unknown_account_is_empty(self, store) -> None:
        assert store.get("nobody") == []

    def test_merge_twice_accumulates_frequency(self, store) -> None:
        store.merge("acct", [_obs("a@x.com", 3)])
        store.merge("acct", [_obs("a@x.com", 3)])

        entries = store.get("acct")
        assert len(entries) == 1
        assert entries[0].email == "a@x.com"
        assert entries[0].frequency == 6

    def test_merge_dedups_case_insensitively(self, store) -> None:
        store.merge("acct", [_obs("Alice@Example.com", 2), _obs("alice@example.COM", 1)])
        store.merge("acct", [_obs("ALICE@EXAMPLE.COM", 4)])

        entries = store.get("acct")
        assert len(entries) == 1
        assert entries[0].email == "Alice@Example.com"
        assert entries[0].frequency == 7

    def test_merge_keeps_existing_name(self, store) -> None:
        store.merge("acct", [_obs("a@x.com")])
        store.merge("acct", [_obs("a@x.com", name="Alice")])
        store.merge("acct", [_obs("a@x.com", name="Someone Else")])

        assert store.get("acct")[0].name == "Alice"

    def test_frequency_never_decreases(self, store) -> None:
        store.merge("acct", [_obs("a@x.com", 5)])
        before = store.get("acct")[0].frequency

        store.merge("acct", [_obs("a@x.com", 0)])

        assert store.get("acct")[0].frequency >= before

    def test_last_interaction_is_maximum(self, tmp_path) -> None:
        later = T0 + timedelta(days=2)
        store = _fixed_store(tmp_path, later, T0)

        store.merge("acct", [_obs("a@x.com")])
        store.merge("acct", [_obs("a@x.com")])

        assert store.get("acct")[0].last_interaction_at == later

    def test_accounts_are_isolated(self, store) -> None:
        store.merge("one", [_obs("a@x.com")])
        store.merge("two", [_obs("b@x.com")])

        assert [e.email for e in store.get("one")] == ["a@x.com"]
        assert [e.email for e in store.get("two")] == ["b@x.com"]

    def test_persisted_record_format(self, store, settings) -> None:
        store.merge("acct", [_obs("a@x.com", 2, name="Alice")])

        with sqlite3.connect(settings.contacts_db_path) as conn:
            (raw,) = conn.execute("SELECT value FROM kv_store WHERE key = 'contacts:acct'").fetchone()

        record = json.loads(raw)
        assert record[0]["email"] == "a@x.com"
        assert record[0]["name"] == "Alice"
        assert record[0]["freq"] == 2
        assert isinstance(record[0]["last"], int)

    @pytest.mark.parametrize("raw", ["", "[]", "null", "{}"])
    def test_get_tolerates_missing_or_empty_record(self, store, settings, raw) -> None:
        _write_raw(store, settings.contacts_db_path, "acct", raw)

        assert store.get("acct") == []

    def test_get_rejects_corrupt_record(self, store, settings) -> None:
        _write_raw(store, settings.contacts_db_path, "acct", "{not json")

        with pytest.raises(ContactStoreError):
            store.get("acct")

    def test_uninitialized_store_raises_store_error(self, tmp_path) -> None:
        store = ContactStore(tmp_path / "fresh.sqlite3")

        with pytest.raises(ContactStoreError):
            store.get("acct")

    def test_suggest_breaks_ties_by_email(self, tmp_path) -> None:
        store = _fixed_store(tmp_path, T0)
        store.merge("acct", [_obs("z@z.com", 1), _obs("y@y.com", 5), _obs("x@x.com", 5)])

        result = store.suggest("acct", "", limit=2)

        assert [s.email for s in result] == ["x@x.com", "y@y.com"]

    def test_suggest_prefers_recent_on_equal_frequency(self, tmp_path) -> None:
        store = _fixed_store(tmp_path, T0, T0 + timedelta(hours=1))
        store.merge("acct", [_obs("a@x.com", 2)])
        store.merge("acct", [_obs("b@x.com", 2)])

        assert [s.email for s in store.suggest("acct", "")] == ["b@x.com", "a@x.com"]

    def test_suggest_prefix_on_email_or_name(self, store) -> None:
        store.merge(
            "acct",
            [
                _obs("alice@x.com", 1),
                _obs("bob@x.com", 3, name="Alfred Bob"),
                _obs("carol@al.com", 9),
            ],
        )

        result = store.suggest("acct", "AL")

        assert [s.email for s in result] == ["bob@x.com", "alice@x.com"]
        assert result[0].display_text == "Alfred Bob <bob@x.com>"
        assert result[1].display_text == "alice@x.com"

    def test_suggest_falls_back_to_substring(self, store) -> None:
        store.merge("acct", [_obs("alice@example.com", 1), _obs("bob@other.org", 1)])

        assert [s.email for s in store.suggest("acct", "example")] == ["alice@example.com"]

    def test_suggest_excludes_chosen_recipients(self, store) -> None:
        store.merge("acct", [_obs("a@x.com", 5), _obs("b@x.com", 1)])

        result = store.suggest("acct", "", exclude=["A@X.COM"])

        assert [s.email for s in result] == ["b@x.com"]

    def test_suggest_is_deterministic(self, store) -> None:
        store.merge("acct", [_obs(f"user{i}@x.com", i % 3) for i in range(20)])

        first = store.suggest("acct", "user", limit=20)
        second = store.suggest("acct", "user", limit=20)

        assert [s.email for s in first] == [s.email for s in second]

    def test_clear_removes_account(self, store) -> None:
        store.merge("acct", [_obs("a@x.com")])

        store.clear("acct")

        assert store.get("acct") == []

    def test_concurrent_merges_do_not_lose_updates(self, store) -> None:
        def merge_once(_: int) -> None:
            store.merge("acct", [_obs("a@x.com", 1)])

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(merge_once, range(40)))

        assert store.get("acct")[0].frequency == 40

    def test_initialize_is_idempotent(self, store) -> None:
        store.merge("acct", [_obs("a@x.com")])

        store.initialize()

        assert len(store.get("acct")) == 1
