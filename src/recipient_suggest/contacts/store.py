"""SQLite-backed contact cache.

Each account owns one record: key ``contacts:<account_id>``, value a JSON
array of ``{email, name, freq, last}`` objects (``last`` in epoch
milliseconds). Merges rewrite the whole record inside an immediate
transaction, so concurrent writers for the same account queue up rather than
overwrite each other.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from recipient_suggest.contacts.ranking import exclude_addresses, filter_by_query, rank_entries, to_suggestion
from recipient_suggest.exceptions import ContactStoreError
from recipient_suggest.models import ContactEntry, ContactObservation, RecipientSuggestion
from recipient_suggest.utils import normalize_email

logger = structlog.get_logger()


_SCHEMA_VERSION = 1


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _key_for_account(account_id: str) -> str:
    return f"contacts:{account_id}"


def _to_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def _from_millis(value: Any) -> datetime:
    try:
        return datetime.fromtimestamp(int(value) / 1000.0, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return datetime.fromtimestamp(0, tz=timezone.utc)


def _decode_entries(raw: str | None) -> list[ContactEntry]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ContactStoreError(f"Stored contact set is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        return []

    entries: list[ContactEntry] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        email = item.get("email")
        if not isinstance(email, str) or not email:
            continue
        try:
            freq = max(0, int(item.get("freq") or 0))
        except (TypeError, ValueError):
            freq = 0
        name = item.get("name")
        entries.append(
            ContactEntry(
                email=email,
                name=name if isinstance(name, str) and name else None,
                frequency=freq,
                last_interaction_at=_from_millis(item.get("last")),
            )
        )
    return entries


def _encode_entries(entries: Iterable[ContactEntry]) -> str:
    return json.dumps(
        [
            {
                "email": e.email,
                "name": e.name,
                "freq": e.frequency,
                "last": _to_millis(e.last_interaction_at),
            }
            for e in entries
        ]
    )


class ContactStore:
    """Repository for per-account contact sets."""

    def __init__(self, db_path: Path, clock: Callable[[], datetime] = _now_utc) -> None:
        """Create a store.

        Args:
            db_path: Path to the SQLite database file.
            clock: Source of "now" used to stamp merged entries.
        """

        self._db_path = db_path
        self._clock = clock

    def initialize(self) -> None:
        """Create or verify the store schema."""

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with self._connect() as conn:
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS _schema_meta (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    );
                    """
                )

                current_version = self._get_schema_version(conn)
                if current_version is None:
                    self._create_schema_v1(conn)
                    self._set_schema_version(conn, _SCHEMA_VERSION)
                    logger.info("contact_store_schema_created", version=_SCHEMA_VERSION)
                    return

                if current_version != _SCHEMA_VERSION:
                    raise ContactStoreError(
                        f"Unsupported schema version {current_version}; expected {_SCHEMA_VERSION}"
                    )
        except sqlite3.Error as exc:
            raise ContactStoreError(str(exc)) from exc

    def get(self, account_id: str) -> list[ContactEntry]:
        """Return every contact stored for an account (empty if none)."""

        try:
            with self._connect() as conn:
                raw = self._read_value(conn, _key_for_account(account_id))
        except sqlite3.Error as exc:
            logger.error("contact_store_read_failed", account_id=account_id, error=str(exc))
            raise ContactStoreError(str(exc)) from exc
        return _decode_entries(raw)

    def merge(self, account_id: str, observations: Iterable[ContactObservation]) -> None:
        """Fold observations into the account's contact set.

        For each observation keyed by lower-cased email: the frequency grows by
        the observation weight, the last interaction moves forward to now, and
        the name is filled in only if none was stored.
        """

        incoming = list(observations)
        if not incoming:
            return

        now = self._clock()
        key = _key_for_account(account_id)

        try:
            with self._connect() as conn:
                conn.execute("BEGIN IMMEDIATE;")
                try:
                    entries = _decode_entries(self._read_value(conn, key))
                    merged = {e.key: e for e in entries}

                    for obs in incoming:
                        obs_key = normalize_email(obs.email)
                        prev = merged.get(obs_key)
                        if prev is None:
                            merged[obs_key] = ContactEntry(
                                email=obs.email.strip(),
                                name=obs.name or None,
                                frequency=obs.weight,
                                last_interaction_at=now,
                            )
                            continue
                        prev.frequency += obs.weight
                        if now > prev.last_interaction_at:
                            prev.last_interaction_at = now
                        if prev.name is None and obs.name:
                            prev.name = obs.name

                    self._write_value(conn, key, _encode_entries(merged.values()))
                    conn.execute("COMMIT;")
                except BaseException:
                    conn.execute("ROLLBACK;")
                    raise
        except sqlite3.Error as exc:
            logger.error("contact_store_merge_failed", account_id=account_id, error=str(exc))
            raise ContactStoreError(str(exc)) from exc

        logger.debug(
            "contact_store_merged",
            account_id=account_id,
            observations=len(incoming),
            contacts=len(merged),
        )

    def suggest(
        self,
        account_id: str,
        prefix: str,
        limit: int = 10,
        exclude: Iterable[str] = (),
    ) -> list[RecipientSuggestion]:
        """Rank the account's contacts against a typed prefix.

        Args:
            account_id: Owning account.
            prefix: Typed text; empty returns the top contacts.
            limit: Maximum number of suggestions.
            exclude: Addresses already chosen by the caller.

        Returns:
            Suggestions ordered by frequency, recency, then address.
        """

        entries = exclude_addresses(self.get(account_id), exclude)
        matches = filter_by_query(entries, prefix)
        return [to_suggestion(e) for e in rank_entries(matches)[: max(0, limit)]]

    def clear(self, account_id: str) -> None:
        """Remove an account's contact set."""

        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (_key_for_account(account_id),))
        except sqlite3.Error as exc:
            raise ContactStoreError(str(exc)) from exc

        logger.info("contact_store_cleared", account_id=account_id)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        # Autocommit mode; merge() manages its own transaction.
        conn = sqlite3.connect(self._db_path, timeout=30.0, isolation_level=None)
        try:
            conn.row_factory = sqlite3.Row
            yield conn
        finally:
            conn.close()

    def _read_value(self, conn: sqlite3.Connection, key: str) -> str | None:
        row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return None if row is None else str(row[0])

    def _write_value(self, conn: sqlite3.Connection, key: str, value: str) -> None:
        conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at_iso)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at_iso = excluded.updated_at_iso
            """,
            (key, value, _now_utc().isoformat()),
        )

    def _get_schema_version(self, conn: sqlite3.Connection) -> int | None:
        row = conn.execute(
            "SELECT value FROM _schema_meta WHERE key = 'schema_version'"
        ).fetchone()
        if row is None:
            return None
        return int(row[0])

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO _schema_meta(key, value) VALUES('schema_version', ?) ",
            (str(version),),
        )

    def _create_schema_v1(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at_iso TEXT NOT NULL
            );
            """
        )
