"""Durable local store for settings, completed entries and sync bookkeeping.

Everything lives under a handful of stable keys. Readers never raise: missing
or corrupt values fall back to defaults, and the corrupt text stays in place
until something deliberately overwrites it. Writers log failures and report
them through their boolean return value.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError
from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..models import CompletedEntry, Settings, valid_entries
from .models import Base, StoreRecord

logger = logging.getLogger(__name__)

SETTINGS_KEY = "pomodoro-settings"
ENTRIES_KEY = "pomodoro-stats"
MERGE_PENDING_KEY = "mergePending"
TOKEN_KEY = "token"


class LocalStore:
    """Key-value persistence for one local installation."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        """Initialize local store.

        Args:
            db_path: Path to SQLite database file.
                    If None, uses default ~/.pomodoro-sync/store.db
        """
        if db_path is None:
            db_path = Path.home() / ".pomodoro-sync" / "store.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(f"sqlite:///{self.db_path}", echo=False)
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

        # create_all only creates missing tables
        Base.metadata.create_all(bind=self.engine)
        logger.debug("Local store initialized at: %s", self.db_path)

    def get_session(self) -> Session:
        """Get a new database session.

        Note:
            Caller is responsible for closing the session
        """
        return self.SessionLocal()

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()

    # =========================================================================
    # Raw access
    # =========================================================================

    def get_raw(self, key: str) -> Optional[str]:
        """Get the stored text for a key, or None if absent or unreadable."""
        try:
            with self.get_session() as session:
                record = session.get(StoreRecord, key)
                return record.value if record else None
        except SQLAlchemyError as e:
            logger.error("Failed to read '%s' from local store: %s", key, e)
            return None

    def set_raw(self, key: str, value: str) -> bool:
        """Store text under a key."""
        return self._write({key: value})

    def delete_raw(self, key: str) -> bool:
        """Remove a key. Removing a missing key succeeds."""
        try:
            with self.get_session() as session:
                record = session.get(StoreRecord, key)
                if record is not None:
                    session.delete(record)
                    session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error("Failed to delete '%s' from local store: %s", key, e)
            return False

    def keys(self) -> List[str]:
        """List all stored keys."""
        try:
            with self.get_session() as session:
                return list(session.scalars(select(StoreRecord.key)).all())
        except SQLAlchemyError as e:
            logger.error("Failed to list local store keys: %s", e)
            return []

    def _write(self, values: Dict[str, str]) -> bool:
        """Write several keys in one transaction."""
        try:
            with self.get_session() as session:
                for key, value in values.items():
                    record = session.get(StoreRecord, key)
                    if record is None:
                        session.add(StoreRecord(key=key, value=value))
                    else:
                        record.value = value
                session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(
                "Failed to write %s to local store: %s", ", ".join(values), e
            )
            return False

    def _read_json(self, key: str) -> Any:
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Corrupt JSON under '%s', falling back to defaults", key)
            return None

    # =========================================================================
    # Settings
    # =========================================================================

    def read_settings(self) -> Settings:
        """Read local settings, filling gaps from the defaults."""
        data = self._read_json(SETTINGS_KEY)
        if not isinstance(data, dict):
            return Settings()

        merged = {**Settings().to_wire(), **data}
        try:
            return Settings.model_validate(merged)
        except ValidationError as e:
            logger.warning("Stored settings are invalid, using defaults: %s", e)
            return Settings()

    def write_settings(self, settings: Settings) -> bool:
        """Persist local settings."""
        return self.set_raw(SETTINGS_KEY, json.dumps(settings.to_wire()))

    # =========================================================================
    # Completed entries
    # =========================================================================

    def read_entries(self) -> List[CompletedEntry]:
        """Read the local entry log, dropping malformed items."""
        return valid_entries(self._read_json(ENTRIES_KEY))

    def append_entry(self, entry: CompletedEntry) -> bool:
        """Append one entry to the local log."""
        entries = self.read_entries()
        entries.append(entry)
        return self.write_all_entries(entries)

    def write_all_entries(self, entries: Iterable[CompletedEntry]) -> bool:
        """Replace the whole local entry log."""
        return self.set_raw(ENTRIES_KEY, _dump_entries(entries))

    def replace_all(
        self, settings: Settings, entries: Iterable[CompletedEntry]
    ) -> bool:
        """Overwrite settings and entries together in one transaction."""
        return self._write(
            {
                SETTINGS_KEY: json.dumps(settings.to_wire()),
                ENTRIES_KEY: _dump_entries(entries),
            }
        )

    # =========================================================================
    # Sync bookkeeping
    # =========================================================================

    def read_merge_pending(self) -> bool:
        """Whether the merge-pending marker is present."""
        return self.get_raw(MERGE_PENDING_KEY) is not None

    def write_merge_pending(self, pending: bool) -> bool:
        """Set or remove the merge-pending marker."""
        if pending:
            return self.set_raw(MERGE_PENDING_KEY, "1")
        return self.delete_raw(MERGE_PENDING_KEY)

    def read_token(self) -> Optional[str]:
        """Get the stored auth token."""
        token = self.get_raw(TOKEN_KEY)
        return token or None

    def write_token(self, token: str) -> bool:
        """Store the auth token."""
        return self.set_raw(TOKEN_KEY, token)

    def clear_token(self) -> bool:
        """Forget the auth token."""
        return self.delete_raw(TOKEN_KEY)


def _dump_entries(entries: Iterable[CompletedEntry]) -> str:
    return json.dumps([entry.to_wire() for entry in entries])
