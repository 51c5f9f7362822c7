from datetime import UTC
from datetime import datetime
from typing import Protocol

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker

from streaks.models import KeyValueEntry

UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class KeyValueStore(Protocol):
    """Opaque string store holding one serialized value per key."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class SqlKeyValueStore:
    """Key-value store persisted in the `kv_entries` table.

    Writes are last-write-wins: concurrent `set` calls for the same new key
    never fail on the primary key constraint.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> str | None:
        with self._session_factory() as db:
            entry = db.get(KeyValueEntry, key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            insert = UPSERT_INSERTS.get(db.get_bind().dialect.name)
            if insert is None:
                self._set_with_retry(db, key, value)
                return

            # ON CONFLICT skips column onupdate hooks, so refresh the timestamp here.
            statement = insert(KeyValueEntry).values(key=key, value=value)
            statement = statement.on_conflict_do_update(
                index_elements=[KeyValueEntry.key],
                set_={"value": value, "updated_at": datetime.now(UTC)},
            )
            db.execute(statement)
            db.commit()

    @staticmethod
    def _set_with_retry(db: Session, key: str, value: str) -> None:
        entry = db.get(KeyValueEntry, key)
        if entry is not None:
            entry.value = value
            db.commit()
            return

        db.add(KeyValueEntry(key=key, value=value))
        try:
            db.commit()
        except IntegrityError:
            # Another writer inserted the key first; overwrite it.
            db.rollback()
            entry = db.get(KeyValueEntry, key)
            entry.value = value
            db.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as db:
            db.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
            db.commit()
