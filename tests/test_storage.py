from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from streaks.db import create_db_engine
from streaks.db import create_session_factory
from streaks.db import init_db
from streaks.storage import SqlKeyValueStore


@pytest.fixture
def file_store(tmp_path) -> SqlKeyValueStore:
    engine = create_db_engine(f"sqlite+pysqlite:///{tmp_path / 'streaks.db'}")
    init_db(engine)
    yield SqlKeyValueStore(create_session_factory(engine))
    engine.dispose()


def test_set_overwrites_existing_value(file_store: SqlKeyValueStore) -> None:
    file_store.set("cached_contributions_octocat", "first")
    file_store.set("cached_contributions_octocat", "second")

    assert file_store.get("cached_contributions_octocat") == "second"


def test_concurrent_first_writes_to_same_key_succeed(
    file_store: SqlKeyValueStore,
) -> None:
    writers = 4
    keys = [f"cached_contributions_user{index}" for index in range(10)]

    for key in keys:
        barrier = Barrier(writers)

        def write(value: str, key: str = key, barrier: Barrier = barrier) -> None:
            barrier.wait()
            file_store.set(key, value)

        values = [f"value-{index}" for index in range(writers)]
        with ThreadPoolExecutor(max_workers=writers) as pool:
            # Re-raises any writer failure.
            list(pool.map(write, values))

        assert file_store.get(key) in values


def test_delete_removes_key(file_store: SqlKeyValueStore) -> None:
    file_store.set("app_settings", "{}")

    file_store.delete("app_settings")
    file_store.delete("app_settings")

    assert file_store.get("app_settings") is None


def test_set_without_native_upsert_inserts_then_updates(
    file_store: SqlKeyValueStore, monkeypatch
) -> None:
    monkeypatch.setattr("streaks.storage.UPSERT_INSERTS", {})

    file_store.set("app_settings", "first")
    file_store.set("app_settings", "second")

    assert file_store.get("app_settings") == "second"
