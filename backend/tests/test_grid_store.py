"""Tests for grid stores."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from redis.exceptions import WatchError

from gridagent.models.grid import Grid, PrimaryRow
from gridagent.services.grid.memory_store import MemoryGridStore
from gridagent.services.grid.redis_store import RedisGridStore
from gridagent.services.grid.store import StaleGridError
from gridagent.services.grid.store_factory import create_grid_store


def make_grid(title, minutes_ago=0):
    return Grid(
        title=title,
        rows=[PrimaryRow.from_tool_result({"type": "issue", "value": f"{title} row"})],
        created_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
    )


def test_memory_store_roundtrip():
    store = MemoryGridStore()
    grid = make_grid("first")

    store.save_grid(grid)

    loaded = store.load_grid(grid.id)
    assert loaded == grid
    assert store.load_grid("missing") is None


def test_memory_store_returns_copies():
    store = MemoryGridStore()
    grid = make_grid("first")
    store.save_grid(grid)

    loaded = store.load_grid(grid.id)
    loaded.title = "changed"

    assert store.load_grid(grid.id).title == "first"


def test_memory_store_lists_newest_first():
    store = MemoryGridStore()
    older = make_grid("older", minutes_ago=10)
    newer = make_grid("newer")
    store.save_grid(older)
    store.save_grid(newer)

    summaries = store.list_grids()

    assert [s.title for s in summaries] == ["newer", "older"]
    assert summaries[0].row_count == 1
    assert summaries[0].column_count == 1


def test_memory_store_rejects_stale_saves():
    store = MemoryGridStore()
    grid = make_grid("first")

    store.save_grid(grid)
    first = store.load_grid(grid.id)
    second = store.load_grid(grid.id)
    first.title = "renamed"
    store.save_grid(first)

    assert grid.version == 1
    assert store.load_grid(grid.id).version == 2
    second.title = "lost update"
    with pytest.raises(StaleGridError):
        store.save_grid(second)
    assert store.load_grid(grid.id).title == "renamed"


def test_memory_store_delete():
    store = MemoryGridStore()
    grid = make_grid("first")
    store.save_grid(grid)

    store.delete_grid(grid.id)
    store.delete_grid(grid.id)

    assert store.load_grid(grid.id) is None
    assert store.list_grids() == []


@pytest.fixture
def redis_client():
    return MagicMock()


def test_redis_store_save(redis_client):
    store = RedisGridStore(redis_client, key_prefix="grids:")
    grid = make_grid("first")
    pipe = redis_client.pipeline.return_value.__enter__.return_value
    pipe.get.return_value = None

    store.save_grid(grid)

    pipe.watch.assert_called_once_with(f"grids:{grid.id}")
    pipe.set.assert_called_once_with(f"grids:{grid.id}", grid.model_dump_json())
    pipe.sadd.assert_called_once_with("grids:index", grid.id)
    pipe.execute.assert_called_once()
    assert grid.version == 1


def test_redis_store_rejects_stale_save(redis_client):
    store = RedisGridStore(redis_client, key_prefix="grids:")
    grid = make_grid("first")
    pipe = redis_client.pipeline.return_value.__enter__.return_value
    pipe.get.return_value = grid.model_copy(update={"version": 3}).model_dump_json()

    with pytest.raises(StaleGridError):
        store.save_grid(grid)

    pipe.execute.assert_not_called()
    assert grid.version == 0


def test_redis_store_watch_conflict(redis_client):
    store = RedisGridStore(redis_client, key_prefix="grids:")
    grid = make_grid("first")
    pipe = redis_client.pipeline.return_value.__enter__.return_value
    pipe.get.return_value = None
    pipe.execute.side_effect = WatchError()

    with pytest.raises(StaleGridError):
        store.save_grid(grid)

    assert grid.version == 0


def test_redis_store_load(redis_client):
    store = RedisGridStore(redis_client, key_prefix="grids:")
    grid = make_grid("first")
    redis_client.get.return_value = grid.model_dump_json()

    assert store.load_grid(grid.id) == grid
    redis_client.get.assert_called_once_with(f"grids:{grid.id}")

    redis_client.get.return_value = None
    assert store.load_grid("missing") is None


def test_redis_store_list_drops_stale_index_entries(redis_client):
    store = RedisGridStore(redis_client, key_prefix="grids:")
    older = make_grid("older", minutes_ago=5)
    newer = make_grid("newer")
    records = {older.id: older.model_dump_json(), newer.id: newer.model_dump_json()}
    redis_client.smembers.return_value = {older.id, newer.id, "stale"}
    redis_client.mget.side_effect = lambda keys: [records.get(k[len("grids:"):]) for k in keys]

    summaries = store.list_grids()

    assert [s.title for s in summaries] == ["newer", "older"]
    redis_client.srem.assert_called_once_with("grids:index", "stale")


def test_redis_store_delete(redis_client):
    store = RedisGridStore(redis_client, key_prefix="grids:")
    pipe = redis_client.pipeline.return_value

    store.delete_grid("abc")

    pipe.delete.assert_called_once_with("grids:abc")
    pipe.srem.assert_called_once_with("grids:index", "abc")


def test_redis_store_ping(redis_client):
    store = RedisGridStore(redis_client)
    redis_client.ping.return_value = True
    assert store.ping() is True

    redis_client.ping.side_effect = ConnectionError("down")
    assert store.ping() is False


def test_store_factory():
    assert isinstance(create_grid_store("memory"), MemoryGridStore)
    with pytest.raises(ValueError):
        create_grid_store("sqlite")
