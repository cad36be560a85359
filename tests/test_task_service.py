"""TaskService: owner scoping, cache-aside reads and invalidation on write."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from tasknotes.cache.backends import RedisBackend
from tasknotes.cache.keys import all_tasks_key, task_key
from tasknotes.cache.layer import CacheLayer
from tasknotes.core.errors import (
    AuthorizationError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from tasknotes.models import TaskCreate, TaskUpdate
from tasknotes.services.task_service import TaskService

DUE = datetime(2025, 9, 1, tzinfo=timezone.utc)


def rent():
    return TaskCreate(title="Pay rent", description="Monthly", due_date=DUE)


async def owner(users, name):
    return await users.resolve_owner_id(name)


async def test_create_task_sets_server_fields(task_service):
    task = await task_service.create_task("alice", rent())

    assert task.id is not None
    assert task.title == "Pay rent"
    assert task.is_completed is False
    assert task.created_at is not None
    assert task.due_date == DUE


async def test_create_task_accepts_plain_dict(task_service):
    task = await task_service.create_task(
        "alice",
        {"title": "Call mom", "description": "Sunday", "due_date": "2025-09-07T10:00:00Z"},
    )

    assert task.due_date == datetime(2025, 9, 7, 10, tzinfo=timezone.utc)


async def test_create_task_invalidates_list_and_seeds_item(task_service, users, cache):
    alice = await owner(users, "alice")
    await cache.set(all_tasks_key(alice), [{"stale": True}])

    created = await task_service.create_task("alice", rent())

    assert await cache.get(all_tasks_key(alice)) is None
    assert (await cache.get(task_key(created.id, alice)))["id"] == created.id


@pytest.mark.parametrize(
    "fields",
    [
        {"title": "", "description": "d", "due_date": DUE},
        {"title": "x" * 51, "description": "d", "due_date": DUE},
        {"title": "t", "description": "", "due_date": DUE},
        {"title": "t", "description": "x" * 501, "due_date": DUE},
        {"title": "t", "description": "d"},
    ],
)
async def test_create_task_validation(task_service, fields):
    with pytest.raises(ValidationError):
        await task_service.create_task("alice", fields)


async def test_validation_happens_before_identity_lookup(task_service):
    with pytest.raises(ValidationError):
        await task_service.create_task("nobody", {"title": "", "description": "d", "due_date": DUE})


async def test_unknown_caller_is_authorization_error(task_service):
    with pytest.raises(AuthorizationError):
        await task_service.list_tasks("mallory")
    with pytest.raises(AuthorizationError):
        await task_service.get_task("", 1)


async def test_other_owner_sees_not_found_right_after_create(task_service):
    task = await task_service.create_task("alice", rent())

    assert await task_service.get_task("bob", task.id) is None
    assert await task_service.get_task("alice", task.id) is not None


async def test_get_task_twice_serves_identical_payload_from_cache(task_service):
    task = await task_service.create_task("alice", rent())
    await task_service.cache.remove(task_key(task.id, task.owner_id))

    first = await task_service.get_task("alice", task.id)
    task_service.tasks.get_by_id = AsyncMock(side_effect=AssertionError("store hit"))
    second = await task_service.get_task("alice", task.id)

    assert first.model_dump_json() == second.model_dump_json()


async def test_get_task_refetches_after_ttl(task_service, clock):
    task = await task_service.create_task("alice", rent())
    await task_service.get_task("alice", task.id)

    clock.advance(46)
    spy = AsyncMock(wraps=task_service.tasks.get_by_id)
    task_service.tasks.get_by_id = spy
    await task_service.get_task("alice", task.id)

    spy.assert_awaited_once()


async def test_get_missing_task_is_not_cached(task_service, users, cache):
    alice = await owner(users, "alice")

    assert await task_service.get_task("alice", 999) is None
    assert await cache.get(task_key(999, alice)) is None


async def test_update_is_visible_on_next_read(task_service):
    task = await task_service.create_task("alice", rent())
    await task_service.get_task("alice", task.id)
    await task_service.list_tasks("alice")

    await task_service.update_task(
        "alice",
        task.id,
        TaskUpdate(title="Pay rent now", description="Monthly", due_date=DUE, is_completed=True),
    )

    fetched = await task_service.get_task("alice", task.id)
    assert fetched.title == "Pay rent now"
    assert fetched.is_completed is True
    listed = await task_service.list_tasks("alice")
    assert [t.title for t in listed] == ["Pay rent now"]


async def test_update_missing_task_raises_and_creates_no_key(task_service, memory_backend):
    before = len(memory_backend)

    with pytest.raises(NotFoundError):
        await task_service.update_task(
            "alice",
            404,
            {"title": "t", "description": "d", "due_date": DUE, "is_completed": False},
        )

    assert len(memory_backend) == before


async def test_update_other_owners_task_is_not_found(task_service):
    task = await task_service.create_task("alice", rent())

    with pytest.raises(NotFoundError):
        await task_service.update_task(
            "bob",
            task.id,
            {"title": "mine", "description": "d", "due_date": DUE, "is_completed": False},
        )


async def test_list_tasks_scoped_to_owner(task_service):
    await task_service.create_task("alice", rent())
    await task_service.create_task("bob", TaskCreate(title="Gym", description="Legs", due_date=DUE))

    assert [t.title for t in await task_service.list_tasks("alice")] == ["Pay rent"]
    assert [t.title for t in await task_service.list_tasks("bob")] == ["Gym"]


async def test_empty_task_list_is_not_cached(task_service, users, cache):
    alice = await owner(users, "alice")

    assert await task_service.list_tasks("alice") == []
    assert await cache.get(all_tasks_key(alice)) is None


async def test_delete_task(task_service, users, cache):
    alice = await owner(users, "alice")
    task = await task_service.create_task("alice", rent())
    await task_service.list_tasks("alice")

    assert await task_service.delete_task("alice", task.id) is True

    assert await cache.get(task_key(task.id, alice)) is None
    assert await cache.get(all_tasks_key(alice)) is None
    assert await task_service.get_task("alice", task.id) is None


async def test_delete_is_false_for_missing_or_foreign_task(task_service):
    task = await task_service.create_task("alice", rent())

    assert await task_service.delete_task("alice", 999) is False
    assert await task_service.delete_task("bob", task.id) is False
    assert await task_service.get_task("alice", task.id) is not None


async def test_task_exists_uses_cache_then_store(task_service):
    task = await task_service.create_task("alice", rent())
    task_service.tasks.exists = AsyncMock(return_value=False)

    # Seeded item key answers without the store
    assert await task_service.task_exists("alice", task.id) is True
    task_service.tasks.exists.assert_not_awaited()

    await task_service.cache.remove(task_key(task.id, task.owner_id))
    assert await task_service.task_exists("alice", task.id) is False
    task_service.tasks.exists.assert_awaited_once()


async def test_task_exists_false_for_other_owner(task_service):
    task = await task_service.create_task("alice", rent())

    assert await task_service.task_exists("bob", task.id) is False


async def test_writes_succeed_when_cache_is_down(test_db, users):
    redis = AsyncMock()
    redis.get.side_effect = RedisConnectionError("down")
    redis.set.side_effect = RedisConnectionError("down")
    redis.delete.side_effect = RedisConnectionError("down")
    service = TaskService(test_db, cache=CacheLayer(backend=RedisBackend(redis)), users=users)

    task = await service.create_task("alice", rent())
    fetched = await service.get_task("alice", task.id)
    updated = await service.update_task(
        "alice", task.id, {"title": "t", "description": "d", "due_date": DUE, "is_completed": True}
    )

    assert fetched.id == task.id
    assert updated.is_completed is True
    assert await service.delete_task("alice", task.id) is True


async def test_create_without_store_id_is_internal_error_and_keeps_cache(
    task_service, users, cache
):
    alice = await owner(users, "alice")
    await cache.set(all_tasks_key(alice), [{"id": 1}])
    task_service.tasks.create = AsyncMock(return_value=None)

    with pytest.raises(InternalError):
        await task_service.create_task("alice", rent())

    assert await cache.get(all_tasks_key(alice)) == [{"id": 1}]


async def test_failed_update_commit_propagates_and_leaves_cache(
    task_service, users, cache
):
    alice = await owner(users, "alice")
    task = await task_service.create_task("alice", rent())
    await task_service.list_tasks("alice")
    task_service.tasks.update = AsyncMock(
        side_effect=OperationalError("UPDATE tasks", {}, Exception("gone"))
    )

    with pytest.raises(OperationalError):
        await task_service.update_task(
            "alice",
            task.id,
            {"title": "Changed", "description": "d", "due_date": DUE, "is_completed": True},
        )

    assert (await cache.get(task_key(task.id, alice)))["title"] == "Pay rent"
    assert [t["title"] for t in await cache.get(all_tasks_key(alice))] == ["Pay rent"]
