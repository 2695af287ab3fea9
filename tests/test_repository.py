from datetime import datetime, timedelta, timezone

import pytest

from wireline.passwords import compare_password
from wireline.repository import StorageError, UserRepository
from wireline.schemas import UserCreate


def _payload(username="alice", role="user"):
    return UserCreate(
        username=username,
        password="secret",
        full_name="Alice Example",
        email=f"{username}@example.com",
        role=role,
    )


def test_create_user_forces_user_role(repository):
    user = repository.create_user(_payload(role="admin"))
    assert user.id is not None
    assert user.created_at is not None
    assert user.role == "user"
    assert user.status == 1


def test_create_user_stores_hash_only(repository):
    user = repository.create_user(_payload())
    assert user.password_hash != "secret"
    assert compare_password("secret", user.password_hash)


def test_lookup_by_username_and_id(repository):
    created = repository.create_user(_payload())
    assert repository.get_user_by_username("alice").id == created.id
    assert repository.get_user(created.id).username == "alice"


def test_missing_users_are_absent(repository):
    assert repository.get_user_by_username("nonexistent") is None
    assert repository.get_user(999) is None


def test_duplicate_username_is_a_storage_error(repository):
    repository.create_user(_payload())
    with pytest.raises(StorageError, match="Database error"):
        repository.create_user(_payload())


def test_lookups_raise_when_store_fails(broken_session_local):
    repo = UserRepository(broken_session_local)
    with pytest.raises(StorageError):
        repo.get_user_by_username("alice")
    with pytest.raises(StorageError):
        repo.get_user(1)


def test_schedule_and_cancel_deletion(repository):
    user = repository.create_user(_payload())
    when = datetime.now(timezone.utc)

    scheduled = repository.schedule_deletion(user.id, when)
    assert scheduled.status == 0
    assert scheduled.deletion_scheduled_at is not None
    assert [u.id for u in repository.get_users_scheduled_for_deletion()] == [user.id]

    restored = repository.cancel_deletion(user.id)
    assert restored.status == 1
    assert restored.deletion_scheduled_at is None
    assert repository.get_users_scheduled_for_deletion() == []


def test_scheduled_users_oldest_first(repository):
    now = datetime.now(timezone.utc)
    first = repository.create_user(_payload("first"))
    second = repository.create_user(_payload("second"))
    repository.schedule_deletion(second.id, now - timedelta(days=1))
    repository.schedule_deletion(first.id, now - timedelta(days=5))

    ids = [u.id for u in repository.get_users_scheduled_for_deletion()]
    assert ids == [first.id, second.id]


def test_updates_on_missing_user_return_none(repository):
    assert repository.schedule_deletion(42, datetime.now(timezone.utc)) is None
    assert repository.cancel_deletion(42) is None
    assert repository.set_role(42, "admin") is None
    assert repository.update_password(42, "new") is False
    assert repository.delete_user(42) is False


def test_delete_user(repository):
    user = repository.create_user(_payload())
    assert repository.delete_user(user.id) is True
    assert repository.get_user(user.id) is None


def test_update_password_rehashes(repository):
    user = repository.create_user(_payload())
    assert repository.update_password(user.id, "changed")
    stored = repository.get_user(user.id)
    assert compare_password("changed", stored.password_hash)
    assert not compare_password("secret", stored.password_hash)


def test_count_users(repository):
    a = repository.create_user(_payload("a"))
    b = repository.create_user(_payload("b"))
    repository.create_user(_payload("c"))
    repository.set_role(a.id, "admin")
    repository.schedule_deletion(b.id, datetime.now(timezone.utc))

    assert repository.count_users() == {
        "total": 3,
        "active": 2,
        "scheduled": 1,
        "admins": 1,
    }


def test_list_users_newest_first(repository):
    repository.create_user(_payload("old"))
    repository.create_user(_payload("new"))
    assert [u.username for u in repository.list_users()] == ["new", "old"]


def test_ping(repository):
    assert repository.ping() is True
