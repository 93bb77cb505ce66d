"""Tests for UserDirectory — lookup, registration and cascading deletion."""
import pytest
from unittest.mock import AsyncMock

from app.errors import LoginTaken, NotFound
from app.schemas.user import UserCreate
from app.services.user_directory import UserDirectory


def _payload(login: str = "alice", **overrides) -> UserCreate:
    fields = {"login": login, "name": "Alice", "age": 29, "gender": "female", "city": "Bristol"}
    fields.update(overrides)
    return UserCreate(**fields)


class TestLookup:

    async def test_find_by_id(self, directory, make_user):
        uid = await make_user("Alice")
        user = await directory.find_by_id(uid)
        assert user.name == "Alice"

    async def test_find_by_id_missing(self, directory):
        with pytest.raises(NotFound) as exc_info:
            await directory.find_by_id(9999)
        assert exc_info.value.http_status == 404

    async def test_find_many_preserves_order(self, directory, make_user):
        a, b, c = await make_user("A"), await make_user("B"), await make_user("C")
        users = await directory.find_many([c, a, b])
        assert [u.id for u in users] == [c, a, b]

    async def test_find_many_skips_missing(self, directory, make_user):
        a = await make_user("A")
        users = await directory.find_many([4242, a])
        assert [u.id for u in users] == [a]

    async def test_find_many_empty(self, directory):
        assert await directory.find_many([]) == []


class TestCreate:

    async def test_create_user(self, directory):
        user = await directory.create(_payload())
        assert user.id is not None
        assert user.login == "alice"
        assert user.created_at is not None

    async def test_duplicate_login(self, directory):
        await directory.create(_payload())
        with pytest.raises(LoginTaken) as exc_info:
            await directory.create(_payload(name="Other Alice"))
        assert exc_info.value.http_status == 409


class TestDelete:

    async def test_delete_runs_hook_before_removing_row(self, test_db, make_user):
        uid = await make_user()
        hook = AsyncMock()
        directory = UserDirectory(test_db, on_user_deleted=hook)

        await directory.delete(uid)

        hook.assert_awaited_once_with(uid)
        with pytest.raises(NotFound):
            await directory.find_by_id(uid)

    async def test_delete_missing_user(self, test_db):
        hook = AsyncMock()
        directory = UserDirectory(test_db, on_user_deleted=hook)
        with pytest.raises(NotFound):
            await directory.delete(31337)
        hook.assert_not_awaited()

    async def test_delete_cascades_relationships(self, directory, service, store, make_user):
        a, b = await make_user("A"), await make_user("B")
        await service.like(a, b)
        await service.like(b, a)

        await directory.delete(a)

        assert await store.likes_to(b) == []
        assert await store.likes_from(b) == []
        assert await service.list_matches(b) == []
