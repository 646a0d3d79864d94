from __future__ import annotations

import pytest

from expense_api import crud, schemas
from expense_api.exceptions import Conflict, NotFound


def _user(name: str = "Ada Lovelace", email: str = "ada@example.com", age: int | None = 36) -> schemas.UserIn:
    return schemas.UserIn(name=name, email=email, age=age)


def test_create_and_list_users(pool):
    with pool.transaction() as session:
        created = crud.create_user(session, _user())
        crud.create_user(session, _user("Alan Turing", "alan@example.com", 41))
        assert created.id is not None

    with pool.session() as session:
        users = crud.list_users(session)
        assert [user.email for user in users] == ["ada@example.com", "alan@example.com"]
        assert users[0].created_at == users[0].updated_at


def test_duplicate_email_is_a_conflict(pool):
    with pool.transaction() as session:
        crud.create_user(session, _user())

    with pytest.raises(Conflict):
        with pool.transaction() as session:
            crud.create_user(session, _user("Someone Else"))

    with pool.session() as session:
        assert len(crud.list_users(session)) == 1


def test_update_replaces_all_fields(pool):
    with pool.transaction() as session:
        user_id = crud.create_user(session, _user()).id

    with pool.transaction() as session:
        updated = crud.update_user(session, user_id, _user("Ada King", "ada.king@example.com", None))
        assert updated.name == "Ada King"
        assert updated.age is None
        assert updated.updated_at >= updated.created_at


def test_update_missing_user_raises_not_found(pool):
    with pytest.raises(NotFound):
        with pool.transaction() as session:
            crud.update_user(session, 99, _user())


def test_delete_user(pool):
    with pool.transaction() as session:
        user_id = crud.create_user(session, _user()).id

    with pool.transaction() as session:
        crud.delete_user(session, user_id)

    with pytest.raises(NotFound):
        with pool.session() as session:
            crud.get_user(session, user_id)
