"""User endpoints."""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from .. import crud, schemas
from ..database import ConnectionPool, get_pool

router = APIRouter()

UserId = Annotated[int, Path(ge=1, le=schemas.SQL_INT_MAX)]


@router.get("", response_model=schemas.UserListResponse)
def list_users(pool: ConnectionPool = Depends(get_pool)) -> schemas.UserListResponse:
    with pool.session() as session:
        users = [schemas.UserRead.model_validate(user) for user in crud.list_users(session)]
    return schemas.UserListResponse(data=users)


@router.post(
    "",
    response_model=schemas.UserResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_user(user_in: schemas.UserIn, pool: ConnectionPool = Depends(get_pool)) -> schemas.UserResponse:
    with pool.transaction() as session:
        user = schemas.UserRead.model_validate(crud.create_user(session, user_in))
    return schemas.UserResponse(message="User created successfully", data=user)


@router.get("/{user_id}", response_model=schemas.UserResponse)
def get_user(user_id: UserId, pool: ConnectionPool = Depends(get_pool)) -> schemas.UserResponse:
    with pool.session() as session:
        user = schemas.UserRead.model_validate(crud.get_user(session, user_id))
    return schemas.UserResponse(data=user)


@router.put("/{user_id}", response_model=schemas.UserResponse)
def update_user(
    user_id: UserId,
    user_in: schemas.UserIn,
    pool: ConnectionPool = Depends(get_pool),
) -> schemas.UserResponse:
    with pool.transaction() as session:
        user = schemas.UserRead.model_validate(crud.update_user(session, user_id, user_in))
    return schemas.UserResponse(message="User updated successfully", data=user)


@router.delete("/{user_id}", response_model=schemas.MessageResponse)
def delete_user(user_id: UserId, pool: ConnectionPool = Depends(get_pool)) -> schemas.MessageResponse:
    with pool.transaction() as session:
        crud.delete_user(session, user_id)
    return schemas.MessageResponse(message="User deleted successfully")
