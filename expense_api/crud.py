"""CRUD helper functions for the user resource."""
from __future__ import annotations

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .defaults import utcnow
from .exceptions import Conflict, NotFound

logger = logging.getLogger(__name__)


def list_users(session: Session) -> List[models.User]:
    stmt = select(models.User).order_by(models.User.id)
    return list(session.scalars(stmt))


def get_user(session: Session, user_id: int) -> models.User:
    user = session.get(models.User, user_id)
    if user is None:
        raise NotFound("User not found", {"id": user_id})
    return user


def _flush_unique(session: Session, email: str) -> None:
    try:
        session.flush()
    except IntegrityError as exc:
        raise Conflict("Email is already registered", {"email": email}) from exc


def create_user(session: Session, user_in: schemas.UserIn) -> models.User:
    now = utcnow()
    user = models.User(**user_in.model_dump(), created_at=now, updated_at=now)
    session.add(user)
    _flush_unique(session, user_in.email)
    session.refresh(user)
    logger.info("User created with ID: %s", user.id)
    return user


def update_user(session: Session, user_id: int, user_in: schemas.UserIn) -> models.User:
    user = get_user(session, user_id)
    for field, value in user_in.model_dump().items():
        setattr(user, field, value)
    user.updated_at = utcnow()
    _flush_unique(session, user_in.email)
    session.refresh(user)
    return user


def delete_user(session: Session, user_id: int) -> None:
    user = get_user(session, user_id)
    session.delete(user)
    session.flush()
