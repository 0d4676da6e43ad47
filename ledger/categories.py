"""Category operations.

Categories are plain named records. Names are unique under case-insensitive
comparison, enforced by the unique casefolded ``name_key`` column.

Copyright (c) Bryn Gwalad 2025
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from .auth import CallerIdentity, require_caller
from .errors import DuplicateCategory, NotFound, PersistenceFailure, ValidationError
from .models import Category, utcnow

logger = logging.getLogger("inventory_ledger.categories")


def _clean_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise ValidationError("Name is required")
    return name.strip()


def name_key(name: str) -> str:
    return name.casefold()


def _ensure_unique(session: Session, name: str, exclude_id: Optional[int] = None) -> None:
    q = select(Category).where(Category.name_key == name_key(name))
    if exclude_id is not None:
        q = q.where(Category.id != exclude_id)
    if session.exec(q).first() is not None:
        raise DuplicateCategory()


def _load(session: Session, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    return category


def _commit(session: Session) -> None:
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise DuplicateCategory() from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to write category")
        raise PersistenceFailure() from exc


def create_category(session: Session, name: Optional[str], caller: Optional[CallerIdentity]) -> Category:
    caller = require_caller(caller)
    name = _clean_name(name)
    _ensure_unique(session, name)
    category = Category(name=name, name_key=name_key(name), created_by=caller.label)
    session.add(category)
    _commit(session)
    session.refresh(category)
    logger.info("Created category=%s name=%r by=%s", category.id, name, caller.label)
    return category


def rename_category(
    session: Session,
    category_id: int,
    name: Optional[str],
    caller: Optional[CallerIdentity],
) -> Category:
    """Rename a category. Items keep the old name string; nothing cascades."""
    caller = require_caller(caller)
    name = _clean_name(name)
    category = _load(session, category_id)
    _ensure_unique(session, name, exclude_id=category_id)
    category.name = name
    category.name_key = name_key(name)
    category.updated_at = utcnow()
    session.add(category)
    _commit(session)
    session.refresh(category)
    logger.info("Renamed category=%s to %r by=%s", category_id, name, caller.label)
    return category


def delete_category(session: Session, category_id: int, caller: Optional[CallerIdentity]) -> None:
    caller = require_caller(caller)
    category = _load(session, category_id)
    session.delete(category)
    _commit(session)
    logger.info("Deleted category=%s by=%s", category_id, caller.label)


def get_category(session: Session, category_id: int) -> Category:
    return _load(session, category_id)


def list_categories(session: Session) -> List[Category]:
    return list(session.exec(select(Category).order_by(Category.id)).all())
