"""Inventory ledger service.

Owns the rule linking ``total_quantity``, ``taken`` and ``balance`` on every
inventory item, and the append-only taken-history log. Each operation is a
single validate, compute and persist step against one session: a rejected
request never writes anything.

The arithmetic lives in :func:`plan_balance` so it can be exercised without
a database.

Copyright (c) Bryn Gwalad 2025
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, NamedTuple, Optional

from sqlalchemy import func
from sqlalchemy import update as sa_update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .auth import CallerIdentity, require_caller
from .errors import ConcurrentUpdate, NotFound, PersistenceFailure, ValidationError
from .models import Condition, InventoryItem, ItemCreate, ItemUpdate, TakenHistoryEntry, utcnow

logger = logging.getLogger("inventory_ledger.service")

TAKEN_EXCEEDS_TOTAL = "Taken quantity cannot exceed total quantity"

REQUIRED_ON_CREATE = ("item_code", "name", "total_quantity", "unit", "acquired_date")

# Copied from an update request as-is; quantities go through plan_balance.
PLAIN_FIELDS = (
    "item_code",
    "name",
    "unit",
    "acquired_date",
    "condition",
    "description",
    "given_to",
    "given_by",
)

NON_BLANK_FIELDS = ("item_code", "name", "unit")


class BalanceChange(NamedTuple):
    total: int
    taken: int
    balance: int
    delta: int


def plan_balance(
    current_total: int,
    current_taken: int,
    total: Optional[int] = None,
    taken: Optional[int] = None,
) -> BalanceChange:
    """Compute the quantities an item would have after an update.

    ``total`` and ``taken`` are the values supplied by the caller, or None
    when not supplied. ``delta`` is the change in ``taken`` relative to
    ``current_taken`` and may be negative.

    Raises:
        ValidationError: a quantity is negative or taken exceeds total.
    """
    effective_total = current_total if total is None else total
    effective_taken = current_taken if taken is None else taken
    if effective_total < 0:
        raise ValidationError("Total quantity must be a non-negative number")
    if effective_taken < 0:
        raise ValidationError("Taken quantity must be a non-negative number")
    if effective_taken > effective_total:
        raise ValidationError(TAKEN_EXCEEDS_TOTAL)
    return BalanceChange(
        total=effective_total,
        taken=effective_taken,
        balance=effective_total - effective_taken,
        delta=effective_taken - current_taken,
    )


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _commit(session: Session, action: str, item_id=None) -> None:
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to %s item=%s", action, item_id)
        raise PersistenceFailure() from exc


def _load(session: Session, item_id: int) -> InventoryItem:
    item = session.get(InventoryItem, item_id)
    if item is None:
        raise NotFound("Item not found")
    return item


def create_item(
    session: Session,
    category: str,
    payload: ItemCreate,
    caller: Optional[CallerIdentity],
) -> InventoryItem:
    """Persist a new item with ``taken = 0`` and ``balance = total_quantity``."""
    caller = require_caller(caller)
    if _is_blank(category):
        raise ValidationError("Category missing")

    missing = [name for name in REQUIRED_ON_CREATE if _is_blank(getattr(payload, name))]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))

    change = plan_balance(payload.total_quantity, 0)
    item = InventoryItem(
        category=category,
        item_code=payload.item_code,
        name=payload.name,
        total_quantity=change.total,
        taken=0,
        balance=change.balance,
        unit=payload.unit,
        acquired_date=payload.acquired_date,
        condition=payload.condition or Condition.new,
        description=payload.description or "",
        given_to=payload.given_to or "",
        given_by=payload.given_by or "",
        created_by=caller.label,
    )
    session.add(item)
    _commit(session, "create")
    session.refresh(item)
    logger.info("Created item=%s category=%s by=%s", item.id, category, caller.label)
    return item


def update_item(
    session: Session,
    item_id: int,
    changes: ItemUpdate,
    caller: Optional[CallerIdentity],
) -> InventoryItem:
    """Apply a partial update and keep the balance consistent.

    The write is a compare-and-set on ``version``: when another request
    committed in between, nothing is written and ConcurrentUpdate is raised.
    """
    caller = require_caller(caller)
    item = _load(session, item_id)

    supplied = {k: v for k, v in changes.model_dump(exclude_unset=True).items() if v is not None}
    expected_version = supplied.pop("expected_version", None)
    if expected_version is not None and expected_version != item.version:
        raise ConcurrentUpdate()

    blank = [name for name in NON_BLANK_FIELDS if name in supplied and _is_blank(supplied[name])]
    if blank:
        raise ValidationError("Fields cannot be blank: " + ", ".join(blank))

    now = utcnow()
    values = {name: supplied[name] for name in PLAIN_FIELDS if name in supplied}
    entry = None
    if "total_quantity" in supplied or "taken" in supplied:
        try:
            change = plan_balance(
                item.total_quantity,
                item.taken,
                total=supplied.get("total_quantity"),
                taken=supplied.get("taken"),
            )
        except ValidationError as exc:
            logger.warning("Rejected update of item=%s by=%s: %s", item.id, caller.label, exc.detail)
            raise
        values.update(total_quantity=change.total, taken=change.taken, balance=change.balance)
        if "taken" in supplied and change.delta != 0:
            entry = TakenHistoryEntry(
                item_id=item.id,
                taken_by=caller.label,
                quantity=change.delta,
                date=now,
            )

    values["updated_at"] = now
    values["version"] = item.version + 1
    stmt = (
        sa_update(InventoryItem)
        .where(InventoryItem.id == item.id, InventoryItem.version == item.version)
        .values(**values)
    )
    try:
        result = session.connection().execute(stmt)
        if result.rowcount != 1:
            session.rollback()
            logger.warning("Concurrent update detected for item=%s by=%s", item.id, caller.label)
            raise ConcurrentUpdate()
        if entry is not None:
            session.add(entry)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to update item=%s", item_id)
        raise PersistenceFailure() from exc

    session.refresh(item)
    logger.info(
        "Updated item=%s by=%s fields=%s",
        item.id,
        caller.label,
        ",".join(sorted(k for k in supplied)),
    )
    return item


def delete_item(session: Session, item_id: int, caller: Optional[CallerIdentity]) -> None:
    """Remove an item together with its taken history."""
    caller = require_caller(caller)
    item = _load(session, item_id)
    session.delete(item)
    _commit(session, "delete", item_id)
    logger.info("Deleted item=%s by=%s", item_id, caller.label)


def get_item(session: Session, item_id: int) -> InventoryItem:
    return _load(session, item_id)


def list_items(session: Session, category: str) -> List[InventoryItem]:
    """Return the items of ``category`` in insertion order."""
    q = select(InventoryItem).where(InventoryItem.category == category).order_by(InventoryItem.id)
    return list(session.exec(q).all())


def _parse_date_bound(value: Optional[str], upper: bool = False) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(
            "date_from/date_to must be ISO format (YYYY-MM-DD or full ISO datetime)"
        )
    # bounds without an offset are UTC, like the stored timestamps
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    else:
        parsed = parsed.astimezone(timezone.utc)
    # a bare date as upper bound covers the entire day
    if upper and len(value) == 10:
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


def list_taken_history(
    session: Session,
    item_id: int,
    taken_by: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> List[TakenHistoryEntry]:
    """Return an item's history entries in the order they were appended.

    ``date_from`` and ``date_to`` are inclusive ISO dates or datetimes.
    """
    dt_from = _parse_date_bound(date_from)
    dt_to = _parse_date_bound(date_to, upper=True)
    _load(session, item_id)

    q = select(TakenHistoryEntry).where(TakenHistoryEntry.item_id == item_id)
    if taken_by is not None:
        q = q.where(TakenHistoryEntry.taken_by == taken_by)
    if dt_from is not None:
        q = q.where(TakenHistoryEntry.date >= dt_from)
    if dt_to is not None:
        q = q.where(TakenHistoryEntry.date <= dt_to)
    q = q.order_by(TakenHistoryEntry.id)
    return list(session.exec(q).all())


def summarize(session: Session) -> List[dict]:
    """Item count and quantity totals per category name."""
    q = (
        select(
            InventoryItem.category,
            func.count(InventoryItem.id),
            func.sum(InventoryItem.total_quantity),
            func.sum(InventoryItem.taken),
            func.sum(InventoryItem.balance),
        )
        .group_by(InventoryItem.category)
        .order_by(InventoryItem.category)
    )
    return [
        {
            "category": category,
            "item_count": count,
            "total_quantity": total or 0,
            "taken": taken or 0,
            "balance": balance or 0,
        }
        for category, count, total, taken, balance in session.exec(q).all()
    ]
