"""Data models for the Inventory Ledger.

This module defines the SQLModel tables (Category, InventoryItem and
TakenHistoryEntry) and the request bodies accepted by the API.

Copyright (c) Bryn Gwalad 2025
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Condition(str, Enum):
    new = "new"
    used = "used"
    damaged = "damaged"


class Category(SQLModel, table=True):
    """A named group of inventory items.

    Attributes:
        id: primary key
        name: category name as entered (trimmed)
        name_key: casefolded name; the unique constraint behind
            case-insensitive uniqueness
        created_by: label of the caller that created the category
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    name_key: str = Field(unique=True)
    created_by: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class InventoryItem(SQLModel, table=True):
    """An inventory item with a running balance.

    ``balance`` is always ``total_quantity - taken``; it is computed by the
    ledger service and never taken from a request. ``category`` is a plain
    name reference, not a foreign key.

    Attributes:
        id: primary key
        category: name of the owning category
        item_code: caller-supplied short code
        total_quantity: stock on record
        taken: cumulative quantity withdrawn
        balance: quantity remaining
        version: incremented on every write, used for compare-and-set updates
        taken_history: append-only log of changes to ``taken``
    """

    __tablename__ = "inventory_item"

    id: Optional[int] = Field(default=None, primary_key=True)
    category: str = Field(index=True)
    item_code: str
    name: str
    total_quantity: int
    taken: int = 0
    balance: int
    unit: str
    acquired_date: date
    condition: Condition = Condition.new
    description: str = ""
    given_to: str = ""
    given_by: str = ""
    created_by: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 1
    taken_history: List["TakenHistoryEntry"] = Relationship(
        back_populates="item",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "TakenHistoryEntry.id",
        },
    )


class TakenHistoryEntry(SQLModel, table=True):
    """One withdrawal or return recorded against an item.

    ``quantity`` is the change in ``taken`` caused by a single update, not
    the cumulative value.
    """

    __tablename__ = "taken_history_entry"

    id: Optional[int] = Field(default=None, primary_key=True)
    item_id: int = Field(foreign_key="inventory_item.id", index=True, ondelete="CASCADE")
    taken_by: str
    quantity: int
    date: datetime = Field(default_factory=utcnow)
    item: Optional[InventoryItem] = Relationship(back_populates="taken_history")


class CategoryIn(SQLModel):
    name: Optional[str] = None


class ItemCreate(SQLModel):
    """Body of a create request.

    Every field is optional at the schema level so that missing fields are
    reported together by the ledger as one validation error.
    """

    item_code: Optional[str] = None
    name: Optional[str] = None
    total_quantity: Optional[int] = None
    unit: Optional[str] = None
    acquired_date: Optional[date] = None
    condition: Optional[Condition] = None
    description: Optional[str] = None
    given_to: Optional[str] = None
    given_by: Optional[str] = None


class ItemUpdate(SQLModel):
    """Body of an update request; only the fields sent are applied."""

    item_code: Optional[str] = None
    name: Optional[str] = None
    total_quantity: Optional[int] = None
    taken: Optional[int] = None
    unit: Optional[str] = None
    acquired_date: Optional[date] = None
    condition: Optional[Condition] = None
    description: Optional[str] = None
    given_to: Optional[str] = None
    given_by: Optional[str] = None
    expected_version: Optional[int] = None
