"""CSV export of a category's items."""

import csv
import io
import re
from typing import Iterable

from .models import InventoryItem

CSV_HEADER = [
    "Item Code",
    "Name",
    "Total Quantity",
    "Taken",
    "Balance",
    "Unit",
    "Acquired Date",
    "Condition",
    "Created By",
]


def export_items_csv(items: Iterable[InventoryItem]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for item in items:
        condition = getattr(item.condition, "value", item.condition)
        writer.writerow(
            [
                item.item_code,
                item.name,
                item.total_quantity,
                item.taken,
                item.balance,
                item.unit,
                item.acquired_date.isoformat(),
                condition,
                item.created_by,
            ]
        )
    return buf.getvalue()


def export_filename(category: str) -> str:
    """``<category>_inventory.csv`` with anything unsafe in a header replaced."""
    safe = re.sub(r"[^A-Za-z0-9._-]+", "_", category).strip("_") or "category"
    return f"{safe}_inventory.csv"
