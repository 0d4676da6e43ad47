"""HTTP API for the Inventory Ledger.

Provides endpoints for category CRUD, inventory item create/update/delete,
per-category listing and CSV export, item taken-history queries and an
inventory summary. Mutating endpoints require the ``X-User-Id`` header.

Copyright (c) Bryn Gwalad 2025
"""

from typing import Optional
import os
import logging

from fastapi import Depends, FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from dotenv import load_dotenv

# Load environment variables from a .env file at project root if present.
load_dotenv()

from utils.database import init_db, dispose_db, get_session
from . import categories, service
from .auth import CallerIdentity, current_caller
from .errors import LedgerError
from .export import export_filename, export_items_csv
from .models import Category, CategoryIn, InventoryItem, ItemCreate, ItemUpdate, TakenHistoryEntry

app = FastAPI(title="Inventory Ledger API")

# Module logger
logger = logging.getLogger("inventory_ledger")


def _serialize_category(cat: Category) -> dict:
    return {
        "id": cat.id,
        "name": cat.name,
        "created_by": cat.created_by,
        "created_at": cat.created_at.isoformat(),
        "updated_at": cat.updated_at.isoformat(),
    }


def _serialize_history(entry: TakenHistoryEntry) -> dict:
    return {
        "taken_by": entry.taken_by,
        "quantity": entry.quantity,
        "date": entry.date.isoformat(),
    }


def _serialize_item(item: InventoryItem) -> dict:
    """Convert an InventoryItem into a JSON-serializable dict.

    Must be called while the session is open: ``taken_history`` is loaded
    lazily.
    """
    return {
        "id": item.id,
        "category": item.category,
        "item_code": item.item_code,
        "name": item.name,
        "total_quantity": item.total_quantity,
        "taken": item.taken,
        "balance": item.balance,
        "unit": item.unit,
        "acquired_date": item.acquired_date.isoformat(),
        "condition": getattr(item.condition, "value", item.condition),
        "description": item.description,
        "given_to": item.given_to,
        "given_by": item.given_by,
        "created_by": item.created_by,
        "taken_history": [_serialize_history(h) for h in item.taken_history],
        "created_at": item.created_at.isoformat(),
        "updated_at": item.updated_at.isoformat(),
        "version": item.version,
    }


@app.on_event("startup")
def on_startup():
    """Application startup handler.

    Configures logging and creates the process-wide database engine.
    """
    # Configure logger (do not override global config if already set by app)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

    init_db()


@app.on_event("shutdown")
def on_shutdown():
    dispose_db()


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # malformed bodies are client errors like any other ValidationError
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.post("/categories/")
def create_category(body: CategoryIn, caller: Optional[CallerIdentity] = Depends(current_caller)):
    """Create a new Category. Names are unique ignoring case."""
    with get_session() as session:
        return _serialize_category(categories.create_category(session, body.name, caller))


@app.get("/categories/")
def list_categories():
    """Return a list of all categories."""
    with get_session() as session:
        return [_serialize_category(c) for c in categories.list_categories(session)]


@app.get("/categories/{category_id}")
def get_category(category_id: int):
    """Return a category by id or raise 404 if not found."""
    with get_session() as session:
        return _serialize_category(categories.get_category(session, category_id))


@app.put("/categories/{category_id}")
def rename_category(
    category_id: int,
    body: CategoryIn,
    caller: Optional[CallerIdentity] = Depends(current_caller),
):
    with get_session() as session:
        return _serialize_category(categories.rename_category(session, category_id, body.name, caller))


@app.delete("/categories/{category_id}")
def delete_category(category_id: int, caller: Optional[CallerIdentity] = Depends(current_caller)):
    """Delete a category by id. Items in the category are left in place."""
    with get_session() as session:
        categories.delete_category(session, category_id, caller)
        return {"ok": True}


@app.get("/inventory/")
def inventory_summary():
    """Return item count and quantity totals per category."""
    with get_session() as session:
        return service.summarize(session)


@app.get("/inventory/item/{item_id}")
def get_item(item_id: int):
    with get_session() as session:
        return _serialize_item(service.get_item(session, item_id))


@app.put("/inventory/item/{item_id}")
def update_item(
    item_id: int,
    body: ItemUpdate,
    caller: Optional[CallerIdentity] = Depends(current_caller),
):
    """Apply a partial update to an item.

    ``balance`` is recomputed from the resulting total and taken; a body that
    would make taken exceed total is rejected as a whole.
    """
    with get_session() as session:
        return _serialize_item(service.update_item(session, item_id, body, caller))


@app.delete("/inventory/item/{item_id}")
def delete_item(item_id: int, caller: Optional[CallerIdentity] = Depends(current_caller)):
    with get_session() as session:
        service.delete_item(session, item_id, caller)
        return {"ok": True}


@app.get("/inventory/item/{item_id}/history")
def get_item_history(
    item_id: int,
    taken_by: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
):
    """Return taken-history entries of an item, oldest first.

    Filtering:
    - `taken_by` exact match
    - `date_from` and `date_to` are ISO dates (YYYY-MM-DD) or datetimes and filter on the entry `date` inclusive.
    """
    with get_session() as session:
        entries = service.list_taken_history(session, item_id, taken_by, date_from, date_to)
        return [_serialize_history(h) for h in entries]


@app.get("/inventory/{category}")
def list_items(category: str):
    """List items of a category in storage order."""
    with get_session() as session:
        return [_serialize_item(i) for i in service.list_items(session, category)]


@app.post("/inventory/{category}")
def create_item(
    category: str,
    body: ItemCreate,
    caller: Optional[CallerIdentity] = Depends(current_caller),
):
    """Create an item in ``category`` with taken 0 and balance equal to its total."""
    with get_session() as session:
        return _serialize_item(service.create_item(session, category, body, caller))


@app.get("/inventory/{category}/export")
def export_items(category: str):
    """Download the items of a category as CSV."""
    with get_session() as session:
        content = export_items_csv(service.list_items(session, category))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(category)}"'},
    )
