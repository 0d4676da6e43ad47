"""Run the Inventory Ledger API.

Creates the ledger tables (categories, items, taken history) in the configured
database, then serves ``ledger.main:app`` with uvicorn. Settings come from the
environment or a ``.env`` file.

Copyright (c) Bryn Gwalad 2025
"""

import os

from dotenv import load_dotenv

# Load .env from repo root so init_db picks up config
load_dotenv()

from utils.database import init_db

try:
    from ledger.main import app
except Exception as exc:
    raise RuntimeError(
        "Failed to import the FastAPI app. Ensure project root is on PYTHONPATH"
    ) from exc


def main() -> None:
    """Initialize DB and run uvicorn.

    Environment variables:
    - HOST: listen address (default 127.0.0.1)
    - PORT: listen port (default 8000)
    - RELOAD: set to '1' to enable uvicorn reload
    - LOG_LEVEL: uvicorn and application log level (default info)
    """

    # Initialize DB (creates tables if needed)
    init_db()

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "0") in ("1", "true", "True")
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    # Start uvicorn programmatically
    import uvicorn

    if reload:
        # reload needs an import string rather than an app object
        uvicorn.run("ledger.main:app", host=host, port=port, reload=True, log_level=log_level)
    else:
        uvicorn.run(app, host=host, port=port, log_level=log_level)


if __name__ == "__main__":
    main()
