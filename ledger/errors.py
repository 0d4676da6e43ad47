"""Errors raised by the ledger service.

Each error carries the HTTP status and the message the API returns in its
``{"detail": ...}`` body.

Copyright (c) Bryn Gwalad 2025
"""


class LedgerError(Exception):
    status_code = 500
    default_detail = "Internal Server Error"

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(LedgerError):
    """Malformed input, or input that would break the balance invariant."""

    status_code = 400
    default_detail = "Invalid request"


class DuplicateCategory(ValidationError):
    status_code = 409
    default_detail = "Category already exists"


class NotFound(LedgerError):
    status_code = 404
    default_detail = "Not found"


class NotAuthenticated(LedgerError):
    status_code = 401
    default_detail = "Unauthorized"


class ConcurrentUpdate(LedgerError):
    """The item changed between the read and the write of an update."""

    status_code = 409
    default_detail = "Item was modified by another request; reload and retry"


class PersistenceFailure(LedgerError):
    """The database could not complete the operation.

    The detail shown to callers is always the generic message; the
    underlying exception is chained and logged.
    """

    status_code = 500

    def __init__(self, detail=None):
        super().__init__(None)
