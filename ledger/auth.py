"""Caller identity for mutating requests.

The identity is whatever label the fronting auth layer puts in the
``X-User-Id`` header. The ledger only needs to know whether it is present and
which label to attribute records to.

Copyright (c) Bryn Gwalad 2025
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from .errors import NotAuthenticated


@dataclass(frozen=True)
class CallerIdentity:
    label: str


def identity_from_header(value: Optional[str]) -> Optional[CallerIdentity]:
    if value is None or not value.strip():
        return None
    return CallerIdentity(label=value.strip())


def require_caller(caller: Optional[CallerIdentity]) -> CallerIdentity:
    if caller is None:
        raise NotAuthenticated()
    return caller


def current_caller(user_id: Optional[str] = Header(None, alias="X-User-Id")) -> Optional[CallerIdentity]:
    """FastAPI dependency returning the caller, or None when unauthenticated.

    Absence is not rejected here; the ledger operations decide which calls
    need an identity.
    """
    return identity_from_header(user_id)
