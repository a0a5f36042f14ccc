"""Request-scoped dependencies."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import Header, Request

from bullion_kernel.exceptions import ValidationError
from bullion_kernel.services.ledger_service import AccountLedgerService


def get_ledger(request: Request) -> AccountLedgerService:
    return request.app.state.ledger


def get_actor_id(x_actor_id: Optional[str] = Header(default=None)) -> Optional[UUID]:
    """Caller identity for created_by/updated_by; authentication is upstream."""
    if x_actor_id is None:
        return None
    try:
        return UUID(x_actor_id)
    except ValueError as e:
        raise ValidationError("X-Actor-ID", f"not a UUID: {x_actor_id!r}") from e
