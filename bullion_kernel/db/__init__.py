"""Database layer - engine, base classes and rounding helpers."""

from bullion_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from bullion_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from bullion_kernel.db.types import round_cash, round_rate, round_weight, to_decimal

__all__ = [
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUID",
    "UUIDString",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "round_cash",
    "round_rate",
    "round_weight",
    "session_scope",
    "to_decimal",
]
