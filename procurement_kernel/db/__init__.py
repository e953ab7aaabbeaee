"""Database layer - engine, base classes, immutability enforcement."""

from procurement_kernel.db.base import Base, IdType, TrackedBase
from procurement_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "IdType",
    "TrackedBase",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
]
