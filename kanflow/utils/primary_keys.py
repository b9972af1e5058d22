"""Utilities for assigning collision-resistant string primary keys."""
from __future__ import annotations

import os
import time
import uuid
from typing import Type

from sqlalchemy import event
from sqlalchemy.orm import Mapper


def new_id() -> str:
    """Return a sortable, cuid-like identifier.

    The first part encodes the creation time in milliseconds (base 36) so ids
    created later sort after earlier ones; the rest is random.
    """
    timestamp = _base36(int(time.time() * 1000))
    return f"c{timestamp}{uuid.UUID(bytes=os.urandom(16)).hex[:16]}"


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    encoded = ""
    while value:
        value, remainder = divmod(value, 36)
        encoded = digits[remainder] + encoded
    return encoded or "0"


def register_string_pk_listener(model: Type[object], pk_name: str = "id") -> None:
    """Ensure ``model`` receives a string primary key before insert.

    The listener only assigns a value when the instance does not already carry
    one, so callers (and tests) may still choose ids explicitly.
    """

    table = getattr(model, "__table__", None)
    if table is None or pk_name not in table.c:
        raise ValueError(f"Model {model!r} does not expose a '{pk_name}' column")

    @event.listens_for(model, "before_insert", propagate=True)
    def _assign_string_pk(_: Mapper, connection, target) -> None:  # pragma: no cover - SQLAlchemy callback
        if getattr(target, pk_name) is not None:
            return
        setattr(target, pk_name, new_id())
