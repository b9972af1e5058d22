"""Shared pydantic configuration for the board schemas."""
from typing import Iterable, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and renders camelCase field names while keeping snake_case in Python."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def require_text(value: str, message: str) -> str:
    if value is None or not value.strip():
        raise ValueError(message)
    return value.strip()


def reject_duplicate_ids(ids: Iterable[Optional[str]], label: str) -> None:
    seen = set()
    for item_id in ids:
        if item_id is None:
            continue
        if item_id in seen:
            raise ValueError(f"{label} {item_id} appears more than once")
        seen.add(item_id)
