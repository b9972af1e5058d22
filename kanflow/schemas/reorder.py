"""Schemas for bulk (id, order) updates produced by drag and drop"""
from typing import List, Optional

from pydantic import Field, field_validator

from kanflow.schemas.base import CamelModel, reject_duplicate_ids


class OrderPair(CamelModel):
    id: str
    order: int = Field(..., ge=0)


def _unique_pairs(value: List[OrderPair], label: str) -> List[OrderPair]:
    reject_duplicate_ids((pair.id for pair in value), label)
    return value


class ReorderTasksRequest(CamelModel):
    column_id: str
    tasks: List[OrderPair]
    # Expected revision of the destination column, checked when supplied
    revision: Optional[int] = None

    @field_validator("tasks")
    @classmethod
    def _unique(cls, value: List[OrderPair]) -> List[OrderPair]:
        return _unique_pairs(value, "Task")


class ReorderColumnsRequest(CamelModel):
    columns: List[OrderPair]
    revision: Optional[int] = None

    @field_validator("columns")
    @classmethod
    def _unique(cls, value: List[OrderPair]) -> List[OrderPair]:
        return _unique_pairs(value, "Column")


class ReorderBoardsRequest(CamelModel):
    boards: List[OrderPair]
    revision: Optional[int] = None

    @field_validator("boards")
    @classmethod
    def _unique(cls, value: List[OrderPair]) -> List[OrderPair]:
        return _unique_pairs(value, "Board")
