"""Schemas for boards and their columns"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from kanflow.schemas.base import CamelModel, reject_duplicate_ids, require_text
from kanflow.schemas.task import TaskResponse

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class ColumnTitle(CamelModel):
    title: str

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        return require_text(value, "A column name is required.")


class BoardCreate(CamelModel):
    title: str
    columns: List[ColumnTitle]

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        return require_text(value, "A title is required.")

    @field_validator("columns")
    @classmethod
    def _at_least_one_column(cls, value: List[ColumnTitle]) -> List[ColumnTitle]:
        if not value:
            raise ValueError("At least one column is required.")
        return value


class ColumnCreateRequest(CamelModel):
    board_id: str
    column: ColumnTitle


class BoardColumnInput(CamelModel):
    id: Optional[str] = None
    title: str
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        return require_text(value, "A column name is required.")


class BoardUpdateInput(CamelModel):
    id: str
    title: str
    columns: List[BoardColumnInput]

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        return require_text(value, "A title is required.")

    @field_validator("columns")
    @classmethod
    def _columns_valid(cls, value: List[BoardColumnInput]) -> List[BoardColumnInput]:
        if not value:
            raise ValueError("At least one column is required.")
        reject_duplicate_ids((column.id for column in value), "Column")
        return value


class BoardUpdateRequest(CamelModel):
    board: BoardUpdateInput


class BoardDeleteRequest(CamelModel):
    board_id: str


class ColumnDeleteRequest(CamelModel):
    column_id: str


class ColumnResponse(CamelModel):
    id: str
    title: str
    color: str
    order: int
    board_id: str
    revision: int
    tasks: List[TaskResponse] = []


class BoardSummary(CamelModel):
    id: str
    title: str
    order: int
    user_id: str
    revision: int
    created_at: Optional[datetime] = None


class BoardResponse(BoardSummary):
    columns: List[ColumnResponse] = []
