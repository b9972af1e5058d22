"""Schemas for tasks and subtasks"""
from typing import List, Optional

from pydantic import Field, field_validator

from kanflow.schemas.base import CamelModel, reject_duplicate_ids, require_text


class SubtaskCreate(CamelModel):
    title: str

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        return require_text(value, "A subtask name is required.")


class TaskCreateInput(CamelModel):
    title: str
    description: str = ""
    column_id: str
    subtasks: List[SubtaskCreate] = []

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        return require_text(value, "A title is required.")

    @field_validator("column_id")
    @classmethod
    def _column_required(cls, value: str) -> str:
        return require_text(value, "A column is required.")


class TaskCreateRequest(CamelModel):
    board_id: str
    task: TaskCreateInput


class SubtaskUpsert(CamelModel):
    id: Optional[str] = None
    title: str
    done: bool = False

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        return require_text(value, "A subtask name is required.")


class TaskUpdateInput(CamelModel):
    id: str
    title: str
    description: str = ""
    column_id: str
    # Drop index in the destination column; omitted means "append" on a move
    order: Optional[int] = Field(default=None, ge=0)
    subtasks: List[SubtaskUpsert] = []

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        return require_text(value, "A title is required.")

    @field_validator("column_id")
    @classmethod
    def _column_required(cls, value: str) -> str:
        return require_text(value, "A column is required.")

    @field_validator("subtasks")
    @classmethod
    def _unique_subtasks(cls, value: List[SubtaskUpsert]) -> List[SubtaskUpsert]:
        reject_duplicate_ids((subtask.id for subtask in value), "Subtask")
        return value


class TaskUpdateRequest(CamelModel):
    task: TaskUpdateInput


class SubtaskUpdateInput(CamelModel):
    id: str
    title: str
    done: bool

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        return require_text(value, "A subtask name is required.")


class SubtaskUpdateRequest(CamelModel):
    subtask: SubtaskUpdateInput


class TaskDeleteRequest(CamelModel):
    task_id: str


class SubtaskResponse(CamelModel):
    id: str
    title: str
    done: bool
    order: int
    task_id: str


class TaskResponse(CamelModel):
    id: str
    title: str
    description: str
    order: int
    column_id: str
    revision: int
    subtasks: List[SubtaskResponse] = []
