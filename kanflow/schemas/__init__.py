"""
Pydantic schemas for request/response validation
"""
from kanflow.schemas.board import (
    BoardColumnInput,
    BoardCreate,
    BoardDeleteRequest,
    BoardResponse,
    BoardSummary,
    BoardUpdateInput,
    BoardUpdateRequest,
    ColumnCreateRequest,
    ColumnDeleteRequest,
    ColumnResponse,
    ColumnTitle,
)
from kanflow.schemas.task import (
    SubtaskCreate,
    SubtaskResponse,
    SubtaskUpdateInput,
    SubtaskUpdateRequest,
    SubtaskUpsert,
    TaskCreateInput,
    TaskCreateRequest,
    TaskDeleteRequest,
    TaskResponse,
    TaskUpdateInput,
    TaskUpdateRequest,
)
from kanflow.schemas.reorder import (
    OrderPair,
    ReorderBoardsRequest,
    ReorderColumnsRequest,
    ReorderTasksRequest,
)

__all__ = [
    "BoardColumnInput",
    "BoardCreate",
    "BoardDeleteRequest",
    "BoardResponse",
    "BoardSummary",
    "BoardUpdateInput",
    "BoardUpdateRequest",
    "ColumnCreateRequest",
    "ColumnDeleteRequest",
    "ColumnResponse",
    "ColumnTitle",
    "SubtaskCreate",
    "SubtaskResponse",
    "SubtaskUpdateInput",
    "SubtaskUpdateRequest",
    "SubtaskUpsert",
    "TaskCreateInput",
    "TaskCreateRequest",
    "TaskDeleteRequest",
    "TaskResponse",
    "TaskUpdateInput",
    "TaskUpdateRequest",
    "OrderPair",
    "ReorderBoardsRequest",
    "ReorderColumnsRequest",
    "ReorderTasksRequest",
]
