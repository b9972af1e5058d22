"""Board RPC endpoints: one route per operation, mounted under ``/api/board``"""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from kanflow.database import get_db
from kanflow.dependencies import get_current_user
from kanflow.models import User
from kanflow.schemas import (
    BoardCreate,
    BoardDeleteRequest,
    BoardResponse,
    BoardSummary,
    BoardUpdateRequest,
    ColumnCreateRequest,
    ColumnDeleteRequest,
    ReorderBoardsRequest,
    ReorderColumnsRequest,
    ReorderTasksRequest,
    SubtaskUpdateRequest,
    TaskCreateRequest,
    TaskDeleteRequest,
    TaskUpdateRequest,
)
from kanflow.services import mutations, queries

router = APIRouter()


@router.post("/createBoard", response_model=BoardResponse, status_code=status.HTTP_201_CREATED)
def create_board(
    board_in: BoardCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a board, appended after the user's existing boards."""
    board = mutations.create_board(db, current_user, board_in)
    return BoardResponse.model_validate(queries.get_board(db, current_user, board.id))


@router.post("/createColumn", status_code=status.HTTP_204_NO_CONTENT)
def create_column(
    request: ColumnCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mutations.create_column(db, current_user, request.board_id, request.column)


@router.post("/createTask", status_code=status.HTTP_204_NO_CONTENT)
def create_task(
    request: TaskCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mutations.create_task(db, current_user, request.board_id, request.task)


@router.post("/updateBoard", status_code=status.HTTP_204_NO_CONTENT)
def update_board(
    request: BoardUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rename a board and replace its column list (deleted columns cascade)."""
    mutations.update_board(db, current_user, request.board)


@router.post("/updateTask", status_code=status.HTTP_204_NO_CONTENT)
def update_task(
    request: TaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mutations.update_task(db, current_user, request.task)


@router.post("/updateSubtask", status_code=status.HTTP_204_NO_CONTENT)
def update_subtask(
    request: SubtaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mutations.update_subtask(db, current_user, request.subtask)


@router.post("/deleteColumn", status_code=status.HTTP_204_NO_CONTENT)
def delete_column(
    request: ColumnDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mutations.delete_column(db, current_user, request.column_id)


@router.post("/deleteTask", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    request: TaskDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mutations.delete_task(db, current_user, request.task_id)


@router.post("/deleteBoard", status_code=status.HTTP_204_NO_CONTENT)
def delete_board(
    request: BoardDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mutations.delete_board(db, current_user, request.board_id)


@router.post("/reorderTasks", status_code=status.HTTP_204_NO_CONTENT)
def reorder_tasks(
    request: ReorderTasksRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Apply (id, order) pairs to a column, pulling in tasks dropped from other columns."""
    mutations.reorder_tasks(db, current_user, request)


@router.post("/reorderColumns", status_code=status.HTTP_204_NO_CONTENT)
def reorder_columns(
    request: ReorderColumnsRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mutations.reorder_columns(db, current_user, request)


@router.post("/reorderBoards", status_code=status.HTTP_204_NO_CONTENT)
def reorder_boards(
    request: ReorderBoardsRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    mutations.reorder_boards(db, current_user, request)


@router.get("/getBoardByUserId", response_model=List[BoardSummary])
def get_board_by_user_id(
    user_id: str = Query(..., alias="userId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the user's boards for the navigation menu."""
    boards = queries.get_boards_by_user(db, current_user, user_id)
    return [BoardSummary.model_validate(board) for board in boards]


@router.get("/getBoardById", response_model=BoardResponse)
def get_board_by_id(
    board_id: str = Query(..., alias="boardId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Return the full board tree, ordered at every level."""
    return BoardResponse.model_validate(queries.get_board(db, current_user, board_id))
