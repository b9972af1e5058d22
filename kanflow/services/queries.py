"""Read side of the board hierarchy."""
from typing import List

from sqlalchemy.orm import Session, selectinload

from kanflow.exceptions import NotFoundError
from kanflow.models import Board, BoardColumn, Task, User


def get_boards_by_user(db: Session, user: User, user_id: str) -> List[Board]:
    """Return the user's boards for the navigation menu, by position."""
    if user_id != user.id:
        raise NotFoundError("User not found")
    return (
        db.query(Board)
        .filter(Board.user_id == user_id)
        .order_by(Board.order.asc(), Board.created_at.asc())
        .all()
    )


def get_board(db: Session, user: User, board_id: str) -> Board:
    """Return a board with columns, tasks and subtasks, each level by position."""
    board = (
        db.query(Board)
        .options(
            selectinload(Board.columns)
            .selectinload(BoardColumn.tasks)
            .selectinload(Task.subtasks)
        )
        .filter(Board.id == board_id, Board.user_id == user.id)
        .first()
    )
    if board is None:
        raise NotFoundError("Board not found")
    return board
