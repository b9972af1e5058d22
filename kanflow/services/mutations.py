"""Transactional board, column, task and subtask mutations.

Each public function is one unit of work: it either commits completely or
rolls back and raises. Entities owned by another user are reported as
missing so their existence never leaks.
"""
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from kanflow.database import transaction
from kanflow.exceptions import ConflictError, NotFoundError, ValidationError
from kanflow.models import Board, BoardColumn, Subtask, Task, User
from kanflow.schemas import (
    BoardColumnInput,
    BoardCreate,
    BoardUpdateInput,
    ColumnTitle,
    ReorderBoardsRequest,
    ReorderColumnsRequest,
    ReorderTasksRequest,
    SubtaskUpdateInput,
    SubtaskUpsert,
    TaskCreateInput,
    TaskUpdateInput,
)
from kanflow.services import ordering

logger = logging.getLogger(__name__)


def random_color() -> str:
    return "#{:06x}".format(random.randint(0, 0xFFFFFF))


# ---------------------------------------------------------------------------
# Ownership lookups
# ---------------------------------------------------------------------------


def _lock_user(db: Session, user: User) -> User:
    owner = db.query(User).filter(User.id == user.id).with_for_update().populate_existing().first()
    if owner is None:
        raise NotFoundError("User not found")
    return owner


def _owned_board(db: Session, user: User, board_id: str, lock: bool = False) -> Board:
    query = db.query(Board).filter(Board.id == board_id, Board.user_id == user.id)
    if lock:
        query = query.with_for_update().populate_existing()
    board = query.first()
    if board is None:
        raise NotFoundError("Board not found")
    return board


def _owned_column(db: Session, user: User, column_id: str, lock: bool = False) -> BoardColumn:
    query = (
        db.query(BoardColumn)
        .join(Board, BoardColumn.board_id == Board.id)
        .filter(BoardColumn.id == column_id, Board.user_id == user.id)
    )
    if lock:
        query = query.with_for_update(of=BoardColumn).populate_existing()
    column = query.first()
    if column is None:
        raise NotFoundError("Column not found")
    return column


def _lock_columns(db: Session, user: User, column_ids) -> Dict[str, BoardColumn]:
    """Lock several columns, always in id order so concurrent movers cannot deadlock."""
    return {column_id: _owned_column(db, user, column_id, lock=True) for column_id in sorted(set(column_ids))}


def _owned_tasks(db: Session, user: User, task_ids: Sequence[str], refresh: bool = False) -> List[Task]:
    if not task_ids:
        return []
    query = (
        db.query(Task)
        .join(BoardColumn, Task.column_id == BoardColumn.id)
        .join(Board, BoardColumn.board_id == Board.id)
        .filter(Task.id.in_(task_ids), Board.user_id == user.id)
    )
    if refresh:
        query = query.populate_existing()
    tasks = query.all()
    found = {task.id for task in tasks}
    missing = [task_id for task_id in task_ids if task_id not in found]
    if missing:
        raise NotFoundError(f"Task not found: {', '.join(missing)}")
    return tasks


def _owned_task(db: Session, user: User, task_id: str, lock: bool = False) -> Task:
    query = (
        db.query(Task)
        .join(BoardColumn, Task.column_id == BoardColumn.id)
        .join(Board, BoardColumn.board_id == Board.id)
        .filter(Task.id == task_id, Board.user_id == user.id)
    )
    if lock:
        query = query.with_for_update(of=Task).populate_existing()
    task = query.first()
    if task is None:
        raise NotFoundError("Task not found")
    return task


def _owned_subtask(db: Session, user: User, subtask_id: str) -> Subtask:
    subtask = (
        db.query(Subtask)
        .join(Task, Subtask.task_id == Task.id)
        .join(BoardColumn, Task.column_id == BoardColumn.id)
        .join(Board, BoardColumn.board_id == Board.id)
        .filter(Subtask.id == subtask_id, Board.user_id == user.id)
        .first()
    )
    if subtask is None:
        raise NotFoundError("Subtask not found")
    return subtask


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def create_board(db: Session, user: User, data: BoardCreate) -> Board:
    """Append a board to the user's boards, with columns in input order."""
    with transaction(db):
        owner = _lock_user(db, user)
        board = Board(
            title=data.title,
            user_id=owner.id,
            order=ordering.append(db, ordering.boards_of(owner.id)),
        )
        for index, column in enumerate(data.columns):
            board.columns.append(BoardColumn(title=column.title, color=random_color(), order=index))
        db.add(board)
        ordering.bump_revision(owner)
        db.flush()
        board_id = board.id

    logger.info("Created board %s with %d columns for user %s", board_id, len(data.columns), user.id)
    return board


def create_column(db: Session, user: User, board_id: str, data: ColumnTitle) -> BoardColumn:
    with transaction(db):
        board = _owned_board(db, user, board_id, lock=True)
        column = BoardColumn(
            title=data.title,
            color=random_color(),
            board_id=board.id,
            order=ordering.append(db, ordering.columns_of(board.id)),
        )
        db.add(column)
        ordering.bump_revision(board)
        db.flush()
        column_id = column.id

    logger.info("Created column %s on board %s", column_id, board_id)
    return column


def create_task(db: Session, user: User, board_id: str, data: TaskCreateInput) -> Task:
    with transaction(db):
        board = _owned_board(db, user, board_id)
        column = (
            db.query(BoardColumn)
            .filter(BoardColumn.id == data.column_id, BoardColumn.board_id == board.id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if column is None:
            raise NotFoundError("Column not found")

        task = Task(
            title=data.title,
            description=data.description,
            column_id=column.id,
            order=ordering.append(db, ordering.tasks_of(column.id)),
        )
        task.subtasks = [
            Subtask(title=subtask.title, order=index, done=False) for index, subtask in enumerate(data.subtasks)
        ]
        db.add(task)
        ordering.bump_revision(column)
        db.flush()
        task_id = task.id

    logger.info("Created task %s in column %s", task_id, data.column_id)
    return task


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


@dataclass
class ColumnDiff:
    """Outcome of comparing a board's stored columns with an edited list."""

    created: List[Tuple[int, BoardColumnInput]] = field(default_factory=list)
    updated: List[Tuple[int, BoardColumn, BoardColumnInput]] = field(default_factory=list)
    deleted: List[BoardColumn] = field(default_factory=list)


def diff_columns(existing: Sequence[BoardColumn], requested: Sequence[BoardColumnInput]) -> ColumnDiff:
    """Split ``requested`` into create/update lists and find the columns to delete.

    Matching is by id only. A requested id that is not a column of this
    board counts as "no match" and produces a new column.
    """
    existing_by_id = {column.id: column for column in existing}
    matched_ids = {item.id for item in requested if item.id in existing_by_id}

    diff = ColumnDiff()
    for index, item in enumerate(requested):
        if item.id in existing_by_id:
            diff.updated.append((index, existing_by_id[item.id], item))
        else:
            diff.created.append((index, item))
    diff.deleted = [column for column in existing if column.id not in matched_ids]
    return diff


def update_board(db: Session, user: User, data: BoardUpdateInput) -> Board:
    """Rename the board and make its columns match ``data.columns`` exactly."""
    with transaction(db):
        board = _owned_board(db, user, data.id, lock=True)
        diff = diff_columns(list(board.columns), data.columns)

        for column in diff.deleted:
            board.columns.remove(column)
        for index, column, item in diff.updated:
            column.title = item.title
            if item.color:
                column.color = item.color
            column.order = index
        for index, item in diff.created:
            board.columns.append(BoardColumn(title=item.title, color=item.color or random_color(), order=index))

        board.title = data.title
        ordering.bump_revision(board)
        ordering.assert_contiguous(db, ordering.columns_of(board.id), "columns")

    logger.info(
        "Updated board %s: %d created, %d updated, %d deleted columns",
        data.id,
        len(diff.created),
        len(diff.updated),
        len(diff.deleted),
    )
    return board


def _move_task(db: Session, task: Task, source: BoardColumn, destination: BoardColumn, index: Optional[int]) -> None:
    removed_order = task.order
    task.column = destination
    ordering.remove_and_compact(db, ordering.tasks_of(source.id), removed_order)
    ordering.assert_contiguous(db, ordering.tasks_of(source.id), "tasks")
    ordering.move_to(db, ordering.tasks_of(destination.id), task, index)
    ordering.bump_revision(source)
    ordering.bump_revision(destination)


def _upsert_subtasks(db: Session, task: Task, items: Sequence[SubtaskUpsert]) -> bool:
    """Update matching subtasks in place and create the rest; never delete.

    Subtasks left out of ``items`` keep their relative order after the
    supplied ones so the group stays contiguous.
    """
    existing = {subtask.id: subtask for subtask in task.subtasks}
    supplied = set()
    changed = False

    for index, item in enumerate(items):
        subtask = existing.get(item.id) if item.id else None
        if subtask is None:
            task.subtasks.append(Subtask(title=item.title, done=False, order=index))
            changed = True
            continue
        subtask.title = item.title
        subtask.done = item.done
        if subtask.order != index:
            subtask.order = index
            changed = True
        supplied.add(subtask.id)

    untouched = sorted(
        (subtask for subtask in existing.values() if subtask.id not in supplied),
        key=lambda subtask: subtask.order,
    )
    for offset, subtask in enumerate(untouched, start=len(items)):
        if subtask.order != offset:
            subtask.order = offset
            changed = True

    if changed:
        ordering.bump_revision(task)
    return changed


def update_task(db: Session, user: User, data: TaskUpdateInput) -> Task:
    """Overwrite a task, moving it when its column or position changes.

    A move to another column honours ``data.order`` as the drop index when
    it is given and appends otherwise; the source column is compacted.
    """
    with transaction(db):
        current = _owned_task(db, user, data.id)
        columns = _lock_columns(db, user, {current.column_id, data.column_id})
        task = _owned_task(db, user, data.id, lock=True)
        if task.column_id not in columns:
            raise ConflictError("Task was moved by another request")
        source = columns[task.column_id]
        task.title = data.title
        task.description = data.description

        if data.column_id != task.column_id:
            destination = columns[data.column_id]
            if destination.board_id != source.board_id:
                raise ValidationError.for_field("columnId", "Tasks can only move between columns of the same board.")
            _move_task(db, task, source, destination, data.order)
            logger.info("Moved task %s from column %s to %s", task.id, source.id, destination.id)
        elif data.order is not None and data.order != task.order:
            if ordering.move_to(db, ordering.tasks_of(source.id), task, data.order):
                ordering.bump_revision(source)

        _upsert_subtasks(db, task, data.subtasks)
        ordering.assert_contiguous(db, ordering.subtasks_of(task.id), "subtasks")

    logger.info("Updated task %s", data.id)
    return task


def update_subtask(db: Session, user: User, data: SubtaskUpdateInput) -> Subtask:
    with transaction(db):
        subtask = _owned_subtask(db, user, data.id)
        subtask.title = data.title
        subtask.done = data.done
    return subtask


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


def delete_column(db: Session, user: User, column_id: str) -> List[ordering.Change]:
    """Delete a column with its tasks and subtasks, then close the gap."""
    with transaction(db):
        board_id = _owned_column(db, user, column_id).board_id
        board = _owned_board(db, user, board_id, lock=True)
        # Re-read under the board lock: a concurrent reorder may have moved it
        column = _owned_column(db, user, column_id, lock=True)
        removed_order = column.order
        db.delete(column)
        group = ordering.columns_of(board.id)
        changes = ordering.remove_and_compact(db, group, removed_order)
        ordering.assert_contiguous(db, group, "columns")
        ordering.bump_revision(board)

    logger.info("Deleted column %s from board %s", column_id, board.id)
    return changes


def delete_task(db: Session, user: User, task_id: str) -> List[ordering.Change]:
    with transaction(db):
        column_id = _owned_task(db, user, task_id).column_id
        column = _owned_column(db, user, column_id, lock=True)
        task = _owned_task(db, user, task_id, lock=True)
        if task.column_id != column.id:
            raise ConflictError("Task was moved by another request")
        removed_order = task.order
        db.delete(task)
        group = ordering.tasks_of(column.id)
        changes = ordering.remove_and_compact(db, group, removed_order)
        ordering.assert_contiguous(db, group, "tasks")
        ordering.bump_revision(column)

    logger.info("Deleted task %s from column %s", task_id, column.id)
    return changes


def delete_board(db: Session, user: User, board_id: str) -> List[ordering.Change]:
    with transaction(db):
        owner = _lock_user(db, user)
        board = _owned_board(db, user, board_id, lock=True)
        removed_order = board.order
        db.delete(board)
        group = ordering.boards_of(owner.id)
        changes = ordering.remove_and_compact(db, group, removed_order)
        ordering.assert_contiguous(db, group, "boards")
        ordering.bump_revision(owner)

    logger.info("Deleted board %s of user %s", board_id, user.id)
    return changes


# ---------------------------------------------------------------------------
# Bulk reordering
# ---------------------------------------------------------------------------


def reorder_columns(db: Session, user: User, data: ReorderColumnsRequest) -> List[ordering.Change]:
    """Apply explicit column positions; the columns must all share one board."""
    if not data.columns:
        return []
    ids = [pair.id for pair in data.columns]

    with transaction(db):
        columns = (
            db.query(BoardColumn)
            .join(Board, BoardColumn.board_id == Board.id)
            .filter(BoardColumn.id.in_(ids), Board.user_id == user.id)
            .all()
        )
        found = {column.id for column in columns}
        missing = [column_id for column_id in ids if column_id not in found]
        if missing:
            raise NotFoundError(f"Column not found: {', '.join(missing)}")
        board_ids = {column.board_id for column in columns}
        if len(board_ids) > 1:
            raise ValidationError.for_field("columns", "Columns of different boards cannot be reordered together.")

        board = _owned_board(db, user, board_ids.pop(), lock=True)
        ordering.check_revision(board, data.revision)
        group = ordering.columns_of(board.id)
        changes = ordering.apply_orders(db, group, [(pair.id, pair.order) for pair in data.columns])
        ordering.assert_contiguous(db, group, "columns")
        if changes:
            ordering.bump_revision(board)

    logger.debug("Reordered columns of board %s: %d changed", board.id, len(changes))
    return changes


def reorder_tasks(db: Session, user: User, data: ReorderTasksRequest) -> List[ordering.Change]:
    """Apply explicit task positions inside ``data.column_id``.

    Tasks listed here that currently live in another column of the same
    board are moved into this column, and every column they left is
    compacted in the same transaction. The target and every source column
    are locked before anything is read for writing.
    """
    ids = [pair.id for pair in data.tasks]
    with transaction(db):
        candidates = _owned_tasks(db, user, ids)
        columns = _lock_columns(db, user, {data.column_id} | {task.column_id for task in candidates})
        column = columns[data.column_id]
        ordering.check_revision(column, data.revision)

        sources = {}
        for task in _owned_tasks(db, user, ids, refresh=True):
            if task.column_id == column.id:
                continue
            source = columns.get(task.column_id)
            if source is None:
                raise ConflictError("Task was moved by another request")
            if source.board_id != column.board_id:
                raise ValidationError.for_field("tasks", "Tasks can only move between columns of the same board.")
            sources[source.id] = source
            task.column = column

        group = ordering.tasks_of(column.id)
        changes = ordering.apply_orders(db, group, [(pair.id, pair.order) for pair in data.tasks])
        for source in sorted(sources.values(), key=lambda item: item.id):
            changes.extend(ordering.compact(db, ordering.tasks_of(source.id)))
            ordering.bump_revision(source)
        ordering.assert_contiguous(db, group, "tasks")
        if changes or sources:
            ordering.bump_revision(column)

    logger.debug(
        "Reordered tasks of column %s: %d changed, %d moved in",
        data.column_id,
        len(changes),
        len(sources),
    )
    return changes


def reorder_boards(db: Session, user: User, data: ReorderBoardsRequest) -> List[ordering.Change]:
    with transaction(db):
        owner = _lock_user(db, user)
        ordering.check_revision(owner, data.revision)
        group = ordering.boards_of(owner.id)
        changes = ordering.apply_orders(db, group, [(pair.id, pair.order) for pair in data.boards])
        ordering.assert_contiguous(db, group, "boards")
        if changes:
            ordering.bump_revision(owner)

    logger.debug("Reordered boards of user %s: %d changed", user.id, len(changes))
    return changes
