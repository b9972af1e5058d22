"""Client-side mirror of the server's board hierarchy.

``BoardStore`` is a small state container: every change goes through
``dispatch`` with one of the ``ActionType`` values, so an optimistic change
can always be confirmed or rolled back to the exact snapshot it replaced.
"""
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from kanflow.schemas import BoardResponse, BoardSummary
from kanflow.services.reconciler import ItemKind, ReorderPlan

logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    BOARDS_LOADED = "boards_loaded"
    BOARD_LOADED = "board_loaded"
    BOARD_REMOVED = "board_removed"
    OPTIMISTIC_APPLY = "optimistic_apply"
    CONFIRM = "confirm"
    ROLLBACK = "rollback"
    INVALIDATE = "invalidate"


@dataclass(frozen=True)
class SubtaskToggle:
    task_id: str
    subtask_id: str
    done: bool


@dataclass(frozen=True)
class Action:
    type: ActionType
    board_id: Optional[str] = None
    payload: Any = None
    mutation_id: Optional[str] = None
    error: Optional[Exception] = None


@dataclass
class Snapshot:
    boards: List[BoardSummary]
    board: Optional[BoardResponse]


@dataclass
class StoreState:
    boards: List[BoardSummary] = field(default_factory=list)
    details: Dict[str, BoardResponse] = field(default_factory=dict)
    stale: Set[str] = field(default_factory=set)
    boards_stale: bool = False
    pending: Dict[str, Snapshot] = field(default_factory=dict)
    last_error: Optional[Exception] = None


class BoardStore:
    def __init__(self):
        self.state = StoreState()
        self._listeners: List[Callable[[StoreState, Action], None]] = []
        self._mutation_ids = itertools.count(1)

    def subscribe(self, listener: Callable[[StoreState, Action], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def board(self, board_id: str) -> Optional[BoardResponse]:
        return self.state.details.get(board_id)

    def next_mutation_id(self) -> str:
        return f"m{next(self._mutation_ids)}"

    # -- dispatch ------------------------------------------------------------

    def dispatch(self, action: Action) -> None:
        handler = getattr(self, f"_on_{action.type.value}")
        handler(action)
        for listener in list(self._listeners):
            listener(self.state, action)

    def _on_boards_loaded(self, action: Action) -> None:
        self.state.boards = list(action.payload)
        self.state.boards_stale = False

    def _on_board_loaded(self, action: Action) -> None:
        board: BoardResponse = action.payload
        self.state.details[board.id] = board
        self.state.stale.discard(board.id)

    def _on_board_removed(self, action: Action) -> None:
        self.state.details.pop(action.board_id, None)
        self.state.stale.discard(action.board_id)

    def _on_optimistic_apply(self, action: Action) -> None:
        board = self.state.details.get(action.board_id) if action.board_id else None
        self.state.pending[action.mutation_id] = Snapshot(
            boards=[summary.model_copy() for summary in self.state.boards],
            board=board.model_copy(deep=True) if board is not None else None,
        )
        payload = action.payload
        if isinstance(payload, SubtaskToggle):
            self._apply_toggle(action.board_id, payload)
        elif isinstance(payload, ReorderPlan):
            self._apply_plan(action.board_id, payload)
        else:
            raise TypeError(f"Cannot apply {type(payload).__name__} optimistically")

    def _on_confirm(self, action: Action) -> None:
        self.state.pending.pop(action.mutation_id, None)
        self.state.last_error = None

    def _on_rollback(self, action: Action) -> None:
        snapshot = self.state.pending.pop(action.mutation_id, None)
        self.state.last_error = action.error
        if snapshot is None:
            return
        self.state.boards = snapshot.boards
        if snapshot.board is not None:
            self.state.details[snapshot.board.id] = snapshot.board
        logger.warning("Rolled back optimistic change %s: %s", action.mutation_id, action.error)

    def _on_invalidate(self, action: Action) -> None:
        if action.board_id is None:
            self.state.boards_stale = True
            self.state.stale.update(self.state.details)
        else:
            self.state.stale.add(action.board_id)

    # -- optimistic patches --------------------------------------------------

    def _apply_plan(self, board_id: Optional[str], plan: ReorderPlan) -> None:
        if plan.item_kind == ItemKind.BOARD:
            by_id = {summary.id: summary for summary in self.state.boards}
            for ids in plan.arrangements.values():
                self.state.boards = [by_id[item_id] for item_id in ids]
            for index, summary in enumerate(self.state.boards):
                summary.order = index
            return

        board = self.state.details[board_id].model_copy(deep=True)
        if plan.item_kind == ItemKind.COLUMN:
            by_id = {column.id: column for column in board.columns}
            board.columns = [by_id[item_id] for item_id in plan.arrangements[board.id]]
            for index, column in enumerate(board.columns):
                column.order = index
        else:
            tasks = {task.id: task for column in board.columns for task in column.tasks}
            for column in board.columns:
                if column.id not in plan.arrangements:
                    continue
                column.tasks = [tasks[item_id] for item_id in plan.arrangements[column.id]]
                for index, task in enumerate(column.tasks):
                    task.column_id = column.id
                    task.order = index
        self.state.details[board.id] = board

    def _apply_toggle(self, board_id: str, toggle: SubtaskToggle) -> None:
        board = self.state.details[board_id].model_copy(deep=True)
        for column in board.columns:
            for task in column.tasks:
                if task.id != toggle.task_id:
                    continue
                for subtask in task.subtasks:
                    if subtask.id == toggle.subtask_id:
                        subtask.done = toggle.done
        self.state.details[board.id] = board
