"""Glue between the store, the reconciler and the HTTP client."""
import logging
from typing import Callable, Dict, List, Optional, Sequence

import httpx

from kanflow.client.api import KanflowClient
from kanflow.client.store import Action, ActionType, BoardStore, SubtaskToggle
from kanflow.exceptions import KanflowError, NotFoundError
from kanflow.schemas import BoardResponse
from kanflow.services.reconciler import DragSession, DropResult, ItemKind, ReorderCall, ReorderPlan

logger = logging.getLogger(__name__)

MUTATION_ERRORS = (KanflowError, httpx.HTTPError)


class BoardSync:
    """Drive optimistic updates for one signed-in user."""

    def __init__(self, store: BoardStore, client: KanflowClient, user_id: str):
        self.store = store
        self.client = client
        self.user_id = user_id

    # -- reads ---------------------------------------------------------------

    def load_boards(self) -> None:
        boards = self.client.get_boards_by_user_id(self.user_id)
        self.store.dispatch(Action(ActionType.BOARDS_LOADED, payload=boards))

    def load_board(self, board_id: str) -> BoardResponse:
        board = self.client.get_board_by_id(board_id)
        self.store.dispatch(Action(ActionType.BOARD_LOADED, board_id=board_id, payload=board))
        return board

    def refresh(self) -> None:
        """Refetch everything an invalidation marked stale."""
        if self.store.state.boards_stale:
            self.load_boards()
        for board_id in sorted(self.store.state.stale):
            try:
                self.load_board(board_id)
            except NotFoundError:
                self.store.dispatch(Action(ActionType.BOARD_REMOVED, board_id=board_id))

    # -- optimistic operations -----------------------------------------------

    def groups_for(self, kind: ItemKind, board_id: Optional[str]) -> Dict[str, List[str]]:
        if kind == ItemKind.BOARD:
            return {self.user_id: [board.id for board in self.store.state.boards]}
        board = self.store.board(board_id)
        if board is None:
            raise KeyError(f"Board {board_id} is not loaded")
        if kind == ItemKind.COLUMN:
            return {board.id: [column.id for column in board.columns]}
        return {column.id: [task.id for task in column.tasks] for column in board.columns}

    def drop(self, result: DropResult, board_id: Optional[str] = None) -> ReorderPlan:
        """Apply a drag result locally at once, then persist it.

        On failure the store is rolled back to the state before the drop and
        the error is kept in ``store.state.last_error`` for the UI to show.
        If some calls of the plan were already accepted, the affected board is
        refetched as well.
        """
        session = DragSession()
        session.start(result.kind, result.item_id, result.source)
        plan = session.drop(result.destination, self.groups_for(ItemKind(result.kind), board_id))
        if plan.is_noop:
            return session.commit(self.client.reorder)

        mutation_id = self.store.next_mutation_id()
        self.store.dispatch(Action(ActionType.OPTIMISTIC_APPLY, board_id=board_id, payload=plan, mutation_id=mutation_id))
        sent = []

        def send(call: ReorderCall) -> None:
            self.client.reorder(call)
            sent.append(call)

        try:
            session.commit(send)
        except MUTATION_ERRORS as exc:
            logger.warning("Reorder of %s failed after %d of %d calls: %s", result.item_id, len(sent), len(plan.calls), exc)
            self.store.dispatch(Action(ActionType.ROLLBACK, board_id=board_id, mutation_id=mutation_id, error=exc))
            if sent:
                # Part of the plan is committed: the snapshot no longer matches the server
                self._invalidate(plan, board_id)
                self._refresh_quietly()
            return plan

        self.store.dispatch(Action(ActionType.CONFIRM, board_id=board_id, mutation_id=mutation_id))
        self._invalidate(plan, board_id)
        self.refresh()
        return plan

    def _invalidate(self, plan: ReorderPlan, board_id: Optional[str]) -> None:
        if plan.item_kind == ItemKind.BOARD:
            self.store.dispatch(Action(ActionType.INVALIDATE))
        else:
            self.store.dispatch(Action(ActionType.INVALIDATE, board_id=board_id))

    def _refresh_quietly(self) -> None:
        """Refetch after a failure; what cannot be fetched stays marked stale."""
        try:
            self.refresh()
        except MUTATION_ERRORS as exc:
            logger.warning("Refetch after failed reorder did not complete: %s", exc)

    def toggle_subtask(self, board_id: str, task_id: str, subtask_id: str, title: str, done: bool) -> bool:
        mutation_id = self.store.next_mutation_id()
        toggle = SubtaskToggle(task_id=task_id, subtask_id=subtask_id, done=done)
        self.store.dispatch(Action(ActionType.OPTIMISTIC_APPLY, board_id=board_id, payload=toggle, mutation_id=mutation_id))
        try:
            self.client.update_subtask(subtask_id, title, done)
        except MUTATION_ERRORS as exc:
            logger.warning("Subtask update %s failed: %s", subtask_id, exc)
            self.store.dispatch(Action(ActionType.ROLLBACK, board_id=board_id, mutation_id=mutation_id, error=exc))
            return False
        self.store.dispatch(Action(ActionType.CONFIRM, board_id=board_id, mutation_id=mutation_id))
        self.store.dispatch(Action(ActionType.INVALIDATE, board_id=board_id))
        self.refresh()
        return True

    # -- plain mutations -----------------------------------------------------

    def mutate(self, call: Callable[..., object], *args, board_ids: Sequence[Optional[str]] = (), **kwargs) -> bool:
        """Run a non-optimistic mutation, then refetch what it touched.

        ``board_ids`` lists the cached boards to invalidate; ``None`` in it
        invalidates the board list as well.
        """
        try:
            call(*args, **kwargs)
        except MUTATION_ERRORS as exc:
            logger.warning("Mutation %s failed: %s", getattr(call, "__name__", call), exc)
            self.store.dispatch(Action(ActionType.ROLLBACK, error=exc))
            return False
        self.store.dispatch(Action(ActionType.CONFIRM))
        for board_id in board_ids:
            self.store.dispatch(Action(ActionType.INVALIDATE, board_id=board_id))
        self.refresh()
        return True
