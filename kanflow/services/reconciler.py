"""Translate a drag-and-drop result into ordinal updates.

Nothing here touches the database: the reconciler works on the id lists the
client already holds and returns a ``ReorderPlan`` whose ``calls`` are the
``reorderBoards`` / ``reorderColumns`` / ``reorderTasks`` requests to send.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from kanflow.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ItemKind(str, Enum):
    BOARD = "board"
    COLUMN = "column"
    TASK = "task"


class DropKind(str, Enum):
    NOOP = "noop"
    WITHIN_GROUP = "within_group"
    CROSS_GROUP = "cross_group"


OPERATIONS = {
    ItemKind.BOARD: "reorderBoards",
    ItemKind.COLUMN: "reorderColumns",
    ItemKind.TASK: "reorderTasks",
}


@dataclass(frozen=True)
class DragLocation:
    container_id: str
    index: int


@dataclass(frozen=True)
class DropResult:
    kind: ItemKind
    item_id: str
    source: DragLocation
    # None when the item was released outside any droppable container
    destination: Optional[DragLocation] = None


@dataclass(frozen=True)
class Placement:
    id: str
    order: int


@dataclass
class ReorderCall:
    operation: str
    container_id: str
    items: List[Placement]

    def payload(self) -> Dict[str, object]:
        """Request body in the API's camelCase shape."""
        pairs = [{"id": item.id, "order": item.order} for item in self.items]
        if self.operation == OPERATIONS[ItemKind.TASK]:
            return {"columnId": self.container_id, "tasks": pairs}
        if self.operation == OPERATIONS[ItemKind.COLUMN]:
            return {"columns": pairs}
        return {"boards": pairs}


@dataclass
class ReorderPlan:
    kind: DropKind
    item_kind: ItemKind
    item_id: str
    arrangements: Dict[str, List[str]] = field(default_factory=dict)
    calls: List[ReorderCall] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return self.kind == DropKind.NOOP


def placements(ids: Sequence[str]) -> List[Placement]:
    return [Placement(item_id, index) for index, item_id in enumerate(ids)]


def _check_source(ids: Sequence[str], index: int, item_id: str) -> None:
    if not 0 <= index < len(ids) or ids[index] != item_id:
        raise ValidationError.for_field("source", f"Item {item_id} is not at position {index}; the board is out of date.")


def move_within(ids: Sequence[str], from_index: int, to_index: int) -> List[str]:
    if not 0 <= from_index < len(ids):
        raise ValidationError.for_field("source", f"Source position {from_index} is outside 0..{len(ids) - 1}.")
    if not 0 <= to_index < len(ids):
        raise ValidationError.for_field("destination", f"Destination position {to_index} is outside 0..{len(ids) - 1}.")
    result = list(ids)
    item = result.pop(from_index)
    result.insert(to_index, item)
    return result


def move_across(
    source_ids: Sequence[str],
    destination_ids: Sequence[str],
    from_index: int,
    to_index: int,
) -> Tuple[List[str], List[str]]:
    if not 0 <= from_index < len(source_ids):
        raise ValidationError.for_field("source", f"Source position {from_index} is outside 0..{len(source_ids) - 1}.")
    if not 0 <= to_index <= len(destination_ids):
        raise ValidationError.for_field(
            "destination", f"Destination position {to_index} is outside 0..{len(destination_ids)}."
        )
    remaining = list(source_ids)
    item = remaining.pop(from_index)
    target = list(destination_ids)
    target.insert(to_index, item)
    return remaining, target


def plan_drop(result: DropResult, groups: Mapping[str, Sequence[str]]) -> ReorderPlan:
    """Compute the arrangement and reorder calls for one drop.

    ``groups`` maps each container id to the ids it currently holds, in
    display order. Every affected group is renumbered ``0..N-1`` from array
    position, whatever its stored ordinals were.
    """
    kind = ItemKind(result.kind)
    source, destination = result.source, result.destination
    if source.container_id not in groups:
        raise ValidationError.for_field("source", f"Unknown container {source.container_id}.")
    source_ids = groups[source.container_id]
    _check_source(source_ids, source.index, result.item_id)

    if destination is None or destination == source:
        return ReorderPlan(DropKind.NOOP, kind, result.item_id)

    operation = OPERATIONS[kind]
    if destination.container_id == source.container_id:
        arranged = move_within(source_ids, source.index, destination.index)
        return ReorderPlan(
            DropKind.WITHIN_GROUP,
            kind,
            result.item_id,
            arrangements={source.container_id: arranged},
            calls=[ReorderCall(operation, source.container_id, placements(arranged))],
        )

    if kind != ItemKind.TASK:
        raise ValidationError.for_field("destination", f"A {kind.value} cannot leave its container.")
    if destination.container_id not in groups:
        raise ValidationError.for_field("destination", f"Unknown container {destination.container_id}.")

    remaining, target = move_across(source_ids, groups[destination.container_id], source.index, destination.index)
    return ReorderPlan(
        DropKind.CROSS_GROUP,
        kind,
        result.item_id,
        arrangements={source.container_id: remaining, destination.container_id: target},
        # Destination first: that call pulls the task over and compacts the
        # source, which makes the source call a confirmation of the result.
        calls=[
            ReorderCall(operation, destination.container_id, placements(target)),
            ReorderCall(operation, source.container_id, placements(remaining)),
        ],
    )


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    DROPPED = "dropped"
    COMMITTING = "committing"


class InvalidTransition(RuntimeError):
    pass


class DragSession:
    """One gesture: ``Idle -> Dragging -> Dropped -> Committing -> Idle``."""

    def __init__(self):
        self.state = DragState.IDLE
        self.kind: Optional[ItemKind] = None
        self.item_id: Optional[str] = None
        self.source: Optional[DragLocation] = None
        self.plan: Optional[ReorderPlan] = None

    def _require(self, *states: DragState) -> None:
        if self.state not in states:
            raise InvalidTransition(f"Cannot do that while {self.state.value}")

    def _reset(self) -> None:
        self.state = DragState.IDLE
        self.kind = self.item_id = self.source = self.plan = None

    def start(self, kind: ItemKind, item_id: str, source: DragLocation) -> None:
        self._require(DragState.IDLE)
        self.kind, self.item_id, self.source = ItemKind(kind), item_id, source
        self.state = DragState.DRAGGING

    def cancel(self) -> None:
        self._require(DragState.DRAGGING, DragState.DROPPED)
        self._reset()

    def drop(self, destination: Optional[DragLocation], groups: Mapping[str, Sequence[str]]) -> ReorderPlan:
        self._require(DragState.DRAGGING)
        try:
            self.plan = plan_drop(DropResult(self.kind, self.item_id, self.source, destination), groups)
        except ValidationError:
            self._reset()
            raise
        self.state = DragState.DROPPED
        return self.plan

    def commit(self, executor: Callable[[ReorderCall], object]) -> ReorderPlan:
        """Send every call of the plan through ``executor``; always ends Idle."""
        self._require(DragState.DROPPED)
        plan = self.plan
        if plan.is_noop:
            self._reset()
            return plan
        self.state = DragState.COMMITTING
        try:
            for call in plan.calls:
                executor(call)
        finally:
            self._reset()
        logger.debug("Committed %s drop of %s with %d calls", plan.kind.value, plan.item_id, len(plan.calls))
        return plan
