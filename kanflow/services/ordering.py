"""Dense ordinal bookkeeping for sibling groups.

Every group of siblings (boards of a user, columns of a board, tasks of a
column, subtasks of a task) keeps its ``order`` values at exactly
``0..N-1``. The helpers below never commit; they run inside the caller's
transaction so a group is only ever observed before or after a complete
change.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type

from sqlalchemy.orm import Session

from kanflow.exceptions import ConflictError, NotFoundError, ValidationError
from kanflow.models import Board, BoardColumn, Subtask, Task

logger = logging.getLogger(__name__)

Change = Tuple[str, int]


@dataclass(frozen=True)
class SiblingGroup:
    """The rows of ``model`` whose ``parent_key`` equals ``parent_id``."""

    model: Type
    parent_key: str
    parent_id: str

    @property
    def label(self) -> str:
        return f"{self.model.__tablename__}[{self.parent_key}={self.parent_id}]"

    def query(self, db: Session):
        # autoflush is off: make pending moves visible, then read ordinals as stored
        db.flush()
        return (
            db.query(self.model)
            .filter(getattr(self.model, self.parent_key) == self.parent_id)
            .populate_existing()
        )

    def members(self, db: Session) -> List:
        return self.query(db).order_by(self.model.order.asc(), self.model.created_at.asc(), self.model.id.asc()).all()


def boards_of(user_id: str) -> SiblingGroup:
    return SiblingGroup(Board, "user_id", user_id)


def columns_of(board_id: str) -> SiblingGroup:
    return SiblingGroup(BoardColumn, "board_id", board_id)


def tasks_of(column_id: str) -> SiblingGroup:
    return SiblingGroup(Task, "column_id", column_id)


def subtasks_of(task_id: str) -> SiblingGroup:
    return SiblingGroup(Subtask, "task_id", task_id)


def is_contiguous(orders: Iterable[int]) -> bool:
    values = sorted(orders)
    return values == list(range(len(values)))


def append(db: Session, group: SiblingGroup) -> int:
    """Return the order a new last member of ``group`` must take."""
    return group.query(db).count()


def remove_and_compact(db: Session, group: SiblingGroup, removed_order: int) -> List[Change]:
    """Close the hole left at ``removed_order``: every later sibling moves up by one."""
    model = group.model
    changes: List[Change] = []
    siblings = group.query(db).filter(model.order > removed_order).order_by(model.order.asc()).all()
    for sibling in siblings:
        sibling.order -= 1
        changes.append((sibling.id, sibling.order))
    logger.debug("Compacted %s after removing position %d: %d shifted", group.label, removed_order, len(changes))
    return changes


def _reject_repeats(ordered_ids: Sequence[str]) -> None:
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValidationError("An id appears more than once in the requested order")


def compute_reindex(current: Mapping[str, int], ordered_ids: Sequence[str]) -> List[Change]:
    """Return the minimal ``(id, order)`` pairs that make ``ordered_ids`` read ``0..N-1``.

    Array position is the only source of truth, so a gappy or duplicated
    ``current`` mapping is repaired as a side effect.
    """
    _reject_repeats(ordered_ids)
    return [(item_id, index) for index, item_id in enumerate(ordered_ids) if current.get(item_id) != index]


def apply_orders(db: Session, group: SiblingGroup, pairs: Sequence[Change]) -> List[Change]:
    """Write explicit ``(id, order)`` pairs into ``group``; return those that changed."""
    if not pairs:
        return []
    model = group.model
    ids = [item_id for item_id, _ in pairs]
    rows: Dict[str, object] = {row.id: row for row in group.query(db).filter(model.id.in_(ids)).all()}
    missing = [item_id for item_id in ids if item_id not in rows]
    if missing:
        raise NotFoundError(f"{model.__name__} not found: {', '.join(missing)}")

    changes: List[Change] = []
    for item_id, order in pairs:
        row = rows[item_id]
        if row.order != order:
            row.order = order
            changes.append((item_id, order))
    return changes


def reindex_full(db: Session, group: SiblingGroup, ordered_ids: Sequence[str]) -> List[Change]:
    """Assign ``order = index`` to every id of ``ordered_ids`` within ``group``."""
    _reject_repeats(ordered_ids)
    changes = apply_orders(db, group, [(item_id, index) for index, item_id in enumerate(ordered_ids)])
    logger.debug("Reindexed %s: %d of %d ordinals changed", group.label, len(changes), len(ordered_ids))
    return changes


def compact(db: Session, group: SiblingGroup) -> List[Change]:
    """Renumber ``group`` by its current relative order."""
    return reindex_full(db, group, [member.id for member in group.members(db)])


def move_to(db: Session, group: SiblingGroup, item, index: Optional[int] = None) -> List[Change]:
    """Place ``item`` (already a member of ``group``) at ``index``; ``None`` appends.

    The index is clamped to the group, so a stale drop position can never
    open a gap.
    """
    ids = [member.id for member in group.members(db) if member.id != item.id]
    position = len(ids) if index is None else max(0, min(index, len(ids)))
    ids.insert(position, item.id)
    return reindex_full(db, group, ids)


def assert_contiguous(db: Session, group: SiblingGroup, field: str) -> None:
    orders = [order for (order,) in group.query(db).with_entities(group.model.order).all()]
    if not is_contiguous(orders):
        raise ValidationError.for_field(
            field,
            f"Positions must cover 0..{len(orders) - 1} exactly once, got {sorted(orders)}",
        )


def check_revision(parent, expected: Optional[int]) -> None:
    """Reject a reorder computed against an outdated view of the group."""
    if expected is None:
        return
    current = parent.revision or 0
    if current != expected:
        logger.warning(
            "Rejected stale reorder of %s %s: revision %d, client had %d",
            type(parent).__name__,
            parent.id,
            current,
            expected,
        )
        raise ConflictError(f"{type(parent).__name__} was changed by another request (revision {current}, expected {expected})")


def bump_revision(parent) -> int:
    parent.revision = (parent.revision or 0) + 1
    return parent.revision
