import pytest

from kanflow.exceptions import ValidationError
from kanflow.services.reconciler import (
    DragLocation,
    DragSession,
    DragState,
    DropKind,
    DropResult,
    InvalidTransition,
    ItemKind,
    move_across,
    move_within,
    plan_drop,
)


def _task_drop(item_id, source, destination):
    return DropResult(ItemKind.TASK, item_id, DragLocation(*source), DragLocation(*destination) if destination else None)


def _pairs(call):
    return [(item.id, item.order) for item in call.items]


GROUPS = {"todo": ["t1", "t2", "t3"], "doing": ["d1", "d2"]}


def test_move_within():
    assert move_within(["a", "b", "c", "d"], 0, 2) == ["b", "c", "a", "d"]
    assert move_within(["a", "b", "c", "d"], 3, 0) == ["d", "a", "b", "c"]
    with pytest.raises(ValidationError):
        move_within(["a"], 0, 1)


def test_move_across_allows_end_of_destination():
    remaining, target = move_across(["a", "b"], ["x"], 0, 1)
    assert remaining == ["b"]
    assert target == ["x", "a"]
    with pytest.raises(ValidationError):
        move_across(["a"], ["x"], 0, 2)


def test_drop_outside_any_container_is_noop():
    plan = plan_drop(_task_drop("t1", ("todo", 0), None), GROUPS)

    assert plan.is_noop
    assert plan.calls == []


def test_drop_on_same_position_is_noop():
    plan = plan_drop(_task_drop("t2", ("todo", 1), ("todo", 1)), GROUPS)

    assert plan.kind == DropKind.NOOP


def test_within_group_renumbers_whole_column():
    plan = plan_drop(_task_drop("t3", ("todo", 2), ("todo", 0)), GROUPS)

    assert plan.kind == DropKind.WITHIN_GROUP
    assert plan.arrangements == {"todo": ["t3", "t1", "t2"]}
    assert len(plan.calls) == 1
    assert plan.calls[0].operation == "reorderTasks"
    assert _pairs(plan.calls[0]) == [("t3", 0), ("t1", 1), ("t2", 2)]
    assert plan.calls[0].payload() == {
        "columnId": "todo",
        "tasks": [{"id": "t3", "order": 0}, {"id": "t1", "order": 1}, {"id": "t2", "order": 2}],
    }


def test_cross_group_sends_destination_then_source():
    plan = plan_drop(_task_drop("t2", ("todo", 1), ("doing", 1)), GROUPS)

    assert plan.kind == DropKind.CROSS_GROUP
    assert plan.arrangements == {"todo": ["t1", "t3"], "doing": ["d1", "t2", "d2"]}
    destination_call, source_call = plan.calls
    assert destination_call.container_id == "doing"
    assert _pairs(destination_call) == [("d1", 0), ("t2", 1), ("d2", 2)]
    assert source_call.container_id == "todo"
    assert _pairs(source_call) == [("t1", 0), ("t3", 1)]


def test_cross_group_into_empty_column():
    plan = plan_drop(_task_drop("t1", ("todo", 0), ("empty", 0)), dict(GROUPS, empty=[]))

    assert plan.arrangements["empty"] == ["t1"]
    assert plan.arrangements["todo"] == ["t2", "t3"]


def test_stale_source_position_rejected():
    with pytest.raises(ValidationError) as exc:
        plan_drop(_task_drop("t1", ("todo", 2), ("todo", 0)), GROUPS)
    assert exc.value.errors[0]["field"] == "source"


def test_unknown_containers_rejected():
    with pytest.raises(ValidationError):
        plan_drop(_task_drop("t1", ("nowhere", 0), ("todo", 0)), GROUPS)
    with pytest.raises(ValidationError):
        plan_drop(_task_drop("t1", ("todo", 0), ("nowhere", 0)), GROUPS)


def test_columns_and_boards_stay_in_their_container():
    groups = {"board-1": ["c1", "c2"], "board-2": ["c3"]}

    plan = plan_drop(
        DropResult(ItemKind.COLUMN, "c2", DragLocation("board-1", 1), DragLocation("board-1", 0)),
        groups,
    )
    assert plan.calls[0].payload() == {"columns": [{"id": "c2", "order": 0}, {"id": "c1", "order": 1}]}

    with pytest.raises(ValidationError):
        plan_drop(
            DropResult(ItemKind.COLUMN, "c2", DragLocation("board-1", 1), DragLocation("board-2", 0)),
            groups,
        )

    plan = plan_drop(
        DropResult(ItemKind.BOARD, "b1", DragLocation("user", 0), DragLocation("user", 1)),
        {"user": ["b1", "b2"]},
    )
    assert plan.calls[0].operation == "reorderBoards"
    assert plan.calls[0].payload() == {"boards": [{"id": "b2", "order": 0}, {"id": "b1", "order": 1}]}


def test_drag_session_happy_path():
    session = DragSession()
    sent = []

    session.start(ItemKind.TASK, "t1", DragLocation("todo", 0))
    assert session.state == DragState.DRAGGING
    plan = session.drop(DragLocation("doing", 0), GROUPS)
    assert session.state == DragState.DROPPED

    assert session.commit(sent.append) is plan
    assert [call.container_id for call in sent] == ["doing", "todo"]
    assert session.state == DragState.IDLE
    assert session.plan is None


def test_drag_session_cancel_and_invalid_transitions():
    session = DragSession()
    with pytest.raises(InvalidTransition):
        session.drop(DragLocation("todo", 0), GROUPS)
    with pytest.raises(InvalidTransition):
        session.cancel()

    session.start(ItemKind.TASK, "t1", DragLocation("todo", 0))
    with pytest.raises(InvalidTransition):
        session.start(ItemKind.TASK, "t2", DragLocation("todo", 1))
    session.cancel()
    assert session.state == DragState.IDLE


def test_drag_session_resets_after_invalid_drop():
    session = DragSession()
    session.start(ItemKind.TASK, "t1", DragLocation("todo", 1))

    with pytest.raises(ValidationError):
        session.drop(DragLocation("todo", 0), GROUPS)
    assert session.state == DragState.IDLE


def test_drag_session_noop_commit_sends_nothing():
    session = DragSession()
    sent = []
    session.start(ItemKind.TASK, "t1", DragLocation("todo", 0))
    session.drop(None, GROUPS)

    plan = session.commit(sent.append)

    assert plan.is_noop
    assert sent == []
    assert session.state == DragState.IDLE


def test_drag_session_returns_to_idle_when_executor_fails():
    session = DragSession()
    session.start(ItemKind.TASK, "t1", DragLocation("todo", 0))
    session.drop(DragLocation("todo", 2), GROUPS)

    def failing(call):
        raise RuntimeError("network down")

    with pytest.raises(RuntimeError):
        session.commit(failing)
    assert session.state == DragState.IDLE
