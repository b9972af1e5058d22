from fastapi.testclient import TestClient

from kanflow.models import User

PREFIX = "/api/board"


def _create_board(api: TestClient, headers, title="Sprint 1", columns=("Todo", "Doing")):
    response = api.post(
        f"{PREFIX}/createBoard",
        json={"title": title, "columns": [{"title": column} for column in columns]},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _get_board(api: TestClient, headers, board_id: str):
    response = api.get(f"{PREFIX}/getBoardById", params={"boardId": board_id}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def _create_task(api: TestClient, headers, board_id: str, column_id: str, title: str, subtasks=()):
    response = api.post(
        f"{PREFIX}/createTask",
        json={
            "boardId": board_id,
            "task": {
                "title": title,
                "description": "",
                "columnId": column_id,
                "subtasks": [{"title": subtask} for subtask in subtasks],
            },
        },
        headers=headers,
    )
    assert response.status_code == 204, response.text


def _column(board, title):
    return next(column for column in board["columns"] if column["title"] == title)


def test_health(api: TestClient):
    response = api.get("/health")

    assert response.status_code == 200
    assert response.json()["name"] == "Kanflow"


def test_requires_bearer_token(api: TestClient, user: User):
    response = api.post(f"{PREFIX}/createBoard", json={"title": "x", "columns": [{"title": "a"}]})

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_rejects_bad_tokens(api: TestClient, user: User, token_for):
    bad = api.get(f"{PREFIX}/getBoardByUserId", params={"userId": user.id}, headers={"Authorization": "Bearer nope"})
    unknown = api.get(
        f"{PREFIX}/getBoardByUserId",
        params={"userId": user.id},
        headers={"Authorization": f"Bearer {token_for('ghost')}"},
    )

    assert bad.status_code == 401
    assert unknown.status_code == 401
    assert unknown.json() == {"detail": "Unknown user"}


def test_create_board_returns_camel_case_tree(api: TestClient, user: User, auth_headers):
    board = _create_board(api, auth_headers)

    assert board["title"] == "Sprint 1"
    assert board["order"] == 0
    assert board["userId"] == user.id
    assert [(column["title"], column["order"]) for column in board["columns"]] == [("Todo", 0), ("Doing", 1)]
    assert all(column["boardId"] == board["id"] for column in board["columns"])
    assert all(column["tasks"] == [] for column in board["columns"])


def test_create_board_validation_errors(api: TestClient, user: User, auth_headers):
    response = api.post(f"{PREFIX}/createBoard", json={"title": "  ", "columns": []}, headers=auth_headers)

    assert response.status_code == 422
    body = response.json()
    assert body["detail"] == "Validation failed"
    fields = {error["field"]: error["message"] for error in body["errors"]}
    assert "A title is required." in fields["title"]
    assert "At least one column is required." in fields["columns"]


def test_create_task_validation_names_nested_field(api: TestClient, user: User, auth_headers):
    board = _create_board(api, auth_headers)

    response = api.post(
        f"{PREFIX}/createTask",
        json={"boardId": board["id"], "task": {"title": "", "columnId": board["columns"][0]["id"]}},
        headers=auth_headers,
    )

    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "task.title"


def test_board_flow(api: TestClient, user: User, auth_headers):
    board = _create_board(api, auth_headers)
    todo = _column(board, "Todo")
    doing = _column(board, "Doing")
    _create_task(api, auth_headers, board["id"], todo["id"], "Write spec", subtasks=["Outline", "Draft"])
    _create_task(api, auth_headers, board["id"], todo["id"], "Review")

    board = _get_board(api, auth_headers, board["id"])
    write, review = _column(board, "Todo")["tasks"]
    assert (write["title"], write["order"]) == ("Write spec", 0)
    assert (review["title"], review["order"]) == ("Review", 1)
    assert [subtask["title"] for subtask in write["subtasks"]] == ["Outline", "Draft"]

    response = api.post(
        f"{PREFIX}/reorderTasks",
        json={"columnId": doing["id"], "tasks": [{"id": write["id"], "order": 0}]},
        headers=auth_headers,
    )
    assert response.status_code == 204

    response = api.post(
        f"{PREFIX}/updateSubtask",
        json={"subtask": {"id": write["subtasks"][0]["id"], "title": "Outline", "done": True}},
        headers=auth_headers,
    )
    assert response.status_code == 204

    board = _get_board(api, auth_headers, board["id"])
    assert [(task["title"], task["order"]) for task in _column(board, "Todo")["tasks"]] == [("Review", 0)]
    moved = _column(board, "Doing")["tasks"]
    assert [(task["title"], task["order"], task["columnId"]) for task in moved] == [("Write spec", 0, doing["id"])]
    assert [subtask["done"] for subtask in moved[0]["subtasks"]] == [True, False]


def test_update_task_and_board(api: TestClient, user: User, auth_headers):
    board = _create_board(api, auth_headers, columns=("Todo", "Doing", "Done"))
    todo, doing, done = board["columns"]
    _create_task(api, auth_headers, board["id"], todo["id"], "Task")
    task = _column(_get_board(api, auth_headers, board["id"]), "Todo")["tasks"][0]

    response = api.post(
        f"{PREFIX}/updateTask",
        json={
            "task": {
                "id": task["id"],
                "title": "Task",
                "description": "now with words",
                "columnId": done["id"],
                "subtasks": [{"title": "New step"}],
            }
        },
        headers=auth_headers,
    )
    assert response.status_code == 204

    response = api.post(
        f"{PREFIX}/updateBoard",
        json={
            "board": {
                "id": board["id"],
                "title": "Renamed",
                "columns": [{"id": done["id"], "title": "Done"}, {"id": todo["id"], "title": "Todo"}],
            }
        },
        headers=auth_headers,
    )
    assert response.status_code == 204

    board = _get_board(api, auth_headers, board["id"])
    assert board["title"] == "Renamed"
    assert [(column["title"], column["order"]) for column in board["columns"]] == [("Done", 0), ("Todo", 1)]
    task = board["columns"][0]["tasks"][0]
    assert task["description"] == "now with words"
    assert [subtask["title"] for subtask in task["subtasks"]] == ["New step"]


def test_get_board_by_user_id_lists_in_order(api: TestClient, user: User, auth_headers):
    first = _create_board(api, auth_headers, title="First")
    second = _create_board(api, auth_headers, title="Second")

    api.post(
        f"{PREFIX}/reorderBoards",
        json={"boards": [{"id": second["id"], "order": 0}, {"id": first["id"], "order": 1}]},
        headers=auth_headers,
    )
    response = api.get(f"{PREFIX}/getBoardByUserId", params={"userId": user.id}, headers=auth_headers)

    assert response.status_code == 200
    assert [(board["title"], board["order"]) for board in response.json()] == [("Second", 0), ("First", 1)]
    assert "columns" not in response.json()[0]


def test_other_users_boards_are_not_found(api: TestClient, user: User, other_user: User, auth_headers, token_for):
    board = _create_board(api, auth_headers)
    intruder = {"Authorization": f"Bearer {token_for(other_user.id)}"}

    assert api.get(f"{PREFIX}/getBoardById", params={"boardId": board["id"]}, headers=intruder).status_code == 404
    assert api.get(f"{PREFIX}/getBoardByUserId", params={"userId": user.id}, headers=intruder).status_code == 404
    response = api.post(f"{PREFIX}/deleteBoard", json={"boardId": board["id"]}, headers=intruder)
    assert response.status_code == 404
    assert response.json() == {"detail": "Board not found"}


def test_stale_revision_conflicts(api: TestClient, user: User, auth_headers):
    board = _create_board(api, auth_headers, columns=("A", "B"))
    a, b = board["columns"]

    response = api.post(
        f"{PREFIX}/reorderColumns",
        json={"columns": [{"id": b["id"], "order": 0}, {"id": a["id"], "order": 1}], "revision": board["revision"] + 5},
        headers=auth_headers,
    )

    assert response.status_code == 409
    assert [column["title"] for column in _get_board(api, auth_headers, board["id"])["columns"]] == ["A", "B"]


def test_partial_reorder_is_rejected(api: TestClient, user: User, auth_headers):
    board = _create_board(api, auth_headers, columns=("A", "B", "C"))

    response = api.post(
        f"{PREFIX}/reorderColumns",
        json={"columns": [{"id": board["columns"][2]["id"], "order": 0}]},
        headers=auth_headers,
    )

    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "columns"


def test_duplicate_ids_in_reorder_rejected(api: TestClient, user: User, auth_headers):
    board = _create_board(api, auth_headers)
    column_id = board["columns"][0]["id"]

    response = api.post(
        f"{PREFIX}/reorderColumns",
        json={"columns": [{"id": column_id, "order": 0}, {"id": column_id, "order": 1}]},
        headers=auth_headers,
    )

    assert response.status_code == 422


def test_delete_board_compacts_and_hides(api: TestClient, user: User, auth_headers):
    boards = [_create_board(api, auth_headers, title=title) for title in ("One", "Two", "Three")]

    response = api.post(f"{PREFIX}/deleteBoard", json={"boardId": boards[1]["id"]}, headers=auth_headers)
    assert response.status_code == 204

    listed = api.get(f"{PREFIX}/getBoardByUserId", params={"userId": user.id}, headers=auth_headers).json()
    assert [(board["title"], board["order"]) for board in listed] == [("One", 0), ("Three", 1)]
    missing = api.get(f"{PREFIX}/getBoardById", params={"boardId": boards[1]["id"]}, headers=auth_headers)
    assert missing.status_code == 404


def test_delete_column_and_task(api: TestClient, user: User, auth_headers):
    board = _create_board(api, auth_headers, columns=("Todo", "Doing"))
    todo = _column(board, "Todo")
    _create_task(api, auth_headers, board["id"], todo["id"], "One")
    _create_task(api, auth_headers, board["id"], todo["id"], "Two")
    first = _column(_get_board(api, auth_headers, board["id"]), "Todo")["tasks"][0]

    assert api.post(f"{PREFIX}/deleteTask", json={"taskId": first["id"]}, headers=auth_headers).status_code == 204
    remaining = _column(_get_board(api, auth_headers, board["id"]), "Todo")["tasks"]
    assert [(task["title"], task["order"]) for task in remaining] == [("Two", 0)]

    assert api.post(f"{PREFIX}/deleteColumn", json={"columnId": todo["id"]}, headers=auth_headers).status_code == 204
    board = _get_board(api, auth_headers, board["id"])
    assert [(column["title"], column["order"]) for column in board["columns"]] == [("Doing", 0)]


def test_create_column_appends(api: TestClient, user: User, auth_headers):
    board = _create_board(api, auth_headers)

    response = api.post(
        f"{PREFIX}/createColumn",
        json={"boardId": board["id"], "column": {"title": "Done"}},
        headers=auth_headers,
    )

    assert response.status_code == 204
    columns = _get_board(api, auth_headers, board["id"])["columns"]
    assert [(column["title"], column["order"]) for column in columns] == [("Todo", 0), ("Doing", 1), ("Done", 2)]
    assert columns[2]["color"].startswith("#")
