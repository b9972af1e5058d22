"""HTTP client for the board RPC endpoints."""
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import httpx

from kanflow.exceptions import ERRORS_BY_STATUS, KanflowError, ValidationError
from kanflow.schemas import BoardResponse, BoardSummary
from kanflow.services.reconciler import ReorderCall

logger = logging.getLogger(__name__)

API_PREFIX = "/api/board"


class KanflowClient:
    """Thin wrapper over ``httpx.Client``; any ``httpx.Client`` (a test client included) can be injected."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self._owns_http = http is None
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # -- transport -----------------------------------------------------------

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = {"detail": response.text}
        detail = body.get("detail") if isinstance(body, dict) else None
        error_class = ERRORS_BY_STATUS.get(response.status_code)
        if error_class is ValidationError:
            raise ValidationError(detail, errors=body.get("errors"))
        if error_class is not None:
            raise error_class(detail)
        error = KanflowError(detail or f"HTTP {response.status_code}")
        error.status_code = response.status_code
        raise error

    def _post(self, operation: str, body: Dict[str, Any]) -> Any:
        response = self._http.post(f"{API_PREFIX}/{operation}", json=body, headers=self._headers)
        self._raise_for_error(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _get(self, operation: str, params: Dict[str, str]) -> Any:
        response = self._http.get(f"{API_PREFIX}/{operation}", params=params, headers=self._headers)
        self._raise_for_error(response)
        return response.json()

    # -- queries -------------------------------------------------------------

    def get_boards_by_user_id(self, user_id: str) -> List[BoardSummary]:
        return [BoardSummary.model_validate(item) for item in self._get("getBoardByUserId", {"userId": user_id})]

    def get_board_by_id(self, board_id: str) -> BoardResponse:
        return BoardResponse.model_validate(self._get("getBoardById", {"boardId": board_id}))

    # -- mutations -----------------------------------------------------------

    def create_board(self, title: str, columns: Iterable[str]) -> BoardResponse:
        body = {"title": title, "columns": [{"title": column} for column in columns]}
        return BoardResponse.model_validate(self._post("createBoard", body))

    def create_column(self, board_id: str, title: str) -> None:
        self._post("createColumn", {"boardId": board_id, "column": {"title": title}})

    def create_task(
        self,
        board_id: str,
        column_id: str,
        title: str,
        description: str = "",
        subtasks: Sequence[str] = (),
    ) -> None:
        task = {
            "title": title,
            "description": description,
            "columnId": column_id,
            "subtasks": [{"title": subtask} for subtask in subtasks],
        }
        self._post("createTask", {"boardId": board_id, "task": task})

    def update_board(self, board_id: str, title: str, columns: Sequence[Dict[str, Any]]) -> None:
        self._post("updateBoard", {"board": {"id": board_id, "title": title, "columns": list(columns)}})

    def update_task(self, task: Dict[str, Any]) -> None:
        self._post("updateTask", {"task": task})

    def update_subtask(self, subtask_id: str, title: str, done: bool) -> None:
        self._post("updateSubtask", {"subtask": {"id": subtask_id, "title": title, "done": done}})

    def delete_column(self, column_id: str) -> None:
        self._post("deleteColumn", {"columnId": column_id})

    def delete_task(self, task_id: str) -> None:
        self._post("deleteTask", {"taskId": task_id})

    def delete_board(self, board_id: str) -> None:
        self._post("deleteBoard", {"boardId": board_id})

    def reorder_tasks(self, column_id: str, pairs: Sequence[Tuple[str, int]], revision: Optional[int] = None) -> None:
        body = {"columnId": column_id, "tasks": _pairs(pairs), "revision": revision}
        self._post("reorderTasks", body)

    def reorder_columns(self, pairs: Sequence[Tuple[str, int]], revision: Optional[int] = None) -> None:
        self._post("reorderColumns", {"columns": _pairs(pairs), "revision": revision})

    def reorder_boards(self, pairs: Sequence[Tuple[str, int]], revision: Optional[int] = None) -> None:
        self._post("reorderBoards", {"boards": _pairs(pairs), "revision": revision})

    def reorder(self, call: ReorderCall, revision: Optional[int] = None) -> None:
        """Send one call of a reconciler plan."""
        body = call.payload()
        if revision is not None:
            body["revision"] = revision
        logger.debug("Sending %s for %s (%d items)", call.operation, call.container_id, len(call.items))
        self._post(call.operation, body)


def _pairs(pairs: Sequence[Tuple[str, int]]) -> List[Dict[str, Any]]:
    return [{"id": item_id, "order": order} for item_id, order in pairs]
