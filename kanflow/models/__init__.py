"""Kanflow Database Models"""
from kanflow.models.user import User
from kanflow.models.board import Board
from kanflow.models.column import BoardColumn
from kanflow.models.task import Task
from kanflow.models.subtask import Subtask
from kanflow.utils.primary_keys import register_string_pk_listener

__all__ = [
    "User",
    "Board",
    "BoardColumn",
    "Task",
    "Subtask",
]


for _model in (
    User,
    Board,
    BoardColumn,
    Task,
    Subtask,
):
    register_string_pk_listener(_model)
