"""Python client for Kanflow with an optimistic local cache."""
from kanflow.client.api import KanflowClient
from kanflow.client.store import Action, ActionType, BoardStore, SubtaskToggle
from kanflow.client.sync import BoardSync

__all__ = ["Action", "ActionType", "BoardStore", "BoardSync", "KanflowClient", "SubtaskToggle"]
