from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from calendar_assist.errors import StorageError
from calendar_assist.models import TodoDraft

logger = logging.getLogger(__name__)


class TodoStore:
    """Todos kept as one JSON list; ids are the TodoDraft uuid hex.

    Invalid entries are skipped when reading but written back untouched, and a file
    that cannot be parsed is never replaced.
    """

    def __init__(self, path: Optional[str] = "data/todos.json"):
        # path=None keeps everything in memory
        self.path = Path(path) if path else None
        self._memory: List[dict] = []

    def _read_raw(self) -> List[dict]:
        if self.path is None:
            return list(self._memory)
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(str(self.path), str(e)) from e
        if not isinstance(data, list):
            raise StorageError(str(self.path), "expected a JSON list")
        return data

    def _write_raw(self, raw: List[dict]) -> None:
        if self.path is None:
            self._memory = list(raw)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(raw, ensure_ascii=False, indent=2), encoding="utf-8")

    def _load(self) -> Dict[str, TodoDraft]:
        try:
            raw = self._read_raw()
        except StorageError as e:
            logger.warning(f"{e}, listing no todos")
            return {}

        todos = {}
        for index, item in enumerate(raw):
            try:
                todo = TodoDraft.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Skipping invalid todo #{index} in {self.path}: {e.error_count()} error(s)")
                continue
            todos[todo.id] = todo
        return todos

    def list(self, include_completed: bool = True) -> List[TodoDraft]:
        todos = list(self._load().values())
        if not include_completed:
            todos = [t for t in todos if not t.completed]
        return todos

    def get(self, todo_id: str) -> Optional[TodoDraft]:
        return self._load().get(todo_id)

    def add(self, todo: TodoDraft) -> TodoDraft:
        raw = self._read_raw()
        raw.append(todo.model_dump(mode="json"))
        self._write_raw(raw)
        return todo

    def complete(self, todo_id: str) -> Optional[TodoDraft]:
        raw = self._read_raw()
        for index, item in enumerate(raw):
            if not isinstance(item, dict) or item.get("id") != todo_id:
                continue
            try:
                done = TodoDraft.model_validate(item).model_copy(update={"completed": True})
            except ValidationError:
                return None
            raw[index] = done.model_dump(mode="json")
            self._write_raw(raw)
            return done
        return None
