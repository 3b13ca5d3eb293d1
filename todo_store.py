"""
In-memory Todo Store
Owns the todo collection, allocates identifiers and enforces
create/update/delete semantics independent of any transport.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)


class TodoError(Exception):
    """Base class for store failures; `status` is the HTTP status it maps to"""

    status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(TodoError):
    """A required field is missing, empty or of the wrong type"""


class InvalidIdentifier(TodoError):
    """An externally supplied identifier does not parse"""


class NotFound(TodoError):
    """No record matches a syntactically valid identifier"""

    status = 404

    def __init__(self, todo_id: int):
        super().__init__(f"Todo {todo_id} not found")
        self.todo_id = todo_id


@dataclass
class TodoRecord:
    id: int
    description: str
    is_done: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """External form consumed by the endpoint and rendering layers"""
        return {"id": self.id, "description": self.description, "isDone": self.is_done}


DEFAULT_SEED = (
    TodoRecord(1, "Buy groceries"),
    TodoRecord(2, "Finish Flask project"),
    TodoRecord(3, "Walk the dog", is_done=True),
)


def parse_identifier(raw: Any) -> int:
    """
    Turn an untyped external identifier into a typed one.

    Accepts plain ints and base-10 digit strings; anything else
    (signs, decimals, bools, empty text, zero) raises InvalidIdentifier.
    """
    if isinstance(raw, bool):
        raise InvalidIdentifier(f"Invalid todo id: {raw!r}")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip()
        if not (text.isascii() and text.isdigit()):
            raise InvalidIdentifier(f"Invalid todo id: {raw!r}")
        try:
            value = int(text)
        except ValueError:
            raise InvalidIdentifier(f"Invalid todo id: {raw[:20]!r}") from None
    else:
        raise InvalidIdentifier(f"Invalid todo id: {raw!r}")

    if value < 1:
        raise InvalidIdentifier(f"Invalid todo id: {raw!r}")
    return value


def _check_description(description: Any) -> str:
    if not isinstance(description, str) or not description.strip():
        raise InvalidInput("Description cannot be empty")
    return description


class TodoStore:
    """
    Ordered collection of TodoRecords plus an identifier counter.

    The dict below is both the list (insertion order) and the id index.
    Every operation holds the lock for its whole duration. Records handed
    out are copies, so callers only change state through the store.
    """

    def __init__(self, seed: Optional[Iterable[TodoRecord]] = None):
        self._lock = threading.RLock()
        self._todos: Dict[int, TodoRecord] = {}
        self._next_id = 1
        self.reset(seed)

    def reset(self, seed: Optional[Iterable[TodoRecord]] = None) -> None:
        """
        Drop all records and load `seed` (the default records when None).

        The counter only moves forward, so ids handed out earlier are never
        reissued.
        """
        with self._lock:
            todos: Dict[int, TodoRecord] = {}
            for record in DEFAULT_SEED if seed is None else seed:
                if record.id in todos:
                    raise ValueError(f"Duplicate seed id {record.id}")
                _check_description(record.description)
                todos[record.id] = replace(record)
            self._todos = todos
            # Ids issued before the reset stay retired
            self._next_id = max(self._next_id, max(todos, default=0) + 1)
            logger.debug("Store reset with %d records, next id %d", len(todos), self._next_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._todos)

    def list(self) -> List[TodoRecord]:
        """Snapshot of all records in insertion order"""
        with self._lock:
            return [replace(t) for t in self._todos.values()]

    def get(self, todo_id: int) -> TodoRecord:
        with self._lock:
            return replace(self._lookup(todo_id))

    def create(self, description: Any) -> TodoRecord:
        """Append a new, not-done record and return it"""
        description = _check_description(description)
        with self._lock:
            todo = TodoRecord(self._next_id, description)
            self._next_id += 1
            self._todos[todo.id] = todo
            logger.info("Created todo %d", todo.id)
            return replace(todo)

    def update_partial(self, todo_id: int, patch: Mapping[str, Any]) -> TodoRecord:
        """
        Apply only the fields present in `patch`.

        Recognised keys are "description" and "isDone". A missing key
        leaves the field as it is; a present key must carry a valid value.
        """
        if not isinstance(patch, Mapping):
            raise InvalidInput("Patch must be a mapping")
        with self._lock:
            todo = self._lookup(todo_id)

            # Validate everything first so a rejected patch changes nothing
            changes: Dict[str, Any] = {}
            if "description" in patch:
                changes["description"] = _check_description(patch["description"])
            if "isDone" in patch:
                if not isinstance(patch["isDone"], bool):
                    raise InvalidInput("isDone must be a boolean")
                changes["is_done"] = patch["isDone"]

            for field, value in changes.items():
                setattr(todo, field, value)
            if changes:
                logger.info("Updated todo %d: %s", todo_id, ", ".join(sorted(changes)))
            return replace(todo)

    def delete_by_id(self, todo_id: int) -> TodoRecord:
        """Remove exactly one record; the removed record is the confirmation"""
        with self._lock:
            todo = self._lookup(todo_id)
            del self._todos[todo.id]
            logger.info("Deleted todo %d", todo_id)
            return todo

    def _lookup(self, todo_id: int) -> TodoRecord:
        if isinstance(todo_id, bool) or not isinstance(todo_id, int):
            raise InvalidIdentifier(f"Invalid todo id: {todo_id!r}")
        todo = self._todos.get(todo_id)
        if todo is None:
            logger.debug("Lookup miss for todo %d", todo_id)
            raise NotFound(todo_id)
        return todo
