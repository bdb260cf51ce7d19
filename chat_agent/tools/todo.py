"""Todo tools backed by the persistent todo store."""

from typing import Any

from chat_agent.decision import ToolName
from chat_agent.exceptions import ToolError
from chat_agent.logging import get_logger
from chat_agent.todo_store import TodoItem, TodoStore, get_todo_store
from chat_agent.tools.registry import Tool

log = get_logger(__name__)


class _TodoTool(Tool):
    """Shared store wiring for the todo tools."""

    def __init__(self, store: TodoStore | None = None):
        self._store = store

    @property
    def store(self) -> TodoStore:
        return self._store or get_todo_store()


class AddTodoTool(_TodoTool):
    """Create a todo."""

    name = ToolName.ADD_TODO
    description = "Add a new todo task"

    async def execute(self, title: str | None = None, **kwargs: Any) -> TodoItem:
        cleaned = str(title or "").strip()
        if not cleaned:
            raise ToolError("'title' is required to add a task")
        return await self.store.create(cleaned)


class GetTodosTool(_TodoTool):
    """List todos, newest first."""

    name = ToolName.GET_TODOS
    description = "Get all todo tasks, optionally filtered by title"

    async def execute(self, search: str | None = None, **kwargs: Any) -> list[TodoItem]:
        return await self.store.find(str(search).strip() if search else None)


class DeleteTodoTool(_TodoTool):
    """Delete one todo by id or by title."""

    name = ToolName.DELETE_TODO
    description = "Delete a todo task by title or ID"

    async def execute(
        self,
        title: str | None = None,
        id: str | None = None,
        **kwargs: Any,
    ) -> TodoItem | None:
        if id:
            return await self.store.delete_by_id(str(id))
        if title:
            return await self.store.delete_by_title(str(title))
        raise ToolError("Either title or id must be provided")
