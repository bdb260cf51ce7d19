"""Tools package for Chat Agent."""

from chat_agent.todo_store import TodoStore
from chat_agent.tools.image import ImageTool
from chat_agent.tools.registry import Tool, ToolRegistry
from chat_agent.tools.todo import AddTodoTool, DeleteTodoTool, GetTodosTool
from chat_agent.tools.upi_qr import UpiQrTool
from chat_agent.tools.weather import WeatherTool


def build_default_registry(todo_store: TodoStore | None = None) -> ToolRegistry:
    """Build the fixed tool set in prompt order."""
    return ToolRegistry([
        WeatherTool(),
        AddTodoTool(todo_store),
        GetTodosTool(todo_store),
        DeleteTodoTool(todo_store),
        UpiQrTool(),
        ImageTool(),
    ])


__all__ = [
    "Tool",
    "ToolRegistry",
    "build_default_registry",
    "WeatherTool",
    "AddTodoTool",
    "GetTodosTool",
    "DeleteTodoTool",
    "UpiQrTool",
    "ImageTool",
]
