"""Tool registry and base tool class."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from types import MappingProxyType
from typing import Any

from chat_agent.decision import Decision, ToolName
from chat_agent.exceptions import ImageGenerationTimeout, ToolExecutionFailed, UnknownTool
from chat_agent.logging import get_logger

log = get_logger(__name__)


class Tool(ABC):
    """Base class for all tools."""

    name: ToolName
    description: str = ""

    @abstractmethod
    async def execute(self, **kwargs: Any) -> Any:
        """Execute the tool.

        Args:
            **kwargs: Tool-specific parameters, exactly as the model sent them

        Returns:
            Tool-specific raw result

        Raises:
            ToolError (or any exception) when the tool cannot complete
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the tool."""
        return None


class ToolRegistry:
    """Immutable mapping from tool name to tool, built once at startup."""

    def __init__(self, tools: Iterable[Tool]):
        entries: dict[ToolName, Tool] = {}
        for tool in tools:
            name = getattr(tool, "name", None)
            if not isinstance(name, ToolName):
                raise ValueError(f"Tool must have a ToolName, got {name!r}")
            if name in entries:
                raise ValueError(f"Duplicate tool registration: {name.value}")
            log.debug("Registering tool", tool=name.value)
            entries[name] = tool
        self._tools = MappingProxyType(entries)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def list_tools(self) -> list[str]:
        """List registered tool names in registration order."""
        return [name.value for name in self._tools]

    def get(self, name: ToolName | str) -> Tool:
        """Get a tool by exact name.

        Raises:
            UnknownTool if not registered
        """
        try:
            key = ToolName(name)
        except ValueError:
            raise UnknownTool(str(name))
        tool = self._tools.get(key)
        if tool is None:
            raise UnknownTool(key.value)
        return tool

    async def execute(self, decision: Decision) -> Any:
        """Execute the tool a decision selected.

        Parameters are passed through unvalidated; each tool checks its own.

        Raises:
            UnknownTool if the tool is not registered
            ImageGenerationTimeout if a tool hit the image deadline (not wrapped)
            ToolExecutionFailed if the tool fails otherwise
        """
        tool = self.get(decision.tool)
        name = decision.tool.value
        try:
            log.info("Executing tool", tool=name, args=decision.params)
            result = await tool.execute(**decision.params)
        except (ToolExecutionFailed, ImageGenerationTimeout):
            raise
        except Exception as e:
            log.error("Tool execution failed", tool=name, error=str(e))
            raise ToolExecutionFailed(name, str(e)) from e
        log.info("Tool executed", tool=name)
        return result

    async def close(self) -> None:
        """Close every registered tool."""
        for tool in self._tools.values():
            await tool.close()
