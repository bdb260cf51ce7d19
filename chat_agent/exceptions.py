"""Custom exceptions for Chat Agent."""


class ChatAgentError(Exception):
    """Base exception for Chat Agent."""

    pass


class ConfigurationError(ChatAgentError):
    """Configuration-related errors (e.g. a missing API key)."""

    pass


class ValidationError(ChatAgentError):
    """A required request field is missing or invalid."""

    pass


class BackendUnavailable(ChatAgentError):
    """Completion or image backend unreachable or returned an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ImageGenerationTimeout(BackendUnavailable):
    """Image generation exceeded its deadline."""

    def __init__(self, seconds: float):
        label = int(seconds) if float(seconds).is_integer() else seconds
        super().__init__(f"Request timed out after {label} seconds", status_code=504)
        self.seconds = seconds


class MalformedDecision(ChatAgentError):
    """Model output is not a JSON object with the expected decision fields."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class UnknownTool(ChatAgentError):
    """Decision names a tool that is not registered."""

    def __init__(self, tool_name: str):
        super().__init__(f"Invalid tool selected: {tool_name}")
        self.tool_name = tool_name


class ToolError(ChatAgentError):
    """Raised by a tool when its own precondition or downstream call fails."""

    pass


class ToolExecutionFailed(ToolError):
    """Tool execution failed; wraps the underlying message."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name
        self.message = message
