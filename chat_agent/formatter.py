"""Turn raw tool results into the message shown to the user."""

import math
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel

from chat_agent.decision import Decision, ToolName


class RichMessage(BaseModel):
    """Structured message the UI renders as a widget instead of text."""

    type: Literal["qr-code", "generated-image"]
    loading: bool = True
    data: dict[str, Any]


FormattedMessage = str | RichMessage


def _field(record: Any, name: str, default: Any = None) -> Any:
    """Read a field from either a mapping or an object."""
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 going up."""
    return int(math.floor(float(value) + 0.5))


def _number_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_todos(decision: Decision, result: Any) -> FormattedMessage:
    todos = list(result or [])
    if not todos:
        return "You have no tasks at the moment"
    task_list = ", ".join(
        f"[{index}] {_field(todo, 'title', '')}" for index, todo in enumerate(todos, 1)
    )
    return f"You have {len(todos)} task(s) for now: {task_list}"


def _format_deleted(decision: Decision, result: Any) -> FormattedMessage:
    if result:
        return f"Task '{_field(result, 'title', '')}' has been deleted"
    return "No matching task found to delete"


def _format_weather(decision: Decision, result: Any) -> FormattedMessage:
    return "\n".join(
        f"{_field(reading, 'city')}: {_field(reading, 'description')} with temperature of "
        f"{round_half_up(_field(reading, 'temperature'))}°C and "
        f"{_number_text(_field(reading, 'humidity'))}% humidity"
        for reading in (result or [])
    )


def _format_upi_qr(decision: Decision, result: Any) -> FormattedMessage:
    return RichMessage(
        type="qr-code",
        data={
            "qrCode": _field(result, "qrCode"),
            "amount": decision.params.get("amount"),
        },
    )


def _format_image(decision: Decision, result: Any) -> FormattedMessage:
    return RichMessage(
        type="generated-image",
        data={
            "image": _field(result, "image"),
            "prompt": decision.params.get("prompt"),
        },
    )


def _agent_message(decision: Decision, result: Any) -> FormattedMessage:
    return decision.agent_message


_FORMATTERS: dict[ToolName, Callable[[Decision, Any], FormattedMessage]] = {
    ToolName.GET_WEATHER: _format_weather,
    ToolName.ADD_TODO: _agent_message,
    ToolName.GET_TODOS: _format_todos,
    ToolName.DELETE_TODO: _format_deleted,
    ToolName.GENERATE_UPI_QR: _format_upi_qr,
    ToolName.GENERATE_IMAGE: _format_image,
}

_unhandled = set(ToolName) - set(_FORMATTERS)
if _unhandled:
    raise RuntimeError(f"No formatter for tools: {sorted(name.value for name in _unhandled)}")


def format_message(decision: Decision, result: Any) -> FormattedMessage:
    """Format a tool result for display."""
    return _FORMATTERS[decision.tool](decision, result)
