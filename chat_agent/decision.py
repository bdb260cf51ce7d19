"""Tool-selection decisions parsed from model output."""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from chat_agent.exceptions import MalformedDecision, UnknownTool
from chat_agent.logging import get_logger

log = get_logger(__name__)


class ToolName(str, Enum):
    """Closed set of tools the model may select."""

    GET_WEATHER = "get_weather"
    ADD_TODO = "add_todo"
    GET_TODOS = "get_todos"
    DELETE_TODO = "delete_todo"
    GENERATE_UPI_QR = "generate_upi_qr"
    GENERATE_IMAGE = "generate_image"


_DECISION_FIELDS = ("tool", "params", "explanation", "agentMessage")


class Decision(BaseModel):
    """One tool-selection decision produced by the model."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tool: ToolName
    params: dict[str, Any] = Field(default_factory=dict)
    explanation: str
    agent_message: str = Field(alias="agentMessage")


def parse_decision(text: str) -> Decision:
    """Parse raw completion text into a Decision.

    The text must be exactly one JSON object carrying ``tool``, ``params``,
    ``explanation`` and ``agentMessage``. No repair is attempted.

    Raises:
        MalformedDecision: not JSON, not an object, or fields missing/mistyped
        UnknownTool: ``tool`` is a string outside the ToolName set
    """
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedDecision(f"Model output is not valid JSON: {e}", raw=str(text))

    if not isinstance(payload, dict):
        raise MalformedDecision("Model output is not a JSON object", raw=text)

    missing = [name for name in _DECISION_FIELDS if name not in payload]
    if missing:
        raise MalformedDecision(
            f"Model output is missing required field(s): {', '.join(missing)}",
            raw=text,
        )

    tool = payload["tool"]
    if not isinstance(tool, str):
        raise MalformedDecision("Field 'tool' must be a string", raw=text)
    if tool not in {member.value for member in ToolName}:
        raise UnknownTool(tool)

    try:
        decision = Decision.model_validate(payload)
    except PydanticValidationError as e:
        raise MalformedDecision(f"Model output has an invalid shape: {e}", raw=text)

    log.info("Decision parsed", tool=decision.tool.value, params=decision.params)
    return decision
