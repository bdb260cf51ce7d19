"""Single-step tool-dispatch agent and plain chat mode."""

import time
from dataclasses import asdict, is_dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chat_agent.decision import parse_decision
from chat_agent.exceptions import BackendUnavailable, ValidationError
from chat_agent.formatter import FormattedMessage, format_message
from chat_agent.llm import LLMProvider
from chat_agent.logging import get_logger
from chat_agent.prompt import compose_prompt
from chat_agent.tools.registry import ToolRegistry

log = get_logger(__name__)

CHAT_FAILURE_MESSAGE = (
    "I apologize, but I'm having trouble connecting to the AI model. Please try again later."
)


def to_payload(value: Any) -> Any:
    """Convert tool results into JSON-ready values."""
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, dict):
        return {key: to_payload(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(item) for item in value]
    return value


class ResponseEnvelope(BaseModel):
    """Final payload for one tool-dispatch request."""

    model_config = ConfigDict(populate_by_name=True)

    tool: str
    explanation: str
    agent_message: FormattedMessage = Field(alias="agentMessage")
    result: Any = None
    total_duration: int
    load_duration: int

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def build_envelope(
    tool: str,
    explanation: str,
    message: FormattedMessage,
    result: Any,
    total_duration: int,
    load_duration: int,
) -> ResponseEnvelope:
    """Assemble the response envelope."""
    return ResponseEnvelope(
        tool=tool,
        explanation=explanation,
        agent_message=message,
        result=to_payload(result),
        total_duration=total_duration,
        load_duration=load_duration,
    )


class ToolAgent:
    """Compose, complete, parse, execute, format: one pass per prompt."""

    def __init__(self, provider: LLMProvider, registry: ToolRegistry):
        self.provider = provider
        self.registry = registry

    @staticmethod
    def _require_prompt(prompt: Any) -> str:
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError("Prompt is required")
        return prompt

    async def process_prompt(self, prompt: str) -> ResponseEnvelope:
        """Run the tool-dispatch pipeline for one prompt.

        Raises:
            ValidationError, BackendUnavailable, MalformedDecision,
            UnknownTool or ToolExecutionFailed; nothing is retried.
        """
        started = time.perf_counter_ns()
        prompt = self._require_prompt(prompt)

        composed = compose_prompt(self.registry, prompt)
        log.debug("Sending tool-selection prompt", model=self.provider.model, chars=len(composed))
        completion = await self.provider.generate(composed)

        decision = parse_decision(completion.text)
        result = await self.registry.execute(decision)
        message = format_message(decision, result)

        total_duration = time.perf_counter_ns() - started
        envelope = build_envelope(
            tool=decision.tool.value,
            explanation=decision.explanation,
            message=message,
            result=result,
            total_duration=total_duration,
            load_duration=completion.load_duration,
        )
        log.info(
            "Prompt processed",
            tool=envelope.tool,
            total_duration=total_duration,
            load_duration=completion.load_duration,
        )
        return envelope

    async def chat(self, prompt: str) -> dict[str, str]:
        """Plain chat reply; backend failures degrade to a canned message."""
        prompt = self._require_prompt(prompt)
        try:
            completion = await self.provider.generate(prompt)
        except BackendUnavailable as e:
            log.error("Error calling completion backend", error=str(e))
            return {
                "agentMessage": CHAT_FAILURE_MESSAGE,
                "explanation": "Error connecting to Ollama API",
            }
        return {
            "agentMessage": completion.text,
            "explanation": f"Simple chat response using {self.provider.model} model",
        }

    async def close(self) -> None:
        await self.provider.close()
        await self.registry.close()
