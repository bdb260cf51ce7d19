"""Image generation tool."""

from typing import Any

from chat_agent.config import get_config
from chat_agent.decision import ToolName
from chat_agent.exceptions import ChatAgentError, ImageGenerationTimeout, ToolError
from chat_agent.imaging import ImageBackend, create_image_backend
from chat_agent.logging import get_logger
from chat_agent.tools.registry import Tool

log = get_logger(__name__)


class ImageTool(Tool):
    """Generate an image based on a text description."""

    name = ToolName.GENERATE_IMAGE
    description = "Generate an image based on a text description"

    def __init__(self, backend: ImageBackend | None = None):
        self._backend = backend

    @property
    def backend(self) -> ImageBackend:
        if self._backend is None:
            self._backend = create_image_backend(get_config().image.tool_provider)
        return self._backend

    async def execute(self, prompt: str | None = None, **kwargs: Any) -> dict[str, str]:
        text = str(prompt or "").strip()
        if not text:
            raise ToolError("Image generation failed: 'prompt' is required")
        try:
            image = await self.backend.generate(text)
        except ImageGenerationTimeout:
            log.error("Image generation timed out in generate_image tool")
            raise
        except ChatAgentError as e:
            log.error("Error in generate_image tool", error=str(e))
            raise ToolError(f"Image generation failed: {e}") from e
        return {"image": image}

    async def close(self) -> None:
        if self._backend is not None:
            await self._backend.close()
