"""Image generation backends (Hugging Face inference and Gemini).

Every backend takes a text prompt and returns a base64 ``data:`` URI. Calls are
bounded by ``image.timeout``; exceeding it raises ImageGenerationTimeout,
distinct from other backend failures.
"""

import asyncio
import base64
from abc import ABC, abstractmethod

import httpx
from google import genai
from google.genai import errors, types

from chat_agent.config import GeminiImageConfig, HuggingFaceImageConfig, get_config
from chat_agent.exceptions import BackendUnavailable, ConfigurationError, ImageGenerationTimeout
from chat_agent.logging import get_logger

log = get_logger(__name__)


class ImageBackend(ABC):
    """Prompt in, image data URI out."""

    name: str = ""

    def __init__(self, timeout: float | None = None):
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        if self._timeout is not None:
            return float(self._timeout)
        return float(get_config().image.timeout)

    @abstractmethod
    async def _generate(self, prompt: str) -> str:
        pass

    async def generate(self, prompt: str) -> str:
        """Generate an image, enforcing the configured deadline.

        Raises:
            ConfigurationError if the backend key is missing (no call is made)
            ImageGenerationTimeout if the deadline passes
            BackendUnavailable for any other backend failure
        """
        deadline = self.timeout
        log.info("Generating image", backend=self.name, prompt_chars=len(prompt))
        try:
            return await asyncio.wait_for(self._generate(prompt), timeout=deadline)
        except asyncio.TimeoutError:
            log.warning("Image generation timed out", backend=self.name, timeout=deadline)
            raise ImageGenerationTimeout(deadline)

    async def close(self) -> None:
        return None


class HuggingFaceImageBackend(ImageBackend):
    """Stable Diffusion via the Hugging Face inference router."""

    name = "huggingface"

    def __init__(
        self,
        settings: HuggingFaceImageConfig | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(timeout=timeout)
        self._settings = settings
        self.client = client or httpx.AsyncClient(follow_redirects=True)

    @property
    def settings(self) -> HuggingFaceImageConfig:
        return self._settings or get_config().image.huggingface

    def require_api_key(self) -> str:
        api_key = self.settings.resolved_api_key()
        if not api_key:
            raise ConfigurationError("API key configuration error")
        return api_key

    def _request_body(self, prompt: str) -> dict:
        s = self.settings
        return {
            "inputs": prompt,
            "parameters": {
                "num_inference_steps": s.num_inference_steps,
                "guidance_scale": s.guidance_scale,
                "negative_prompt": s.negative_prompt,
                "width": s.width,
                "height": s.height,
                "num_images_per_prompt": 1,
                "output_type": s.output_type,
                "quality": s.quality,
            },
        }

    async def _generate(self, prompt: str) -> str:
        api_key = self.require_api_key()
        try:
            response = await self.client.post(
                self.settings.url,
                json=self._request_body(prompt),
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                # The outer wait_for owns the deadline.
                timeout=None,
            )
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"Hugging Face request failed: {e}")

        if not response.is_success:
            log.error("Hugging Face API error", status=response.status_code, body=response.text[:500])
            raise BackendUnavailable(
                f"API Error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        mime = response.headers.get("content-type", "").split(";")[0].strip()
        if not mime.startswith("image/"):
            mime = f"image/{self.settings.output_type}"
        encoded = base64.b64encode(response.content).decode("ascii")
        return f"data:{mime};base64,{encoded}"

    async def close(self) -> None:
        await self.client.aclose()


class GeminiImageBackend(ImageBackend):
    """Native image output from a Gemini model."""

    name = "gemini"

    def __init__(
        self,
        settings: GeminiImageConfig | None = None,
        timeout: float | None = None,
        client: genai.Client | None = None,
    ):
        super().__init__(timeout=timeout)
        self._settings = settings
        self._client = client

    @property
    def settings(self) -> GeminiImageConfig:
        return self._settings or get_config().image.gemini

    def _get_client(self) -> genai.Client:
        if self._client is None:
            api_key = self.settings.resolved_api_key()
            if not api_key:
                raise ConfigurationError("GEMINI_API_KEY is not configured")
            self._client = genai.Client(api_key=api_key)
        return self._client

    async def _generate(self, prompt: str) -> str:
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self.settings.model,
                contents=prompt,
                config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
            )
        except (errors.APIError, httpx.HTTPError) as e:
            raise BackendUnavailable(f"Gemini request failed: {e}")

        candidates = getattr(response, "candidates", None) or []
        content = getattr(candidates[0], "content", None) if candidates else None
        parts = getattr(content, "parts", None) or []
        if not parts:
            log.error("Invalid Gemini response structure")
            raise BackendUnavailable("Invalid response from Gemini API")

        image_part = next((part for part in parts if getattr(part, "inline_data", None)), None)
        if image_part is None:
            log.error("No image part found in Gemini response", part_count=len(parts))
            raise BackendUnavailable("No image was generated")

        inline = image_part.inline_data
        data = inline.data
        if isinstance(data, (bytes, bytearray)):
            data = base64.b64encode(data).decode("ascii")
        mime = getattr(inline, "mime_type", None) or "image/png"
        return f"data:{mime};base64,{data}"

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aio.aclose()
            self._client = None


def create_image_backend(provider: str) -> ImageBackend:
    """Create an image backend by provider name."""
    if provider == "huggingface":
        return HuggingFaceImageBackend()
    if provider == "gemini":
        return GeminiImageBackend()
    raise ValueError(f"Image provider '{provider}' not supported. Use 'gemini' or 'huggingface'.")
