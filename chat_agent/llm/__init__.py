"""Ollama provider - direct HTTP calls to the Ollama generate API."""

import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from chat_agent.exceptions import BackendUnavailable
from chat_agent.logging import get_logger

log = get_logger(__name__)


OLLAMA_NATIVE_BASE_URL = "http://localhost:11434"


@dataclass
class Completion:
    """Raw completion text plus the time spent waiting for it."""

    text: str
    model: str = ""
    load_duration: int = 0  # nanoseconds


class LLMProvider(ABC):
    """Abstract base class for completion backends."""

    model: str = ""

    @abstractmethod
    async def generate(self, prompt: str) -> Completion:
        """Send one composed prompt and return the completion.

        Raises:
            BackendUnavailable if the backend is unreachable or errors
        """
        pass

    async def close(self) -> None:
        return None


class OllamaProvider(LLMProvider):
    """Direct Ollama API provider."""

    def __init__(
        self,
        model: str = "mistral",
        base_url: str = OLLAMA_NATIVE_BASE_URL,
        api_key: str | None = None,
        timeout: float = 120.0,
    ):
        """Initialize Ollama provider.

        Args:
            model: Ollama model name (e.g., 'mistral', 'llama3.2')
            base_url: Ollama API base URL
            api_key: Optional API key (Ollama usually doesn't need one locally)
            timeout: HTTP timeout in seconds
        """
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

        self.client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
        )

    async def generate(self, prompt: str) -> Completion:
        """Generate a non-streaming completion."""
        url = f"{self.base_url}/api/generate"
        body = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        started = time.perf_counter_ns()
        try:
            log.debug("Calling Ollama", model=self.model, url=url, prompt_chars=len(prompt))

            response = await self.client.post(url, json=body, headers=headers)
            load_duration = time.perf_counter_ns() - started

            log.debug("Ollama response status", status=response.status_code)

            if not response.is_success:
                raise BackendUnavailable(
                    f"Ollama API error {response.status_code}: {response.text}",
                    status_code=response.status_code,
                )

            data = response.json()
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"Ollama API error: {e}")
        except json.JSONDecodeError as e:
            raise BackendUnavailable(f"Ollama response decode error: {e}")

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise BackendUnavailable("Ollama response is missing the 'response' field")

        log.info("Ollama completion received", model=self.model, load_duration=load_duration)
        return Completion(text=text, model=self.model, load_duration=load_duration)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


def create_provider(
    provider: str = "ollama",
    model: str = "mistral",
    api_key: str | None = None,
    base_url: str | None = None,
    timeout: float = 120.0,
) -> LLMProvider:
    """Create a completion provider.

    Args:
        provider: Provider name (only 'ollama' is supported)
        model: Model name
        api_key: Optional API key
        base_url: Optional base URL
        timeout: HTTP timeout in seconds

    Returns:
        Configured LLMProvider instance
    """
    if provider == "ollama":
        return OllamaProvider(
            model=model,
            base_url=base_url or OLLAMA_NATIVE_BASE_URL,
            api_key=api_key,
            timeout=timeout,
        )
    raise ValueError(f"Provider '{provider}' not supported. Use 'ollama'.")
