import asyncio
import json
from typing import Any

import httpx
import pytest
from aiohttp.test_utils import TestClient, TestServer

from chat_agent.agent import CHAT_FAILURE_MESSAGE, ToolAgent
from chat_agent.config import Config, HuggingFaceImageConfig
from chat_agent.decision import ToolName
from chat_agent.exceptions import BackendUnavailable, ToolError
from chat_agent.imaging import HuggingFaceImageBackend, ImageBackend
from chat_agent.llm import Completion, LLMProvider
from chat_agent.tools.image import ImageTool
from chat_agent.tools.registry import Tool, ToolRegistry
from chat_agent.web_server import WebServer


class _FakeProvider(LLMProvider):
    def __init__(self, text: str = "", error: Exception | None = None):
        self.model = "mistral"
        self.text = text
        self.error = error
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> Completion:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return Completion(text=self.text, model=self.model, load_duration=1_000)

    async def close(self) -> None:
        return None


class _FakeQrTool(Tool):
    name = ToolName.GENERATE_UPI_QR
    description = "Generate a UPI QR code for payment"

    def __init__(self, error: Exception | None = None):
        self.error = error

    async def execute(self, **kwargs: Any) -> dict[str, str]:
        if self.error is not None:
            raise self.error
        return {"qrCode": "data:image/png;base64,QR"}


class _FakeImageBackend(ImageBackend):
    name = "fake"

    def __init__(self, image: str = "data:image/jpeg;base64,AAAA", error: Exception | None = None,
                 delay: float = 0.0, timeout: float = 30.0):
        super().__init__(timeout=timeout)
        self.image = image
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []

    async def _generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.image


class _RecordingHttpClient:
    def __init__(self):
        self.calls: list[str] = []

    async def post(self, url: str, **kwargs):
        self.calls.append(url)
        return httpx.Response(200, content=b"img", headers={"content-type": "image/jpeg"})

    async def aclose(self) -> None:
        return None


def _decision(tool: str, params: dict, message: str = "Done") -> str:
    return json.dumps({
        "tool": tool,
        "params": params,
        "explanation": f"Picked {tool}",
        "agentMessage": message,
    })


def _server(provider: LLMProvider, tool: Tool | None = None,
            image_backend: ImageBackend | None = None) -> WebServer:
    registry = ToolRegistry([tool or _FakeQrTool()])
    agent = ToolAgent(provider=provider, registry=registry)
    return WebServer(Config(), agent, image_backend or _FakeImageBackend())


async def _post(server: WebServer, path: str, payload: Any) -> tuple[int, Any]:
    async with TestClient(TestServer(server.create_app())) as client:
        if isinstance(payload, (bytes, str)):
            resp = await client.post(path, data=payload, headers={"Content-Type": "application/json"})
        else:
            resp = await client.post(path, json=payload)
        return resp.status, await resp.json()


# ── /api/agent ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_agent_requires_prompt():
    provider = _FakeProvider("hello")

    status, body = await _post(_server(provider), "/api/agent", {"useDeepSearch": True})

    assert status == 400
    assert body == {"message": "Prompt is required"}
    assert provider.prompts == []


@pytest.mark.asyncio
async def test_agent_rejects_blank_prompt():
    status, body = await _post(_server(_FakeProvider("hello")), "/api/agent", {"prompt": "   "})

    assert status == 400
    assert body["message"] == "Prompt is required"


@pytest.mark.asyncio
async def test_agent_rejects_invalid_json():
    status, body = await _post(_server(_FakeProvider("hello")), "/api/agent", "{not json")

    assert status == 400
    assert body["message"] == "Invalid JSON body"


@pytest.mark.asyncio
async def test_agent_plain_chat_by_default():
    provider = _FakeProvider("Hi there! How can I help?")

    status, body = await _post(_server(provider), "/api/agent", {"prompt": "hello"})

    assert status == 200
    assert body == {
        "agentMessage": "Hi there! How can I help?",
        "explanation": "Simple chat response using mistral model",
    }
    assert provider.prompts == ["hello"]


@pytest.mark.asyncio
async def test_agent_plain_chat_degrades_on_backend_failure():
    provider = _FakeProvider(error=BackendUnavailable("connection refused"))

    status, body = await _post(_server(provider), "/api/agent", {"prompt": "hello"})

    assert status == 200
    assert body["agentMessage"] == CHAT_FAILURE_MESSAGE
    assert body["explanation"] == "Error connecting to Ollama API"


@pytest.mark.asyncio
async def test_agent_deep_search_returns_envelope():
    provider = _FakeProvider(
        _decision("generate_upi_qr", {"upi_id": "shop@upi", "amount": 250}, "Scan to pay"),
    )

    status, body = await _post(
        _server(provider), "/api/agent", {"prompt": "qr for 250 to shop@upi", "useDeepSearch": True},
    )

    assert status == 200
    assert body["tool"] == "generate_upi_qr"
    assert body["explanation"] == "Picked generate_upi_qr"
    assert body["agentMessage"]["type"] == "qr-code"
    assert body["agentMessage"]["data"]["qrCode"] == "data:image/png;base64,QR"
    assert body["result"] == {"qrCode": "data:image/png;base64,QR"}
    assert body["total_duration"] >= 0
    assert body["load_duration"] == 1_000
    assert "User: qr for 250 to shop@upi" in provider.prompts[0]


@pytest.mark.asyncio
async def test_agent_deep_search_backend_failure_is_503():
    provider = _FakeProvider(error=BackendUnavailable("connection refused"))

    status, body = await _post(
        _server(provider), "/api/agent", {"prompt": "weather in Pune", "useDeepSearch": True},
    )

    assert status == 503
    assert body["error"] == "backend_unavailable"
    assert body["message"] == CHAT_FAILURE_MESSAGE


@pytest.mark.asyncio
async def test_agent_malformed_decision_is_502():
    status, body = await _post(
        _server(_FakeProvider("I think you want the weather")),
        "/api/agent",
        {"prompt": "weather in Pune", "useDeepSearch": True},
    )

    assert status == 502
    assert body["error"] == "malformed_decision"


@pytest.mark.asyncio
async def test_agent_unknown_tool_is_502():
    status, body = await _post(
        _server(_FakeProvider(_decision("book_flight", {}))),
        "/api/agent",
        {"prompt": "book a flight", "useDeepSearch": True},
    )

    assert status == 502
    assert body["error"] == "unknown_tool"
    assert body["message"] == "Invalid tool selected: book_flight"


@pytest.mark.asyncio
async def test_agent_unregistered_known_tool_is_502():
    status, body = await _post(
        _server(_FakeProvider(_decision("get_todos", {}))),
        "/api/agent",
        {"prompt": "list todos", "useDeepSearch": True},
    )

    assert status == 502
    assert body["error"] == "unknown_tool"


@pytest.mark.asyncio
async def test_agent_tool_failure_is_500():
    provider = _FakeProvider(_decision("generate_upi_qr", {"upi_id": "shop@upi"}))
    tool = _FakeQrTool(error=ToolError("amount is required"))

    status, body = await _post(
        _server(provider, tool), "/api/agent", {"prompt": "qr please", "useDeepSearch": True},
    )

    assert status == 500
    assert body["error"] == "tool_execution_failed"
    assert "amount is required" in body["message"]


@pytest.mark.asyncio
async def test_agent_image_timeout_is_504():
    provider = _FakeProvider(_decision("generate_image", {"prompt": "a slow sunset"}))
    tool = ImageTool(_FakeImageBackend(delay=1.0, timeout=0.05))

    status, body = await _post(
        _server(provider, tool), "/api/agent", {"prompt": "draw a sunset", "useDeepSearch": True},
    )

    assert status == 504
    assert body["error"] == "timeout"
    assert body["message"] == "Request timed out after 0.05 seconds"


@pytest.mark.asyncio
async def test_agent_unexpected_error_is_generic_500():
    provider = _FakeProvider(error=RuntimeError("boom"))

    status, body = await _post(
        _server(provider), "/api/agent", {"prompt": "anything", "useDeepSearch": True},
    )

    assert status == 500
    assert body == {"message": "Internal server error"}


# ── /api/generate-image ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_generate_image_requires_prompt():
    backend = _FakeImageBackend()

    status, body = await _post(
        _server(_FakeProvider(), image_backend=backend), "/api/generate-image", {"prompt": ""},
    )

    assert status == 400
    assert body == {"error": "Prompt is required"}
    assert backend.prompts == []


@pytest.mark.asyncio
async def test_generate_image_success():
    backend = _FakeImageBackend(image="data:image/jpeg;base64,SU1H")

    status, body = await _post(
        _server(_FakeProvider(), image_backend=backend),
        "/api/generate-image",
        {"prompt": "a lighthouse at dusk"},
    )

    assert status == 200
    assert body == {"success": True, "image": "data:image/jpeg;base64,SU1H"}
    assert backend.prompts == ["a lighthouse at dusk"]


@pytest.mark.asyncio
async def test_generate_image_without_credentials_makes_no_call(monkeypatch):
    monkeypatch.delenv("HUGGINGFACE_API_KEY", raising=False)
    http = _RecordingHttpClient()
    backend = HuggingFaceImageBackend(settings=HuggingFaceImageConfig(api_key=""), client=http)

    status, body = await _post(
        _server(_FakeProvider(), image_backend=backend),
        "/api/generate-image",
        {"prompt": "a lighthouse"},
    )

    assert status == 500
    assert body == {"error": "API key configuration error"}
    assert http.calls == []


@pytest.mark.asyncio
async def test_generate_image_timeout_is_504():
    backend = _FakeImageBackend(delay=1.0, timeout=0.05)

    status, body = await _post(
        _server(_FakeProvider(), image_backend=backend), "/api/generate-image", {"prompt": "slow"},
    )

    assert status == 504
    assert body["error"].startswith("Request timed out after")


@pytest.mark.asyncio
async def test_generate_image_passes_upstream_status_through():
    backend = _FakeImageBackend(
        error=BackendUnavailable("API Error: 429 - rate limited", status_code=429),
    )

    status, body = await _post(
        _server(_FakeProvider(), image_backend=backend), "/api/generate-image", {"prompt": "cat"},
    )

    assert status == 429
    assert body == {"error": "API Error: 429 - rate limited"}


@pytest.mark.asyncio
async def test_generate_image_network_failure_is_500():
    backend = _FakeImageBackend(error=BackendUnavailable("Hugging Face request failed: reset"))

    status, body = await _post(
        _server(_FakeProvider(), image_backend=backend), "/api/generate-image", {"prompt": "cat"},
    )

    assert status == 500
    assert "reset" in body["error"]


# ── /api/tools ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_tools_returns_registered_tools():
    server = _server(_FakeProvider())

    async with TestClient(TestServer(server.create_app())) as client:
        resp = await client.get("/api/tools")
        body = await resp.json()

    assert resp.status == 200
    assert body == [
        {"name": "generate_upi_qr", "description": "Generate a UPI QR code for payment"},
    ]
