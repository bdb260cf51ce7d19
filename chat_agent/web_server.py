"""HTTP API server for Chat Agent."""

import asyncio
import json
import signal
from typing import Any

from aiohttp import web

from chat_agent.agent import CHAT_FAILURE_MESSAGE, ToolAgent
from chat_agent.config import Config, get_config
from chat_agent.exceptions import (
    BackendUnavailable,
    ConfigurationError,
    ImageGenerationTimeout,
    MalformedDecision,
    ToolExecutionFailed,
    UnknownTool,
    ValidationError,
)
from chat_agent.imaging import HuggingFaceImageBackend, ImageBackend
from chat_agent.llm import create_provider
from chat_agent.logging import get_logger
from chat_agent.todo_store import TodoStore
from chat_agent.tools import build_default_registry

log = get_logger(__name__)

# (exception type, status, user-facing message or None to use str(exc), error kind)
_AGENT_ERROR_MAP: list[tuple[type[Exception], int, str | None, str]] = [
    (ValidationError, 400, None, "validation_error"),
    (ImageGenerationTimeout, 504, None, "timeout"),
    (BackendUnavailable, 503, CHAT_FAILURE_MESSAGE, "backend_unavailable"),
    (MalformedDecision, 502, "The AI model returned a response I could not understand.", "malformed_decision"),
    (UnknownTool, 502, None, "unknown_tool"),
    (ToolExecutionFailed, 500, None, "tool_execution_failed"),
    (ConfigurationError, 500, None, "configuration_error"),
]


class WebServer:
    """Chat Agent HTTP API."""

    def __init__(
        self,
        config: Config,
        agent: ToolAgent,
        image_backend: ImageBackend | None = None,
        todo_store: TodoStore | None = None,
    ):
        self.config = config
        self.agent = agent
        self.image_backend = image_backend or HuggingFaceImageBackend()
        self.todo_store = todo_store

    @staticmethod
    async def _read_json(request: web.Request) -> dict[str, Any]:
        try:
            data = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError("Invalid JSON body")
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON body")
        return data

    @staticmethod
    def _agent_error_response(exc: Exception) -> web.Response:
        for exc_type, status, message, kind in _AGENT_ERROR_MAP:
            if isinstance(exc, exc_type):
                return web.json_response(
                    {"message": message or str(exc), "error": kind, "detail": str(exc)},
                    status=status,
                )
        return web.json_response({"message": "Internal server error"}, status=500)

    # ── Agent endpoint ───────────────────────────────────────────────

    async def agent_handler(self, request: web.Request) -> web.Response:
        """POST /api/agent: plain chat or tool dispatch."""
        try:
            data = await self._read_json(request)
            prompt = data.get("prompt")
            if not prompt:
                return web.json_response({"message": "Prompt is required"}, status=400)

            use_deep_search = bool(data.get("useDeepSearch", False))
            log.info("Agent request", path=request.path, deep_search=use_deep_search)

            if not use_deep_search:
                return web.json_response(await self.agent.chat(prompt))

            envelope = await self.agent.process_prompt(prompt)
            return web.json_response(envelope.to_json())
        except ValidationError as e:
            return web.json_response({"message": str(e)}, status=400)
        except Exception as e:
            log.error("Error processing request", error=str(e), error_type=type(e).__name__)
            return self._agent_error_response(e)

    # ── Image endpoint ───────────────────────────────────────────────

    async def generate_image_handler(self, request: web.Request) -> web.Response:
        """POST /api/generate-image: direct text-to-image."""
        log.info("Image request", path=request.path, backend=self.image_backend.name)
        try:
            data = await self._read_json(request)
        except ValidationError as e:
            return web.json_response({"error": str(e)}, status=400)

        prompt = str(data.get("prompt") or "").strip()
        if not prompt:
            return web.json_response({"error": "Prompt is required"}, status=400)

        backend = self.image_backend
        require_key = getattr(backend, "require_api_key", None)
        try:
            if callable(require_key):
                require_key()
            image = await backend.generate(prompt)
        except ConfigurationError as e:
            log.error("Image backend is not configured", backend=backend.name)
            return web.json_response({"error": str(e)}, status=500)
        except ImageGenerationTimeout as e:
            return web.json_response({"error": str(e)}, status=504)
        except BackendUnavailable as e:
            status = e.status_code if e.status_code and e.status_code >= 400 else 500
            return web.json_response({"error": str(e)}, status=status)
        except Exception as e:
            log.error("Error generating image", error=str(e))
            return web.json_response({"error": str(e) or "Failed to generate image"}, status=500)

        return web.json_response({"success": True, "image": image})

    # ── Registry view ────────────────────────────────────────────────

    async def list_tools_api(self, request: web.Request) -> web.Response:
        """GET /api/tools: registered tool names and descriptions."""
        return web.json_response([
            {"name": tool.name.value, "description": tool.description}
            for tool in self.agent.registry
        ])

    async def _on_cleanup(self, app: web.Application) -> None:
        await self.agent.close()
        await self.image_backend.close()
        if self.todo_store is not None:
            await self.todo_store.close()

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/agent", self.agent_handler)
        app.router.add_post("/api/generate-image", self.generate_image_handler)
        app.router.add_get("/api/tools", self.list_tools_api)
        app.on_cleanup.append(self._on_cleanup)
        return app


def build_server(config: Config) -> WebServer:
    """Wire provider, todo store, tool registry and image backend from config."""
    provider = create_provider(
        provider=config.model.provider,
        model=config.model.model,
        api_key=config.model.api_key or None,
        base_url=config.model.base_url or None,
        timeout=config.model.timeout,
    )
    todo_store = TodoStore(config.todo.path)
    registry = build_default_registry(todo_store)
    agent = ToolAgent(provider=provider, registry=registry)
    return WebServer(config, agent, HuggingFaceImageBackend(), todo_store)


async def _run_server(config: Config) -> None:
    """Start the web server and block until a stop signal."""
    server = build_server(config)
    loop = asyncio.get_running_loop()

    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        if not stop_event.is_set():
            stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except (NotImplementedError, OSError):
            # Windows doesn't support add_signal_handler for SIGTERM.
            pass

    app = server.create_app()
    runner = web.AppRunner(app)
    await runner.setup()

    host = config.web.host
    port = config.web.port
    site = web.TCPSite(runner, host, port)
    await site.start()

    log.info("Server started", host=host, port=port, model=config.model.model)
    print(f"\n  Chat Agent API running at http://{host}:{port}")
    print("  Press Ctrl+C to stop.\n")

    await stop_event.wait()

    print("\nShutting down...")
    await runner.cleanup()


def run_web_server(config: Config | None = None) -> None:
    """Entry point for running the web server."""
    try:
        asyncio.run(_run_server(config or get_config()))
    except KeyboardInterrupt:
        pass  # Signal handler handles graceful shutdown.
