"""Command-line entry point for Chat Agent."""

import sys
from pathlib import Path

import typer

from chat_agent import __version__
from chat_agent.config import Config, set_config
from chat_agent.logging import configure_logging, log

app = typer.Typer(help="Chat Agent - web chat with single-step tool dispatch")


@app.command()
def serve(
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
    host: str = typer.Option("", "--host", help="Override bind host"),
    port: int = typer.Option(0, "--port", help="Override bind port"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
) -> None:
    """Start the HTTP API server."""
    cfg = Config.load(config or None)
    if host:
        cfg.web.host = host
    if port:
        cfg.web.port = port
    set_config(cfg)
    configure_logging("DEBUG" if verbose else None)

    Path(cfg.todo.path).expanduser().parent.mkdir(parents=True, exist_ok=True)

    from chat_agent.web_server import run_web_server

    try:
        run_web_server(cfg)
    except KeyboardInterrupt:
        print("\nServer stopped.")
    except Exception as e:
        log.error("Fatal error", error=str(e))
        print(f"Fatal error: {e}")
        sys.exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    print(f"Chat Agent v{__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
