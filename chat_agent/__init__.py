"""Chat Agent - web chat with single-step tool dispatch."""

__version__ = "0.1.0"

from chat_agent.config import Config

__all__ = ["Config", "__version__"]
