"""Configuration management for Chat Agent."""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Paths
DEFAULT_CONFIG_PATH = Path("~/.chat-agent/config.yaml").expanduser()
DEFAULT_TODO_DB_PATH = Path("~/.chat-agent/todos.db").expanduser()
LOCAL_CONFIG_FILENAME = "config.yaml"

HUGGINGFACE_SD3_URL = (
    "https://router.huggingface.co/hf-inference/models/"
    "stabilityai/stable-diffusion-3-medium-diffusers"
)


def _env_fallback(value: str, env_name: str) -> str:
    """Return configured value, else the plain environment variable."""
    return str(value or "").strip() or str(os.environ.get(env_name, "")).strip()


class ModelConfig(BaseModel):
    """Completion backend configuration."""

    provider: str = "ollama"
    model: str = "mistral"
    base_url: str = "http://localhost:11434"
    api_key: str = ""
    timeout: float = 120.0


class WeatherConfig(BaseModel):
    """OpenWeather provider configuration."""

    api_key: str = ""
    base_url: str = "https://api.openweathermap.org/data/2.5"
    units: str = "metric"
    timeout: float = 15.0

    def resolved_api_key(self) -> str:
        return _env_fallback(self.api_key, "OPENWEATHER_API_KEY")


class TodoConfig(BaseModel):
    """Todo store configuration."""

    path: str = str(DEFAULT_TODO_DB_PATH)


class HuggingFaceImageConfig(BaseModel):
    """Hugging Face text-to-image inference settings."""

    api_key: str = ""
    url: str = HUGGINGFACE_SD3_URL
    num_inference_steps: int = 30
    guidance_scale: float = 7.5
    negative_prompt: str = "blurry, bad quality, distorted, deformed"
    width: int = 512
    height: int = 512
    output_type: str = "jpeg"
    quality: int = 85

    def resolved_api_key(self) -> str:
        return _env_fallback(self.api_key, "HUGGINGFACE_API_KEY")


class GeminiImageConfig(BaseModel):
    """Gemini image generation settings."""

    api_key: str = ""
    model: str = "gemini-2.0-flash-exp-image-generation"

    def resolved_api_key(self) -> str:
        return _env_fallback(self.api_key, "GEMINI_API_KEY")


class ImageConfig(BaseModel):
    """Image generation configuration."""

    tool_provider: Literal["gemini", "huggingface"] = "gemini"
    timeout: float = 30.0
    huggingface: HuggingFaceImageConfig = Field(default_factory=HuggingFaceImageConfig)
    gemini: GeminiImageConfig = Field(default_factory=GeminiImageConfig)


class UpiConfig(BaseModel):
    """UPI QR code configuration."""

    currency: str = "INR"
    payee_name: str = ""
    box_size: int = 10
    border: int = 4


class WebConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 3000


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"


class Config(BaseSettings):
    """Main configuration for Chat Agent."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    weather: WeatherConfig = Field(default_factory=WeatherConfig)
    todo: TodoConfig = Field(default_factory=TodoConfig)
    image: ImageConfig = Field(default_factory=ImageConfig)
    upi: UpiConfig = Field(default_factory=UpiConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="CHAT_AGENT_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment and .env win over values passed in from YAML.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def load(cls, path: Path | str | None = None) -> "Config":
        """Load configuration; environment variables override YAML values."""
        return cls.from_yaml(path)

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
