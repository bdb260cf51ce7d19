from pathlib import Path

import pytest
from pydantic import ValidationError

import chat_agent.config as config_module
from chat_agent.config import Config


def test_load_prefers_local_config_yaml(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)

    home_cfg = tmp_path / "home_config.yaml"
    home_cfg.write_text("model:\n  model: llama3.2\n", encoding="utf-8")
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", home_cfg)

    local_cfg = tmp_path / "config.yaml"
    local_cfg.write_text(
        (
            "model:\n"
            "  model: mistral-nemo\n"
            "  base_url: http://ollama.internal:11434\n"
            "web:\n"
            "  port: 8080\n"
        ),
        encoding="utf-8",
    )

    cfg = Config.load()

    assert cfg.model.model == "mistral-nemo"
    assert cfg.model.base_url == "http://ollama.internal:11434"
    assert cfg.web.port == 8080


def test_load_falls_back_to_default_path_when_no_local(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)

    home_cfg = tmp_path / "home_config.yaml"
    home_cfg.write_text("image:\n  tool_provider: huggingface\n  timeout: 45\n", encoding="utf-8")
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", home_cfg)

    cfg = Config.load()

    assert cfg.image.tool_provider == "huggingface"
    assert cfg.image.timeout == 45


def test_load_returns_defaults_when_no_file_exists(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")

    cfg = Config.load()

    assert cfg.model.provider == "ollama"
    assert cfg.model.model == "mistral"
    assert cfg.image.timeout == 30.0
    assert cfg.image.huggingface.num_inference_steps == 30
    assert cfg.upi.currency == "INR"
    assert cfg.web.port == 3000


def test_environment_overrides_yaml(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text(
        "model:\n  model: mistral\n  base_url: http://yaml-host:11434\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("CHAT_AGENT_MODEL__MODEL", "llama3")

    cfg = Config.load()

    assert cfg.model.model == "llama3"
    assert cfg.model.base_url == "http://yaml-host:11434"


def test_dotenv_file_is_read(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")
    (tmp_path / ".env").write_text("CHAT_AGENT_WEB__PORT=4100\n", encoding="utf-8")

    cfg = Config.load()

    assert cfg.web.port == 4100


def test_invalid_image_tool_provider_is_rejected(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("image:\n  tool_provider: dalle\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        Config.load()


def test_save_then_load_preserves_values(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    target = tmp_path / "nested" / "config.yaml"

    cfg = Config()
    cfg.weather.units = "imperial"
    cfg.upi.payee_name = "Corner Shop"
    cfg.save(target)

    loaded = Config.load(target)

    assert loaded.weather.units == "imperial"
    assert loaded.upi.payee_name == "Corner Shop"


def test_api_keys_fall_back_to_plain_environment(monkeypatch):
    monkeypatch.setenv("OPENWEATHER_API_KEY", "ow-env")
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-env")
    monkeypatch.setenv("GEMINI_API_KEY", "gm-env")

    cfg = Config()

    assert cfg.weather.resolved_api_key() == "ow-env"
    assert cfg.image.huggingface.resolved_api_key() == "hf-env"
    assert cfg.image.gemini.resolved_api_key() == "gm-env"

    cfg.weather.api_key = "ow-config"
    assert cfg.weather.resolved_api_key() == "ow-config"


def test_get_config_returns_instance_set_by_set_config(monkeypatch):
    cfg = Config()
    cfg.model.model = "phi3"
    monkeypatch.setattr(config_module, "_config", None)

    config_module.set_config(cfg)

    assert config_module.get_config() is cfg
