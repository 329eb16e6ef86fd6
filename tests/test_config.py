from pathlib import Path

import pytest

from fencecall.config import Settings, get_settings
from fencecall.errors import ApiKeyNotConfiguredError


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


def test_defaults() -> None:
    settings = Settings()
    assert settings.model == "gpt-3.5-turbo"
    assert settings.max_tokens == 1000
    assert settings.temperature == 0.5
    assert settings.request_timeout_seconds is None
    assert settings.recursion_delay_seconds == 1.0
    assert settings.scan_mode == "flush"
    assert settings.completions_url == "https://api.openai.com/v1/chat/completions"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FENCECALL_MODEL", "local-model")
    monkeypatch.setenv("FENCECALL_SCAN_MODE", "incremental")
    settings = Settings(api_base="http://localhost:8080/v1/")
    assert settings.model == "local-model"
    assert settings.scan_mode == "incremental"
    assert settings.completions_url == "http://localhost:8080/v1/chat/completions"


def test_dotenv_file_is_read(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("FENCECALL_MAX_ROUNDS=3\n", encoding="utf-8")
    assert Settings().max_rounds == 3


def test_api_key_falls_back_to_openai_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
    assert Settings().resolved_api_key == "sk-openai"
    monkeypatch.setenv("FENCECALL_API_KEY", "sk-own")
    assert Settings().resolved_api_key == "sk-own"


def test_missing_api_key_raises() -> None:
    with pytest.raises(ApiKeyNotConfiguredError):
        _ = Settings().resolved_api_key


def test_get_settings_workspace_override(tmp_path: Path) -> None:
    assert get_settings(tmp_path / "ws").workspace == tmp_path / "ws"
    assert get_settings().workspace.resolve() == tmp_path.resolve()
