"""Tests for Settings."""

import pytest

from hyperbolic_gpu.client.hyperbolic import HYPERBOLIC_API_BASE
from hyperbolic_gpu.config import Settings
from hyperbolic_gpu.utils.errors import ConfigError

ENV_VARS = [
    "HYPERBOLIC_API_TOKEN",
    "HYPERBOLIC_API_URL",
    "SSH_PRIVATE_KEY_PATH",
    "SSH_CONNECT_TIMEOUT",
    "SSH_KNOWN_HOSTS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        # setenv first so teardown also removes values loaded from .env
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestSettings:
    def test_defaults(self, clean_env):
        settings = Settings.from_env(load_dotenv_file=False)
        assert settings.api_token is None
        assert settings.api_url == HYPERBOLIC_API_BASE
        assert settings.ssh_private_key_path is None
        assert settings.ssh_connect_timeout == 10.0
        assert settings.ssh_known_hosts is None

    def test_from_env(self, clean_env):
        clean_env.setenv("HYPERBOLIC_API_TOKEN", "tok")
        clean_env.setenv("HYPERBOLIC_API_URL", "https://staging.example/v1")
        clean_env.setenv("SSH_PRIVATE_KEY_PATH", "~/.ssh/hyperbolic")
        clean_env.setenv("SSH_CONNECT_TIMEOUT", "25")

        settings = Settings.from_env(load_dotenv_file=False)

        assert settings.api_token == "tok"
        assert settings.api_url == "https://staging.example/v1"
        assert settings.ssh_private_key_path == "~/.ssh/hyperbolic"
        assert settings.ssh_connect_timeout == 25.0

    def test_invalid_timeout(self, clean_env):
        clean_env.setenv("SSH_CONNECT_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            Settings.from_env(load_dotenv_file=False)

    def test_require_api_token(self, clean_env):
        with pytest.raises(ConfigError):
            Settings().require_api_token()
        assert Settings(api_token="tok").require_api_token() == "tok"

    def test_dotenv_file(self, clean_env, tmp_path):
        """A .env in the working directory should be loaded."""
        (tmp_path / ".env").write_text("HYPERBOLIC_API_TOKEN=from-dotenv\n")
        clean_env.chdir(tmp_path)

        settings = Settings.from_env()

        assert settings.api_token == "from-dotenv"
