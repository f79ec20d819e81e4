import pytest

from openapi_generate.config import (
    DEFAULT_HOST,
    DEFAULT_NAME,
    DEFAULT_PORT,
    ConfigError,
    __version__,
    load_config,
)


class TestLoadConfig:
    def test_defaults(self):
        config = load_config({})
        assert config.name == DEFAULT_NAME
        assert config.version == __version__
        assert config.host == DEFAULT_HOST
        assert config.port == DEFAULT_PORT
        assert config.fetch_timeout == 30.0

    def test_environment(self):
        config = load_config({
            "MCP_SERVER_NAME": "custom",
            "MCP_SERVER_VERSION": "2.0.0",
            "MCP_HOST": "0.0.0.0",
            "MCP_PORT": "3000",
            "MCP_FETCH_TIMEOUT": "5.5",
        })
        assert config.name == "custom"
        assert config.version == "2.0.0"
        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.fetch_timeout == 5.5

    def test_empty_values_ignored(self):
        assert load_config({"MCP_PORT": ""}).port == DEFAULT_PORT

    def test_overrides_win(self):
        config = load_config({"MCP_PORT": "3000"}, port=4000, host=None)
        assert config.port == 4000
        assert config.host == DEFAULT_HOST

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("MCP_SERVER_NAME", "from-env")
        assert load_config().name == "from-env"

    @pytest.mark.parametrize("environ", [
        {"MCP_PORT": "0"},
        {"MCP_PORT": "65536"},
        {"MCP_PORT": "eighty"},
        {"MCP_FETCH_TIMEOUT": "-1"},
        {"MCP_HOST": "   "},
    ])
    def test_invalid_values(self, environ):
        with pytest.raises(ConfigError) as exc_info:
            load_config(environ)
        assert exc_info.value.errors
