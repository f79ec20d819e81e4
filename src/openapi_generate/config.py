"""Server configuration loaded from environment variables."""

import os
from collections.abc import Mapping

from pydantic import BaseModel, ValidationError, field_validator

__version__ = "1.0.0"

DEFAULT_NAME = "openapi-generate"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080


class ConfigError(ValueError):
    """Raised when configuration values fail validation."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class ServerConfig(BaseModel):
    name: str = DEFAULT_NAME
    version: str = __version__
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    fetch_timeout: float = 30.0

    @field_validator("name", "version", "host")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("port")
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError("must be between 1 and 65535")
        return value

    @field_validator("fetch_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive")
        return value


# Environment variable -> ServerConfig field
ENV_VARS = {
    "MCP_SERVER_NAME": "name",
    "MCP_SERVER_VERSION": "version",
    "MCP_HOST": "host",
    "MCP_PORT": "port",
    "MCP_FETCH_TIMEOUT": "fetch_timeout",
}


def load_config(environ: Mapping[str, str] | None = None, **overrides) -> ServerConfig:
    """Build a ServerConfig from the environment, then apply explicit overrides.

    Overrides that are None are ignored, so CLI options can be passed through
    unconditionally.
    """
    environ = os.environ if environ is None else environ
    values: dict[str, object] = {
        field: environ[var] for var, field in ENV_VARS.items() if environ.get(var)
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return ServerConfig(**values)
    except ValidationError as e:
        raise ConfigError(
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        ) from e
