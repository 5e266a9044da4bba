"""Listener configuration.

Values come from keyword arguments or, via :meth:`ListenerConfig.from_env`,
from ``AC_*`` environment variables. Scripts call ``load_dotenv()`` first so
a project ``.env`` file is honoured.
"""

from __future__ import annotations

import ipaddress
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

_ENV_VARS = {
    "host": "AC_HOST",
    "port": "AC_PORT",
    "log_enabled": "AC_LOG_ENABLED",
    "log_dir": "AC_LOG_DIR",
    "handshake_timeout": "AC_HANDSHAKE_TIMEOUT",
    "receive_timeout": "AC_RECEIVE_TIMEOUT",
}


class ListenerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=9996, ge=1, le=65535)
    log_enabled: bool = False
    log_dir: Path = Path("logs")
    handshake_timeout: float | None = Field(default=5.0, gt=0)
    """Seconds to wait for the handshake reply; ``None`` waits forever."""
    receive_timeout: float = Field(default=0.5, gt=0)

    @field_validator("host")
    @classmethod
    def _check_host(cls, value: str) -> str:
        ipaddress.IPv4Address(value)  # AddressValueError -> ValidationError
        return value

    @field_validator("handshake_timeout", mode="before")
    @classmethod
    def _blank_means_forever(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() in ("", "none"):
            return None
        return value

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides) -> ListenerConfig:
        """Build a config from ``AC_*`` variables; *overrides* win over the environment."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {
            field: env[var] for field, var in _ENV_VARS.items() if var in env
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
