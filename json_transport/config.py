"""Transport configuration read from environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .models import Credentials


def _bool_env(var_name: str, default: bool = False) -> bool:
    """Return the boolean value of an environment variable."""
    value = os.getenv(var_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _float_env(var_name: str, default: float) -> float:
    value = os.getenv(var_name)
    if value is None or not value.strip():
        return default
    return float(value)


@dataclass
class TransportConfig:
    """Settings shared by every request issued through a transport."""

    connect_timeout: float = field(
        default_factory=lambda: _float_env("JSON_TRANSPORT_CONNECT_TIMEOUT", 10.0)
    )
    read_timeout: float = field(
        default_factory=lambda: _float_env("JSON_TRANSPORT_READ_TIMEOUT", 30.0)
    )
    chunk_size: int = field(
        default_factory=lambda: int(os.getenv("JSON_TRANSPORT_CHUNK_SIZE", "4096"))
    )
    trust_all: bool = field(default_factory=lambda: _bool_env("JSON_TRANSPORT_TRUST_ALL", True))
    username: Optional[str] = field(default_factory=lambda: os.getenv("JSON_TRANSPORT_USERNAME"))
    password: Optional[str] = field(default_factory=lambda: os.getenv("JSON_TRANSPORT_PASSWORD"))

    @property
    def timeout(self) -> Tuple[float, float]:
        """Return the ``(connect, read)`` timeout pair understood by requests."""
        return (self.connect_timeout, self.read_timeout)

    @property
    def credentials(self) -> Credentials:
        return Credentials(username=self.username, password=self.password)


settings = TransportConfig()

__all__ = ["settings", "TransportConfig"]
