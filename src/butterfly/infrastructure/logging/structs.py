"""
Logging configuration structs.

Loaded from the ``logging`` section of config.yaml via ``LoggingConfig.from_dict``
or built in code for the development and production defaults.
"""

from typing import Any, Dict, List, Optional

import msgspec
from msgspec import Struct

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
FILE_FORMATS = ("text", "json")


class BackendConfig(Struct, frozen=True):
    """Settings shared by every backend."""
    enabled: bool = True
    min_level: str = "INFO"

    def validate(self) -> None:
        if self.min_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.min_level}")


class ConsoleBackendConfig(BackendConfig, frozen=True):
    """
    Console output through the standard ``logging`` module.

    Attributes:
        include_context: Append ``key=value`` context after the message
        max_message_length: Messages longer than this are cut with ``...``
    """
    include_context: bool = True
    max_message_length: int = 1000


class FileBackendConfig(BackendConfig, frozen=True):
    """
    Log file with size-based rotation (``app.log`` -> ``app.1`` -> ``app.2``).

    Metric and audit records are always written, whatever ``min_level`` is.
    """
    path: str = "logs/butterfly.log"
    format: str = "text"
    max_size_mb: int = 100
    backup_count: int = 5
    buffer_size: int = 64

    def validate(self) -> None:
        super().validate()
        if self.format not in FILE_FORMATS:
            raise ValueError(f"Invalid format: {self.format}, expected one of {FILE_FORMATS}")
        if self.max_size_mb <= 0:
            raise ValueError("max_size_mb must be positive")
        if self.backup_count < 0:
            raise ValueError("backup_count cannot be negative")
        if self.buffer_size <= 0:
            raise ValueError("buffer_size must be positive")


class RouterConfig(Struct, frozen=True):
    """Backends for plain text records; None means every configured backend."""
    default_backends: Optional[List[str]] = None

    def get_default_backends(self) -> List[str]:
        if self.default_backends is None:
            return ["console", "file"]
        return self.default_backends


class LoggingConfig(Struct, frozen=True):
    """Backends, routing and context added to every record."""
    environment: str = "development"
    console: Optional[ConsoleBackendConfig] = None
    file: Optional[FileBackendConfig] = None
    router: Optional[RouterConfig] = None
    default_context: Optional[Dict[str, Any]] = None

    def validate(self) -> None:
        for backend in (self.console, self.file):
            if backend is not None:
                backend.validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return msgspec.convert(data, type=cls)

    @classmethod
    def default_development(cls) -> "LoggingConfig":
        return cls(
            environment="development",
            console=ConsoleBackendConfig(min_level="DEBUG"),
            file=FileBackendConfig(enabled=False),
            router=RouterConfig(default_backends=["console"]),
        )

    @classmethod
    def default_production(cls) -> "LoggingConfig":
        """Console at INFO plus a JSON file that also receives metrics and audit records."""
        return cls(
            environment="production",
            console=ConsoleBackendConfig(min_level="INFO"),
            file=FileBackendConfig(
                path="logs/butterfly.log",
                format="json",
                max_size_mb=500,
                backup_count=10,
            ),
            router=RouterConfig(default_backends=["console", "file"]),
        )
