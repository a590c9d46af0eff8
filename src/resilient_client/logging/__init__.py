"""
Resilient Client: Logging

Logging structuré JSON avec:
- Champs obligatoires: timestamp, level, correlation_id, component, message
- Timestamp ISO 8601 UTC
- Niveaux DEBUG, INFO, WARN, ERROR, CRITICAL
- Masquage des données sensibles (tokens, Authorization)
"""

from .interfaces import (
    # Enums
    LogLevel,
    # Dataclasses
    LogEntry,
    LogConfig,
    # Interfaces
    IStructuredLogger,
    ISensitiveMasker,
)
from .sensitive_masker import SensitiveMasker
from .structured_logger import (
    StructuredLogger,
    ContextualLogger,
    stderr_output,
    # Exceptions
    MissingRequiredFieldError,
)

__all__ = [
    # Enums
    "LogLevel",
    # Dataclasses
    "LogEntry",
    "LogConfig",
    # Interfaces
    "IStructuredLogger",
    "ISensitiveMasker",
    # Implementations
    "SensitiveMasker",
    "StructuredLogger",
    "ContextualLogger",
    "stderr_output",
    # Exceptions
    "MissingRequiredFieldError",
]
