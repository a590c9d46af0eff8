"""
Resilient Client - Core

Configuration (YAML), validation et construction des composants.
"""

from .interfaces import (
    ValidationSeverity,
    ValidationIssue,
    ValidationResult,
    RetrySettings,
    TimeoutSettings,
    AuthSettings,
    ConnectivitySettings,
    LoggingSettings,
    ClientConfig,
    IConfigLoader,
    IConfigValidator,
)
from .config_validator import ConfigValidator
from .config_loader import ConfigLoader, ConfigIntegrityError
from .client_factory import RemoteClient, build_client, build_probe, build_timeout_manager

__all__ = [
    "ValidationSeverity",
    "ValidationIssue",
    "ValidationResult",
    "RetrySettings",
    "TimeoutSettings",
    "AuthSettings",
    "ConnectivitySettings",
    "LoggingSettings",
    "ClientConfig",
    "IConfigLoader",
    "IConfigValidator",
    "ConfigValidator",
    "ConfigLoader",
    "ConfigIntegrityError",
    "RemoteClient",
    "build_client",
    "build_probe",
    "build_timeout_manager",
]
