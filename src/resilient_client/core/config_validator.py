"""
Resilient Client - Config Validator Implementation
Valide la configuration du client avant construction des composants.
"""

from dataclasses import fields
from datetime import datetime
from numbers import Real
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

from ..logging import LogLevel
from ..network import TimeoutManager
from .interfaces import (
    AuthSettings,
    ConnectivitySettings,
    IConfigValidator,
    LoggingSettings,
    RetrySettings,
    TimeoutSettings,
    ValidationIssue,
    ValidationResult,
    ValidationSeverity,
)

KNOWN_PROBES = ("interfaces", "socket", "always_online")

SECTION_TYPES = {
    "retry": RetrySettings,
    "timeouts": TimeoutSettings,
    "auth": AuthSettings,
    "connectivity": ConnectivitySettings,
    "logging": LoggingSettings,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


class ConfigValidator(IConfigValidator):
    """Validation de la configuration du client."""

    def __init__(self):
        self._validators: Dict[str, Callable[[Dict[str, Any]], Optional[ValidationIssue]]] = {
            "sections": self._validate_sections,
            "base_url": self._validate_base_url,
            "retry": self._validate_retry,
            "timeouts": self._validate_timeouts,
            "auth": self._validate_auth,
            "connectivity": self._validate_connectivity,
            "logging": self._validate_logging,
        }

    @property
    def rule_ids(self) -> List[str]:
        return list(self._validators)

    def validate(self, config: Dict[str, Any]) -> ValidationResult:
        """
        Valide une config contre toutes les règles.
        Retourne TOUTES les erreurs (pas fail-fast).
        """
        errors = []
        warnings = []

        for rule_id in self._validators:
            issue = self.validate_rule(rule_id, config)
            if issue:
                if issue.severity == ValidationSeverity.BLOCKING:
                    errors.append(issue)
                elif issue.severity == ValidationSeverity.WARNING:
                    warnings.append(issue)

        return ValidationResult(
            valid=len(errors) == 0, errors=errors, warnings=warnings, checked_at=datetime.now()
        )

    def validate_rule(self, rule_id: str, config: Dict[str, Any]) -> Optional[ValidationIssue]:
        """Valide UNE règle spécifique."""
        if rule_id not in self._validators:
            return ValidationIssue(
                rule_id=rule_id,
                message=f"Unknown rule: {rule_id}",
                location="config",
                severity=ValidationSeverity.BLOCKING,
            )

        return self._validators[rule_id](config)

    def _section(self, config: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = config.get(name)
        return section if isinstance(section, dict) else {}

    def _validate_sections(self, config: Dict[str, Any]) -> Optional[ValidationIssue]:
        """Sections de type objet et clés connues uniquement."""
        for name, settings_type in SECTION_TYPES.items():
            section = config.get(name)
            if section is None:
                continue
            if not isinstance(section, dict):
                return ValidationIssue(
                    rule_id="sections",
                    message=f"Section '{name}' must be a mapping",
                    location=name,
                    value=str(section),
                )
            known = {f.name for f in fields(settings_type)}
            unknown = sorted(set(section) - known)
            if unknown:
                return ValidationIssue(
                    rule_id="sections",
                    message=f"Unknown key(s) in '{name}': {', '.join(unknown)}",
                    location=name,
                    value=", ".join(unknown),
                )
        return None

    def _validate_base_url(self, config: Dict[str, Any]) -> Optional[ValidationIssue]:
        base_url = config.get("base_url")
        if not isinstance(base_url, str) or not base_url.strip():
            return ValidationIssue(
                rule_id="base_url",
                message="base_url is required",
                location="base_url",
            )

        parts = urlsplit(base_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            return ValidationIssue(
                rule_id="base_url",
                message="base_url must be an absolute http(s) URL",
                location="base_url",
                value=base_url,
            )

        if parts.scheme == "http" and parts.hostname not in ("localhost", "127.0.0.1", "10.0.2.2"):
            return ValidationIssue(
                rule_id="base_url",
                message="base_url uses plain http: bearer tokens travel unencrypted",
                location="base_url",
                value=base_url,
                severity=ValidationSeverity.WARNING,
            )
        return None

    def _validate_retry(self, config: Dict[str, Any]) -> Optional[ValidationIssue]:
        retry = self._section(config, "retry")

        max_retries = retry.get("max_retries", RetrySettings.max_retries)
        if not isinstance(max_retries, int) or isinstance(max_retries, bool) or max_retries < 0:
            return ValidationIssue(
                rule_id="retry",
                message="max_retries must be a non-negative integer",
                location="retry.max_retries",
                value=str(max_retries),
            )

        base_delay = retry.get("base_delay", RetrySettings.base_delay)
        if not _is_number(base_delay) or base_delay <= 0:
            return ValidationIssue(
                rule_id="retry",
                message="base_delay must be a positive number of seconds",
                location="retry.base_delay",
                value=str(base_delay),
            )
        return None

    def _validate_timeouts(self, config: Dict[str, Any]) -> Optional[ValidationIssue]:
        timeouts = self._section(config, "timeouts")
        candidates = [("timeouts", timeouts)]

        operations = timeouts.get("operations") or {}
        if not isinstance(operations, dict):
            return ValidationIssue(
                rule_id="timeouts",
                message="timeouts.operations must be a mapping",
                location="timeouts.operations",
            )
        for name, values in operations.items():
            candidates.append((f"timeouts.operations[{name}]", values or {}))

        limits = {
            "connection_timeout": TimeoutManager.MAX_CONNECTION_TIMEOUT,
            "request_timeout": TimeoutManager.MAX_REQUEST_TIMEOUT,
        }
        for location, values in candidates:
            if not isinstance(values, dict):
                return ValidationIssue(
                    rule_id="timeouts",
                    message="timeout overrides must be mappings",
                    location=location,
                )
            for key, limit in limits.items():
                if key not in values:
                    continue
                value = values[key]
                if not _is_number(value) or value <= 0 or value > limit:
                    return ValidationIssue(
                        rule_id="timeouts",
                        message=f"{key} must be in (0, {limit}] seconds",
                        location=f"{location}.{key}",
                        value=str(value),
                    )
        return None

    def _validate_auth(self, config: Dict[str, Any]) -> Optional[ValidationIssue]:
        auth = self._section(config, "auth")

        token_key = auth.get("token_key", AuthSettings.token_key)
        if not isinstance(token_key, str) or not token_key.strip():
            return ValidationIssue(
                rule_id="auth",
                message="token_key must be a non-empty string",
                location="auth.token_key",
            )

        if auth.get("send_empty_bearer"):
            return ValidationIssue(
                rule_id="auth",
                message="send_empty_bearer sends 'Authorization: Bearer null' when no token is stored",
                location="auth.send_empty_bearer",
                value="true",
                severity=ValidationSeverity.WARNING,
            )
        return None

    def _validate_connectivity(self, config: Dict[str, Any]) -> Optional[ValidationIssue]:
        connectivity = self._section(config, "connectivity")

        probe = connectivity.get("probe", ConnectivitySettings.probe)
        if probe not in KNOWN_PROBES:
            return ValidationIssue(
                rule_id="connectivity",
                message=f"probe must be one of: {', '.join(KNOWN_PROBES)}",
                location="connectivity.probe",
                value=str(probe),
            )

        timeout = connectivity.get("timeout", ConnectivitySettings.timeout)
        if not _is_number(timeout) or timeout <= 0:
            return ValidationIssue(
                rule_id="connectivity",
                message="timeout must be a positive number of seconds",
                location="connectivity.timeout",
                value=str(timeout),
            )

        port = connectivity.get("port", ConnectivitySettings.port)
        if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
            return ValidationIssue(
                rule_id="connectivity",
                message="port must be an integer between 1 and 65535",
                location="connectivity.port",
                value=str(port),
            )
        return None

    def _validate_logging(self, config: Dict[str, Any]) -> Optional[ValidationIssue]:
        min_level = self._section(config, "logging").get("min_level", LoggingSettings.min_level)
        try:
            LogLevel.from_name(str(min_level))
        except ValueError:
            return ValidationIssue(
                rule_id="logging",
                message="min_level must be one of DEBUG, INFO, WARN, ERROR, CRITICAL",
                location="logging.min_level",
                value=str(min_level),
            )
        return None
