"""
TELELINK Custom Exceptions

Provides the exception hierarchy for the TELELINK telescope client. Most
failures in the communication cycle and goto sequence are handled locally
as no-ops; these exceptions mark the places where a failure has to be
distinguished from a normal result.

Exception Hierarchy:
    TelelinkError (base)
    ├── ConfigurationError
    ├── DriverNotFoundError
    ├── DriverFaultError
    │   └── DriverTimeoutError
    └── NoDataAvailableError
"""

from typing import Any, Optional


class TelelinkError(Exception):
    """Base exception for all TELELINK errors.

    Attributes:
        message: Human-readable error description
        details: Optional dict with additional error context
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(TelelinkError):
    """Error in configuration file or settings.

    Raised when configuration validation fails, the configuration file is
    missing, or it cannot be parsed.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_file: Optional[str] = None,
    ) -> None:
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_file:
            details["config_file"] = config_file
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


# =============================================================================
# Driver Errors
# =============================================================================

class DriverNotFoundError(TelelinkError):
    """Driver identifier does not resolve to a usable driver handle."""

    def __init__(self, message: str, driver_id: Optional[str] = None) -> None:
        details = {}
        if driver_id:
            details["driver_id"] = driver_id
        super().__init__(message, details)
        self.driver_id = driver_id


class DriverFaultError(TelelinkError):
    """A driver call failed and has been reported to the fault handler.

    The fault is fatal for the session that issued the call. Raised by the
    driver adapter after notifying the registered exception handler so that
    the calling step can abort.
    """

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        source: Optional[str] = None,
    ) -> None:
        details: dict[str, Any] = {}
        if code is not None:
            details["code"] = code
        if source:
            details["source"] = source
        super().__init__(message, details)
        self.code = code
        self.source = source


class DriverTimeoutError(DriverFaultError):
    """A driver call did not complete within its allowed time."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        source: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        super().__init__(message, code, source)
        if timeout_seconds is not None:
            self.details["timeout_seconds"] = timeout_seconds
        self.timeout_seconds = timeout_seconds


# =============================================================================
# Position Errors
# =============================================================================

class NoDataAvailableError(TelelinkError):
    """Position requested before any sample was recorded."""
    pass
