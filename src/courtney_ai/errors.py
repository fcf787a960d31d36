"""
Courtney error types: one class per failure kind the widget surfaces.
"""

from typing import Any, Optional


class CourtneyError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ValidationError(CourtneyError):
    """Bad user input. `errors` maps field name to a user-facing message."""

    def __init__(self, errors: dict[str, str], message: Optional[str] = None):
        super().__init__("validation_error", message or "; ".join(errors.values()), {"errors": errors})
        self.errors = errors


class TransportError(CourtneyError):
    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__("transport_error", message, {"status": status, "body": body})
        self.status = status
        self.body = body


class ConfigurationError(CourtneyError):
    def __init__(self, message: str):
        super().__init__("configuration_error", message)


class ProtocolError(CourtneyError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("protocol_error", message, details)


class SessionError(CourtneyError):
    def __init__(self, message: str, code: str = "session_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)
