"""
Fuse Pay error types.

Four families reach the application flows:
transport failures, remote rejections, envelope violations and local
state-machine misuse.
"""

from typing import Any, Optional


class FusePayError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class TransportError(FusePayError):
    """Connectivity failure or timeout. Never retried automatically."""

    def __init__(self, message: str):
        super().__init__("transport_error", message)


class RemoteRejected(FusePayError):
    """The backend answered with a non-success status."""

    def __init__(self, reason: str, status_code: int, details: Optional[dict[str, Any]] = None):
        super().__init__("remote_rejected", f"HTTP {status_code}: {reason}", details)
        self.reason = reason
        self.status_code = status_code


class DecryptionError(FusePayError):
    def __init__(self, message: str, code: str = "decryption_error"):
        super().__init__(code, message)


class MalformedPayload(DecryptionError):
    """Plaintext decrypted fine but is not the expected structured shape."""

    def __init__(self, message: str):
        super().__init__(message, code="malformed_payload")


class ProtocolViolation(FusePayError):
    """A successful response whose envelope could not be opened or parsed."""

    def __init__(self, message: str):
        super().__init__("protocol_violation", message)


class ProtocolError(FusePayError):
    """An operation was invoked out of phase. Indicates a caller bug."""

    def __init__(self, message: str, code: str = "protocol_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class NotAuthenticated(ProtocolError):
    def __init__(self, message: str = "Session is not authenticated"):
        super().__init__(message, code="not_authenticated")
