"""
fuse-pay: Fuse Pay SDK for Python.

Log in, pick a card, look up a bill and pay it.
Every sensitive payload is sealed with a per-session AES key negotiated
against the backend's RSA public key.
"""

from fuse_pay.client import FusePay, AsyncFusePay
from fuse_pay.config import ClientConfig
from fuse_pay.flows import FlowResult
from fuse_pay.session import Phase, SessionManager
from fuse_pay.errors import (
    FusePayError,
    TransportError,
    RemoteRejected,
    DecryptionError,
    MalformedPayload,
    ProtocolViolation,
    ProtocolError,
    NotAuthenticated,
)

__version__ = "0.1.0"
__all__ = [
    "FusePay",
    "AsyncFusePay",
    "ClientConfig",
    "FlowResult",
    "Phase",
    "SessionManager",
    "FusePayError",
    "TransportError",
    "RemoteRejected",
    "DecryptionError",
    "MalformedPayload",
    "ProtocolViolation",
    "ProtocolError",
    "NotAuthenticated",
]
