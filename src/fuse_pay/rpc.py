"""
RPC client: the six backend operations.

Handshake: request_public_key -> register_session_key -> authenticate.
Authenticated: fetch_cards, fetch_bill, pay_bill.

Phase preconditions are checked before any network I/O. Session state only
changes after a response has been fully decoded, so a cancelled request
leaves the phase untouched.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx
from cryptography.exceptions import UnsupportedAlgorithm

from fuse_pay.errors import DecryptionError, ProtocolError, ProtocolViolation
from fuse_pay.models.auth import AuthTokenPayload, Credentials
from fuse_pay.models.bill import Bill
from fuse_pay.models.card import Card
from fuse_pay.models.envelope import Envelope
from fuse_pay.models.payment import PaymentInstruction
from fuse_pay.session import Phase, SessionManager
from fuse_pay.transport.envelope import EnvelopeCodec
from fuse_pay.transport.http import HttpClient

_LOGGER = logging.getLogger(__name__)


def _segment(value: Any) -> str:
    """Percent-encode an id as a single path segment, `/`, `?` and `#` included."""
    return quote(str(value), safe="")


def _json_body(resp: httpx.Response, path: str) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise ProtocolViolation(f"Response from {path} is not JSON") from e


def _envelope_of(resp: httpx.Response, path: str) -> Envelope:
    body = _json_body(resp, path)
    payload = body.get("payload") if isinstance(body, dict) else None
    if not isinstance(payload, str) or not payload:
        raise ProtocolViolation(f"Response from {path} has no sealed payload")
    return Envelope(ciphertext=payload)


class RpcClient:
    def __init__(self, http: HttpClient, session: SessionManager, codec: EnvelopeCodec):
        self._http = http
        self._session = session
        self._codec = codec

    def _open(self, envelope: Envelope, key: bytes, path: str, shape: Any = None) -> Any:
        try:
            return self._codec.open(envelope, key, shape)
        except DecryptionError as e:
            _LOGGER.warning("Could not open payload from %s: %s", path, e.code)
            raise ProtocolViolation(f"Could not open payload from {path}: {e}") from e

    async def request_public_key(self, email: str) -> str:
        """POST /key/publicKey: fetch the backend's public key for this account."""
        if self._session.phase != Phase.UNAUTHENTICATED:
            raise ProtocolError(
                f"request_public_key requires phase UNAUTHENTICATED, current phase is {self._session.phase.name}",
            )
        path = "/key/publicKey"
        resp = await self._http.post(path, {"email": email})
        body = _json_body(resp, path)
        public_key = body.get("publicKey") if isinstance(body, dict) else None
        if not isinstance(public_key, str) or not public_key:
            raise ProtocolViolation(f"Response from {path} has no publicKey")
        return public_key

    async def register_session_key(self, public_key: str) -> None:
        """POST /key/setAESkey: hand the wrapped session key to the backend."""
        email, key = self._session.require_key_negotiated()
        try:
            wrapped = self._codec.primitives.wrap_key(public_key, key)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ProtocolViolation(f"Backend public key is unusable: {e}") from e
        await self._http.post("/key/setAESkey", {"email": email, "encryptedAesKey": wrapped})
        _LOGGER.debug("Session key registered for %s", email)

    async def authenticate(self, password: str) -> None:
        """POST /auth/login: exchange sealed credentials for an auth token."""
        path = "/auth/login"
        email, key = self._session.require_key_negotiated()
        sealed = self._codec.seal(Credentials(email=email, password=password), key)
        resp = await self._http.post(path, {"email": email, "payload": sealed.ciphertext})
        token = self._open(_envelope_of(resp, path), key, path, AuthTokenPayload)
        self._session.complete_authentication(token.auth_token, expected_key=key)

    async def fetch_cards(self) -> list[Card]:
        """POST /card/user: cards owned by the authenticated account."""
        path = "/card/user"
        key, token = self._session.require_authenticated()
        resp = await self._http.post(path, {"jwt": token})
        return self._open(_envelope_of(resp, path), key, path, list[Card])

    async def fetch_bill(self, bill_number: str) -> Bill:
        """POST /bill/{billNumber}"""
        key, token = self._session.require_authenticated()
        path = f"/bill/{_segment(bill_number)}"
        resp = await self._http.post(path, {"jwt": token})
        return self._open(_envelope_of(resp, path), key, path, Bill)

    async def pay_bill(self, bill_id: Any, instruction: PaymentInstruction) -> Any:
        """POST /bill/pay/{billId}: sent once, never retried here."""
        key, token = self._session.require_authenticated()
        path = f"/bill/pay/{_segment(bill_id)}"
        sealed = self._codec.seal(instruction, key)
        resp = await self._http.post(path, {"jwt": token, "payload": sealed.ciphertext})
        return self._open(_envelope_of(resp, path), key, path)
