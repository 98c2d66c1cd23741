"""Shared fixtures: an in-process fake of the backend's side of the protocol."""

import base64
import json
import re
from typing import Any, Optional
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from fuse_pay import AsyncFusePay, ClientConfig
from fuse_pay.crypto import open_payload, seal_payload

BASE_URL = "https://fuse.test"

CARDS = [
    {"id": 1, "cardName": "Everyday Visa", "cvv": "123", "expiryDate": "2026-03-15", "balance": 1200.5},
    {"id": 2, "cardName": "Travel Master", "cvv": "987", "expiryDate": "2027-11-01T00:00:00.000Z", "balance": 80},
]

BILLS = {
    "B100": {
        "id": "B100",
        "category": "Utilities",
        "merchantAccount": {"user": {"name": "City Power"}},
        "details": "March electricity",
        "amount": 74.2,
    },
}


def tamper(ciphertext: str) -> str:
    """Flip one bit inside the GCM ciphertext body."""
    raw = bytearray(base64.b64decode(ciphertext))
    raw[14] ^= 0x01
    return base64.b64encode(bytes(raw)).decode("ascii")


class FakeBackend:
    """Mirror side of the handshake and sealed endpoints."""

    def __init__(self, private_key: rsa.RSAPrivateKey, users: Optional[dict[str, str]] = None):
        self._private_key = private_key
        self.public_key_pem = private_key.public_key().public_bytes(
            serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")
        self.users = users or {"a@x.com": "correct horse", "b@x.com": "battery staple"}
        self.session_keys: dict[str, bytes] = {}
        self.tokens: dict[str, str] = {}
        self.requests: list[tuple[str, Any]] = []
        self.payments: list[dict[str, Any]] = []
        self.tamper_paths: set[str] = set()
        self.fail_paths: dict[str, int] = {}
        self.down = False

    def paths(self) -> list[str]:
        return [p for p, _ in self.requests]

    def _sealed(self, path: str, value: Any, key: bytes) -> httpx.Response:
        ct = seal_payload(json.dumps(value).encode("utf-8"), key)
        if path in self.tamper_paths:
            ct = tamper(ct)
        return httpx.Response(200, json={"payload": ct})

    def _key_for_token(self, body: dict[str, Any]) -> Optional[bytes]:
        email = self.tokens.get(body.get("jwt", ""))
        return self.session_keys.get(email) if email else None

    def handle(self, request: httpx.Request) -> httpx.Response:
        # Route on the path as sent, so an escaped "/" stays inside one segment.
        path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        body = json.loads(request.content or b"{}")
        self.requests.append((path, body))

        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        if path in self.fail_paths:
            return httpx.Response(self.fail_paths[path], json={"message": "Service unavailable"})

        if path == "/key/publicKey":
            return httpx.Response(200, json={"publicKey": self.public_key_pem})

        if path == "/key/setAESkey":
            wrapped = base64.b64decode(body["encryptedAesKey"])
            self.session_keys[body["email"]] = self._private_key.decrypt(
                wrapped,
                padding.OAEP(mgf=padding.MGF1(algorithm=hashes.SHA256()), algorithm=hashes.SHA256(), label=None),
            )
            return httpx.Response(200)

        if path == "/auth/login":
            email = body["email"]
            key = self.session_keys.get(email)
            if key is None:
                return httpx.Response(400, json={"message": "No session key registered"})
            creds = json.loads(open_payload(body["payload"], key))
            if self.users.get(creds["email"]) != creds["password"]:
                return httpx.Response(401, json={"message": "Invalid credentials"})
            token = f"jwt-{len(self.tokens) + 1}"
            self.tokens[token] = email
            return self._sealed(path, {"jwt": token}, key)

        key = self._key_for_token(body)
        if key is None:
            return httpx.Response(401, json={"message": "Invalid token"})

        if path == "/card/user":
            return self._sealed(path, CARDS, key)

        m = re.fullmatch(r"/bill/pay/([^/]+)", path)
        if m:
            self.payments.append(json.loads(open_payload(body["payload"], key)))
            return self._sealed(path, {"status": "success", "billId": unquote(m.group(1))}, key)

        m = re.fullmatch(r"/bill/([^/]+)", path)
        if m:
            bill = BILLS.get(unquote(m.group(1)))
            if bill is None:
                return httpx.Response(404, json={"message": "Bill not found"})
            return self._sealed(path, bill, key)

        return httpx.Response(404, text="Not Found")


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def backend(rsa_private_key) -> FakeBackend:
    return FakeBackend(rsa_private_key)


@pytest.fixture
def make_client(backend):
    def _make(**kwargs: Any) -> AsyncFusePay:
        return AsyncFusePay(
            config=ClientConfig(base_url=BASE_URL),
            transport=httpx.MockTransport(backend.handle),
            **kwargs,
        )

    return _make


@pytest_asyncio.fixture
async def client(make_client):
    c = make_client()
    yield c
    await c.close()
