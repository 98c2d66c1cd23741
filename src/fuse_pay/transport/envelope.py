"""
Envelope codec: seal domain values before sending, open them after receipt.
"""

import json
from typing import Any, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

from fuse_pay.crypto import DEFAULT_PRIMITIVES, Primitives
from fuse_pay.errors import MalformedPayload, ProtocolError
from fuse_pay.models.envelope import Envelope


def _to_plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    return value


def canonical_bytes(value: Any) -> bytes:
    """Canonical JSON: sorted keys, compact separators, UTF-8.

    Only JSON values round-trip unchanged: tuples come back as lists and
    models as dicts unless `open` is given their `shape`. NaN and infinities
    have no JSON form and raise ValueError.
    """
    return json.dumps(
        _to_plain(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False,
    ).encode("utf-8")


class EnvelopeCodec:
    def __init__(self, primitives: Primitives = DEFAULT_PRIMITIVES):
        self._primitives = primitives

    @property
    def primitives(self) -> Primitives:
        return self._primitives

    def seal(self, value: Any, key: Optional[bytes]) -> Envelope:
        """Serialize and encrypt a value. Two seals of the same value differ."""
        if key is None:
            raise ProtocolError("Cannot seal without a session key")
        return Envelope(ciphertext=self._primitives.seal_payload(canonical_bytes(value), key))

    def open(self, envelope: Envelope, key: Optional[bytes], shape: Any = None) -> Any:
        """Decrypt an envelope and optionally validate it against `shape`.

        Raises DecryptionError when the primitive rejects the ciphertext and
        MalformedPayload when the plaintext is not the expected structure.
        """
        if key is None:
            raise ProtocolError("Cannot open without a session key")
        plaintext = self._primitives.open_payload(envelope.ciphertext, key)
        try:
            value = json.loads(plaintext)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedPayload(f"Payload is not valid JSON: {e}") from e
        if shape is None:
            return value
        try:
            return TypeAdapter(shape).validate_python(value)
        except ValidationError as e:
            raise MalformedPayload(f"Payload does not match {_shape_name(shape)}: {e.error_count()} error(s)") from e


def _shape_name(shape: Any) -> str:
    return getattr(shape, "__name__", None) or str(shape)


default_codec = EnvelopeCodec()


def seal(value: Any, key: Optional[bytes]) -> Envelope:
    return default_codec.seal(value, key)


def open(envelope: Envelope, key: Optional[bytes], shape: Any = None) -> Any:  # noqa: A001
    return default_codec.open(envelope, key, shape)
