"""
Envelope: opaque wire form of every sealed payload.
"""

from pydantic import BaseModel


class Envelope(BaseModel):
    """Sealed payload. Carries no plaintext metadata."""

    ciphertext: str

    def __repr__(self) -> str:
        return f"Envelope(<{len(self.ciphertext)} chars>)"
