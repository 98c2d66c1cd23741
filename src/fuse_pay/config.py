"""
Client configuration.

Values come from keyword arguments or from the environment:
    FUSE_BASE_URL = <backend base address>
    FUSE_TIMEOUT  = <seconds, float>
"""

import os

from pydantic import BaseModel, Field, field_validator

DEFAULT_BASE_URL = "https://fuse-backend-x7mr.onrender.com"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = "fuse-pay-sdk/0.1.0"


class ClientConfig(BaseModel):
    """Validated client settings."""

    base_url: str = Field(default=DEFAULT_BASE_URL)
    timeout: float = Field(default=DEFAULT_TIMEOUT, ge=1.0)
    user_agent: str = Field(default=USER_AGENT)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) address and strip the trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL: {v}")
        return v.rstrip("/")

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create a ClientConfig from FUSE_* environment variables.

        Returns:
            Populated ClientConfig instance.
        """
        return cls(
            base_url=os.environ.get("FUSE_BASE_URL", DEFAULT_BASE_URL),
            timeout=float(os.environ.get("FUSE_TIMEOUT", DEFAULT_TIMEOUT)),
        )
