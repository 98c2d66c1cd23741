"""
Auth models: sealed request/response of POST /auth/login.
"""

from pydantic import AliasChoices, BaseModel, Field


class Credentials(BaseModel):
    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r})"


class AuthTokenPayload(BaseModel):
    """Decrypted login response. Backend sends {jwt}; {authToken} is accepted too."""

    auth_token: str = Field(validation_alias=AliasChoices("jwt", "authToken", "auth_token"))
