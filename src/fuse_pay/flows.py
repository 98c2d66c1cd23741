"""
Application flows: login, browse and payment.

Each user-triggered step returns a FlowResult. Transport failures, remote
rejections and protocol violations become failure results carrying a
user-facing message; ProtocolError (and NotAuthenticated) mean the caller
invoked something out of phase, so they are logged and re-raised.
"""

import logging
from typing import Any, Awaitable, Generic, Optional, TypeVar

from fuse_pay.errors import (
    FusePayError,
    ProtocolError,
    ProtocolViolation,
    RemoteRejected,
    TransportError,
)
from fuse_pay.models.bill import Bill
from fuse_pay.models.card import Card
from fuse_pay.models.payment import PaymentInstruction, PaymentStatus
from fuse_pay.rpc import RpcClient
from fuse_pay.session import Phase, SessionManager

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class FlowResult(Generic[T]):
    __slots__ = ("ok", "value", "error", "message")

    def __init__(self, ok: bool, value: Optional[T] = None,
                 error: Optional[FusePayError] = None, message: str = ""):
        self.ok = ok
        self.value = value
        self.error = error
        self.message = message

    @classmethod
    def success(cls, value: Optional[T] = None) -> "FlowResult[T]":
        return cls(True, value)

    @classmethod
    def failure(cls, error: FusePayError, message: str) -> "FlowResult[T]":
        return cls(False, error=error, message=message)

    def __repr__(self) -> str:
        if self.ok:
            return f"FlowResult(ok=True, value={self.value!r})"
        return f"FlowResult(ok=False, error={type(self.error).__name__}, message={self.message!r})"


def describe_failure(error: FusePayError, action: str) -> str:
    """User-facing text for a recoverable failure."""
    if isinstance(error, TransportError):
        return f"Failed to {action}: could not reach the server. Please try again."
    if isinstance(error, RemoteRejected):
        return f"Failed to {action}: {error.reason}"
    if isinstance(error, ProtocolViolation):
        return f"Failed to {action}: the server response could not be verified. Please log in again."
    return f"Failed to {action}."


async def _guard(action: str, step: Awaitable[T]) -> FlowResult[T]:
    try:
        value = await step
    except ProtocolError:
        _LOGGER.exception("Protocol misuse while trying to %s", action)
        raise
    except (TransportError, RemoteRejected, ProtocolViolation) as e:
        _LOGGER.warning("Could not %s: %s", action, e.code)
        return FlowResult.failure(e, describe_failure(e, action))
    return FlowResult.success(value)


class LoginFlow:
    """request_public_key -> begin_key_negotiation -> register_session_key -> authenticate.

    A failed registration leaves the session in KEY_NEGOTIATED. Calling start()
    again for the same email re-sends the key already generated instead of
    generating a new one.
    """

    def __init__(self, rpc: RpcClient, session: SessionManager):
        self._rpc = rpc
        self._session = session
        self._public_key: Optional[str] = None

    async def _negotiate(self, email: str) -> None:
        phase = self._session.phase
        if phase == Phase.KEY_NEGOTIATED and self._session.account_email == email and self._public_key:
            _LOGGER.debug("Re-registering pending session key for %s", email)
        elif phase == Phase.UNAUTHENTICATED:
            self._public_key = await self._rpc.request_public_key(email)
            self._session.begin_key_negotiation(email)
        else:
            raise ProtocolError(
                f"Cannot start login for {email} in phase {phase.name}; reset the session first",
                details={"phase": phase.name},
            )
        await self._rpc.register_session_key(self._public_key)

    async def start(self, email: str) -> FlowResult[None]:
        """Step 1: negotiate and register the session key."""
        return await _guard("initiate login process", self._negotiate(email))

    async def submit_password(self, password: str) -> FlowResult[None]:
        """Step 2: authenticate with the sealed credentials."""
        return await _guard("login", self._rpc.authenticate(password))

    async def login(self, email: str, password: str) -> FlowResult[None]:
        result = await self.start(email)
        if not result.ok:
            return result
        return await self.submit_password(password)

    def forget(self) -> None:
        """Drop the cached public key after an explicit session reset."""
        self._public_key = None


class BrowseFlow:
    """Cards and bill lookup for an authenticated session."""

    def __init__(self, rpc: RpcClient):
        self._rpc = rpc
        self.cards: list[Card] = []
        self.selected_card: Optional[Card] = None
        self.bill: Optional[Bill] = None

    async def load_cards(self) -> FlowResult[list[Card]]:
        result = await _guard("fetch cards", self._rpc.fetch_cards())
        if result.ok:
            self.cards = result.value or []
            if self.cards and (self.selected_card is None or self.selected_card not in self.cards):
                self.selected_card = self.cards[0]
        return result

    def select(self, card_id: Any) -> Card:
        for card in self.cards:
            if str(card.id) == str(card_id):
                self.selected_card = card
                return card
        raise KeyError(f"No fetched card with id {card_id!r}")

    async def load_bill(self, bill_number: str) -> FlowResult[Bill]:
        result = await _guard("fetch bill", self._rpc.fetch_bill(bill_number))
        if result.ok:
            self.bill = result.value
        return result

    def clear(self) -> None:
        self.cards = []
        self.selected_card = None
        self.bill = None


class PaymentFlow:
    """Pay one bill with one card. Each call to pay() is a single attempt."""

    def __init__(self, rpc: RpcClient):
        self._rpc = rpc
        self.status: Optional[PaymentStatus] = None
        self.result: Any = None

    async def _pay(self, card: Card, bill: Bill) -> Any:
        try:
            instruction = PaymentInstruction.from_card(card)
        except ValueError as e:
            raise ProtocolViolation(f"Card {card.id!r} has an unusable expiry date") from e
        return await self._rpc.pay_bill(bill.id, instruction)

    async def pay(self, card: Optional[Card], bill: Optional[Bill]) -> FlowResult[Any]:
        if card is None or bill is None:
            raise ProtocolError("Payment requires a selected card and a fetched bill")
        self.status = None
        self.result = None
        try:
            result = await _guard("pay bill", self._pay(card, bill))
        except ProtocolError:
            self.status = PaymentStatus.FAILURE
            raise
        self.status = PaymentStatus.SUCCESS if result.ok else PaymentStatus.FAILURE
        self.result = result.value
        _LOGGER.debug("Payment for bill %s finished: %s", bill.id, self.status.value)
        return result
