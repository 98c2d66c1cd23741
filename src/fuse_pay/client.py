"""
FusePay / AsyncFusePay: main SDK clients.

One client instance owns exactly one session. Nothing is persisted; closing
the client or calling logout() discards the session key.
"""

import asyncio
from typing import Any, Optional

import httpx

from fuse_pay.config import ClientConfig
from fuse_pay.crypto import DEFAULT_PRIMITIVES, Primitives
from fuse_pay.flows import BrowseFlow, FlowResult, LoginFlow, PaymentFlow
from fuse_pay.models.bill import Bill
from fuse_pay.models.card import Card
from fuse_pay.models.payment import PaymentStatus
from fuse_pay.rpc import RpcClient
from fuse_pay.session import Phase, SessionManager
from fuse_pay.transport.envelope import EnvelopeCodec
from fuse_pay.transport.http import HttpClient


class AsyncFusePay:
    """Async Fuse Pay client (primary)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        config: Optional[ClientConfig] = None,
        primitives: Primitives = DEFAULT_PRIMITIVES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cfg = config or ClientConfig.from_env()
        overrides: dict[str, Any] = {}
        if base_url:
            overrides["base_url"] = base_url
        if timeout:
            overrides["timeout"] = timeout
        if overrides:
            cfg = ClientConfig(**{**cfg.model_dump(), **overrides})
        self.config = cfg

        self.http = HttpClient(config=cfg, transport=transport)
        self.session = SessionManager(primitives)
        self.codec = EnvelopeCodec(primitives)
        self.rpc = RpcClient(self.http, self.session, self.codec)

        self.login_flow = LoginFlow(self.rpc, self.session)
        self.browse = BrowseFlow(self.rpc)
        self.payment = PaymentFlow(self.rpc)

    async def __aenter__(self) -> "AsyncFusePay":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def authenticated(self) -> bool:
        return self.session.phase == Phase.AUTHENTICATED

    async def login(self, email: str, password: str) -> FlowResult[list[Card]]:
        """Run the full handshake, then fetch cards and select the first one."""
        result = await self.login_flow.login(email, password)
        if not result.ok:
            return result  # type: ignore[return-value]
        return await self.browse.load_cards()

    async def cards(self) -> FlowResult[list[Card]]:
        return await self.browse.load_cards()

    def select_card(self, card_id: Any) -> Card:
        return self.browse.select(card_id)

    async def bill(self, bill_number: str) -> FlowResult[Bill]:
        return await self.browse.load_bill(bill_number)

    async def pay(self, card: Optional[Card] = None, bill: Optional[Bill] = None) -> FlowResult[Any]:
        """Pay the fetched bill with the selected card (or the ones given)."""
        return await self.payment.pay(card or self.browse.selected_card, bill or self.browse.bill)

    @property
    def payment_status(self) -> Optional[PaymentStatus]:
        return self.payment.status

    def logout(self) -> None:
        """Discard the session key, token and everything fetched with them."""
        self.session.reset()
        self.login_flow.forget()
        self.browse.clear()
        self.payment.status = None
        self.payment.result = None

    async def close(self) -> None:
        self.logout()
        await self.http.close()


class FusePay:
    """Sync wrapper around AsyncFusePay. Runs the event loop internally."""

    def __init__(self, **kwargs: Any):
        self._async = AsyncFusePay(**kwargs)
        self._loop = asyncio.new_event_loop()

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    def __enter__(self) -> "FusePay":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @property
    def session(self) -> SessionManager:
        return self._async.session

    @property
    def browse(self) -> BrowseFlow:
        return self._async.browse

    @property
    def phase(self) -> Phase:
        return self._async.phase

    @property
    def payment_status(self) -> Optional[PaymentStatus]:
        return self._async.payment_status

    def login(self, email: str, password: str) -> FlowResult[list[Card]]:
        return self._run(self._async.login(email, password))

    def cards(self) -> FlowResult[list[Card]]:
        return self._run(self._async.cards())

    def select_card(self, card_id: Any) -> Card:
        return self._async.select_card(card_id)

    def bill(self, bill_number: str) -> FlowResult[Bill]:
        return self._run(self._async.bill(bill_number))

    def pay(self, card: Optional[Card] = None, bill: Optional[Bill] = None) -> FlowResult[Any]:
        return self._run(self._async.pay(card, bill))

    def logout(self) -> None:
        self._async.logout()

    def close(self) -> None:
        try:
            self._run(self._async.close())
        finally:
            self._loop.close()
