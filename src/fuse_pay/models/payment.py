"""
Payment models: sealed request/response of POST /bill/pay/{billId}.
"""

from datetime import datetime
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from fuse_pay.models.card import Card


class PaymentStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def split_expiry(expiry_date: str) -> tuple[str, str]:
    """Split an ISO expiry date into (month, year) strings, month not zero-padded.

    "2026-03-15" -> ("3", "2026"). Timestamps such as "2026-03-15T00:00:00.000Z"
    are accepted; only the calendar date part is read.
    """
    try:
        parsed = datetime.strptime(expiry_date.strip()[:10], "%Y-%m-%d")
    except ValueError:
        raise ValueError(f"Unrecognised expiry date: {expiry_date!r}") from None
    return str(parsed.month), str(parsed.year)


class PaymentInstruction(BaseModel):
    """Wire keys are cardId, cvv, month, year."""

    model_config = ConfigDict(populate_by_name=True)

    card_id: Union[int, str] = Field(alias="cardId")
    cvv: Union[str, int]
    expiry_month: str = Field(alias="month")
    expiry_year: str = Field(alias="year")

    @classmethod
    def from_card(cls, card: Card) -> "PaymentInstruction":
        month, year = split_expiry(card.expiry_date)
        return cls(card_id=card.id, cvv=card.cvv, expiry_month=month, expiry_year=year)

    def __repr__(self) -> str:
        return f"PaymentInstruction(card_id={self.card_id!r}, month={self.expiry_month!r}, year={self.expiry_year!r})"
