"""
Card models: sealed response of POST /card/user.
"""

from typing import Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Card(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Union[int, str]
    card_name: str = ""
    cvv: Union[str, int]
    expiry_date: str
    balance: float = 0.0

    def __repr__(self) -> str:
        return f"Card(id={self.id!r}, card_name={self.card_name!r})"
