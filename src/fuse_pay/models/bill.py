"""
Bill models: sealed response of POST /bill/{billId}.
"""

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class Bill(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Union[int, str]
    category: str = ""
    merchant_name: str = ""
    details: str = ""
    amount: float

    @model_validator(mode="before")
    @classmethod
    def _flatten_merchant(cls, data: Any) -> Any:
        # Backend nests the merchant as merchantAccount.user.name
        if isinstance(data, dict) and not data.get("merchantName") and not data.get("merchant_name"):
            account = data.get("merchantAccount")
            if isinstance(account, dict):
                user = account.get("user") or {}
                if isinstance(user, dict) and user.get("name"):
                    data = {**data, "merchantName": user["name"]}
        return data
