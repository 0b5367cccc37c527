"""Pydantic projections of wallet payloads."""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class Wallet(BaseModel):
    """A wallet of the authenticated organization."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: Optional[str] = Field(None, validation_alias=AliasChoices("name", "walletType"))
    address: str = Field("", validation_alias=AliasChoices("address", "walletAddress"))
    network: str = ""
    is_default: bool = Field(False, validation_alias=AliasChoices("isDefault", "is_default"))

    @property
    def label(self) -> str:
        """Human readable name, e.g. ``"Main (solana)"``."""
        name = self.name or "Wallet"
        return f"{name} ({self.network})" if self.network else name


class WalletBalance(BaseModel):
    """
    Balance of one wallet.

    The API either reports ``balance`` directly or a nested ``balances``
    list of per-token entries; the first entry is used in the latter case.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    wallet_id: str = Field("", validation_alias=AliasChoices("walletId", "wallet_id", "id"))
    name: Optional[str] = None
    address: str = Field("", validation_alias=AliasChoices("address", "walletAddress"))
    network: str = ""
    balance: str = "0"
    symbol: str = "USDC"
    is_default: bool = Field(False, validation_alias=AliasChoices("isDefault", "is_default"))

    @model_validator(mode="before")
    @classmethod
    def _flatten_token_balances(cls, data: Any) -> Any:
        if isinstance(data, dict) and "balance" not in data:
            nested = data.get("balances")
            if isinstance(nested, list) and nested and isinstance(nested[0], dict):
                entry = nested[0]
                data = dict(data)
                data["balance"] = str(entry.get("balance", "0"))
                if entry.get("symbol"):
                    data["symbol"] = entry["symbol"]
                if entry.get("address") and not data.get("address") and not data.get("walletAddress"):
                    data["address"] = entry["address"]
        if isinstance(data, dict) and data.get("balance") is not None:
            data = dict(data)
            data["balance"] = str(data["balance"])
        return data

    @property
    def label(self) -> str:
        name = self.name or "Wallet"
        return f"{name} ({self.network})" if self.network else name
