"""Pydantic projections of transfer payloads."""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class TransferRecord(BaseModel):
    """One transfer, as returned by submissions and by ``GET /transfers``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    type: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[str] = None
    currency: str = "USDC"
    recipient: Optional[str] = Field(None, validation_alias=AliasChoices("recipient", "toEmail", "toAddress"))
    sender: Optional[str] = Field(None, validation_alias=AliasChoices("sender", "fromAddress"))
    network: Optional[str] = None
    transaction_hash: Optional[str] = Field(
        None, validation_alias=AliasChoices("transactionHash", "transaction_hash")
    )
    created_at: Optional[str] = Field(None, validation_alias=AliasChoices("createdAt", "created_at"))

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _default_currency(cls, value: Any) -> str:
        return value or "USDC"


class TransferPage(BaseModel):
    """One page of transfer history."""

    items: List[TransferRecord] = []
    page: int = 1
    limit: int = 10
    count: int = 0
    has_more: bool = False

    @property
    def total_pages(self) -> int:
        if self.count <= 0:
            return self.page if self.has_more or self.items else 0
        return max((self.count + self.limit - 1) // self.limit, self.page)

    @classmethod
    def from_payload(cls, payload: Any, page: int, limit: int) -> "TransferPage":
        """
        Build a page from a ``GET /transfers`` body.

        Accepts ``{data: [...], page, limit, count, hasMore}``, the older
        ``{transfers: [...], pagination: {total, page, limit}}`` and a bare list.
        """
        if isinstance(payload, list):
            rows, meta = payload, {}
        elif isinstance(payload, dict):
            rows = payload.get("data")
            if rows is None:
                rows = payload.get("transfers", [])
            meta: Dict[str, Any] = dict(payload.get("pagination") or {})
            for key in ("page", "limit", "count", "total", "hasMore"):
                if key in payload:
                    meta.setdefault(key, payload[key])
        else:
            rows, meta = [], {}

        items = [TransferRecord.model_validate(row) for row in rows or [] if isinstance(row, dict)]
        page = int(meta.get("page") or page)
        limit = int(meta.get("limit") or limit)
        count = int(meta.get("count") or meta.get("total") or 0)
        has_more = meta.get("hasMore")
        if has_more is None:
            has_more = count > page * limit

        return cls(items=items, page=page, limit=limit, count=count, has_more=bool(has_more))
