"""Pydantic projections of account payloads."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UserProfile(BaseModel):
    """Payload of ``GET /auth/me``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    email: str = ""
    first_name: Optional[str] = Field(None, validation_alias=AliasChoices("firstName", "first_name"))
    last_name: Optional[str] = Field(None, validation_alias=AliasChoices("lastName", "last_name"))
    organization_id: str = Field("", validation_alias=AliasChoices("organizationId", "organization_id"))
    organization_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("organizationName", "organization_name")
    )
    role: Optional[str] = None
    kyc_status: Optional[str] = Field(None, validation_alias=AliasChoices("kycStatus", "kyc_status"))
    kyb_status: Optional[str] = Field(None, validation_alias=AliasChoices("kybStatus", "kyb_status"))

    @property
    def display_name(self) -> str:
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.email or "there"


class KycRecord(BaseModel):
    """One entry of ``GET /kycs``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    status: str = ""
    type: Optional[str] = None
