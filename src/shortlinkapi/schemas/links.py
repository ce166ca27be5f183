from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

from shortlinkapi.core.link_rules import ensure_utc


class CreateLinkRequest(BaseModel):
    # Scheme is optional here; the service prepends https:// and rejects other schemes.
    original_url: str = Field(min_length=1, max_length=2048)
    custom_alias: Optional[str] = None
    title: Optional[str] = Field(default=None, max_length=100)
    expires_at: Optional[datetime] = None
    expires_in_seconds: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _one_expiry_form(self):
        if self.expires_at is not None and self.expires_in_seconds is not None:
            raise ValueError("Use either expires_at or expires_in_seconds, not both")
        return self


class UpdateLinkRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=100)
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field is required")
        if "title" in self.model_fields_set and self.title is None:
            raise ValueError("title cannot be null")
        if "is_active" in self.model_fields_set and self.is_active is None:
            raise ValueError("is_active cannot be null")
        return self


class LinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    short_code: str
    short_url: str
    custom_alias: Optional[str]
    original_url: str
    title: str
    is_active: bool
    clicks: int
    expires_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @field_validator("expires_at", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value):
        return ensure_utc(value)


class LinkListResponse(BaseModel):
    count: int
    data: list[LinkResponse]
