"""
Pydantic schemas for the rewards backend.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from rewards_backend.config_store import ConfigPatch

_DATETIME = TypeAdapter(datetime)


class GoodsItemIn(BaseModel):
    """One item of a submitted goods list. Unknown keys (``_id``, ``__v``) are dropped."""

    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., ge=-(2**63), le=2**63 - 1)
    name: str = Field(..., min_length=1)
    score: float = Field(..., allow_inf_nan=False)
    desc: str
    image: Any = None
    createdAt: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value

    @field_validator("createdAt", mode="before")
    @classmethod
    def created_at_or_none(cls, value: Any) -> Optional[datetime]:
        # Unparseable timestamps fall back to the save time instead of failing the list.
        if value is None or value == "":
            return None
        try:
            return _DATETIME.validate_python(value)
        except PydanticValidationError:
            return None

    @field_validator("createdAt")
    @classmethod
    def created_at_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class GoodsItemOut(BaseModel):
    id: int
    name: str
    score: Union[int, float]
    desc: str
    image: str
    createdAt: datetime
    updatedAt: datetime
    owner: Optional[str] = None


class GoodsListResponse(BaseModel):
    data: list[GoodsItemOut]


class SaveGoodsRequest(BaseModel):
    openid: Optional[str] = None
    goodsList: Any = None


class MessageResponse(BaseModel):
    message: str


class PublicConfig(BaseModel):
    bannerImage: str
    bannerTitle: str
    ruleList: list[str]
    updatedAt: datetime


class PublicConfigResponse(BaseModel):
    data: PublicConfig


class FullConfig(PublicConfig):
    adminSecret: str
    createdAt: datetime


class FullConfigResponse(BaseModel):
    data: FullConfig


class AdminAuthRequest(BaseModel):
    openid: Optional[str] = None
    secret: str


class ConfigWriteRequest(BaseModel):
    openid: Optional[str] = None
    secret: str
    bannerImage: Any = None
    bannerTitle: Optional[str] = None
    ruleList: Optional[list[str]] = None
    newSecret: Optional[str] = None

    def to_patch(self) -> ConfigPatch:
        """Only the keys present in the request body end up in the patch."""
        mapping = {
            "bannerImage": "banner_image",
            "bannerTitle": "banner_title",
            "ruleList": "rule_list",
        }
        fields = {
            target: getattr(self, source)
            for source, target in mapping.items()
            if source in self.model_fields_set
        }
        if self.newSecret and self.newSecret.strip():
            fields["admin_secret"] = self.newSecret
        return ConfigPatch.of(**fields)


class ResetRequest(BaseModel):
    openid: Optional[str] = None
    resetSecret: str


class UploadResponse(BaseModel):
    url: str
