from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _lower_keys(data: Any) -> Any:
    # clients send either snake_case or Go-style keys ("UUID", "Name", "Tags")
    if isinstance(data, dict):
        return {k.lower() if isinstance(k, str) else k: v for k, v in data.items()}
    return data


# ==========================
# Records (what the gateway hands back)
# ==========================
class TribeRecord(BaseModel):
    """A tribe as stored. The zero value (empty ``uuid``) means "not found"."""

    model_config = ConfigDict(from_attributes=True)

    uuid: str = ""
    owner_pub_key: str = ""
    owner_alias: str = ""
    group_key: str = ""
    name: str = ""
    unique_name: str = ""
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    img: str = ""
    price_to_join: int = 0
    price_per_message: int = 0
    escrow_amount: int = 0
    escrow_millis: int = 0
    app_url: str = ""
    feed_url: str = ""
    feed_type: int = 0
    member_count: int = 0
    last_active: int = 0
    private: bool = False
    bots: str = ""
    deleted: bool = False
    unlisted: bool = False
    preview: str = ""
    created: Optional[datetime] = None
    updated: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_never_null(cls, v):
        return v or []


class ChannelRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = 0
    tribe_uuid: str = ""
    name: str = ""
    created: Optional[datetime] = None
    deleted: bool = False


class FeatureRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    uuid: str = ""
    workspace_uuid: str = ""
    name: str = ""
    brief: str = ""
    requirements: str = ""
    architecture: str = ""
    url: str = ""
    priority: int = 0
    created_by: str = ""
    updated_by: str = ""
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


# ==========================
# Request bodies
# ==========================
class TribeIn(BaseModel):
    """Create-or-edit body. Only the keys a client sends are applied."""

    model_config = ConfigDict(extra="ignore")

    uuid: str = ""
    owner_alias: Optional[str] = None
    group_key: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    img: Optional[str] = None
    price_to_join: Optional[int] = None
    price_per_message: Optional[int] = None
    escrow_amount: Optional[int] = None
    escrow_millis: Optional[int] = None
    app_url: Optional[str] = None
    feed_url: Optional[str] = None
    feed_type: Optional[int] = None
    member_count: Optional[int] = None
    private: Optional[bool] = None
    bots: Optional[str] = None
    unlisted: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data):
        return _lower_keys(data)


class ChannelIn(BaseModel):
    tribe_uuid: str
    name: str

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v


class FeatureIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    uuid: Optional[str] = None
    workspace_uuid: Optional[str] = None
    name: Optional[str] = None
    brief: Optional[str] = None
    requirements: Optional[str] = None
    architecture: Optional[str] = None
    url: Optional[str] = None
    priority: Optional[int] = None

    @field_validator(
        "uuid", "workspace_uuid", "name", "brief", "requirements", "architecture", "url",
        mode="before",
    )
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v
