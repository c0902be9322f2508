"""User and tenant-level catalog models."""

from enum import Enum
from typing import Any

from pydantic import Field

from db_builder.models.base import WireModel


class SubscriptionType(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class User(WireModel):
    """Account with subscription tier and per-tier quotas."""

    id: str
    email: str
    name: str = ""
    created_at: str = ""
    is_active: bool = True
    is_admin: bool = False
    subscription_type: SubscriptionType = SubscriptionType.FREE
    subscription_expiry: str | None = None
    max_projects: int = 0
    max_tables: int = 0


class Tenant(WireModel):
    id: str
    name: str
    slug: str = ""
    is_active: bool = True
    settings: dict[str, Any] = Field(default_factory=dict)


class Organization(WireModel):
    id: str
    name: str
    slug: str = ""
    is_active: bool = True
    plan: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)
    limits: dict[str, Any] = Field(default_factory=dict)
