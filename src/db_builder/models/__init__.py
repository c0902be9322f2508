"""Wire models for projects, users, pricing and response envelopes.

Usage:
    from db_builder.models import Project, Table, Field, FieldType
    from db_builder.models import PricingPlan, Campaign
    from db_builder.models import ListResponse, ItemResponse
"""

from db_builder.models.api import (
    ApiResponse,
    ErrorResponse,
    ItemResponse,
    ListResponse,
    PaginatedResponse,
    Pagination,
    ResourceMetadata,
)
from db_builder.models.base import WireModel
from db_builder.models.pricing import (
    ApplicableDuration,
    BillingCycle,
    Campaign,
    CampaignConditions,
    CycleDiscount,
    DiscountType,
    PlanType,
    PricingPlan,
)
from db_builder.models.project import (
    ApiKey,
    ApiKeyPermission,
    Field,
    FieldRelationship,
    FieldType,
    FieldValidation,
    Project,
    ProjectSettings,
    RelationshipType,
    Table,
)
from db_builder.models.user import Organization, SubscriptionType, Tenant, User

__all__ = [
    # Envelopes
    "ApiResponse",
    "ErrorResponse",
    "ItemResponse",
    "ListResponse",
    "PaginatedResponse",
    "Pagination",
    "ResourceMetadata",
    "WireModel",
    # Pricing
    "ApplicableDuration",
    "BillingCycle",
    "Campaign",
    "CampaignConditions",
    "CycleDiscount",
    "DiscountType",
    "PlanType",
    "PricingPlan",
    # Projects
    "ApiKey",
    "ApiKeyPermission",
    "Field",
    "FieldRelationship",
    "FieldType",
    "FieldValidation",
    "Project",
    "ProjectSettings",
    "RelationshipType",
    "Table",
    # Users
    "Organization",
    "SubscriptionType",
    "Tenant",
    "User",
]
