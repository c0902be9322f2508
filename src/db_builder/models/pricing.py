"""Pricing plan and campaign catalog models.

Pure configuration data managed by admins; prices are computed client-side
by ``db_builder.pricing``.
"""

from enum import Enum

from pydantic import Field

from db_builder.models.base import WireModel


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_TRIAL = "free_trial"


class ApplicableDuration(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    BOTH = "both"


class CycleDiscount(WireModel):
    """Billing-cycle specific override of a campaign's discount."""

    type: DiscountType
    value: float


class CampaignConditions(WireModel):
    min_subscription_months: int | None = None
    new_users_only: bool | None = None
    max_usage_per_user: int | None = None


class Campaign(WireModel):
    """Time-bounded discount rule applicable to one or more plans."""

    id: str
    name: str
    description: str = ""
    discount_type: DiscountType
    discount_value: float = 0
    applicable_duration: ApplicableDuration = ApplicableDuration.BOTH
    free_trial_months: int | None = None
    auto_charge_after_trial: bool | None = None
    monthly_discount: CycleDiscount | None = None
    yearly_discount: CycleDiscount | None = None
    is_active: bool = True
    start_date: str = ""
    end_date: str = ""
    applicable_plans: list[str] = Field(default_factory=list)
    created_at: str = ""
    conditions: CampaignConditions | None = None


class PlanType(str, Enum):
    GENERAL = "general"
    CUSTOM = "custom"


class PricingPlan(WireModel):
    id: str
    name: str
    price: float
    currency: str = "TRY"
    duration: BillingCycle = BillingCycle.MONTHLY
    max_projects: int = 0
    max_tables: int = 0
    features: list[str] = Field(default_factory=list)
    is_active: bool = True
    plan_type: PlanType = PlanType.GENERAL
    campaign_id: str | None = None
    yearly_price: float | None = None
    setup_fee: float | None = None
    trial_days: int | None = None
