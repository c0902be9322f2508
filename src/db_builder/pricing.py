"""Plan pricing with campaign discounts.

Prices are computed client-side from the plan and campaign catalogs.
``Decimal`` is used throughout so money never goes through binary floats;
final price and discount are rounded half-up to whole currency units.

Rules for ``calculate_price_with_campaign``:

- Original price: ``plan.price`` for monthly billing, ``plan.yearly_price``
  (or ten monthly payments when unset) for yearly billing.
- No campaign, or a campaign whose ``applicable_duration`` excludes the
  cycle: no discount.
- ``free_trial``: final price 0, discount = original price.
- ``percentage``: ``discount_value`` percent, overridden by the
  cycle-specific ``monthly_discount`` / ``yearly_discount`` value.
- ``fixed``: flat amount (same override), final price floored at 0.
"""

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel

from db_builder.models.pricing import (
    ApplicableDuration,
    BillingCycle,
    Campaign,
    DiscountType,
    PlanType,
    PricingPlan,
)

_HUNDRED = Decimal("100")
_YEARLY_MONTHS_CHARGED = Decimal("10")

# Plan names treated as the free tier (not offered for upgrade)
FREE_PLAN_NAMES = frozenset({"ücretsiz", "free"})


class PriceQuote(BaseModel):
    """Result of pricing one plan for one billing cycle."""

    original_price: Decimal
    final_price: Decimal
    discount: Decimal
    has_discount: bool
    campaign: Campaign | None = None


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def _to_decimal(value: float | int | Decimal) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def original_price(plan: PricingPlan, cycle: BillingCycle | str) -> Decimal:
    if BillingCycle(cycle) is BillingCycle.MONTHLY:
        return _to_decimal(plan.price)
    if plan.yearly_price:
        return _to_decimal(plan.yearly_price)
    return _to_decimal(plan.price) * _YEARLY_MONTHS_CHARGED


def campaign_applies(campaign: Campaign, cycle: BillingCycle | str) -> bool:
    duration = campaign.applicable_duration
    return duration is ApplicableDuration.BOTH or duration.value == BillingCycle(cycle).value


def get_campaign_for_plan(
    plan_id: str,
    plans: list[PricingPlan],
    campaigns: list[Campaign],
) -> Campaign | None:
    """Active campaign attached to ``plan_id`` through ``campaign_id``."""
    plan = next((p for p in plans if p.id == plan_id), None)
    if plan is None or not plan.campaign_id:
        return None
    return next(
        (c for c in campaigns if c.id == plan.campaign_id and c.is_active),
        None,
    )


def _cycle_value(campaign: Campaign, cycle: BillingCycle) -> Decimal:
    override = (
        campaign.monthly_discount
        if cycle is BillingCycle.MONTHLY
        else campaign.yearly_discount
    )
    value = override.value if override is not None else campaign.discount_value
    return _to_decimal(value)


def calculate_price_with_campaign(
    plan: PricingPlan,
    cycle: BillingCycle | str,
    campaign: Campaign | None = None,
) -> PriceQuote:
    """Price ``plan`` for ``cycle`` with ``campaign`` applied.

    Example:
        >>> plan = PricingPlan(id="basic", name="Basic", price=100)
        >>> promo = Campaign(id="c1", name="Spring", discount_type="percentage",
        ...                  discount_value=20, applicable_duration="both")
        >>> quote = calculate_price_with_campaign(plan, "monthly", promo)
        >>> (quote.final_price, quote.discount, quote.has_discount)
        (Decimal('80'), Decimal('20'), True)
    """
    cycle = BillingCycle(cycle)
    original = original_price(plan, cycle)

    if campaign is None or not campaign_applies(campaign, cycle):
        return PriceQuote(
            original_price=original,
            final_price=original,
            discount=Decimal("0"),
            has_discount=False,
        )

    if campaign.discount_type is DiscountType.FREE_TRIAL:
        final = Decimal("0")
        discount = original
    elif campaign.discount_type is DiscountType.PERCENTAGE:
        discount = original * (_cycle_value(campaign, cycle) / _HUNDRED)
        final = original - discount
    else:
        discount = _cycle_value(campaign, cycle)
        final = max(Decimal("0"), original - discount)

    return PriceQuote(
        original_price=original,
        final_price=_round(final),
        discount=_round(discount),
        has_discount=discount > 0,
        campaign=campaign,
    )


def available_plans(plans: list[PricingPlan]) -> list[PricingPlan]:
    """Plans offered for upgrade: active, general, not the free tier."""
    return [
        p
        for p in plans
        if p.plan_type is PlanType.GENERAL
        and p.is_active
        and p.name.lower() not in FREE_PLAN_NAMES
    ]


def quote_plan(
    plan_id: str,
    cycle: BillingCycle | str,
    plans: list[PricingPlan],
    campaigns: list[Campaign],
) -> PriceQuote:
    """Look up ``plan_id`` and price it with its active campaign.

    Raises:
        KeyError: If no plan has ``plan_id``.
    """
    plan = next((p for p in plans if p.id == plan_id), None)
    if plan is None:
        raise KeyError(f"Pricing plan '{plan_id}' not found")
    campaign = get_campaign_for_plan(plan_id, plans, campaigns)
    return calculate_price_with_campaign(plan, cycle, campaign)
