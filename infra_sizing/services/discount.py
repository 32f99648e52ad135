"""
Discount and total aggregation.
Applies a single scoped discount to resolved subtotals and derives the
monthly and multi-year totals.
"""
from typing import Optional, Tuple
import logging

from infra_sizing.domain.pricing_models import (
    CostTotals,
    Discount,
    DiscountScope,
    DiscountType,
)


logger = logging.getLogger(__name__)


def scoped_subtotal(
    scope: DiscountScope,
    license_subtotal: float,
    addons_subtotal: float,
    services_subtotal: float,
    infrastructure_subtotal: float,
) -> float:
    """Return the subtotal a discount scope applies to."""
    if scope == DiscountScope.LICENSE_ONLY:
        return license_subtotal
    if scope == DiscountScope.ADD_ONS_ONLY:
        return addons_subtotal
    if scope == DiscountScope.SERVICES_ONLY:
        return services_subtotal
    return license_subtotal + addons_subtotal + services_subtotal + infrastructure_subtotal


def describe_discount(discount: Discount) -> str:
    """Human-readable description, e.g. "10% discount on Total"."""
    if discount.type == DiscountType.PERCENTAGE:
        text = f"{discount.value:g}% discount on {discount.scope.display_name}"
    elif float(discount.value).is_integer():
        text = f"${discount.value:,.0f} discount on {discount.scope.display_name}"
    else:
        text = f"${discount.value:,.2f} discount on {discount.scope.display_name}"
    if discount.notes:
        text += f" ({discount.notes})"
    return text


def apply_discount(
    discount: Optional[Discount],
    license_subtotal: float,
    addons_subtotal: float,
    services_subtotal: float,
    infrastructure_subtotal: float,
) -> Tuple[float, Optional[str]]:
    """
    Compute the discount amount for the given subtotals.

    The amount never exceeds the subtotal it is scoped to and is never
    negative.

    Returns:
        Tuple of (discount_amount, description); (0.0, None) without a discount

    Raises:
        ConfigurationError: If the discount value is invalid
    """
    if discount is None:
        return 0.0, None

    discount.validate()
    base = scoped_subtotal(
        discount.scope, license_subtotal, addons_subtotal, services_subtotal, infrastructure_subtotal
    )
    if discount.type == DiscountType.PERCENTAGE:
        amount = base * discount.value / 100
    else:
        amount = discount.value
    amount = max(0.0, min(amount, base))

    if discount.type == DiscountType.FIXED_AMOUNT and amount < discount.value:
        logger.info(
            f"Fixed discount of {discount.value:.2f} capped at {amount:.2f} "
            f"({discount.scope.value} subtotal)"
        )
    return amount, describe_discount(discount)


def aggregate_totals(
    license_subtotal: float,
    addons_subtotal: float,
    services_subtotal: float,
    infrastructure_subtotal: float,
    discount: Optional[Discount] = None,
) -> CostTotals:
    """Roll subtotals and the discount into annual, monthly and multi-year totals."""
    amount, description = apply_discount(
        discount, license_subtotal, addons_subtotal, services_subtotal, infrastructure_subtotal
    )
    return CostTotals(
        license_subtotal=license_subtotal,
        addons_subtotal=addons_subtotal,
        services_subtotal=services_subtotal,
        infrastructure_subtotal=infrastructure_subtotal,
        discount_amount=amount,
        discount_description=description,
    )
