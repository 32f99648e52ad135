"""
Tiered bracket resolution.
Finds the bracket containing a quantity and prices it per pack or flat.
"""
from typing import Sequence
import logging
import math

from infra_sizing.domain.errors import ConfigurationError
from infra_sizing.domain.pricing_models import BracketResolution, TierBracket


logger = logging.getLogger(__name__)


def validate_brackets(brackets: Sequence[TierBracket], field_name: str = "brackets") -> None:
    """
    Check that brackets are ordered, contiguous and non-overlapping.

    Raises:
        ConfigurationError: If the list is empty or malformed.
    """
    if not brackets:
        raise ConfigurationError(field_name, "At least one bracket is required")

    for index, bracket in enumerate(brackets):
        if bracket.pack_size <= 0:
            raise ConfigurationError(f"{field_name}[{index}].pack_size", "Pack size must be positive")
        if bracket.max_quantity is not None and bracket.max_quantity < bracket.min_quantity:
            raise ConfigurationError(
                f"{field_name}[{index}]",
                f"Bracket max {bracket.max_quantity} is below its min {bracket.min_quantity}"
            )
        if index == 0:
            continue
        previous = brackets[index - 1]
        if previous.max_quantity is None:
            raise ConfigurationError(
                f"{field_name}[{index - 1}]",
                "Only the last bracket may be open-ended"
            )
        if bracket.min_quantity != previous.max_quantity + 1:
            raise ConfigurationError(
                f"{field_name}[{index}]",
                f"Bracket starting at {bracket.min_quantity} does not continue from {previous.max_quantity}"
            )


def resolve_bracket(quantity: float, brackets: Sequence[TierBracket]) -> BracketResolution:
    """
    Resolve a quantity against an ordered bracket list.

    Picks the first bracket with min <= quantity <= max. Quantities above every
    maximum use the last bracket. Quantities below the first minimum also use
    the first bracket, since there is nothing cheaper to fall back to.

    Args:
        quantity: Units to price (users, AOs, volume)
        brackets: Ordered, non-overlapping brackets

    Returns:
        BracketResolution with the chosen bracket, pack count and amount

    Raises:
        ConfigurationError: If the bracket list is empty or quantity is negative
    """
    if not brackets:
        raise ConfigurationError("brackets", "At least one bracket is required")
    if quantity < 0:
        raise ConfigurationError("quantity", "Quantity cannot be negative")

    chosen = None
    for bracket in brackets:
        if bracket.contains(quantity):
            chosen = bracket
            break
    if chosen is None:
        chosen = brackets[-1] if quantity > brackets[0].min_quantity else brackets[0]

    if chosen.pack_size <= 0:
        raise ConfigurationError("brackets.pack_size", "Pack size must be positive")
    pack_count = int(math.ceil(quantity / chosen.pack_size))

    if chosen.is_flat:
        amount = chosen.flat_amount
    else:
        amount = pack_count * chosen.price_per_pack

    logger.debug(
        f"Resolved quantity {quantity} to bracket {chosen.label}: "
        f"{pack_count} pack(s), amount {amount:.2f}"
    )
    return BracketResolution(bracket=chosen, pack_count=pack_count, amount=amount)
