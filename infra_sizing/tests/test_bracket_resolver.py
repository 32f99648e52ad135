"""
Tests for tiered bracket resolution.
"""

import pytest

from infra_sizing.domain.errors import ConfigurationError
from infra_sizing.domain.pricing_models import TierBracket
from infra_sizing.services.bracket_resolver import resolve_bracket, validate_brackets
from infra_sizing.services.pricing_tables import APPSHIELD_BRACKETS, O11_RATES


BRACKETS = (
    TierBracket(0, 100, price_per_pack=10.0, pack_size=10),
    TierBracket(101, 1000, price_per_pack=8.0, pack_size=10),
    TierBracket(1001, 5000, price_per_pack=5.0, pack_size=100),
)


def test_first_matching_bracket_wins():
    """Quantity resolves to the bracket containing it."""
    resolution = resolve_bracket(250, BRACKETS)
    assert resolution.bracket is BRACKETS[1]
    assert resolution.pack_count == 25
    assert resolution.amount == pytest.approx(200.0)


def test_bracket_bounds_inclusive():
    """Both bracket bounds are inclusive."""
    assert resolve_bracket(100, BRACKETS).bracket is BRACKETS[0]
    assert resolve_bracket(101, BRACKETS).bracket is BRACKETS[1]


def test_partial_pack_rounds_up():
    """Partial packs are charged as whole packs."""
    resolution = resolve_bracket(11, BRACKETS)
    assert resolution.pack_count == 2
    assert resolution.amount == pytest.approx(20.0)


def test_quantity_beyond_all_maxima_uses_last_bracket():
    """Out-of-domain quantities fall back to the last bracket."""
    resolution = resolve_bracket(9000, BRACKETS)
    assert resolution.bracket is BRACKETS[-1]
    assert resolution.pack_count == 90


def test_flat_bracket_ignores_pack_count():
    """Flat brackets charge their amount regardless of quantity."""
    assert resolve_bracket(5000, APPSHIELD_BRACKETS).amount == pytest.approx(18_150.0)
    assert resolve_bracket(75_000, APPSHIELD_BRACKETS).amount == pytest.approx(54_450.0)
    assert resolve_bracket(5_000_000, APPSHIELD_BRACKETS).amount == pytest.approx(242_000.0)


def test_resolution_is_pure():
    """Resolving twice with the same arguments gives the same result."""
    assert resolve_bracket(777, BRACKETS) == resolve_bracket(777, BRACKETS)


def test_every_quantity_matches_exactly_one_bracket():
    """Default tables partition their domain with no gaps or overlaps."""
    for brackets in (O11_RATES.internal_user_brackets, APPSHIELD_BRACKETS):
        validate_brackets(brackets)
        for quantity in range(0, 20_000, 37):
            matches = [bracket for bracket in brackets if bracket.contains(quantity)]
            assert len(matches) == 1


def test_empty_brackets_rejected():
    """An empty bracket list is a configuration error."""
    with pytest.raises(ConfigurationError):
        resolve_bracket(10, ())


def test_negative_quantity_rejected():
    """Negative quantities are rejected."""
    with pytest.raises(ConfigurationError):
        resolve_bracket(-1, BRACKETS)


@pytest.mark.parametrize("brackets", [
    (TierBracket(0, 100), TierBracket(150, None)),
    (TierBracket(0, 100), TierBracket(50, None)),
    (TierBracket(0, None), TierBracket(101, 200)),
    (TierBracket(10, 5),),
])
def test_malformed_brackets_rejected(brackets):
    """Gaps, overlaps, inner open ends and inverted ranges are rejected."""
    with pytest.raises(ConfigurationError):
        validate_brackets(brackets)
