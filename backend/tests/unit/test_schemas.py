"""Unit tests for request schemas."""
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from league_billing.schemas.league import LeagueCreate
from league_billing.schemas.pricing import PricePreviewRequest
from league_billing.schemas.tier import TierCreate


def league(**overrides) -> LeagueCreate:
    data = {
        "league_name": "Spring Steps",
        "start_date": date(2026, 11, 1),
        "end_date": date(2026, 11, 30),
        "tier_id": uuid4(),
    }
    data.update(overrides)
    return LeagueCreate(**data)


def test_duration_is_inclusive():
    """Test that both start and end dates count."""
    assert league().duration_days == 30
    assert league(end_date=date(2026, 11, 1)).duration_days == 1


def test_participant_estimate_precedence():
    """Test explicit estimate, then max participants, then teams x 5."""
    assert league().participant_estimate == 20
    assert league(num_teams=6).participant_estimate == 30
    assert league(max_participants=40).participant_estimate == 40
    assert league(max_participants=40, estimated_participants=25).participant_estimate == 25


def test_end_before_start_rejected():
    """Test the date range check."""
    with pytest.raises(ValidationError):
        league(end_date=date(2026, 10, 31))


@pytest.mark.parametrize("days,participants", [(0, 10), (366, 10), (10, 0), (10, 10001)])
def test_preview_bounds(days, participants):
    """Test preview input bounds."""
    with pytest.raises(ValidationError):
        PricePreviewRequest(tier_id=uuid4(), duration_days=days, estimated_participants=participants)


def test_tier_name_pattern():
    """Test machine name format for tiers."""
    base = {
        "display_name": "Starter",
        "max_days": 30,
        "max_participants": 100,
        "pricing_type": "fixed",
        "fixed_price": Decimal("999"),
    }

    assert TierCreate(name="starter_2", **base).name == "starter_2"
    with pytest.raises(ValidationError):
        TierCreate(name="Starter Plan", **base)
