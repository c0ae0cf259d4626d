from dataclasses import replace

import pytest

from ipo_pricing.domain.types import OrderBookTier
from ipo_pricing.run import check_price_range
from ipo_pricing.run import check_share_count
from ipo_pricing.run import run_from_payload
from ipo_pricing.run import run_pricing
from ipo_pricing.run import run_valuation
from ipo_pricing.scenarios.config import PricingConfig


class TestCheckPriceRange:
  """Tests for check_price_range function."""

  def test_valid(self, mature_deal):
    assert check_price_range(mature_deal) is None

  @pytest.mark.parametrize('low,high', [(None, 22.0), (18.0, None),
                                        (None, None), (0.0, 22.0)])
  def test_missing(self, mature_deal, low, high):
    deal = replace(mature_deal, price_range_low=low, price_range_high=high)

    assert check_price_range(deal).code == 'missing_price_range'

  @pytest.mark.parametrize('low,high', [(22.0, 18.0), (20.0, 20.0)])
  def test_inverted(self, mature_deal, low, high):
    deal = replace(mature_deal, price_range_low=low, price_range_high=high)
    error = check_price_range(deal)

    assert error.code == 'inverted_price_range'
    assert error.reason == f'Price range high ({high}) must exceed low ({low})'


class TestCheckShareCount:
  """Tests for check_share_count function."""

  def test_valid(self, mature_deal):
    assert check_share_count(mature_deal) is None

  @pytest.mark.parametrize('shares', [0.0, -5.0, float('nan'), float('inf')])
  def test_invalid(self, mature_deal, shares):
    error = check_share_count(replace(mature_deal, pre_ipo_shares=shares))

    assert error.code == 'invalid_assumptions'
    assert 'Pre-IPO share count' in error.reason


class TestRunValuation:
  """Tests for run_valuation function."""

  def test_equity_bridge(self, mature_deal):
    """Equity = EV - 100 debt + 50 cash, over 100 pre-IPO shares."""
    valuation = run_valuation(mature_deal)

    assert valuation.equity_value == pytest.approx(
        valuation.enterprise_value - 50.0)
    assert valuation.fair_value_per_share == pytest.approx(
        valuation.equity_value / 100.0)
    assert valuation.diag['valuation_fair_value_override'] is False

  def test_fair_value_override(self, mature_deal):
    deal = replace(mature_deal, fair_value_per_share=30.0)
    valuation = run_valuation(deal)

    assert valuation.fair_value_per_share == 30.0
    assert valuation.diag['valuation_fair_value_override'] is True

  def test_projection_years_from_deal(self, mature_deal):
    valuation = run_valuation(replace(mature_deal, projection_years=7))

    assert valuation.diag['valuation_n_years'] == 7

  def test_rnpv_total(self, biotech_deal):
    valuation = run_valuation(biotech_deal)

    assert valuation.total_rnpv == pytest.approx(valuation.enterprise_value)


class TestRunPricing:
  """Tests for run_pricing function."""

  def test_full_result(self, mature_deal):
    result = run_pricing(mature_deal)

    assert result.ok
    assert result.scenario == 'default'
    assert len(result.matrix) == 5
    assert result.recommendation.price == 20.0
    assert result.recommendation.policy == 'midpoint'
    assert result.recommendation.row in result.matrix
    assert sum(e.post_ipo_ownership
               for e in result.ownership) == pytest.approx(1.0)
    assert result.rationale
    assert result.valuation.methodology.startswith('Discounted Cash Flow')

  def test_deterministic(self, mature_deal):
    first = run_pricing(mature_deal)
    second = run_pricing(mature_deal)

    assert first.matrix == second.matrix
    assert first.recommendation == second.recommendation

  def test_missing_range_refused(self, mature_deal):
    deal = replace(mature_deal, price_range_low=None)
    result = run_pricing(deal)

    assert not result.ok
    assert result.error.code == 'missing_price_range'
    assert result.matrix == []
    assert result.recommendation is None
    assert result.warnings == [result.error.reason]

  def test_rate_spread_refused(self, mature_deal):
    deal = replace(mature_deal, terminal_growth_rate=0.12)
    result = run_pricing(deal)

    assert result.error.code == 'invalid_rate_spread'
    assert result.matrix == []

  def test_missing_discount_rate_refused(self, mature_deal):
    result = run_pricing(replace(mature_deal, discount_rate=None))

    assert result.error.code == 'invalid_assumptions'

  def test_zero_share_count_refused(self, mature_deal):
    """Built directly, bypassing intake: refused instead of dividing by 0."""
    result = run_pricing(replace(mature_deal, pre_ipo_shares=0.0))

    assert not result.ok
    assert result.error.code == 'invalid_assumptions'
    assert result.error.details == {'pre_ipo_shares': 0.0}
    assert result.matrix == []
    assert result.warnings == [result.error.reason]

  def test_trace_events(self, mature_deal):
    events = []
    run_pricing(mature_deal, trace=lambda name, diag: events.append(name))

    assert events[0] == 'valuation'
    assert events[1] == 'price_grid'
    assert events[-1] == 'recommendation'
    assert events.count('pricing_row') == 5

  def test_refusal_traced(self, mature_deal):
    events = []
    run_pricing(replace(mature_deal, price_range_high=None),
                trace=lambda name, diag: events.append((name, diag)))

    assert events == [('pricing_refused', {
        'code': 'missing_price_range',
        'reason': events[0][1]['reason']
    })]

  def test_auto_policy_from_priority(self, mature_deal):
    """Deal-certainty: $18 is the first price with >= 2x coverage."""
    deal = replace(mature_deal, management_priority='deal_certainty')
    result = run_pricing(deal)

    assert result.recommendation.policy == 'deal_certainty'
    assert result.recommendation.price == 18.0
    assert 'Management priority: deal certainty' in result.rationale

  def test_explicit_policy_overrides_flags(self, mature_deal):
    deal = replace(mature_deal, pricing_aggressiveness='conservative')
    result = run_pricing(deal, PricingConfig(recommendation='maximum'))

    assert result.recommendation.price == 22.0

  def test_min_acceptable_price(self, mature_deal):
    deal = replace(mature_deal,
                   pricing_aggressiveness='conservative',
                   min_acceptable_price=21.0)
    result = run_pricing(deal)

    assert result.recommendation.price == 21.0
    assert 'min_acceptable_price_floor' in result.recommendation.reason

  def test_weak_book_falls_back_to_midpoint(self, mature_deal):
    deal = replace(mature_deal,
                   management_priority='runway_extension',
                   order_book=(OrderBookTier(18.0, 1.2),),
                   investor_orders=())
    result = run_pricing(deal)

    assert result.recommendation.fallback is True
    assert result.recommendation.price == 20.0

  def test_down_round_warning_at_recommended_price(self, biotech_deal):
    result = run_pricing(biotech_deal)

    assert result.ok
    assert result.recommendation.row.is_down_round
    assert any(w.startswith('Down-round: offer $16.00')
               for w in result.warnings)
    assert result.valuation.methodology == (
        'Risk-Adjusted NPV (rNPV) with Pipeline Analysis')

  def test_no_risk_overlays(self, biotech_deal):
    result = run_pricing(biotech_deal, PricingConfig.no_risk_overlays())
    row = result.recommendation.row

    assert result.scenario == 'no_risk_overlays'
    assert row.catalyst_discount == 0.0
    assert row.down_round_discount == 0.0
    assert row.adjusted_return == pytest.approx(-0.02 + row.valuation_penalty)

  def test_primary_greenshoe(self, mature_deal):
    base = run_pricing(mature_deal)
    primary = run_pricing(mature_deal, PricingConfig.primary_greenshoe())

    assert (primary.recommendation.row.greenshoe_shares <
            base.recommendation.row.greenshoe_shares)

  def test_matrix_frame(self, mature_deal):
    frame = run_pricing(mature_deal).matrix_frame()

    assert list(frame['offer_price']) == [18.0, 19.0, 20.0, 21.0, 22.0]
    assert 'adjusted_return' in frame.columns


class TestRunFromPayload:
  """Tests for run_from_payload function."""

  def test_valid_payload(self, deal_payload):
    result = run_from_payload(deal_payload)

    assert result.ok
    assert result.assumptions.company_name == 'Acme Industrial'
    assert any('Dual-class structure' in w for w in result.warnings)

  def test_invalid_payload(self, deal_payload):
    del deal_payload['preIpoShares']
    result = run_from_payload(deal_payload)

    assert not result.ok
    assert result.assumptions is None
    assert result.error.code == 'invalid_assumptions'
    assert result.error.details['errors'] == [
        '✗ pre_ipo_shares: is required'
    ]
