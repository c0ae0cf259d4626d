from dataclasses import replace
import math

import pytest

from ipo_pricing.domain.types import DealAssumptions
from ipo_pricing.domain.types import MATURE
from ipo_pricing.domain.types import OrderBookTier
from ipo_pricing.policies.adjustments import BinaryCatalyst
from ipo_pricing.policies.adjustments import BookQuality
from ipo_pricing.policies.adjustments import CustomerConcentration
from ipo_pricing.policies.adjustments import down_round_gap
from ipo_pricing.policies.adjustments import DownRound
from ipo_pricing.policies.adjustments import DualClass
from ipo_pricing.policies.adjustments import ReturnContext
from ipo_pricing.policies.adjustments import SecondaryOptics
from ipo_pricing.policies.adjustments import ValuationPenalty

BASE_DEAL = DealAssumptions(company_name='Test',
                            classification=MATURE,
                            pre_ipo_shares=100.0)


def _ctx(deal: DealAssumptions = BASE_DEAL, **kwargs) -> ReturnContext:
  fields = dict(offer_price=20.0,
                fair_value_per_share=25.0,
                effective_oversubscription=1.0,
                secondary_shares=0.0,
                total_shares_sold=10.0,
                down_round_percent=None)
  fields.update(kwargs)
  return ReturnContext(deal=deal, **fields)


class TestBookQuality:
  """Tests for BookQuality term."""

  def test_log_of_coverage(self):
    """ln(effective oversubscription) with a book."""
    deal = replace(BASE_DEAL, order_book=(OrderBookTier(20.0, 2.0),))
    result = BookQuality().compute(_ctx(deal, effective_oversubscription=2.0))

    assert result.value == pytest.approx(math.log(2.0))

  def test_weak_book_is_negative(self):
    """Below 1x the term is negative (symmetric around 1x)."""
    deal = replace(BASE_DEAL, order_book=(OrderBookTier(20.0, 0.5),))
    result = BookQuality().compute(_ctx(deal, effective_oversubscription=0.5))

    assert result.value == pytest.approx(-math.log(2.0))

  def test_no_order_book(self):
    """Omitted entirely without an order book."""
    result = BookQuality().compute(_ctx(effective_oversubscription=5.0))

    assert result.value == 0.0

  def test_non_positive_coverage(self):
    """Log undefined: zero term and a warning."""
    deal = replace(BASE_DEAL, order_book=(OrderBookTier(20.0, 0.5),))
    result = BookQuality().compute(_ctx(deal, effective_oversubscription=-0.3))

    assert result.value == 0.0
    assert len(result.diag['warnings']) == 1


class TestValuationPenalty:
  """Tests for ValuationPenalty term."""

  def test_above_fair_value(self):
    """Offer 24 vs fair value 20 costs 20%."""
    result = ValuationPenalty().compute(
        _ctx(offer_price=24.0, fair_value_per_share=20.0))

    assert result.value == pytest.approx(-0.20)

  def test_at_or_below_fair_value(self):
    """No penalty at or below fair value."""
    assert ValuationPenalty().compute(_ctx(offer_price=25.0)).value == 0.0
    assert ValuationPenalty().compute(_ctx(offer_price=18.0)).value == 0.0

  def test_non_positive_fair_value(self):
    """Undefined ratio: no penalty."""
    result = ValuationPenalty().compute(_ctx(fair_value_per_share=-3.0))

    assert result.value == 0.0


class TestSecondaryOptics:
  """Tests for SecondaryOptics term."""

  def test_negative_optics(self):
    """Secondary fraction of shares sold."""
    deal = replace(BASE_DEAL, secondary_optics='negative')
    result = SecondaryOptics().compute(
        _ctx(deal, secondary_shares=2.0, total_shares_sold=10.0))

    assert result.value == pytest.approx(0.2)

  @pytest.mark.parametrize('optics', [None, 'neutral', 'positive'])
  def test_not_flagged(self, optics):
    """Only explicit negative optics trigger the discount."""
    deal = replace(BASE_DEAL, secondary_optics=optics)
    result = SecondaryOptics().compute(_ctx(deal, secondary_shares=2.0))

    assert result.value == 0.0


class TestBinaryCatalyst:
  """Tests for BinaryCatalyst term."""

  def test_flag_and_months(self):
    """1 / months to catalyst."""
    deal = replace(BASE_DEAL, has_binary_catalyst=True, months_to_catalyst=6)

    assert BinaryCatalyst().compute(_ctx(deal)).value == pytest.approx(1 / 6)

  def test_flag_without_months(self):
    """No default month count is invented."""
    deal = replace(BASE_DEAL, has_binary_catalyst=True)

    assert BinaryCatalyst().compute(_ctx(deal)).value == 0.0

  def test_months_without_flag(self):
    """Months alone do not trigger."""
    deal = replace(BASE_DEAL, months_to_catalyst=6)

    assert BinaryCatalyst().compute(_ctx(deal)).value == 0.0


class TestDownRound:
  """Tests for DownRound term and down_round_gap."""

  def test_scenario_d(self):
    """$32 offer vs $40 last round is a 20% down-round."""
    assert down_round_gap(32.0, 40.0) == pytest.approx(-0.20)

  def test_gap_undefined(self):
    """No last round price, no gap."""
    assert down_round_gap(32.0, None) is None
    assert down_round_gap(32.0, 0.0) is None

  def test_penalty_applied(self):
    """|gap| x penalty coefficient."""
    deal = replace(BASE_DEAL, down_round_optics=True, down_round_penalty=0.5)
    result = DownRound().compute(_ctx(deal, down_round_percent=-0.20))

    assert result.value == pytest.approx(0.10)

  def test_optics_not_flagged(self):
    """Down-round without optics flag carries no discount."""
    deal = replace(BASE_DEAL, down_round_penalty=0.5)
    result = DownRound().compute(_ctx(deal, down_round_percent=-0.20))

    assert result.value == 0.0

  def test_no_penalty_coefficient(self):
    """No default coefficient is invented."""
    deal = replace(BASE_DEAL, down_round_optics=True)
    result = DownRound().compute(_ctx(deal, down_round_percent=-0.20))

    assert result.value == 0.0

  def test_up_round(self):
    """Pricing above the last round is not a down-round."""
    deal = replace(BASE_DEAL, down_round_optics=True, down_round_penalty=0.5)
    result = DownRound().compute(_ctx(deal, down_round_percent=0.10))

    assert result.value == 0.0


class TestDualClass:
  """Tests for DualClass term."""

  def test_pass_through(self):
    """Caller-supplied coefficient passes through."""
    deal = replace(BASE_DEAL, dual_class=True, dual_class_discount=0.06)

    assert DualClass().compute(_ctx(deal)).value == pytest.approx(0.06)

  def test_single_class(self):
    """Coefficient ignored without a dual-class structure."""
    deal = replace(BASE_DEAL, dual_class_discount=0.06)

    assert DualClass().compute(_ctx(deal)).value == 0.0


class TestCustomerConcentration:
  """Tests for CustomerConcentration term."""

  def test_excess_over_threshold(self):
    """47% concentration is 7 points over 40%."""
    deal = replace(BASE_DEAL, customer_concentration=0.47)

    assert CustomerConcentration().compute(
        _ctx(deal)).value == pytest.approx(0.07)

  def test_below_threshold(self):
    """At or below the threshold there is no discount."""
    deal = replace(BASE_DEAL, customer_concentration=0.40)

    assert CustomerConcentration().compute(_ctx(deal)).value == 0.0
    assert CustomerConcentration().compute(_ctx()).value == 0.0

  def test_custom_threshold(self):
    """Threshold is configurable."""
    deal = replace(BASE_DEAL, customer_concentration=0.47)
    term = CustomerConcentration(threshold=0.30)

    assert term.compute(_ctx(deal)).value == pytest.approx(0.17)
