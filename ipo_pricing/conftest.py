from dataclasses import replace
from typing import Callable, Optional

import pytest

from ipo_pricing.domain.types import CAPITAL_INTENSIVE
from ipo_pricing.domain.types import Comparable
from ipo_pricing.domain.types import DealAssumptions
from ipo_pricing.domain.types import HIGH_GROWTH
from ipo_pricing.domain.types import Holder
from ipo_pricing.domain.types import InvestorOrder
from ipo_pricing.domain.types import MATURE
from ipo_pricing.domain.types import OrderBookTier
from ipo_pricing.domain.types import PipelineAsset
from ipo_pricing.domain.types import PRE_REVENUE
from ipo_pricing.domain.types import PricingRow
from ipo_pricing.domain.types import SectorBenchmarks


@pytest.fixture
def mature_deal() -> DealAssumptions:
  """Dollar-denominated mature deal with holders, book and benchmarks."""
  return DealAssumptions(
      company_name='Acme Industrial',
      classification=MATURE,
      pre_ipo_shares=100.0,
      holders=(
          Holder('Founder', 40.0, 'founder', voting_multiple=10.0,
                 secondary_fraction=0.10),
          Holder('Venture Fund', 50.0, 'investor', secondary_fraction=0.20),
          Holder('Option Pool', 10.0, 'option_pool'),
      ),
      current_revenue=500.0,
      revenue_growth_rates=(0.10, 0.08, 0.06),
      current_ebitda=100.0,
      ebitda_margin=0.20,
      target_ebitda_margin=0.25,
      cash=50.0,
      debt=100.0,
      discount_rate=0.10,
      terminal_growth_rate=0.03,
      tax_rate=0.25,
      comparables=(
          Comparable('Peer A', ev_revenue=3.0, ev_ebitda=12.0),
          Comparable('Peer B', ev_revenue=4.0, ev_ebitda=14.0),
          Comparable('Peer C', ev_revenue=5.0, ev_ebitda=None),
      ),
      primary_raise=200.0,
      greenshoe_percent=0.15,
      underwriting_fee=0.07,
      price_range_low=18.0,
      price_range_high=22.0,
      order_book=(
          OrderBookTier(22.0, 3.0),
          OrderBookTier(20.0, 6.0),
          OrderBookTier(18.0, 10.0),
      ),
      investor_orders=(
          InvestorOrder('Anchor Capital', 60.0, max_price=21.0),
          InvestorOrder('Long Only Fund', 40.0),
      ),
      benchmarks=SectorBenchmarks(median=0.15, average=0.18),
  )


@pytest.fixture
def growth_deal() -> DealAssumptions:
  """Share-denominated high-growth deal with decelerating growth."""
  return DealAssumptions(
      company_name='Rocket Software',
      classification=HIGH_GROWTH,
      pre_ipo_shares=200.0,
      holders=(
          Holder('Founders', 120.0, 'founder'),
          Holder('Growth Fund', 80.0, 'investor'),
      ),
      current_revenue=100.0,
      revenue_growth_rates=(0.40, 0.30),
      current_ebitda=-10.0,
      ebitda_margin=-0.10,
      target_ebitda_margin=0.20,
      cash=150.0,
      discount_rate=0.12,
      terminal_growth_rate=0.04,
      tax_rate=0.21,
      comparables=(
          Comparable('SaaS A', ev_revenue=8.0),
          Comparable('SaaS B', ev_revenue=10.0),
      ),
      primary_shares=20.0,
      price_range_low=14.0,
      price_range_high=16.0,
  )


@pytest.fixture
def industrial_deal(mature_deal) -> DealAssumptions:
  """Capital-intensive variant of the mature deal."""
  return replace(mature_deal,
                 company_name='Heavy Metals',
                 classification=CAPITAL_INTENSIVE)


@pytest.fixture
def biotech_deal() -> DealAssumptions:
  """Pre-revenue deal with two pipeline assets and a binary catalyst."""
  return DealAssumptions(
      company_name='Helix Therapeutics',
      classification=PRE_REVENUE,
      pre_ipo_shares=50.0,
      holders=(
          Holder('Founders', 15.0, 'founder'),
          Holder('Crossover Fund', 35.0, 'investor', secondary_fraction=0.1),
      ),
      cash=120.0,
      discount_rate=0.12,
      tax_rate=0.15,
      pipeline_assets=(
          PipelineAsset('HLX-101', 0.6, 800.0, 2027, 'Phase 3'),
          PipelineAsset('HLX-202', 0.2, 1500.0, 2030, 'Phase 1'),
      ),
      valuation_year=2025,
      primary_raise=150.0,
      price_range_low=15.0,
      price_range_high=17.0,
      has_binary_catalyst=True,
      months_to_catalyst=6.0,
      last_private_round_price=20.0,
      down_round_optics=True,
      down_round_penalty=0.22,
      peer_ev_to_rnpv=0.8,
      benchmarks=SectorBenchmarks(median=-0.02),
  )


@pytest.fixture
def deal_payload() -> dict:
  """camelCase payload as produced by upstream extraction."""
  return {
      'companyName': 'Acme Industrial',
      'classification': 'industrial',
      'preIpoShares': 100,
      'holders': [
          {
              'name': 'Founder',
              'shares': 60,
              'holderType': 'founder',
              'votingMultiple': 10,
              'secondaryFraction': 0.1,
          },
          {
              'name': 'Venture Fund',
              'shares': 40,
              'holderType': 'investor'
          },
      ],
      'currentRevenue': 500,
      'revenueGrowthRates': [0.1, 0.08],
      'currentEbitda': 100,
      'ebitdaMargin': 0.2,
      'targetEbitdaMargin': 0.25,
      'cash': 50,
      'debt': 100,
      'discountRate': 0.1,
      'terminalGrowthRate': 0.03,
      'taxRate': 0.25,
      'comparables': [{
          'name': 'Peer A',
          'evRevenue': 3.0,
          'evEbitda': 12.0
      }],
      'primaryRaise': 200,
      'greenshoePercent': 0.15,
      'underwritingFee': 0.07,
      'priceRangeLow': 18,
      'priceRangeHigh': 22,
      'orderBook': [{
          'priceLevel': 20,
          'oversubscription': 6
      }, {
          'priceLevel': 22,
          'oversubscription': 3
      }],
      'benchmarks': {
          'median': 0.15
      },
      'dualClass': True,
      'dualClassDiscount': 0.06,
  }


def _make_row(
    price: float,
    effective_oversubscription: float = 1.0,
    warnings: Optional[list[str]] = None,
) -> PricingRow:
  return PricingRow(
      offer_price=price,
      primary_shares=10.0,
      secondary_shares=0.0,
      greenshoe_shares=0.0,
      total_shares_sold=10.0,
      dilutive_shares=10.0,
      fd_shares_post=110.0,
      public_float=10.0,
      dilution=10.0 / 110.0,
      market_cap=110.0 * price,
      post_ipo_cash=0.0,
      post_ipo_debt=0.0,
      enterprise_value=110.0 * price,
      implied_pre_ipo_valuation=100.0 * price,
      ev_to_revenue=None,
      ev_to_ebitda=None,
      ev_to_rnpv=None,
      peer_ev_revenue=None,
      vs_peer_ev_revenue=None,
      vs_peer_ev_ebitda=None,
      vs_peer_ev_rnpv=None,
      growth_decel_penalty=0.0,
      fair_value_support=None,
      gross_primary_proceeds=10.0 * price,
      gross_greenshoe_proceeds=0.0,
      gross_secondary_proceeds=0.0,
      gross_proceeds=10.0 * price,
      net_issuer_proceeds=10.0 * price,
      net_seller_proceeds=0.0,
      oversubscription=effective_oversubscription,
      effective_oversubscription=effective_oversubscription,
      order_book_tier=None,
      investors_dropping=(),
      demand_lost=0.0,
      down_round_percent=None,
      is_down_round=False,
      founder_ownership=0.0,
      founder_voting_power=0.0,
      ownership_total=1.0,
      baseline_return=None,
      book_quality_adjustment=0.0,
      valuation_penalty=0.0,
      secondary_discount=0.0,
      catalyst_discount=0.0,
      down_round_discount=0.0,
      dual_class_discount=0.0,
      concentration_discount=0.0,
      adjusted_return=None,
      warnings=warnings or [],
  )


@pytest.fixture
def make_row() -> Callable[..., PricingRow]:
  """Factory for minimal pricing rows."""
  return _make_row
