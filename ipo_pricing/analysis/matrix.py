"""
Pricing matrix generation.

Builds the candidate price grid from the filed range (extended to cover every
order-book tier) and recomputes share mechanics, ownership, demand, multiples
and the expected day-one return from scratch at each price. The valuation is
computed once per analysis and reused unchanged for every row.
"""

import logging
import math
from typing import Optional

from ipo_pricing.analysis.day_one import DayOneReturnEstimator
from ipo_pricing.domain.types import DealAssumptions, OrderBookTier
from ipo_pricing.domain.types import PricingRow, ValuationOutcome
from ipo_pricing.engine.demand import compute_demand
from ipo_pricing.engine.ownership import compute_ownership
from ipo_pricing.engine.ownership import ownership_warnings
from ipo_pricing.engine.ownership import OwnershipTable
from ipo_pricing.engine.shares import compute_share_mechanics
from ipo_pricing.policies.adjustments import AdjustmentTerm
from ipo_pricing.policies.adjustments import down_round_gap
from ipo_pricing.policies.adjustments import ReturnContext
from ipo_pricing.scenarios.config import PricingConfig
from ipo_pricing.tracing import resolve_trace
from ipo_pricing.tracing import TraceFn

logger = logging.getLogger(__name__)

PRICE_EPS = 1e-9


def _frange(start: float, stop: float, step: float) -> list[float]:
  """
  Inclusive float range with rounding.

  Args:
      start: Start value
      stop: Stop value (inclusive, never exceeded)
      step: Step size

  Returns:
      List of floats from start up to stop
  """
  if step <= 0:
    raise ValueError('step must be > 0')
  n = int(math.floor((stop - start) / step + PRICE_EPS))
  if n < 0:
    return []
  return [round(start + k * step, 12) for k in range(n + 1)]


def build_price_grid(
    low: float,
    high: float,
    order_book: tuple[OrderBookTier, ...] = (),
    step: float = 1.0,
) -> list[float]:
  """
  Candidate offer prices, ascending.

  The grid spans min(low, lowest tier) to max(high, highest tier) in step
  increments and always contains the filed bounds and every tier level.
  Non-positive prices are dropped and near-duplicates removed.

  Args:
    low: Filed range low
    high: Filed range high
    order_book: Order-book tiers
    step: Grid spacing

  Returns:
    Sorted list of unique positive prices
  """
  levels = [t.price_level for t in order_book]
  start = min([low] + levels)
  stop = max([high] + levels)

  candidates = _frange(start, stop, step) + [low, high] + levels
  grid: list[float] = []
  for price in sorted(p for p in candidates if p > 0):
    if not grid or price - grid[-1] > PRICE_EPS:
      grid.append(price)
  return grid


def growth_deceleration(deal: DealAssumptions) -> float:
  """
  Peer-multiple compression implied by decelerating growth.

  Returns 1 - g2/g1 when the first two growth rates are positive and
  growth slows, else 0.
  """
  rates = deal.revenue_growth_rates
  if len(rates) < 2 or rates[0] <= 0 or rates[1] <= 0:
    return 0.0
  return max(0.0, 1.0 - rates[1] / rates[0])


def _ratio(numerator: float, denominator: Optional[float]) -> Optional[float]:
  if denominator is None or denominator <= 0:
    return None
  return numerator / denominator


def _vs_peer(multiple: Optional[float],
             peer: Optional[float]) -> Optional[float]:
  if multiple is None or peer is None or peer <= 0:
    return None
  return (multiple - peer) / peer


class PricingMatrixBuilder:
  """
  Build one PricingRow per candidate price.

  Every row is derived independently from the deal, the configuration and the
  shared valuation, so no row is ever scaled from another.
  """

  def __init__(
      self,
      deal: DealAssumptions,
      config: PricingConfig,
      valuation: ValuationOutcome,
      terms: dict[str, AdjustmentTerm],
      trace: Optional[TraceFn] = None,
  ):
    """
    Initialize matrix builder.

    Args:
        deal: Validated deal assumptions with a filed price range
        config: Pricing configuration
        valuation: Valuation computed once for this analysis
        terms: Active day-one return terms
        trace: Optional trace callback
    """
    self.deal = deal
    self.config = config
    self.valuation = valuation
    self.estimator = DayOneReturnEstimator(terms)
    self.trace = resolve_trace(trace)

    self.decel_penalty = (growth_deceleration(deal)
                          if config.growth_deceleration else 0.0)
    peer = deal.peer_median_ev_revenue
    self.peer_ev_revenue = (peer * (1.0 - self.decel_penalty)
                            if peer is not None else None)

  def price_grid(self) -> list[float]:
    return build_price_grid(self.deal.price_range_low,
                            self.deal.price_range_high, self.deal.order_book,
                            self.config.price_step)

  def build(self) -> list[PricingRow]:
    """
    Build the full matrix.

    Returns:
        Rows ascending by offer price
    """
    grid = self.price_grid()
    logger.info('Building pricing matrix: %d prices from $%.2f to $%.2f',
                len(grid), grid[0], grid[-1])
    self.trace('price_grid', {'prices': grid, 'step': self.config.price_step})
    return [self.build_row(price) for price in grid]

  def ownership_at(self, offer_price: float) -> OwnershipTable:
    """Ownership table at one offer price."""
    mech = self._mechanics(offer_price)
    return compute_ownership(self.deal.holders, self.deal.pre_ipo_shares,
                             mech.dilutive_shares, self.deal.dual_class)

  def _mechanics(self, offer_price: float):
    deal = self.deal
    return compute_share_mechanics(
        offer_price=offer_price,
        pre_ipo_shares=deal.pre_ipo_shares,
        holders=deal.holders,
        primary_raise=deal.primary_raise,
        primary_shares=deal.primary_shares,
        secondary_shares=deal.secondary_shares,
        secondary_raise=deal.secondary_raise,
        greenshoe_percent=deal.greenshoe_percent,
        greenshoe_shares=deal.greenshoe_shares,
        greenshoe_base=self.config.greenshoe_base,
        underwriting_fee=deal.underwriting_fee,
        cash=deal.cash,
        debt=deal.debt,
        debt_repayment=deal.debt_repayment,
    )

  def build_row(self, offer_price: float) -> PricingRow:
    """
    Compose every metric at one offer price.

    Args:
        offer_price: Candidate offer price (> 0)

    Returns:
        PricingRow with row-level warnings
    """
    deal = self.deal
    fv = self.valuation.fair_value_per_share

    mech = self._mechanics(offer_price)
    demand = compute_demand(deal.order_book, deal.investor_orders,
                            offer_price, mech.gross_proceeds)
    table = compute_ownership(deal.holders, deal.pre_ipo_shares,
                              mech.dilutive_shares, deal.dual_class)

    ev = mech.enterprise_value
    ev_to_revenue = _ratio(ev, deal.forward_revenue)
    ev_to_ebitda = _ratio(ev, deal.current_ebitda)
    ev_to_rnpv = _ratio(ev, self.valuation.total_rnpv)

    gap = down_round_gap(offer_price, deal.last_private_round_price)
    is_down_round = gap is not None and gap < 0

    ctx = ReturnContext(
        deal=deal,
        offer_price=offer_price,
        fair_value_per_share=fv,
        effective_oversubscription=demand.effective_oversubscription,
        secondary_shares=mech.secondary_shares,
        total_shares_sold=mech.total_shares_sold,
        down_round_percent=gap,
    )
    day_one = self.estimator.estimate(ctx)
    terms = day_one.diag

    warnings: list[str] = []
    if mech.dilution >= 1.0:
      warnings.append(f'Dilution of {mech.dilution * 100:.1f}% is at or '
                      f'above 100%')
    if deal.holders:
      warnings.extend(
          ownership_warnings(table, self.config.ownership_tolerance,
                             deal.founder_ownership_floor))
    if fv > 0 and offer_price >= fv:
      warnings.append(f'Offer price ${offer_price:.2f} is at or above fair '
                      f'value ${fv:.2f}')
    if (demand.has_order_book and demand.effective_oversubscription <
        self.config.weak_coverage_threshold):
      warnings.append(f'Weak demand: effective oversubscription '
                      f'{demand.effective_oversubscription:.2f}x')
    if is_down_round:
      warnings.append(f'Down-round: offer ${offer_price:.2f} is '
                      f'{abs(gap) * 100:.1f}% below last private round '
                      f'${deal.last_private_round_price:.2f}')
    warnings.extend(terms['warnings'])

    row = PricingRow(
        offer_price=offer_price,
        primary_shares=mech.primary_shares,
        secondary_shares=mech.secondary_shares,
        greenshoe_shares=mech.greenshoe_shares,
        total_shares_sold=mech.total_shares_sold,
        dilutive_shares=mech.dilutive_shares,
        fd_shares_post=mech.fd_shares_post,
        public_float=table.public_float,
        dilution=mech.dilution,
        market_cap=mech.market_cap,
        post_ipo_cash=mech.post_ipo_cash,
        post_ipo_debt=mech.post_ipo_debt,
        enterprise_value=ev,
        implied_pre_ipo_valuation=offer_price * deal.pre_ipo_shares,
        ev_to_revenue=ev_to_revenue,
        ev_to_ebitda=ev_to_ebitda,
        ev_to_rnpv=ev_to_rnpv,
        peer_ev_revenue=self.peer_ev_revenue,
        vs_peer_ev_revenue=_vs_peer(ev_to_revenue, self.peer_ev_revenue),
        vs_peer_ev_ebitda=_vs_peer(ev_to_ebitda, deal.peer_median_ev_ebitda),
        vs_peer_ev_rnpv=_vs_peer(ev_to_rnpv, deal.peer_ev_to_rnpv),
        growth_decel_penalty=self.decel_penalty,
        fair_value_support=_ratio(offer_price, fv),
        gross_primary_proceeds=mech.gross_primary_proceeds,
        gross_greenshoe_proceeds=mech.gross_greenshoe_proceeds,
        gross_secondary_proceeds=mech.gross_secondary_proceeds,
        gross_proceeds=mech.gross_proceeds,
        net_issuer_proceeds=mech.net_issuer_proceeds,
        net_seller_proceeds=mech.net_seller_proceeds,
        oversubscription=demand.oversubscription,
        effective_oversubscription=demand.effective_oversubscription,
        order_book_tier=demand.tier_label,
        investors_dropping=demand.investors_dropping,
        demand_lost=demand.demand_lost,
        down_round_percent=gap,
        is_down_round=is_down_round,
        founder_ownership=table.founder_ownership,
        founder_voting_power=table.founder_voting_power,
        ownership_total=table.total_ownership,
        baseline_return=terms['baseline_return'],
        book_quality_adjustment=terms['book_quality_adjustment'],
        valuation_penalty=terms['valuation_penalty'],
        secondary_discount=terms['secondary_discount'],
        catalyst_discount=terms['catalyst_discount'],
        down_round_discount=terms['down_round_discount'],
        dual_class_discount=terms['dual_class_discount'],
        concentration_discount=terms['concentration_discount'],
        adjusted_return=day_one.value,
        warnings=warnings,
    )
    self.trace(
        'pricing_row', {
            'offer_price': offer_price,
            'dilution': row.dilution,
            'gross_proceeds': row.gross_proceeds,
            'effective_oversubscription': row.effective_oversubscription,
            'adjusted_return': row.adjusted_return,
        })
    return row
