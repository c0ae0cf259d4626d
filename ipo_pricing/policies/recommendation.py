'''
Recommendation policies: pick one row of the pricing matrix.

A policy may decline to choose (value None); select_recommendation then falls
back to the row nearest the midpoint of the filed range, so a recommendation
always resolves to exactly one concrete row.
'''

from abc import ABC, abstractmethod
from collections.abc import Sequence
import logging
from typing import Optional

from ipo_pricing.domain.types import DealAssumptions, PolicyOutput
from ipo_pricing.domain.types import PricingRow, Recommendation

logger = logging.getLogger(__name__)

PRICE_EPS = 1e-9


def range_midpoint(deal: DealAssumptions) -> float:
  return (deal.price_range_low + deal.price_range_high) / 2.0


def midpoint_row(rows: Sequence[PricingRow],
                 deal: DealAssumptions) -> PricingRow:
  '''Row nearest the filed-range midpoint; ties go to the higher price.'''
  mid = range_midpoint(deal)
  return min(rows, key=lambda r: (abs(r.offer_price - mid), -r.offer_price))


def highest_row_at_or_below(rows: Sequence[PricingRow],
                            cap: float) -> PricingRow:
  '''Highest-priced row not above cap, or the lowest row if all are.'''
  below = [r for r in rows if r.offer_price <= cap + PRICE_EPS]
  return below[-1] if below else rows[0]


class RecommendationPolicy(ABC):
  '''
  Base class for recommendation policies.

  Rows are sorted by ascending offer price and never empty.
  '''

  @abstractmethod
  def compute(self, rows: Sequence[PricingRow],
              deal: DealAssumptions) -> PolicyOutput[Optional[PricingRow]]:
    '''
    Choose a row.

    Returns:
      PolicyOutput with the chosen row (None if nothing qualifies) and a
      'reason' in diag
    '''


class MaximumPrice(RecommendationPolicy):
  '''Highest price in the matrix.'''

  def compute(self, rows: Sequence[PricingRow],
              deal: DealAssumptions) -> PolicyOutput[Optional[PricingRow]]:
    return PolicyOutput(value=rows[-1], diag={'reason': 'highest_price'})


class ConservativeCoverage(RecommendationPolicy):
  '''
  Lowest price whose effective oversubscription meets a coverage bar.

  When no price meets the bar the absolute lowest price is used.
  '''

  def __init__(self, min_coverage: float = 1.0):
    self.min_coverage = min_coverage

  def compute(self, rows: Sequence[PricingRow],
              deal: DealAssumptions) -> PolicyOutput[Optional[PricingRow]]:
    for row in rows:
      if row.effective_oversubscription >= self.min_coverage:
        return PolicyOutput(value=row,
                            diag={
                                'reason': 'coverage_bar_met',
                                'min_coverage': self.min_coverage
                            })
    return PolicyOutput(value=rows[0],
                        diag={
                            'reason': 'lowest_price',
                            'min_coverage': self.min_coverage
                        })


class DealCertainty(RecommendationPolicy):
  '''
  Lowest price meeting a moderate coverage bar, capped at the midpoint.

  Used for deal-certainty and runway-extension priorities. Returns None when
  no price meets the bar.
  '''

  def __init__(self, min_coverage: float = 2.0):
    self.min_coverage = min_coverage

  def compute(self, rows: Sequence[PricingRow],
              deal: DealAssumptions) -> PolicyOutput[Optional[PricingRow]]:
    diag = {'min_coverage': self.min_coverage}
    meeting = [
        r for r in rows if r.effective_oversubscription >= self.min_coverage
    ]
    if not meeting:
      diag['reason'] = 'coverage_bar_not_met'
      return PolicyOutput(value=None, diag=diag)

    chosen = meeting[0]
    cap = range_midpoint(deal)
    if chosen.offer_price > cap + PRICE_EPS:
      diag['reason'] = 'capped_at_midpoint'
      return PolicyOutput(value=highest_row_at_or_below(rows, cap), diag=diag)

    diag['reason'] = 'coverage_bar_met'
    return PolicyOutput(value=chosen, diag=diag)


class RangeMidpoint(RecommendationPolicy):
  '''Price nearest the midpoint of the filed range.'''

  def compute(self, rows: Sequence[PricingRow],
              deal: DealAssumptions) -> PolicyOutput[Optional[PricingRow]]:
    return PolicyOutput(value=midpoint_row(rows, deal),
                        diag={'reason': 'range_midpoint'})


def resolve_policy_name(deal: DealAssumptions) -> str:
  '''Map the deal's qualitative flags to a recommendation policy name.'''
  if deal.management_priority in ('deal_certainty', 'runway_extension'):
    return 'deal_certainty'
  if deal.pricing_aggressiveness == 'maximum':
    return 'maximum'
  if deal.pricing_aggressiveness == 'conservative':
    return 'conservative'
  return 'midpoint'


def apply_price_floor(rows: Sequence[PricingRow], row: PricingRow,
                      floor: Optional[float]) -> PricingRow:
  '''
  Raise the chosen row to the lowest price at or above floor.

  If no grid price reaches the floor, the highest price is used.
  '''
  if not floor or row.offer_price >= floor - PRICE_EPS:
    return row
  for candidate in rows:
    if candidate.offer_price >= floor - PRICE_EPS:
      return candidate
  return rows[-1]


def select_recommendation(
    rows: Sequence[PricingRow],
    deal: DealAssumptions,
    policy: RecommendationPolicy,
    policy_name: str,
) -> Recommendation:
  '''
  Resolve a policy's choice to exactly one row.

  Args:
    rows: Pricing matrix, ascending by offer price (non-empty)
    deal: Deal assumptions (filed range and minimum acceptable price)
    policy: Recommendation policy instance
    policy_name: Registry name reported on the recommendation

  Returns:
    Recommendation for one row of the matrix
  '''
  if not rows:
    raise ValueError('Cannot recommend a price from an empty matrix')

  out = policy.compute(rows, deal)
  reason = out.diag.get('reason', policy_name)
  fallback = out.value is None
  row = out.value
  if row is None:
    row = midpoint_row(rows, deal)
    reason = f'{reason}; midpoint_fallback'
    logger.debug('Policy %s matched no row, using midpoint %.2f', policy_name,
                 row.offer_price)

  floored = apply_price_floor(rows, row, deal.min_acceptable_price)
  if floored is not row:
    reason = f'{reason}; min_acceptable_price_floor'
    row = floored

  return Recommendation(price=row.offer_price,
                        policy=policy_name,
                        reason=reason,
                        fallback=fallback,
                        row=row)
