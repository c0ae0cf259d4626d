'''
Day-one return adjustment terms.

Each term is zero unless its triggering input is explicitly present; no term
ever supplies a default magnitude for a missing input. Terms report a
magnitude in the convention of the matching PricingRow field and a sign that
says how the magnitude enters the adjusted return.
'''

from abc import ABC, abstractmethod
from dataclasses import dataclass
import math
from typing import Optional

from ipo_pricing.domain.types import DealAssumptions, PolicyOutput


@dataclass(frozen=True)
class ReturnContext:
  '''
  Per-price inputs for the adjustment terms.

  Attributes:
    deal: Deal assumptions (risk flags and coefficients)
    offer_price: Candidate offer price
    fair_value_per_share: Intrinsic value per share
    effective_oversubscription: Oversubscription after drop-off
    secondary_shares: Secondary shares sold at this price
    total_shares_sold: All shares sold at this price
    down_round_percent: (offer - last round) / last round, None if unknown
  '''
  deal: DealAssumptions
  offer_price: float
  fair_value_per_share: float
  effective_oversubscription: float
  secondary_shares: float
  total_shares_sold: float
  down_round_percent: Optional[float] = None


def down_round_gap(offer_price: float,
                   last_round_price: Optional[float]) -> Optional[float]:
  '''Offer price relative to the last private round, e.g. -0.20.'''
  if not last_round_price or last_round_price <= 0:
    return None
  return (offer_price - last_round_price) / last_round_price


class AdjustmentTerm(ABC):
  '''
  Base class for day-one return adjustment terms.

  Attributes:
    name: Registry name of the term
    row_field: PricingRow field that reports the term
    sign: +1 if the magnitude is added to the return, -1 if subtracted
  '''

  name: str = ''
  row_field: str = ''
  sign: float = -1.0

  @abstractmethod
  def compute(self, ctx: ReturnContext) -> PolicyOutput[float]:
    '''
    Compute the term's magnitude at one price.

    Returns:
      PolicyOutput with the magnitude; diag may carry 'warnings'
    '''


class BookQuality(AdjustmentTerm):
  '''ln(effective oversubscription), omitted without an order book.'''

  name = 'book_quality'
  row_field = 'book_quality_adjustment'
  sign = 1.0

  def compute(self, ctx: ReturnContext) -> PolicyOutput[float]:
    if not ctx.deal.has_order_book:
      return PolicyOutput(value=0.0, diag={'applied': False})

    eff = ctx.effective_oversubscription
    if eff <= 0:
      return PolicyOutput(value=0.0,
                          diag={
                              'applied': False,
                              'warnings': [
                                  f'Effective oversubscription is '
                                  f'{eff:.2f}x; book-quality term omitted'
                              ],
                          })
    if eff == 1.0:
      return PolicyOutput(value=0.0, diag={'applied': False})
    return PolicyOutput(value=math.log(eff), diag={'applied': True})


class ValuationPenalty(AdjustmentTerm):
  '''-(offer / fair value - 1) when the offer exceeds fair value.'''

  name = 'valuation_penalty'
  row_field = 'valuation_penalty'
  sign = 1.0

  def compute(self, ctx: ReturnContext) -> PolicyOutput[float]:
    fv = ctx.fair_value_per_share
    if fv <= 0 or ctx.offer_price <= fv:
      return PolicyOutput(value=0.0, diag={'applied': False})
    return PolicyOutput(value=-(ctx.offer_price / fv - 1.0),
                        diag={'applied': True})


class SecondaryOptics(AdjustmentTerm):
  '''Secondary share of the offering, when optics are flagged negative.'''

  name = 'secondary_optics'
  row_field = 'secondary_discount'

  def compute(self, ctx: ReturnContext) -> PolicyOutput[float]:
    if ctx.deal.secondary_optics != 'negative' or ctx.total_shares_sold <= 0:
      return PolicyOutput(value=0.0, diag={'applied': False})
    return PolicyOutput(value=ctx.secondary_shares / ctx.total_shares_sold,
                        diag={'applied': True})


class BinaryCatalyst(AdjustmentTerm):
  '''1 / months to a pending binary event.'''

  name = 'binary_catalyst'
  row_field = 'catalyst_discount'

  def compute(self, ctx: ReturnContext) -> PolicyOutput[float]:
    months = ctx.deal.months_to_catalyst
    if not ctx.deal.has_binary_catalyst or not months or months <= 0:
      return PolicyOutput(value=0.0, diag={'applied': False})
    return PolicyOutput(value=1.0 / months, diag={'applied': True})


class DownRound(AdjustmentTerm):
  '''|gap to last private round| x caller-supplied penalty coefficient.'''

  name = 'down_round'
  row_field = 'down_round_discount'

  def compute(self, ctx: ReturnContext) -> PolicyOutput[float]:
    gap = ctx.down_round_percent
    penalty = ctx.deal.down_round_penalty
    if (gap is None or gap >= 0 or not ctx.deal.down_round_optics or
        not penalty):
      return PolicyOutput(value=0.0, diag={'applied': False})
    return PolicyOutput(value=abs(gap) * penalty, diag={'applied': True})


class DualClass(AdjustmentTerm):
  '''Governance discount coefficient for dual-class structures.'''

  name = 'dual_class'
  row_field = 'dual_class_discount'

  def compute(self, ctx: ReturnContext) -> PolicyOutput[float]:
    discount = ctx.deal.dual_class_discount
    if not ctx.deal.dual_class or not discount:
      return PolicyOutput(value=0.0, diag={'applied': False})
    return PolicyOutput(value=discount, diag={'applied': True})


class CustomerConcentration(AdjustmentTerm):
  '''Excess of customer concentration above a threshold.'''

  name = 'customer_concentration'
  row_field = 'concentration_discount'

  def __init__(self, threshold: float = 0.40):
    self.threshold = threshold

  def compute(self, ctx: ReturnContext) -> PolicyOutput[float]:
    concentration = ctx.deal.customer_concentration
    if concentration is None or concentration <= self.threshold:
      return PolicyOutput(value=0.0, diag={'applied': False})
    return PolicyOutput(value=concentration - self.threshold,
                        diag={
                            'applied': True,
                            'threshold': self.threshold
                        })


ALL_TERMS = (
    BookQuality.name,
    ValuationPenalty.name,
    SecondaryOptics.name,
    BinaryCatalyst.name,
    DownRound.name,
    DualClass.name,
    CustomerConcentration.name,
)
