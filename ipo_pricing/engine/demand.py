"""
Order-book demand at a candidate offer price.

Oversubscription comes only from observed order-book tiers: no
interpolation between tiers and no extrapolation beyond them. Named investors
whose maximum acceptable price is below the offer drop out, and their
indicated size is removed from demand.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional, Tuple

from ipo_pricing.domain.types import InvestorOrder, OrderBookTier


@dataclass
class DemandQuote:
  """
  Demand metrics at one offer price.

  Attributes:
    oversubscription: Raw oversubscription from the matched tier
    effective_oversubscription: Oversubscription after investor drop-off
    tier_label: '$25+', 'Below $22' or None without an order book
    matched_level: Price level of the tier used, None without a book
    has_order_book: Whether any tier was supplied
    investors_dropping: Names of investors priced out
    demand_lost: Sum of the dropped investors' indicated sizes
  """
  oversubscription: float
  effective_oversubscription: float
  tier_label: Optional[str]
  matched_level: Optional[float]
  has_order_book: bool
  investors_dropping: Tuple[str, ...] = ()
  demand_lost: float = 0.0


def _format_level(level: float) -> str:
  return f'${level:g}'


def lookup_oversubscription(
    order_book: Sequence[OrderBookTier],
    offer_price: float,
) -> tuple[float, Optional[str], Optional[float]]:
  """
  Oversubscription from the highest tier at or below the offer price.

  A price above every tier uses the highest tier; a price below every tier
  uses the lowest tier. Without an order book the neutral value 1.0 is
  returned.

  Returns:
    Tuple of (oversubscription, tier_label, matched_level)
  """
  if not order_book:
    return 1.0, None, None

  tiers = sorted(order_book, key=lambda t: t.price_level, reverse=True)
  for tier in tiers:
    if offer_price >= tier.price_level:
      return (tier.oversubscription, f'{_format_level(tier.price_level)}+',
              tier.price_level)

  lowest = tiers[-1]
  return (lowest.oversubscription,
          f'Below {_format_level(lowest.price_level)}', lowest.price_level)


def compute_demand(
    order_book: Sequence[OrderBookTier],
    investor_orders: Sequence[InvestorOrder],
    offer_price: float,
    gross_proceeds: float,
) -> DemandQuote:
  """
  Raw and effective oversubscription at one offer price.

  effective = raw * (1 - lost / (gross_proceeds * raw))

  No floor is applied: heavy drop-off relative to raw demand can push the
  effective figure to zero or below.

  Args:
    order_book: Order-book tiers in any order
    investor_orders: Named orders with optional maximum price
    offer_price: Candidate offer price
    gross_proceeds: Gross offering size at offer_price

  Returns:
    DemandQuote at offer_price
  """
  raw, label, level = lookup_oversubscription(order_book, offer_price)

  dropping = []
  lost = 0.0
  for order in investor_orders:
    if order.max_price is not None and order.max_price < offer_price:
      dropping.append(order.investor)
      lost += order.size

  effective = raw
  demand_at_raw = gross_proceeds * raw
  if lost > 0 and demand_at_raw > 0:
    effective = raw * (1.0 - lost / demand_at_raw)

  return DemandQuote(
      oversubscription=raw,
      effective_oversubscription=effective,
      tier_label=label,
      matched_level=level,
      has_order_book=bool(order_book),
      investors_dropping=tuple(dropping),
      demand_lost=lost,
  )
