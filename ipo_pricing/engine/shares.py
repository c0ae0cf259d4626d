"""
Share mechanics at a single offer price.

Pure functions: every quantity is recomputed from the offer price, so a
currency-denominated raise yields a different share count at every price.
Only primary and greenshoe shares are dilutive; secondary shares are a
transfer of existing ownership.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from ipo_pricing.domain.types import Holder

GREENSHOE_BASES = ('base_offering', 'primary')


@dataclass
class ShareMechanics:
  """
  Share tranches, dilution and proceeds at one offer price.

  Attributes:
    offer_price: Candidate offer price
    primary_shares: New shares issued by the company
    secondary_shares: Existing shares sold by holders
    greenshoe_shares: Over-allotment shares (newly issued)
    secondary_source: 'holders', 'direct', 'currency' or 'none'
    dilutive_shares: primary + greenshoe
    fd_shares_post: Fully diluted post-IPO share count
    dilution: dilutive / (pre-IPO + dilutive)
    gross_primary_proceeds: primary shares x price
    gross_greenshoe_proceeds: greenshoe shares x price
    gross_secondary_proceeds: secondary shares x price
    net_issuer_proceeds: (primary + greenshoe) x price x (1 - fee)
    net_seller_proceeds: secondary x price x (1 - fee)
    post_ipo_cash: cash + net issuer proceeds - debt repayment
    post_ipo_debt: debt - debt repayment, floored at zero
  """
  offer_price: float
  primary_shares: float
  secondary_shares: float
  greenshoe_shares: float
  secondary_source: str
  dilutive_shares: float
  fd_shares_post: float
  dilution: float
  gross_primary_proceeds: float
  gross_greenshoe_proceeds: float
  gross_secondary_proceeds: float
  net_issuer_proceeds: float
  net_seller_proceeds: float
  post_ipo_cash: float
  post_ipo_debt: float

  @property
  def total_shares_sold(self) -> float:
    return self.primary_shares + self.secondary_shares + self.greenshoe_shares

  @property
  def gross_proceeds(self) -> float:
    return (self.gross_primary_proceeds + self.gross_greenshoe_proceeds +
            self.gross_secondary_proceeds)

  @property
  def market_cap(self) -> float:
    return self.fd_shares_post * self.offer_price

  @property
  def enterprise_value(self) -> float:
    return enterprise_value(self.market_cap, self.post_ipo_debt,
                            self.post_ipo_cash)


def enterprise_value(market_cap: float, debt: float, cash: float) -> float:
  """EV = market cap + debt - cash."""
  return market_cap + debt - cash


def dilution_ratio(dilutive_shares: float, pre_ipo_shares: float) -> float:
  """Dilutive shares as a fraction of the post-issuance share count."""
  denominator = pre_ipo_shares + dilutive_shares
  if denominator <= 0:
    return 1.0
  return dilutive_shares / denominator


def resolve_secondary_shares(
    offer_price: float,
    holders: Sequence[Holder],
    direct_shares: Optional[float] = None,
    secondary_raise: Optional[float] = None,
) -> tuple[float, str]:
  """
  Total secondary shares sold at an offer price.

  Per-holder sale fractions take precedence; then a directly specified
  share total; then a currency target converted at the offer price.

  Returns:
    Tuple of (secondary_shares, source)
  """
  if any(h.secondary_fraction for h in holders):
    return sum(h.secondary_shares for h in holders), 'holders'
  if direct_shares:
    return direct_shares, 'direct'
  if secondary_raise and offer_price > 0:
    return secondary_raise / offer_price, 'currency'
  return 0.0, 'none'


def compute_share_mechanics(
    offer_price: float,
    pre_ipo_shares: float,
    holders: Sequence[Holder] = (),
    primary_raise: Optional[float] = None,
    primary_shares: Optional[float] = None,
    secondary_shares: Optional[float] = None,
    secondary_raise: Optional[float] = None,
    greenshoe_percent: float = 0.0,
    greenshoe_shares: Optional[float] = None,
    greenshoe_base: str = 'base_offering',
    underwriting_fee: float = 0.0,
    cash: float = 0.0,
    debt: float = 0.0,
    debt_repayment: float = 0.0,
) -> ShareMechanics:
  """
  Derive share tranches, dilution and proceeds at one offer price.

  Args:
    offer_price: Candidate offer price (> 0)
    pre_ipo_shares: Fully diluted pre-IPO share count
    holders: Capital structure, used for per-holder secondary fractions
    primary_raise: Primary target in currency (shares = raise / price)
    primary_shares: Primary target in shares (used if no currency target)
    secondary_shares: Directly specified secondary total
    secondary_raise: Secondary target in currency
    greenshoe_percent: Over-allotment as a fraction of the greenshoe base
    greenshoe_shares: Explicit over-allotment for share-denominated raises
    greenshoe_base: 'base_offering' (primary + secondary) or 'primary'
    underwriting_fee: Gross spread as a fraction of proceeds
    cash: Current cash
    debt: Current debt
    debt_repayment: Debt repaid from issuer proceeds

  Returns:
    ShareMechanics at offer_price
  """
  if offer_price <= 0:
    raise ValueError(f'offer_price must be positive, got {offer_price}')
  if greenshoe_base not in GREENSHOE_BASES:
    raise ValueError(f"Unknown greenshoe base: '{greenshoe_base}'. "
                     f'Available: {list(GREENSHOE_BASES)}')

  dollar_denominated = primary_raise is not None and primary_raise > 0
  if dollar_denominated:
    primary = primary_raise / offer_price
  else:
    primary = primary_shares or 0.0

  secondary, source = resolve_secondary_shares(offer_price, holders,
                                               secondary_shares,
                                               secondary_raise)

  if greenshoe_shares is not None and not dollar_denominated:
    greenshoe = greenshoe_shares
  else:
    base = primary + secondary if greenshoe_base == 'base_offering' else primary
    greenshoe = base * (greenshoe_percent or 0.0)

  dilutive = primary + greenshoe
  fee_factor = 1.0 - underwriting_fee

  net_issuer = dilutive * offer_price * fee_factor

  return ShareMechanics(
      offer_price=offer_price,
      primary_shares=primary,
      secondary_shares=secondary,
      greenshoe_shares=greenshoe,
      secondary_source=source,
      dilutive_shares=dilutive,
      fd_shares_post=pre_ipo_shares + dilutive,
      dilution=dilution_ratio(dilutive, pre_ipo_shares),
      gross_primary_proceeds=primary * offer_price,
      gross_greenshoe_proceeds=greenshoe * offer_price,
      gross_secondary_proceeds=secondary * offer_price,
      net_issuer_proceeds=net_issuer,
      net_seller_proceeds=secondary * offer_price * fee_factor,
      post_ipo_cash=cash + net_issuer - debt_repayment,
      post_ipo_debt=max(0.0, debt - debt_repayment),
  )
