'''
Domain types for the IPO pricing engine.

These dataclasses provide typed interfaces between components, so engine
functions and policies never depend on the loosely-shaped payload produced by
upstream extraction.

Units are chosen by the caller but must be consistent: share counts in one
unit (e.g. millions), currency amounts in one unit (e.g. $M) and prices in
currency per share. Rates, margins, ownership and returns are decimals.
'''

from dataclasses import asdict, dataclass, field
import statistics
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

import pandas as pd

T = TypeVar('T')

MATURE = 'mature'
CAPITAL_INTENSIVE = 'capital_intensive'
HIGH_GROWTH = 'high_growth'
PRE_REVENUE = 'pre_revenue'

CLASSIFICATIONS = (MATURE, CAPITAL_INTENSIVE, HIGH_GROWTH, PRE_REVENUE)

CLASSIFICATION_ALIASES = {
    'industrial': CAPITAL_INTENSIVE,
    'capital-intensive': CAPITAL_INTENSIVE,
    'high-growth': HIGH_GROWTH,
    'biotech': PRE_REVENUE,
    'pre-revenue': PRE_REVENUE,
    'binary_outcome': PRE_REVENUE,
}

FOUNDER = 'founder'


class ValuationError(ValueError):
  '''
  Raised when a valuation method is undefined for the given inputs.

  Attributes:
    code: Refusal code reported on the PricingError
  '''

  def __init__(self, message: str, code: str = 'invalid_assumptions'):
    super().__init__(message)
    self.code = code


@dataclass
class PolicyOutput(Generic[T]):
  '''
  Standard output from any policy.

  Every policy returns both a computed value and diagnostic information
  explaining how the value was computed.

  Attributes:
    value: The computed value (type depends on policy)
    diag: Dictionary of diagnostic information
  '''
  value: T
  diag: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Holder:
  '''
  One pre-IPO holder in the capital structure.

  Attributes:
    name: Holder identity
    shares: Pre-IPO shares held
    holder_type: 'founder', 'investor', 'management', 'option_pool', 'other'
    voting_multiple: Votes per share for dual-class structures
    secondary_fraction: Fraction of the position sold in the offering
  '''
  name: str
  shares: float
  holder_type: str = 'other'
  voting_multiple: Optional[float] = None
  secondary_fraction: Optional[float] = None

  @property
  def secondary_shares(self) -> float:
    if not self.secondary_fraction:
      return 0.0
    return self.shares * self.secondary_fraction

  @property
  def post_ipo_shares(self) -> float:
    return self.shares - self.secondary_shares


@dataclass(frozen=True)
class Comparable:
  name: str
  ev_revenue: Optional[float] = None
  ev_ebitda: Optional[float] = None


@dataclass(frozen=True)
class PipelineAsset:
  '''
  Pipeline asset for binary-outcome valuations.

  Attributes:
    name: Asset name
    probability_of_success: Probability the asset reaches market
    peak_sales: Peak annual sales
    launch_year: Calendar year of launch
    phase: Development phase label (informational)
  '''
  name: str
  probability_of_success: float
  peak_sales: float
  launch_year: int
  phase: str = ''


@dataclass(frozen=True)
class OrderBookTier:
  price_level: float
  oversubscription: float


@dataclass(frozen=True)
class InvestorOrder:
  investor: str
  size: float
  max_price: Optional[float] = None


@dataclass(frozen=True)
class SectorBenchmarks:
  '''
  Sector first-day return benchmarks.

  The baseline prefers the median, then the average, then the
  historical figure. Benchmarks can be negative.
  '''
  median: Optional[float] = None
  average: Optional[float] = None
  historical: Optional[float] = None

  @property
  def baseline(self) -> Optional[float]:
    for value in (self.median, self.average, self.historical):
      if value is not None:
        return value
    return None


def median_multiple(values: List[Optional[float]]) -> Optional[float]:
  '''Median of the positive multiples in values, or None if there are none.'''
  positive = [v for v in values if v is not None and v > 0]
  if not positive:
    return None
  return float(statistics.median(positive))


@dataclass(frozen=True)
class DealAssumptions:
  '''
  Immutable description of a company preparing to go public.

  Constructed once per analysis (normally by intake.parse_assumptions) and
  never mutated by the engine.

  Attributes:
    company_name: Issuer name
    classification: One of CLASSIFICATIONS; selects the valuation method
    pre_ipo_shares: Fully diluted pre-IPO share count (must be > 0)
    holders: Per-holder capital structure
    current_revenue: Current (LTM) revenue
    revenue_growth_rates: Yearly revenue growth path [g1, g2, ...]
    current_ebitda: Current EBITDA (can be negative)
    ebitda_margin: Current EBITDA margin
    target_ebitda_margin: Margin reached at the end of the projection
    cash: Current cash
    debt: Current debt
    discount_rate: Discount rate for cash flows
    terminal_growth_rate: Perpetual growth rate for the terminal value
    tax_rate: Cash tax rate
    projection_years: Explicit forecast horizon (config default if None)
    comparables: Peer multiples
    pipeline_assets: Asset-level data for binary-outcome companies
    valuation_year: Calendar year the pipeline launch years are measured from
    primary_raise: Primary raise target in currency
    primary_shares: Primary raise target in shares
    secondary_shares: Directly specified secondary share total
    secondary_raise: Secondary sale target in currency
    greenshoe_percent: Over-allotment as a fraction of the base offering
    greenshoe_shares: Explicit over-allotment shares (share-denominated deals)
    underwriting_fee: Gross spread as a fraction of proceeds
    debt_repayment: Debt repaid from primary proceeds
    price_range_low: Filed price range, low end
    price_range_high: Filed price range, high end
    order_book: Order-book tiers (price level -> oversubscription)
    investor_orders: Named investor orders
    benchmarks: Sector first-day return benchmarks
    pricing_aggressiveness: 'conservative', 'moderate', 'aggressive', 'maximum'
    management_priority: 'valuation_maximization', 'runway_extension',
      'deal_certainty'
    min_acceptable_price: Floor on the recommended price
    founder_ownership_floor: Minimum aggregate founder post-IPO ownership
    dual_class: Whether the share structure is dual-class
    dual_class_discount: Governance discount coefficient
    has_binary_catalyst: Whether a binary event is pending
    months_to_catalyst: Months until the binary event
    last_private_round_price: Price per share of the last private round
    down_round_optics: Whether a down-round is flagged as a concern
    down_round_penalty: Penalty coefficient on the down-round gap
    secondary_optics: 'neutral', 'negative' or 'positive'
    customer_concentration: Revenue share of the top customers
    fair_value_per_share: Explicit intrinsic value override
    peer_ev_to_rnpv: Peer median EV/rNPV multiple
  '''
  company_name: str
  classification: str
  pre_ipo_shares: float
  holders: Tuple[Holder, ...] = ()
  current_revenue: float = 0.0
  revenue_growth_rates: Tuple[float, ...] = ()
  current_ebitda: float = 0.0
  ebitda_margin: float = 0.0
  target_ebitda_margin: float = 0.0
  cash: float = 0.0
  debt: float = 0.0
  discount_rate: Optional[float] = None
  terminal_growth_rate: float = 0.0
  tax_rate: float = 0.0
  projection_years: Optional[int] = None
  comparables: Tuple[Comparable, ...] = ()
  pipeline_assets: Tuple[PipelineAsset, ...] = ()
  valuation_year: Optional[int] = None
  primary_raise: Optional[float] = None
  primary_shares: Optional[float] = None
  secondary_shares: Optional[float] = None
  secondary_raise: Optional[float] = None
  greenshoe_percent: float = 0.0
  greenshoe_shares: Optional[float] = None
  underwriting_fee: float = 0.0
  debt_repayment: float = 0.0
  price_range_low: Optional[float] = None
  price_range_high: Optional[float] = None
  order_book: Tuple[OrderBookTier, ...] = ()
  investor_orders: Tuple[InvestorOrder, ...] = ()
  benchmarks: SectorBenchmarks = field(default_factory=SectorBenchmarks)
  pricing_aggressiveness: Optional[str] = None
  management_priority: Optional[str] = None
  min_acceptable_price: Optional[float] = None
  founder_ownership_floor: Optional[float] = None
  dual_class: bool = False
  dual_class_discount: Optional[float] = None
  has_binary_catalyst: bool = False
  months_to_catalyst: Optional[float] = None
  last_private_round_price: Optional[float] = None
  down_round_optics: bool = False
  down_round_penalty: Optional[float] = None
  secondary_optics: Optional[str] = None
  customer_concentration: Optional[float] = None
  fair_value_per_share: Optional[float] = None
  peer_ev_to_rnpv: Optional[float] = None

  @property
  def dollar_denominated(self) -> bool:
    '''True when the primary raise is specified in currency.'''
    return self.primary_raise is not None and self.primary_raise > 0

  @property
  def forward_revenue(self) -> float:
    '''Next-twelve-months revenue using the first growth rate.'''
    g1 = self.revenue_growth_rates[0] if self.revenue_growth_rates else 0.0
    return self.current_revenue * (1.0 + g1)

  @property
  def peer_median_ev_revenue(self) -> Optional[float]:
    return median_multiple([c.ev_revenue for c in self.comparables])

  @property
  def peer_median_ev_ebitda(self) -> Optional[float]:
    return median_multiple([c.ev_ebitda for c in self.comparables])

  @property
  def has_order_book(self) -> bool:
    return len(self.order_book) > 0


@dataclass
class ValuationOutcome:
  '''
  Result of the valuation step, computed once per analysis.

  Attributes:
    enterprise_value: Intrinsic enterprise value
    methodology: Human-readable methodology label
    equity_value: enterprise_value - debt + cash
    fair_value_per_share: Equity value per pre-IPO share (or the override)
    total_rnpv: Sum of risk-adjusted pipeline NPVs (pipeline method only)
    warnings: Data-quality warnings raised while valuing
    diag: Merged diagnostics from the valuation policy
  '''
  enterprise_value: float
  methodology: str
  equity_value: float
  fair_value_per_share: float
  total_rnpv: Optional[float] = None
  warnings: List[str] = field(default_factory=list)
  diag: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OwnershipEntry:
  '''
  One line of the post-IPO ownership table.

  Ownership and voting power are fractions of the post-IPO totals.
  '''
  holder: str
  holder_type: str
  pre_ipo_shares: float
  post_ipo_shares: float
  pre_ipo_ownership: float
  post_ipo_ownership: float
  voting_power: float


@dataclass
class PricingRow:
  '''
  Fully recomputed pricing metrics at one candidate offer price.

  Optional fields are None when their inputs are absent (e.g. no last
  private round, no sector benchmark, non-positive denominators).
  '''
  offer_price: float

  primary_shares: float
  secondary_shares: float
  greenshoe_shares: float
  total_shares_sold: float
  dilutive_shares: float
  fd_shares_post: float
  public_float: float
  dilution: float

  market_cap: float
  post_ipo_cash: float
  post_ipo_debt: float
  enterprise_value: float
  implied_pre_ipo_valuation: float

  ev_to_revenue: Optional[float]
  ev_to_ebitda: Optional[float]
  ev_to_rnpv: Optional[float]
  peer_ev_revenue: Optional[float]
  vs_peer_ev_revenue: Optional[float]
  vs_peer_ev_ebitda: Optional[float]
  vs_peer_ev_rnpv: Optional[float]
  growth_decel_penalty: float
  fair_value_support: Optional[float]

  gross_primary_proceeds: float
  gross_greenshoe_proceeds: float
  gross_secondary_proceeds: float
  gross_proceeds: float
  net_issuer_proceeds: float
  net_seller_proceeds: float

  oversubscription: float
  effective_oversubscription: float
  order_book_tier: Optional[str]
  investors_dropping: Tuple[str, ...]
  demand_lost: float

  down_round_percent: Optional[float]
  is_down_round: bool

  founder_ownership: float
  founder_voting_power: float
  ownership_total: float

  baseline_return: Optional[float]
  book_quality_adjustment: float
  valuation_penalty: float
  secondary_discount: float
  catalyst_discount: float
  down_round_discount: float
  dual_class_discount: float
  concentration_discount: float
  adjusted_return: Optional[float]

  warnings: List[str] = field(default_factory=list)

  def to_dict(self) -> Dict[str, Any]:
    '''Convert to dictionary for DataFrame creation.'''
    result = asdict(self)
    result['investors_dropping'] = ', '.join(self.investors_dropping)
    result['warnings'] = '; '.join(self.warnings)
    return result


@dataclass
class Recommendation:
  '''
  The single row selected by a pricing policy.

  Attributes:
    price: Recommended offer price
    policy: Name of the policy that selected the row
    reason: Short machine-friendly reason (e.g. 'coverage_bar_met')
    fallback: True when the policy criteria matched nothing
    row: The selected pricing row
  '''
  price: float
  policy: str
  reason: str
  fallback: bool
  row: PricingRow


@dataclass
class PricingError:
  '''
  Reason why pricing was refused.

  Attributes:
    reason: Human-readable explanation
    code: Machine-readable code (e.g., 'missing_price_range')
    details: Additional context
  '''
  reason: str
  code: str
  details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PricingResult:
  '''
  Complete output of one pricing analysis.

  Either fully computed (error is None) or refused, in which case the
  matrix, ownership table and rationale are empty and the error reason is the
  only warning.
  '''
  assumptions: Optional[DealAssumptions]
  matrix: List[PricingRow] = field(default_factory=list)
  recommendation: Optional[Recommendation] = None
  ownership: List[OwnershipEntry] = field(default_factory=list)
  rationale: List[str] = field(default_factory=list)
  warnings: List[str] = field(default_factory=list)
  valuation: Optional[ValuationOutcome] = None
  error: Optional[PricingError] = None
  scenario: str = 'default'

  @property
  def ok(self) -> bool:
    return self.error is None

  @classmethod
  def refused(cls, assumptions: Optional[DealAssumptions],
              error: PricingError,
              scenario: str = 'default') -> 'PricingResult':
    '''Build the structured empty result for a refused computation.'''
    return cls(assumptions=assumptions,
               warnings=[error.reason],
               error=error,
               scenario=scenario)

  def matrix_frame(self) -> pd.DataFrame:
    '''Pricing matrix as a DataFrame, one row per candidate price.'''
    return pd.DataFrame([row.to_dict() for row in self.matrix])

  def ownership_frame(self) -> pd.DataFrame:
    '''Ownership table at the recommended price as a DataFrame.'''
    return pd.DataFrame([asdict(entry) for entry in self.ownership])
