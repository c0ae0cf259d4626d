"""
Pricing configuration.

PricingConfig is a serializable (JSON-friendly) configuration class that
selects the recommendation policy, the active day-one return terms and the
numeric thresholds used across one pricing analysis.
"""

from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
import json
from typing import Any

from ipo_pricing.policies.adjustments import ALL_TERMS


@dataclass
class PricingConfig:
  """
  Configuration for a pricing analysis.

  Policy fields are strings that map to factories in the registry, so the
  config can be saved alongside results for reproducibility.

  Attributes:
    name: Human-readable scenario name
    recommendation: Recommendation policy name, or 'auto' to resolve it
      from the deal's management priority and pricing aggressiveness
    adjustments: Day-one return terms that are active
    greenshoe_base: 'base_offering' (primary + secondary) or 'primary'
    price_step: Spacing of the candidate price grid
    projection_years: DCF horizon when the deal does not supply one
    ownership_tolerance: Allowed deviation of the ownership sum from 100%
    concentration_threshold: Customer concentration above which a discount
      applies
    conservative_min_coverage: Coverage bar for the conservative policy
    certainty_min_coverage: Coverage bar for the deal-certainty policy
    weak_coverage_threshold: Effective oversubscription below this is weak
    growth_deceleration: Compress the peer EV/Revenue multiple when growth
      decelerates
    policy_params: Optional dict of policy-specific keyword overrides,
      keyed by registry name
  """
  name: str = 'default'
  recommendation: str = 'auto'
  adjustments: list[str] = field(default_factory=lambda: list(ALL_TERMS))
  greenshoe_base: str = 'base_offering'
  price_step: float = 1.0
  projection_years: int = 5
  ownership_tolerance: float = 0.005
  concentration_threshold: float = 0.40
  conservative_min_coverage: float = 1.0
  certainty_min_coverage: float = 2.0
  weak_coverage_threshold: float = 1.0
  growth_deceleration: bool = True
  policy_params: dict[str, Any] = field(default_factory=dict)

  @classmethod
  def default(cls) -> 'PricingConfig':
    """
    Create default pricing configuration.

    Uses:
      - Recommendation policy resolved from the deal's flags
      - All seven day-one return terms
      - Greenshoe sized on the base offering
      - $1 price grid, 5-year DCF horizon
    """
    return cls(name='default')

  @classmethod
  def primary_greenshoe(cls) -> 'PricingConfig':
    """Scenario with the greenshoe sized on primary shares only."""
    return cls(name='primary_greenshoe', greenshoe_base='primary')

  @classmethod
  def no_risk_overlays(cls) -> 'PricingConfig':
    """Scenario with only baseline, book-quality and valuation terms."""
    return cls(name='no_risk_overlays',
               adjustments=['book_quality', 'valuation_penalty'])

  def to_dict(self) -> dict[str, Any]:
    """Convert to dictionary."""
    return asdict(self)

  def to_json(self) -> str:
    """Serialize to JSON string."""
    return json.dumps(self.to_dict(), indent=2)

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> 'PricingConfig':
    """Create from dictionary."""
    return cls(**data)

  @classmethod
  def from_json(cls, json_str: str) -> 'PricingConfig':
    """Create from JSON string."""
    return cls.from_dict(json.loads(json_str))
