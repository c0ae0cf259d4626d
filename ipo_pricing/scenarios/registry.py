"""
Policy registry for mapping string names to policy factories.

This enables pricing configurations to be written with string names (JSON
friendly) while still instantiating the correct policy classes.

To add a new policy:
1. Implement the policy class in the appropriate module
   (e.g., policies/recommendation.py)
2. Register its factory in the appropriate registry dictionary

Example:
  # In policies/recommendation.py
  class TopOfRange(RecommendationPolicy):
    def compute(self, rows, deal) -> PolicyOutput[Optional[PricingRow]]:
      ...

  # In scenarios/registry.py
  RECOMMENDATION_POLICIES['top_of_range'] = TopOfRange

Keyword overrides for a factory come from PricingConfig.policy_params under
the factory's registry name, e.g. {'pre_revenue': {'operating_margin': 0.25}}.
"""

from collections.abc import Callable
from typing import Any, Optional, cast

from ipo_pricing.domain.types import CAPITAL_INTENSIVE, HIGH_GROWTH, MATURE
from ipo_pricing.domain.types import PRE_REVENUE
from ipo_pricing.policies.adjustments import AdjustmentTerm
from ipo_pricing.policies.adjustments import BinaryCatalyst
from ipo_pricing.policies.adjustments import BookQuality
from ipo_pricing.policies.adjustments import CustomerConcentration
from ipo_pricing.policies.adjustments import DownRound
from ipo_pricing.policies.adjustments import DualClass
from ipo_pricing.policies.adjustments import SecondaryOptics
from ipo_pricing.policies.adjustments import ValuationPenalty
from ipo_pricing.policies.recommendation import ConservativeCoverage
from ipo_pricing.policies.recommendation import DealCertainty
from ipo_pricing.policies.recommendation import MaximumPrice
from ipo_pricing.policies.recommendation import RangeMidpoint
from ipo_pricing.policies.recommendation import RecommendationPolicy
from ipo_pricing.policies.valuation import DiscountedCashFlow
from ipo_pricing.policies.valuation import EbitdaCrossCheckDCF
from ipo_pricing.policies.valuation import PipelineRNPV
from ipo_pricing.policies.valuation import RevenueMultipleBlend
from ipo_pricing.policies.valuation import ValuationPolicy
from ipo_pricing.scenarios.config import PricingConfig

VALUATION_POLICIES: dict[str, Callable[..., ValuationPolicy]] = {
    MATURE: DiscountedCashFlow,
    CAPITAL_INTENSIVE: EbitdaCrossCheckDCF,
    HIGH_GROWTH: RevenueMultipleBlend,
    PRE_REVENUE: PipelineRNPV,
}

RECOMMENDATION_POLICIES: dict[str, Callable[..., RecommendationPolicy]] = {
    'maximum': MaximumPrice,
    'conservative': ConservativeCoverage,
    'deal_certainty': DealCertainty,
    'midpoint': RangeMidpoint,
}

ADJUSTMENT_TERMS: dict[str, Callable[..., AdjustmentTerm]] = {
    'book_quality': BookQuality,
    'valuation_penalty': ValuationPenalty,
    'secondary_optics': SecondaryOptics,
    'binary_catalyst': BinaryCatalyst,
    'down_round': DownRound,
    'dual_class': DualClass,
    'customer_concentration': CustomerConcentration,
}

POLICY_REGISTRY = {
    'valuation': VALUATION_POLICIES,
    'recommendation': RECOMMENDATION_POLICIES,
    'adjustments': ADJUSTMENT_TERMS,
}


def _params(config: PricingConfig, name: str,
            **defaults: Any) -> dict[str, Any]:
  params = dict(defaults)
  params.update(config.policy_params.get(name, {}))
  return params


def create_policies(config: PricingConfig,
                    classification: str,
                    recommendation: Optional[str] = None) -> dict[str, Any]:
  """
  Create policy instances from a pricing configuration.

  Args:
    config: PricingConfig with policy names and thresholds
    classification: Company classification selecting the valuation policy
    recommendation: Resolved recommendation policy name; defaults to
      config.recommendation ('auto' without a resolved name means
      'midpoint')

  Returns:
    Dictionary with instantiated policy objects:
    - valuation: ValuationPolicy
    - recommendation: RecommendationPolicy
    - recommendation_name: str
    - adjustments: dict of active AdjustmentTerm by name

  Raises:
    KeyError: If a policy name is not found in the registry
  """
  try:
    valuation_factory = VALUATION_POLICIES[classification]
  except KeyError as e:
    raise KeyError(f"Unknown valuation policy: '{classification}'. "
                   f'Available: {list(VALUATION_POLICIES.keys())}') from e

  rec_name = recommendation or config.recommendation
  if rec_name == 'auto':
    rec_name = 'midpoint'
  try:
    rec_factory = RECOMMENDATION_POLICIES[rec_name]
  except KeyError as e:
    raise KeyError(f"Unknown recommendation policy: '{rec_name}'. "
                   f'Available: {list(RECOMMENDATION_POLICIES.keys())}') from e

  rec_defaults: dict[str, Any] = {}
  if rec_name == 'conservative':
    rec_defaults['min_coverage'] = config.conservative_min_coverage
  elif rec_name == 'deal_certainty':
    rec_defaults['min_coverage'] = config.certainty_min_coverage

  adjustments: dict[str, AdjustmentTerm] = {}
  for name in config.adjustments:
    try:
      term_factory = ADJUSTMENT_TERMS[name]
    except KeyError as e:
      raise KeyError(f"Unknown adjustment term: '{name}'. "
                     f'Available: {list(ADJUSTMENT_TERMS.keys())}') from e
    defaults: dict[str, Any] = {}
    if name == 'customer_concentration':
      defaults['threshold'] = config.concentration_threshold
    adjustments[name] = term_factory(**_params(config, name, **defaults))

  return {
      'valuation': valuation_factory(**_params(config, classification)),
      'recommendation': rec_factory(**_params(config, rec_name,
                                              **rec_defaults)),
      'recommendation_name': rec_name,
      'adjustments': adjustments,
  }


def list_policies() -> dict[str, list[str]]:
  """
  List all available policies by category.

  Returns:
    Dictionary mapping category names to list of policy names
  """
  result: dict[str, list[str]] = {}
  for category, policies_dict in POLICY_REGISTRY.items():
    policy_dict = cast(dict[str, object], policies_dict)
    result[category] = list(policy_dict.keys())
  return result
