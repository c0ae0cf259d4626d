'''
Single-deal pricing entrypoint.

This module provides the main entry points for pricing an IPO. It:
1. Refuses the analysis when no valid filed price range or pre-IPO share
   count was supplied
2. Values the company once, with the policy selected by classification
3. Builds the pricing matrix across the candidate price grid
4. Selects one recommended price and explains it

Usage:
  from ipo_pricing.run import run_pricing
  from ipo_pricing.scenarios.config import PricingConfig

  result = run_pricing(assumptions, config=PricingConfig.default())
  if result.ok:
    print(f"Price: ${result.recommendation.price:.2f}")
'''

from collections.abc import Mapping
import logging
import math
from typing import Any, Dict, Optional

from ipo_pricing.analysis.matrix import PricingMatrixBuilder
from ipo_pricing.analysis.rationale import analysis_warnings
from ipo_pricing.analysis.rationale import build_rationale
from ipo_pricing.domain.types import DealAssumptions
from ipo_pricing.domain.types import PricingError
from ipo_pricing.domain.types import PricingResult
from ipo_pricing.domain.types import ValuationError
from ipo_pricing.domain.types import ValuationOutcome
from ipo_pricing.intake.parser import parse_assumptions
from ipo_pricing.policies.recommendation import resolve_policy_name
from ipo_pricing.policies.recommendation import select_recommendation
from ipo_pricing.policies.valuation import ValuationPolicy
from ipo_pricing.scenarios.config import PricingConfig
from ipo_pricing.scenarios.registry import create_policies
from ipo_pricing.tracing import resolve_trace
from ipo_pricing.tracing import TraceFn

logger = logging.getLogger(__name__)


def check_price_range(deal: DealAssumptions) -> Optional[PricingError]:
  '''
  Validate the filed price range.

  Returns:
    PricingError if pricing must be refused, else None
  '''
  low, high = deal.price_range_low, deal.price_range_high
  if low is None or high is None:
    return PricingError(
        reason='Price range not provided: a filed low and high price are '
        'required to build the pricing matrix',
        code='missing_price_range',
        details={
            'price_range_low': low,
            'price_range_high': high
        },
    )
  if low <= 0:
    return PricingError(
        reason=f'Price range low must be positive, got {low}',
        code='missing_price_range',
        details={'price_range_low': low},
    )
  if high <= low:
    return PricingError(
        reason=f'Price range high ({high}) must exceed low ({low})',
        code='inverted_price_range',
        details={
            'price_range_low': low,
            'price_range_high': high
        },
    )
  return None


def check_share_count(deal: DealAssumptions) -> Optional[PricingError]:
  '''
  Validate the pre-IPO share count every per-share figure divides by.

  Returns:
    PricingError if pricing must be refused, else None
  '''
  shares = deal.pre_ipo_shares
  if shares is None or not math.isfinite(shares) or shares <= 0:
    return PricingError(
        reason=f'Pre-IPO share count must be a positive number, got {shares}',
        code='invalid_assumptions',
        details={'pre_ipo_shares': shares},
    )
  return None


def run_valuation(
    deal: DealAssumptions,
    config: Optional[PricingConfig] = None,
    policy: Optional[ValuationPolicy] = None,
) -> ValuationOutcome:
  '''
  Value the company once for an analysis.

  Args:
    deal: Deal assumptions
    config: PricingConfig (default: PricingConfig.default())
    policy: Valuation policy (default: selected by classification)

  Returns:
    ValuationOutcome with the equity bridge and fair value per share

  Raises:
    ValuationError: if the valuation is undefined for these inputs
  '''
  if config is None:
    config = PricingConfig.default()
  if policy is None:
    policy = create_policies(config, deal.classification)['valuation']

  n_years = deal.projection_years or config.projection_years
  result = policy.compute(deal, n_years)

  ev = result.value
  equity_value = ev - deal.debt + deal.cash
  if deal.fair_value_per_share is not None:
    fair_value = deal.fair_value_per_share
  else:
    fair_value = equity_value / deal.pre_ipo_shares

  diag: Dict[str, Any] = {
      f'valuation_{k}': v for k, v in result.diag.items() if k != 'warnings'
  }
  diag['valuation_fair_value_override'] = deal.fair_value_per_share is not None

  return ValuationOutcome(
      enterprise_value=ev,
      methodology=result.diag['methodology'],
      equity_value=equity_value,
      fair_value_per_share=fair_value,
      total_rnpv=result.diag.get('total_rnpv'),
      warnings=list(result.diag.get('warnings', [])),
      diag=diag,
  )


def _refuse(deal: Optional[DealAssumptions], error: PricingError,
            config: PricingConfig, trace: TraceFn) -> PricingResult:
  logger.warning('Pricing refused (%s): %s', error.code, error.reason)
  trace('pricing_refused', {'code': error.code, 'reason': error.reason})
  return PricingResult.refused(deal, error, scenario=config.name)


def _dedupe(messages: list[str]) -> list[str]:
  return list(dict.fromkeys(messages))


def run_pricing(
    assumptions: DealAssumptions,
    config: Optional[PricingConfig] = None,
    trace: Optional[TraceFn] = None,
) -> PricingResult:
  '''
  Price one IPO.

  Every row is recomputed from the immutable assumptions on each call, so
  identical inputs give identical results.

  Args:
    assumptions: Validated deal assumptions
    config: PricingConfig (default: PricingConfig.default())
    trace: Optional trace callback (default: log at DEBUG)

  Returns:
    Complete PricingResult, or a refused one with error set and an empty
    matrix
  '''
  if config is None:
    config = PricingConfig.default()
  trace = resolve_trace(trace)
  deal = assumptions

  error = check_share_count(deal) or check_price_range(deal)
  if error is not None:
    return _refuse(deal, error, config, trace)

  rec_name = (resolve_policy_name(deal)
              if config.recommendation == 'auto' else config.recommendation)
  policies = create_policies(config, deal.classification, rec_name)

  try:
    valuation = run_valuation(deal, config, policies['valuation'])
  except ValuationError as e:
    return _refuse(
        deal,
        PricingError(reason=str(e),
                     code=e.code,
                     details={'classification': deal.classification}),
        config, trace)

  trace(
      'valuation', {
          'enterprise_value': valuation.enterprise_value,
          'methodology': valuation.methodology,
          'fair_value_per_share': valuation.fair_value_per_share,
          **valuation.diag,
      })

  builder = PricingMatrixBuilder(deal, config, valuation,
                                 policies['adjustments'], trace)
  matrix = builder.build()

  recommendation = select_recommendation(matrix, deal,
                                         policies['recommendation'],
                                         policies['recommendation_name'])
  trace(
      'recommendation', {
          'price': recommendation.price,
          'policy': recommendation.policy,
          'reason': recommendation.reason,
          'fallback': recommendation.fallback,
      })
  logger.info('%s: recommended $%.2f (%s, %s)', deal.company_name,
              recommendation.price, recommendation.policy,
              recommendation.reason)

  ownership = builder.ownership_at(recommendation.price)
  warnings = _dedupe(
      analysis_warnings(deal, valuation, config) +
      recommendation.row.warnings)

  return PricingResult(
      assumptions=deal,
      matrix=matrix,
      recommendation=recommendation,
      ownership=ownership.entries,
      rationale=build_rationale(deal, valuation, recommendation),
      warnings=warnings,
      valuation=valuation,
      scenario=config.name,
  )


def run_from_payload(
    payload: Mapping[str, Any],
    config: Optional[PricingConfig] = None,
    trace: Optional[TraceFn] = None,
) -> PricingResult:
  '''
  Validate an untrusted payload, then price it.

  A payload that fails validation becomes a refused result with code
  'invalid_assumptions' listing every failed check.
  '''
  if config is None:
    config = PricingConfig.default()

  parsed = parse_assumptions(payload)
  if not parsed.ok:
    error = PricingError(
        reason=parsed.reason,
        code='invalid_assumptions',
        details={'errors': [str(e) for e in parsed.errors]},
    )
    return _refuse(None, error, config, resolve_trace(trace))
  return run_pricing(parsed.assumptions, config, trace)
