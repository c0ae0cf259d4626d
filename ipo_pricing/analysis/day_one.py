"""
Expected first-day return at one offer price.

adjusted = baseline
           + book quality + valuation penalty
           - secondary optics - binary catalyst - down round
           - dual class - customer concentration

The adjusted return is only computed when a sector benchmark was supplied.
Terms are reported regardless, so renderers can show what would apply.
"""

from typing import Optional

from ipo_pricing.domain.types import PolicyOutput
from ipo_pricing.policies.adjustments import AdjustmentTerm
from ipo_pricing.policies.adjustments import ReturnContext
from ipo_pricing.scenarios.registry import ADJUSTMENT_TERMS


class DayOneReturnEstimator:
  """
  Compose a sector baseline with the active adjustment terms.

  Inactive terms are still reported, as 0.0, under their row field.
  """

  def __init__(self, terms: dict[str, AdjustmentTerm]):
    """
    Initialize estimator.

    Args:
      terms: Active adjustment terms keyed by registry name
    """
    self.terms = terms

  @staticmethod
  def row_fields() -> list[str]:
    """PricingRow field names of every registered term."""
    return [factory.row_field for factory in ADJUSTMENT_TERMS.values()]

  def estimate(self, ctx: ReturnContext) -> PolicyOutput[Optional[float]]:
    """
    Estimate the adjusted first-day return.

    Args:
      ctx: Per-price inputs

    Returns:
      PolicyOutput with the adjusted return (None without a benchmark);
      diag holds 'baseline_return', one entry per row field and 'warnings'
    """
    baseline = ctx.deal.benchmarks.baseline
    diag: dict = {field: 0.0 for field in self.row_fields()}
    diag['baseline_return'] = baseline
    warnings: list[str] = []

    total = 0.0
    for term in self.terms.values():
      out = term.compute(ctx)
      diag[term.row_field] = out.value
      total += term.sign * out.value
      warnings.extend(out.diag.get('warnings', []))

    diag['warnings'] = warnings
    if baseline is None:
      return PolicyOutput(value=None, diag=diag)
    return PolicyOutput(value=baseline + total, diag=diag)
