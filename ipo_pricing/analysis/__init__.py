"""Pricing matrix, day-one return and rationale composition."""

from ipo_pricing.analysis.day_one import DayOneReturnEstimator
from ipo_pricing.analysis.matrix import build_price_grid
from ipo_pricing.analysis.matrix import PricingMatrixBuilder
from ipo_pricing.analysis.rationale import analysis_warnings
from ipo_pricing.analysis.rationale import build_rationale

__all__ = [
  'DayOneReturnEstimator',
  'PricingMatrixBuilder',
  'analysis_warnings',
  'build_price_grid',
  'build_rationale',
]
