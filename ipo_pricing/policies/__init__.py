"""
Pricing policies.

Valuation policies turn deal assumptions into an enterprise value, adjustment
terms contribute to the expected day-one return, and recommendation policies
pick one row of the pricing matrix. Every policy returns a PolicyOutput
carrying both a value and diagnostic information.

To add a new policy:
1. Create a new class inheriting from the appropriate base
   (e.g., RecommendationPolicy)
2. Implement the compute() method returning PolicyOutput
3. Register in scenarios/registry.py

Example:
  class TopOfRange(RecommendationPolicy):
    def compute(self, rows, deal) -> PolicyOutput[Optional[PricingRow]]:
      row = ...  # your selection
      return PolicyOutput(value=row, diag={'reason': 'top_of_range'})
"""

from ipo_pricing.policies.adjustments import AdjustmentTerm
from ipo_pricing.policies.adjustments import BinaryCatalyst
from ipo_pricing.policies.adjustments import BookQuality
from ipo_pricing.policies.adjustments import CustomerConcentration
from ipo_pricing.policies.adjustments import DownRound
from ipo_pricing.policies.adjustments import DualClass
from ipo_pricing.policies.adjustments import ReturnContext
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

__all__ = [
  'ValuationPolicy', 'DiscountedCashFlow', 'EbitdaCrossCheckDCF',
  'RevenueMultipleBlend', 'PipelineRNPV',
  'AdjustmentTerm', 'ReturnContext', 'BookQuality', 'ValuationPenalty',
  'SecondaryOptics', 'BinaryCatalyst', 'DownRound', 'DualClass',
  'CustomerConcentration',
  'RecommendationPolicy', 'MaximumPrice', 'ConservativeCoverage',
  'DealCertainty', 'RangeMidpoint',
]
