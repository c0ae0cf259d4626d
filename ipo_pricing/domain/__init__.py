"""Domain types for the IPO pricing engine."""

from ipo_pricing.domain.types import DealAssumptions
from ipo_pricing.domain.types import Holder
from ipo_pricing.domain.types import OwnershipEntry
from ipo_pricing.domain.types import PolicyOutput
from ipo_pricing.domain.types import PricingError
from ipo_pricing.domain.types import PricingResult
from ipo_pricing.domain.types import PricingRow
from ipo_pricing.domain.types import Recommendation
from ipo_pricing.domain.types import ValuationError
from ipo_pricing.domain.types import ValuationOutcome

__all__ = [
    'DealAssumptions',
    'Holder',
    'OwnershipEntry',
    'PolicyOutput',
    'PricingError',
    'PricingResult',
    'PricingRow',
    'Recommendation',
    'ValuationError',
    'ValuationOutcome',
]
