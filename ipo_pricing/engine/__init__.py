'''Pricing engine with pure math functions.'''

from ipo_pricing.engine.dcf import compute_enterprise_value
from ipo_pricing.engine.dcf import project_free_cash_flows
from ipo_pricing.engine.demand import compute_demand
from ipo_pricing.engine.ownership import compute_ownership
from ipo_pricing.engine.rnpv import compute_asset_npv
from ipo_pricing.engine.shares import compute_share_mechanics
from ipo_pricing.engine.shares import enterprise_value

__all__ = [
    'compute_asset_npv',
    'compute_demand',
    'compute_enterprise_value',
    'compute_ownership',
    'compute_share_mechanics',
    'enterprise_value',
    'project_free_cash_flows',
]
