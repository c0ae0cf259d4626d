"""Pricing configuration and policy registry."""

from ipo_pricing.scenarios.config import PricingConfig
from ipo_pricing.scenarios.registry import create_policies
from ipo_pricing.scenarios.registry import list_policies
from ipo_pricing.scenarios.registry import POLICY_REGISTRY

__all__ = [
  'PricingConfig',
  'POLICY_REGISTRY',
  'create_policies',
  'list_policies',
]
