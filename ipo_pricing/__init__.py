'''
IPO valuation and pricing engine with a policy-based architecture.

The company is valued once with a method selected by its classification,
then every candidate offer price in the filed range is recomputed from
scratch: share tranches, dilution, proceeds, ownership and voting, order-book
demand and the expected day-one return. A configurable recommendation policy
picks one price.

Usage:
  from ipo_pricing.intake import parse_assumptions
  from ipo_pricing.run import run_pricing
  from ipo_pricing.scenarios.config import PricingConfig

  parsed = parse_assumptions(payload)
  if parsed.ok:
    result = run_pricing(parsed.assumptions, PricingConfig.default())
    frame = result.matrix_frame()
'''
