"""
Risk-adjusted NPV math for pipeline assets.

Each asset's sales follow a stylized launch curve: a linear ramp to peak,
a flat peak plateau, then a linear decline. Sales are converted to free cash
flow with a fixed operating margin and tax rate, discounted from the
valuation year, and weighted by the probability of success.
"""

RAMP_YEARS = 3
PEAK_YEARS = 4
DECLINE_RATE = 0.15
HORIZON_YEARS = 10


def sales_curve_factor(
    years_post_launch: int,
    ramp_years: int = RAMP_YEARS,
    peak_years: int = PEAK_YEARS,
    decline_rate: float = DECLINE_RATE,
) -> float:
  """
  Fraction of peak sales reached a given number of years after launch.

  Args:
    years_post_launch: Whole years since launch (0 = launch year)
    ramp_years: Years to ramp linearly to peak
    peak_years: Years at peak after the ramp
    decline_rate: Fraction of peak lost per year after the plateau

  Returns:
    Sales factor in [0, 1]
  """
  if years_post_launch <= ramp_years:
    factor = years_post_launch / ramp_years
  elif years_post_launch <= ramp_years + peak_years:
    factor = 1.0
  else:
    factor = 1.0 - (years_post_launch - ramp_years - peak_years) * decline_rate
  return max(0.0, factor)


def compute_asset_npv(
    peak_sales: float,
    years_to_launch: int,
    discount_rate: float,
    tax_rate: float,
    operating_margin: float,
    horizon_years: int = HORIZON_YEARS,
    ramp_years: int = RAMP_YEARS,
    peak_years: int = PEAK_YEARS,
    decline_rate: float = DECLINE_RATE,
) -> float:
  """
  Unrisked NPV of one asset's modelled sales.

  Args:
    peak_sales: Peak annual sales
    years_to_launch: Years from the valuation year to launch (>= 0)
    discount_rate: Discount rate (r)
    tax_rate: Cash tax rate
    operating_margin: Operating margin on sales
    horizon_years: Years modelled after launch
    ramp_years: See sales_curve_factor
    peak_years: See sales_curve_factor
    decline_rate: See sales_curve_factor

  Returns:
    Present value of the asset's free cash flows
  """
  npv = 0.0
  for k in range(horizon_years + 1):
    sales = peak_sales * sales_curve_factor(k, ramp_years, peak_years,
                                            decline_rate)
    fcf = sales * operating_margin * (1.0 - tax_rate)
    npv += fcf / ((1.0 + discount_rate)**(years_to_launch + k))
  return npv


def compute_rnpv(probability_of_success: float, asset_npv: float) -> float:
  """Risk-adjust an asset NPV by its probability of success."""
  return asset_npv * probability_of_success
