"""
Pure DCF math engine.

This module contains pure functions for free-cash-flow DCF calculations. No
pandas, no I/O, just numeric computations. All inputs must be prepared
before calling these.

Key functions:
  project_free_cash_flows: Yearly FCF with a linear margin ramp
  compute_pv_explicit: PV of the explicit forecast period
  compute_terminal_value: Discounted Gordon growth terminal value
  compute_enterprise_value: Main entry point, explicit PV + terminal value
"""

from collections.abc import Sequence

from ipo_pricing.domain.types import ValuationError

MIN_RATE_SPREAD = 1e-6


def extend_growth_path(growth_rates: Sequence[float],
                       n_years: int) -> list[float]:
  """
  Fit a growth path to the forecast horizon.

  Truncates a longer path and extends a shorter one with its last rate.
  An empty path means flat revenue.
  """
  if not growth_rates:
    return [0.0] * n_years
  path = list(growth_rates[:n_years])
  while len(path) < n_years:
    path.append(growth_rates[-1])
  return path


def project_free_cash_flows(
    revenue0: float,
    growth_path: Sequence[float],
    margin0: float,
    target_margin: float,
    tax_rate: float,
    da_ratio: float,
    capex_ratio: float,
    nwc_ratio: float,
    floor_at_zero: bool = False,
) -> list[float]:
  """
  Project yearly free cash flow.

  The EBITDA margin ramps linearly from margin0 to target_margin, reaching
  the target in the final year.

  FCF_t = (EBITDA_t - D&A_t) * (1 - tax) + D&A_t - capex_t - dNWC_t
  where D&A and capex are fractions of revenue and dNWC is a fraction of the
  revenue increment implied by that year's growth rate.

  Args:
    revenue0: Current revenue
    growth_path: Yearly revenue growth rates [g1, ..., gN]
    margin0: Current EBITDA margin
    target_margin: EBITDA margin in year N
    tax_rate: Cash tax rate
    da_ratio: D&A as a fraction of revenue
    capex_ratio: Capex as a fraction of revenue
    nwc_ratio: Working capital investment per unit of revenue growth
    floor_at_zero: Floor each year's FCF at zero

  Returns:
    List of yearly free cash flows [FCF_1, ..., FCF_N]
  """
  n_years = len(growth_path)
  cash_flows = []
  revenue = revenue0

  for t, g in enumerate(growth_path, start=1):
    revenue *= (1.0 + g)
    margin = margin0 + (target_margin - margin0) * (t / n_years)

    ebitda = revenue * margin
    da = revenue * da_ratio
    capex = revenue * capex_ratio
    nwc_change = revenue * g * nwc_ratio
    fcf = (ebitda - da) * (1.0 - tax_rate) + da - capex - nwc_change

    if floor_at_zero:
      fcf = max(0.0, fcf)
    cash_flows.append(fcf)

  return cash_flows


def compute_pv_explicit(cash_flows: Sequence[float],
                        discount_rate: float) -> float:
  """
  Compute present value of the explicit forecast period.

  Args:
    cash_flows: Yearly free cash flows, year 1 first
    discount_rate: Discount rate (r)

  Returns:
    Sum of discounted cash flows
  """
  pv = 0.0
  for t, fcf in enumerate(cash_flows, start=1):
    pv += fcf / ((1.0 + discount_rate)**t)
  return pv


def compute_terminal_value(
    final_fcf: float,
    g_terminal: float,
    discount_rate: float,
    final_year: int,
) -> float:
  """
  Compute discounted terminal value using Gordon Growth Model.

  Args:
    final_fcf: Free cash flow in the final explicit year
    g_terminal: Terminal (perpetual) growth rate
    discount_rate: Discount rate (r)
    final_year: Number of years to discount back

  Returns:
    Present value of terminal value

  Raises:
    ValuationError: if discount_rate - g_terminal is not positive
  """
  spread = discount_rate - g_terminal
  if spread <= MIN_RATE_SPREAD:
    raise ValuationError(
        f'Discount rate ({discount_rate:.4f}) must exceed terminal growth '
        f'rate ({g_terminal:.4f}) for a terminal value',
        code='invalid_rate_spread')

  tv = (final_fcf * (1.0 + g_terminal)) / spread
  return tv / ((1.0 + discount_rate)**final_year)


def compute_enterprise_value(
    cash_flows: Sequence[float],
    g_terminal: float,
    discount_rate: float,
) -> tuple[float, float, float]:
  """
  Compute enterprise value using a two-stage DCF model.

  Stage 1: Explicit forecast period cash flows
  Stage 2: Terminal value using Gordon Growth Model

  Args:
    cash_flows: Yearly free cash flows [FCF_1, ..., FCF_N]
    g_terminal: Perpetual terminal growth rate
    discount_rate: Discount rate (r)

  Returns:
    Tuple of (enterprise_value, pv_explicit, tv_component)

  Raises:
    ValuationError: if there are no cash flows or the rate spread is not
      positive
  """
  if not cash_flows:
    raise ValuationError('DCF requires at least one projection year')

  pv_explicit = compute_pv_explicit(cash_flows, discount_rate)
  tv_component = compute_terminal_value(cash_flows[-1], g_terminal,
                                        discount_rate, len(cash_flows))
  return pv_explicit + tv_component, pv_explicit, tv_component
