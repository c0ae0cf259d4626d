'''
Enterprise valuation policies.

One policy per company classification. Each returns the enterprise value
and diagnostics, including a methodology label and any data-quality
warnings raised along the way.
'''

from abc import ABC, abstractmethod
import logging
from typing import Any, Dict, List, Optional

from ipo_pricing.domain.types import DealAssumptions, PolicyOutput
from ipo_pricing.domain.types import ValuationError
from ipo_pricing.engine.dcf import compute_enterprise_value
from ipo_pricing.engine.dcf import extend_growth_path
from ipo_pricing.engine.dcf import project_free_cash_flows
from ipo_pricing.engine.rnpv import compute_asset_npv, compute_rnpv

logger = logging.getLogger(__name__)

FLAT_REVENUE_WARNING = 'No revenue growth path supplied; revenue held flat'


class ValuationPolicy(ABC):
  '''
  Base class for enterprise valuation policies.

  Subclasses implement compute() to return an enterprise value. The diag
  dict always carries 'methodology' and 'warnings'.
  '''

  @abstractmethod
  def compute(self, deal: DealAssumptions,
              n_years: int) -> PolicyOutput[float]:
    '''
    Compute enterprise value.

    Args:
      deal: Deal assumptions
      n_years: Explicit forecast horizon

    Returns:
      PolicyOutput with enterprise value and diagnostics

    Raises:
      ValuationError: if the method is undefined for these inputs
    '''


class DiscountedCashFlow(ValuationPolicy):
  '''
  Free-cash-flow DCF with a Gordon growth terminal value.

  Revenue follows the deal's growth path and the EBITDA margin ramps
  linearly to the target margin over the horizon.
  '''

  methodology = 'Discounted Cash Flow (DCF) with Terminal Value'

  def __init__(
      self,
      da_ratio: float = 0.04,
      capex_ratio: float = 0.05,
      nwc_ratio: float = 0.10,
      floor_fcf: bool = False,
  ):
    '''
    Initialize DCF policy.

    Args:
      da_ratio: D&A as a fraction of revenue (default: 4%)
      capex_ratio: Capex as a fraction of revenue (default: 5%)
      nwc_ratio: Working capital per unit of revenue growth (default: 10%)
      floor_fcf: Floor yearly FCF at zero
    '''
    self.da_ratio = da_ratio
    self.capex_ratio = capex_ratio
    self.nwc_ratio = nwc_ratio
    self.floor_fcf = floor_fcf

  def _dcf(self, deal: DealAssumptions, n_years: int) -> Dict[str, Any]:
    if deal.discount_rate is None:
      raise ValuationError('Discount rate is required for a DCF valuation')
    if n_years < 1:
      raise ValuationError(f'Projection horizon must be >= 1, got {n_years}')

    growth_path = extend_growth_path(deal.revenue_growth_rates, n_years)
    cash_flows = project_free_cash_flows(
        revenue0=deal.current_revenue,
        growth_path=growth_path,
        margin0=deal.ebitda_margin,
        target_margin=deal.target_ebitda_margin,
        tax_rate=deal.tax_rate,
        da_ratio=self.da_ratio,
        capex_ratio=self.capex_ratio,
        nwc_ratio=self.nwc_ratio,
        floor_at_zero=self.floor_fcf,
    )
    ev, pv_explicit, tv_component = compute_enterprise_value(
        cash_flows, deal.terminal_growth_rate, deal.discount_rate)

    warnings = [] if deal.revenue_growth_rates else [FLAT_REVENUE_WARNING]
    return {
        'dcf_value': ev,
        'pv_explicit': pv_explicit,
        'tv_component': tv_component,
        'cash_flows': cash_flows,
        'n_years': n_years,
        'floor_fcf': self.floor_fcf,
        'warnings': warnings,
    }

  def compute(self, deal: DealAssumptions,
              n_years: int) -> PolicyOutput[float]:
    '''Compute DCF enterprise value.'''
    diag = self._dcf(deal, n_years)
    diag['methodology'] = self.methodology
    return PolicyOutput(value=diag['dcf_value'], diag=diag)


class EbitdaCrossCheckDCF(DiscountedCashFlow):
  '''
  DCF capped by the peer EV/EBITDA multiple.

  For capital-intensive companies the lower of the DCF value and
  current EBITDA x peer median EV/EBITDA is used. The cross-check is
  skipped when there is no positive peer multiple or EBITDA is not positive.
  '''

  methodology = 'EBITDA Multiple with DCF Cross-Check'

  def compute(self, deal: DealAssumptions,
              n_years: int) -> PolicyOutput[float]:
    '''Compute min(DCF, EBITDA x peer median EV/EBITDA).'''
    diag = self._dcf(deal, n_years)
    diag['methodology'] = self.methodology
    ev = diag['dcf_value']

    median = deal.peer_median_ev_ebitda
    diag['peer_median_ev_ebitda'] = median
    if median is not None and deal.current_ebitda > 0:
      comparable_ev = deal.current_ebitda * median
      diag['comparable_value'] = comparable_ev
      ev = min(ev, comparable_ev)

    return PolicyOutput(value=ev, diag=diag)


class RevenueMultipleBlend(DiscountedCashFlow):
  '''
  Lower of a peer revenue multiple and a zero-floored DCF.

  Forward revenue x peer median EV/Revenue is compared with a DCF whose
  yearly FCF is floored at zero; the minimum is used.
  '''

  methodology = 'Revenue Multiple with DCF Cross-Check'

  def __init__(
      self,
      da_ratio: float = 0.03,
      capex_ratio: float = 0.04,
      nwc_ratio: float = 0.08,
  ):
    '''
    Initialize revenue multiple blend.

    Args:
      da_ratio: D&A as a fraction of revenue (default: 3%)
      capex_ratio: Capex as a fraction of revenue (default: 4%)
      nwc_ratio: Working capital per unit of revenue growth (default: 8%)
    '''
    super().__init__(da_ratio=da_ratio,
                     capex_ratio=capex_ratio,
                     nwc_ratio=nwc_ratio,
                     floor_fcf=True)

  def compute(self, deal: DealAssumptions,
              n_years: int) -> PolicyOutput[float]:
    '''Compute min(forward revenue x peer EV/Revenue, floored DCF).'''
    diag = self._dcf(deal, n_years)
    diag['methodology'] = self.methodology
    dcf_value = diag['dcf_value']

    median = deal.peer_median_ev_revenue
    diag['peer_median_ev_revenue'] = median
    if median is None:
      diag['warnings'].append(
          'No EV/Revenue comparables; using floored DCF value only')
      return PolicyOutput(value=dcf_value, diag=diag)

    comparable_ev = deal.forward_revenue * median
    diag['comparable_value'] = comparable_ev
    ev = min(comparable_ev, dcf_value)
    logger.debug('Comparable EV: %.1f, DCF EV: %.1f, using %.1f',
                 comparable_ev, dcf_value, ev)
    return PolicyOutput(value=ev, diag=diag)


class PipelineRNPV(ValuationPolicy):
  '''
  Sum of risk-adjusted NPVs across pipeline assets.

  Without asset-level data, falls back to current revenue x peer median
  EV/Revenue x haircut and flags the result as imprecise.
  '''

  methodology = 'Risk-Adjusted NPV (rNPV) with Pipeline Analysis'
  fallback_methodology = 'Discounted Revenue Multiple (no pipeline data)'

  def __init__(
      self,
      operating_margin: float = 0.30,
      fallback_haircut: float = 0.5,
      horizon_years: int = 10,
      ramp_years: int = 3,
      peak_years: int = 4,
      decline_rate: float = 0.15,
  ):
    '''
    Initialize pipeline rNPV policy.

    Args:
      operating_margin: Margin applied to modelled sales (default: 30%)
      fallback_haircut: Fraction of the peer multiple used without
        pipeline data (default: 50%)
      horizon_years: Years modelled after launch (default: 10)
      ramp_years: Years from launch to peak sales (default: 3)
      peak_years: Years at peak sales (default: 4)
      decline_rate: Yearly decline after the plateau (default: 15%)
    '''
    self.operating_margin = operating_margin
    self.fallback_haircut = fallback_haircut
    self.horizon_years = horizon_years
    self.ramp_years = ramp_years
    self.peak_years = peak_years
    self.decline_rate = decline_rate

  def compute(self, deal: DealAssumptions,
              n_years: int) -> PolicyOutput[float]:
    '''Compute total rNPV, or the discounted multiple fallback.'''
    if not deal.pipeline_assets:
      return self._fallback(deal)

    if deal.discount_rate is None:
      raise ValuationError('Discount rate is required to discount pipeline '
                           'assets')
    if deal.valuation_year is None:
      raise ValuationError('Valuation year is required to discount pipeline '
                           'assets')

    assets: List[Dict[str, Any]] = []
    total = 0.0
    for asset in deal.pipeline_assets:
      years_to_launch = max(0, asset.launch_year - deal.valuation_year)
      npv = compute_asset_npv(
          peak_sales=asset.peak_sales,
          years_to_launch=years_to_launch,
          discount_rate=deal.discount_rate,
          tax_rate=deal.tax_rate,
          operating_margin=self.operating_margin,
          horizon_years=self.horizon_years,
          ramp_years=self.ramp_years,
          peak_years=self.peak_years,
          decline_rate=self.decline_rate,
      )
      rnpv = compute_rnpv(asset.probability_of_success, npv)
      total += rnpv
      assets.append({
          'name': asset.name,
          'phase': asset.phase,
          'years_to_launch': years_to_launch,
          'npv': npv,
          'rnpv': rnpv,
      })
      logger.debug('Pipeline: %s (%s), rNPV: %.1f', asset.name, asset.phase,
                   rnpv)

    return PolicyOutput(value=total,
                        diag={
                            'methodology': self.methodology,
                            'total_rnpv': total,
                            'assets': assets,
                            'operating_margin': self.operating_margin,
                            'warnings': [],
                        })

  def _fallback(self, deal: DealAssumptions) -> PolicyOutput[float]:
    warnings = ['Limited pipeline data - valuation may be imprecise']
    median: Optional[float] = deal.peer_median_ev_revenue
    if median is None:
      warnings.append('No EV/Revenue comparables for the pipeline fallback; '
                      'enterprise value set to 0')
      ev = 0.0
    else:
      ev = deal.current_revenue * median * self.fallback_haircut

    return PolicyOutput(value=ev,
                        diag={
                            'methodology': self.fallback_methodology,
                            'peer_median_ev_revenue': median,
                            'fallback_haircut': self.fallback_haircut,
                            'warnings': warnings,
                        })
