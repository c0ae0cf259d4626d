"""Human-readable rationale and analysis-level warnings."""

from typing import Optional

from ipo_pricing.analysis.matrix import growth_deceleration
from ipo_pricing.domain.types import DealAssumptions, FOUNDER
from ipo_pricing.domain.types import PricingRow, Recommendation
from ipo_pricing.domain.types import ValuationOutcome
from ipo_pricing.scenarios.config import PricingConfig

MATERIAL_ADJUSTMENT = 0.01

ADJUSTMENT_LABELS = {
    'book_quality_adjustment': ('Book quality', 1.0),
    'valuation_penalty': ('Valuation above fair value', 1.0),
    'secondary_discount': ('Secondary-sale optics', -1.0),
    'catalyst_discount': ('Binary catalyst', -1.0),
    'down_round_discount': ('Down-round', -1.0),
    'dual_class_discount': ('Dual-class governance', -1.0),
    'concentration_discount': ('Customer concentration', -1.0),
}


def _vs_peer_phrase(delta: float, peer: float) -> str:
  direction = 'above' if delta >= 0 else 'below'
  return f'{abs(delta) * 100:.0f}% {direction} peer median {peer:.1f}x'


def _multiple_line(row: PricingRow, deal: DealAssumptions) -> str:
  price = row.offer_price
  if row.ev_to_rnpv is not None and row.vs_peer_ev_rnpv is not None:
    return (f'${price:.2f} at {row.ev_to_rnpv:.1f}x EV/rNPV '
            f'({_vs_peer_phrase(row.vs_peer_ev_rnpv, deal.peer_ev_to_rnpv)})')
  if row.ev_to_revenue is not None and row.vs_peer_ev_revenue is not None:
    return (f'${price:.2f} at {row.ev_to_revenue:.1f}x NTM EV/Revenue '
            f'({_vs_peer_phrase(row.vs_peer_ev_revenue, row.peer_ev_revenue)})')
  if row.ev_to_ebitda is not None and row.vs_peer_ev_ebitda is not None:
    phrase = _vs_peer_phrase(row.vs_peer_ev_ebitda, deal.peer_median_ev_ebitda)
    return f'${price:.2f} at {row.ev_to_ebitda:.1f}x EV/EBITDA ({phrase})'
  return (f'${price:.2f} implies enterprise value of '
          f'{row.enterprise_value:,.1f}')


def _book_line(row: PricingRow) -> Optional[str]:
  if row.order_book_tier is None:
    return None
  line = (f'Order book {row.oversubscription:.1f}x covered at the '
          f'{row.order_book_tier} tier')
  if row.investors_dropping:
    names = ', '.join(row.investors_dropping)
    line += (f'; {row.effective_oversubscription:.1f}x effective after '
             f'{names} drop out')
  return line


def build_rationale(
    deal: DealAssumptions,
    valuation: ValuationOutcome,
    recommendation: Recommendation,
) -> list[str]:
  """
  Ordered rationale lines for the recommended price.

  Args:
    deal: Deal assumptions
    valuation: Valuation outcome
    recommendation: Selected recommendation

  Returns:
    List of rationale strings
  """
  row = recommendation.row
  lines = [_multiple_line(row, deal)]

  fv = valuation.fair_value_per_share
  fv_line = f'{valuation.methodology}: fair value ${fv:.2f} per share'
  if row.fair_value_support is not None:
    fv_line += f' (offer at {row.fair_value_support * 100:.0f}% of fair value)'
  lines.append(fv_line)

  book = _book_line(row)
  if book:
    lines.append(book)

  if row.adjusted_return is not None:
    lines.append(f'Expected day-one return {row.adjusted_return * 100:.1f}% '
                 f'(sector baseline {row.baseline_return * 100:.1f}%)')
    for field, (label, sign) in ADJUSTMENT_LABELS.items():
      value = sign * getattr(row, field)
      if abs(value) >= MATERIAL_ADJUSTMENT:
        lines.append(f'{label}: {value * 100:+.1f}%')

  lines.append(f'Pricing policy: {recommendation.policy} '
               f'({recommendation.reason})')
  if deal.management_priority:
    priority = deal.management_priority.replace('_', ' ')
    lines.append(f'Management priority: {priority}')

  if any(h.holder_type == FOUNDER for h in deal.holders):
    lines.append(f'Founders retain {row.founder_ownership * 100:.1f}% '
                 f'ownership and {row.founder_voting_power * 100:.1f}% '
                 f'voting power')

  lines.append(f'Gross proceeds {row.gross_proceeds:,.1f}: primary '
               f'{row.gross_primary_proceeds:,.1f}, secondary '
               f'{row.gross_secondary_proceeds:,.1f}, greenshoe '
               f'{row.gross_greenshoe_proceeds:,.1f}; net to issuer '
               f'{row.net_issuer_proceeds:,.1f}')
  return lines


def analysis_warnings(
    deal: DealAssumptions,
    valuation: ValuationOutcome,
    config: PricingConfig,
) -> list[str]:
  """
  Warnings that do not depend on the offer price.

  Args:
    deal: Deal assumptions
    valuation: Valuation outcome
    config: Pricing configuration

  Returns:
    List of warning strings
  """
  warnings = list(valuation.warnings)

  if (deal.dual_class and deal.dual_class_discount and
      'dual_class' in config.adjustments):
    warnings.append(f'Dual-class structure: '
                    f'{deal.dual_class_discount * 100:.1f}% governance '
                    f'discount applied')

  concentration = deal.customer_concentration
  if (concentration is not None and
      concentration > config.concentration_threshold):
    warnings.append(f'Customer concentration {concentration * 100:.0f}% '
                    f'exceeds {config.concentration_threshold * 100:.0f}% '
                    f'threshold')

  penalty = growth_deceleration(deal)
  if config.growth_deceleration and penalty > 0:
    g1, g2 = deal.revenue_growth_rates[:2]
    warnings.append(f'Growth decelerates from {g1 * 100:.0f}% to '
                    f'{g2 * 100:.0f}%; peer EV/Revenue compressed by '
                    f'{penalty * 100:.1f}%')

  attributed = any(h.secondary_fraction for h in deal.holders)
  if not attributed and (deal.secondary_shares or deal.secondary_raise):
    warnings.append('Secondary shares are not attributed to holders; '
                    'public float excludes them')

  return warnings
