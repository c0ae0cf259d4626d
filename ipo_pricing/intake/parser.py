"""
Validation boundary for untrusted deal payloads.

Upstream extraction produces loosely-shaped JSON. Nothing past this module
sees that payload: parse_assumptions either returns a frozen DealAssumptions
or a ParseFailure listing every failed check. It never raises on bad input.

Keys may be snake_case or camelCase; a few legacy field names from the
extraction prompt are accepted as aliases.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
import json
import logging
import re
from typing import Any, Optional, Union

from ipo_pricing.domain.types import CLASSIFICATION_ALIASES
from ipo_pricing.domain.types import CLASSIFICATIONS
from ipo_pricing.domain.types import Comparable
from ipo_pricing.domain.types import DealAssumptions
from ipo_pricing.domain.types import Holder
from ipo_pricing.domain.types import InvestorOrder
from ipo_pricing.domain.types import OrderBookTier
from ipo_pricing.domain.types import PipelineAsset
from ipo_pricing.domain.types import PRE_REVENUE
from ipo_pricing.domain.types import SectorBenchmarks
from ipo_pricing.intake.checks import check_finite
from ipo_pricing.intake.checks import check_fraction
from ipo_pricing.intake.checks import check_non_negative
from ipo_pricing.intake.checks import check_positive
from ipo_pricing.intake.checks import CheckResult
from ipo_pricing.intake.checks import fail_result

logger = logging.getLogger(__name__)

FIELD_ALIASES = {
    'shares_outstanding_pre_ipo': 'pre_ipo_shares',
    'primary_dollar_raise_m': 'primary_raise',
    'secondary_dollar_raise_m': 'secondary_raise',
    'primary_shares_offered': 'primary_shares',
    'secondary_shares_offered': 'secondary_shares',
    'indicated_price_range_low': 'price_range_low',
    'indicated_price_range_high': 'price_range_high',
    'current_cash': 'cash',
    'current_debt': 'debt',
    'current_year_revenue': 'current_revenue',
    'growth_rates': 'revenue_growth_rates',
    'underwriting_fee_percent': 'underwriting_fee',
    'customer_concentration_top5': 'customer_concentration',
    'down_round_ipo_penalty': 'down_round_penalty',
    'notable_orders': 'investor_orders',
    'peer_median_ev_ra_npv': 'peer_ev_to_rnpv',
    'sector_median_first_day_pop': 'benchmark_median',
    'sector_average_first_day_pop': 'benchmark_average',
    'historical_first_day_pop': 'benchmark_historical',
}

NESTED_ALIASES = {
    'holders': {
        'holder': 'name',
        'type': 'holder_type',
        'voting_multiplier': 'voting_multiple',
        'secondary_sale_fraction': 'secondary_fraction',
    },
    'pipeline_assets': {
        'probability': 'probability_of_success',
        'pos': 'probability_of_success',
    },
    'investor_orders': {
        'investor_name': 'investor',
        'name': 'investor',
        'indicated_size_m': 'size',
        'indicated_size': 'size',
    },
}

DCF_CLASSIFICATIONS = ('mature', 'capital_intensive', 'high_growth')

_FENCE = re.compile(r'```(?:json)?\s*(.*?)```', re.DOTALL)
_CAMEL_WORD = re.compile(r'(.)([A-Z][a-z]+)')
_CAMEL_TAIL = re.compile(r'([a-z0-9])([A-Z])')


@dataclass
class ParseSuccess:
  assumptions: DealAssumptions
  ok: bool = field(default=True, init=False)


@dataclass
class ParseFailure:
  """Rejected payload with every failed check."""
  errors: list[CheckResult]
  ok: bool = field(default=False, init=False)

  @property
  def reason(self) -> str:
    details = '; '.join(f'{e.name}: {e.details}' for e in self.errors)
    return f'Invalid deal assumptions ({details})'


ParseResult = Union[ParseSuccess, ParseFailure]


def to_snake_case(name: str) -> str:
  """'sharesOutstandingPreIPO' -> 'shares_outstanding_pre_ipo'."""
  return _CAMEL_TAIL.sub(r'\1_\2', _CAMEL_WORD.sub(r'\1_\2', name)).lower()


def normalize_keys(payload: Mapping[str, Any],
                   aliases: Optional[Mapping[str, str]] = None) -> dict:
  """Snake-case every key and apply field aliases (top level only)."""
  aliases = FIELD_ALIASES if aliases is None else aliases
  out = {}
  for key, value in payload.items():
    name = to_snake_case(str(key))
    out[aliases.get(name, name)] = value
  return out


class _AssumptionReader:
  """Reads typed fields from a normalized payload, collecting failures."""

  def __init__(self, data: Mapping[str, Any]):
    self.data = data
    self.errors: list[CheckResult] = []

  def fail(self, name: str, details: str) -> None:
    self.errors.append(fail_result(name, details))

  def check(self, result: Optional[CheckResult]) -> bool:
    if result is None:
      return True
    self.errors.append(result)
    return False

  def to_number(self, name: str, value: Any) -> Optional[float]:
    if isinstance(value, bool):
      self.fail(name, f'must be a number, got {value!r}')
      return None
    if isinstance(value, (int, float)):
      number = float(value)
    elif isinstance(value, str):
      try:
        number = float(value.strip())
      except ValueError:
        self.fail(name, f'must be a number, got {value!r}')
        return None
    else:
      self.fail(name, f'must be a number, got {type(value).__name__}')
      return None
    if not self.check(check_finite(name, number)):
      return None
    return number

  def number(self,
             key: str,
             source: Optional[Mapping[str, Any]] = None,
             label: Optional[str] = None,
             required: bool = False,
             default: Optional[float] = None) -> Optional[float]:
    source = self.data if source is None else source
    label = label or key
    value = source.get(key)
    if value is None:
      if required:
        self.fail(label, 'is required')
      return default
    number = self.to_number(label, value)
    return default if number is None else number

  def integer(self,
              key: str,
              source: Optional[Mapping[str, Any]] = None,
              label: Optional[str] = None,
              required: bool = False) -> Optional[int]:
    label = label or key
    number = self.number(key, source, label, required)
    if number is None:
      return None
    if not number.is_integer():
      self.fail(label, f'must be a whole number, got {number}')
      return None
    return int(number)

  def text(self, key: str, lower: bool = False) -> Optional[str]:
    value = self.data.get(key)
    if value is None:
      return None
    value = str(value).strip()
    return value.lower() if lower else value

  def flag(self, key: str) -> bool:
    value = self.data.get(key)
    if isinstance(value, str):
      return value.strip().lower() in ('true', 'yes', '1')
    return bool(value)

  def records(self, key: str) -> list[dict]:
    '''List of normalized dicts under key; anything else is a failure.'''
    value = self.data.get(key)
    if value is None:
      return []
    if not isinstance(value, list):
      self.fail(key, f'must be a list, got {type(value).__name__}')
      return []
    records = []
    aliases = NESTED_ALIASES.get(key, {})
    for i, item in enumerate(value):
      if not isinstance(item, Mapping):
        self.fail(f'{key}[{i}]', 'must be an object')
        continue
      records.append(normalize_keys(item, aliases))
    return records


def _parse_classification(reader: _AssumptionReader) -> Optional[str]:
  raw = reader.text('classification', lower=True)
  if not raw:
    reader.fail('classification', 'is required')
    return None
  canonical = CLASSIFICATION_ALIASES.get(raw, raw)
  if canonical not in CLASSIFICATIONS:
    reader.fail('classification', f"unknown classification '{raw}'. "
                f'Available: {list(CLASSIFICATIONS)}')
    return None
  return canonical


def _parse_growth_path(reader: _AssumptionReader) -> tuple[float, ...]:
  value = reader.data.get('revenue_growth_rates')
  if value is None:
    return ()
  if isinstance(value, Mapping):
    value = list(value.values())
  if not isinstance(value, list):
    value = [value]
  rates = []
  for i, rate in enumerate(value):
    if rate is None:
      continue
    number = reader.to_number(f'revenue_growth_rates[{i}]', rate)
    if number is not None:
      rates.append(number)
  return tuple(rates)


def _parse_holders(reader: _AssumptionReader) -> tuple[Holder, ...]:
  holders = []
  for i, item in enumerate(reader.records('holders')):
    prefix = f'holders[{i}]'
    shares = reader.number('shares', item, f'{prefix}.shares', required=True)
    if shares is not None:
      reader.check(check_non_negative(f'{prefix}.shares', shares))
    multiple = reader.number('voting_multiple', item,
                             f'{prefix}.voting_multiple')
    if multiple is not None:
      reader.check(check_positive(f'{prefix}.voting_multiple', multiple))
    fraction = reader.number('secondary_fraction', item,
                             f'{prefix}.secondary_fraction')
    if fraction is not None:
      reader.check(check_fraction(f'{prefix}.secondary_fraction', fraction))
    holders.append(
        Holder(name=str(item.get('name') or f'Holder {i + 1}'),
               shares=shares or 0.0,
               holder_type=str(item.get('holder_type') or 'other').lower(),
               voting_multiple=multiple,
               secondary_fraction=fraction))
  return tuple(holders)


def _parse_comparables(reader: _AssumptionReader) -> tuple[Comparable, ...]:
  comps = []
  for i, item in enumerate(reader.records('comparables')):
    comps.append(
        Comparable(
            name=str(item.get('name') or f'Peer {i + 1}'),
            ev_revenue=reader.number('ev_revenue', item,
                                     f'comparables[{i}].ev_revenue'),
            ev_ebitda=reader.number('ev_ebitda', item,
                                    f'comparables[{i}].ev_ebitda'),
        ))
  return tuple(comps)


def _parse_pipeline(reader: _AssumptionReader) -> tuple[PipelineAsset, ...]:
  assets = []
  for i, item in enumerate(reader.records('pipeline_assets')):
    prefix = f'pipeline_assets[{i}]'
    prob = reader.number('probability_of_success', item,
                         f'{prefix}.probability_of_success', required=True)
    if prob is not None:
      reader.check(check_fraction(f'{prefix}.probability_of_success', prob))
    peak = reader.number('peak_sales', item, f'{prefix}.peak_sales',
                         required=True)
    if peak is not None:
      reader.check(check_non_negative(f'{prefix}.peak_sales', peak))
    launch = reader.integer('launch_year', item, f'{prefix}.launch_year',
                            required=True)
    assets.append(
        PipelineAsset(name=str(item.get('name') or f'Asset {i + 1}'),
                      probability_of_success=prob or 0.0,
                      peak_sales=peak or 0.0,
                      launch_year=launch or 0,
                      phase=str(item.get('phase') or '')))
  return tuple(assets)


def _parse_order_book(reader: _AssumptionReader) -> tuple[OrderBookTier, ...]:
  tiers = []
  for i, item in enumerate(reader.records('order_book')):
    prefix = f'order_book[{i}]'
    level = reader.number('price_level', item, f'{prefix}.price_level',
                          required=True)
    if level is not None:
      reader.check(check_positive(f'{prefix}.price_level', level))
    oversub = reader.number('oversubscription', item,
                            f'{prefix}.oversubscription', required=True)
    if oversub is not None:
      reader.check(check_non_negative(f'{prefix}.oversubscription', oversub))
    tiers.append(OrderBookTier(price_level=level or 0.0,
                               oversubscription=oversub or 0.0))
  return tuple(tiers)


def _parse_investor_orders(
    reader: _AssumptionReader) -> tuple[InvestorOrder, ...]:
  orders = []
  for i, item in enumerate(reader.records('investor_orders')):
    prefix = f'investor_orders[{i}]'
    size = reader.number('size', item, f'{prefix}.size', required=True)
    if size is not None:
      reader.check(check_non_negative(f'{prefix}.size', size))
    max_price = reader.number('max_price', item, f'{prefix}.max_price')
    if max_price is not None:
      reader.check(check_positive(f'{prefix}.max_price', max_price))
    orders.append(
        InvestorOrder(investor=str(item.get('investor') or f'Investor {i + 1}'),
                      size=size or 0.0,
                      max_price=max_price))
  return tuple(orders)


def _parse_benchmarks(reader: _AssumptionReader) -> SectorBenchmarks:
  nested = reader.data.get('benchmarks')
  if isinstance(nested, Mapping):
    source = normalize_keys(nested, {})
    return SectorBenchmarks(
        median=reader.number('median', source, 'benchmarks.median'),
        average=reader.number('average', source, 'benchmarks.average'),
        historical=reader.number('historical', source,
                                 'benchmarks.historical'),
    )
  return SectorBenchmarks(
      median=reader.number('benchmark_median'),
      average=reader.number('benchmark_average'),
      historical=reader.number('benchmark_historical'),
  )


def _parse_primary_raise(
    reader: _AssumptionReader) -> tuple[Optional[float], Optional[float]]:
  raise_amount = reader.number('primary_raise')
  raise_shares = reader.number('primary_shares')
  for name, value in (('primary_raise', raise_amount),
                      ('primary_shares', raise_shares)):
    if value is not None and value < 0:
      reader.check(check_positive(name, value))
      return None, None

  has_amount = bool(raise_amount)
  has_shares = bool(raise_shares)
  if has_amount and has_shares:
    reader.fail('primary_raise',
                'specify only one of primary_raise or primary_shares')
  elif not has_amount and not has_shares:
    reader.fail('primary_raise',
                'one of primary_raise or primary_shares must be > 0')
  return ((raise_amount if has_amount else None),
          (raise_shares if has_shares else None))


def parse_assumptions(payload: Mapping[str, Any]) -> ParseResult:
  """
  Validate an untrusted payload into DealAssumptions.

  Args:
    payload: Decoded JSON object from upstream extraction

  Returns:
    ParseSuccess with frozen assumptions, or ParseFailure listing every
    failed check
  """
  if not isinstance(payload, Mapping):
    return ParseFailure(errors=[
        fail_result('payload', f'must be an object, got '
                    f'{type(payload).__name__}')
    ])

  reader = _AssumptionReader(normalize_keys(payload))

  pre_ipo_shares = reader.number('pre_ipo_shares', required=True)
  if pre_ipo_shares is not None:
    reader.check(check_positive('pre_ipo_shares', pre_ipo_shares))

  classification = _parse_classification(reader)
  holders = _parse_holders(reader)
  comparables = _parse_comparables(reader)
  pipeline = _parse_pipeline(reader)
  order_book = _parse_order_book(reader)
  investor_orders = _parse_investor_orders(reader)
  benchmarks = _parse_benchmarks(reader)
  growth_path = _parse_growth_path(reader)
  primary_raise, primary_shares = _parse_primary_raise(reader)

  discount_rate = reader.number('discount_rate')
  if discount_rate is None and classification in DCF_CLASSIFICATIONS:
    reader.fail('discount_rate',
                f'is required for {classification} valuations')
  valuation_year = reader.integer('valuation_year')
  if classification == PRE_REVENUE and pipeline:
    if discount_rate is None:
      reader.fail('discount_rate', 'is required to discount pipeline assets')
    if valuation_year is None:
      reader.fail('valuation_year',
                  'is required to discount pipeline launch years')

  non_negative = {
      key: reader.number(key, default=0.0)
      for key in ('cash', 'debt', 'greenshoe_percent', 'debt_repayment')
  }
  for key, value in non_negative.items():
    reader.check(check_non_negative(key, value))

  fractions = {}
  for key in ('tax_rate', 'underwriting_fee', 'founder_ownership_floor',
              'customer_concentration'):
    value = reader.number(key)
    if value is not None:
      reader.check(check_fraction(key, value))
    fractions[key] = value

  optional_amounts = {}
  for key in ('secondary_shares', 'secondary_raise', 'greenshoe_shares'):
    value = reader.number(key)
    if value is not None:
      reader.check(check_non_negative(key, value))
    optional_amounts[key] = value

  ebitda_margin = reader.number('ebitda_margin', default=0.0)
  projection_years = reader.integer('projection_years')
  if projection_years is not None:
    reader.check(check_positive('projection_years', projection_years))

  fields = dict(
      company_name=reader.text('company_name') or 'Unknown',
      classification=classification,
      pre_ipo_shares=pre_ipo_shares,
      holders=holders,
      current_revenue=reader.number('current_revenue', default=0.0),
      revenue_growth_rates=growth_path,
      current_ebitda=reader.number('current_ebitda', default=0.0),
      ebitda_margin=ebitda_margin,
      target_ebitda_margin=reader.number('target_ebitda_margin',
                                         default=ebitda_margin),
      cash=non_negative['cash'],
      debt=non_negative['debt'],
      discount_rate=discount_rate,
      terminal_growth_rate=reader.number('terminal_growth_rate', default=0.0),
      tax_rate=fractions['tax_rate'] or 0.0,
      projection_years=projection_years,
      comparables=comparables,
      pipeline_assets=pipeline,
      valuation_year=valuation_year,
      primary_raise=primary_raise,
      primary_shares=primary_shares,
      secondary_shares=optional_amounts['secondary_shares'],
      secondary_raise=optional_amounts['secondary_raise'],
      greenshoe_percent=non_negative['greenshoe_percent'],
      greenshoe_shares=optional_amounts['greenshoe_shares'],
      underwriting_fee=fractions['underwriting_fee'] or 0.0,
      debt_repayment=non_negative['debt_repayment'],
      price_range_low=reader.number('price_range_low'),
      price_range_high=reader.number('price_range_high'),
      order_book=order_book,
      investor_orders=investor_orders,
      benchmarks=benchmarks,
      pricing_aggressiveness=reader.text('pricing_aggressiveness', lower=True),
      management_priority=reader.text('management_priority', lower=True),
      min_acceptable_price=reader.number('min_acceptable_price'),
      founder_ownership_floor=fractions['founder_ownership_floor'],
      dual_class=reader.flag('dual_class'),
      dual_class_discount=reader.number('dual_class_discount'),
      has_binary_catalyst=reader.flag('has_binary_catalyst'),
      months_to_catalyst=reader.number('months_to_catalyst'),
      last_private_round_price=reader.number('last_private_round_price'),
      down_round_optics=reader.flag('down_round_optics'),
      down_round_penalty=reader.number('down_round_penalty'),
      secondary_optics=reader.text('secondary_optics', lower=True),
      customer_concentration=fractions['customer_concentration'],
      fair_value_per_share=reader.number('fair_value_per_share'),
      peer_ev_to_rnpv=reader.number('peer_ev_to_rnpv'),
  )

  if reader.errors:
    logger.warning('Rejected deal assumptions: %d failed checks',
                   len(reader.errors))
    return ParseFailure(errors=reader.errors)
  return ParseSuccess(assumptions=DealAssumptions(**fields))


def extract_json_text(text: str) -> str:
  """JSON object text from a provider response, without code fences."""
  match = _FENCE.search(text)
  candidate = match.group(1).strip() if match else text.strip()
  if not candidate.startswith('{'):
    start = candidate.find('{')
    end = candidate.rfind('}')
    if start != -1 and end > start:
      candidate = candidate[start:end + 1]
  return candidate


def parse_provider_response(text: str) -> ParseResult:
  """
  Decode a text-generation provider response into DealAssumptions.

  Args:
    text: Raw response, possibly wrapped in markdown code fences or prose

  Returns:
    ParseSuccess or ParseFailure
  """
  try:
    payload = json.loads(extract_json_text(text))
  except json.JSONDecodeError as e:
    return ParseFailure(errors=[fail_result('json', f'invalid JSON: {e.msg}')])
  return parse_assumptions(payload)
