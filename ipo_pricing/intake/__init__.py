"""Validation boundary for upstream deal payloads."""

from ipo_pricing.intake.checks import CheckResult
from ipo_pricing.intake.parser import parse_assumptions
from ipo_pricing.intake.parser import parse_provider_response
from ipo_pricing.intake.parser import ParseFailure
from ipo_pricing.intake.parser import ParseResult
from ipo_pricing.intake.parser import ParseSuccess

__all__ = [
  'CheckResult',
  'ParseFailure',
  'ParseResult',
  'ParseSuccess',
  'parse_assumptions',
  'parse_provider_response',
]
