"""Check results and field validators for the intake boundary."""
from dataclasses import dataclass
import math
from typing import Optional


@dataclass(frozen=True)
class CheckResult:
  """Result of a single validation check."""

  name: str
  ok: bool
  details: str

  def __str__(self) -> str:
    status = '✓' if self.ok else '✗'
    return f'{status} {self.name}: {self.details}'


def fail_result(name: str, details: str) -> CheckResult:
  """Create a failing CheckResult."""
  return CheckResult(name=name, ok=False, details=details)


def check_finite(name: str, value: float) -> Optional[CheckResult]:
  """Fail on NaN or infinite values."""
  if math.isfinite(value):
    return None
  return fail_result(name, f'must be finite, got {value}')


def check_positive(name: str, value: float) -> Optional[CheckResult]:
  if value > 0:
    return None
  return fail_result(name, f'must be > 0, got {value}')


def check_non_negative(name: str, value: float) -> Optional[CheckResult]:
  if value >= 0:
    return None
  return fail_result(name, f'must be >= 0, got {value}')


def check_fraction(name: str, value: float) -> Optional[CheckResult]:
  """Fail unless 0 <= value <= 1."""
  if 0.0 <= value <= 1.0:
    return None
  return fail_result(name, f'must be between 0 and 1, got {value}')
