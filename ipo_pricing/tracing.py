'''
Injected tracing callbacks.

The engine never prints. Callers pass a TraceFn that receives an event name
and a diagnostics dict; the default forwards events to the package logger.
'''

from collections.abc import Callable
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger('ipo_pricing')

TraceFn = Callable[[str, Dict[str, Any]], None]


def null_trace(event: str, diag: Dict[str, Any]) -> None:
  '''Discard trace events.'''


def logging_trace(event: str, diag: Dict[str, Any]) -> None:
  '''Forward trace events to the package logger at DEBUG.'''
  logger.debug('%s: %s', event, diag)


def resolve_trace(trace: Optional[TraceFn]) -> TraceFn:
  return logging_trace if trace is None else trace
