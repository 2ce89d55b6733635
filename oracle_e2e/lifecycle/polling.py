"""Cooperative polling with an explicit interval and deadline."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from oracle_e2e.config.schema import PhaseTiming
from oracle_e2e.errors import LifecycleTimeout
from oracle_e2e.ingest.ledger_client import LedgerClientError

logger = logging.getLogger(__name__)

T = TypeVar("T")

PHASE_AWAIT_CREATE = "await-create"
PHASE_AWAIT_LOCK = "await-lock"
PHASE_AWAIT_COMPLETION = "await-completion"


@dataclass(frozen=True)
class Ticker:
    """Time source for polling loops; tests swap in a fake clock."""

    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic


def poll_until(
    check: Callable[[], T | None],
    timing: PhaseTiming,
    phase: str,
    ticker: Ticker = Ticker(),
    retry_on: tuple[type[Exception], ...] = (LedgerClientError,),
    detail: str = "",
) -> T:
    """Call `check` every `timing.interval` seconds until it returns non-None.

    The first check happens one interval after the call. Exceptions listed
    in `retry_on` are logged and count as an empty tick. Raises
    LifecycleTimeout(phase) once a failed tick lands past the deadline, so
    the phase ends no later than timeout + interval.
    """
    deadline = ticker.clock() + timing.timeout
    while True:
        ticker.sleep(timing.interval)
        try:
            result = check()
        except retry_on as e:
            logger.warning("Poll tick failed during %s: %s", phase, e)
            result = None
        if result is not None:
            return result
        if ticker.clock() >= deadline:
            raise LifecycleTimeout(phase, timing.timeout, detail)
