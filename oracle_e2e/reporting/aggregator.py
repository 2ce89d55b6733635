"""Test result aggregator shared by concurrently running lifecycle runs."""

import logging
import threading

from oracle_e2e.lifecycle.polling import Ticker
from oracle_e2e.models.reporting import CaseOutcome, ResultsSummary
from oracle_e2e.models.test_case import TestCase

logger = logging.getLogger(__name__)


class TestResults:
    """Counters and per-case records, all guarded by one lock.

    Each recorded case must be reported exactly once through mark_passed
    or mark_failed, so passed + failed never exceeds total.
    """

    __test__ = False  # not a pytest class

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cases: dict[str, TestCase] = {}
        self._failed_steps: dict[str, str] = {}
        self._reported: set[str] = set()
        self._total = 0
        self._passed = 0
        self._failed = 0

    def record(self, case: TestCase) -> None:
        """Register a case before its run starts."""
        with self._lock:
            if case.name in self._cases:
                raise ValueError(f"duplicate test case name: {case.name}")
            self._cases[case.name] = case
            self._total += 1

    def _mark_reported(self, case: TestCase) -> None:
        if case.name not in self._cases:
            raise ValueError(f"test case {case.name} was never recorded")
        if case.name in self._reported:
            raise ValueError(f"test case {case.name} already reported")
        self._reported.add(case.name)

    def mark_passed(self, case: TestCase) -> None:
        with self._lock:
            self._mark_reported(case)
            self._passed += 1
        logger.info("Test %s - PASSED ✅", case.name)

    def mark_failed(self, case: TestCase, error: Exception, step: str = "") -> None:
        with self._lock:
            self._mark_reported(case)
            case.error = error
            if step:
                self._failed_steps[case.name] = step
            self._failed += 1
        logger.error("Test %s - FAILED ❌ (%s): %s", case.name, step or "run", error)

    def counts(self) -> tuple[int, int, int]:
        """(total, passed, failed) as one consistent read."""
        with self._lock:
            return self._total, self._passed, self._failed

    def await_completion(
        self, timeout: float, interval: float = 1.0, ticker: Ticker = Ticker()
    ) -> bool:
        """Block until every recorded case is reported or `timeout` elapses.

        Returns False on timeout.
        """
        deadline = ticker.clock() + timeout
        while True:
            total, passed, failed = self.counts()
            if passed + failed >= total:
                return True
            if ticker.clock() >= deadline:
                logger.error(
                    "Timeout waiting for test completion (%d/%d reported)",
                    passed + failed, total,
                )
                return False
            ticker.sleep(interval)

    def summary(self, duration_seconds: float = 0.0) -> ResultsSummary:
        with self._lock:
            outcomes = []
            for name, case in self._cases.items():
                error = None
                if case.error is not None:
                    step = self._failed_steps.get(name)
                    error = f"failed to {step}: {case.error}" if step else str(case.error)
                outcomes.append(
                    CaseOutcome(
                        name=name,
                        status=case.status.value,
                        order_id=case.order_id,
                        error=error,
                    )
                )
            return ResultsSummary(
                total=self._total,
                passed=self._passed,
                failed=self._failed,
                completed=self._passed + self._failed >= self._total,
                duration_seconds=duration_seconds,
                outcomes=outcomes,
            )
