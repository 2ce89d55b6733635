"""Suite pipeline: cleanup, run every test case, wait, report."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path

from oracle_e2e.config.schema import CaseConfig, E2EConfig
from oracle_e2e.errors import E2EError
from oracle_e2e.ingest.ledger_client import LedgerClientError
from oracle_e2e.lifecycle.orchestrator import LifecycleOrchestrator
from oracle_e2e.lifecycle.polling import Ticker
from oracle_e2e.models.reporting import ResultsSummary
from oracle_e2e.models.test_case import TestCase
from oracle_e2e.reporting.aggregator import TestResults
from oracle_e2e.reporting.formatters import format_results_text

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_cases(config: E2EConfig) -> list[TestCase]:
    """Materialise configured cases against the configured accounts."""
    eth = config.accounts.ethereum
    canopy = config.accounts.canopy
    cases = []
    for cc in config.suite.cases:
        _check_indexes(cc, len(eth), len(canopy))
        buyer, seller = eth[cc.buyer], eth[cc.seller]
        cases.append(
            TestCase(
                name=cc.name,
                order_amount=cc.order_amount,
                expected_token_transfer=cc.expected_token_transfer,
                expected_native_transfer=cc.expected_native_transfer,
                buyer_address=buyer.address,
                buyer_private_key=buyer.private_key,
                seller_address=seller.address,
                seller_private_key=seller.private_key,
                native_receive_address=canopy[cc.receiver],
                native_send_address=canopy[cc.receiver],
            )
        )
    return cases


def _check_indexes(cc: CaseConfig, n_eth: int, n_canopy: int) -> None:
    if cc.buyer >= n_eth or cc.seller >= n_eth:
        raise ValueError(
            f"case {cc.name}: buyer/seller index out of range "
            f"({n_eth} ethereum accounts configured)"
        )
    if cc.receiver >= n_canopy:
        raise ValueError(
            f"case {cc.name}: receiver index out of range "
            f"({n_canopy} canopy accounts configured)"
        )


class SuitePipeline:
    def __init__(
        self,
        config: E2EConfig,
        orchestrator: LifecycleOrchestrator | None = None,
        results: TestResults | None = None,
        ticker: Ticker = Ticker(),
    ):
        self.config = config
        self.ticker = ticker
        self.orchestrator = orchestrator or LifecycleOrchestrator.from_config(config, ticker)
        self.results = results or TestResults()

    def run(self) -> ResultsSummary:
        """Run the full suite. Per-case failures never abort the run."""
        start_time = time.monotonic()
        handler = self._attach_run_log()
        try:
            logger.info("Starting E2E Oracle Test Suite")
            summary = self._run(start_time)
            text = format_results_text(summary)
            logger.info("\n%s", text)
            print(text)
            return summary
        finally:
            logging.getLogger().removeHandler(handler)
            handler.close()
            self._rotate_logs()

    def _run(self, start_time: float) -> ResultsSummary:
        if self.config.suite.delete_existing:
            try:
                self.orchestrator.delete_all_orders()
            except (LedgerClientError, E2EError) as e:
                logger.error("Failed to delete existing orders: %s", e)
                summary = self.results.summary(time.monotonic() - start_time)
                summary.errors.append(f"failed to delete existing orders: {e}")
                return summary

        cases = build_cases(self.config)
        for case in cases:
            self.results.record(case)

        pool = None
        if self.config.suite.parallel:
            pool = ThreadPoolExecutor(
                max_workers=self.config.suite.max_workers, thread_name_prefix="e2e-case"
            )
        for case in cases:
            logger.info("Test %s - Started", case.name)
            if pool is not None:
                pool.submit(self.orchestrator.run_case, case, self.results)
            else:
                self.orchestrator.run_case(case, self.results)

        completed = self.results.await_completion(
            self.config.polling.suite_timeout,
            self.config.polling.suite_poll_interval,
            self.ticker,
        )
        if pool is not None:
            # Stragglers past the suite timeout are left running, not joined.
            pool.shutdown(wait=completed, cancel_futures=True)
        return self.results.summary(time.monotonic() - start_time)

    def _attach_run_log(self) -> logging.Handler:
        log_dir = Path(self.config.ops.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        handler = logging.FileHandler(log_dir / f"e2e_{timestamp}.log")
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)
        return handler

    def _rotate_logs(self) -> None:
        """Keep only the most recent run logs."""
        log_dir = Path(self.config.ops.log_dir)
        if not log_dir.exists():
            return
        logs = sorted(log_dir.glob("e2e_*.log"))
        keep = self.config.ops.max_log_files
        if len(logs) > keep:
            for old in logs[: len(logs) - keep]:
                old.unlink(missing_ok=True)
