"""Tests for the suite pipeline and the monitor loop."""

import signal
from pathlib import Path

import pytest

from oracle_e2e.config.schema import CaseConfig, E2EConfig, PollingConfig, SuiteConfig
from oracle_e2e.ingest.ledger_client import LedgerClientError
from oracle_e2e.lifecycle.orchestrator import LifecycleOrchestrator
from oracle_e2e.lifecycle.polling import Ticker
from oracle_e2e.pipeline.monitor import Monitor
from oracle_e2e.pipeline.suite_pipeline import SuitePipeline, build_cases
from oracle_e2e.tests.fakes import CANOPY_ACCOUNTS, FakeClock, FakeNetwork


def _with_cases(config: E2EConfig, *cases: CaseConfig, parallel: bool = False) -> E2EConfig:
    return config.model_copy(
        update={"suite": SuiteConfig(parallel=parallel, cases=list(cases))}
    )


class TestBuildCases:
    def test_participants_resolved(self, e2e_config: E2EConfig):
        (case,) = build_cases(e2e_config)
        accounts = e2e_config.accounts
        assert case.name == "BasicOrderFlow_1000000"
        assert case.buyer_address == accounts.ethereum[0].address
        assert case.buyer_private_key == accounts.ethereum[0].private_key
        assert case.seller_address == accounts.ethereum[1].address
        assert case.native_receive_address == CANOPY_ACCOUNTS[1]

    def test_index_out_of_range(self, e2e_config: E2EConfig):
        config = _with_cases(
            e2e_config,
            CaseConfig(
                name="bad",
                order_amount=1,
                expected_token_transfer=1,
                expected_native_transfer=1,
                receiver=9,
            ),
        )
        with pytest.raises(ValueError, match="receiver index out of range"):
            build_cases(config)


class TestSuitePipeline:
    def test_sequential_run(
        self, e2e_config: E2EConfig, orchestrator: LifecycleOrchestrator,
        network: FakeNetwork, clock: FakeClock, capsys,
    ):
        leftover = network.add_order(amount=7, requested=7)
        summary = SuitePipeline(e2e_config, orchestrator, ticker=clock.ticker).run()

        assert (summary.total, summary.passed, summary.failed) == (1, 1, 0)
        assert summary.completed
        assert network.deleted == [leftover]
        out = capsys.readouterr().out
        assert "E2E ORACLE TEST RESULTS" in out
        assert "Success Rate: 100.00%" in out

    def test_failures_do_not_abort_siblings(
        self, e2e_config: E2EConfig, orchestrator: LifecycleOrchestrator,
        network: FakeNetwork, clock: FakeClock,
    ):
        config = _with_cases(
            e2e_config,
            CaseConfig(
                name="WrongNative",
                order_amount=1_000_000,
                expected_token_transfer=1_000_000,
                expected_native_transfer=2_000_000,  # receiver only gets the amount for sale
                buyer=2,
                seller=3,
                receiver=0,
            ),
            CaseConfig(
                name="Basic",
                order_amount=1_000_000,
                expected_token_transfer=1_000_000,
                expected_native_transfer=1_000_000,
            ),
        )
        summary = SuitePipeline(config, orchestrator, ticker=clock.ticker).run()
        assert (summary.total, summary.passed, summary.failed) == (2, 1, 1)
        assert [o.name for o in summary.failures] == ["WrongNative"]

    def test_parallel_run(
        self, e2e_config: E2EConfig, orchestrator: LifecycleOrchestrator, network: FakeNetwork
    ):
        config = _with_cases(
            e2e_config,
            CaseConfig(
                name="A",
                order_amount=1_000_000,
                expected_token_transfer=1_000_000,
                expected_native_transfer=1_000_000,
                buyer=0,
                seller=1,
                receiver=0,
            ),
            CaseConfig(
                name="B",
                order_amount=2_000_000,
                expected_token_transfer=2_000_000,
                expected_native_transfer=2_000_000,
                buyer=2,
                seller=3,
                receiver=1,
            ),
            parallel=True,
        )
        config = config.model_copy(
            update={"polling": PollingConfig(**{
                **e2e_config.polling.model_dump(),
                "suite_poll_interval": 0.01,
            })}
        )
        summary = SuitePipeline(config, orchestrator, ticker=Ticker()).run()
        assert (summary.total, summary.passed, summary.failed) == (2, 2, 0)
        assert network.native == {CANOPY_ACCOUNTS[0]: 1_000_000, CANOPY_ACCOUNTS[1]: 2_000_000}

    def test_cleanup_failure_reported(
        self, e2e_config: E2EConfig, orchestrator: LifecycleOrchestrator,
        network: FakeNetwork, clock: FakeClock, monkeypatch,
    ):
        def down(committee, height=0):
            raise LedgerClientError("HTTP 503", 503)

        monkeypatch.setattr(network, "orders", down)
        summary = SuitePipeline(e2e_config, orchestrator, ticker=clock.ticker).run()
        assert summary.total == 0
        assert summary.errors == ["failed to delete existing orders: HTTP 503"]
        assert network.created == []

    def test_cleanup_skipped(
        self, e2e_config: E2EConfig, orchestrator: LifecycleOrchestrator,
        network: FakeNetwork, clock: FakeClock,
    ):
        leftover = network.add_order(amount=7, requested=7)
        config = e2e_config.model_copy(
            update={"suite": SuiteConfig(delete_existing=False, cases=e2e_config.suite.cases)}
        )
        SuitePipeline(config, orchestrator, ticker=clock.ticker).run()
        assert network.deleted == []
        assert network.order(leftover) is not None

    def test_run_log_written_and_rotated(
        self, e2e_config: E2EConfig, orchestrator: LifecycleOrchestrator, clock: FakeClock
    ):
        log_dir = Path(e2e_config.ops.log_dir)
        log_dir.mkdir(parents=True)
        for i in range(4):
            (log_dir / f"e2e_20200101T00000{i}Z.log").write_text("old")

        SuitePipeline(e2e_config, orchestrator, ticker=clock.ticker).run()

        logs = sorted(p.name for p in log_dir.glob("e2e_*.log"))
        assert len(logs) == e2e_config.ops.max_log_files
        assert not logs[-1].startswith("e2e_2020")
        assert "e2e_20200101T000000Z.log" not in logs


class TestMonitor:
    def test_refreshes_until_max_ticks(
        self, e2e_config: E2EConfig, orchestrator: LifecycleOrchestrator,
        network: FakeNetwork, clock: FakeClock, capsys,
    ):
        network.add_order()
        before = signal.getsignal(signal.SIGINT)
        monitor = Monitor(e2e_config, orchestrator, interval=5, ticker=clock.ticker)

        assert monitor.start(max_ticks=2) == 2
        assert clock.sleeps == [1.0] * 5
        assert signal.getsignal(signal.SIGINT) == before
        out = capsys.readouterr().out
        assert out.count("=== Balances ===") == 2
        assert "Order book (committee 2): 1 orders" in out

    def test_orders_view_only(
        self, e2e_config: E2EConfig, orchestrator: LifecycleOrchestrator,
        clock: FakeClock, capsys,
    ):
        Monitor(e2e_config, orchestrator, view="orders", ticker=clock.ticker).tick()
        out = capsys.readouterr().out
        assert "Balances" not in out
        assert "No orders in any order book" in out

    def test_order_read_failure_is_printed(
        self, e2e_config: E2EConfig, orchestrator: LifecycleOrchestrator,
        network: FakeNetwork, clock: FakeClock, capsys, monkeypatch,
    ):
        def down(committee, height=0):
            raise LedgerClientError("refused")

        monkeypatch.setattr(network, "orders", down)
        Monitor(e2e_config, orchestrator, view="orders", ticker=clock.ticker).tick()
        assert "Error getting orders: refused" in capsys.readouterr().out

    def test_unknown_view(self, e2e_config: E2EConfig, orchestrator: LifecycleOrchestrator):
        with pytest.raises(ValueError):
            Monitor(e2e_config, orchestrator, view="everything")
