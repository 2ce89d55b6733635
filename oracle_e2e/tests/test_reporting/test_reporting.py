"""Tests for the result aggregator and output formatters."""

import json
import threading

import pytest

from oracle_e2e.errors import LifecycleTimeout
from oracle_e2e.ingest.balance_reader import AccountBalance
from oracle_e2e.models.order import UNLOCKED, Locked, OrderBook, OrderBooks, SellOrder
from oracle_e2e.models.reporting import CaseOutcome, ResultsSummary
from oracle_e2e.models.test_case import TestCase
from oracle_e2e.reporting.aggregator import TestResults
from oracle_e2e.reporting.formatters import (
    format_balances,
    format_order_books,
    format_results_json,
    format_results_text,
)
from oracle_e2e.tests.fakes import FakeClock


def _case(name: str) -> TestCase:
    return TestCase(
        name=name,
        order_amount=1,
        expected_token_transfer=1,
        expected_native_transfer=1,
        buyer_address="b",
        buyer_private_key="k",
        seller_address="s",
        seller_private_key="k",
        native_receive_address="r",
        native_send_address="r",
    )


class TestTestResults:
    def test_counts(self):
        results = TestResults()
        a, b = _case("a"), _case("b")
        results.record(a)
        results.record(b)
        results.mark_passed(a)
        results.mark_failed(b, LifecycleTimeout("await-lock", 10), "close order")
        assert results.counts() == (2, 1, 1)
        assert isinstance(b.error, LifecycleTimeout)

    def test_duplicate_name_rejected(self):
        results = TestResults()
        results.record(_case("a"))
        with pytest.raises(ValueError, match="duplicate"):
            results.record(_case("a"))

    def test_reported_exactly_once(self):
        results = TestResults()
        case = _case("a")
        results.record(case)
        results.mark_passed(case)
        with pytest.raises(ValueError, match="already reported"):
            results.mark_failed(case, RuntimeError("late"))
        assert results.counts() == (1, 1, 0)

    def test_unrecorded_case_rejected(self):
        with pytest.raises(ValueError, match="never recorded"):
            TestResults().mark_passed(_case("ghost"))

    def test_concurrent_reports(self):
        results = TestResults()
        cases = [_case(f"c{i}") for i in range(50)]
        for case in cases:
            results.record(case)

        def report(case: TestCase, i: int):
            if i % 2:
                results.mark_failed(case, RuntimeError("x"))
            else:
                results.mark_passed(case)

        threads = [threading.Thread(target=report, args=(c, i)) for i, c in enumerate(cases)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results.counts() == (50, 25, 25)

    def test_await_completion_done(self, clock: FakeClock):
        results = TestResults()
        assert results.await_completion(300, ticker=clock.ticker)
        assert clock.sleeps == []

    def test_await_completion_timeout(self, clock: FakeClock):
        results = TestResults()
        results.record(_case("a"))
        assert not results.await_completion(10, interval=1, ticker=clock.ticker)
        assert clock.now == 10

    def test_summary(self):
        results = TestResults()
        a, b = _case("a"), _case("b")
        a.bind_order_id("ab01")
        results.record(a)
        results.record(b)
        results.mark_passed(a)
        results.mark_failed(b, RuntimeError("boom"), "lock order")
        summary = results.summary(12.5)
        assert (summary.total, summary.passed, summary.failed) == (2, 1, 1)
        assert summary.completed
        assert summary.duration_seconds == 12.5
        assert summary.outcomes[0] == CaseOutcome("a", "created", "ab01", None)
        assert summary.outcomes[1].error == "failed to lock order: boom"

    def test_summary_incomplete(self):
        results = TestResults()
        results.record(_case("a"))
        assert not results.summary().completed


class TestFormatters:
    def _summary(self) -> ResultsSummary:
        return ResultsSummary(
            total=2,
            passed=1,
            failed=1,
            duration_seconds=42.0,
            outcomes=[
                CaseOutcome("a", "verified", "01", None),
                CaseOutcome("b", "locked", "02", "failed to close order: boom"),
            ],
        )

    def test_results_text(self):
        text = format_results_text(self._summary())
        assert "E2E ORACLE TEST RESULTS" in text
        assert "Total Tests: 2" in text
        assert "Success Rate: 50.00%" in text
        assert "  - b: failed to close order: boom" in text
        assert "Duration: 42.0s" in text
        assert "WARNING" not in text

    def test_results_text_incomplete_with_suite_error(self):
        summary = ResultsSummary(completed=False, errors=["failed to delete existing orders: x"])
        text = format_results_text(summary)
        assert "WARNING" in text
        assert "Suite Errors:" in text
        assert "Success Rate: 0.00%" in text

    def test_results_json(self):
        data = json.loads(format_results_json(self._summary()))
        assert data["success_rate"] == 50.0
        assert [c["name"] for c in data["cases"]] == ["a", "b"]
        assert data["cases"][1]["error"] == "failed to close order: boom"

    def test_balances(self):
        text = format_balances(
            [
                AccountBalance("ethereum", "0xaa", 1_500_000),
                AccountBalance("ethereum", "0xbb", None, "down"),
                AccountBalance("canopy", "cc", 42),
            ],
            "Initial Balances",
        )
        lines = text.splitlines()
        assert lines[0] == "=== Initial Balances ==="
        assert lines[1] == "ETH Account 0 (0xaa): USDC balance: 1.500000 USDC"
        assert lines[2] == "ETH Account 1 (0xbb): USDC balance error: down"
        assert lines[3] == "Canopy Account 0 (cc): CNPY balance: 42"

    def test_order_books(self):
        books = OrderBooks(
            books=(
                OrderBook(
                    committee=2,
                    orders=(
                        SellOrder("01", 2, 10, 20, "aa", UNLOCKED),
                        SellOrder("02", 2, 10, 20, "aa", Locked("bb", "cc", 105)),
                    ),
                ),
            )
        )
        text = format_order_books(books)
        assert "Order book (committee 2): 2 orders" in text
        assert "01: 10 CNPY for 20" in text
        assert "UNLOCKED" in text
        assert "LOCKED by bb -> cc (deadline 105)" in text

    def test_empty_order_books(self):
        assert format_order_books(OrderBooks()) == "No orders in any order book"
