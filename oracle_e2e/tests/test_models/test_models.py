"""Tests for order, test case and reporting models."""

import pytest

from oracle_e2e.models.common import format_token_amount, strip_0x
from oracle_e2e.models.order import UNLOCKED, Locked, OrderBook, OrderBooks, SellOrder
from oracle_e2e.models.reporting import CaseOutcome, ResultsSummary
from oracle_e2e.models.test_case import CaseStatus, TestCase


def _order(order_id: str, locked: bool = False) -> SellOrder:
    lock = Locked("aa" * 20, "bb" * 20, 105) if locked else UNLOCKED
    return SellOrder(
        id=order_id,
        committee=2,
        amount_for_sale=100,
        requested_amount=100,
        seller_receive_address="cc" * 20,
        lock=lock,
    )


def _case() -> TestCase:
    return TestCase(
        name="case",
        order_amount=100,
        expected_token_transfer=100,
        expected_native_transfer=100,
        buyer_address="0xbuyer",
        buyer_private_key="key",
        seller_address="0xseller",
        seller_private_key="key2",
        native_receive_address="recv",
        native_send_address="recv",
    )


class TestSellOrder:
    def test_unlocked_by_default(self):
        assert not _order("01").is_locked

    def test_locked(self):
        assert _order("01", locked=True).is_locked


class TestOrderBooks:
    def test_iteration_order(self):
        books = OrderBooks(
            books=(
                OrderBook(committee=1, orders=(_order("01"), _order("02"))),
                OrderBook(committee=2, orders=(_order("03"),)),
            )
        )
        assert [o.id for o in books.iter_orders()] == ["01", "02", "03"]
        assert len(books) == 3

    def test_empty(self):
        assert len(OrderBooks()) == 0


class TestTestCase:
    def test_starts_created(self):
        case = _case()
        assert case.status == CaseStatus.CREATED
        assert case.order_id is None

    def test_advance_forward(self):
        case = _case()
        case.advance(CaseStatus.LOCKED)
        case.advance(CaseStatus.CLOSED)
        case.advance(CaseStatus.VERIFIED)
        assert case.status == CaseStatus.VERIFIED
        assert case.status_history == [CaseStatus.CREATED, CaseStatus.LOCKED, CaseStatus.CLOSED]

    def test_advance_same_status_is_noop(self):
        case = _case()
        case.advance(CaseStatus.CREATED)
        assert case.status_history == []

    def test_advance_backwards_rejected(self):
        case = _case()
        case.advance(CaseStatus.CLOSED)
        with pytest.raises(ValueError, match="cannot move status"):
            case.advance(CaseStatus.LOCKED)
        assert case.status == CaseStatus.CLOSED

    def test_bind_order_id_once(self):
        case = _case()
        case.bind_order_id("abc")
        case.bind_order_id("abc")
        with pytest.raises(ValueError, match="already bound"):
            case.bind_order_id("def")
        assert case.order_id == "abc"


class TestResultsSummary:
    def test_success_rate(self):
        s = ResultsSummary(total=4, passed=3, failed=1)
        assert s.success_rate == 75.0

    def test_success_rate_no_tests(self):
        assert ResultsSummary().success_rate == 0.0

    def test_failures(self):
        s = ResultsSummary(
            outcomes=[
                CaseOutcome("a", "verified", "01", None),
                CaseOutcome("b", "locked", "02", "boom"),
            ]
        )
        assert [o.name for o in s.failures] == ["b"]


class TestFormatting:
    def test_token_amount(self):
        assert format_token_amount(1_000_000) == "1.000000 USDC"
        assert format_token_amount(1_500_001, "TKN") == "1.500001 TKN"

    def test_negative_token_amount(self):
        assert format_token_amount(-250_000) == "-0.250000 USDC"

    def test_strip_0x(self):
        assert strip_0x("0xAbC") == "AbC"
        assert strip_0x("0XAbC") == "AbC"
        assert strip_0x("abc") == "abc"
