"""Output formatters for suite results, balances and order books."""

import json

from oracle_e2e.ingest.balance_reader import AccountBalance
from oracle_e2e.models.common import format_token_amount
from oracle_e2e.models.order import Locked, OrderBooks
from oracle_e2e.models.reporting import ResultsSummary

RULE = "=" * 80


def format_results_text(s: ResultsSummary) -> str:
    """Final report banner."""
    lines = [
        RULE,
        "E2E ORACLE TEST RESULTS",
        RULE,
        f"Total Tests: {s.total}",
        f"Passed: {s.passed}",
        f"Failed: {s.failed}",
        f"Success Rate: {s.success_rate:.2f}%",
    ]
    if not s.completed:
        lines.append("WARNING: not every test reported before the suite timeout")
    if s.errors:
        lines.append("\nSuite Errors:")
        lines.extend(f"  - {e}" for e in s.errors)
    if s.failures:
        lines.append("\nFailed Tests:")
        lines.extend(f"  - {o.name}: {o.error}" for o in s.failures)
    if s.duration_seconds:
        lines.append(f"Duration: {s.duration_seconds:.1f}s")
    lines.append(RULE)
    return "\n".join(lines)


def format_results_json(s: ResultsSummary) -> str:
    """JSON results for programmatic consumption."""
    data = {
        "total": s.total,
        "passed": s.passed,
        "failed": s.failed,
        "success_rate": round(s.success_rate, 2),
        "completed": s.completed,
        "duration_seconds": s.duration_seconds,
        "errors": s.errors,
        "cases": [
            {
                "name": o.name,
                "status": o.status,
                "order_id": o.order_id,
                "error": o.error,
            }
            for o in s.outcomes
        ],
    }
    return json.dumps(data, indent=2)


def format_balances(
    balances: list[AccountBalance], label: str = "Balances", token_symbol: str = "USDC"
) -> str:
    lines = [f"=== {label} ==="]
    counters = {"ethereum": 0, "canopy": 0}
    for b in balances:
        i = counters[b.chain]
        counters[b.chain] += 1
        if b.chain == "ethereum":
            prefix = f"ETH Account {i} ({b.address}): {token_symbol} balance"
            value = format_token_amount(b.amount, token_symbol) if b.amount is not None else None
        else:
            prefix = f"Canopy Account {i} ({b.address}): CNPY balance"
            value = str(b.amount) if b.amount is not None else None
        if value is None:
            lines.append(f"{prefix} error: {b.error}")
        else:
            lines.append(f"{prefix}: {value}")
    lines.append("=" * 27)
    return "\n".join(lines)


def format_order_books(books: OrderBooks) -> str:
    if not len(books):
        return "No orders in any order book"
    lines = []
    for book in books.books:
        lines.append(f"Order book (committee {book.committee}): {len(book.orders)} orders")
        for o in book.orders:
            state = "UNLOCKED"
            if isinstance(o.lock, Locked):
                state = (
                    f"LOCKED by {o.lock.buyer_send_address} -> "
                    f"{o.lock.buyer_receive_address} "
                    f"(deadline {o.lock.buyer_chain_deadline})"
                )
            lines.append(
                f"  {o.id}: {o.amount_for_sale} CNPY for {o.requested_amount} "
                f"(seller receives at {o.seller_receive_address}) {state}"
            )
    return "\n".join(lines)
