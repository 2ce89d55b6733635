"""CLI entry point for the cross-chain order e2e tester."""

import argparse
import logging
from pathlib import Path

from oracle_e2e.config.loader import get_config_value, load_config, redacted_json
from oracle_e2e.errors import E2EError
from oracle_e2e.ingest.eth_client import EthClientError
from oracle_e2e.ingest.ledger_client import LedgerClientError
from oracle_e2e.lifecycle.orchestrator import LifecycleOrchestrator
from oracle_e2e.pipeline.monitor import VIEWS, Monitor
from oracle_e2e.pipeline.suite_pipeline import SuitePipeline
from oracle_e2e.reporting.formatters import (
    format_balances,
    format_order_books,
    format_results_json,
)

DEFAULT_CONFIG = "ops/configs/e2e.yaml"
DEFAULT_AMOUNT = 1_000_000

# Errors a single-shot command reports as "Error ...: <err>" with exit status 1.
COMMAND_ERRORS = (E2EError, LedgerClientError, EthClientError, ValueError)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="oracle-e2e",
        description="End-to-end tester for the CNPY/USDC cross-chain order book",
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG, help="Config YAML path"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # create-order
    create_p = sub.add_parser("create-order", help="Create a sell order")
    create_p.add_argument("--amount", type=int, default=DEFAULT_AMOUNT)
    create_p.add_argument("--seller-addr", help="Seller Ethereum address")

    # lock-order / lock-all
    lock_p = sub.add_parser("lock-order", help="Lock an order by id, or 'first'/'auto'")
    lock_p.add_argument("order", help="Order id, 'first' or 'auto'")
    _add_buyer_args(lock_p)
    lock_all_p = sub.add_parser("lock-all", help="Lock every unlocked order")
    _add_buyer_args(lock_all_p)

    # close-order / close-all
    close_p = sub.add_parser("close-order", help="Close a locked order by id, or 'first'/'auto'")
    close_p.add_argument("order", help="Order id, 'first' or 'auto'")
    close_p.add_argument("--buyer-key", help="Buyer private key")
    close_p.add_argument("--amount", type=int, default=DEFAULT_AMOUNT)
    close_all_p = sub.add_parser("close-all", help="Close every locked order")
    close_all_p.add_argument("--buyer-key", help="Buyer private key")
    close_all_p.add_argument("--amount", type=int, default=DEFAULT_AMOUNT)

    # run-tests / delete-all
    run_p = sub.add_parser("run-tests", help="Run the configured test suite")
    run_p.add_argument("--json", dest="json_out", help="Also write results as JSON to this path")
    sub.add_parser("delete-all", help="Delete every order in every book")

    # orders / balances / monitor
    sub.add_parser("orders", help="Show the order books")
    sub.add_parser("balances", help="Show account balances on both chains")
    monitor_p = sub.add_parser("monitor", help="Refresh balances and orders periodically")
    monitor_p.add_argument("view", nargs="?", default="all", choices=VIEWS)
    monitor_p.add_argument("--interval", type=float, help="Seconds between refreshes")

    # config show / config get
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config (secrets redacted)")
    get_p = config_sub.add_parser("get", help="Display one config value")
    get_p.add_argument("key", help="Dotted key, e.g. polling.await_lock.timeout")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    if args.command == "config":
        return _cmd_config(config, args)

    orchestrator = LifecycleOrchestrator.from_config(config)
    handlers = {
        "create-order": _cmd_create_order,
        "lock-order": _cmd_lock_order,
        "lock-all": _cmd_lock_all,
        "close-order": _cmd_close_order,
        "close-all": _cmd_close_all,
        "run-tests": _cmd_run_tests,
        "delete-all": _cmd_delete_all,
        "orders": _cmd_orders,
        "balances": _cmd_balances,
        "monitor": _cmd_monitor,
    }
    return handlers[args.command](config, orchestrator, args)


def _add_buyer_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--buyer-addr", help="Buyer Ethereum address")
    p.add_argument("--buyer-key", help="Buyer private key")
    p.add_argument("--canopy-addr", help="Canopy address receiving the CNPY")


def _buyer(config, args) -> tuple[str, str, str]:
    """Buyer address, key and canopy receive address, defaulting from config."""
    eth = config.accounts.ethereum
    canopy = config.accounts.canopy
    address = getattr(args, "buyer_addr", None) or (eth[0].address if eth else "")
    key = args.buyer_key or (eth[0].private_key if eth else "")
    receive = getattr(args, "canopy_addr", None) or (canopy[0] if canopy else "")
    return address, key, receive


def _print_balances(config, orchestrator, label: str) -> None:
    accounts = config.accounts
    balances = orchestrator.balances.snapshot(
        [a.address for a in accounts.ethereum], list(accounts.canopy)
    )
    print(format_balances(balances, label, config.ethereum.token_symbol))


def _cmd_create_order(config, orchestrator, args) -> int:
    eth = config.accounts.ethereum
    seller = args.seller_addr or (eth[1].address if len(eth) > 1 else "")
    try:
        orchestrator.create_order(args.amount, args.amount, seller)
    except COMMAND_ERRORS as e:
        print(f"Error creating order: {e}")
        return 1
    print(
        f"Order created successfully: {args.amount} CNPY -> {args.amount} "
        f"{config.ethereum.token_symbol} (seller: {seller})"
    )
    _print_balances(config, orchestrator, "Balances after order creation")
    return 0


def _cmd_lock_order(config, orchestrator, args) -> int:
    address, key, receive = _buyer(config, args)
    try:
        if args.order in ("first", "auto"):
            result = orchestrator.lock_first_order(address, key, receive)
        else:
            result = orchestrator.lock_order(args.order, address, key, receive)
    except COMMAND_ERRORS as e:
        what = "first available order" if args.order in ("first", "auto") else "order"
        print(f"Error locking {what}: {e}")
        return 1
    print(f"Order {result.order_id} locked successfully")
    return 0


def _cmd_lock_all(config, orchestrator, args) -> int:
    address, key, receive = _buyer(config, args)
    try:
        count = orchestrator.lock_all_unlocked_orders(address, key, receive)
    except COMMAND_ERRORS as e:
        print(f"Error locking all unlocked orders: {e}")
        return 1
    print(f"All unlocked orders locked successfully ({count})")
    return 0


def _cmd_close_order(config, orchestrator, args) -> int:
    _, key, _ = _buyer(config, args)
    try:
        if args.order in ("first", "auto"):
            result = orchestrator.close_first_order(key, args.amount)
        else:
            result = orchestrator.close_order(args.order, key, args.amount)
    except COMMAND_ERRORS as e:
        what = "first available order" if args.order in ("first", "auto") else "order"
        print(f"Error closing {what}: {e}")
        return 1
    print(f"Order {result.order_id} closed successfully")
    return 0


def _cmd_close_all(config, orchestrator, args) -> int:
    _, key, _ = _buyer(config, args)
    try:
        count = orchestrator.close_all_locked_orders(key, args.amount)
    except COMMAND_ERRORS as e:
        print(f"Error closing all locked orders: {e}")
        return 1
    print(f"All locked orders closed successfully ({count} submitted)")
    return 0


def _cmd_run_tests(config, orchestrator, args) -> int:
    _print_balances(config, orchestrator, "Initial Balances")
    summary = SuitePipeline(config, orchestrator).run()
    if args.json_out:
        Path(args.json_out).write_text(format_results_json(summary) + "\n")
        print(f"Results written to {args.json_out}")
    _print_balances(config, orchestrator, "Final Balances")
    # Per-case failures are in the printed tally; the run itself always succeeds.
    return 0


def _cmd_delete_all(config, orchestrator, args) -> int:
    try:
        count = orchestrator.delete_all_orders()
    except COMMAND_ERRORS as e:
        print(f"Error deleting orders: {e}")
        return 1
    print(f"Deleted {count} orders")
    return 0


def _cmd_orders(config, orchestrator, args) -> int:
    try:
        books = orchestrator.orders()
    except COMMAND_ERRORS as e:
        print(f"Error getting orders: {e}")
        return 1
    print(format_order_books(books))
    return 0


def _cmd_balances(config, orchestrator, args) -> int:
    _print_balances(config, orchestrator, "Current Balances")
    return 0


def _cmd_monitor(config, orchestrator, args) -> int:
    Monitor(config, orchestrator, view=args.view, interval=args.interval).start()
    return 0


def _cmd_config(config, args) -> int:
    if args.config_command == "show":
        print(redacted_json(config))
        return 0
    elif args.config_command == "get":
        try:
            value = get_config_value(config, args.key)
        except (KeyError, IndexError, ValueError) as e:
            print(f"Error: {e}")
            return 1
        if args.key.split(".")[-1] in ("private_key", "password"):
            value = "***"
        print(f"{args.key} = {value}")
        return 0
    else:
        print("Use: config show | config get <key>")
        return 1
