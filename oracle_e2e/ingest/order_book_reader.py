"""Order book reader: fetches and parses a fresh order book snapshot."""

import logging

from oracle_e2e.ingest.ledger_client import LedgerClient, LedgerClientError
from oracle_e2e.models.order import UNLOCKED, LockState, Locked, OrderBook, OrderBooks, SellOrder

logger = logging.getLogger(__name__)


def parse_lock_state(raw: dict) -> LockState:
    """Lock state from the wire order.

    The order is locked iff ``buyerSendAddress`` carries an address;
    absent, null and empty values all mean unlocked.
    """
    send_address = raw.get("buyerSendAddress")
    if not send_address:
        return UNLOCKED
    return Locked(
        buyer_send_address=send_address,
        buyer_receive_address=raw.get("buyerReceiveAddress") or "",
        buyer_chain_deadline=int(raw.get("buyerChainDeadline") or 0),
    )


def parse_order(raw: dict, committee: int) -> SellOrder:
    return SellOrder(
        id=str(raw["id"]).lower(),
        committee=int(raw.get("committee", committee)),
        amount_for_sale=int(raw.get("amountForSale", 0)),
        requested_amount=int(raw.get("requestedAmount", 0)),
        seller_receive_address=raw.get("sellerReceiveAddress") or "",
        lock=parse_lock_state(raw),
        sellers_send_address=raw.get("sellersSendAddress") or "",
        data=raw.get("data") or "",
    )


def parse_order_books(raw_books: list[dict], default_committee: int = 0) -> OrderBooks:
    books = []
    for raw_book in raw_books:
        committee = int(
            raw_book.get("chainId", raw_book.get("chainID", default_committee))
        )
        orders = tuple(
            parse_order(o, committee) for o in raw_book.get("orders") or []
        )
        books.append(OrderBook(committee=committee, orders=orders))
    return OrderBooks(books=tuple(books))


class OrderBookReader:
    """Re-fetches the order books on every call; nothing is cached."""

    def __init__(self, client: LedgerClient, committee: int):
        self.client = client
        self.committee = committee

    def fetch(self) -> OrderBooks:
        raw_books = self.client.orders(self.committee)
        try:
            books = parse_order_books(raw_books, self.committee)
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerClientError(f"Malformed order book response: {e!r}") from e
        logger.debug(
            "Fetched %d orders across %d books", len(books), len(books.books)
        )
        return books
