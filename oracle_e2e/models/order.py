"""Sell order and order book models for the ledger's swap order books."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TypeAlias


@dataclass(frozen=True)
class Unlocked:
    """No buyer has reserved the order yet."""


@dataclass(frozen=True)
class Locked:
    buyer_send_address: str  # foreign chain address the buyer pays from
    buyer_receive_address: str  # ledger address that receives the native token
    buyer_chain_deadline: int  # ledger height after which the lock lapses


LockState: TypeAlias = Unlocked | Locked

UNLOCKED = Unlocked()


@dataclass(frozen=True)
class SellOrder:
    id: str
    committee: int
    amount_for_sale: int
    requested_amount: int
    seller_receive_address: str
    lock: LockState = UNLOCKED
    sellers_send_address: str = ""
    data: str = ""

    @property
    def is_locked(self) -> bool:
        return isinstance(self.lock, Locked)


@dataclass(frozen=True)
class OrderBook:
    committee: int
    orders: tuple[SellOrder, ...] = ()


@dataclass(frozen=True)
class OrderBooks:
    books: tuple[OrderBook, ...] = field(default_factory=tuple)

    def iter_orders(self) -> Iterator[SellOrder]:
        """Yield orders in book order, then order-within-book order."""
        for book in self.books:
            yield from book.orders

    def __len__(self) -> int:
        return sum(len(book.orders) for book in self.books)
