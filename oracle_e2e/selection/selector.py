"""Order selection predicates over an order book snapshot.

Pure functions: iteration is book order, then order-within-book order.
Bulk selections raise NotFound on an empty result so that "nothing to do"
surfaces as an error; callers polling for completion treat it as benign.
"""

from oracle_e2e.errors import NotFound
from oracle_e2e.models.order import OrderBooks, SellOrder


def find_by_id(books: OrderBooks, order_id: str) -> SellOrder:
    wanted = order_id.lower()
    for order in books.iter_orders():
        if order.id == wanted:
            return order
    raise NotFound(f"order {order_id} not found")


def contains(books: OrderBooks, order_id: str) -> bool:
    wanted = order_id.lower()
    return any(order.id == wanted for order in books.iter_orders())


def first_unlocked(books: OrderBooks) -> SellOrder:
    for order in books.iter_orders():
        if not order.is_locked:
            return order
    raise NotFound("no unlocked orders found")


def first_locked(books: OrderBooks) -> SellOrder:
    for order in books.iter_orders():
        if order.is_locked:
            return order
    raise NotFound("no locked orders found")


def all_unlocked(books: OrderBooks) -> list[SellOrder]:
    orders = [o for o in books.iter_orders() if not o.is_locked]
    if not orders:
        raise NotFound("no unlocked orders found")
    return orders


def all_locked(books: OrderBooks) -> list[SellOrder]:
    orders = [o for o in books.iter_orders() if o.is_locked]
    if not orders:
        raise NotFound("no locked orders found")
    return orders


def find_matching(
    books: OrderBooks,
    amount_for_sale: int,
    requested_amount: int,
    locked: bool,
    order_id: str | None = None,
) -> SellOrder | None:
    """First order with the given economics and lock state, or None.

    When `order_id` is given the order must also carry that id.
    """
    for order in books.iter_orders():
        if (
            order.is_locked == locked
            and order.amount_for_sale == amount_for_sale
            and order.requested_amount == requested_amount
            and (order_id is None or order.id == order_id.lower())
        ):
            return order
    return None
