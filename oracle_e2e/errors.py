"""Error taxonomy for order lifecycle runs."""


class E2EError(Exception):
    """Base class for every error raised by an order lifecycle step."""


class NotFound(E2EError):
    """A selection predicate matched nothing in the order book snapshot."""


class OrderStateError(E2EError):
    """A resolved order violates the precondition of the requested action."""

    def __init__(self, order_id: str, message: str):
        super().__init__(message)
        self.order_id = order_id


class AlreadyLocked(OrderStateError):
    def __init__(self, order_id: str):
        super().__init__(order_id, f"order {order_id} is already locked")


class NotLocked(OrderStateError):
    def __init__(self, order_id: str):
        super().__init__(order_id, f"order {order_id} is not locked")


class LifecycleTimeout(E2EError):
    """A polling phase exceeded its deadline."""

    def __init__(self, phase: str, timeout: float, detail: str = ""):
        message = f"timeout after {timeout:g}s in phase {phase}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.phase = phase
        self.timeout = timeout


class BalanceMismatch(E2EError):
    """Observed balance delta differs from the expected trade economics."""

    def __init__(self, field: str, expected: int, actual: int, unit: str = ""):
        suffix = f" {unit}" if unit else ""
        super().__init__(
            f"{field} change mismatch: expected {expected}{suffix}, "
            f"got {actual}{suffix}"
        )
        self.field = field
        self.expected = expected
        self.actual = actual


class TransactionSubmissionError(E2EError):
    """Building, signing or submitting a transaction failed on either chain."""

    def __init__(self, chain: str, message: str):
        super().__init__(f"{chain}: {message}")
        self.chain = chain


class BulkOperationError(E2EError):
    """One or more items of a bulk lock/close failed.

    Successful items are not rolled back; ``failures`` maps each failed
    order id to its error message.
    """

    def __init__(self, action: str, failures: dict[str, str], attempted: int):
        lines = [f"failed to {action} order {oid}: {err}" for oid, err in failures.items()]
        super().__init__(
            f"encountered {len(failures)} errors trying to {action} "
            f"{attempted} orders:\n" + "\n".join(lines)
        )
        self.action = action
        self.failures = failures
        self.attempted = attempted
