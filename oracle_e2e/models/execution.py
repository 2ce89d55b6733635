"""Transaction submission models."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class TxAction(StrEnum):
    CREATE = "create"
    LOCK = "lock"
    CLOSE = "close"
    DELETE = "delete"


class SubmissionStatus(StrEnum):
    SUBMITTED = "SUBMITTED"
    DUPLICATE = "DUPLICATE"


@dataclass(frozen=True)
class SubmissionResult:
    action: TxAction
    chain: str  # "canopy" or "ethereum"
    status: SubmissionStatus
    order_id: str | None
    receipt: Any  # tx hash on the foreign chain, RPC response on the ledger
    submitted_at: str
