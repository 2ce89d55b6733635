"""Reporting models for suite results."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CaseOutcome:
    name: str
    status: str
    order_id: str | None
    error: str | None


@dataclass
class ResultsSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    completed: bool = True
    duration_seconds: float = 0.0
    outcomes: list[CaseOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.passed / self.total * 100

    @property
    def failures(self) -> list[CaseOutcome]:
        return [o for o in self.outcomes if o.error is not None]
