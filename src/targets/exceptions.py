"""Error taxonomy of the targets engine.

Every error carries a stable ``code`` so API callers can turn it into an
actionable message.
"""
from __future__ import annotations

from decimal import Decimal


class TargetsError(Exception):
    code = "targets_error"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.message, "retryable": self.retryable}


class ValidationError(TargetsError):
    """Percentages break the <= 100 (write) or == 100 (publish/lock) rule."""

    code = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        field: str,
        period_id=None,
        week_index: int | None = None,
        roles: list[str] | None = None,
        total: Decimal | None = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.period_id = period_id
        self.week_index = week_index
        self.roles = roles or []
        self.total = total

    @property
    def scope(self) -> dict:
        return {
            "period_id": str(self.period_id) if self.period_id else None,
            "week_index": self.week_index,
            "roles": self.roles,
        }

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["field"] = self.field
        data["scope"] = self.scope
        if self.total is not None:
            data["total"] = str(self.total)
        return data


class RecomputeError(TargetsError):
    """Storage failure or configuration the allocation cannot process."""

    code = "recompute_error"


class ScoringError(TargetsError):
    code = "scoring_error"


class NotComputedError(ScoringError):
    """The period has never been recomputed."""

    code = "not_computed"


class ConcurrencyError(TargetsError):
    """Another operation holds the period; safe to retry."""

    code = "concurrency_conflict"
    retryable = True
