"""Operation-level error taxonomy.

Every service operation catches store errors at its boundary and re-raises
one of these. Each error carries a machine-readable ``code`` so clients can
branch on it without parsing English messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from movibeers.models import Activity


class MoviBeersError(Exception):
    """Base class for all application-level errors."""

    http_status: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class FetchFailed(MoviBeersError):
    http_status = 502
    code = "FETCH_FAILED"


class SaveFailed(MoviBeersError):
    http_status = 502
    code = "SAVE_FAILED"


class UpdateFailed(MoviBeersError):
    http_status = 502
    code = "UPDATE_FAILED"


class DeleteFailed(MoviBeersError):
    http_status = 502
    code = "DELETE_FAILED"


class WeekCalculationFailed(MoviBeersError):
    http_status = 502
    code = "WEEK_CALCULATION_FAILED"


class ValidationFailed(MoviBeersError):
    """A declined operation; ``reason`` is safe to show to the user."""

    http_status = 400
    code = "VALIDATION_FAILED"

    def __init__(self, reason: str, field: str | None = None) -> None:
        self.reason = reason
        super().__init__(reason, {"field": field} if field else None)


class NotFound(MoviBeersError):
    http_status = 404
    code = "NOT_FOUND"

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found", {"kind": kind, "id": identifier})


class PartialFailure(MoviBeersError):
    """The activity was written but a downstream step did not complete.

    ``step`` is ``"counters"`` or ``"publish"``; retrying from that step is safe.
    """

    http_status = 500
    code = "PARTIAL_FAILURE"

    def __init__(self, activity: Activity, step: str, cause: str) -> None:
        self.activity = activity
        self.step = step
        super().__init__(
            f"Activity saved but {step} step failed: {cause}",
            {"activity_id": activity.id, "type": activity.type, "step": step},
        )
