"""Unit tests for the error taxonomy."""

from datetime import date, datetime, timezone

from movibeers.errors import (
    FetchFailed,
    NotFound,
    PartialFailure,
    SaveFailed,
    ValidationFailed,
    WeekCalculationFailed,
)
from movibeers.models import Activity, ActivityType


class TestErrorPayloads:
    def test_validation_failed_is_400_with_field(self):
        err = ValidationFailed("Username is already taken", field="username")
        assert err.http_status == 400
        assert err.reason == "Username is already taken"
        assert err.to_dict() == {
            "code": "VALIDATION_FAILED",
            "message": "Username is already taken",
            "details": {"field": "username"},
        }

    def test_not_found_is_404(self):
        err = NotFound("post", "beer_1")
        assert err.http_status == 404
        assert err.to_dict()["message"] == "post not found"

    def test_store_failures_are_502(self):
        for cls in (FetchFailed, SaveFailed, WeekCalculationFailed):
            assert cls("boom").http_status == 502

    def test_partial_failure_carries_activity(self):
        activity = Activity(
            id="a1",
            user_id="alice",
            type=ActivityType.BEER,
            title="Lager",
            consumed_at=datetime(2026, 10, 14, tzinfo=timezone.utc),
            week_number=1,
            week_start_date=date(2026, 10, 11),
        )
        err = PartialFailure(activity, "publish", "timeout")
        assert err.step == "publish"
        assert err.activity is activity
        assert err.to_dict()["details"]["activity_id"] == "a1"
        assert err.to_dict()["code"] == "PARTIAL_FAILURE"
