"""Unit tests for request payload validation."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta

import pytest
from pydantic import ValidationError

from overtime.config import get_settings
from overtime.schemas.request import (
    BulkActionPayload,
    CorrectionPayload,
    CreateOrderPayload,
    CreatePayoutPayload,
    CreateSubmissionPayload,
    plant_today,
)

SUPERVISOR = "anna.nowak@bruss-group.com"

# ---------------------------------------------------------------------------
# CreateSubmissionPayload
# ---------------------------------------------------------------------------


def test_submission_valid() -> None:
    p = CreateSubmissionPayload(supervisor=SUPERVISOR, work_date=plant_today(), hours=2.5, reason="Line stop")
    assert p.draft is False
    assert p.department is None


def test_submission_rejects_zero_hours() -> None:
    with pytest.raises(ValidationError, match="must not be zero"):
        CreateSubmissionPayload(supervisor=SUPERVISOR, work_date=plant_today(), hours=0, reason="x")


def test_submission_rejects_quarter_hours() -> None:
    with pytest.raises(ValidationError, match="multiple of 0.5"):
        CreateSubmissionPayload(supervisor=SUPERVISOR, work_date=plant_today(), hours=1.25, reason="x")


def test_submission_worked_hours_need_reason() -> None:
    with pytest.raises(ValidationError, match="reason is required"):
        CreateSubmissionPayload(supervisor=SUPERVISOR, work_date=plant_today(), hours=2, reason="  ")


def test_submission_time_off_needs_no_reason() -> None:
    p = CreateSubmissionPayload(supervisor=SUPERVISOR, work_date=plant_today() + timedelta(days=10), hours=-4)
    assert p.reason is None


def test_submission_rejects_old_work_date() -> None:
    with pytest.raises(ValidationError, match="work_date must be between"):
        CreateSubmissionPayload(
            supervisor=SUPERVISOR, work_date=plant_today() - timedelta(days=8), hours=2, reason="x"
        )


def test_submission_worked_hours_not_in_future() -> None:
    with pytest.raises(ValidationError, match="work_date must be between"):
        CreateSubmissionPayload(
            supervisor=SUPERVISOR, work_date=plant_today() + timedelta(days=1), hours=2, reason="x"
        )


def test_submission_window_uses_plant_date(monkeypatch: pytest.MonkeyPatch) -> None:
    # UTC+14 and UTC-11 are always on different calendar days.
    settings = get_settings()
    monkeypatch.setattr(settings, "timezone", "Pacific/Kiritimati")
    ahead = plant_today()
    CreateSubmissionPayload(supervisor=SUPERVISOR, work_date=ahead, hours=2, reason="x")

    monkeypatch.setattr(settings, "timezone", "Pacific/Pago_Pago")
    assert plant_today() < ahead
    with pytest.raises(ValidationError, match="work_date must be between"):
        CreateSubmissionPayload(supervisor=SUPERVISOR, work_date=ahead, hours=2, reason="x")


def test_submission_hours_bounds() -> None:
    with pytest.raises(ValidationError):
        CreateSubmissionPayload(supervisor=SUPERVISOR, work_date=plant_today(), hours=16.5, reason="x")
    with pytest.raises(ValidationError):
        CreateSubmissionPayload(supervisor=SUPERVISOR, work_date=plant_today(), hours=-8.5)


def test_submission_rejects_malformed_supervisor() -> None:
    with pytest.raises(ValidationError):
        CreateSubmissionPayload(supervisor="anna nowak", work_date=plant_today(), hours=2, reason="x")


# ---------------------------------------------------------------------------
# CreatePayoutPayload
# ---------------------------------------------------------------------------


def test_payout_requires_positive_hours() -> None:
    with pytest.raises(ValidationError):
        CreatePayoutPayload(supervisor=SUPERVISOR, hours=0, reason="x")
    with pytest.raises(ValidationError):
        CreatePayoutPayload(supervisor=SUPERVISOR, hours=-2, reason="x")


def test_payout_requires_reason() -> None:
    with pytest.raises(ValidationError):
        CreatePayoutPayload(supervisor=SUPERVISOR, hours=2, reason="")


# ---------------------------------------------------------------------------
# CreateOrderPayload
# ---------------------------------------------------------------------------


def _order(**overrides: object) -> CreateOrderPayload:
    start = datetime(2025, 3, 10, 14, 0, tzinfo=UTC)
    fields: dict[str, object] = {
        "employee_identifier": "12345",
        "hours": 2,
        "payment": True,
        "work_start_time": start,
        "work_end_time": start + timedelta(hours=2),
    }
    fields.update(overrides)
    return CreateOrderPayload(**fields)


def test_order_valid_payout() -> None:
    p = _order()
    assert p.scheduled_day_off is None


def test_order_valid_time_off() -> None:
    p = _order(payment=False, scheduled_day_off=date(2025, 3, 20))
    assert p.scheduled_day_off == date(2025, 3, 20)


def test_order_time_off_needs_day_off() -> None:
    with pytest.raises(ValidationError, match="scheduled_day_off is required"):
        _order(payment=False)


def test_order_payout_takes_no_day_off() -> None:
    with pytest.raises(ValidationError, match="no scheduled day off"):
        _order(scheduled_day_off=date(2025, 3, 20))


def test_order_end_after_start() -> None:
    start = datetime(2025, 3, 10, 14, 0, tzinfo=UTC)
    with pytest.raises(ValidationError, match="must be after"):
        _order(work_start_time=start, work_end_time=start)


def test_order_period_at_most_a_day() -> None:
    start = datetime(2025, 3, 10, 14, 0, tzinfo=UTC)
    with pytest.raises(ValidationError, match="must not exceed 24 hours"):
        _order(work_start_time=start, work_end_time=start + timedelta(hours=24, minutes=30))


def test_order_times_on_half_hour() -> None:
    with pytest.raises(ValidationError, match=":00 or :30"):
        _order(work_start_time=datetime(2025, 3, 10, 14, 15, tzinfo=UTC))


# ---------------------------------------------------------------------------
# CorrectionPayload / BulkActionPayload
# ---------------------------------------------------------------------------


def test_correction_field_updates_only_set_fields() -> None:
    p = CorrectionPayload(correction_reason="typo", hours=2.5, department=None)
    assert p.field_updates() == {"hours": 2.5, "department": None}


def test_correction_requires_reason() -> None:
    with pytest.raises(ValidationError):
        CorrectionPayload(correction_reason="", hours=2)


def test_bulk_requires_ids() -> None:
    with pytest.raises(ValidationError):
        BulkActionPayload(ids=[])
    assert len(BulkActionPayload(ids=[uuid.uuid4()]).ids) == 1
