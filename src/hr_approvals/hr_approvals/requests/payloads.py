"""Type-specific request payloads.

A request is a tagged union: ``RequestType`` picks one of the payload classes
below, and everything type-specific (parsing, the date span used for overlap
checks, the amount used against delegation limits) is looked up by tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable, Optional, Union

from ..common.datetime_utils import parse_hhmm, parse_iso_date
from ..common.validators import optional_text, require_date_range, require_positive, to_decimal
from ..core.constants import MAX_OVERTIME_HOURS
from ..core.enums import RequestType
from ..core.exceptions import ValidationError


def _as_date(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value or ""))
    except ValueError:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)")


def _as_time(value: Any) -> Optional[time]:
    if value is None or isinstance(value, time):
        return value
    return parse_hhmm(str(value))


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _fmt_time(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M:%S") if value else None


@dataclass(frozen=True)
class LeavePayload:
    leave_type_id: int
    start_date: date
    end_date: date
    days_requested: Decimal
    reason: Optional[str] = None
    start_half_day: bool = False
    end_half_day: bool = False

    @property
    def span(self) -> tuple[date, date]:
        return self.start_date, self.end_date

    @property
    def amount(self) -> Optional[Decimal]:
        return None

    def to_dict(self) -> dict:
        return {
            "leave_type_id": self.leave_type_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "days_requested": str(self.days_requested),
            "start_half_day": self.start_half_day,
            "end_half_day": self.end_half_day,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LeavePayload":
        try:
            leave_type_id = int(data.get("leave_type_id") or 0)
        except (TypeError, ValueError):
            leave_type_id = 0
        if leave_type_id <= 0:
            raise ValidationError("Leave type is required")

        start = _as_date(data.get("start_date"), "Start date")
        end = _as_date(data.get("end_date"), "End date")
        require_date_range(start, end)

        # Days are counted from the span; a half day at either end takes off 0.5.
        start_half = _as_flag(data.get("start_half_day"))
        end_half = _as_flag(data.get("end_half_day"))
        days = Decimal((end - start).days + 1)
        if start_half:
            days -= Decimal("0.5")
        if end_half:
            days -= Decimal("0.5")
        if days <= 0:
            raise ValidationError("A single half-day leave cannot take both halves off")

        claimed = to_decimal(data.get("days_requested"), "Days requested")
        if claimed is not None and claimed != days:
            raise ValidationError(f"Days requested ({claimed}) does not match the requested dates ({days})")

        return cls(
            leave_type_id=leave_type_id,
            start_date=start,
            end_date=end,
            days_requested=days,
            reason=optional_text(data.get("reason")),
            start_half_day=start_half,
            end_half_day=end_half,
        )


@dataclass(frozen=True)
class OvertimePayload:
    work_date: date
    estimated_hours: Decimal
    reason: Optional[str] = None

    @property
    def span(self) -> tuple[date, date]:
        return self.work_date, self.work_date

    @property
    def amount(self) -> Optional[Decimal]:
        return self.estimated_hours

    def to_dict(self) -> dict:
        return {
            "work_date": self.work_date.isoformat(),
            "estimated_hours": str(self.estimated_hours),
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OvertimePayload":
        return cls(
            work_date=_as_date(data.get("work_date"), "Work date"),
            estimated_hours=require_positive(
                data.get("estimated_hours"), "Estimated hours", maximum=Decimal(MAX_OVERTIME_HOURS)
            ),
            reason=optional_text(data.get("reason")),
        )


@dataclass(frozen=True)
class CorrectionPayload:
    work_date: date
    requested_check_in: Optional[time]
    requested_check_out: Optional[time]
    original_check_in: Optional[time] = None
    original_check_out: Optional[time] = None
    reason: Optional[str] = None

    @property
    def span(self) -> tuple[date, date]:
        return self.work_date, self.work_date

    @property
    def amount(self) -> Optional[Decimal]:
        return None

    def to_dict(self) -> dict:
        return {
            "work_date": self.work_date.isoformat(),
            "requested_check_in": _fmt_time(self.requested_check_in),
            "requested_check_out": _fmt_time(self.requested_check_out),
            "original_check_in": _fmt_time(self.original_check_in),
            "original_check_out": _fmt_time(self.original_check_out),
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CorrectionPayload":
        check_in = _as_time(data.get("requested_check_in"))
        check_out = _as_time(data.get("requested_check_out"))
        if not check_in and not check_out:
            raise ValidationError("At least one corrected clock time is required")
        if check_in and check_out and check_out < check_in:
            raise ValidationError("Check-out cannot be earlier than check-in")

        return cls(
            work_date=_as_date(data.get("work_date"), "Work date"),
            requested_check_in=check_in,
            requested_check_out=check_out,
            original_check_in=_as_time(data.get("original_check_in")),
            original_check_out=_as_time(data.get("original_check_out")),
            reason=optional_text(data.get("reason")),
        )


Payload = Union[LeavePayload, OvertimePayload, CorrectionPayload]

PAYLOAD_PARSERS: dict[RequestType, Callable[[dict], Payload]] = {
    RequestType.LEAVE: LeavePayload.from_dict,
    RequestType.OVERTIME: OvertimePayload.from_dict,
    RequestType.CORRECTION: CorrectionPayload.from_dict,
}


def parse_payload(request_type: RequestType, data: Optional[dict]) -> Payload:
    if not isinstance(data, dict):
        raise ValidationError("Request payload must be an object")
    return PAYLOAD_PARSERS[request_type](data)
