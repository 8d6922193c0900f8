from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Protocol

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def apply_correction(
        self,
        *,
        employee_id: int,
        work_date: date,
        check_in: Optional[time],
        check_out: Optional[time],
        note: Optional[str],
        now: datetime,
    ) -> int:
        """Overwrite the given clock times for the day, creating the row if needed.

        A ``None`` time keeps whatever is already recorded.
        """

        raise NotImplementedError
