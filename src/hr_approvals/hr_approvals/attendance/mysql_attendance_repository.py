from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from ..core.exceptions import AttendanceUpdateError
from ..database.mysql_base import fetchone
from .model import AttendanceRecord
from .repository import AttendanceRepository


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, cur):
        self._cur = cur

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        self._cur.execute(
            """
            SELECT attendance_id, employee_id, work_date, check_in_time, check_out_time, note
            FROM attendance_records
            WHERE employee_id=%s AND work_date=%s
            """,
            (int(employee_id), work_date),
        )
        r = fetchone(self._cur)
        if not r:
            return None
        return AttendanceRecord(
            attendance_id=int(r["attendance_id"]),
            employee_id=int(r["employee_id"]),
            work_date=r["work_date"],
            check_in_time=r.get("check_in_time"),
            check_out_time=r.get("check_out_time"),
            note=r.get("note"),
        )

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
        rec = self.get_for_employee_and_date(employee_id, work_date)

        new_check_in = datetime.combine(work_date, check_in) if check_in else None
        new_check_out = datetime.combine(work_date, check_out) if check_out else None

        if rec is None:
            self._cur.execute(
                """
                INSERT INTO attendance_records(
                    employee_id, work_date, check_in_time, check_out_time, note, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(employee_id), work_date, new_check_in, new_check_out, note, now),
            )
            return int(self._cur.lastrowid)

        new_check_in = new_check_in or rec.check_in_time
        new_check_out = new_check_out or rec.check_out_time
        if new_check_in and new_check_out and new_check_out < new_check_in:
            raise AttendanceUpdateError(
                f"Corrected check-out {new_check_out:%H:%M} precedes check-in {new_check_in:%H:%M}"
            )

        self._cur.execute(
            """
            UPDATE attendance_records
            SET check_in_time=%s, check_out_time=%s, note=%s, updated_at=%s
            WHERE attendance_id=%s
            """,
            (new_check_in, new_check_out, note if note is not None else rec.note, now, rec.attendance_id),
        )
        return rec.attendance_id
