from __future__ import annotations

from datetime import date
from decimal import Decimal

from ..core.exceptions import LedgerError
from .repository import BalanceLedger


class MySQLBalanceLedger(BalanceLedger):
    def __init__(self, cur):
        self._cur = cur

    def deduct(self, *, employee_id: int, leave_type_id: int, days: Decimal, as_of: date) -> None:
        self._cur.execute(
            """
            UPDATE leave_balances
            SET taken_days = taken_days + %s,
                remaining_days = remaining_days - %s
            WHERE employee_id=%s AND leave_type_id=%s AND year=%s
            """,
            (days, days, int(employee_id), int(leave_type_id), int(as_of.year)),
        )
        if self._cur.rowcount == 0:
            raise LedgerError(
                f"No {as_of.year} balance for employee {employee_id}, leave type {leave_type_id}"
            )
