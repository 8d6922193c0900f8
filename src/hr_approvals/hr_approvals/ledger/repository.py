from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Protocol


class BalanceLedger(Protocol):
    """Leave balances, one row per (employee, leave type, year)."""

    def deduct(self, *, employee_id: int, leave_type_id: int, days: Decimal, as_of: date) -> None:
        """Move ``days`` from remaining to taken for ``as_of.year``.

        Raises ``LedgerError`` when no balance row exists.
        """

        raise NotImplementedError
