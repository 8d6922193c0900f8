from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import FrozenSet, Optional, Sequence

from ..core.enums import DelegationStatus, DelegationType, RequestType
from ..database.mysql_base import dump_id_list, fetchall, fetchone, load_id_list
from .model import Delegation, NewDelegation
from .repository import DelegationRepository

_COLUMNS = """
    delegation_id, delegator_id, delegate_id, start_date, end_date,
    delegation_type, excluded_employee_ids, max_amount, is_active,
    reason, notes, requires_notification,
    notification_sent_to_delegate, notification_sent_to_team,
    created_by, created_at, cancelled_at, cancelled_by, cancellation_reason
"""


def _row_to_delegation(r: dict) -> Delegation:
    return Delegation(
        delegation_id=int(r["delegation_id"]),
        delegator_id=int(r["delegator_id"]),
        delegate_id=int(r["delegate_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        delegation_type=DelegationType(r["delegation_type"]),
        excluded_employee_ids=load_id_list(r.get("excluded_employee_ids")),
        max_amount=Decimal(str(r["max_amount"])) if r.get("max_amount") is not None else None,
        is_active=bool(r["is_active"]),
        reason=r.get("reason"),
        notes=r.get("notes"),
        requires_notification=bool(r.get("requires_notification", True)),
        notification_sent_to_delegate=bool(r.get("notification_sent_to_delegate")),
        notification_sent_to_team=bool(r.get("notification_sent_to_team")),
        created_by=r.get("created_by"),
        created_at=r.get("created_at"),
        cancelled_at=r.get("cancelled_at"),
        cancelled_by=r.get("cancelled_by"),
        cancellation_reason=r.get("cancellation_reason"),
    )


def _status_clause(status: Optional[DelegationStatus], today: date) -> tuple[str, list[object]]:
    if status is None:
        return "", []
    if status == DelegationStatus.CANCELLED:
        return " AND d.is_active=0", []
    if status == DelegationStatus.UPCOMING:
        return " AND d.is_active=1 AND %s < d.start_date", [today]
    if status == DelegationStatus.ACTIVE:
        return " AND d.is_active=1 AND %s BETWEEN d.start_date AND d.end_date", [today]
    return " AND d.is_active=1 AND %s > d.end_date", [today]


class MySQLDelegationRepository(DelegationRepository):
    def __init__(self, cur):
        self._cur = cur

    def create(self, new: NewDelegation, *, now: datetime) -> int:
        self._cur.execute(
            """
            INSERT INTO delegations(
                delegator_id, delegate_id, start_date, end_date, delegation_type,
                excluded_employee_ids, max_amount, reason, notes,
                requires_notification, is_active, created_by, created_at, updated_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1,%s,%s,%s)
            """,
            (
                int(new.delegator_id),
                int(new.delegate_id),
                new.start_date,
                new.end_date,
                new.delegation_type.value,
                dump_id_list(new.excluded_employee_ids),
                new.max_amount,
                new.reason,
                new.notes,
                1 if new.requires_notification else 0,
                int(new.created_by),
                now,
                now,
            ),
        )
        return int(self._cur.lastrowid)

    def get(self, delegation_id: int) -> Optional[Delegation]:
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM delegations WHERE delegation_id=%s",
            (int(delegation_id),),
        )
        r = fetchone(self._cur)
        return _row_to_delegation(r) if r else None

    def lock_delegator(self, delegator_id: int) -> None:
        self._cur.execute(
            "SELECT employee_id FROM employees WHERE employee_id=%s FOR UPDATE",
            (int(delegator_id),),
        )
        fetchall(self._cur)

    def find_overlapping(
        self,
        *,
        delegator_id: int,
        delegation_type: DelegationType,
        start_date: date,
        end_date: date,
        exclude_id: Optional[int] = None,
    ) -> Sequence[Delegation]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM delegations
            WHERE delegator_id=%s AND delegation_type=%s AND is_active=1
              AND start_date <= %s AND end_date >= %s
        """
        params: list[object] = [int(delegator_id), delegation_type.value, end_date, start_date]
        if exclude_id is not None:
            sql += " AND delegation_id <> %s"
            params.append(int(exclude_id))
        sql += " ORDER BY start_date"
        self._cur.execute(sql, tuple(params))
        return [_row_to_delegation(r) for r in fetchall(self._cur)]

    def find_active_candidates(
        self,
        *,
        delegate_id: int,
        delegator_id: int,
        request_type: RequestType,
        on_date: date,
    ) -> Sequence[Delegation]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM delegations
            WHERE delegate_id=%s AND delegator_id=%s AND is_active=1
              AND %s BETWEEN start_date AND end_date
              AND delegation_type IN (%s, %s)
            ORDER BY (delegation_type = %s) ASC, delegation_id ASC
            """,
            (
                int(delegate_id),
                int(delegator_id),
                on_date,
                request_type.value,
                DelegationType.ALL.value,
                DelegationType.ALL.value,
            ),
        )
        return [_row_to_delegation(r) for r in fetchall(self._cur)]

    def deactivate(self, delegation_id: int, *, cancelled_by: int, reason: Optional[str], now: datetime) -> bool:
        self._cur.execute(
            """
            UPDATE delegations
            SET is_active=0, cancelled_at=%s, cancelled_by=%s, cancellation_reason=%s, updated_at=%s
            WHERE delegation_id=%s AND is_active=1
            """,
            (now, int(cancelled_by), reason, now, int(delegation_id)),
        )
        return self._cur.rowcount > 0

    def update_terms(
        self,
        delegation_id: int,
        *,
        end_date: date,
        excluded_employee_ids: FrozenSet[int],
        max_amount: Optional[Decimal],
        notes: Optional[str],
        now: datetime,
    ) -> bool:
        self._cur.execute(
            """
            UPDATE delegations
            SET end_date=%s, excluded_employee_ids=%s, max_amount=%s, notes=%s, updated_at=%s
            WHERE delegation_id=%s AND is_active=1
            """,
            (end_date, dump_id_list(excluded_employee_ids), max_amount, notes, now, int(delegation_id)),
        )
        return self._cur.rowcount > 0

    def mark_delegate_notified(self, delegation_id: int) -> None:
        self._cur.execute(
            "UPDATE delegations SET notification_sent_to_delegate=1 WHERE delegation_id=%s",
            (int(delegation_id),),
        )

    def list_for_delegate(self, delegate_id: int, *, active_on: Optional[date] = None) -> Sequence[Delegation]:
        sql = f"SELECT {_COLUMNS} FROM delegations d WHERE d.delegate_id=%s"
        params: list[object] = [int(delegate_id)]
        if active_on is not None:
            clause, extra = _status_clause(DelegationStatus.ACTIVE, active_on)
            sql += clause
            params.extend(extra)
        sql += " ORDER BY d.start_date DESC"
        self._cur.execute(sql, tuple(params))
        return [_row_to_delegation(r) for r in fetchall(self._cur)]

    def list_for_delegator(
        self,
        delegator_id: int,
        *,
        status: Optional[DelegationStatus],
        today: date,
    ) -> Sequence[Delegation]:
        clause, extra = _status_clause(status, today)
        self._cur.execute(
            f"""
            SELECT {_COLUMNS} FROM delegations d
            WHERE d.delegator_id=%s{clause}
            ORDER BY d.created_at DESC
            """,
            tuple([int(delegator_id)] + extra),
        )
        return [_row_to_delegation(r) for r in fetchall(self._cur)]

    def list_all(
        self,
        *,
        today: date,
        delegator_id: Optional[int] = None,
        delegate_id: Optional[int] = None,
        status: Optional[DelegationStatus] = None,
        delegation_type: Optional[DelegationType] = None,
    ) -> Sequence[Delegation]:
        clauses = ["1=1"]
        params: list[object] = []

        if delegator_id is not None:
            clauses.append("d.delegator_id=%s")
            params.append(int(delegator_id))
        if delegate_id is not None:
            clauses.append("d.delegate_id=%s")
            params.append(int(delegate_id))
        if delegation_type is not None:
            clauses.append("d.delegation_type=%s")
            params.append(delegation_type.value)

        status_sql, extra = _status_clause(status, today)
        where = " AND ".join(clauses) + status_sql

        self._cur.execute(
            f"SELECT {_COLUMNS} FROM delegations d WHERE {where} ORDER BY d.created_at DESC",
            tuple(params + extra),
        )
        return [_row_to_delegation(r) for r in fetchall(self._cur)]
