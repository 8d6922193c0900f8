from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee
from .repository import Directory


class MySQLDirectory(Directory):
    """Reads ``employees`` / ``employee_managers`` with short-lived connections."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def manager_chain_of(self, employee_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT em.manager_id
                FROM employee_managers em
                JOIN employees m ON m.employee_id = em.manager_id
                WHERE em.employee_id=%s AND em.is_active=1 AND m.is_active=1
                ORDER BY em.rank_order ASC
                """,
                (int(employee_id),),
            )
            return [int(r["manager_id"]) for r in fetchall(cur)]

    def get(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT employee_id, full_name, is_active FROM employees WHERE employee_id=%s",
                (int(employee_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Employee(
                employee_id=int(r["employee_id"]),
                full_name=r["full_name"],
                is_active=bool(r.get("is_active", True)),
            )

    def display_name(self, employee_id: int) -> Optional[str]:
        emp = self.get(employee_id)
        return emp.full_name if emp else None

    def exists(self, employee_id: int) -> bool:
        emp = self.get(employee_id)
        return bool(emp and emp.is_active)
