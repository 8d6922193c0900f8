from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Protocol

from ..attendance.mysql_attendance_repository import MySQLAttendanceRepository
from ..attendance.repository import AttendanceRepository
from ..delegations.mysql_delegation_repository import MySQLDelegationRepository
from ..delegations.repository import DelegationRepository
from ..ledger.mysql_balance_ledger import MySQLBalanceLedger
from ..ledger.repository import BalanceLedger
from ..notifications.mysql_notification_repository import MySQLNotificationRepository
from ..notifications.repository import NotificationSink
from ..requests.mysql_request_repository import MySQLRequestRepository
from ..requests.repository import RequestRepository
from .connection import DatabaseConnection

_SAVEPOINT_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class UnitOfWork(Protocol):
    """One transaction; every repository attribute shares it."""

    requests: RequestRepository
    delegations: DelegationRepository
    notifications: NotificationSink
    ledger: BalanceLedger
    attendance: AttendanceRepository

    def __enter__(self) -> "UnitOfWork":
        raise NotImplementedError

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        raise NotImplementedError

    def savepoint(self, name: str):
        """Context manager; an exception rolls back to the savepoint and propagates."""

        raise NotImplementedError


UnitOfWorkFactory = Callable[[], UnitOfWork]


class MySQLUnitOfWork(UnitOfWork):
    """Commit on clean exit, rollback on exception, always close."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory
        self._conn = None
        self._cur = None

    def __enter__(self) -> "MySQLUnitOfWork":
        self._conn = self._conn_factory.connect()
        self._cur = self._conn.cursor(dictionary=True)
        self.requests = MySQLRequestRepository(self._cur)
        self.delegations = MySQLDelegationRepository(self._cur)
        self.notifications = MySQLNotificationRepository(self._cur)
        self.ledger = MySQLBalanceLedger(self._cur)
        self.attendance = MySQLAttendanceRepository(self._cur)
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        try:
            if exc_type is None:
                self._conn.commit()
            else:
                self._conn.rollback()
        finally:
            try:
                self._cur.close()
            finally:
                self._conn.close()
                self._conn = None
                self._cur = None
        return None

    @contextmanager
    def savepoint(self, name: str) -> Iterator[None]:
        if not _SAVEPOINT_NAME.match(name):
            raise ValueError(f"Invalid savepoint name: {name!r}")
        self._cur.execute(f"SAVEPOINT {name}")
        try:
            yield
        except Exception:
            self._cur.execute(f"ROLLBACK TO SAVEPOINT {name}")
            raise
        self._cur.execute(f"RELEASE SAVEPOINT {name}")
