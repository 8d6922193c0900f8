from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import NotificationType
from ..database.mysql_base import fetchall, fetchone
from .model import DelegationNotification
from .repository import NotificationSink


def _row_to_notification(r: dict) -> DelegationNotification:
    return DelegationNotification(
        notification_id=int(r["notification_id"]),
        delegation_id=int(r["delegation_id"]),
        recipient_id=int(r["recipient_id"]),
        notification_type=NotificationType(r["notification_type"]),
        message=r["message"],
        is_read=bool(r["is_read"]),
        read_at=r.get("read_at"),
        created_at=r.get("created_at"),
    )


class MySQLNotificationRepository(NotificationSink):
    def __init__(self, cur):
        self._cur = cur

    def enqueue(
        self,
        *,
        delegation_id: int,
        recipient_id: int,
        notification_type: NotificationType,
        message: str,
        now: datetime,
    ) -> int:
        self._cur.execute(
            """
            INSERT INTO delegation_notifications(
                delegation_id, recipient_id, notification_type, message, is_read, created_at
            )
            VALUES(%s,%s,%s,%s,0,%s)
            """,
            (int(delegation_id), int(recipient_id), notification_type.value, message, now),
        )
        return int(self._cur.lastrowid)

    def list_for_recipient(self, recipient_id: int, *, unread_only: bool, limit: int) -> Sequence[DelegationNotification]:
        sql = """
            SELECT notification_id, delegation_id, recipient_id, notification_type,
                   message, is_read, read_at, created_at
            FROM delegation_notifications
            WHERE recipient_id=%s
        """
        if unread_only:
            sql += " AND is_read=0"
        sql += " ORDER BY created_at DESC, notification_id DESC LIMIT %s"
        self._cur.execute(sql, (int(recipient_id), int(limit)))
        return [_row_to_notification(r) for r in fetchall(self._cur)]

    def get(self, notification_id: int) -> Optional[DelegationNotification]:
        self._cur.execute(
            """
            SELECT notification_id, delegation_id, recipient_id, notification_type,
                   message, is_read, read_at, created_at
            FROM delegation_notifications
            WHERE notification_id=%s
            """,
            (int(notification_id),),
        )
        r = fetchone(self._cur)
        return _row_to_notification(r) if r else None

    def mark_read(self, notification_id: int, *, recipient_id: int, now: datetime) -> bool:
        self._cur.execute(
            """
            UPDATE delegation_notifications
            SET is_read=1, read_at=%s
            WHERE notification_id=%s AND recipient_id=%s
            """,
            (now, int(notification_id), int(recipient_id)),
        )
        return self._cur.rowcount > 0
