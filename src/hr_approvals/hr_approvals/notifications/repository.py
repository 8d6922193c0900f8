from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import NotificationType
from .model import DelegationNotification


class NotificationSink(Protocol):
    """Queue of delegation notifications.

    Writes are best-effort relative to the transition that triggers them;
    implementations raise ``NotificationSinkError`` (or a driver error) on failure.
    """

    def enqueue(
        self,
        *,
        delegation_id: int,
        recipient_id: int,
        notification_type: NotificationType,
        message: str,
        now: datetime,
    ) -> int:
        raise NotImplementedError

    def list_for_recipient(self, recipient_id: int, *, unread_only: bool, limit: int) -> Sequence[DelegationNotification]:
        raise NotImplementedError

    def get(self, notification_id: int) -> Optional[DelegationNotification]:
        raise NotImplementedError

    def mark_read(self, notification_id: int, *, recipient_id: int, now: datetime) -> bool:
        raise NotImplementedError
