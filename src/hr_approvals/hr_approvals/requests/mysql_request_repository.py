from __future__ import annotations

import json
from datetime import date, datetime
from typing import Collection, Optional, Sequence

from ..core.enums import LevelAction, RequestStatus, RequestType, SideEffectKind
from ..database.mysql_base import fetchall, fetchone, in_clause
from .model import ApprovalLevel, Request
from .payloads import Payload, parse_payload
from .repository import RequestRepository

_COLUMNS = """
    r.request_id, r.requester_id, r.request_type, r.payload, r.status,
    r.created_at, r.updated_at, r.cancelled_at, r.cancelled_by, r.cancellation_reason
"""

_TERMINAL = tuple(s.value for s in RequestStatus if s.is_terminal)


def _load_payload(request_type: RequestType, value) -> Payload:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value)
    return parse_payload(request_type, value)


def _row_to_level(r: dict) -> ApprovalLevel:
    return ApprovalLevel(
        level=int(r["level_no"]),
        approver_id=int(r["approver_id"]),
        action=LevelAction(r["action"]),
        acted_by_id=r.get("acted_by_id"),
        delegation_id=r.get("delegation_id"),
        comment=r.get("comment"),
        acted_at=r.get("acted_at"),
    )


def _row_to_request(r: dict, levels: Sequence[ApprovalLevel]) -> Request:
    request_type = RequestType(r["request_type"])
    return Request(
        request_id=int(r["request_id"]),
        requester_id=int(r["requester_id"]),
        request_type=request_type,
        payload=_load_payload(request_type, r["payload"]),
        status=RequestStatus(r["status"]),
        levels=tuple(levels),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        cancelled_at=r.get("cancelled_at"),
        cancelled_by=r.get("cancelled_by"),
        cancellation_reason=r.get("cancellation_reason"),
    )


class MySQLRequestRepository(RequestRepository):
    def __init__(self, cur):
        self._cur = cur

    def create(
        self,
        *,
        requester_id: int,
        request_type: RequestType,
        payload: Payload,
        approver_ids: Sequence[int],
        status: RequestStatus,
        now: datetime,
    ) -> int:
        start, end = payload.span
        self._cur.execute(
            """
            INSERT INTO requests(
                requester_id, request_type, payload, start_date, end_date,
                status, created_at, updated_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                int(requester_id),
                request_type.value,
                json.dumps(payload.to_dict()),
                start,
                end,
                status.value,
                now,
                now,
            ),
        )
        request_id = int(self._cur.lastrowid)

        for level_no, approver_id in enumerate(approver_ids, start=1):
            self._cur.execute(
                """
                INSERT INTO request_levels(request_id, level_no, approver_id, action)
                VALUES(%s,%s,%s,%s)
                """,
                (request_id, level_no, int(approver_id), LevelAction.NONE.value),
            )
        return request_id

    def _levels_for(self, request_ids: Sequence[int]) -> dict[int, list[ApprovalLevel]]:
        out: dict[int, list[ApprovalLevel]] = {int(i): [] for i in request_ids}
        if not out:
            return out
        placeholders, params = in_clause(out.keys())
        self._cur.execute(
            f"""
            SELECT request_id, level_no, approver_id, action, acted_by_id,
                   delegation_id, comment, acted_at
            FROM request_levels
            WHERE request_id IN {placeholders}
            ORDER BY request_id, level_no
            """,
            params,
        )
        for r in fetchall(self._cur):
            out[int(r["request_id"])].append(_row_to_level(r))
        return out

    def _hydrate(self, rows: Sequence[dict]) -> list[Request]:
        levels = self._levels_for([int(r["request_id"]) for r in rows])
        return [_row_to_request(r, levels[int(r["request_id"])]) for r in rows]

    def get(self, request_id: int) -> Optional[Request]:
        self._cur.execute(f"SELECT {_COLUMNS} FROM requests r WHERE r.request_id=%s", (int(request_id),))
        r = fetchone(self._cur)
        if not r:
            return None
        return self._hydrate([r])[0]

    def lock_requester(self, requester_id: int) -> None:
        self._cur.execute(
            "SELECT employee_id FROM employees WHERE employee_id=%s FOR UPDATE",
            (int(requester_id),),
        )
        fetchall(self._cur)

    def find_overlapping_leaves(self, *, requester_id: int, start_date: date, end_date: date) -> Sequence[Request]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM requests r
            WHERE r.requester_id=%s AND r.request_type=%s
              AND r.status NOT IN (%s,%s)
              AND r.start_date <= %s AND r.end_date >= %s
            ORDER BY r.start_date
            """,
            (
                int(requester_id),
                RequestType.LEAVE.value,
                RequestStatus.REJECTED.value,
                RequestStatus.CANCELLED.value,
                end_date,
                start_date,
            ),
        )
        return self._hydrate(fetchall(self._cur))

    def record_level_action(
        self,
        *,
        request_id: int,
        level: int,
        action: LevelAction,
        acted_by_id: int,
        delegation_id: Optional[int],
        comment: Optional[str],
        now: datetime,
    ) -> bool:
        self._cur.execute(
            """
            UPDATE request_levels
            SET action=%s, acted_by_id=%s, delegation_id=%s, comment=%s, acted_at=%s
            WHERE request_id=%s AND level_no=%s AND action=%s
            """,
            (
                action.value,
                int(acted_by_id),
                delegation_id,
                comment,
                now,
                int(request_id),
                int(level),
                LevelAction.NONE.value,
            ),
        )
        return self._cur.rowcount > 0

    def set_status(self, request_id: int, *, expected: RequestStatus, new: RequestStatus, now: datetime) -> bool:
        self._cur.execute(
            "UPDATE requests SET status=%s, updated_at=%s WHERE request_id=%s AND status=%s",
            (new.value, now, int(request_id), expected.value),
        )
        return self._cur.rowcount > 0

    def mark_cancelled(
        self,
        request_id: int,
        *,
        expected: Collection[RequestStatus],
        cancelled_by: int,
        reason: Optional[str],
        now: datetime,
    ) -> bool:
        placeholders, statuses = in_clause(s.value for s in expected)
        self._cur.execute(
            f"""
            UPDATE requests
            SET status=%s, cancelled_at=%s, cancelled_by=%s, cancellation_reason=%s, updated_at=%s
            WHERE request_id=%s AND status IN {placeholders}
            """,
            (RequestStatus.CANCELLED.value, now, int(cancelled_by), reason, now, int(request_id)) + statuses,
        )
        return self._cur.rowcount > 0

    def list_requests(
        self,
        *,
        requester_id: Optional[int] = None,
        current_approver_ids: Optional[Collection[int]] = None,
        in_progress_only: bool = False,
        limit: int = 200,
    ) -> Sequence[Request]:
        clauses = ["1=1"]
        params: list[object] = []

        if requester_id is not None:
            clauses.append("r.requester_id=%s")
            params.append(int(requester_id))

        if current_approver_ids is not None:
            if not current_approver_ids:
                return []
            placeholders, ids = in_clause(int(i) for i in current_approver_ids)
            clauses.append(
                f"""
                EXISTS (
                    SELECT 1 FROM request_levels cur
                    WHERE cur.request_id = r.request_id
                      AND cur.approver_id IN {placeholders}
                      AND cur.level_no = (
                          SELECT MIN(l.level_no) FROM request_levels l
                          WHERE l.request_id = r.request_id AND l.action=%s
                      )
                )
                """
            )
            params.extend(ids)
            params.append(LevelAction.NONE.value)
            in_progress_only = True

        if in_progress_only:
            placeholders, terminal = in_clause(_TERMINAL)
            clauses.append(f"r.status NOT IN {placeholders}")
            params.extend(terminal)

        where = " AND ".join(clauses)
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM requests r
            WHERE {where}
            ORDER BY r.created_at DESC, r.request_id DESC
            LIMIT %s
            """,
            tuple(params + [int(limit)]),
        )
        return self._hydrate(fetchall(self._cur))

    def record_side_effect_failure(
        self,
        *,
        request_id: int,
        kind: SideEffectKind,
        error_message: str,
        now: datetime,
    ) -> None:
        self._cur.execute(
            """
            INSERT INTO side_effect_failures(request_id, kind, error_message, created_at)
            VALUES(%s,%s,%s,%s)
            """,
            (int(request_id), kind.value, error_message[:1000], now),
        )
