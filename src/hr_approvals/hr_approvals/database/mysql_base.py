from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_clause(values: Iterable[Any]) -> tuple[str, tuple]:
    """Build ``IN (%s,%s,...)`` placeholders for a non-empty sequence."""
    items = tuple(values)
    return "(" + ",".join(["%s"] * len(items)) + ")", items


def load_id_list(value: Any) -> frozenset[int]:
    """Decode a JSON id list column (tolerates NULL / already-decoded lists)."""
    if value is None or value == "":
        return frozenset()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value)
    return frozenset(int(v) for v in value)


def dump_id_list(ids: Iterable[int]) -> str:
    return json.dumps(sorted(int(i) for i in ids))

