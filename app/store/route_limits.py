from __future__ import annotations

import time

from app.store.db import transaction


def record_route_hit(*, user_id: str, route_key: str, limit: int, window_seconds: int) -> bool:
    """Log one call of ``route_key`` by the user; False, with nothing logged, when the window is full."""
    now = time.time()
    with transaction() as cur:
        cur.execute(
            """
            SELECT COUNT(1) FROM route_hits
            WHERE user_id = ? AND route_key = ? AND created_at >= ?
            """,
            (user_id, route_key, now - window_seconds),
        )
        if int(cur.fetchone()[0] or 0) >= limit:
            return False
        cur.execute(
            "INSERT INTO route_hits (user_id, route_key, created_at) VALUES (?, ?, ?)",
            (user_id, route_key, now),
        )
    return True


def purge_route_hits(older_than_seconds: int) -> int:
    with transaction() as cur:
        cur.execute("DELETE FROM route_hits WHERE created_at < ?", (time.time() - older_than_seconds,))
        return int(cur.rowcount or 0)
