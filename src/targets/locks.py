"""Per-period mutual exclusion.

PostgreSQL transaction-level advisory locks: released automatically at
commit/rollback, so callers must already be inside ``transaction.atomic()``.
Other engines (sqlite in local tests) run without a lock.
"""
from __future__ import annotations

import hashlib
import logging

from django.db import connection

logger = logging.getLogger(__name__)


def make_lock_key(period_id) -> int:
    raw = f"targets:period:{period_id}"
    hex_digest = hashlib.md5(raw.encode()).hexdigest()[:8]
    return int(hex_digest, 16) % (2**31)


def acquire_period_lock(period_id, *, wait: bool) -> bool:
    """Take the period lock for the current transaction.

    ``wait=True`` blocks until the holder commits (configuration writes);
    ``wait=False`` returns False immediately when the lock is busy (recompute).
    """
    if connection.vendor != "postgresql":
        return True

    key = make_lock_key(period_id)
    with connection.cursor() as cursor:
        if wait:
            cursor.execute("SELECT pg_advisory_xact_lock(%s)", [key])
            return True
        cursor.execute("SELECT pg_try_advisory_xact_lock(%s)", [key])
        row = cursor.fetchone()
    acquired = bool(row and row[0])
    if not acquired:
        logger.debug("Advisory lock busy for period=%s", period_id)
    return acquired
