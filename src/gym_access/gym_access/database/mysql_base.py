from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector

from ..core.exceptions import StoreError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True, timeout_seconds: int | None = None):
    """One unit of work: everything executed inside commits together or not at all.

    Connector failures (including connect/read timeouts) surface as a retryable StoreError.
    """
    try:
        conn = conn_factory.connect(timeout_seconds=timeout_seconds)
    except mysql.connector.Error as e:
        logger.error("store connect failed: %s", e)
        raise StoreError(f"store unavailable: {e}") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        _safe_rollback(conn)
        logger.error("store operation failed, rolled back: %s", e)
        raise StoreError(f"store operation failed: {e}") from e
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error as e:
        logger.warning("rollback failed: %s", e)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
