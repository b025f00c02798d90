from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass

import psycopg
from psycopg import Connection

from .config import DbConfig
from .errors import PersistenceError

logger = logging.getLogger(__name__)


class DbError(PersistenceError):
    pass


def _rollback(conn: Connection) -> None:
    # a broken connection has already discarded the transaction on the server
    if conn.closed:
        return
    try:
        conn.execute("ROLLBACK;")
    except psycopg.Error as e:
        logger.error("ROLLBACK failed: %s", e)


@dataclass(frozen=True)
class Db:
    cfg: DbConfig

    def connect(self) -> Connection:
        try:
            return psycopg.connect(
                host=self.cfg.host,
                port=self.cfg.port,
                dbname=self.cfg.name,
                user=self.cfg.user,
                password=self.cfg.password,
                sslmode=self.cfg.sslmode,
                autocommit=True,
            )
        except Exception as e:
            raise DbError(
                "Cannot connect to database. Check config.toml [db] and that PostgreSQL is running."
            ) from e

    @contextmanager
    def session(self) -> Connection:
        conn = self.connect()
        try:
            yield conn
        except psycopg.Error as e:
            raise PersistenceError(f"Database error: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Connection:
        """One all-or-nothing unit of work; row locks taken inside are held until COMMIT."""
        conn = self.connect()
        try:
            conn.execute("BEGIN;")
            # SET LOCAL does not accept bind parameters
            conn.execute(f"SET LOCAL lock_timeout = {int(self.cfg.lock_timeout_ms)};")
            yield conn
            conn.execute("COMMIT;")
        except psycopg.Error as e:
            logger.warning("Transaction rolled back after database error: %s", e)
            _rollback(conn)
            raise PersistenceError(f"Database error: {e}") from e
        except Exception:
            logger.warning("Transaction rolled back")
            _rollback(conn)
            raise
        finally:
            conn.close()
