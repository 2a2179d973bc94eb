"""
PostgreSQL connection pool helper.
Provides create_pool() / get_pool() / close_pool() for the HTTP gateway.
"""

import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Optional

import psycopg2
from psycopg2 import pool
from psycopg2.extras import DictCursor
from dotenv import load_dotenv

# Load .env variables from the project root
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
POOL_MIN = int(os.getenv("DB_POOL_MIN", 10))
POOL_MAX = int(os.getenv("DB_POOL_MAX", 10))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 10))  # seconds to build the pool
POOL_WAIT_TIMEOUT = float(os.getenv("DB_POOL_WAIT_TIMEOUT", 30))  # seconds to wait for a free slot

_pool: Optional["BlockingConnectionPool"] = None


class BlockingConnectionPool(pool.ThreadedConnectionPool):
    """
    ThreadedConnectionPool that waits for a free slot instead of failing.

    psycopg2's pools raise PoolError as soon as maxconn connections are
    checked out. Here a bounded semaphore makes the caller block until a
    connection is returned, or until `wait_timeout` seconds have passed.
    """

    def __init__(self, minconn: int, maxconn: int, *args, wait_timeout: float = POOL_WAIT_TIMEOUT, **kwargs):
        self._slots = threading.BoundedSemaphore(maxconn)
        self.wait_timeout = wait_timeout
        super().__init__(minconn, maxconn, *args, **kwargs)

    def getconn(self, key=None):
        if not self._slots.acquire(timeout=self.wait_timeout):
            raise pool.PoolError(f"no connection available after {self.wait_timeout}s")
        try:
            return super().getconn(key)
        except Exception:
            self._slots.release()
            raise

    def putconn(self, conn=None, key=None, close=False):
        # A rejected put (unkeyed or repeated) never held a slot.
        super().putconn(conn, key, close)
        self._slots.release()


def _close_abandoned(future: Future) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    future.result().closeall()
    logging.warning("Closed connection pool that finished after the creation timeout.")


def create_pool(
    dsn: Optional[str] = None,
    minconn: int = POOL_MIN,
    maxconn: int = POOL_MAX,
    timeout: float = POOL_TIMEOUT,
) -> BlockingConnectionPool:
    """
    Create the process-wide connection pool.

    Every connection returns rows as dictionaries (DictCursor). Creation is
    time-boxed: each connection attempt gets `timeout` as its libpq connect
    timeout and the whole pool must be ready within `timeout` seconds.

    Args:
        dsn (str, optional): libpq connection string. Defaults to DATABASE_URL.
        minconn (int): Connections opened eagerly.
        maxconn (int): Upper bound on concurrent connections.
        timeout (float): Seconds allowed for pool creation as a whole.

    Returns:
        BlockingConnectionPool: The ready pool.

    Raises:
        RuntimeError: If no DSN is configured.
        psycopg2.Error: If connecting fails.
        TimeoutError: If the pool was not ready in time.
    """
    global _pool

    dsn = dsn or DATABASE_URL
    if not dsn:
        raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")

    started = time.monotonic()
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pool-create")
    future = executor.submit(
        BlockingConnectionPool,
        minconn,
        maxconn,
        dsn,
        connect_timeout=max(1, int(timeout)),
        cursor_factory=DictCursor,
    )
    try:
        new_pool = future.result(timeout=timeout)
    except FuturesTimeoutError:
        # The worker may still be connecting; close its pool once it finishes.
        future.add_done_callback(_close_abandoned)
        raise TimeoutError(f"Connection pool creation timed out after {timeout} seconds") from None
    finally:
        executor.shutdown(wait=False)
    elapsed = time.monotonic() - started

    logging.info(f"Connection pool created ({minconn}-{maxconn} connections) in {elapsed:.2f}s")
    _pool = new_pool
    return new_pool


def get_pool() -> BlockingConnectionPool:
    """
    Return the pool created by create_pool().

    Raises:
        RuntimeError: If the pool has not been created yet.
    """
    if _pool is None:
        raise RuntimeError("Connection pool is not initialised. Call create_pool() first.")
    return _pool


def close_pool() -> None:
    """Close every pooled connection. Safe to call when no pool exists."""
    global _pool

    if _pool is None:
        logging.info("Connection pool was not active.")
        return
    try:
        _pool.closeall()
        logging.info("Connection pool closed.")
    except psycopg2.Error as e:
        logging.error(f"Failed to close connection pool: {e}")
        raise
    finally:
        _pool = None
