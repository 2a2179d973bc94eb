"""
Query gateway: one pooled connection, one bound statement, per call.

Services receive a QueryGateway instance instead of reaching for the pool
themselves, so tests can hand them a fake.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import psycopg2
from psycopg2 import pool

Params = Optional[Union[Sequence[Any], Mapping[str, Any]]]

MASK = "***"


def mask_params(params: Params) -> Params:
    """
    Hide any bound parameter whose name mentions a password.

    Positional parameters have no names and are returned unchanged; callers
    that bind secrets use named parameters.
    """
    if isinstance(params, Mapping):
        return {k: (MASK if "password" in k.lower() else v) for k, v in params.items()}
    return params


class QueryError(Exception):
    """A statement failed at the store level (connectivity, constraint, timeout)."""

    def __init__(self, statement: str, parameters: Params, cause: BaseException) -> None:
        super().__init__(str(cause))
        self.statement = statement
        self.parameters = mask_params(parameters)
        self.cause = cause


class QueryGateway:
    """
    Executes single statements against a connection pool.

    Args:
        connection_pool: Anything with getconn()/putconn(conn), typically
            the BlockingConnectionPool from db_connection.
    """

    def __init__(self, connection_pool: pool.AbstractConnectionPool) -> None:
        self.pool = connection_pool

    def execute(
        self,
        statement: str,
        params: Params = None,
        fetch: bool = True,
        commit: bool = False,
    ) -> Union[List[Dict[str, Any]], int]:
        """
        Run one statement on a freshly acquired connection.

        Args:
            statement (str): SQL with %s or %(name)s placeholders.
            params: Values bound to the placeholders.
            fetch (bool): Return the result rows as dicts. When False the
                affected row count is returned instead.
            commit (bool): Commit before releasing the connection.

        Returns:
            list[dict] | int: Rows, or the affected row count.

        Raises:
            QueryError: On any store-level failure.
        """
        conn = None
        try:
            conn = self.pool.getconn()
            logging.info(f"Executing SQL: {' '.join(statement.split())}")
            with conn.cursor() as cur:
                cur.execute(statement, params)
                if fetch:
                    result: Union[List[Dict[str, Any]], int] = [dict(row) for row in cur.fetchall()]
                    count = len(result)
                else:
                    result = count = cur.rowcount
            if commit:
                conn.commit()
            logging.info(f"Query successful. Rows affected/fetched: {count}")
            return result
        except (psycopg2.Error, pool.PoolError) as e:
            logging.error(
                f"Failed to execute query! SQL: {' '.join(statement.split())} "
                f"Params: {mask_params(params)} Details: {e}"
            )
            raise QueryError(statement, params, e) from e
        finally:
            if conn is not None:
                self._release(conn)

    def _release(self, conn) -> None:
        try:
            self.pool.putconn(conn)
            logging.debug("Connection released back to pool.")
        except Exception as e:
            # Never mask the error that got us here.
            logging.error(f"Failed to release connection: {e}")
