"""
Database connection module

Manages the PostgreSQL connection (local or mock) used by the
prediction store.
"""

import logging
from typing import Optional

import psycopg2
from psycopg2 import pool

from racecast.config import DB_CONNECTION_POOL_MAX, DB_CONNECTION_POOL_MIN
from racecast.exceptions import DatabaseConnectionError, MissingEnvironmentVariableError
from racecast.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class MockConnection:
    """Stand-in connection when no database is configured."""

    def cursor(self, *args, **kwargs):
        return MockCursor()

    def close(self):
        pass

    def commit(self):
        pass

    def rollback(self):
        pass


class MockCursor:
    """Cursor that records nothing and returns nothing."""

    def execute(self, query, params=None):
        logger.debug(f"[MOCK] Execute: {query[:100]}...")

    def fetchone(self):
        return None

    def fetchall(self):
        return []

    def close(self):
        pass


class DatabaseConnection:
    """
    PostgreSQL connection manager

    Hands out connections from a lazily created pool, or mock
    connections when ``db_mode`` is ``mock``.
    """

    def __init__(self, config: Settings | None = None):
        """
        Raises:
            MissingEnvironmentVariableError: DB_PASSWORD missing in local mode
        """
        config = config or default_settings
        self.db_mode = config.db_mode
        self._connection_pool: Optional[pool.SimpleConnectionPool] = None

        if self.db_mode == "mock":
            logger.info("DB connection (mock): no real database connection is made")
            return

        self.host = config.db_host
        self.port = config.db_port
        self.database = config.db_name
        self.user = config.db_user
        self.password = config.db_password

        if not self.password:
            logger.error("DB_PASSWORD is not set")
            raise MissingEnvironmentVariableError("DB_PASSWORD")

        logger.info(
            f"DB connection (local): host={self.host}, port={self.port}, database={self.database}"
        )

    def get_connection_pool(
        self,
        minconn: int = DB_CONNECTION_POOL_MIN,
        maxconn: int = DB_CONNECTION_POOL_MAX,
    ) -> pool.SimpleConnectionPool:
        """
        Get (and lazily create) the connection pool.

        Raises:
            DatabaseConnectionError: Pool creation failed
        """
        if self._connection_pool is None:
            try:
                logger.info(f"Creating connection pool: min={minconn}, max={maxconn}")
                self._connection_pool = pool.SimpleConnectionPool(
                    minconn,
                    maxconn,
                    host=self.host,
                    port=self.port,
                    database=self.database,
                    user=self.user,
                    password=self.password,
                )
            except psycopg2.OperationalError as e:
                logger.error(f"Connection pool creation failed (auth/network): {e}")
                raise DatabaseConnectionError(f"Connection pool creation failed: {e}") from e
            except psycopg2.Error as e:
                logger.error(f"Connection pool creation failed (PostgreSQL): {e}")
                raise DatabaseConnectionError(f"Connection pool creation failed: {e}") from e

        return self._connection_pool

    def get_connection(self):
        """
        Get a database connection.

        Returns:
            psycopg2 connection (MockConnection in mock mode)

        Raises:
            DatabaseConnectionError: Connection failed
        """
        if self.db_mode == "mock":
            return MockConnection()

        try:
            return self.get_connection_pool().getconn()
        except psycopg2.Error as e:
            logger.error(f"DB connection failed: {e}")
            raise DatabaseConnectionError(f"Database connection failed: {e}") from e

    def release_connection(self, conn) -> None:
        """Return a connection to the pool."""
        if self.db_mode == "mock" or self._connection_pool is None:
            return
        self._connection_pool.putconn(conn)


_db_instance: Optional[DatabaseConnection] = None


def get_db() -> DatabaseConnection:
    """
    Get the shared DatabaseConnection instance.

    Raises:
        MissingEnvironmentVariableError: DB_PASSWORD missing in local mode
    """
    global _db_instance
    if _db_instance is None:
        _db_instance = DatabaseConnection()
    return _db_instance
