"""
MongoDB Connection Manager

This module provides a high-level interface for managing the MongoDB connection,
with support for both synchronous and asynchronous operations.
"""

import asyncio
import functools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Callable, Any

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError, ConfigurationError as PyMongoConfigurationError
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)

from config import MongoSettings, load_settings, DEFAULT_DATABASE_NAME
from connection_management.connection_exceptions import (
    ConnectionNotEstablishedError,
    ServerUnavailableError
)

# Logger setup
logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    High-level manager for the MongoDB connection.

    The manager owns the ``MongoClient`` and hands the resolved ``Database``
    handle to callers explicitly; nothing in the backup subsystem reaches for
    a module-level connection. Blocking driver calls can be pushed onto a
    dedicated thread pool through ``execute_operation_async`` so async callers
    never block the event loop.

    Example:
        ```python
        manager = ConnectionManager(load_settings())
        manager.connect()

        names = manager.execute_operation(lambda db: db.list_collection_names())

        manager.close()
        ```
    """

    def __init__(
        self,
        config: Optional[MongoSettings] = None,
        client_factory: Optional[Callable[..., MongoClient]] = None,
        max_workers: int = 2
    ):
        """
        Initialize the connection manager.

        Args:
            config: MongoSettings object. If None, settings are loaded from
                   the environment.
            client_factory: Callable building the client from a URI and keyword
                           options. Defaults to ``pymongo.MongoClient``.
            max_workers: Size of the thread pool used for async execution.
        """
        self.config = config if config is not None else load_settings()
        self._client_factory = client_factory or MongoClient
        self._client: Optional[MongoClient] = None
        self._database_name: Optional[str] = None
        self._lock = threading.Lock()
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        logger.info("ConnectionManager initialized")

    @property
    def is_connected(self) -> bool:
        """Whether a client has been created and answered a ping."""
        return self._client is not None

    @property
    def database_name(self) -> Optional[str]:
        """Name of the database resolved at connect time."""
        return self._database_name

    def connect(self) -> Database:
        """
        Create the client and verify the server answers a ping.

        The ping is retried with exponential backoff according to
        ``connection.retry_count`` and ``connection.retry_interval``.

        Returns:
            The resolved ``Database`` handle

        Raises:
            ServerUnavailableError: If the server never answered the ping
        """
        with self._lock:
            if self._client is not None:
                return self._client[self._database_name]

            conn = self.config.connection
            client = self._client_factory(
                conn.uri,
                serverSelectionTimeoutMS=conn.server_selection_timeout_ms,
                appname=conn.app_name
            )

            try:
                for attempt in Retrying(
                    stop=stop_after_attempt(conn.retry_count + 1),
                    wait=wait_exponential(multiplier=conn.retry_interval, max=30),
                    retry=retry_if_exception_type(PyMongoError),
                    before_sleep=before_sleep_log(logger, logging.WARNING),
                    reraise=True
                ):
                    with attempt:
                        client.admin.command("ping")
            except PyMongoError as e:
                client.close()
                logger.error(f"MongoDB did not answer ping after {conn.retry_count} retries: {e}")
                raise ServerUnavailableError(f"MongoDB server unavailable: {e}") from e

            self._client = client
            self._database_name = self._resolve_database_name(client)
            logger.info(f"Connected to MongoDB database '{self._database_name}'")
            return client[self._database_name]

    def _resolve_database_name(self, client: MongoClient) -> str:
        """Pick the configured database, else the URI's default, else the fallback name."""
        if self.config.connection.database:
            return self.config.connection.database
        try:
            return client.get_default_database().name
        except PyMongoConfigurationError:
            logger.warning(
                f"Connection URI names no database, using '{DEFAULT_DATABASE_NAME}'"
            )
            return DEFAULT_DATABASE_NAME

    def get_database(self) -> Database:
        """
        Return the live database handle.

        Raises:
            ConnectionNotEstablishedError: If ``connect`` has not succeeded
        """
        if self._client is None:
            raise ConnectionNotEstablishedError("MongoDB is not connected")
        return self._client[self._database_name]

    def execute_operation(self, operation: Callable, *args, **kwargs) -> Any:
        """
        Execute an operation against the live database.

        Args:
            operation: Function taking the ``Database`` handle as its first argument
            *args: Additional positional arguments for the operation
            **kwargs: Additional keyword arguments for the operation

        Returns:
            The operation's return value

        Raises:
            ConnectionNotEstablishedError: If there is no live connection
        """
        database = self.get_database()
        return operation(database, *args, **kwargs)

    async def execute_operation_async(self, operation: Callable, *args, **kwargs) -> Any:
        """
        Execute an operation in the manager's thread pool.

        The connection check happens before anything is scheduled, so a
        missing connection fails fast on the caller's side.

        Args:
            operation: Function taking the ``Database`` handle as its first argument
            *args: Additional positional arguments for the operation
            **kwargs: Additional keyword arguments for the operation

        Returns:
            The operation's return value
        """
        database = self.get_database()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._get_executor(),
            functools.partial(operation, database, *args, **kwargs)
        )

    def _get_executor(self) -> ThreadPoolExecutor:
        """Return the thread pool, creating it after construction or a ``close``."""
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix=f"MongoConnMgr-{id(self)}"
                )
            return self._executor

    def close(self) -> None:
        """
        Close the client and shut down the thread pool.

        This method is idempotent. A later ``connect`` makes the manager
        usable again with a fresh pool.
        """
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
                logger.info("MongoDB connection closed")
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> "ConnectionManager":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
