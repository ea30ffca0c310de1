"""Azure SQL connection helpers.

Provides :class:`AzureSQLConnection`, a connection wrapper with
context-manager support, plus :func:`execute_sql` and :func:`query_sql`
which open a connection, run statements and close it again on every exit
path.  Connections are never shared between calls.

A ``.env`` file is loaded by :func:`load_dotenv` (used by the CLI and the
settings module) so credentials can live outside the shell environment.

Env vars:
    ODBC_DRIVER     -- ODBC driver name (default: ODBC Driver 18 for SQL Server)
"""

from __future__ import annotations

import logging
import os
from types import TracebackType
from typing import Any, List, Optional, Type

from ._constants import DEFAULT_CONNECTION_TIMEOUT, DEFAULT_ODBC_DRIVER
from .errors import SqlExecutionError

logger = logging.getLogger(__name__)


_dotenv_loaded: set = set()


def load_dotenv(path: Optional[str] = None) -> None:
    """Read a simple key=value .env file into ``os.environ`` (no dependencies).

    Variables already present in the environment win.  Subsequent calls
    with the same resolved *path* are no-ops.  Without a *path*, the
    working directory's ``.env`` is read first, then the project root's.
    """
    if path is None:
        load_dotenv(os.path.join(os.getcwd(), ".env"))
        load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))
        return
    resolved = os.path.abspath(path)
    if resolved in _dotenv_loaded:
        return
    if not os.path.isfile(resolved):
        return
    with open(resolved) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, v = line.split("=", 1)
                os.environ.setdefault(k.strip(), v.strip().strip("'\""))
    _dotenv_loaded.add(resolved)
    logger.debug("Loaded environment from %s", resolved)


def _driver() -> Any:
    """Import pyodbc on first use so the package imports without an ODBC manager."""
    try:
        import pyodbc
    except ImportError:
        raise ImportError(
            "pyodbc is required to talk to Azure SQL. "
            "Install it with: pip install pyodbc (and the Microsoft ODBC driver)"
        )
    return pyodbc


class AzureSQLConnection:
    """Managed connection to one Azure SQL database.

    *server* is either a server FQDN or a DNS alias record; both are
    reachable the same way.

    Usage as a context manager::

        with AzureSQLConnection("srv.database.windows.net", "dbSample",
                                "sqladmin1234", "secret") as conn:
            cur = conn.cursor()
            cur.execute("SELECT 1")
    """

    def __init__(
        self,
        server: str,
        database: str,
        user: str,
        password: str,
        driver: Optional[str] = None,
        *,
        timeout: int = DEFAULT_CONNECTION_TIMEOUT,
    ) -> None:
        self.server = server
        self.database = database
        self.user = user
        self.driver = driver or os.environ.get("ODBC_DRIVER", DEFAULT_ODBC_DRIVER)
        self.timeout = timeout
        self._password = password
        self._conn: Optional[Any] = None

    @property
    def connection_string(self) -> str:
        """Build the ODBC connection string (raises if no password)."""
        if not self._password:
            raise ValueError("No password supplied for the SQL admin login.")
        return (
            f"Driver={{{self.driver}}};Server={self.server};"
            f"Database={self.database};Uid={self.user};Pwd={self._password};"
            f"Encrypt=yes;TrustServerCertificate=no;Connection Timeout={self.timeout};"
        )

    def connect(self) -> Any:
        """Open and return a ``pyodbc.Connection``.

        Subsequent calls return the same connection until :meth:`close`.
        Raises :class:`SqlExecutionError` if the server cannot be reached.
        """
        if self._conn is not None:
            return self._conn
        pyodbc = _driver()
        logger.debug("Connecting to %s/%s as %s", self.server, self.database, self.user)
        try:
            self._conn = pyodbc.connect(self.connection_string)
        except pyodbc.Error as exc:
            raise SqlExecutionError(
                f"Could not connect to {self.server}/{self.database}: {exc}"
            ) from exc
        return self._conn

    def close(self) -> None:
        """Close the underlying connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> Any:
        return self.connect()

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"AzureSQLConnection(server={self.server!r}, "
            f"database={self.database!r}, user={self.user!r})"
        )


def execute_sql(az: AzureSQLConnection, *statements: str) -> None:
    """Run each non-query statement on a fresh connection, then commit.

    The connection is closed whether or not a statement fails.
    """
    pyodbc = _driver()
    with az as conn:
        try:
            cur = conn.cursor()
            for statement in statements:
                logger.debug("Executing on %s: %s", az.server, statement)
                cur.execute(statement)
            conn.commit()
        except pyodbc.Error as exc:
            raise SqlExecutionError(
                f"Statement failed on {az.server}/{az.database}: {exc}"
            ) from exc


def _column_index(description: Any, column: str) -> int:
    names = [d[0] for d in description or []]
    for i, name in enumerate(names):
        if name.lower() == column.lower():
            return i
    raise SqlExecutionError(f"Column {column!r} not in result set {names}")


def query_sql(
    az: AzureSQLConnection, statement: str, column: str, *, label: Optional[str] = None,
) -> List[Any]:
    """Run *statement* on a fresh connection and return *column* from every row.

    Each value is logged, tagged with *label* (defaults to the database
    name).  The connection is closed on every exit path.
    """
    pyodbc = _driver()
    with az as conn:
        logger.debug("Querying %s: %s", az.server, statement)
        try:
            cur = conn.cursor()
            cur.execute(statement)
            idx = _column_index(cur.description, column)
            values = [row[idx] for row in cur.fetchall()]
        except pyodbc.Error as exc:
            raise SqlExecutionError(
                f"Query failed on {az.server}/{az.database}: {exc}"
            ) from exc
    for value in values:
        logger.info('Query "%s" database with result: %s', label or az.database, value)
    return values
