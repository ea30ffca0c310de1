"""Shared fixtures for azsql_alias tests."""

from __future__ import annotations

import re
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock, patch

import pytest

from azsql_alias.errors import ProvisioningError


class FakeDriverError(Exception):
    """Stands in for ``pyodbc.Error``."""


class FakeCursor:
    """Lightweight stand-in for a DB-API 2.0 cursor.

    Supply ``results`` as a list of lists -- each inner list is a set of rows
    returned by one successive ``execute()`` call.
    """

    def __init__(
        self,
        results: Optional[List[List[Tuple[Any, ...]]]] = None,
        descriptions: Optional[List[List[Tuple[str, ...]]]] = None,
    ) -> None:
        self._results = list(results or [])
        self._descriptions = list(descriptions or [])
        self._call_idx = -1
        self._rows: List[Tuple[Any, ...]] = []
        self.description: Optional[List[Tuple[str, ...]]] = None
        self.executed: List[str] = []

    def execute(self, sql: str, params: Any = None) -> None:
        self.executed.append(sql)
        self._call_idx += 1
        if self._call_idx < len(self._results):
            self._rows = list(self._results[self._call_idx])
        else:
            self._rows = []
        if self._call_idx < len(self._descriptions):
            self.description = self._descriptions[self._call_idx]
        else:
            self.description = None

    def fetchall(self) -> List[Tuple[Any, ...]]:
        return self._rows


@pytest.fixture()
def fake_cursor():
    """Return the ``FakeCursor`` *class* so tests can instantiate with custom data."""
    return FakeCursor


@pytest.fixture()
def fake_pyodbc():
    """Patch the lazily imported driver with a fake module.

    ``connect`` is a ``MagicMock``; ``Error`` is a real exception class so
    ``except pyodbc.Error`` clauses work.
    """
    module = SimpleNamespace(connect=MagicMock(), Error=FakeDriverError)
    with patch("azsql_alias.connection._driver", return_value=module):
        yield module


# -- in-memory Azure ----------------------------------------------------------

_CREATE_RE = re.compile(r"^CREATE TABLE \[(\w+)\]")
_INSERT_RE = re.compile(r"^INSERT INTO \[(\w+)\] VALUES \('((?:[^']|'')*)'\)$")
_SELECT_RE = re.compile(r"^SELECT \* FROM \[(\w+)\];$")


class _FakeSqlCursor:
    def __init__(self, tables: Dict[str, List[str]], log: List[tuple]) -> None:
        self._tables = tables
        self._log = log
        self._rows: List[Tuple[Any, ...]] = []
        self.description: Optional[List[Tuple[str, ...]]] = None

    def execute(self, sql: str) -> None:
        m = _CREATE_RE.match(sql)
        if m:
            if m.group(1) in self._tables:
                raise FakeDriverError(f"There is already an object named '{m.group(1)}'")
            self._tables[m.group(1)] = []
            return
        m = _INSERT_RE.match(sql)
        if m:
            self._table(m.group(1)).append(m.group(2).replace("''", "'"))
            return
        m = _SELECT_RE.match(sql)
        if m:
            self._log.append(("select", m.group(1)))
            self._rows = [(v,) for v in self._table(m.group(1))]
            self.description = [("Name",)]
            return
        raise FakeDriverError(f"Unsupported statement: {sql}")

    def _table(self, name: str) -> List[str]:
        if name not in self._tables:
            raise FakeDriverError(f"Invalid object name '{name}'")
        return self._tables[name]

    def fetchall(self) -> List[Tuple[Any, ...]]:
        return self._rows


class FakeSqlConnection:
    """Connection wrapper returned by :meth:`FakeAzure.connect`.

    Mimics :class:`~azsql_alias.connection.AzureSQLConnection`: the server
    name is resolved through the fake DNS at ``__enter__`` time.
    """

    def __init__(self, azure: "FakeAzure", server: str, database: str) -> None:
        self.server = server
        self.database = database
        self._azure = azure
        self.closed = False
        self.committed = False

    def __enter__(self) -> "FakeSqlConnection":
        fqdn = self._azure.resolve(self.server)
        self._tables = self._azure.tables[fqdn]
        self._azure.events.append(("open", self.server, fqdn))
        return self

    def __exit__(self, *exc: Any) -> None:
        self.closed = True
        self._azure.events.append(("close", self.server))

    def cursor(self) -> _FakeSqlCursor:
        return _FakeSqlCursor(self._tables, self._azure.events)

    def commit(self) -> None:
        self.committed = True


class FakeAzure:
    """Recording fake for both the provisioner and the SQL servers.

    *fail_on* names a provisioner method that raises ``ProvisioningError``.
    """

    def __init__(self, fail_on: Optional[str] = None, fail_cleanup: bool = False) -> None:
        self.fail_on = fail_on
        self.fail_cleanup = fail_cleanup
        self.calls: List[tuple] = []
        self.events: List[tuple] = []
        self.servers: Dict[str, str] = {}
        self.tables: Dict[str, Dict[str, List[str]]] = {}
        self.dns: Dict[str, str] = {}
        self.connections: List[FakeSqlConnection] = []

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method,) + args)
        self.events.append((method,) + args)
        if method == self.fail_on:
            raise ProvisioningError(f"boom in {method}", resource=method)

    def calls_to(self, method: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == method]

    # -- provisioner interface ----------------------------------------------

    def create_resource_group(self, name, region):
        self._record("create_resource_group", name, region)
        return SimpleNamespace(name=name, id=f"/subscriptions/sub/resourceGroups/{name}")

    def create_sql_server(self, resource_group, name, region, admin_login, admin_password):
        self._record("create_sql_server", resource_group, name, region, admin_login)
        fqdn = f"{name}.database.windows.net"
        self.servers[name] = fqdn
        self.tables[fqdn] = {}
        return SimpleNamespace(name=name, fully_qualified_domain_name=fqdn)

    def create_firewall_rule(self, resource_group, server_name, rule_name, start_ip, end_ip):
        self._record("create_firewall_rule", resource_group, server_name, rule_name, start_ip, end_ip)
        return SimpleNamespace(name=rule_name, start_ip_address=start_ip, end_ip_address=end_ip)

    def create_database(self, resource_group, server_name, name, region, sku):
        self._record("create_database", resource_group, server_name, name, region, sku)
        return SimpleNamespace(name=name)

    def create_dns_alias(self, resource_group, server_name, alias_name):
        self._record("create_dns_alias", resource_group, server_name, alias_name)
        record = f"{alias_name}.database.windows.net"
        if record in self.dns:
            raise ProvisioningError(f"alias {alias_name} already in use")
        self.dns[record] = self.servers[server_name]
        return SimpleNamespace(name=alias_name, azure_dns_record=record)

    def delete_dns_alias(self, resource_group, server_name, alias_name):
        self._record("delete_dns_alias", resource_group, server_name, alias_name)
        self.dns.pop(f"{alias_name}.database.windows.net", None)

    def delete_server(self, resource_group, name):
        self._record("delete_server", resource_group, name)

    def delete_resource_group(self, name):
        self._record("delete_resource_group", name)
        if self.fail_cleanup:
            raise ProvisioningError("resource group is locked")

    # -- data plane -----------------------------------------------------------

    def resolve(self, host: str) -> str:
        if host in self.dns:
            return self.dns[host]
        if host in self.tables:
            return host
        raise FakeDriverError(f"Cannot resolve {host}")

    def connect(self, server, database, user, password, driver=None) -> FakeSqlConnection:
        conn = FakeSqlConnection(self, server, database)
        self.connections.append(conn)
        return conn

    def alias_check(self, alias_record: str, server_fqdn: str) -> bool:
        self.events.append(("check", alias_record, server_fqdn))
        return self.dns.get(alias_record) == server_fqdn


@pytest.fixture()
def fake_azure():
    """Return the ``FakeAzure`` *class* so tests can choose a failure point."""
    return FakeAzure
