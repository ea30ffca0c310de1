"""The DNS alias sample run, step by step.

    1. create a resource group
    2. create the "test" server, firewall rule and database, seed a table
    3. create the "production" server, firewall rule and database, seed a table
    4. create a DNS alias on "test", wait, query through the alias
    5. delete the alias, recreate it on "production", wait, query again
    6. delete both servers
    7. always: delete the resource group if it was created

Steps run strictly in order; the first failure aborts the rest but the
resource group is still deleted.  All run state lives on a
:class:`WorkflowContext` that is handed to the cleanup step.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from . import queries
from ._constants import (
    DNS_ALIAS_PREFIX,
    FIREWALL_END_IP,
    FIREWALL_RULE_PREFIX,
    FIREWALL_START_IP,
    RESOURCE_GROUP_PREFIX,
    SAMPLE_COLUMN,
    SAMPLE_SERVERS,
)
from .connection import AzureSQLConnection, execute_sql, query_sql
from .errors import CleanupError
from .naming import create_password, create_random_name
from .propagation import alias_resolves_to, wait_for_alias
from .settings import SampleSettings

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[..., AzureSQLConnection]


class WorkflowContext:
    """Mutable state of one run, passed explicitly between steps.

    ``resource_group`` stays ``None`` until the group exists; cleanup only
    deletes a group that was actually created.
    """

    def __init__(self, settings: SampleSettings, admin_password: str) -> None:
        self.settings = settings
        self.admin_password = admin_password
        self.resource_group: Optional[str] = None
        self.resource_group_id: Optional[str] = None
        self.servers: Dict[str, Dict[str, Any]] = {}
        self.alias_name: Optional[str] = None
        self.alias_server: Optional[str] = None
        self.query_results: Dict[str, List[Any]] = {}

    def summary(self) -> dict:
        return {
            "resource_group": self.resource_group,
            "servers": {role: s["name"] for role, s in self.servers.items()},
            "alias": self.alias_name,
            "alias_server": self.alias_server,
            "query_results": dict(self.query_results),
        }

    def __repr__(self) -> str:
        return (
            f"WorkflowContext(resource_group={self.resource_group!r}, "
            f"servers={sorted(self.servers)}, alias={self.alias_name!r})"
        )


def run_sample(
    provisioner: Any,
    settings: Optional[SampleSettings] = None,
    *,
    connection_factory: ConnectionFactory = AzureSQLConnection,
    alias_check: Optional[Callable[[str, str], bool]] = alias_resolves_to,
    cancel: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
    admin_password: Optional[str] = None,
) -> dict:
    """Run the whole sample against *provisioner* and return a summary dict.

    Args:
        provisioner:         An :class:`~azsql_alias.provisioner.AzureProvisioner`
                             (or anything with the same methods).
        settings:            Regions, names and waits; defaults to
                             ``SampleSettings()``.
        connection_factory:  Builds a connection from
                             ``(server, database, user, password, driver)``.
        alias_check:         ``(alias_record, server_fqdn) -> bool`` used to
                             poll for propagation.  Ignored when
                             ``settings.poll_dns`` is false.
        cancel:              Event that aborts a propagation wait.  When
                             given, waits block on ``cancel.wait`` and
                             *sleep* is not called.
        sleep:               Sleep function for propagation waits; only
                             used when *cancel* is ``None``.
        admin_password:      SQL admin password; generated when omitted.

    Any step failure propagates after the resource group has been deleted.
    """
    settings = settings or SampleSettings()
    ctx = WorkflowContext(settings, admin_password or create_password())
    try:
        _run_steps(provisioner, ctx, connection_factory, alias_check, cancel, sleep)
    finally:
        _cleanup(provisioner, ctx)
    return ctx.summary()


def _run_steps(
    provisioner: Any,
    ctx: WorkflowContext,
    connection_factory: ConnectionFactory,
    alias_check: Optional[Callable[[str, str], bool]],
    cancel: Optional[threading.Event],
    sleep: Callable[[float], None],
) -> None:
    settings = ctx.settings

    rg_name = create_random_name(RESOURCE_GROUP_PREFIX)
    logger.info("Creating resource group...")
    group = provisioner.create_resource_group(rg_name, settings.primary_region)
    ctx.resource_group = group.name
    ctx.resource_group_id = group.id
    logger.info("Created a resource group with name: %s", group.name)

    for role, region in (
        ("test", settings.primary_region),
        ("production", settings.secondary_region),
    ):
        _provision_server(provisioner, ctx, role, region)
        _seed_database(ctx, role, connection_factory)

    test = ctx.servers["test"]
    prod = ctx.servers["production"]

    logger.info('Creating a SQL Server DNS alias and use it to query the "test" database...')
    ctx.alias_name = create_random_name(DNS_ALIAS_PREFIX, lowercase=True)
    alias = provisioner.create_dns_alias(ctx.resource_group, test["name"], ctx.alias_name)
    ctx.alias_server = test["name"]
    logger.info("Created a SQL Server DNS alias with name: %s", alias.name)
    _await_alias(ctx, alias, test, settings.alias_create_wait, alias_check, cancel, sleep)
    _query_via_alias(ctx, alias, "test", connection_factory)

    logger.info(
        'Using the "production" SQL Server to acquire the SQL Server DNS alias '
        'and use it to query the "production" database...'
    )
    provisioner.delete_dns_alias(ctx.resource_group, test["name"], ctx.alias_name)
    ctx.alias_server = None
    alias = provisioner.create_dns_alias(ctx.resource_group, prod["name"], ctx.alias_name)
    ctx.alias_server = prod["name"]
    _await_alias(ctx, alias, prod, settings.alias_repoint_wait, alias_check, cancel, sleep)
    logger.info("Re-establish the connection")
    _query_via_alias(ctx, alias, "production", connection_factory)

    logger.info("Deleting the Sql Servers")
    for role in ("test", "production"):
        provisioner.delete_server(ctx.resource_group, ctx.servers[role]["name"])


def _provision_server(provisioner: Any, ctx: WorkflowContext, role: str, region: str) -> None:
    """Create the server, its firewall rule and its database for *role*."""
    settings = ctx.settings
    prefix, _table, _value = SAMPLE_SERVERS[role]

    logger.info("Creating a SQL server for %s related activities...", role)
    server = provisioner.create_sql_server(
        ctx.resource_group,
        create_random_name(prefix, lowercase=True),
        region,
        settings.admin_login,
        ctx.admin_password,
    )
    logger.info("Created a SQL Server with name: %s", server.name)

    logger.info("Creating a range ipaddress firewall rule...")
    rule = provisioner.create_firewall_rule(
        ctx.resource_group,
        server.name,
        create_random_name(FIREWALL_RULE_PREFIX),
        FIREWALL_START_IP,
        FIREWALL_END_IP,
    )
    logger.info("Created a range ipaddress firewall rule with name: %s", rule.name)

    logger.info("Creating a database on SQL Server...")
    db = provisioner.create_database(
        ctx.resource_group, server.name, settings.database_name, region, settings.database_sku,
    )
    logger.info("Created a database with name: %s", db.name)

    ctx.servers[role] = {
        "name": server.name,
        "fqdn": server.fully_qualified_domain_name,
        "database": db.name,
        "region": region,
    }


def _connection(
    ctx: WorkflowContext, factory: ConnectionFactory, server: str, database: str,
) -> AzureSQLConnection:
    return factory(
        server, database, ctx.settings.admin_login, ctx.admin_password,
        ctx.settings.odbc_driver,
    )


def _seed_database(ctx: WorkflowContext, role: str, factory: ConnectionFactory) -> None:
    """Create the sample table on *role*'s database and insert its one row."""
    _prefix, table, value = SAMPLE_SERVERS[role]
    server = ctx.servers[role]
    logger.info('Creating a connection to the "%s" SQL Server', role)
    logger.info(
        'Creating a new table into the "%s" SQL Server database and insert one value', role,
    )
    execute_sql(
        _connection(ctx, factory, server["fqdn"], server["database"]),
        queries.build_create_table(table),
        queries.build_insert(table, value),
    )


def _await_alias(
    ctx: WorkflowContext,
    alias: Any,
    target: Dict[str, Any],
    max_wait: float,
    alias_check: Optional[Callable[[str, str], bool]],
    cancel: Optional[threading.Event],
    sleep: Callable[[float], None],
) -> None:
    check = None
    if ctx.settings.poll_dns and alias_check is not None:
        check = functools.partial(alias_check, alias.azure_dns_record, target["fqdn"])
    logger.info(
        "Waiting up to %.0f seconds for %s to reach %s...",
        max_wait, alias.azure_dns_record, target["name"],
    )
    wait_for_alias(check, max_wait, cancel=cancel, sleep=sleep)


def _query_via_alias(
    ctx: WorkflowContext, alias: Any, role: str, factory: ConnectionFactory,
) -> None:
    _prefix, table, _value = SAMPLE_SERVERS[role]
    logger.info('Querying the "%s" database through %s', role, alias.azure_dns_record)
    values = query_sql(
        _connection(ctx, factory, alias.azure_dns_record, ctx.settings.database_name),
        queries.build_select_all(table),
        SAMPLE_COLUMN,
        label=role,
    )
    ctx.query_results[role] = values


def _delete_group(provisioner: Any, name: str) -> None:
    try:
        provisioner.delete_resource_group(name)
    except Exception as exc:
        raise CleanupError(f"Could not delete resource group {name}: {exc}") from exc


def _cleanup(provisioner: Any, ctx: WorkflowContext) -> None:
    """Delete the resource group if one was created; never raises."""
    if ctx.resource_group is None:
        return
    logger.info("Deleting Resource Group...")
    try:
        _delete_group(provisioner, ctx.resource_group)
    except CleanupError as exc:
        logger.error("%s", exc, exc_info=True)
        return
    logger.info("Deleted Resource Group: %s", ctx.resource_group)
