"""Thin wrapper over the Azure resource and SQL management clients.

Each method performs one control-plane call and blocks until the
long-running operation has completed (``poller.result()``).  SDK errors are
translated into the package's exception hierarchy:

* ``ClientAuthenticationError`` -> :class:`AuthenticationError`
* any other ``AzureError``      -> :class:`ProvisioningError`

Deletes are idempotent: a ``ResourceNotFoundError`` is logged and ignored.
No call is retried.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from azure.core.exceptions import AzureError, ClientAuthenticationError, ResourceNotFoundError
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.sql import SqlManagementClient

from ._constants import SERVER_VERSION
from .errors import AuthenticationError, ProvisioningError

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Re-raise Azure SDK errors from the wrapped block as package errors."""
    try:
        yield
    except ClientAuthenticationError as exc:
        raise AuthenticationError(f"Azure rejected the credentials while {action}: {exc}") from exc
    except AzureError as exc:
        raise ProvisioningError(f"Failed {action}: {exc}", resource=action) from exc


class AzureProvisioner:
    """Create and delete the resources used by the DNS alias sample.

    Args:
        credential:       Any ``azure-identity`` token credential.
        subscription_id:  Target subscription.
        resource_client:  Optional pre-built ``ResourceManagementClient``.
        sql_client:       Optional pre-built ``SqlManagementClient``.

    Clients are created lazily on first use when not supplied.
    """

    def __init__(
        self,
        credential: Any,
        subscription_id: str,
        *,
        resource_client: Optional[ResourceManagementClient] = None,
        sql_client: Optional[SqlManagementClient] = None,
    ) -> None:
        self.credential = credential
        self.subscription_id = subscription_id
        self._resource_client = resource_client
        self._sql_client = sql_client

    @property
    def resource_client(self) -> ResourceManagementClient:
        """Lazy-load Resource Management Client."""
        if self._resource_client is None:
            self._resource_client = ResourceManagementClient(self.credential, self.subscription_id)
        return self._resource_client

    @property
    def sql_client(self) -> SqlManagementClient:
        """Lazy-load SQL Management Client."""
        if self._sql_client is None:
            self._sql_client = SqlManagementClient(self.credential, self.subscription_id)
        return self._sql_client

    # -- resource group -----------------------------------------------------

    def create_resource_group(self, name: str, region: str) -> Any:
        """Create *name* in *region*; an existing group of that name is an error.

        ``create_or_update`` would silently adopt an existing group, which
        cleanup would later delete with everything in it.
        """
        action = f"creating resource group {name}"
        with _translate_errors(action):
            if self.resource_client.resource_groups.check_existence(name):
                raise ProvisioningError(
                    f"Failed {action}: a resource group with that name already exists",
                    resource=action,
                )
            group = self.resource_client.resource_groups.create_or_update(
                name, {"location": region}
            )
        logger.debug("Resource group %s -> %s", name, group.id)
        return group

    def delete_resource_group(self, name: str) -> None:
        self._delete(
            f"resource group {name}",
            self.resource_client.resource_groups.begin_delete,
            name,
        )

    # -- servers ------------------------------------------------------------

    def create_sql_server(
        self,
        resource_group: str,
        name: str,
        region: str,
        admin_login: str,
        admin_password: str,
    ) -> Any:
        parameters = {
            "location": region,
            "administrator_login": admin_login,
            "administrator_login_password": admin_password,
            "version": SERVER_VERSION,
        }
        with _translate_errors(f"creating SQL server {name}"):
            poller = self.sql_client.servers.begin_create_or_update(
                resource_group, name, parameters
            )
            return poller.result()

    def delete_server(self, resource_group: str, name: str) -> None:
        self._delete(
            f"SQL server {name}",
            self.sql_client.servers.begin_delete,
            resource_group,
            name,
        )

    def create_firewall_rule(
        self,
        resource_group: str,
        server_name: str,
        rule_name: str,
        start_ip: str,
        end_ip: str,
    ) -> Any:
        parameters = {"start_ip_address": start_ip, "end_ip_address": end_ip}
        with _translate_errors(f"creating firewall rule {rule_name} on {server_name}"):
            return self.sql_client.firewall_rules.create_or_update(
                resource_group, server_name, rule_name, parameters
            )

    def create_database(
        self,
        resource_group: str,
        server_name: str,
        name: str,
        region: str,
        sku: str,
    ) -> Any:
        parameters = {"location": region, "sku": {"name": sku}}
        with _translate_errors(f"creating database {name} on {server_name}"):
            poller = self.sql_client.databases.begin_create_or_update(
                resource_group, server_name, name, parameters
            )
            return poller.result()

    # -- DNS aliases --------------------------------------------------------

    def create_dns_alias(self, resource_group: str, server_name: str, alias_name: str) -> Any:
        with _translate_errors(f"creating DNS alias {alias_name} on {server_name}"):
            poller = self.sql_client.server_dns_aliases.begin_create_or_update(
                resource_group, server_name, alias_name
            )
            return poller.result()

    def delete_dns_alias(self, resource_group: str, server_name: str, alias_name: str) -> None:
        self._delete(
            f"DNS alias {alias_name} on {server_name}",
            self.sql_client.server_dns_aliases.begin_delete,
            resource_group,
            server_name,
            alias_name,
        )

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _delete(what: str, begin_delete: Any, *args: str) -> None:
        with _translate_errors(f"deleting {what}"):
            try:
                begin_delete(*args).result()
            except ResourceNotFoundError:
                logger.info("%s already gone", what)

    def __repr__(self) -> str:
        return f"AzureProvisioner(subscription_id={self.subscription_id!r})"
