"""Shared constants for the azsql_alias package."""

DEFAULT_PRIMARY_REGION = "eastus"
DEFAULT_SECONDARY_REGION = "southcentralus"

DEFAULT_DATABASE_NAME = "dbSample"
DEFAULT_DATABASE_SKU = "Basic"
DEFAULT_ADMIN_LOGIN = "sqladmin1234"
DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"
DEFAULT_CONNECTION_TIMEOUT = 30

SERVER_VERSION = "12.0"

# Sample setting: opens the servers to every address.
FIREWALL_START_IP = "0.0.0.1"
FIREWALL_END_IP = "255.255.255.255"

# Upper bounds for DNS propagation; re-pointing across regions is slower.
ALIAS_CREATE_WAIT_SECONDS = 3 * 60
ALIAS_REPOINT_WAIT_SECONDS = 10 * 60

POLL_INITIAL_DELAY = 5.0
POLL_BACKOFF_FACTOR = 2.0
POLL_MAX_DELAY = 60.0

RESOURCE_GROUP_PREFIX = "rgSQLServer"
FIREWALL_RULE_PREFIX = "allowAll"
DNS_ALIAS_PREFIX = "sqlserverdns"

SAMPLE_COLUMN = "Name"

# role -> (server name prefix, table, inserted value)
SAMPLE_SERVERS = {
    "test": ("sqltest", "Dns_Alias_Sample_Test", "Test"),
    "production": ("sqlprod", "Dns_Alias_Sample_Prod", "Production"),
}
