"""azsql_alias -- Azure SQL DNS alias sample: provision, re-point, query, tear down."""

from .connection import AzureSQLConnection, execute_sql, query_sql
from .errors import (
    AliasSampleError,
    AuthenticationError,
    CleanupError,
    PropagationCancelled,
    ProvisioningError,
    SqlExecutionError,
)
from .provisioner import AzureProvisioner
from .settings import AzureCredentials, SampleSettings
from .workflow import WorkflowContext, run_sample

__all__ = [
    "AzureSQLConnection",
    "execute_sql",
    "query_sql",
    "AzureProvisioner",
    "AzureCredentials",
    "SampleSettings",
    "WorkflowContext",
    "run_sample",
    "AliasSampleError",
    "AuthenticationError",
    "ProvisioningError",
    "SqlExecutionError",
    "CleanupError",
    "PropagationCancelled",
]
