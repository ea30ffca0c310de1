"""Exception hierarchy for the DNS alias sample workflow."""

from __future__ import annotations


class AliasSampleError(Exception):
    """Base class for every error raised by azsql_alias."""


class AuthenticationError(AliasSampleError):
    """Credentials are missing or were rejected by Azure AD."""


class ProvisioningError(AliasSampleError):
    """A control-plane create or delete call failed.

    *resource* names what was being created or deleted, e.g.
    ``"SQL server sqltest1234"``.
    """

    def __init__(self, message: str, resource: str = "") -> None:
        super().__init__(message)
        self.resource = resource


class SqlExecutionError(AliasSampleError):
    """Connecting to a provisioned database or running a statement failed."""


class CleanupError(AliasSampleError):
    """Deleting the resource group failed. Logged, never re-raised."""


class PropagationCancelled(AliasSampleError):
    """A DNS propagation wait was cancelled before it completed."""
