"""Credentials and run settings.

Credentials come from the environment (``CLIENT_ID``, ``CLIENT_SECRET``,
``TENANT_ID``, ``SUBSCRIPTION_ID``), optionally seeded from a ``.env``
file.  Everything else has built-in defaults that can be overridden with a
YAML or JSON file::

    primary_region: eastus
    secondary_region: southcentralus
    database_name: dbSample
    admin_login: ${SQL_ADMIN_LOGIN}
    poll_dns: false
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from azure.identity import ClientSecretCredential

from ._constants import (
    ALIAS_CREATE_WAIT_SECONDS,
    ALIAS_REPOINT_WAIT_SECONDS,
    DEFAULT_ADMIN_LOGIN,
    DEFAULT_DATABASE_NAME,
    DEFAULT_DATABASE_SKU,
    DEFAULT_ODBC_DRIVER,
    DEFAULT_PRIMARY_REGION,
    DEFAULT_SECONDARY_REGION,
)
from .connection import load_dotenv
from .errors import AuthenticationError

logger = logging.getLogger(__name__)

_ENV_VARS = {
    "client_id": "CLIENT_ID",
    "client_secret": "CLIENT_SECRET",
    "tenant_id": "TENANT_ID",
    "subscription_id": "SUBSCRIPTION_ID",
}

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def expand_env(value: str) -> str:
    """Expand ``${VAR}`` references in *value* with environment variables."""

    def _repl(m):
        name = m.group(1)
        if name not in os.environ:
            raise KeyError(
                f"Environment variable {name!r} is not set "
                f"(referenced in config as ${{{name}}})"
            )
        return os.environ[name]

    return re.sub(r"\$\{(\w+)}", _repl, str(value))


def _load_config_file(path: Union[str, Path]) -> dict:
    """Load a YAML or JSON config file, chosen by extension."""
    p = Path(path)
    text = p.read_text()
    if p.suffix in (".yaml", ".yml"):
        try:
            import yaml
        except ImportError:
            raise ImportError(
                "PyYAML is required for YAML config files. "
                "Install it with: pip install azsql_alias[yaml]"
            )
        return yaml.safe_load(text) or {}
    return json.loads(text)


class AzureCredentials:
    """Service-principal credentials for the management clients."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        tenant_id: Optional[str],
        subscription_id: Optional[str],
    ) -> None:
        self.client_id = client_id
        self._client_secret = client_secret
        self.tenant_id = tenant_id
        self.subscription_id = subscription_id

    @classmethod
    def from_env(cls, *, dotenv_path: Optional[str] = None) -> "AzureCredentials":
        """Read credentials from the environment after loading ``.env``."""
        load_dotenv(dotenv_path)
        return cls(**{attr: os.environ.get(var) for attr, var in _ENV_VARS.items()})

    def missing(self) -> List[str]:
        """Return the environment variable names that have no value."""
        values = {
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "tenant_id": self.tenant_id,
            "subscription_id": self.subscription_id,
        }
        return [_ENV_VARS[k] for k, v in values.items() if not v]

    def validate(self) -> None:
        """Raise :class:`AuthenticationError` if any credential is missing."""
        missing = self.missing()
        if missing:
            raise AuthenticationError(
                f"Missing Azure credentials: {', '.join(missing)}. "
                "Set them in the environment or a .env file."
            )

    def credential(self) -> ClientSecretCredential:
        """Return a ``ClientSecretCredential`` for these values."""
        self.validate()
        return ClientSecretCredential(
            tenant_id=self.tenant_id,
            client_id=self.client_id,
            client_secret=self._client_secret,
        )

    def __repr__(self) -> str:
        return (
            f"AzureCredentials(client_id={self.client_id!r}, "
            f"tenant_id={self.tenant_id!r}, subscription_id={self.subscription_id!r})"
        )


class SampleSettings:
    """Tunable parameters of the sample run.

    Args:
        primary_region:       Region of the resource group and "test" server.
        secondary_region:     Region of the "production" server.
        database_name:        Database created on both servers.
        database_sku:         SKU name for both databases.
        admin_login:          SQL admin login for both servers.
        odbc_driver:          ODBC driver used for data connections.
        alias_create_wait:    Upper bound (seconds) on waiting for a new alias.
        alias_repoint_wait:   Upper bound (seconds) after re-pointing the alias.
        poll_dns:             Poll DNS for the alias and stop waiting early;
                              ``False`` always waits the full bound.
    """

    _FIELDS = (
        "primary_region",
        "secondary_region",
        "database_name",
        "database_sku",
        "admin_login",
        "odbc_driver",
        "alias_create_wait",
        "alias_repoint_wait",
        "poll_dns",
    )

    def __init__(
        self,
        *,
        primary_region: str = DEFAULT_PRIMARY_REGION,
        secondary_region: str = DEFAULT_SECONDARY_REGION,
        database_name: str = DEFAULT_DATABASE_NAME,
        database_sku: str = DEFAULT_DATABASE_SKU,
        admin_login: str = DEFAULT_ADMIN_LOGIN,
        odbc_driver: str = DEFAULT_ODBC_DRIVER,
        alias_create_wait: float = ALIAS_CREATE_WAIT_SECONDS,
        alias_repoint_wait: float = ALIAS_REPOINT_WAIT_SECONDS,
        poll_dns: bool = True,
    ) -> None:
        alias_create_wait = float(alias_create_wait)
        alias_repoint_wait = float(alias_repoint_wait)
        for name, wait in (
            ("alias_create_wait", alias_create_wait),
            ("alias_repoint_wait", alias_repoint_wait),
        ):
            if wait <= 0:
                raise ValueError(f"{name} must be positive, got {wait}")
        if isinstance(poll_dns, str):
            poll_dns = poll_dns.strip().lower() in _TRUTHY
        self.primary_region = primary_region
        self.secondary_region = secondary_region
        self.database_name = database_name
        self.database_sku = database_sku
        self.admin_login = admin_login
        self.odbc_driver = odbc_driver
        self.alias_create_wait = alias_create_wait
        self.alias_repoint_wait = alias_repoint_wait
        self.poll_dns = bool(poll_dns)

    @classmethod
    def from_config(cls, config: Union[str, Path, Dict[str, Any]]) -> "SampleSettings":
        """Build settings from a YAML/JSON file path or an already-parsed dict.

        String values may reference environment variables as ``${VAR}``.
        Unknown keys raise ``ValueError``.
        """
        if isinstance(config, (str, Path)):
            config = _load_config_file(config)
        if not isinstance(config, dict):
            raise ValueError(f"config must be a mapping, got {type(config).__name__}")

        unknown = sorted(set(config) - set(cls._FIELDS))
        if unknown:
            raise ValueError(
                f"Unknown setting(s) {unknown}; expected some of {list(cls._FIELDS)}"
            )
        kwargs = {
            k: expand_env(v) if isinstance(v, str) else v for k, v in config.items()
        }
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self._FIELDS}

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"SampleSettings({fields})"
