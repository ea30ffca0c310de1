"""CLI entry-point:  python -m azsql_alias [OPTIONS]

Examples:
    python -m azsql_alias
    python -m azsql_alias --config sample.yaml --fixed-wait -v

Credentials are read from CLIENT_ID, CLIENT_SECRET, TENANT_ID and
SUBSCRIPTION_ID (or a .env file).  A failed run is logged and, unless
--fail-on-error is given, the process still exits with status 0.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .provisioner import AzureProvisioner
from .settings import AzureCredentials, SampleSettings
from .workflow import run_sample

logger = logging.getLogger(__name__)


def _log_summary(summary: dict) -> None:
    """Print a human-readable summary of a finished run."""
    logger.info("=" * 72)
    logger.info("DNS ALIAS SAMPLE SUMMARY")
    logger.info("=" * 72)
    logger.info("  %-16s %s", "resource group", summary["resource_group"])
    for role, name in summary["servers"].items():
        logger.info("  %-16s %s", f"{role} server", name)
    logger.info("  %-16s %s (last on %s)", "alias", summary["alias"], summary["alias_server"])
    for role, values in summary["query_results"].items():
        logger.info("  %-16s %s", f"{role} query", ", ".join(map(str, values)) or "<no rows>")
    logger.info("=" * 72)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="azsql_alias",
        description=(
            "Provision two Azure SQL servers, move a DNS alias between them, "
            "query through it, then delete everything."
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML or JSON settings file",
    )
    parser.add_argument(
        "--fixed-wait",
        action="store_true",
        help="Sleep the full propagation time instead of polling DNS",
    )
    parser.add_argument(
        "--fail-on-error",
        action="store_true",
        help="Exit with status 1 when the run fails",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug-level logging",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = (
            SampleSettings.from_config(args.config) if args.config else SampleSettings()
        )
        if args.fixed_wait:
            settings.poll_dns = False
        creds = AzureCredentials.from_env()
        provisioner = AzureProvisioner(creds.credential(), creds.subscription_id)
        logger.info("Provisioner: %s", provisioner)
        summary = run_sample(provisioner, settings)
    except Exception:
        logger.exception("DNS alias sample failed")
        if args.fail_on_error:
            sys.exit(1)
        return

    _log_summary(summary)


if __name__ == "__main__":
    main()
