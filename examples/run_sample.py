#!/usr/bin/env python3
"""Example: run the DNS alias sample from Python with fixed waits.

Usage:
    # Set CLIENT_ID, CLIENT_SECRET, TENANT_ID, SUBSCRIPTION_ID in .env or
    # the environment, then:
    python examples/run_sample.py

Creates real (billable) resources for roughly fifteen minutes and deletes
them again before returning.
"""

import logging
import sys

from azsql_alias import AzureCredentials, AzureProvisioner, SampleSettings, run_sample

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

creds = AzureCredentials.from_env()
if creds.missing():
    print(f"ERROR: missing {', '.join(creds.missing())} in .env or environment.")
    sys.exit(1)

settings = SampleSettings(secondary_region="westus2", poll_dns=False)
provisioner = AzureProvisioner(creds.credential(), creds.subscription_id)

try:
    summary = run_sample(provisioner, settings)
except Exception as exc:
    print("Sample FAILED; the resource group was still cleaned up.")
    print(f"  Error type : {type(exc).__name__}")
    print(f"  Detail     : {exc}")
    sys.exit(1)

for role, values in summary["query_results"].items():
    print(f"{role:<11} via {summary['alias']}: {values}")
