"""
Run one Airtable command from a payload file.

    python airtable_cmd.py get payload.yml
    python airtable_cmd.py create payload.yml
    python airtable_cmd.py update payload.yml

Payload (YAML or JSON):

    base: appXXXXXXXXXXXXXX
    table: Permits
    filter: "{Status} = 'Open'"     # get only
    records:                          # create: field maps, update: {id, fields}
      - permit_number: 2025-00123

The API key is read from AIRTABLE_API_KEY.
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

import yaml

from airtable_client import AirtableClient
from airtable_errors import AirtableError, ConfigurationError

COMMANDS = ("get", "create", "update")


def load_payload(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            payload = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read payload {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid payload {path}: {e}") from e

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Payload {path} must be a mapping")
    for key in ("base", "table"):
        if not payload.get(key):
            raise ConfigurationError(f"Payload {path} is missing '{key}'")
    return payload


def run(command: str, payload_path: str, client: Optional[AirtableClient] = None) -> int:
    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        return 2

    payload = load_payload(payload_path)
    base, table = payload["base"], payload["table"]
    records = payload.get("records") or []

    client = client or AirtableClient.from_env()
    with client:
        if command == "get":
            rows = client.get_records(base, table, payload.get("filter") or "")
            print(json.dumps([r.model_dump(by_alias=True) for r in rows], indent=2))
            return 0

        if command == "create":
            resp = client.create_records(base, table, records)
            if resp is None:
                print(f"No records to create in {table}")
                return 0
            print(f"Created {len(records)} records in {table}: HTTP {resp.status_code}")
            return 0 if resp.is_success else 1

        responses = client.update_records(base, table, records)
        failed = [r.status_code for r in responses if not r.is_success]
        print(f"Updated {len(records)} records in {len(responses)} batches in {table}")
        if failed:
            print(f"Failed batches: {failed}")
            return 1
        return 0


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 2:
        print("Usage: python airtable_cmd.py {get|create|update} payload.yml")
        return 1

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        return run(argv[0], argv[1])
    except AirtableError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
