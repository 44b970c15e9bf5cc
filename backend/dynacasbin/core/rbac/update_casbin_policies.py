import json
import logging
from pathlib import Path
from typing import Optional

import typer

from dynacasbin.core.logging import setup_logger
from dynacasbin.core.rbac.adapter import DynamoDBAdapter
from dynacasbin.models import CasbinRule

logger = logging.getLogger(__name__)

cli = typer.Typer(help="Sync casbin 'p' policies from a JSON file into DynamoDB")


def read_policies(file_path: str) -> list[list[str]]:
    try:
        with open(file_path) as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ValueError(f"Policy file not found: {file_path}")

    rules = []
    for policy in data.get("permissions", []):
        role = policy.get("role")
        resource = policy.get("resource")
        actions = policy.get("actions")

        if not role or not resource or not isinstance(actions, list):
            raise ValueError(f"Invalid policy entry: {policy}")

        rules.extend([role, resource, action] for action in actions)
    return rules


def update_policies(adapter: DynamoDBAdapter, file_path: str) -> int:
    """
    Make the stored 'p' policies equal to the ones in the JSON file.

    New rules are added before anything is removed, and only stored rules
    missing from the file are removed afterwards. A failure at any step
    leaves the previously stored rules in place.
    """
    rules = read_policies(file_path)

    logger.info(f"Inserting {len(rules)} Casbin policies")
    adapter.add_policies("p", "p", rules)

    keep = {CasbinRule.from_rule("p", rule).id for rule in rules}
    stale = [
        record.to_rule()
        for record in adapter.crud.read_all()
        if record.ptype == "p" and record.id not in keep
    ]
    if stale:
        logger.info(f"Deleting {len(stale)} stale Casbin policies")
        adapter.remove_policies("p", "p", stale)

    logger.info("Casbin policies updated successfully.")
    return len(rules)


@cli.command()
def update(
    policy_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="JSON file with a 'permissions' list"
    ),
    table_name: Optional[str] = typer.Option(
        None, help="Target table, defaults to CASBIN_TABLE_NAME"
    ),
) -> None:
    setup_logger()
    logger.info("Starting Casbin policy update")
    count = update_policies(DynamoDBAdapter(table_name=table_name), str(policy_file))
    logger.info(f"Casbin policy update finished | {{'policies': {count}}}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
