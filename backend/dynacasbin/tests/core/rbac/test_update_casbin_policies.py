import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from dynacasbin.core.exceptions import TransientStoreError
from dynacasbin.core.rbac.update_casbin_policies import (
    cli,
    read_policies,
    update_policies,
)

runner = CliRunner()

PERMISSIONS = {
    "permissions": [
        {"role": "org_admin", "resource": "org_data", "actions": ["read", "write"]},
        {"role": "org_reader", "resource": "org_data", "actions": ["read"]},
    ]
}


@pytest.fixture
def policy_file(tmp_path):
    path = tmp_path / "policies.json"
    path.write_text(json.dumps(PERMISSIONS))
    return path


def test_update_policies_success(adapter, store, policy_file):
    count = update_policies(adapter, str(policy_file))

    assert count == 3
    assert store.rules() == {
        ("p", "org_admin", "org_data", "read"),
        ("p", "org_admin", "org_data", "write"),
        ("p", "org_reader", "org_data", "read"),
    }


def test_update_policies_replaces_p_rules_only(adapter, store, policy_file):
    store.put("p", "old_role", "org_data", "read")
    store.put("p", "org_admin", "org_data", "read")
    store.put("g", "user:1", "org_admin")

    update_policies(adapter, str(policy_file))

    assert store.rules() == {
        ("p", "org_admin", "org_data", "read"),
        ("p", "org_admin", "org_data", "write"),
        ("p", "org_reader", "org_data", "read"),
        ("g", "user:1", "org_admin"),
    }


def test_failed_add_keeps_existing_rules(adapter, store, policy_file):
    store.put("p", "alice", "data1", "read")

    with patch.object(
        adapter.crud, "create", side_effect=TransientStoreError("throttled")
    ):
        with pytest.raises(TransientStoreError):
            update_policies(adapter, str(policy_file))

    assert store.rules() == {("p", "alice", "data1", "read")}


def test_failed_delete_keeps_new_rules(adapter, store, policy_file):
    store.put("p", "alice", "data1", "read")

    with patch.object(
        adapter.crud, "delete_many", side_effect=TransientStoreError("throttled")
    ):
        with pytest.raises(TransientStoreError):
            update_policies(adapter, str(policy_file))

    assert store.count() == 4


def test_update_policies_invalid_file(adapter, store, tmp_path):
    store.put("p", "org_admin", "org_data", "read")

    with pytest.raises(ValueError, match="Policy file not found"):
        update_policies(adapter, str(tmp_path / "missing.json"))

    assert store.count() == 1


def test_update_policies_invalid_data(adapter, store, tmp_path):
    store.put("p", "org_admin", "org_data", "read")
    policy_file = tmp_path / "policies.json"
    policy_file.write_text(json.dumps({"permissions": [{"invalid": "data"}]}))

    with pytest.raises(ValueError, match="Invalid policy entry"):
        update_policies(adapter, str(policy_file))

    assert store.count() == 1


def test_read_policies_expands_actions(policy_file):
    assert read_policies(str(policy_file)) == [
        ["org_admin", "org_data", "read"],
        ["org_admin", "org_data", "write"],
        ["org_reader", "org_data", "read"],
    ]


def test_cli_update(adapter, store, policy_file):
    with patch(
        "dynacasbin.core.rbac.update_casbin_policies.DynamoDBAdapter",
        return_value=adapter,
    ) as build, patch("dynacasbin.core.rbac.update_casbin_policies.setup_logger"):
        result = runner.invoke(cli, [str(policy_file), "--table-name", "rules"])

    assert result.exit_code == 0, result.output
    build.assert_called_once_with(table_name="rules")
    assert store.count() == 3


def test_cli_requires_policy_file(adapter, store):
    with patch(
        "dynacasbin.core.rbac.update_casbin_policies.DynamoDBAdapter",
        return_value=adapter,
    ) as build:
        result = runner.invoke(cli, [])

    assert result.exit_code != 0
    build.assert_not_called()
