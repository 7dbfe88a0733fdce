"""
Tests for snowdrift/resources/upgraders.py

These tests cover:
- task ids persisted as db|schema|name
- ids of the retired grant_privileges_to_role resource
- database role grants persisted with the OnDatabase scope
- chaining upgraders up to the current schema version
"""

import pytest

from snowdrift.exceptions import InvalidGrantIdException
from snowdrift.resources import GrantPrivilegesToAccountRole, GrantPrivilegesToDatabaseRole, Task, upgrade_state
from snowdrift.resources.upgraders import (
    legacy_role_grant_to_id,
    upgrade_account_role_grant_v0,
    upgrade_database_role_grant_v0,
    upgrade_task_v0,
)

LEGACY_FIELDS = [
    "role",
    "privileges",
    "all_privileges",
    "with_grant_option",
    "on_account",
    "on_account_object",
    "on_schema",
    "on_schema_object",
    "all",
    "future",
    "object_type",
    "object_name",
    "object_type_plural",
    "in_schema",
    "schema_name",
    "in_database",
    "database_name",
]
LEGACY_FLAGS = {
    "all_privileges",
    "with_grant_option",
    "on_account",
    "on_account_object",
    "on_schema",
    "on_schema_object",
    "all",
    "future",
    "in_schema",
    "in_database",
}


def legacy_id(**values) -> str:
    return "|".join(str(values.get(name, "false" if name in LEGACY_FLAGS else "")) for name in LEGACY_FIELDS)


class TestTaskUpgrade:
    """Tests for upgrade_task_v0()"""

    def test_pipe_delimited_id(self):
        assert upgrade_task_v0({"id": "DB|SCH|T", "comment": "x"}) == {"id": '"DB"."SCH"."T"', "comment": "x"}

    def test_current_id_is_kept(self):
        assert upgrade_task_v0({"id": '"DB"."SCH"."T"'}) == {"id": '"DB"."SCH"."T"'}


class TestLegacyRoleGrant:
    """Tests for legacy_role_grant_to_id()"""

    def test_on_account(self):
        id_str = legacy_id(role="ANALYST", privileges="CREATE DATABASE,CREATE ROLE", with_grant_option="true", on_account="true")
        assert legacy_role_grant_to_id(id_str) == 'ToAccountRole|"ANALYST"|true|false|CREATE DATABASE,CREATE ROLE|OnAccount'

    def test_on_account_object_with_all_privileges(self):
        id_str = legacy_id(
            role="R", all_privileges="true", on_account_object="true", object_type="WAREHOUSE", object_name="WH"
        )
        assert legacy_role_grant_to_id(id_str) == 'ToAccountRole|"R"|false|false|ALL|OnAccountObject|WAREHOUSE|"WH"'

    def test_on_schema(self):
        id_str = legacy_id(role="R", privileges="USAGE", on_schema="true", schema_name="DB.SCH")
        assert legacy_role_grant_to_id(id_str) == 'ToAccountRole|"R"|false|false|USAGE|OnSchema|OnSchema|"DB"."SCH"'

    def test_on_future_schemas(self):
        id_str = legacy_id(role="R", privileges="USAGE", on_schema="true", future="true", database_name="DB")
        assert legacy_role_grant_to_id(id_str) == (
            'ToAccountRole|"R"|false|false|USAGE|OnSchema|OnFutureSchemasInDatabase|"DB"'
        )

    def test_on_schema_object(self):
        id_str = legacy_id(role="R", privileges="SELECT", on_schema_object="true", object_type="TABLE", object_name="DB.SCH.T")
        assert legacy_role_grant_to_id(id_str) == 'ToAccountRole|"R"|false|false|SELECT|OnSchemaObject|OnObject|TABLE|"DB"."SCH"."T"'

    def test_on_future_objects(self):
        id_str = legacy_id(
            role="R",
            privileges="SELECT",
            on_schema_object="true",
            future="true",
            object_type_plural="tables",
            in_schema="true",
            schema_name="DB.SCH",
        )
        assert legacy_role_grant_to_id(id_str) == (
            'ToAccountRole|"R"|false|false|SELECT|OnSchemaObject|OnFuture|TABLES|InSchema|"DB"."SCH"'
        )

    def test_no_scope(self):
        with pytest.raises(InvalidGrantIdException, match="no scope"):
            legacy_role_grant_to_id(legacy_id(role="R", privileges="USAGE"))

    def test_wrong_part_count(self):
        with pytest.raises(InvalidGrantIdException, match="17 parts"):
            legacy_role_grant_to_id("R|USAGE|false")


class TestGrantUpgrades:
    """Tests for the grant resource upgraders"""

    def test_current_account_role_id_is_kept(self):
        raw = {"id": 'ToAccountRole|"R"|false|false|USAGE|OnAccountObject|DATABASE|"DB"'}
        assert upgrade_account_role_grant_v0(raw) == raw

    def test_legacy_account_role_id(self):
        raw = {"id": legacy_id(role="R", privileges="MONITOR", on_account="true")}
        assert upgrade_account_role_grant_v0(raw)["id"] == 'ToAccountRole|"R"|false|false|MONITOR|OnAccount'

    def test_database_role_on_database(self):
        raw = {"id": '"DB"."DR"|false|false|USAGE|OnDatabase|"DB"'}
        assert upgrade_database_role_grant_v0(raw)["id"] == (
            'ToDatabaseRole|"DB"."DR"|false|false|USAGE|OnAccountObject|DATABASE|"DB"'
        )

    def test_database_role_schema_grant(self):
        raw = {"id": 'ToDatabaseRole|"DB"."DR"|false|false|USAGE|OnSchema|OnSchema|"DB"."SCH"'}
        assert upgrade_database_role_grant_v0(raw) == raw


class TestUpgradeState:
    """Tests for upgrade_state()"""

    def test_runs_upgraders_from_version(self):
        assert upgrade_state(Task(), {"id": "DB|SCH|T"}, 0) == {"id": '"DB"."SCH"."T"'}
        raw = {"id": legacy_id(role="R", privileges="MONITOR", on_account="true")}
        assert upgrade_state(GrantPrivilegesToAccountRole(), raw, 0)["id"].endswith("|OnAccount")

    def test_current_version_is_untouched(self):
        raw = {"id": '"DB"."DR"|false|false|USAGE|OnDatabase|"DB"'}
        assert upgrade_state(GrantPrivilegesToDatabaseRole(), raw, 1) == raw
