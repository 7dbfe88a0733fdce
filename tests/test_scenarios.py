"""
End-to-end scenarios against the in-memory account.

These tests cover:
- a grant on the account converges and re-plans empty
- privilege order does not produce a diff
- imported privileges reported back as USAGE
- ownership delete hands the object back to the session role
- task changes inside a running graph suspend and resume its root
- a scheduled task joining a graph
- a with_grant_option flip re-grants the privileges
"""

from snowdrift.enums import ObjectType, OnSchemaObjectGrantKind, RoleKind
from snowdrift.grant_id import ObjectRef, OnAccount, OnAccountObject, OnSchemaObject
from snowdrift.identifiers import AccountObjectIdentifier, SchemaObjectIdentifier
from snowdrift.operations.apply import apply, plan
from snowdrift.provider_config import ProviderConfig, ResourceConfig
from snowdrift.resources import GrantOwnership, ResourceData
from snowdrift.resources.resource import PlanAction
from snowdrift.sql.grants import Grantee

from tests.helpers import FakeAccount, FakeClient, task

ROLE_R = Grantee(RoleKind.TO_ACCOUNT_ROLE, AccountObjectIdentifier("R"))
TABLE_T = OnSchemaObject(
    OnSchemaObjectGrantKind.ON_OBJECT,
    ObjectRef(ObjectType.TABLE, SchemaObjectIdentifier("DB", "SCH", "T")),
)


def provider_config(label: str, *configs: dict) -> ProviderConfig:
    return ProviderConfig(resources=[ResourceConfig(label, config) for config in configs])


def account_grant(**overrides) -> ProviderConfig:
    config = {
        "account_role_name": "R",
        "on_account": True,
        "privileges": ["CREATE DATABASE", "CREATE ROLE"],
        "with_grant_option": True,
    }
    config.update(overrides)
    return provider_config("grant_privileges_to_account_role", config)


def task_config(name: str, **overrides) -> dict:
    config = {"database": "DB", "schema": "SCH", "name": name, "sql_statement": "SELECT 1"}
    config.update(overrides)
    return config


# =============================================================================
# Grants
# =============================================================================


class TestAccountGrantConverges:
    """A grant on the account is created once and then left alone"""

    def test_create_then_empty_plan(self):
        client = FakeClient()
        config = account_grant()

        results = apply(client, config)

        assert [result.plan.action for result in results] == [PlanAction.CREATE]
        assert not any(result.diagnostics.has_errors for result in results)
        assert str(results[0].data.id) == 'ToAccountRole|"R"|true|false|CREATE DATABASE,CREATE ROLE|OnAccount'
        assert client.account.mutations() == [
            'GRANT CREATE DATABASE, CREATE ROLE ON ACCOUNT TO ROLE "R" WITH GRANT OPTION'
        ]

        second = plan(client, config)
        assert second[0].plan.is_empty

    def test_privilege_order_does_not_matter(self):
        account = FakeAccount()
        account.seed_grant(OnAccount(), ROLE_R, "CREATE DATABASE", "CREATE ROLE", grant_option=True)
        client = FakeClient(account)

        results = plan(client, account_grant(privileges=["CREATE ROLE", "CREATE DATABASE"]))

        assert results[0].plan.is_empty

    def test_missing_privilege_is_granted(self):
        account = FakeAccount()
        account.seed_grant(OnAccount(), ROLE_R, "CREATE DATABASE", grant_option=True)
        client = FakeClient(account)

        results = apply(client, account_grant())

        assert results[0].plan.action == PlanAction.UPDATE
        assert account.mutations() == ['GRANT CREATE ROLE ON ACCOUNT TO ROLE "R" WITH GRANT OPTION']
        assert plan(client, account_grant())[0].plan.is_empty

    def test_missing_role_plans_a_create(self):
        client = FakeClient(FakeAccount(roles=set()))

        results = plan(client, account_grant())

        assert results[0].plan.action == PlanAction.CREATE
        assert [diagnostic.summary for diagnostic in results[0].diagnostics] == [
            "grant_privileges_to_account_role is not granted"
        ]


class TestImportedPrivileges:
    """Snowflake reports IMPORTED PRIVILEGES on shared databases as USAGE"""

    def config(self) -> ProviderConfig:
        return provider_config(
            "grant_privileges_to_account_role",
            {
                "account_role_name": "R",
                "on_account_object": {"object_type": "DATABASE", "object_name": "SHARED"},
                "privileges": ["USAGE"],
                "imported_privileges": True,
            },
        )

    def test_create_grants_imported_privileges(self):
        client = FakeClient()

        apply(client, self.config())

        assert client.account.mutations() == ['GRANT IMPORTED PRIVILEGES ON DATABASE "SHARED" TO ROLE "R"']

    def test_usage_row_satisfies_imported_privileges(self):
        account = FakeAccount()
        account.seed_grant(OnAccountObject(ObjectType.DATABASE, AccountObjectIdentifier("SHARED")), ROLE_R, "USAGE")
        client = FakeClient(account)

        results = plan(client, self.config())

        assert results[0].plan.is_empty
        assert results[0].data.state["privileges"] == ["IMPORTED PRIVILEGES"]
        assert results[0].data.state["imported_privileges"] is True


class TestWithGrantOptionFlip:
    """Dropping with_grant_option revokes the option and grants the plain privilege"""

    def test_flip_to_false(self):
        account = FakeAccount()
        account.seed_grant(TABLE_T, ROLE_R, "SELECT", grant_option=True)
        client = FakeClient(account)
        config = provider_config(
            "grant_privileges_to_account_role",
            {
                "account_role_name": "R",
                "on_schema_object": {"object_type": "TABLE", "object_name": "DB.SCH.T"},
                "privileges": ["SELECT"],
                "with_grant_option": False,
            },
        )

        results = apply(client, config)

        assert results[0].plan.action == PlanAction.UPDATE
        assert results[0].plan.changes["privileges"] == ([], ["SELECT"])
        assert account.mutations() == [
            'REVOKE GRANT OPTION FOR SELECT ON TABLE "DB"."SCH"."T" FROM ROLE "R"',
            'GRANT SELECT ON TABLE "DB"."SCH"."T" TO ROLE "R"',
        ]
        assert account.grants_for(TABLE_T, ROLE_R) == {"SELECT": False}
        assert plan(client, config)[0].plan.is_empty


class TestAlwaysApply:
    """always_apply grants are re-issued on every run"""

    def test_always_plans_an_update(self):
        account = FakeAccount()
        account.seed_grant(OnAccount(), ROLE_R, "CREATE DATABASE", "CREATE ROLE", grant_option=True)
        client = FakeClient(account)

        results = apply(client, account_grant(always_apply=True))

        assert results[0].plan.action == PlanAction.UPDATE
        assert list(results[0].plan.changes) == ["always_apply_trigger"]
        assert account.mutations() == [
            'GRANT CREATE DATABASE, CREATE ROLE ON ACCOUNT TO ROLE "R" WITH GRANT OPTION'
        ]


# =============================================================================
# Ownership
# =============================================================================


class TestOwnership:
    """Ownership grants transfer on create and hand back on delete"""

    config = {
        "account_role_name": "R",
        "outbound_privileges": "COPY",
        "on": {"object_type": "DATABASE", "object_name": "D"},
    }

    def test_create_then_empty_plan(self):
        client = FakeClient()
        config = provider_config("grant_ownership", dict(self.config))

        apply(client, config)

        assert client.account.mutations() == ['GRANT OWNERSHIP ON DATABASE "D" TO ROLE "R" COPY CURRENT GRANTS']
        assert plan(client, config)[0].plan.is_empty

    def test_delete_returns_ownership_to_current_role(self):
        account = FakeAccount(current_role="SYSADMIN")
        client = FakeClient(account)
        resource = GrantOwnership()
        data = ResourceData(id=resource.config_id(self.config), config=self.config)

        diagnostics = resource.delete(client, data)

        assert not diagnostics.has_errors
        assert data.id == ""
        assert account.statements == [
            "SELECT CURRENT_ROLE() AS ROLE",
            'GRANT OWNERSHIP ON DATABASE "D" TO ROLE "SYSADMIN" COPY CURRENT GRANTS',
        ]


# =============================================================================
# Tasks
# =============================================================================


class TestTaskGraph:
    """Task changes keep the graph consistent"""

    def test_child_change_suspends_running_root(self):
        account = FakeAccount()
        account.seed_task(task("DB.SCH.T1", state="started", schedule="5 MINUTE"))
        t1 = SchemaObjectIdentifier("DB", "SCH", "T1")
        account.seed_task(task("DB.SCH.T2", state="started", predecessors=[t1]))
        client = FakeClient(account)
        config = provider_config("task", task_config("T2", enabled=True, after=["T1"], comment="nightly"))

        results = apply(client, config)

        assert results[0].plan.action == PlanAction.UPDATE
        assert list(results[0].plan.changes) == ["comment"]
        assert account.mutations() == [
            'ALTER TASK "DB"."SCH"."T1" SUSPEND',
            "ALTER TASK \"DB\".\"SCH\".\"T2\" SET COMMENT = 'nightly'",
            'ALTER TASK "DB"."SCH"."T1" RESUME',
        ]
        assert plan(client, config)[0].plan.is_empty

    def test_scheduled_task_joins_graph(self):
        account = FakeAccount()
        account.seed_task(task("DB.SCH.T1", state="started", schedule="5 MINUTE"))
        account.seed_task(task("DB.SCH.T2", schedule="1 MINUTE"))
        client = FakeClient(account)
        config = provider_config("task", task_config("T2", after=["T1"]))

        results = apply(client, config)

        assert results[0].plan.action == PlanAction.UPDATE
        assert account.mutations() == [
            'ALTER TASK "DB"."SCH"."T1" SUSPEND',
            'ALTER TASK "DB"."SCH"."T2" UNSET SCHEDULE',
            'ALTER TASK "DB"."SCH"."T2" ADD AFTER "DB"."SCH"."T1"',
            'ALTER TASK "DB"."SCH"."T1" RESUME',
        ]
        assert account.tasks[SchemaObjectIdentifier("DB", "SCH", "T1")].state == "started"
        assert plan(client, config)[0].plan.is_empty

    def test_graph_created_in_dependency_order(self):
        client = FakeClient()
        config = provider_config(
            "task",
            task_config("T2", enabled=True, after=["T1"]),
            task_config("T1", enabled=True, schedule="5 MINUTE"),
        )

        results = apply(client, config)

        assert [result.plan.action for result in results] == [PlanAction.CREATE, PlanAction.CREATE]
        assert client.account.mutations() == [
            "CREATE TASK \"DB\".\"SCH\".\"T1\" SCHEDULE = '5 MINUTE' AS SELECT 1",
            'ALTER TASK "DB"."SCH"."T1" RESUME',
            'ALTER TASK "DB"."SCH"."T1" SUSPEND',
            'CREATE TASK "DB"."SCH"."T2" AFTER "DB"."SCH"."T1" AS SELECT 1',
            'ALTER TASK "DB"."SCH"."T1" RESUME',
        ]
        assert all(result.plan.is_empty for result in plan(client, config))

    def test_enabled_child_is_never_resumed(self):
        account = FakeAccount()
        account.seed_task(task("DB.SCH.T1", state="started", schedule="5 MINUTE"))
        t1 = SchemaObjectIdentifier("DB", "SCH", "T1")
        account.seed_task(task("DB.SCH.T2", predecessors=[t1]))
        config = provider_config("task", task_config("T2", enabled=True, after=["T1"]))

        results = apply(FakeClient(account), config)

        assert results[0].plan.is_empty
        assert account.mutations() == []

    def test_dry_run_changes_nothing(self):
        client = FakeClient()
        config = provider_config("task", task_config("T1", schedule="5 MINUTE"))
        config.dry_run = True

        results = apply(client, config)

        assert results[0].plan.action == PlanAction.CREATE
        assert client.account.mutations() == []
