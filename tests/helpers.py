"""
In-memory Snowflake account for unit tests.

FakeClient sends every statement through the real SQL builders and records
it. SHOW and SELECT statements are answered from FakeAccount state in the
shape the connector returns, so the real row parsers run. GRANT, REVOKE and
task DDL mutate that state through thin facade subclasses.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Optional

from snowdrift.client import SnowflakeClient
from snowdrift.grant_id import OnAccount, OnAccountObject, OnSchemaObject, Scope
from snowdrift.grants import expected_granted_on, show_filter_for_scope
from snowdrift.identifiers import AccountObjectIdentifier, SchemaObjectIdentifier, parse_account_object_identifier
from snowdrift.privs import OWNERSHIP, normalize_priv
from snowdrift.sql.grants import Grantee, Grants
from snowdrift.sql.tasks import AlterTaskRequest, CreateTaskRequest, Tasks, show_task_parameters_sql

SHOW_ROLES = re.compile(r"^SHOW ROLES LIKE '(.*)'$")
SHOW_DATABASE_ROLES = re.compile(r"^SHOW DATABASE ROLES LIKE '(.*)' IN DATABASE (.*)$")
SHOW_TASKS = re.compile(r"^SHOW TASKS LIKE '(.*)' IN SCHEMA (.*)$")


@dataclass
class FakeGrant:
    scope: Scope
    grantee: Grantee
    privilege: str
    grant_option: bool = False
    granted_by: str = "ACCOUNTADMIN"
    granted_on: Optional[str] = None

    def object_name(self) -> str:
        if isinstance(self.scope, OnAccount):
            return "ACCOUNT"
        if isinstance(self.scope, OnAccountObject):
            return self.scope.name.name
        if isinstance(self.scope, OnSchemaObject):
            return self.scope.data.name.fully_qualified_name
        return self.scope.name.fully_qualified_name

    def grantee_name(self) -> str:
        role = self.grantee.name
        if isinstance(role, AccountObjectIdentifier):
            return role.name
        return f"{role.database}.{role.name}"

    def to_row(self, future: bool) -> dict:
        granted_on = self.granted_on or expected_granted_on(self.scope)
        row = {
            "privilege": self.privilege,
            "name": self.object_name(),
            "grantee_name": self.grantee_name(),
            "grant_option": "true" if self.grant_option else "false",
        }
        if future:
            row.update({"grant_on": granted_on.replace(" ", "_"), "grant_to": self.grantee.granted_to})
        else:
            row.update(
                {
                    "granted_on": granted_on.replace(" ", "_"),
                    "granted_to": self.grantee.granted_to,
                    "granted_by": self.granted_by,
                }
            )
        return row


@dataclass
class FakeTask:
    id: SchemaObjectIdentifier
    definition: str
    state: str = "suspended"
    warehouse: Optional[str] = None
    schedule: Optional[str] = None
    config: Optional[str] = None
    allow_overlapping_execution: bool = False
    error_integration: Optional[str] = None
    comment: Optional[str] = None
    condition: Optional[str] = None
    predecessors: list = field(default_factory=list)
    finalize: Optional[SchemaObjectIdentifier] = None
    parameters: dict = field(default_factory=dict)

    def to_row(self) -> dict:
        relations = {
            "Predecessors": [task.fully_qualified_name for task in self.predecessors],
            "FinalizerTask": None,
            "FinalizedRootTask": self.finalize.fully_qualified_name if self.finalize else None,
        }
        return {
            "name": self.id.name,
            "database_name": self.id.database,
            "schema_name": self.id.schema,
            "state": self.state,
            "definition": self.definition,
            "owner": "SYSADMIN",
            "comment": self.comment,
            "warehouse": self.warehouse,
            "schedule": self.schedule,
            "predecessors": json.dumps([task.fully_qualified_name for task in self.predecessors]),
            "condition": self.condition,
            "allow_overlapping_execution": "true" if self.allow_overlapping_execution else "false",
            "error_integration": self.error_integration or "null",
            "config": self.config,
            "task_relations": json.dumps(relations),
            "created_on": None,
            "last_suspended_on": None,
        }


@dataclass
class FakeAccount:
    roles: set = field(default_factory=lambda: {"R"})
    database_roles: set = field(default_factory=set)
    grants: list = field(default_factory=list)
    tasks: dict = field(default_factory=dict)
    current_role: str = "ACCOUNTADMIN"
    errors: dict = field(default_factory=dict)
    statements: list = field(default_factory=list)

    # ---- seeding ----

    def seed_grant(self, scope: Scope, grantee: Grantee, *privileges: str, **kwargs):
        for privilege in privileges:
            self.grants.append(FakeGrant(scope, grantee, privilege, **kwargs))

    def seed_task(self, task: FakeTask):
        self.tasks[task.id] = task

    def fail_on(self, sql_prefix: str, error: Exception):
        self.errors[sql_prefix] = error

    # ---- queries ----

    def grants_for(self, scope: Scope, grantee: Grantee) -> dict[str, bool]:
        return {
            grant.privilege: grant.grant_option
            for grant in self.grants
            if grant.scope == scope and grant.grantee == grantee
        }

    def mutations(self) -> list[str]:
        return [sql for sql in self.statements if not sql.startswith(("SHOW", "SELECT"))]

    def respond(self, sql: str) -> list[dict]:
        if sql.startswith("SELECT CURRENT_ROLE()"):
            return [{"ROLE": self.current_role}]

        match = SHOW_ROLES.match(sql)
        if match:
            return [{"name": name} for name in self.roles if name == match.group(1)]

        match = SHOW_DATABASE_ROLES.match(sql)
        if match:
            database = parse_account_object_identifier(match.group(2)).name
            return [{"name": name} for db, name in self.database_roles if db == database and name == match.group(1)]

        match = SHOW_TASKS.match(sql)
        if match:
            return [
                task.to_row()
                for task in self.tasks.values()
                if task.id.name == match.group(1) and task.id.schema_identifier.fully_qualified_name == match.group(2)
            ]

        if sql.startswith("SHOW PARAMETERS IN TASK"):
            for task in self.tasks.values():
                if sql == show_task_parameters_sql(task.id):
                    return [
                        {"key": key, "value": value, "level": "TASK", "type": "STRING"}
                        for key, value in task.parameters.items()
                    ]
            return []

        if sql.startswith(("SHOW GRANTS", "SHOW FUTURE GRANTS")):
            rows = []
            for grant in self.grants:
                show_filter = show_filter_for_scope(grant.scope)
                if show_filter is not None and str(show_filter) == sql:
                    rows.append(grant.to_row(show_filter.future))
            return rows

        return []


def _unrender(value) -> str:
    text = str(value)
    if text.startswith("$$") and text.endswith("$$"):
        return text[2:-2]
    if text.startswith("'") and text.endswith("'"):
        return text[1:-1].replace("\\'", "'").replace("\\\\", "\\")
    return text


class FakeGrants(Grants):
    @property
    def account(self) -> FakeAccount:
        return self._client.account

    def _find(self, scope, grantee, privilege) -> Optional[FakeGrant]:
        for grant in self.account.grants:
            if grant.scope == scope and grant.grantee == grantee and normalize_priv(grant.privilege) == privilege:
                return grant
        return None

    def grant(self, privileges, on, to, with_grant_option=False, all_privileges=False):
        super().grant(privileges, on, to, with_grant_option, all_privileges)
        for privilege in ["ALL PRIVILEGES"] if all_privileges else privileges:
            existing = self._find(on, to, normalize_priv(privilege))
            if existing is None:
                self.account.grants.append(FakeGrant(on, to, normalize_priv(privilege), with_grant_option))
            else:
                existing.grant_option = existing.grant_option or with_grant_option

    def revoke(self, privileges, on, from_, grant_option_for=False, all_privileges=False):
        super().revoke(privileges, on, from_, grant_option_for, all_privileges)
        for grant in list(self.account.grants):
            if grant.scope != on or grant.grantee != from_ or grant.privilege == OWNERSHIP:
                continue
            if not all_privileges and normalize_priv(grant.privilege) not in {normalize_priv(p) for p in privileges}:
                continue
            if grant_option_for:
                grant.grant_option = False
            else:
                self.account.grants.remove(grant)

    def grant_ownership(self, on, to, outbound_privileges=None):
        super().grant_ownership(on, to, outbound_privileges)
        self.account.grants = [
            grant for grant in self.account.grants if not (grant.scope == on and grant.privilege == OWNERSHIP)
        ]
        self.account.grants.append(FakeGrant(on, to, OWNERSHIP))


_TASK_ATTRIBUTES = {
    "WAREHOUSE": "warehouse",
    "SCHEDULE": "schedule",
    "CONFIG": "config",
    "ALLOW_OVERLAPPING_EXECUTION": "allow_overlapping_execution",
    "ERROR_INTEGRATION": "error_integration",
    "COMMENT": "comment",
}


def _set_task_property(task: FakeTask, key: str, value):
    if key not in _TASK_ATTRIBUTES:
        task.parameters[key] = _unrender(value)
    elif key == "ALLOW_OVERLAPPING_EXECUTION":
        task.allow_overlapping_execution = bool(value)
    elif hasattr(value, "name") and not isinstance(value, str):
        setattr(task, _TASK_ATTRIBUTES[key], value.name)
    else:
        setattr(task, _TASK_ATTRIBUTES[key], _unrender(value))


def _unset_task_property(task: FakeTask, key: str):
    if key not in _TASK_ATTRIBUTES:
        task.parameters.pop(key, None)
    elif key == "ALLOW_OVERLAPPING_EXECUTION":
        task.allow_overlapping_execution = False
    else:
        setattr(task, _TASK_ATTRIBUTES[key], None)


class FakeTasks(Tasks):
    @property
    def account(self) -> FakeAccount:
        return self._client.account

    def create(self, request: CreateTaskRequest):
        super().create(request)
        task = FakeTask(
            id=request.id,
            definition=request.sql_statement,
            condition=request.when,
            predecessors=list(request.after),
            finalize=request.finalize,
        )
        for key, value in request.properties.items():
            _set_task_property(task, key, value)
        self.account.tasks[request.id] = task

    def alter(self, request: AlterTaskRequest):
        super().alter(request)
        task = self.account.tasks[request.id]
        if request.resume:
            task.state = "started"
        elif request.suspend:
            task.state = "suspended"
        for key, value in request.set_properties.items():
            _set_task_property(task, key, value)
        for key in request.unset_properties:
            _unset_task_property(task, key)
        if request.modify_as is not None:
            task.definition = request.modify_as
        if request.modify_when is not None:
            task.condition = request.modify_when
        if request.remove_when:
            task.condition = None
        task.predecessors.extend(request.add_after)
        task.predecessors = [name for name in task.predecessors if name not in request.remove_after]
        if request.set_finalize is not None:
            task.finalize = request.set_finalize
        if request.unset_finalize:
            task.finalize = None

    def drop(self, task_id, if_exists=False):
        super().drop(task_id, if_exists)
        self.account.tasks.pop(task_id, None)


class FakeClient(SnowflakeClient):
    def __init__(self, account: Optional[FakeAccount] = None, context=None):
        self.account = account or FakeAccount()
        super().__init__(connection=None, context=context)

    @property
    def statements(self) -> list[str]:
        return self.account.statements

    def _bind_facades(self):
        super()._bind_facades()
        self.grants = FakeGrants(self)
        self.tasks = FakeTasks(self)

    def _run(self, sql, empty_response_codes=None):
        self.account.statements.append(sql)
        for prefix, error in self.account.errors.items():
            if sql.startswith(prefix):
                raise error
        return self.account.respond(sql)


def task(fqn: str, definition: str = "SELECT 1", **kwargs) -> FakeTask:
    database, schema, name = fqn.split(".")
    return FakeTask(SchemaObjectIdentifier(database, schema, name), definition, **kwargs)
