import datetime
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from ..enums import BulkOperationGrantKind, ObjectType, OnSchemaGrantKind, OnSchemaObjectGrantKind, OutboundPrivilegesBehavior, RoleKind
from ..exceptions import InvalidIdentifierException
from ..grant_id import OnAccount, OnAccountObject, OnSchema, OnSchemaObject, RoleIdentifier, Scope
from ..identifiers import AccountObjectIdentifier, DatabaseObjectIdentifier, ObjectIdentifier
from ..parse import parse_identifier_parts
from ..privs import ALL_PRIVILEGES


@dataclass(frozen=True)
class Grantee:
    role_kind: RoleKind
    name: RoleIdentifier

    @property
    def granted_to(self) -> str:
        return "ROLE" if self.role_kind == RoleKind.TO_ACCOUNT_ROLE else "DATABASE_ROLE"

    def __str__(self):
        keyword = "ROLE" if self.role_kind == RoleKind.TO_ACCOUNT_ROLE else "DATABASE ROLE"
        return f"{keyword} {self.name.fully_qualified_name}"

    def matches_name(self, grantee_name: str) -> bool:
        """
        Compare against the grantee_name column of SHOW GRANTS.

        Snowflake reports account roles bare and database roles as DB.ROLE,
        quoting only the parts that need it.
        """
        try:
            parts, _ = parse_identifier_parts(grantee_name)
        except InvalidIdentifierException:
            parts = None
        if isinstance(self.name, AccountObjectIdentifier):
            return grantee_name == self.name.name or parts == [self.name.name]
        return grantee_name == f"{self.name.database}.{self.name.name}" or parts == [self.name.database, self.name.name]


@dataclass(frozen=True)
class ShowGrantsOn:
    object_type: Optional[ObjectType] = None
    name: Optional[ObjectIdentifier] = None

    future = False

    def __str__(self):
        if self.object_type is None:
            return "SHOW GRANTS ON ACCOUNT"
        return f"SHOW GRANTS ON {self.object_type} {self.name.fully_qualified_name}"


@dataclass(frozen=True)
class ShowFutureGrantsIn:
    in_kind: BulkOperationGrantKind
    name: Union[AccountObjectIdentifier, DatabaseObjectIdentifier]

    future = True

    def __str__(self):
        container = "DATABASE" if self.in_kind == BulkOperationGrantKind.IN_DATABASE else "SCHEMA"
        return f"SHOW FUTURE GRANTS IN {container} {self.name.fully_qualified_name}"


ShowGrantsFilter = Union[ShowGrantsOn, ShowFutureGrantsIn]


@dataclass
class GrantRow:
    privilege: str
    granted_on: str
    name: str
    granted_to: str
    grantee_name: str
    grant_option: bool = False
    granted_by: str = ""
    created_on: Optional[datetime.datetime] = None

    @classmethod
    def from_show_row(cls, row: dict, future: bool = False) -> "GrantRow":
        # SHOW FUTURE GRANTS names its columns grant_on / grant_to and has no granted_by
        granted_on = row["grant_on"] if future else row["granted_on"]
        return cls(
            privilege=row["privilege"],
            granted_on=granted_on.replace("_", " "),
            name=row["name"],
            granted_to=row["grant_to"] if future else row["granted_to"],
            grantee_name=row["grantee_name"],
            grant_option=str(row["grant_option"]).lower() == "true",
            granted_by=row.get("granted_by") or "",
            created_on=row.get("created_on"),
        )


def scope_sql(scope: Scope) -> str:
    if isinstance(scope, OnAccount):
        return "ON ACCOUNT"
    if isinstance(scope, OnAccountObject):
        return f"ON {scope.object_type} {scope.name.fully_qualified_name}"
    if isinstance(scope, OnSchema):
        if scope.kind == OnSchemaGrantKind.ON_SCHEMA:
            return f"ON SCHEMA {scope.name.fully_qualified_name}"
        word = "ALL" if scope.kind == OnSchemaGrantKind.ON_ALL_SCHEMAS_IN_DATABASE else "FUTURE"
        return f"ON {word} SCHEMAS IN DATABASE {scope.name.fully_qualified_name}"
    if isinstance(scope, OnSchemaObject):
        data = scope.data
        if not scope.is_bulk:
            return f"ON {data.object_type} {data.name.fully_qualified_name}"
        word = "ALL" if scope.kind == OnSchemaObjectGrantKind.ON_ALL else "FUTURE"
        container = "DATABASE" if data.in_kind == BulkOperationGrantKind.IN_DATABASE else "SCHEMA"
        return f"ON {word} {data.plural_type} IN {container} {data.name.fully_qualified_name}"
    raise TypeError(f"Unknown grant scope: {scope!r}")


def privileges_sql(privileges: Iterable[str], all_privileges: bool = False) -> str:
    if all_privileges:
        return ALL_PRIVILEGES
    return ", ".join(privileges)


def build_grant(
    privileges: Iterable[str],
    on: Scope,
    to: Grantee,
    with_grant_option: bool = False,
    all_privileges: bool = False,
) -> str:
    sql = f"GRANT {privileges_sql(privileges, all_privileges)} {scope_sql(on)} TO {to}"
    if with_grant_option:
        sql += " WITH GRANT OPTION"
    return sql


def build_revoke(
    privileges: Iterable[str],
    on: Scope,
    from_: Grantee,
    grant_option_for: bool = False,
    all_privileges: bool = False,
) -> str:
    prefix = "REVOKE GRANT OPTION FOR" if grant_option_for else "REVOKE"
    return f"{prefix} {privileges_sql(privileges, all_privileges)} {scope_sql(on)} FROM {from_}"


def build_grant_ownership(
    on: OnSchemaObject,
    to: Grantee,
    outbound_privileges: Optional[OutboundPrivilegesBehavior] = None,
) -> str:
    sql = f"GRANT OWNERSHIP {scope_sql(on)} TO {to}"
    if outbound_privileges:
        sql += f" {outbound_privileges.value} CURRENT GRANTS"
    return sql


class Grants:
    def __init__(self, client):
        self._client = client

    def grant(self, privileges, on: Scope, to: Grantee, with_grant_option: bool = False, all_privileges: bool = False):
        self._client.execute(build_grant(privileges, on, to, with_grant_option, all_privileges))

    def revoke(
        self, privileges, on: Scope, from_: Grantee, grant_option_for: bool = False, all_privileges: bool = False
    ):
        self._client.execute(build_revoke(privileges, on, from_, grant_option_for, all_privileges))

    def grant_ownership(
        self, on: OnSchemaObject, to: Grantee, outbound_privileges: Optional[OutboundPrivilegesBehavior] = None
    ):
        self._client.execute(build_grant_ownership(on, to, outbound_privileges))

    def show(self, filter: ShowGrantsFilter) -> list[GrantRow]:
        rows = self._client.execute(str(filter))
        return [GrantRow.from_show_row(row, future=filter.future) for row in rows]
