"""
Grant identifiers and their pipe-delimited string encoding.

The encoded string is the primary key of every grant resource, so its layout
is fixed:

    ToAccountRole|"ROLE"|true|false|CREATE DATABASE,CREATE ROLE|OnAccount
    ToAccountRole|"ROLE"|false|false|USAGE|OnAccountObject|DATABASE|"DB"
    ToDatabaseRole|"DB"."ROLE"|false|false|USAGE|OnSchema|OnSchema|"DB"."SCH"
    ToAccountRole|"ROLE"|false|false|SELECT|OnSchemaObject|OnObject|TABLE|"DB"."SCH"."TBL"
    ToAccountRole|"ROLE"|false|false|SELECT|OnSchemaObject|OnFuture|TABLES|InSchema|"DB"."SCH"

Ownership ids collapse the privilege slots into the outbound privileges option:

    ToAccountRole|"ROLE"|COPY|OnObject|DATABASE|"DB"
    ToAccountRole|"ROLE"||OnAll|TABLES|InDatabase|"DB"
"""

from dataclasses import dataclass, field
from typing import ClassVar, Optional, Union

from .enums import (
    BulkOperationGrantKind,
    GrantKind,
    IdentifierKind,
    ObjectType,
    OnSchemaGrantKind,
    OnSchemaObjectGrantKind,
    OutboundPrivilegesBehavior,
    PluralObjectType,
    RoleKind,
)
from .exceptions import InvalidGrantIdException, InvalidIdentifierException
from .identifiers import (
    IDENTIFIER_CLASSES,
    AccountObjectIdentifier,
    DatabaseObjectIdentifier,
    ObjectIdentifier,
    object_type_to_identifier_kind,
    parse_account_object_identifier,
    parse_database_object_identifier,
    parse_identifier_for_object_type,
)
from .parse import split_outside_quotes
from .privs import ALL, is_all_privs, validate_privs

DELIMITER = "|"

RoleIdentifier = Union[AccountObjectIdentifier, DatabaseObjectIdentifier]


# =============================================================================
# Scopes
# =============================================================================


@dataclass(frozen=True)
class ObjectRef:
    object_type: ObjectType
    name: ObjectIdentifier

    def __post_init__(self):
        kind = object_type_to_identifier_kind(self.object_type)
        if kind == IdentifierKind.TABLE_COLUMN:
            raise InvalidGrantIdException("grants on columns are not supported")
        _check_identifier_kind(self.name, kind, self.object_type)

    def id_parts(self) -> list[str]:
        return [self.object_type.value, self.name.fully_qualified_name]


@dataclass(frozen=True)
class BulkOperation:
    plural_type: PluralObjectType
    in_kind: BulkOperationGrantKind
    name: Union[AccountObjectIdentifier, DatabaseObjectIdentifier]

    def __post_init__(self):
        if self.in_kind == BulkOperationGrantKind.IN_DATABASE and not isinstance(self.name, AccountObjectIdentifier):
            raise InvalidGrantIdException(f"InDatabase expects a database name, got: {self.name}")
        if self.in_kind == BulkOperationGrantKind.IN_SCHEMA and not isinstance(self.name, DatabaseObjectIdentifier):
            raise InvalidGrantIdException(f"InSchema expects a schema name, got: {self.name}")
        if self.plural_type == PluralObjectType.SCHEMAS and self.in_kind == BulkOperationGrantKind.IN_SCHEMA:
            raise InvalidGrantIdException("SCHEMAS can only be granted in a database")

    def id_parts(self) -> list[str]:
        return [self.plural_type.value, self.in_kind.value, self.name.fully_qualified_name]


@dataclass(frozen=True)
class OnAccount:
    grant_kind: ClassVar[GrantKind] = GrantKind.ON_ACCOUNT

    def id_parts(self) -> list[str]:
        return []


@dataclass(frozen=True)
class OnAccountObject:
    object_type: ObjectType
    name: AccountObjectIdentifier
    grant_kind: ClassVar[GrantKind] = GrantKind.ON_ACCOUNT_OBJECT

    def __post_init__(self):
        if object_type_to_identifier_kind(self.object_type) != IdentifierKind.ACCOUNT_OBJECT:
            raise InvalidGrantIdException(f"{self.object_type} is not an account object type")
        _check_identifier_kind(self.name, IdentifierKind.ACCOUNT_OBJECT, self.object_type)

    def id_parts(self) -> list[str]:
        return [self.object_type.value, self.name.fully_qualified_name]


@dataclass(frozen=True)
class OnSchema:
    kind: OnSchemaGrantKind
    name: Union[DatabaseObjectIdentifier, AccountObjectIdentifier]
    grant_kind: ClassVar[GrantKind] = GrantKind.ON_SCHEMA

    def __post_init__(self):
        if self.kind == OnSchemaGrantKind.ON_SCHEMA:
            _check_identifier_kind(self.name, IdentifierKind.DATABASE_OBJECT, ObjectType.SCHEMA)
        else:
            _check_identifier_kind(self.name, IdentifierKind.ACCOUNT_OBJECT, ObjectType.DATABASE)

    def id_parts(self) -> list[str]:
        return [self.kind.value, self.name.fully_qualified_name]


@dataclass(frozen=True)
class OnSchemaObject:
    kind: OnSchemaObjectGrantKind
    data: Union[ObjectRef, BulkOperation]
    grant_kind: ClassVar[GrantKind] = GrantKind.ON_SCHEMA_OBJECT

    def __post_init__(self):
        if self.kind == OnSchemaObjectGrantKind.ON_OBJECT and not isinstance(self.data, ObjectRef):
            raise InvalidGrantIdException("OnObject expects an object type and name")
        if self.kind != OnSchemaObjectGrantKind.ON_OBJECT and not isinstance(self.data, BulkOperation):
            raise InvalidGrantIdException(f"{self.kind} expects a plural object type and an In clause")

    @property
    def is_bulk(self) -> bool:
        return self.kind != OnSchemaObjectGrantKind.ON_OBJECT

    def id_parts(self) -> list[str]:
        return [self.kind.value, *self.data.id_parts()]


Scope = Union[OnAccount, OnAccountObject, OnSchema, OnSchemaObject]


def _check_identifier_kind(identifier, kind: IdentifierKind, object_type: ObjectType):
    if not isinstance(identifier, IDENTIFIER_CLASSES[kind]):
        raise InvalidGrantIdException(f"{object_type} expects a {kind.value} identifier, got: {identifier!r}")


# =============================================================================
# Identifiers
# =============================================================================


@dataclass(frozen=True)
class GrantPrivilegesId:
    role_kind: RoleKind
    role: RoleIdentifier
    scope: Scope
    privileges: tuple[str, ...] = field(default_factory=tuple)
    all_privileges: bool = False
    with_grant_option: bool = False
    always_apply: bool = False

    def __post_init__(self):
        object.__setattr__(self, "privileges", tuple(self.privileges))
        _check_role(self.role_kind, self.role)
        if self.all_privileges and self.privileges:
            raise InvalidGrantIdException("privileges and all_privileges are mutually exclusive")
        if not self.all_privileges and not self.privileges:
            raise InvalidGrantIdException("at least one privilege or all_privileges is required")
        validate_privs(self.privileges)
        if self.role_kind == RoleKind.TO_DATABASE_ROLE:
            self._check_database_role_scope()
        if isinstance(self.scope, OnSchemaObject) and isinstance(self.scope.data, ObjectRef):
            kind = object_type_to_identifier_kind(self.scope.data.object_type)
            if kind not in (IdentifierKind.SCHEMA_OBJECT, IdentifierKind.SCHEMA_OBJECT_WITH_ARGUMENTS):
                raise InvalidGrantIdException(f"{self.scope.data.object_type} is not a schema object type")
        if isinstance(self.scope, OnSchemaObject) and isinstance(self.scope.data, BulkOperation):
            if self.scope.data.plural_type == PluralObjectType.SCHEMAS:
                raise InvalidGrantIdException("privileges on all or future schemas are granted through OnSchema")

    def _check_database_role_scope(self):
        database = self.role.database
        if isinstance(self.scope, OnAccount):
            raise InvalidGrantIdException("database roles cannot be granted privileges on the account")
        if isinstance(self.scope, OnAccountObject) and self.scope.object_type != ObjectType.DATABASE:
            raise InvalidGrantIdException("database roles can only be granted privileges on their own database")
        scope_database = _scope_database(self.scope)
        if scope_database is not None and scope_database != database:
            raise InvalidGrantIdException(
                f"database role {self.role} cannot be granted privileges outside of database {database}"
            )

    @property
    def privileges_part(self) -> str:
        return ALL if self.all_privileges else ",".join(self.privileges)

    def __str__(self):
        parts = [
            self.role_kind.value,
            self.role.fully_qualified_name,
            _bool_part(self.with_grant_option),
            _bool_part(self.always_apply),
            self.privileges_part,
            self.scope.grant_kind.value,
            *self.scope.id_parts(),
        ]
        return DELIMITER.join(parts)

    def same_grant_target(self, other: "GrantPrivilegesId") -> bool:
        """True when both ids grant to the same role on the same scope."""
        return self.role_kind == other.role_kind and self.role == other.role and self.scope == other.scope


@dataclass(frozen=True)
class GrantOwnershipId:
    role_kind: RoleKind
    role: RoleIdentifier
    scope: OnSchemaObject
    outbound_privileges: Optional[OutboundPrivilegesBehavior] = None

    def __post_init__(self):
        _check_role(self.role_kind, self.role)
        if not isinstance(self.scope, OnSchemaObject):
            raise InvalidGrantIdException(f"ownership cannot be granted on {type(self.scope).__name__}")

    def __str__(self):
        parts = [
            self.role_kind.value,
            self.role.fully_qualified_name,
            self.outbound_privileges.value if self.outbound_privileges else "",
            *self.scope.id_parts(),
        ]
        return DELIMITER.join(parts)


def _check_role(role_kind: RoleKind, role):
    if role_kind == RoleKind.TO_ACCOUNT_ROLE and not isinstance(role, AccountObjectIdentifier):
        raise InvalidGrantIdException(f"account role name must have one part, got: {role!r}")
    if role_kind == RoleKind.TO_DATABASE_ROLE and not isinstance(role, DatabaseObjectIdentifier):
        raise InvalidGrantIdException(f"database role name must have two parts, got: {role!r}")


def _scope_database(scope: Scope) -> Optional[str]:
    if isinstance(scope, OnAccountObject):
        return scope.name.name
    if isinstance(scope, OnSchema):
        return scope.name.database if isinstance(scope.name, DatabaseObjectIdentifier) else scope.name.name
    if isinstance(scope, OnSchemaObject):
        name = scope.data.name
        return name.name if isinstance(name, AccountObjectIdentifier) else name.database
    return None


def _bool_part(value: bool) -> str:
    return "true" if value else "false"


# =============================================================================
# Decoding
# =============================================================================


def _parse_bool(value: str, label: str) -> bool:
    if value == "true":
        return True
    if value == "false":
        return False
    raise InvalidGrantIdException(f'invalid {label} value: {value}, should be either "true" or "false"')


def _parse_exact(enum_cls, value: str, label: str):
    for member in enum_cls:
        if member.value == value:
            return member
    options = " | ".join(member.value for member in enum_cls)
    raise InvalidGrantIdException(f"invalid {label}: {value}, valid options are {options}")


def _parse_identifier(parser, value: str):
    try:
        return parser(value)
    except InvalidIdentifierException as err:
        raise InvalidGrantIdException(str(err)) from err


def _parse_role(role_kind: RoleKind, value: str) -> RoleIdentifier:
    if role_kind == RoleKind.TO_ACCOUNT_ROLE:
        return _parse_identifier(parse_account_object_identifier, value)
    return _parse_identifier(parse_database_object_identifier, value)


def _parse_object_ref(object_type_part: str, name_part: str) -> ObjectRef:
    object_type = _parse_exact(ObjectType, object_type_part, "ObjectType")
    try:
        name = parse_identifier_for_object_type(object_type, name_part)
    except InvalidIdentifierException as err:
        raise InvalidGrantIdException(str(err)) from err
    return ObjectRef(object_type, name)


def _parse_bulk_operation(plural_part: str, in_kind_part: str, name_part: str) -> BulkOperation:
    plural_type = _parse_exact(PluralObjectType, plural_part, "PluralObjectType")
    in_kind = _parse_exact(BulkOperationGrantKind, in_kind_part, "BulkOperationGrantKind")
    if in_kind == BulkOperationGrantKind.IN_DATABASE:
        name = _parse_identifier(parse_account_object_identifier, name_part)
    else:
        name = _parse_identifier(parse_database_object_identifier, name_part)
    return BulkOperation(plural_type, in_kind, name)


def _parse_schema_object_scope(kind: OnSchemaObjectGrantKind, rest: list[str]) -> OnSchemaObject:
    if kind == OnSchemaObjectGrantKind.ON_OBJECT:
        return OnSchemaObject(kind, _parse_object_ref(*rest))
    return OnSchemaObject(kind, _parse_bulk_operation(*rest))


def parse_grant_privileges_id(id_str: str) -> GrantPrivilegesId:
    parts = split_outside_quotes(id_str, DELIMITER)
    if len(parts) < 6:
        raise InvalidGrantIdException(
            "grant privileges identifier should hold at least 6 parts "
            '"<target_role_kind>|<role_name>|<with_grant_option>|<always_apply>|<privileges>|<grant_type>|<grant_data>...", '
            f"got {len(parts)}: {id_str}"
        )

    role_kind = _parse_exact(RoleKind, parts[0], "TargetRoleKind")
    role = _parse_role(role_kind, parts[1])
    with_grant_option = _parse_bool(parts[2], "WithGrantOption")
    always_apply = _parse_bool(parts[3], "AlwaysApply")

    if parts[4] == "":
        raise InvalidGrantIdException(
            f'invalid Privileges value: {parts[4]}, should be either a comma separated list of privileges or "ALL" / '
            '"ALL PRIVILEGES" for all privileges'
        )
    all_privileges = is_all_privs(parts[4])
    privileges = () if all_privileges else tuple(parts[4].split(","))

    grant_kind = _parse_exact(GrantKind, parts[5], "GrantKind")
    rest = parts[6:]
    scope: Scope
    if grant_kind == GrantKind.ON_ACCOUNT:
        _expect_parts(parts, 6, id_str)
        scope = OnAccount()
    elif grant_kind == GrantKind.ON_ACCOUNT_OBJECT:
        _expect_parts(parts, 8, id_str)
        object_type = _parse_exact(ObjectType, rest[0], "AccountObjectType")
        scope = OnAccountObject(object_type, _parse_identifier(parse_account_object_identifier, rest[1]))
    elif grant_kind == GrantKind.ON_SCHEMA:
        _expect_parts(parts, 8, id_str)
        schema_kind = _parse_exact(OnSchemaGrantKind, rest[0], "OnSchemaGrantKind")
        if schema_kind == OnSchemaGrantKind.ON_SCHEMA:
            name = _parse_identifier(parse_database_object_identifier, rest[1])
        else:
            name = _parse_identifier(parse_account_object_identifier, rest[1])
        scope = OnSchema(schema_kind, name)
    else:
        if len(rest) == 0:
            _expect_parts(parts, 9, id_str)
        schema_object_kind = _parse_exact(OnSchemaObjectGrantKind, rest[0], "OnSchemaObjectGrantKind")
        _expect_parts(parts, 9 if schema_object_kind == OnSchemaObjectGrantKind.ON_OBJECT else 10, id_str)
        scope = _parse_schema_object_scope(schema_object_kind, rest[1:])

    return GrantPrivilegesId(
        role_kind=role_kind,
        role=role,
        scope=scope,
        privileges=privileges,
        all_privileges=all_privileges,
        with_grant_option=with_grant_option,
        always_apply=always_apply,
    )


def parse_grant_ownership_id(id_str: str) -> GrantOwnershipId:
    parts = split_outside_quotes(id_str, DELIMITER)
    if len(parts) < 6:
        raise InvalidGrantIdException(
            "grant ownership identifier should hold at least 6 parts "
            '"<target_role_kind>|<role_name>|<outbound_privileges_behavior>|<grant_type>|<grant_data>...", '
            f"got {len(parts)}: {id_str}"
        )

    role_kind = _parse_exact(RoleKind, parts[0], "GrantOwnershipTargetRoleKind")
    role = _parse_role(role_kind, parts[1])
    outbound_privileges = None
    if parts[2] != "":
        outbound_privileges = _parse_exact(OutboundPrivilegesBehavior, parts[2], "OutboundPrivilegesBehavior")

    kind = _parse_exact(OnSchemaObjectGrantKind, parts[3], "GrantOwnershipKind")
    if kind == OnSchemaObjectGrantKind.ON_OBJECT:
        if len(parts) != 6:
            raise InvalidGrantIdException(f"grant ownership identifier should consist of 6 parts, got {len(parts)}: {id_str}")
    elif len(parts) != 7:
        raise InvalidGrantIdException(f"grant ownership identifier should consist of 7 parts, got {len(parts)}: {id_str}")

    scope = _parse_schema_object_scope(kind, parts[4:])
    return GrantOwnershipId(role_kind=role_kind, role=role, scope=scope, outbound_privileges=outbound_privileges)


def _expect_parts(parts: list[str], expected: int, id_str: str):
    if len(parts) != expected:
        raise InvalidGrantIdException(
            f"grant privileges identifier should hold {expected} parts, got {len(parts)}: {id_str}"
        )
