from dataclasses import dataclass, field
from typing import Union

from .enums import IdentifierKind, ObjectType
from .exceptions import InvalidIdentifierException
from .parse import parse_identifier_parts, quote_part


@dataclass(frozen=True)
class AccountObjectIdentifier:
    name: str

    @property
    def fully_qualified_name(self) -> str:
        return quote_part(self.name)

    def __str__(self):
        return self.fully_qualified_name


@dataclass(frozen=True)
class DatabaseObjectIdentifier:
    database: str
    name: str

    @property
    def database_identifier(self) -> AccountObjectIdentifier:
        return AccountObjectIdentifier(self.database)

    @property
    def fully_qualified_name(self) -> str:
        return ".".join(quote_part(part) for part in (self.database, self.name))

    def __str__(self):
        return self.fully_qualified_name


@dataclass(frozen=True)
class SchemaObjectIdentifier:
    database: str
    schema: str
    name: str

    @property
    def database_identifier(self) -> AccountObjectIdentifier:
        return AccountObjectIdentifier(self.database)

    @property
    def schema_identifier(self) -> DatabaseObjectIdentifier:
        return DatabaseObjectIdentifier(self.database, self.schema)

    @property
    def fully_qualified_name(self) -> str:
        return ".".join(quote_part(part) for part in (self.database, self.schema, self.name))

    def __str__(self):
        return self.fully_qualified_name


@dataclass(frozen=True)
class SchemaObjectIdentifierWithArguments:
    database: str
    schema: str
    name: str
    argument_types: tuple[str, ...] = field(default_factory=tuple)

    @property
    def schema_identifier(self) -> DatabaseObjectIdentifier:
        return DatabaseObjectIdentifier(self.database, self.schema)

    @property
    def fully_qualified_name(self) -> str:
        base = ".".join(quote_part(part) for part in (self.database, self.schema, self.name))
        return f"{base}({', '.join(self.argument_types)})"

    def __str__(self):
        return self.fully_qualified_name


@dataclass(frozen=True)
class TableColumnIdentifier:
    database: str
    schema: str
    table: str
    column: str

    @property
    def table_identifier(self) -> SchemaObjectIdentifier:
        return SchemaObjectIdentifier(self.database, self.schema, self.table)

    @property
    def fully_qualified_name(self) -> str:
        return ".".join(quote_part(part) for part in (self.database, self.schema, self.table, self.column))

    def __str__(self):
        return self.fully_qualified_name


ObjectIdentifier = Union[
    AccountObjectIdentifier,
    DatabaseObjectIdentifier,
    SchemaObjectIdentifier,
    SchemaObjectIdentifierWithArguments,
    TableColumnIdentifier,
]

_EXPECTED_FORMS = {
    IdentifierKind.ACCOUNT_OBJECT: (1, "<account_object_name>"),
    IdentifierKind.DATABASE_OBJECT: (2, "<database_name>.<database_object_name>"),
    IdentifierKind.SCHEMA_OBJECT: (3, "<database_name>.<schema_name>.<schema_object_name>"),
    IdentifierKind.SCHEMA_OBJECT_WITH_ARGUMENTS: (
        3,
        "<database_name>.<schema_name>.<schema_object_name>(<argname> <argtype>...)",
    ),
    IdentifierKind.TABLE_COLUMN: (4, "<database_name>.<schema_name>.<table_name>.<table_column_name>"),
}


def _parse_parts(identifier: str, kind: IdentifierKind) -> tuple[list[str], list[str]]:
    parts, arguments = parse_identifier_parts(identifier)
    expected, form = _EXPECTED_FORMS[kind]
    if len(parts) != expected:
        raise InvalidIdentifierException(
            f'invalid number of parts {len(parts)} in identifier {identifier}, expected {expected} in a form "{form}"'
        )
    if arguments is not None and kind != IdentifierKind.SCHEMA_OBJECT_WITH_ARGUMENTS:
        raise InvalidIdentifierException(f"identifier {identifier} cannot carry an argument list")
    return parts, arguments or []


def parse_account_object_identifier(identifier: str) -> AccountObjectIdentifier:
    parts, _ = _parse_parts(identifier, IdentifierKind.ACCOUNT_OBJECT)
    return AccountObjectIdentifier(*parts)


def parse_database_object_identifier(identifier: str) -> DatabaseObjectIdentifier:
    parts, _ = _parse_parts(identifier, IdentifierKind.DATABASE_OBJECT)
    return DatabaseObjectIdentifier(*parts)


def parse_schema_object_identifier(identifier: str) -> SchemaObjectIdentifier:
    parts, _ = _parse_parts(identifier, IdentifierKind.SCHEMA_OBJECT)
    return SchemaObjectIdentifier(*parts)


def parse_schema_object_identifier_with_arguments(identifier: str) -> SchemaObjectIdentifierWithArguments:
    parts, arguments = _parse_parts(identifier, IdentifierKind.SCHEMA_OBJECT_WITH_ARGUMENTS)
    return SchemaObjectIdentifierWithArguments(*parts, argument_types=tuple(arguments))


def parse_table_column_identifier(identifier: str) -> TableColumnIdentifier:
    parts, _ = _parse_parts(identifier, IdentifierKind.TABLE_COLUMN)
    return TableColumnIdentifier(*parts)


_PARSERS = {
    IdentifierKind.ACCOUNT_OBJECT: parse_account_object_identifier,
    IdentifierKind.DATABASE_OBJECT: parse_database_object_identifier,
    IdentifierKind.SCHEMA_OBJECT: parse_schema_object_identifier,
    IdentifierKind.SCHEMA_OBJECT_WITH_ARGUMENTS: parse_schema_object_identifier_with_arguments,
    IdentifierKind.TABLE_COLUMN: parse_table_column_identifier,
}

_ACCOUNT_OBJECT_TYPES = {
    ObjectType.API_INTEGRATION,
    ObjectType.APPLICATION,
    ObjectType.APPLICATION_PACKAGE,
    ObjectType.COMPUTE_POOL,
    ObjectType.CONNECTION,
    ObjectType.DATABASE,
    ObjectType.EXTERNAL_ACCESS_INTEGRATION,
    ObjectType.EXTERNAL_VOLUME,
    ObjectType.FAILOVER_GROUP,
    ObjectType.INTEGRATION,
    ObjectType.NETWORK_POLICY,
    ObjectType.NOTIFICATION_INTEGRATION,
    ObjectType.REPLICATION_GROUP,
    ObjectType.RESOURCE_MONITOR,
    ObjectType.ROLE,
    ObjectType.SECURITY_INTEGRATION,
    ObjectType.SHARE,
    ObjectType.STORAGE_INTEGRATION,
    ObjectType.USER,
    ObjectType.WAREHOUSE,
}

_DATABASE_OBJECT_TYPES = {
    ObjectType.DATABASE_ROLE,
    ObjectType.SCHEMA,
}

_SCHEMA_OBJECT_TYPES = {
    ObjectType.AGGREGATION_POLICY,
    ObjectType.ALERT,
    ObjectType.AUTHENTICATION_POLICY,
    ObjectType.CORTEX_SEARCH_SERVICE,
    ObjectType.DYNAMIC_TABLE,
    ObjectType.EVENT_TABLE,
    ObjectType.EXTERNAL_TABLE,
    ObjectType.FILE_FORMAT,
    ObjectType.GIT_REPOSITORY,
    ObjectType.HYBRID_TABLE,
    ObjectType.ICEBERG_TABLE,
    ObjectType.IMAGE_REPOSITORY,
    ObjectType.MASKING_POLICY,
    ObjectType.MATERIALIZED_VIEW,
    ObjectType.MODEL,
    ObjectType.NETWORK_RULE,
    ObjectType.NOTEBOOK,
    ObjectType.PACKAGES_POLICY,
    ObjectType.PASSWORD_POLICY,
    ObjectType.PIPE,
    ObjectType.PROJECTION_POLICY,
    ObjectType.ROW_ACCESS_POLICY,
    ObjectType.SECRET,
    ObjectType.SEQUENCE,
    ObjectType.SERVICE,
    ObjectType.SESSION_POLICY,
    ObjectType.STAGE,
    ObjectType.STREAM,
    ObjectType.STREAMLIT,
    ObjectType.TABLE,
    ObjectType.TAG,
    ObjectType.TASK,
    ObjectType.VIEW,
}

_SCHEMA_OBJECT_WITH_ARGUMENTS_TYPES = {
    ObjectType.EXTERNAL_FUNCTION,
    ObjectType.FUNCTION,
    ObjectType.PROCEDURE,
}

_IDENTIFIER_KIND_FOR_OBJECT_TYPE: dict[ObjectType, IdentifierKind] = {
    **{object_type: IdentifierKind.ACCOUNT_OBJECT for object_type in _ACCOUNT_OBJECT_TYPES},
    **{object_type: IdentifierKind.DATABASE_OBJECT for object_type in _DATABASE_OBJECT_TYPES},
    **{object_type: IdentifierKind.SCHEMA_OBJECT for object_type in _SCHEMA_OBJECT_TYPES},
    **{object_type: IdentifierKind.SCHEMA_OBJECT_WITH_ARGUMENTS for object_type in _SCHEMA_OBJECT_WITH_ARGUMENTS_TYPES},
    ObjectType.COLUMN: IdentifierKind.TABLE_COLUMN,
}


def object_type_to_identifier_kind(object_type: ObjectType) -> IdentifierKind:
    if object_type not in _IDENTIFIER_KIND_FOR_OBJECT_TYPE:
        raise InvalidIdentifierException(
            f"object type {object_type} has no identifier mapping, please file a feature request "
            "so it can be added to the list of supported object types"
        )
    return _IDENTIFIER_KIND_FOR_OBJECT_TYPE[object_type]


def parse_identifier_for_object_type(object_type: ObjectType, identifier: str) -> ObjectIdentifier:
    return _PARSERS[object_type_to_identifier_kind(object_type)](identifier)


def identifier_from_parts(parts: list[str]) -> ObjectIdentifier:
    """Build the identifier variant matching the number of unquoted parts."""
    if len(parts) == 1:
        return AccountObjectIdentifier(*parts)
    elif len(parts) == 2:
        return DatabaseObjectIdentifier(*parts)
    elif len(parts) == 3:
        return SchemaObjectIdentifier(*parts)
    elif len(parts) == 4:
        return TableColumnIdentifier(*parts)
    raise InvalidIdentifierException(f"unsupported number of identifier parts: {len(parts)}")


IDENTIFIER_CLASSES = {
    IdentifierKind.ACCOUNT_OBJECT: AccountObjectIdentifier,
    IdentifierKind.DATABASE_OBJECT: DatabaseObjectIdentifier,
    IdentifierKind.SCHEMA_OBJECT: SchemaObjectIdentifier,
    IdentifierKind.SCHEMA_OBJECT_WITH_ARGUMENTS: SchemaObjectIdentifierWithArguments,
    IdentifierKind.TABLE_COLUMN: TableColumnIdentifier,
}
