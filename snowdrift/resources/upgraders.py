"""
State upgraders rewrite ids persisted by earlier schema versions.

Each upgrader takes the raw state of one resource, including its "id", and
returns the raw state of the next version.
"""

import logging

from ..enums import GrantKind, ObjectType, OnSchemaGrantKind, OnSchemaObjectGrantKind, RoleKind
from ..exceptions import InvalidGrantIdException, InvalidIdentifierException
from ..grant_id import DELIMITER, parse_grant_privileges_id
from ..identifiers import (
    AccountObjectIdentifier,
    SchemaObjectIdentifier,
    parse_account_object_identifier,
    parse_database_object_identifier,
    parse_identifier_for_object_type,
)
from ..parse import split_outside_quotes

logger = logging.getLogger("snowdrift")

LEGACY_ROLE_GRANT_PARTS = 17


def upgrade_task_v0(raw: dict) -> dict:
    """db|schema|name ids become fully qualified names."""
    upgraded = dict(raw)
    parts = split_outside_quotes(raw.get("id", ""), DELIMITER)
    if len(parts) == 3:
        upgraded["id"] = SchemaObjectIdentifier(*parts).fully_qualified_name
    return upgraded


def _flag(value: str) -> bool:
    return value == "true"


def _fqn(parser, value: str) -> str:
    try:
        return parser(value).fully_qualified_name
    except InvalidIdentifierException as err:
        raise InvalidGrantIdException(str(err)) from err


def _object_type(value: str) -> ObjectType:
    try:
        return ObjectType(value)
    except ValueError:
        raise InvalidGrantIdException(f"invalid object type in legacy grant identifier: {value}") from None


def legacy_role_grant_to_id(id_str: str) -> str:
    """
    Convert an id of the retired grant_privileges_to_role resource:

        role|privileges|all_privileges|with_grant_option|on_account|on_account_object|on_schema|
        on_schema_object|all|future|object_type|object_name|object_type_plural|in_schema|
        schema_name|in_database|database_name
    """
    parts = id_str.split(DELIMITER)
    if len(parts) != LEGACY_ROLE_GRANT_PARTS:
        raise InvalidGrantIdException(
            f"legacy role grant identifier should hold {LEGACY_ROLE_GRANT_PARTS} parts, got {len(parts)}: {id_str}"
        )
    (
        role,
        privileges,
        all_privileges,
        with_grant_option,
        on_account,
        on_account_object,
        on_schema,
        on_schema_object,
        on_all,
        on_future,
        object_type,
        object_name,
        object_type_plural,
        in_schema,
        schema_name,
        in_database,
        database_name,
    ) = parts

    scope: list[str]
    if _flag(on_account):
        scope = [GrantKind.ON_ACCOUNT.value]
    elif _flag(on_account_object):
        scope = [
            GrantKind.ON_ACCOUNT_OBJECT.value,
            _object_type(object_type).value,
            _fqn(parse_account_object_identifier, object_name),
        ]
    elif _flag(on_schema):
        if _flag(on_all):
            scope = [OnSchemaGrantKind.ON_ALL_SCHEMAS_IN_DATABASE.value, _fqn(parse_account_object_identifier, database_name)]
        elif _flag(on_future):
            scope = [OnSchemaGrantKind.ON_FUTURE_SCHEMAS_IN_DATABASE.value, _fqn(parse_account_object_identifier, database_name)]
        else:
            scope = [OnSchemaGrantKind.ON_SCHEMA.value, _fqn(parse_database_object_identifier, schema_name)]
        scope.insert(0, GrantKind.ON_SCHEMA.value)
    elif _flag(on_schema_object):
        if object_name:
            object_type_ = _object_type(object_type)
            scope = [
                OnSchemaObjectGrantKind.ON_OBJECT.value,
                object_type_.value,
                _fqn(lambda value: parse_identifier_for_object_type(object_type_, value), object_name),
            ]
        else:
            kind = OnSchemaObjectGrantKind.ON_ALL if _flag(on_all) else OnSchemaObjectGrantKind.ON_FUTURE
            if _flag(in_schema):
                container = ["InSchema", _fqn(parse_database_object_identifier, schema_name)]
            elif _flag(in_database):
                container = ["InDatabase", _fqn(parse_account_object_identifier, database_name)]
            else:
                raise InvalidGrantIdException(f"legacy role grant identifier has no container: {id_str}")
            scope = [kind.value, object_type_plural.upper(), *container]
        scope.insert(0, GrantKind.ON_SCHEMA_OBJECT.value)
    else:
        raise InvalidGrantIdException(f"legacy role grant identifier has no scope: {id_str}")

    upgraded = DELIMITER.join(
        [
            RoleKind.TO_ACCOUNT_ROLE.value,
            AccountObjectIdentifier(role).fully_qualified_name,
            "true" if _flag(with_grant_option) else "false",
            "false",
            "ALL" if _flag(all_privileges) else privileges,
            *scope,
        ]
    )
    # Fails loudly on anything the conversion could not make sense of
    return str(parse_grant_privileges_id(upgraded))


def upgrade_account_role_grant_v0(raw: dict) -> dict:
    upgraded = dict(raw)
    id_str = raw.get("id", "")
    if id_str.startswith(RoleKind.TO_ACCOUNT_ROLE.value + DELIMITER):
        return upgraded
    if len(split_outside_quotes(id_str, DELIMITER)) == LEGACY_ROLE_GRANT_PARTS:
        upgraded["id"] = legacy_role_grant_to_id(id_str)
    else:
        upgraded["id"] = str(parse_grant_privileges_id(RoleKind.TO_ACCOUNT_ROLE.value + DELIMITER + id_str))
    logger.info(f"Upgraded grant id {id_str} to {upgraded['id']}")
    return upgraded


def upgrade_database_role_grant_v0(raw: dict) -> dict:
    upgraded = dict(raw)
    id_str = raw.get("id", "")
    parts = split_outside_quotes(id_str, DELIMITER)
    if parts[0] != RoleKind.TO_DATABASE_ROLE.value:
        parts.insert(0, RoleKind.TO_DATABASE_ROLE.value)
    if len(parts) > 5 and parts[5] == "OnDatabase":
        parts[5:6] = [GrantKind.ON_ACCOUNT_OBJECT.value, ObjectType.DATABASE.value]
    upgraded["id"] = str(parse_grant_privileges_id(DELIMITER.join(parts)))
    if upgraded["id"] != id_str:
        logger.info(f"Upgraded grant id {id_str} to {upgraded['id']}")
    return upgraded


def upgrade_state(resource, raw: dict, version: int) -> dict:
    """Run every upgrader from `version` up to the resource's current schema version."""
    while version < resource.schema_version:
        upgrader = resource.state_upgraders.get(version)
        if upgrader is not None:
            raw = upgrader(raw)
        version += 1
    return raw
