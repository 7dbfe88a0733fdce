"""
Adaptors for grant_privileges_to_account_role and grant_privileges_to_database_role.

A configuration block names the grantee, exactly one scope block and the
privileges. It is narrowed into a GrantPrivilegesId; the id string is the
resource id. State holds the reverse projection of the id with the
privileges replaced by what was observed in Snowflake.

    account_role_name: ANALYST
    on_schema_object:
      future:
        object_type_plural: TABLES
        in_schema: ANALYTICS.PUBLIC
    privileges: [SELECT]
"""

import logging
from typing import Optional

from .. import grants
from ..enums import (
    BulkOperationGrantKind,
    ObjectType,
    OnSchemaGrantKind,
    OnSchemaObjectGrantKind,
    PluralObjectType,
    RoleKind,
)
from ..exceptions import InvalidConfigException, InvalidGrantIdException
from ..grant_id import (
    BulkOperation,
    GrantPrivilegesId,
    ObjectRef,
    OnAccount,
    OnAccountObject,
    OnSchema,
    OnSchemaObject,
    Scope,
    parse_grant_privileges_id,
)
from ..identifiers import (
    parse_account_object_identifier,
    parse_database_object_identifier,
    parse_identifier_for_object_type,
)
from ..privs import IMPORTED_PRIVILEGES, USAGE, normalize_priv, priv_set
from .resource import Diagnostics, Field, Resource, ResourceData, diagnose, require_one_of
from .upgraders import upgrade_account_role_grant_v0, upgrade_database_role_grant_v0

logger = logging.getLogger("snowdrift")


def _privileges_key(value) -> list[str]:
    return sorted(priv_set(value or []))


def enum_value(enum_cls, value, key: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidConfigException(f"invalid {key}: {value}") from None


def bulk_operation_from_config(block: dict, label: str) -> BulkOperation:
    if not isinstance(block, dict):
        raise InvalidConfigException(f"{label} must be a mapping, got: {block!r}")
    plural_type = enum_value(PluralObjectType, block.get("object_type_plural"), "object_type_plural")
    in_key = require_one_of(block, ["in_database", "in_schema"])
    if in_key == "in_database":
        return BulkOperation(plural_type, BulkOperationGrantKind.IN_DATABASE, parse_account_object_identifier(block[in_key]))
    return BulkOperation(plural_type, BulkOperationGrantKind.IN_SCHEMA, parse_database_object_identifier(block[in_key]))


def bulk_operation_to_config(bulk: BulkOperation) -> dict:
    in_key = "in_database" if bulk.in_kind == BulkOperationGrantKind.IN_DATABASE else "in_schema"
    return {"object_type_plural": bulk.plural_type.value, in_key: bulk.name.fully_qualified_name}


def schema_object_scope_from_config(block: dict) -> OnSchemaObject:
    """
    Shared by privilege and ownership grants:

        {object_type, object_name} | {all: {...}} | {future: {...}}
    """
    if not isinstance(block, dict):
        raise InvalidConfigException(f"schema object scope must be a mapping, got: {block!r}")
    if block.get("all") or block.get("future"):
        if block.get("object_type") or block.get("object_name"):
            raise InvalidConfigException("object_type and object_name cannot be combined with all or future")
        key = require_one_of(block, ["all", "future"])
        kind = OnSchemaObjectGrantKind.ON_ALL if key == "all" else OnSchemaObjectGrantKind.ON_FUTURE
        return OnSchemaObject(kind, bulk_operation_from_config(block[key], key))
    if not block.get("object_type") or not block.get("object_name"):
        raise InvalidConfigException("object_type and object_name are required unless all or future is set")
    object_type = enum_value(ObjectType, block["object_type"], "object_type")
    name = parse_identifier_for_object_type(object_type, block["object_name"])
    return OnSchemaObject(OnSchemaObjectGrantKind.ON_OBJECT, ObjectRef(object_type, name))


def schema_object_scope_to_config(scope: OnSchemaObject) -> dict:
    if scope.kind == OnSchemaObjectGrantKind.ON_OBJECT:
        return {"object_type": scope.data.object_type.value, "object_name": scope.data.name.fully_qualified_name}
    key = "all" if scope.kind == OnSchemaObjectGrantKind.ON_ALL else "future"
    return {key: bulk_operation_to_config(scope.data)}


def _schema_scope_from_config(block: dict) -> OnSchema:
    if not isinstance(block, dict):
        raise InvalidConfigException(f"on_schema must be a mapping, got: {block!r}")
    key = require_one_of(block, ["schema_name", "all_schemas_in_database", "future_schemas_in_database"])
    if key == "schema_name":
        return OnSchema(OnSchemaGrantKind.ON_SCHEMA, parse_database_object_identifier(block[key]))
    kind = (
        OnSchemaGrantKind.ON_ALL_SCHEMAS_IN_DATABASE
        if key == "all_schemas_in_database"
        else OnSchemaGrantKind.ON_FUTURE_SCHEMAS_IN_DATABASE
    )
    return OnSchema(kind, parse_account_object_identifier(block[key]))


def _schema_scope_to_config(scope: OnSchema) -> dict:
    key = {
        OnSchemaGrantKind.ON_SCHEMA: "schema_name",
        OnSchemaGrantKind.ON_ALL_SCHEMAS_IN_DATABASE: "all_schemas_in_database",
        OnSchemaGrantKind.ON_FUTURE_SCHEMAS_IN_DATABASE: "future_schemas_in_database",
    }[scope.kind]
    return {key: scope.name.fully_qualified_name}


def _declared_privileges(config: dict) -> list[str]:
    privileges = [normalize_priv(priv) for priv in config.get("privileges") or []]
    if config.get("imported_privileges"):
        privileges = [IMPORTED_PRIVILEGES if priv == USAGE else priv for priv in privileges]
        if IMPORTED_PRIVILEGES not in privileges:
            privileges.append(IMPORTED_PRIVILEGES)
    return privileges


_COMMON_FIELDS = {
    "privileges": Field(kind="set", normalize=_privileges_key),
    "all_privileges": Field(kind="bool", default=False),
    "with_grant_option": Field(kind="bool", default=False),
    "always_apply": Field(kind="bool", default=False),
    "always_apply_trigger": Field(default=""),
    "imported_privileges": Field(kind="bool", default=False),
}


class GrantPrivilegesResource(Resource):
    role_key: str = ""
    role_kind: RoleKind = RoleKind.TO_ACCOUNT_ROLE
    scope_keys: list[str] = []
    schema_version = 1

    def parse_role(self, value: str):
        raise NotImplementedError

    def scope_from_config(self, key: str, block) -> Scope:
        raise NotImplementedError

    def scope_to_config(self, scope: Scope) -> dict:
        raise NotImplementedError

    def expand(self, config: dict) -> GrantPrivilegesId:
        if not config.get(self.role_key):
            raise InvalidConfigException(f"{self.role_key} is required")
        scope_key = require_one_of(config, self.scope_keys)
        privileges = _declared_privileges(config)
        all_privileges = bool(config.get("all_privileges"))
        if all_privileges and privileges:
            raise InvalidConfigException("privileges and all_privileges are mutually exclusive")
        return GrantPrivilegesId(
            role_kind=self.role_kind,
            role=self.parse_role(config[self.role_key]),
            scope=self.scope_from_config(scope_key, config[scope_key]),
            privileges=tuple(privileges),
            all_privileges=all_privileges,
            with_grant_option=bool(config.get("with_grant_option")),
            always_apply=bool(config.get("always_apply")),
        )

    def project(self, grant_id: GrantPrivilegesId, privileges: Optional[list[str]] = None) -> dict:
        """Reverse projection of an id into configuration fields."""
        privileges = list(grant_id.privileges if privileges is None else privileges)
        state = {key: None for key in self.scope_keys}
        state.update(self.scope_to_config(grant_id.scope))
        state.update(
            {
                self.role_key: grant_id.role.fully_qualified_name,
                "privileges": privileges,
                "all_privileges": grant_id.all_privileges,
                "with_grant_option": grant_id.with_grant_option,
                "always_apply": grant_id.always_apply,
                "always_apply_trigger": "",
                "imported_privileges": IMPORTED_PRIVILEGES in privileges,
            }
        )
        return state

    def desired(self, config: dict) -> dict:
        return self.project(self.expand(config))

    def config_id(self, config: dict) -> str:
        return str(self.expand(config))

    def observable(self, config: dict) -> bool:
        return grants.is_observable(self.expand(config))

    def _parse_id(self, id: str) -> GrantPrivilegesId:
        grant_id = parse_grant_privileges_id(id)
        if grant_id.role_kind != self.role_kind:
            raise InvalidGrantIdException(f"{self.label} expects a {self.role_kind} id, got: {id}")
        return grant_id

    @diagnose("create")
    def create(self, client, data: ResourceData) -> Diagnostics:
        grant_id = self.expand(data.config)
        grants.create(client, grant_id)
        data.set_id(str(grant_id))
        if not grants.is_observable(grant_id):
            data.state.update(self.project(grant_id))
            return Diagnostics()
        return self.read(client, data)

    @diagnose("read")
    def read(self, client, data: ResourceData) -> Diagnostics:
        grant_id = self._parse_id(data.id)
        result = grants.read(client, grant_id)
        if result.missing:
            data.set_id("")
            return Diagnostics().warning(
                f"{self.label} is not granted",
                f"Id: {grant_id}\nThe privileges, the grantee or the target object were not found, the grant will be created",
            )
        data.state.update(self.project(grant_id, result.privileges if result.observed else None))
        data.set("always_apply_trigger", result.always_apply_trigger or "")
        return Diagnostics()

    @diagnose("update")
    def update(self, client, data: ResourceData) -> Diagnostics:
        old_id = self._parse_id(data.id)
        new_id = self.expand(data.config)
        observed = data.state.get("privileges")
        grants.update(client, old_id, new_id, old_id.privileges if observed is None else observed)
        data.set_id(str(new_id))
        return self.read(client, data)

    @diagnose("delete")
    def delete(self, client, data: ResourceData) -> Diagnostics:
        grants.delete(client, self._parse_id(data.id))
        data.set_id("")
        return Diagnostics()

    def import_id(self, id: str, data: ResourceData):
        grant_id = grants.import_grant(id)
        if grant_id.role_kind != self.role_kind:
            raise InvalidGrantIdException(f"{self.label} expects a {self.role_kind} id, got: {id}")
        data.set_id(str(grant_id))
        data.state.update(self.project(grant_id))


class GrantPrivilegesToAccountRole(GrantPrivilegesResource):
    label = "grant_privileges_to_account_role"
    role_key = "account_role_name"
    role_kind = RoleKind.TO_ACCOUNT_ROLE
    scope_keys = ["on_account", "on_account_object", "on_schema", "on_schema_object"]
    state_upgraders = {0: upgrade_account_role_grant_v0}
    schema = {
        "account_role_name": Field(required=True, force_new=True),
        "on_account": Field(kind="bool", force_new=True),
        "on_account_object": Field(kind="map", force_new=True),
        "on_schema": Field(kind="map", force_new=True),
        "on_schema_object": Field(kind="map", force_new=True),
        **_COMMON_FIELDS,
    }

    def parse_role(self, value: str):
        return parse_account_object_identifier(value)

    def scope_from_config(self, key: str, block) -> Scope:
        if key == "on_account":
            return OnAccount()
        if key == "on_account_object":
            if not isinstance(block, dict):
                raise InvalidConfigException(f"on_account_object must be a mapping, got: {block!r}")
            object_type = enum_value(ObjectType, block.get("object_type"), "object_type")
            return OnAccountObject(object_type, parse_account_object_identifier(block.get("object_name")))
        if key == "on_schema":
            return _schema_scope_from_config(block)
        return schema_object_scope_from_config(block)

    def scope_to_config(self, scope: Scope) -> dict:
        if isinstance(scope, OnAccount):
            return {"on_account": True}
        if isinstance(scope, OnAccountObject):
            return {
                "on_account_object": {
                    "object_type": scope.object_type.value,
                    "object_name": scope.name.fully_qualified_name,
                }
            }
        if isinstance(scope, OnSchema):
            return {"on_schema": _schema_scope_to_config(scope)}
        return {"on_schema_object": schema_object_scope_to_config(scope)}


class GrantPrivilegesToDatabaseRole(GrantPrivilegesResource):
    label = "grant_privileges_to_database_role"
    role_key = "database_role_name"
    role_kind = RoleKind.TO_DATABASE_ROLE
    scope_keys = ["on_database", "on_schema", "on_schema_object"]
    state_upgraders = {0: upgrade_database_role_grant_v0}
    schema = {
        "database_role_name": Field(required=True, force_new=True),
        "on_database": Field(force_new=True),
        "on_schema": Field(kind="map", force_new=True),
        "on_schema_object": Field(kind="map", force_new=True),
        **_COMMON_FIELDS,
    }

    def parse_role(self, value: str):
        return parse_database_object_identifier(value)

    def scope_from_config(self, key: str, block) -> Scope:
        if key == "on_database":
            return OnAccountObject(ObjectType.DATABASE, parse_account_object_identifier(block))
        if key == "on_schema":
            return _schema_scope_from_config(block)
        return schema_object_scope_from_config(block)

    def scope_to_config(self, scope: Scope) -> dict:
        if isinstance(scope, OnAccountObject):
            return {"on_database": scope.name.fully_qualified_name}
        if isinstance(scope, OnSchema):
            return {"on_schema": _schema_scope_to_config(scope)}
        return {"on_schema_object": schema_object_scope_to_config(scope)}
