"""
Grant reconciler.

Turns a GrantPrivilegesId into GRANT / REVOKE statements and reads back the
part of Snowflake's privilege graph the id is responsible for.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .enums import BulkOperationGrantKind, ObjectType, OnSchemaGrantKind, OnSchemaObjectGrantKind
from .exceptions import ObjectMissingException, UnsupportedScopeException
from .grant_id import (
    GrantPrivilegesId,
    OnAccount,
    OnAccountObject,
    OnSchema,
    OnSchemaObject,
    Scope,
    parse_grant_privileges_id,
)
from .privs import acceptable_observed_privs, is_ownership_priv, normalize_priv, privs_difference, relabel_observed_priv
from .sql.grants import Grantee, GrantRow, ShowFutureGrantsIn, ShowGrantsFilter, ShowGrantsOn

logger = logging.getLogger("snowdrift")

SNOWFLAKE_DATABASE = "SNOWFLAKE"


@dataclass
class ReadResult:
    privileges: list[str] = field(default_factory=list)
    missing: bool = False
    observed: bool = True
    always_apply_trigger: Optional[str] = None


def grantee_for(grant_id) -> Grantee:
    return Grantee(grant_id.role_kind, grant_id.role)


def show_filter_for_scope(scope: Scope) -> Optional[ShowGrantsFilter]:
    """
    The SHOW statement that observes grants on `scope`, or None when the scope
    cannot be observed (grants on all objects in a container).
    """
    if isinstance(scope, OnAccount):
        return ShowGrantsOn()
    if isinstance(scope, OnAccountObject):
        return ShowGrantsOn(scope.object_type, scope.name)
    if isinstance(scope, OnSchema):
        if scope.kind == OnSchemaGrantKind.ON_SCHEMA:
            return ShowGrantsOn(ObjectType.SCHEMA, scope.name)
        if scope.kind == OnSchemaGrantKind.ON_FUTURE_SCHEMAS_IN_DATABASE:
            return ShowFutureGrantsIn(BulkOperationGrantKind.IN_DATABASE, scope.name)
        return None
    if scope.kind == OnSchemaObjectGrantKind.ON_OBJECT:
        return ShowGrantsOn(scope.data.object_type, scope.data.name)
    if scope.kind == OnSchemaObjectGrantKind.ON_FUTURE:
        return ShowFutureGrantsIn(scope.data.in_kind, scope.data.name)
    return None


def expected_granted_on(scope: Scope) -> str:
    if isinstance(scope, OnAccount):
        return "ACCOUNT"
    if isinstance(scope, OnAccountObject):
        return scope.object_type.value
    if isinstance(scope, OnSchema):
        return ObjectType.SCHEMA.value
    if scope.is_bulk:
        return scope.data.plural_type.singular().value
    return scope.data.object_type.value


def _granted_on_matches(granted_on: str, expected: str) -> bool:
    # Applications are granted on as databases
    if expected == ObjectType.DATABASE.value and granted_on == "APPLICATION":
        return True
    return granted_on == expected


def grantee_rows(rows: list[GrantRow], grant_id, future: bool = False, match_grant_option: bool = True) -> list[GrantRow]:
    """Rows granting a privilege to the grantee of `grant_id` on its scope."""
    grantee = grantee_for(grant_id)
    expected_on = expected_granted_on(grant_id.scope)
    kept = []
    for row in rows:
        if row.granted_to != grantee.granted_to or is_ownership_priv(row.privilege):
            continue
        if match_grant_option and row.grant_option != grant_id.with_grant_option:
            continue
        if not grantee.matches_name(row.grantee_name):
            continue
        # Future grants carry no grantor, neither does the SNOWFLAKE application
        if not future and row.granted_by == "" and row.name != SNOWFLAKE_DATABASE:
            continue
        if not _granted_on_matches(row.granted_on, expected_on):
            continue
        kept.append(row)
    return kept


def filter_observed_privileges(
    rows: list[GrantRow], grant_id, future: bool = False, match_grant_option: bool = True
) -> list[str]:
    """
    Keep the privileges of `rows` that `grant_id` is responsible for.

    Only privileges declared in the id are returned, so grants managed by
    other resources on the same object are never claimed. With
    `match_grant_option` off, privileges held with either grant option count.
    """
    accepted = acceptable_observed_privs(grant_id.privileges)
    observed = []
    for row in grantee_rows(rows, grant_id, future, match_grant_option):
        if normalize_priv(row.privilege) not in accepted:
            continue
        priv = relabel_observed_priv(row.privilege, grant_id.privileges)
        if priv not in observed:
            observed.append(priv)
    return observed


def is_observable(grant_id: GrantPrivilegesId) -> bool:
    return show_filter_for_scope(grant_id.scope) is not None


def create(client, grant_id: GrantPrivilegesId):
    client.grants.grant(
        grant_id.privileges,
        grant_id.scope,
        grantee_for(grant_id),
        with_grant_option=grant_id.with_grant_option,
        all_privileges=grant_id.all_privileges,
    )


def read(client, grant_id: GrantPrivilegesId) -> ReadResult:
    """
    Observe the privileges of `grant_id` that are currently granted.

    A grant none of whose privileges are held reads as missing. Grants on all
    objects in a container cannot be observed: they read as present without
    observation, so they are granted once and not again.
    """
    trigger = str(uuid.uuid4()) if grant_id.always_apply else None
    show_filter = show_filter_for_scope(grant_id.scope)
    if show_filter is None:
        client.context.warn_once(
            f"unobservable:{grant_id.scope.grant_kind}",
            f"Grants on all objects in a container cannot be observed, changes to {grant_id} made in Snowflake "
            "will not be detected",
        )
        return ReadResult(observed=False, always_apply_trigger=trigger)

    if client.roles.show(grant_id.role) is None:
        logger.warning(f"Role {grant_id.role} does not exist, marking grant {grant_id} as removed")
        return ReadResult(missing=True)

    try:
        rows = client.grants.show(show_filter)
    except ObjectMissingException:
        logger.warning(f"Target object of grant {grant_id} not found, marking it as removed")
        return ReadResult(missing=True)

    if grant_id.all_privileges:
        # SHOW GRANTS lists what ALL expanded to, only its presence is checked
        if not grantee_rows(rows, grant_id, future=show_filter.future):
            return ReadResult(missing=True)
        return ReadResult(observed=False, always_apply_trigger=trigger)

    privileges = filter_observed_privileges(rows, grant_id, future=show_filter.future)
    if not privileges and not filter_observed_privileges(
        rows, grant_id, future=show_filter.future, match_grant_option=False
    ):
        logger.info(f"None of the privileges of {grant_id} are granted")
        return ReadResult(missing=True)
    return ReadResult(privileges=privileges, always_apply_trigger=trigger)


def update(client, old_id: GrantPrivilegesId, new_id: GrantPrivilegesId, observed: Iterable[str] = ()):
    """
    Converge the grant from `old_id` to `new_id`.

    `observed` is the privilege set last read from Snowflake. Privileges are
    added before any are removed.
    """
    if not old_id.same_grant_target(new_id):
        raise UnsupportedScopeException(f"grant {old_id} cannot be updated to {new_id}, it has to be recreated")

    grantee = grantee_for(new_id)
    scope = new_id.scope

    if new_id.all_privileges and not old_id.all_privileges:
        client.grants.grant((), scope, grantee, with_grant_option=new_id.with_grant_option, all_privileges=True)
        return
    if old_id.all_privileges and not new_id.all_privileges:
        client.grants.revoke((), scope, grantee, all_privileges=True)
        client.grants.grant(new_id.privileges, scope, grantee, with_grant_option=new_id.with_grant_option)
        return
    if new_id.all_privileges:
        if old_id.with_grant_option and not new_id.with_grant_option:
            client.grants.revoke((), scope, grantee, grant_option_for=True, all_privileges=True)
        client.grants.grant((), scope, grantee, with_grant_option=new_id.with_grant_option, all_privileges=True)
        return

    observed = list(observed)
    to_add = privs_difference(new_id.privileges, observed)
    to_remove = privs_difference(observed, new_id.privileges)
    if old_id.with_grant_option != new_id.with_grant_option:
        to_add = list(new_id.privileges)

    if to_add:
        if not new_id.with_grant_option:
            client.grants.revoke(to_add, scope, grantee, grant_option_for=True)
        client.grants.grant(to_add, scope, grantee, with_grant_option=new_id.with_grant_option)
    if to_remove:
        client.grants.revoke(to_remove, scope, grantee)

    if new_id.always_apply:
        client.grants.grant(new_id.privileges, scope, grantee, with_grant_option=new_id.with_grant_option)


def delete(client, grant_id: GrantPrivilegesId):
    try:
        client.grants.revoke(
            grant_id.privileges,
            grant_id.scope,
            grantee_for(grant_id),
            all_privileges=grant_id.all_privileges,
        )
    except ObjectMissingException as err:
        logger.info(f"Grant {grant_id} is already gone: {err}")


def import_grant(id_str: str) -> GrantPrivilegesId:
    grant_id = parse_grant_privileges_id(id_str)
    if isinstance(grant_id.scope, OnSchemaObject) and grant_id.scope.kind == OnSchemaObjectGrantKind.ON_ALL:
        logger.warning(f"Imported grant {id_str} targets all objects in a container and will not be read back")
    return grant_id
