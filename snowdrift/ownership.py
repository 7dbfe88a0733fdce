import logging
from dataclasses import dataclass

from .enums import OnSchemaObjectGrantKind, RoleKind
from .exceptions import ObjectMissingException
from .grant_id import GrantOwnershipId, parse_grant_ownership_id
from .grants import expected_granted_on, grantee_for, show_filter_for_scope
from .privs import OWNERSHIP, normalize_priv
from .sql.grants import Grantee, GrantRow

logger = logging.getLogger("snowdrift")


@dataclass
class OwnershipReadResult:
    found: bool = False
    observed: bool = True


def create(client, grant_id: GrantOwnershipId):
    client.grants.grant_ownership(grant_id.scope, grantee_for(grant_id), grant_id.outbound_privileges)


def owner_in_rows(rows: list[GrantRow], grant_id: GrantOwnershipId, future: bool = False) -> bool:
    grantee = grantee_for(grant_id)
    expected_on = expected_granted_on(grant_id.scope)
    for row in rows:
        if normalize_priv(row.privilege) != OWNERSHIP:
            continue
        if not future and row.granted_by == "":
            continue
        if row.granted_on != expected_on or row.granted_to != grantee.granted_to:
            continue
        if grantee.matches_name(row.grantee_name):
            return True
    return False


def is_observable(grant_id: GrantOwnershipId) -> bool:
    return show_filter_for_scope(grant_id.scope) is not None


def read(client, grant_id: GrantOwnershipId) -> OwnershipReadResult:
    show_filter = show_filter_for_scope(grant_id.scope)
    if show_filter is None:
        client.context.warn_once(
            f"unobservable-ownership:{grant_id.scope.data.plural_type}",
            f"Ownership on all {grant_id.scope.data.plural_type} in {grant_id.scope.data.name} cannot be observed, "
            "changes made in Snowflake will not be detected",
        )
        return OwnershipReadResult(found=True, observed=False)
    try:
        rows = client.grants.show(show_filter)
    except ObjectMissingException:
        return OwnershipReadResult(found=False)
    return OwnershipReadResult(found=owner_in_rows(rows, grant_id, future=show_filter.future))


def delete(client, grant_id: GrantOwnershipId):
    """
    Hand ownership back to the role of the current session.

    Future ownership grants are left in place.
    """
    if grant_id.scope.kind == OnSchemaObjectGrantKind.ON_FUTURE:
        logger.warning(
            f"Ownership grant {grant_id} on future objects is not revoked, remove it manually with "
            "REVOKE OWNERSHIP ON FUTURE if needed"
        )
        return
    current_role = client.session.current_role()
    client.grants.grant_ownership(
        grant_id.scope,
        Grantee(RoleKind.TO_ACCOUNT_ROLE, current_role),
        grant_id.outbound_privileges,
    )


def import_ownership(id_str: str) -> GrantOwnershipId:
    return parse_grant_ownership_id(id_str)
