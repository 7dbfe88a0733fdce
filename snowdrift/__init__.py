import logging

from .client import OperationContext, SnowflakeClient
from .grant_id import GrantOwnershipId, GrantPrivilegesId, parse_grant_ownership_id, parse_grant_privileges_id
from .identifiers import (
    AccountObjectIdentifier,
    DatabaseObjectIdentifier,
    SchemaObjectIdentifier,
    SchemaObjectIdentifierWithArguments,
    TableColumnIdentifier,
)

logger = logging.getLogger("snowdrift")


__all__ = [
    "AccountObjectIdentifier",
    "DatabaseObjectIdentifier",
    "GrantOwnershipId",
    "GrantPrivilegesId",
    "OperationContext",
    "SchemaObjectIdentifier",
    "SchemaObjectIdentifierWithArguments",
    "SnowflakeClient",
    "TableColumnIdentifier",
    "parse_grant_ownership_id",
    "parse_grant_privileges_id",
]
