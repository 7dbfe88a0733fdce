import logging

from .. import ownership
from ..enums import OutboundPrivilegesBehavior, RoleKind
from ..exceptions import InvalidConfigException
from ..grant_id import GrantOwnershipId
from ..identifiers import parse_account_object_identifier, parse_database_object_identifier
from .grant_privileges import enum_value, schema_object_scope_from_config, schema_object_scope_to_config
from .resource import Diagnostics, Field, Resource, ResourceData, diagnose, require_one_of

logger = logging.getLogger("snowdrift")


class GrantOwnership(Resource):
    """
    Transfers ownership of one object, or of all / future objects in a container.

        account_role_name: LOADER
        outbound_privileges: COPY
        on:
          object_type: TABLE
          object_name: RAW.PUBLIC.EVENTS
    """

    label = "grant_ownership"
    schema_version = 0
    schema = {
        "account_role_name": Field(force_new=True),
        "database_role_name": Field(force_new=True),
        "outbound_privileges": Field(force_new=True),
        "on": Field(kind="map", required=True, force_new=True),
    }

    def expand(self, config: dict) -> GrantOwnershipId:
        role_key = require_one_of(config, ["account_role_name", "database_role_name"])
        if role_key == "account_role_name":
            role_kind, role = RoleKind.TO_ACCOUNT_ROLE, parse_account_object_identifier(config[role_key])
        else:
            role_kind, role = RoleKind.TO_DATABASE_ROLE, parse_database_object_identifier(config[role_key])
        outbound = config.get("outbound_privileges")
        if outbound is not None:
            outbound = enum_value(OutboundPrivilegesBehavior, str(outbound).upper(), "outbound_privileges")
        if not config.get("on"):
            raise InvalidConfigException("on is required")
        return GrantOwnershipId(
            role_kind=role_kind,
            role=role,
            scope=schema_object_scope_from_config(config["on"]),
            outbound_privileges=outbound,
        )

    def project(self, grant_id: GrantOwnershipId) -> dict:
        is_account_role = grant_id.role_kind == RoleKind.TO_ACCOUNT_ROLE
        return {
            "account_role_name": grant_id.role.fully_qualified_name if is_account_role else None,
            "database_role_name": None if is_account_role else grant_id.role.fully_qualified_name,
            "outbound_privileges": grant_id.outbound_privileges.value if grant_id.outbound_privileges else None,
            "on": schema_object_scope_to_config(grant_id.scope),
        }

    def desired(self, config: dict) -> dict:
        return self.project(self.expand(config))

    def config_id(self, config: dict) -> str:
        return str(self.expand(config))

    def observable(self, config: dict) -> bool:
        return ownership.is_observable(self.expand(config))

    @diagnose("create")
    def create(self, client, data: ResourceData) -> Diagnostics:
        grant_id = self.expand(data.config)
        ownership.create(client, grant_id)
        data.set_id(str(grant_id))
        return self.read(client, data)

    @diagnose("read")
    def read(self, client, data: ResourceData) -> Diagnostics:
        grant_id = ownership.import_ownership(data.id)
        result = ownership.read(client, grant_id)
        if not result.found:
            data.set_id("")
            return Diagnostics().warning(
                f"{self.label} no longer exists",
                f"Id: {grant_id}\nOwnership was transferred outside of snowdrift, it will be granted again",
            )
        data.state.update(self.project(grant_id))
        return Diagnostics()

    @diagnose("update")
    def update(self, client, data: ResourceData) -> Diagnostics:
        # Every field forces a replacement, there is nothing to alter in place
        return self.read(client, data)

    @diagnose("delete")
    def delete(self, client, data: ResourceData) -> Diagnostics:
        ownership.delete(client, ownership.import_ownership(data.id))
        data.set_id("")
        return Diagnostics()

    def import_id(self, id: str, data: ResourceData):
        grant_id = ownership.import_ownership(id)
        data.set_id(str(grant_id))
        data.state.update(self.project(grant_id))
