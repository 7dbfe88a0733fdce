from .grant_ownership import GrantOwnership
from .grant_privileges import GrantPrivilegesToAccountRole, GrantPrivilegesToDatabaseRole
from .resource import Diagnostic, Diagnostics, Field, Plan, PlanAction, Resource, ResourceData, Severity
from .task import Task
from .upgraders import upgrade_state

RESOURCES: dict[str, Resource] = {
    resource.label: resource
    for resource in (
        GrantPrivilegesToAccountRole(),
        GrantPrivilegesToDatabaseRole(),
        GrantOwnership(),
        Task(),
    )
}


def resource_for_label(label: str) -> Resource:
    if label not in RESOURCES:
        raise ValueError(f"Unknown resource: {label}")
    return RESOURCES[label]


__all__ = [
    "Diagnostic",
    "Diagnostics",
    "Field",
    "GrantOwnership",
    "GrantPrivilegesToAccountRole",
    "GrantPrivilegesToDatabaseRole",
    "Plan",
    "PlanAction",
    "RESOURCES",
    "Resource",
    "ResourceData",
    "Severity",
    "Task",
    "resource_for_label",
    "upgrade_state",
]
