from dataclasses import dataclass, field
from typing import Optional

from .enums import OutboundPrivilegesBehavior
from .resources import RESOURCES


@dataclass
class ResourceConfig:
    label: str
    config: dict

    def __post_init__(self):
        if self.label not in RESOURCES:
            raise ValueError(f"Unknown resource: {self.label}, valid resources are {', '.join(sorted(RESOURCES))}")
        if not isinstance(self.config, dict):
            raise ValueError(f"{self.label} config must be a dictionary, got: {self.config!r}")


@dataclass
class ProviderConfig:
    resources: list[ResourceConfig] = field(default_factory=list)
    threads: int = 8
    dry_run: bool = False
    warn_on_unobservable: bool = True
    default_outbound_privileges: Optional[OutboundPrivilegesBehavior] = None
    vars: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.resources is None:
            raise ValueError("resources must be provided")
        if self.dry_run is None:
            raise ValueError("dry_run must be provided")
        if self.vars is None:
            raise ValueError("vars must be provided")

        if not isinstance(self.vars, dict):
            raise ValueError(f"vars must be a dictionary, got: {self.vars=}")

        if not isinstance(self.threads, int) or isinstance(self.threads, bool) or self.threads < 1:
            raise ValueError(f"threads must be a positive integer, got: {self.threads}")

        if self.default_outbound_privileges is not None and not isinstance(
            self.default_outbound_privileges, OutboundPrivilegesBehavior
        ):
            self.default_outbound_privileges = OutboundPrivilegesBehavior(str(self.default_outbound_privileges).upper())

        if self.default_outbound_privileges is not None:
            for resource in self.resources:
                if resource.label == "grant_ownership" and resource.config.get("outbound_privileges") is None:
                    resource.config["outbound_privileges"] = self.default_outbound_privileges.value
