import logging
from dataclasses import dataclass, field
from typing import Optional

from ..client import OperationContext
from ..provider_config import ProviderConfig
from ..resources import resource_for_label
from ..resources.resource import Diagnostics, Plan, PlanAction, Resource, ResourceData
from .refresh import RefreshItem, refresh

logger = logging.getLogger("snowdrift")


@dataclass
class ApplyResult:
    resource: Resource
    data: ResourceData
    plan: Optional[Plan] = None
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def label(self) -> str:
        return self.resource.label

    def __str__(self):
        action = self.plan.action.value if self.plan else "invalid"
        return f"{action} {self.label} {self.data.id}"


def _task_dependencies(result: ApplyResult) -> list[str]:
    if result.label != "task" or result.plan is None:
        return []
    desired = result.resource.desired(result.data.config)
    return [*desired.get("after", []), *([desired["finalize"]] if desired.get("finalize") else [])]


def creation_order(results: list[ApplyResult]) -> list[ApplyResult]:
    """Tasks after the tasks they depend on, everything else in configuration order."""
    tasks = {result.resource.config_id(result.data.config): result for result in results if result.label == "task"}
    ordered: list[ApplyResult] = []
    visiting: set[int] = set()

    def visit(result: ApplyResult):
        if any(result is done for done in ordered) or id(result) in visiting:
            return
        visiting.add(id(result))
        for dependency in _task_dependencies(result):
            if dependency in tasks:
                visit(tasks[dependency])
        visiting.discard(id(result))
        ordered.append(result)

    for result in results:
        visit(result)
    return ordered


def plan(client, config: ProviderConfig) -> list[ApplyResult]:
    """
    Validate every configured resource, read what exists and diff it.

    Nothing is planned when any configuration is invalid or a read failed.
    Grants on all objects in a container cannot be read back and are planned
    for creation on every run.
    """
    results = []
    for entry in config.resources:
        resource = resource_for_label(entry.label)
        data = ResourceData(config=entry.config)
        diagnostics = resource.validate(entry.config)
        if not diagnostics.has_errors and resource.observable(entry.config):
            data.set_id(resource.config_id(entry.config))
        results.append(ApplyResult(resource, data, diagnostics=diagnostics))

    if any(result.diagnostics.has_errors for result in results):
        return results

    items = [RefreshItem(result.resource, result.data) for result in results]
    refresh(client, items, threads=config.threads)
    for result, item in zip(results, items):
        result.diagnostics.extend(item.diagnostics)
        if not result.diagnostics.has_errors:
            result.plan = result.resource.plan(result.data)
    return results


def dispatch(client, result: ApplyResult) -> Diagnostics:
    resource, data = result.resource, result.data
    action = result.plan.action
    if action == PlanAction.NOOP:
        return Diagnostics()
    logger.info(f"Applying {result}")
    if action == PlanAction.CREATE:
        return resource.create(client, data)
    if action == PlanAction.UPDATE:
        return resource.update(client, data)
    diagnostics = resource.delete(client, data)
    if not diagnostics.has_errors:
        diagnostics.extend(resource.create(client, data))
    return diagnostics


def apply(client, config: ProviderConfig) -> list[ApplyResult]:
    client = client.with_context(OperationContext(warn_on_unobservable=config.warn_on_unobservable))
    results = plan(client, config)
    if any(result.plan is None for result in results):
        logger.error("Plan failed, nothing was applied")
        return results

    changes = [result for result in results if not result.plan.is_empty]
    if config.dry_run:
        for result in changes:
            logger.warning(f"[dry run] {result}")
        return results

    for result in creation_order(changes):
        result.diagnostics.extend(dispatch(client, result))
        if result.diagnostics.has_errors:
            logger.error(f"Stopping after {result} failed")
            break
    return results
