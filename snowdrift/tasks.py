import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .exceptions import InvalidConfigException, NotADAGException
from .identifiers import AccountObjectIdentifier, SchemaObjectIdentifier
from .sql.render import Raw, dollar_quote
from .sql.tasks import AlterTaskRequest, CreateTaskRequest, TaskRow
from .task_dag import TaskShape, shape_transition, suspended_roots, task_shape
from .task_parameters import TASK_PARAMETERS, parameters_from_show, parse_parameters

logger = logging.getLogger("snowdrift")


@dataclass
class TaskDescriptor:
    id: SchemaObjectIdentifier
    sql_statement: str
    enabled: bool = False
    warehouse: Optional[AccountObjectIdentifier] = None
    schedule: Optional[str] = None
    config: Optional[str] = None
    allow_overlapping_execution: bool = False
    error_integration: Optional[AccountObjectIdentifier] = None
    comment: Optional[str] = None
    when: Optional[str] = None
    after: tuple[SchemaObjectIdentifier, ...] = ()
    finalize: Optional[SchemaObjectIdentifier] = None
    parameters: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.after = tuple(self.after)
        self.parameters = parse_parameters(self.parameters)
        triggers = [name for name, value in (("schedule", self.schedule), ("after", self.after), ("finalize", self.finalize)) if value]
        if len(triggers) > 1:
            raise InvalidConfigException(f"task {self.id} can set only one of schedule, after and finalize, got: {', '.join(triggers)}")
        if self.id in self.after or self.finalize == self.id:
            raise NotADAGException(f"task {self.id} cannot depend on itself")
        if len(set(self.after)) != len(self.after):
            raise InvalidConfigException(f"task {self.id} lists a predecessor more than once")

    @property
    def shape(self) -> TaskShape:
        return task_shape(self.after, self.finalize)

    @property
    def is_root(self) -> bool:
        return self.shape == TaskShape.STANDALONE


@dataclass
class ObservedTask:
    descriptor: TaskDescriptor
    row: TaskRow

    @property
    def owner(self) -> str:
        return self.row.owner


def _task_properties(desc: TaskDescriptor) -> dict[str, Any]:
    """Settable properties in CREATE TASK order, omitting unset ones."""
    properties: dict[str, Any] = {}
    if desc.warehouse:
        properties["WAREHOUSE"] = desc.warehouse
    if desc.schedule:
        properties["SCHEDULE"] = desc.schedule
    if desc.config:
        properties["CONFIG"] = Raw(dollar_quote(desc.config))
    if desc.allow_overlapping_execution:
        properties["ALLOW_OVERLAPPING_EXECUTION"] = True
    for name, value in desc.parameters.items():
        properties[name] = Raw(TASK_PARAMETERS[name].render(value))
    if desc.error_integration:
        properties["ERROR_INTEGRATION"] = desc.error_integration
    if desc.comment:
        properties["COMMENT"] = desc.comment
    return properties


def _trigger_targets(desc: TaskDescriptor) -> list[SchemaObjectIdentifier]:
    return [*desc.after, *([desc.finalize] if desc.finalize else [])]


def _check_finalize_target(dag, desc: TaskDescriptor):
    if desc.finalize is None:
        return
    target = dag.row(desc.finalize)
    if target is not None and not target.is_root:
        raise InvalidConfigException(f"task {desc.finalize} finalized by {desc.id} is not a root task")


def create_task(client, desc: TaskDescriptor):
    with suspended_roots(client, _trigger_targets(desc)) as dag:
        _check_finalize_target(dag, desc)
        client.tasks.create(
            CreateTaskRequest(
                id=desc.id,
                sql_statement=desc.sql_statement,
                properties=_task_properties(desc),
                finalize=desc.finalize,
                after=desc.after,
                when=desc.when,
            )
        )
    # Children are started by Snowflake together with their root
    if desc.enabled and desc.is_root:
        client.tasks.alter(AlterTaskRequest(desc.id, resume=True))


def descriptor_from_row(row: TaskRow, parameters: dict[str, Any]) -> TaskDescriptor:
    return TaskDescriptor(
        id=row.id,
        sql_statement=row.definition,
        enabled=row.is_started,
        warehouse=AccountObjectIdentifier(row.warehouse) if row.warehouse else None,
        schedule=row.schedule,
        config=row.config,
        allow_overlapping_execution=row.allow_overlapping_execution,
        error_integration=AccountObjectIdentifier(row.error_integration) if row.error_integration else None,
        comment=row.comment,
        when=row.condition,
        after=row.predecessors,
        finalize=row.finalized_root,
        parameters=parameters,
    )


def read_task(client, task_id: SchemaObjectIdentifier) -> ObservedTask:
    row = client.tasks.show(task_id)
    parameters = parameters_from_show(client.tasks.show_parameters(task_id))
    return ObservedTask(descriptor_from_row(row, parameters), row)


def plan_alter_requests(old: TaskDescriptor, new: TaskDescriptor) -> list[AlterTaskRequest]:
    """
    ALTER TASK statements turning `old` into `new`.

    Triggers are detached before properties change and attached after, so a
    task never holds a schedule and a predecessor at the same time.
    """
    requests = []
    removed_after = [task for task in old.after if task not in new.after]
    added_after = [task for task in new.after if task not in old.after]

    if removed_after:
        requests.append(AlterTaskRequest(new.id, remove_after=removed_after))
    if old.finalize is not None and old.finalize != new.finalize:
        requests.append(AlterTaskRequest(new.id, unset_finalize=True))

    old_properties = _task_properties(old)
    new_properties = _task_properties(new)
    unset = [name for name in old_properties if name not in new_properties]
    changed = {name: value for name, value in new_properties.items() if old_properties.get(name) != value}
    if unset:
        requests.append(AlterTaskRequest(new.id, unset_properties=unset))
    if changed:
        requests.append(AlterTaskRequest(new.id, set_properties=changed))

    if new.sql_statement != old.sql_statement:
        requests.append(AlterTaskRequest(new.id, modify_as=new.sql_statement))
    if new.when != old.when:
        if new.when:
            requests.append(AlterTaskRequest(new.id, modify_when=new.when))
        else:
            requests.append(AlterTaskRequest(new.id, remove_when=True))

    if added_after:
        requests.append(AlterTaskRequest(new.id, add_after=added_after))
    if new.finalize is not None and new.finalize != old.finalize:
        requests.append(AlterTaskRequest(new.id, set_finalize=new.finalize))
    return requests


def alter_task(client, old: TaskDescriptor, new: TaskDescriptor):
    if old.id != new.id:
        raise InvalidConfigException(f"task {old.id} cannot be renamed to {new.id}, it has to be recreated")

    requests = plan_alter_requests(old, new)
    enables_child = new.enabled and not old.enabled and not new.is_root
    if not requests and (old.enabled == new.enabled or enables_child):
        return

    transition = shape_transition(old, new)
    if transition.changed:
        logger.info(f"Converting task {new.id} from {transition}")

    with suspended_roots(client, [new.id, *_trigger_targets(new)], keep_suspended=[new.id]) as dag:
        _check_finalize_target(dag, new)
        for request in requests:
            client.tasks.alter(request)
        current = dag.row(new.id)
        running = current is not None and current.is_started and not dag.was_suspended(new.id)
        if not new.enabled and running:
            client.tasks.alter(AlterTaskRequest(new.id, suspend=True))

    if new.enabled and new.is_root:
        client.tasks.alter(AlterTaskRequest(new.id, resume=True))


def drop_task(client, task_id: SchemaObjectIdentifier):
    with suspended_roots(client, [task_id], keep_suspended=[task_id]):
        client.tasks.drop(task_id)
