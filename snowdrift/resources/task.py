import json
import logging
from typing import Optional

from ..exceptions import InvalidConfigException, ObjectMissingException
from ..identifiers import SchemaObjectIdentifier, parse_account_object_identifier, parse_schema_object_identifier
from ..parse import parse_identifier_parts
from ..task_parameters import TASK_PARAMETERS
from ..tasks import TaskDescriptor, alter_task, create_task, drop_task, read_task
from .resource import Diagnostics, Field, Resource, ResourceData, diagnose
from .upgraders import upgrade_task_v0

logger = logging.getLogger("snowdrift")


def _same_statement(old, new) -> bool:
    return (old or "").strip().rstrip(";") == (new or "").strip().rstrip(";")


def _same_json(old, new) -> bool:
    try:
        return json.loads(old) == json.loads(new)
    except (TypeError, ValueError):
        return False


def _sorted(value) -> list:
    return sorted(value or [])


def task_ref(value: str, database: str, schema: str) -> SchemaObjectIdentifier:
    """Resolve a task name, unqualified names live next to the task referencing them."""
    parts, arguments = parse_identifier_parts(value)
    if arguments is not None:
        raise InvalidConfigException(f"task reference {value} cannot carry an argument list")
    if len(parts) == 1:
        return SchemaObjectIdentifier(database, schema, parts[0])
    if len(parts) == 3:
        return SchemaObjectIdentifier(*parts)
    raise InvalidConfigException(f"task reference {value} must be a task name or a fully qualified name")


class Task(Resource):
    label = "task"
    schema_version = 1
    state_upgraders = {0: upgrade_task_v0}
    schema = {
        "database": Field(required=True, force_new=True),
        "schema": Field(required=True, force_new=True),
        "name": Field(required=True, force_new=True),
        "sql_statement": Field(required=True, diff_suppress=_same_statement),
        "enabled": Field(kind="bool", default=False),
        "warehouse": Field(),
        "schedule": Field(),
        "config": Field(diff_suppress=_same_json),
        "allow_overlapping_execution": Field(kind="bool", default=False),
        "error_integration": Field(),
        "comment": Field(),
        "when": Field(),
        "after": Field(kind="list", normalize=_sorted),
        "finalize": Field(),
        **{
            parameter.attribute: Field(kind=parameter.value_type.__name__)
            for parameter in TASK_PARAMETERS.values()
        },
    }

    def expand(self, config: dict) -> TaskDescriptor:
        for key in ("database", "schema", "name", "sql_statement"):
            if not config.get(key):
                raise InvalidConfigException(f"{key} is required")
        database, schema = config["database"], config["schema"]
        warehouse = config.get("warehouse")
        error_integration = config.get("error_integration")
        finalize = config.get("finalize")
        return TaskDescriptor(
            id=SchemaObjectIdentifier(database, schema, config["name"]),
            sql_statement=config["sql_statement"],
            enabled=bool(config.get("enabled")),
            warehouse=parse_account_object_identifier(warehouse) if warehouse else None,
            schedule=config.get("schedule"),
            config=config.get("config"),
            allow_overlapping_execution=bool(config.get("allow_overlapping_execution")),
            error_integration=parse_account_object_identifier(error_integration) if error_integration else None,
            comment=config.get("comment"),
            when=config.get("when"),
            after=tuple(task_ref(name, database, schema) for name in config.get("after") or []),
            finalize=task_ref(finalize, database, schema) if finalize else None,
            parameters={
                parameter.name: config[parameter.attribute]
                for parameter in TASK_PARAMETERS.values()
                if config.get(parameter.attribute) is not None
            },
        )

    def project(self, desc: TaskDescriptor) -> dict:
        state = {
            "database": desc.id.database,
            "schema": desc.id.schema,
            "name": desc.id.name,
            "sql_statement": desc.sql_statement,
            "enabled": desc.enabled,
            "warehouse": desc.warehouse.name if desc.warehouse else None,
            "schedule": desc.schedule,
            "config": desc.config,
            "allow_overlapping_execution": desc.allow_overlapping_execution,
            "error_integration": desc.error_integration.name if desc.error_integration else None,
            "comment": desc.comment,
            "when": desc.when,
            "after": [task.fully_qualified_name for task in desc.after],
            "finalize": desc.finalize.fully_qualified_name if desc.finalize else None,
        }
        for parameter in TASK_PARAMETERS.values():
            state[parameter.attribute] = desc.parameters.get(parameter.name)
        return state

    def desired(self, config: dict) -> dict:
        return self.project(self.expand(config))

    def config_id(self, config: dict) -> str:
        return self.expand(config).id.fully_qualified_name

    @diagnose("create")
    def create(self, client, data: ResourceData) -> Diagnostics:
        desc = self.expand(data.config)
        create_task(client, desc)
        data.set_id(desc.id.fully_qualified_name)
        return self.read(client, data)

    @diagnose("read")
    def read(self, client, data: ResourceData) -> Diagnostics:
        task_id = parse_schema_object_identifier(data.id)
        observed = self._observe(client, task_id)
        if observed is None:
            data.set_id("")
            return Diagnostics().warning(f"{self.label} no longer exists", f"Id: {data.id or task_id}")
        state = self.project(observed)
        if not observed.is_root and data.get("enabled"):
            # An enabled child runs whenever its root does
            state["enabled"] = True
        data.state.update(state)
        return Diagnostics()

    @diagnose("update")
    def update(self, client, data: ResourceData) -> Diagnostics:
        task_id = parse_schema_object_identifier(data.id)
        new = self.expand(data.config)
        observed = self._observe(client, task_id)
        if observed is None:
            raise ObjectMissingException(f"task {task_id} does not exist")
        alter_task(client, observed, new)
        return self.read(client, data)

    @diagnose("delete")
    def delete(self, client, data: ResourceData) -> Diagnostics:
        task_id = parse_schema_object_identifier(data.id)
        try:
            drop_task(client, task_id)
        except ObjectMissingException:
            logger.info(f"Task {task_id} is already gone")
        data.set_id("")
        return Diagnostics()

    def import_id(self, id: str, data: ResourceData):
        data.set_id(parse_schema_object_identifier(id).fully_qualified_name)

    def _observe(self, client, task_id: SchemaObjectIdentifier) -> Optional[TaskDescriptor]:
        try:
            return read_task(client, task_id).descriptor
        except ObjectMissingException:
            return None
