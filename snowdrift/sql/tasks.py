import datetime
import json
from dataclasses import dataclass, field
from typing import Any, Optional

import pytz

from ..enums import TaskState
from ..exceptions import ObjectMissingException
from ..identifiers import SchemaObjectIdentifier, parse_schema_object_identifier
from .render import quote_string, render_value


def _none_if_empty(value) -> Optional[str]:
    if value is None or value == "" or value == "null":
        return None
    return value


def _convert_to_gmt(dt, fmt_str: str = "%Y-%m-%d %H:%M:%S") -> Optional[str]:
    """
    datetime.datetime(2049, 1, 6, 12, 0, tzinfo=<DstTzInfo 'America/Los_Angeles' PST-1 day, 16:00:00 STD>)

    =>

    2049-01-06 20:00:00
    """
    if not isinstance(dt, datetime.datetime):
        return _none_if_empty(dt)
    gmt = pytz.timezone("GMT")
    return dt.astimezone(gmt).strftime(fmt_str)


def _parse_task_names(names) -> tuple[SchemaObjectIdentifier, ...]:
    if not names:
        return ()
    if isinstance(names, str):
        names = json.loads(names)
    return tuple(parse_schema_object_identifier(name) for name in names)


@dataclass
class TaskRow:
    name: str
    database_name: str
    schema_name: str
    state: TaskState
    definition: str
    owner: str = ""
    comment: Optional[str] = None
    warehouse: Optional[str] = None
    schedule: Optional[str] = None
    predecessors: tuple[SchemaObjectIdentifier, ...] = ()
    condition: Optional[str] = None
    allow_overlapping_execution: bool = False
    error_integration: Optional[str] = None
    config: Optional[str] = None
    finalizer: Optional[SchemaObjectIdentifier] = None
    finalized_root: Optional[SchemaObjectIdentifier] = None
    created_on: Optional[str] = None
    last_suspended_on: Optional[str] = None

    @property
    def id(self) -> SchemaObjectIdentifier:
        return SchemaObjectIdentifier(self.database_name, self.schema_name, self.name)

    @property
    def is_started(self) -> bool:
        return self.state == TaskState.STARTED

    @property
    def is_root(self) -> bool:
        return not self.predecessors and self.finalized_root is None

    @classmethod
    def from_show_row(cls, row: dict) -> "TaskRow":
        relations = row.get("task_relations")
        relations = json.loads(relations) if relations else {}
        finalizer = _none_if_empty(relations.get("FinalizerTask"))
        finalized_root = _none_if_empty(relations.get("FinalizedRootTask"))
        predecessors = row.get("predecessors")
        if not predecessors:
            predecessors = relations.get("Predecessors")
        return cls(
            name=row["name"],
            database_name=row["database_name"],
            schema_name=row["schema_name"],
            state=TaskState(row["state"]),
            definition=row["definition"],
            owner=row.get("owner") or "",
            comment=_none_if_empty(row.get("comment")),
            warehouse=_none_if_empty(row.get("warehouse")),
            schedule=_none_if_empty(row.get("schedule")),
            predecessors=_parse_task_names(predecessors),
            condition=_none_if_empty(row.get("condition")),
            allow_overlapping_execution=str(row.get("allow_overlapping_execution")).lower() == "true",
            error_integration=_none_if_empty(row.get("error_integration")),
            config=_none_if_empty(row.get("config")),
            finalizer=parse_schema_object_identifier(finalizer) if finalizer else None,
            finalized_root=parse_schema_object_identifier(finalized_root) if finalized_root else None,
            created_on=_convert_to_gmt(row.get("created_on")),
            last_suspended_on=_convert_to_gmt(row.get("last_suspended_on")),
        )


@dataclass
class ParameterRow:
    key: str
    value: str
    level: str = ""
    type: str = "STRING"
    default: Optional[str] = None
    description: str = ""

    @classmethod
    def from_show_row(cls, row: dict) -> "ParameterRow":
        return cls(
            key=row["key"],
            value=row["value"],
            level=row.get("level") or "",
            type=row.get("type") or "STRING",
            default=row.get("default"),
            description=row.get("description") or "",
        )


@dataclass
class CreateTaskRequest:
    id: SchemaObjectIdentifier
    sql_statement: str
    properties: dict[str, Any] = field(default_factory=dict)
    finalize: Optional[SchemaObjectIdentifier] = None
    after: tuple[SchemaObjectIdentifier, ...] = ()
    when: Optional[str] = None
    or_replace: bool = False

    def __str__(self):
        sql = ["CREATE OR REPLACE TASK" if self.or_replace else "CREATE TASK", self.id.fully_qualified_name]
        sql.extend(f"{key} = {render_value(value)}" for key, value in self.properties.items())
        if self.finalize:
            sql.append(f"FINALIZE = {self.finalize.fully_qualified_name}")
        if self.after:
            sql.append("AFTER " + ", ".join(task.fully_qualified_name for task in self.after))
        if self.when:
            sql.append(f"WHEN {self.when}")
        sql.append(f"AS {self.sql_statement}")
        return " ".join(sql)


@dataclass
class AlterTaskRequest:
    """One ALTER TASK statement. Exactly one action may be set."""

    id: SchemaObjectIdentifier
    resume: bool = False
    suspend: bool = False
    set_properties: dict[str, Any] = field(default_factory=dict)
    unset_properties: list[str] = field(default_factory=list)
    modify_as: Optional[str] = None
    modify_when: Optional[str] = None
    remove_when: bool = False
    add_after: list[SchemaObjectIdentifier] = field(default_factory=list)
    remove_after: list[SchemaObjectIdentifier] = field(default_factory=list)
    set_finalize: Optional[SchemaObjectIdentifier] = None
    unset_finalize: bool = False

    def __post_init__(self):
        actions = [
            self.resume,
            self.suspend,
            bool(self.set_properties),
            bool(self.unset_properties),
            self.modify_as is not None,
            self.modify_when is not None,
            self.remove_when,
            bool(self.add_after),
            bool(self.remove_after),
            self.set_finalize is not None,
            self.unset_finalize,
        ]
        if sum(actions) != 1:
            raise ValueError(f"ALTER TASK {self.id} expects exactly one action, got {sum(actions)}")

    def __str__(self):
        prefix = f"ALTER TASK {self.id.fully_qualified_name}"
        if self.resume:
            return f"{prefix} RESUME"
        if self.suspend:
            return f"{prefix} SUSPEND"
        if self.set_properties:
            assignments = ", ".join(f"{key} = {render_value(value)}" for key, value in self.set_properties.items())
            return f"{prefix} SET {assignments}"
        if self.unset_properties:
            return f"{prefix} UNSET {', '.join(self.unset_properties)}"
        if self.modify_as is not None:
            return f"{prefix} MODIFY AS {self.modify_as}"
        if self.modify_when is not None:
            return f"{prefix} MODIFY WHEN {self.modify_when}"
        if self.remove_when:
            return f"{prefix} REMOVE WHEN"
        if self.add_after:
            return f"{prefix} ADD AFTER " + ", ".join(task.fully_qualified_name for task in self.add_after)
        if self.remove_after:
            return f"{prefix} REMOVE AFTER " + ", ".join(task.fully_qualified_name for task in self.remove_after)
        if self.set_finalize is not None:
            return f"{prefix} SET FINALIZE = {self.set_finalize.fully_qualified_name}"
        return f"{prefix} UNSET FINALIZE"


def show_task_sql(task_id: SchemaObjectIdentifier) -> str:
    return f"SHOW TASKS LIKE {quote_string(task_id.name)} IN SCHEMA {task_id.schema_identifier.fully_qualified_name}"


def show_task_parameters_sql(task_id: SchemaObjectIdentifier) -> str:
    return f"SHOW PARAMETERS IN TASK {task_id.fully_qualified_name}"


def drop_task_sql(task_id: SchemaObjectIdentifier, if_exists: bool = False) -> str:
    return f"DROP TASK {'IF EXISTS ' if if_exists else ''}{task_id.fully_qualified_name}"


class Tasks:
    def __init__(self, client):
        self._client = client

    def create(self, request: CreateTaskRequest):
        self._client.execute(str(request))

    def alter(self, request: AlterTaskRequest):
        self._client.execute(str(request))

    def drop(self, task_id: SchemaObjectIdentifier, if_exists: bool = False):
        self._client.execute(drop_task_sql(task_id, if_exists))

    def show(self, task_id: SchemaObjectIdentifier) -> TaskRow:
        rows = self._client.execute(show_task_sql(task_id))
        for row in rows:
            if row["name"] == task_id.name:
                return TaskRow.from_show_row(row)
        raise ObjectMissingException(f"Task {task_id} does not exist or not authorized", sql=show_task_sql(task_id))

    def show_parameters(self, task_id: SchemaObjectIdentifier) -> list[ParameterRow]:
        rows = self._client.execute(show_task_parameters_sql(task_id))
        return [ParameterRow.from_show_row(row) for row in rows]
