"""
Task graph bookkeeping.

Snowflake refuses to change any task of a running graph, so every mutation
goes through `suspended_roots`: suspend the affected roots, mutate, resume
the roots that were running.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .identifiers import SchemaObjectIdentifier
from .sql.tasks import AlterTaskRequest, TaskRow

logger = logging.getLogger("snowdrift")


class TaskShape(Enum):
    STANDALONE = "standalone"
    CHILD = "child"
    FINALIZER = "finalizer"


def task_shape(after: Iterable[SchemaObjectIdentifier] = (), finalize: Optional[SchemaObjectIdentifier] = None):
    if finalize is not None:
        return TaskShape.FINALIZER
    if after:
        return TaskShape.CHILD
    return TaskShape.STANDALONE


@dataclass(frozen=True)
class ShapeTransition:
    old: TaskShape
    new: TaskShape

    @property
    def changed(self) -> bool:
        return self.old != self.new

    def __str__(self):
        return f"{self.old.value} -> {self.new.value}"


def shape_transition(old, new) -> ShapeTransition:
    """Shape change between two task descriptors."""
    return ShapeTransition(task_shape(old.after, old.finalize), task_shape(new.after, new.finalize))


def find_root_task(client, task_id: SchemaObjectIdentifier, seen: Optional[dict] = None) -> TaskRow:
    """
    Walk predecessors until a task without any. A finalizer resolves to the
    root it finalizes. `seen` collects every row looked up on the way.
    """
    seen = {} if seen is None else seen
    current = task_id
    while True:
        if current not in seen:
            seen[current] = client.tasks.show(current)
        row = seen[current]
        if row.is_root:
            return row
        current = row.predecessors[0] if row.predecessors else row.finalized_root


class SuspendedRoots:
    """
    Context manager around a task graph mutation.

    Resolves the root of every given task, suspends those that are started,
    and resumes them on exit even when the mutation failed. Roots listed in
    `keep_suspended` are left suspended.

        with suspended_roots(client, [task_id], keep_suspended=[task_id]) as dag:
            client.tasks.alter(...)
    """

    def __init__(
        self,
        client,
        task_ids: Iterable[SchemaObjectIdentifier],
        keep_suspended: Iterable[SchemaObjectIdentifier] = (),
    ):
        self.client = client
        self.task_ids = list(task_ids)
        self.keep_suspended = set(keep_suspended)
        self.rows: dict[SchemaObjectIdentifier, TaskRow] = {}
        self.roots: list[SchemaObjectIdentifier] = []
        self.suspended: list[SchemaObjectIdentifier] = []

    def __enter__(self):
        try:
            for task_id in self.task_ids:
                root = find_root_task(self.client, task_id, self.rows)
                if root.id in self.roots:
                    continue
                self.roots.append(root.id)
                if root.is_started:
                    self.client.tasks.alter(AlterTaskRequest(root.id, suspend=True))
                    self.suspended.append(root.id)
        except Exception:
            self._resume()
            raise
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self._resume()
        return False

    def _resume(self):
        for root_id in self.suspended:
            if root_id in self.keep_suspended:
                continue
            self.client.tasks.alter(AlterTaskRequest(root_id, resume=True))
        self.suspended = [root_id for root_id in self.suspended if root_id in self.keep_suspended]

    def row(self, task_id: SchemaObjectIdentifier) -> Optional[TaskRow]:
        return self.rows.get(task_id)

    def was_suspended(self, task_id: SchemaObjectIdentifier) -> bool:
        return task_id in self.suspended


def suspended_roots(
    client,
    task_ids: Iterable[SchemaObjectIdentifier],
    keep_suspended: Iterable[SchemaObjectIdentifier] = (),
) -> SuspendedRoots:
    return SuspendedRoots(client, task_ids, keep_suspended)
