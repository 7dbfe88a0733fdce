import functools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Optional

from ..exceptions import InvalidConfigException, OperationCancelledException, SnowdriftException, TransientException

logger = logging.getLogger("snowdrift")


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    severity: Severity
    summary: str
    detail: str = ""


class Diagnostics(list):
    def error(self, summary: str, detail: str = "") -> "Diagnostics":
        self.append(Diagnostic(Severity.ERROR, summary, detail))
        return self

    def warning(self, summary: str, detail: str = "") -> "Diagnostics":
        self.append(Diagnostic(Severity.WARNING, summary, detail))
        return self

    @property
    def has_errors(self) -> bool:
        return any(diagnostic.severity == Severity.ERROR for diagnostic in self)


class ResourceData:
    """
    Desired configuration and last observed state of one resource instance.

    An empty id means the resource does not exist (yet, or anymore).
    """

    def __init__(self, id: str = "", config: Optional[dict] = None, state: Optional[dict] = None):
        self.id = id
        self.config = dict(config or {})
        self.state = dict(state or {})

    def get(self, key: str, default=None):
        value = self.config.get(key)
        return default if value is None else value

    def get_change(self, key: str) -> tuple[Any, Any]:
        return self.state.get(key), self.config.get(key)

    def has_change(self, key: str) -> bool:
        old, new = self.get_change(key)
        return old != new

    def set(self, key: str, value):
        self.state[key] = value

    def set_id(self, id: str):
        self.id = id
        if not id:
            self.state = {}

    def __repr__(self):
        return f"ResourceData(id={self.id!r})"


class PlanAction(Enum):
    NOOP = "noop"
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"


@dataclass
class Plan:
    action: PlanAction
    changes: dict[str, tuple[Any, Any]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.action == PlanAction.NOOP


@dataclass(frozen=True)
class Field:
    kind: str = "string"
    required: bool = False
    force_new: bool = False
    computed: bool = False
    default: Any = None
    normalize: Optional[Callable[[Any], Any]] = None
    diff_suppress: Optional[Callable[[Any, Any], bool]] = None


def diagnose(operation: str):
    """
    Turn provider errors raised by a CRUD method into error diagnostics.

    Transient failures and cancellation are re-raised so the host can retry
    or stop.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, client, data, *args, **kwargs):
            try:
                return func(self, client, data, *args, **kwargs)
            except (TransientException, OperationCancelledException):
                raise
            except SnowdriftException as err:
                logger.error(f"Failed to {operation} {self.label} {data.id}: {err}")
                return Diagnostics().error(f"Failed to {operation} {self.label}", f"Id: {data.id}\nError: {err}")

        return wrapper

    return decorator


class Resource:
    label: ClassVar[str] = ""
    schema: ClassVar[dict[str, Field]] = {}
    schema_version: ClassVar[int] = 0
    state_upgraders: ClassVar[dict[int, Callable[[dict], dict]]] = {}

    def expand(self, config: dict):
        """Narrow an untyped configuration into the typed structure the reconcilers take."""
        raise NotImplementedError

    def desired(self, config: dict) -> dict:
        return config

    def config_id(self, config: dict) -> str:
        """The id a resource created from `config` gets."""
        raise NotImplementedError

    def observable(self, config: dict) -> bool:
        """False when a read cannot tell whether the resource exists."""
        return True

    def validate(self, config: dict) -> Diagnostics:
        diagnostics = Diagnostics()
        unknown = sorted(set(config) - set(self.schema))
        if unknown:
            diagnostics.error(f"Unknown keys for {self.label}", ", ".join(unknown))
        for name, schema_field in self.schema.items():
            if schema_field.required and config.get(name) is None:
                diagnostics.error(f"Missing required key for {self.label}", name)
        if diagnostics.has_errors:
            return diagnostics
        try:
            self.expand(config)
        except (SnowdriftException, ValueError) as err:
            diagnostics.error(f"Invalid {self.label} configuration", str(err))
        return diagnostics

    def plan(self, data: ResourceData) -> Plan:
        desired = self.desired(data.config)
        if not data.id:
            return Plan(PlanAction.CREATE, {name: (None, value) for name, value in desired.items() if value is not None})

        changes = {}
        for name, schema_field in self.schema.items():
            new = desired.get(name)
            if schema_field.computed and new is None:
                continue
            old = data.state.get(name)
            old = schema_field.default if old is None else old
            new = schema_field.default if new is None else new
            if schema_field.normalize is not None:
                old, new = schema_field.normalize(old), schema_field.normalize(new)
            if old == new:
                continue
            if schema_field.diff_suppress is not None and schema_field.diff_suppress(old, new):
                continue
            changes[name] = (old, new)

        if not changes:
            return Plan(PlanAction.NOOP)
        if any(self.schema[name].force_new for name in changes):
            return Plan(PlanAction.REPLACE, changes)
        return Plan(PlanAction.UPDATE, changes)

    def create(self, client, data: ResourceData) -> Diagnostics:
        raise NotImplementedError

    def read(self, client, data: ResourceData) -> Diagnostics:
        raise NotImplementedError

    def update(self, client, data: ResourceData) -> Diagnostics:
        raise NotImplementedError

    def delete(self, client, data: ResourceData) -> Diagnostics:
        raise NotImplementedError

    def import_state(self, client, id: str) -> tuple[ResourceData, Diagnostics]:
        data = ResourceData(id=id)
        try:
            self.import_id(id, data)
        except (TransientException, OperationCancelledException):
            raise
        except SnowdriftException as err:
            return data, Diagnostics().error(f"Failed to import {self.label}", f"Id: {id}\nError: {err}")
        return data, self.read(client, data)

    def import_id(self, id: str, data: ResourceData):
        raise NotImplementedError


def require_one_of(config: dict, keys: list[str]) -> str:
    present = [key for key in keys if config.get(key)]
    if len(present) != 1:
        raise InvalidConfigException(f"exactly one of {', '.join(keys)} must be set, got: {', '.join(present) or 'none'}")
    return present[0]
