"""
Session, warehouse and task parameters settable on a task.

Every parameter is one row of TASK_PARAMETERS; create, alter and read fold
over the table instead of handling parameters one by one.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import pytz

from .enums import (
    BinaryInputFormat,
    BinaryOutputFormat,
    ClientTimestampTypeMapping,
    GeographyOutputFormat,
    GeometryOutputFormat,
    LogLevel,
    TimestampTypeMapping,
    TraceLevel,
    TransactionDefaultIsolationLevel,
    UnsupportedDDLAction,
    WarehouseSize,
)
from .exceptions import InvalidConfigException
from .sql.render import quote_string

logger = logging.getLogger("snowdrift")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"expected a boolean, got: {value!r}")


def _parse_int(value) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got: {value!r}")
    return int(value)


def _parse_str(value) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got: {value!r}")
    return value


def _parse_timezone(value) -> str:
    value = _parse_str(value)
    try:
        pytz.timezone(value)
    except pytz.UnknownTimeZoneError as err:
        raise ValueError(f"unknown time zone: {value}") from err
    return value


def _enum_parser(enum_cls) -> Callable[[Any], str]:
    def parse(value) -> str:
        try:
            return enum_cls(value).value
        except ValueError:
            options = " | ".join(member.value for member in enum_cls)
            raise ValueError(f"invalid {enum_cls.__name__}: {value}, valid options are {options}") from None

    return parse


@dataclass(frozen=True)
class TaskParameter:
    name: str
    value_type: type
    default: Any = None
    parser: Optional[Callable[[Any], Any]] = None

    @property
    def attribute(self) -> str:
        return self.name.lower()

    def parse(self, value) -> Any:
        if self.parser is not None:
            return self.parser(value)
        if self.value_type is bool:
            return _parse_bool(value)
        if self.value_type is int:
            return _parse_int(value)
        return _parse_str(value)

    def render(self, value) -> str:
        value = self.parse(value)
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, int):
            return str(value)
        return quote_string(value)


def _p(name, value_type, default=None, parser=None) -> TaskParameter:
    return TaskParameter(name, value_type, default, parser)


TASK_PARAMETERS: dict[str, TaskParameter] = {
    parameter.name: parameter
    for parameter in [
        # task
        _p("SUSPEND_TASK_AFTER_NUM_FAILURES", int, 10),
        _p("TASK_AUTO_RETRY_ATTEMPTS", int, 0),
        _p("USER_TASK_MANAGED_INITIAL_WAREHOUSE_SIZE", str, "MEDIUM", _enum_parser(WarehouseSize)),
        _p("USER_TASK_MINIMUM_TRIGGER_INTERVAL_IN_SECONDS", int, 30),
        _p("USER_TASK_TIMEOUT_MS", int, 3600000),
        # session
        _p("ABORT_DETACHED_QUERY", bool, False),
        _p("AUTOCOMMIT", bool, True),
        _p("BINARY_INPUT_FORMAT", str, "HEX", _enum_parser(BinaryInputFormat)),
        _p("BINARY_OUTPUT_FORMAT", str, "HEX", _enum_parser(BinaryOutputFormat)),
        _p("CLIENT_MEMORY_LIMIT", int, 1536),
        _p("CLIENT_METADATA_REQUEST_USE_CONNECTION_CTX", bool, False),
        _p("CLIENT_PREFETCH_THREADS", int, 4),
        _p("CLIENT_RESULT_CHUNK_SIZE", int, 160),
        _p("CLIENT_RESULT_COLUMN_CASE_INSENSITIVE", bool, False),
        _p("CLIENT_SESSION_KEEP_ALIVE", bool, False),
        _p("CLIENT_SESSION_KEEP_ALIVE_HEARTBEAT_FREQUENCY", int, 3600),
        _p("CLIENT_TIMESTAMP_TYPE_MAPPING", str, "TIMESTAMP_LTZ", _enum_parser(ClientTimestampTypeMapping)),
        _p("DATE_INPUT_FORMAT", str, "AUTO"),
        _p("DATE_OUTPUT_FORMAT", str, "YYYY-MM-DD"),
        _p("ENABLE_UNLOAD_PHYSICAL_TYPE_OPTIMIZATION", bool, True),
        _p("ERROR_ON_NONDETERMINISTIC_MERGE", bool, True),
        _p("ERROR_ON_NONDETERMINISTIC_UPDATE", bool, False),
        _p("GEOGRAPHY_OUTPUT_FORMAT", str, "GeoJSON", _enum_parser(GeographyOutputFormat)),
        _p("GEOMETRY_OUTPUT_FORMAT", str, "GeoJSON", _enum_parser(GeometryOutputFormat)),
        _p("JDBC_TREAT_TIMESTAMP_NTZ_AS_UTC", bool, False),
        _p("JDBC_USE_SESSION_TIMEZONE", bool, True),
        _p("JSON_INDENT", int, 2),
        _p("LOCK_TIMEOUT", int, 43200),
        _p("LOG_LEVEL", str, "OFF", _enum_parser(LogLevel)),
        _p("MULTI_STATEMENT_COUNT", int, 1),
        _p("NOORDER_SEQUENCE_AS_DEFAULT", bool, True),
        _p("ODBC_TREAT_DECIMAL_AS_INT", bool, False),
        _p("QUERY_TAG", str, ""),
        _p("QUOTED_IDENTIFIERS_IGNORE_CASE", bool, False),
        _p("ROWS_PER_RESULTSET", int, 0),
        _p("S3_STAGE_VPCE_DNS_NAME", str, ""),
        _p("SEARCH_PATH", str, "$current, $public"),
        _p("STATEMENT_QUEUED_TIMEOUT_IN_SECONDS", int, 0),
        _p("STATEMENT_TIMEOUT_IN_SECONDS", int, 172800),
        _p("STRICT_JSON_OUTPUT", bool, False),
        _p("TIMESTAMP_DAY_IS_ALWAYS_24H", bool, False),
        _p("TIMESTAMP_INPUT_FORMAT", str, "AUTO"),
        _p("TIMESTAMP_LTZ_OUTPUT_FORMAT", str, ""),
        _p("TIMESTAMP_NTZ_OUTPUT_FORMAT", str, "YYYY-MM-DD HH24:MI:SS.FF3"),
        _p("TIMESTAMP_OUTPUT_FORMAT", str, "YYYY-MM-DD HH24:MI:SS.FF3 TZHTZM"),
        _p("TIMESTAMP_TYPE_MAPPING", str, "TIMESTAMP_NTZ", _enum_parser(TimestampTypeMapping)),
        _p("TIMESTAMP_TZ_OUTPUT_FORMAT", str, ""),
        _p("TIMEZONE", str, "America/Los_Angeles", _parse_timezone),
        _p("TIME_INPUT_FORMAT", str, "AUTO"),
        _p("TIME_OUTPUT_FORMAT", str, "HH24:MI:SS"),
        _p("TRACE_LEVEL", str, "OFF", _enum_parser(TraceLevel)),
        _p("TRANSACTION_ABORT_ON_ERROR", bool, False),
        _p("TRANSACTION_DEFAULT_ISOLATION_LEVEL", str, "READ COMMITTED", _enum_parser(TransactionDefaultIsolationLevel)),
        _p("TWO_DIGIT_CENTURY_START", int, 1970),
        _p("UNSUPPORTED_DDL_ACTION", str, "IGNORE", _enum_parser(UnsupportedDDLAction)),
        _p("USE_CACHED_RESULT", bool, True),
        _p("WEEK_OF_YEAR_POLICY", int, 0),
        _p("WEEK_START", int, 0),
    ]
}


def get_parameter(name: str) -> TaskParameter:
    key = name.upper()
    if key not in TASK_PARAMETERS:
        raise InvalidConfigException(f"unknown task parameter: {name}")
    return TASK_PARAMETERS[key]


def parse_parameters(values: dict[str, Any]) -> dict[str, Any]:
    """Validate user supplied parameters, keyed by upper-case parameter name."""
    parsed = {}
    for name, value in values.items():
        if value is None:
            continue
        parameter = get_parameter(name)
        try:
            parsed[parameter.name] = parameter.parse(value)
        except (TypeError, ValueError) as err:
            raise InvalidConfigException(f"invalid value for task parameter {parameter.name}: {err}") from err
    return parsed


def parameters_from_show(rows) -> dict[str, Any]:
    """Parameters set on the task itself, ignoring inherited account and session values."""
    parameters = {}
    for row in rows:
        if row.level != "TASK" or row.key.upper() not in TASK_PARAMETERS:
            continue
        parameter = TASK_PARAMETERS[row.key.upper()]
        try:
            parameters[parameter.name] = parameter.parse(row.value)
        except (TypeError, ValueError) as err:
            # Kept as reported so a declared value still shows up as a change
            logger.warning(f"Unrecognized value for task parameter {parameter.name}: {err}")
            parameters[parameter.name] = row.value
    return parameters
