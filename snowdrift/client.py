import copy
import logging
import threading
import time
from typing import Optional, Union

import snowflake.connector
from snowflake.connector.connection import SnowflakeConnection
from snowflake.connector.cursor import SnowflakeCursor
from snowflake.connector.errors import Error, ForbiddenError, OperationalError

from .exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStatementException,
    ObjectMissingException,
    OperationCancelledException,
    SnowflakeSQLException,
    TransientException,
)
from .sql.failover_groups import FailoverGroups
from .sql.grants import Grants
from .sql.roles import Roles
from .sql.session import Session
from .sql.tasks import Tasks

logger = logging.getLogger("snowdrift")

UNSUPPORTED_FEATURE = 2
SQL_EXECUTION_CANCELED = 604
STATEMENT_TIMEOUT_ERR = 630
SYNTAX_ERROR = 1003
OBJECT_ALREADY_EXISTS_ERR = 2002
DOES_NOT_EXIST_ERR = 2003
INVALID_IDENTIFIER = 2004
OBJECT_DOES_NOT_EXIST_ERR = 2043
ACCESS_CONTROL_ERR = 3001
ALREADY_EXISTS_ERR = 3041
INVALID_GRANT_ERR = 3042
FEATURE_NOT_ENABLED_ERR = 3078
CONNECTION_ERR = 250001
REQUEST_FAILED_ERR = 250003

_ERROR_KINDS = {
    DOES_NOT_EXIST_ERR: ObjectMissingException,
    OBJECT_DOES_NOT_EXIST_ERR: ObjectMissingException,
    UNSUPPORTED_FEATURE: InvalidStatementException,
    SYNTAX_ERROR: InvalidStatementException,
    INVALID_IDENTIFIER: InvalidStatementException,
    INVALID_GRANT_ERR: InvalidStatementException,
    FEATURE_NOT_ENABLED_ERR: InvalidStatementException,
    ACCESS_CONTROL_ERR: ForbiddenException,
    OBJECT_ALREADY_EXISTS_ERR: ConflictException,
    ALREADY_EXISTS_ERR: ConflictException,
    SQL_EXECUTION_CANCELED: TransientException,
    STATEMENT_TIMEOUT_ERR: TransientException,
    CONNECTION_ERR: TransientException,
    REQUEST_FAILED_ERR: TransientException,
}

_CONFLICT_MESSAGES = (
    "already exists",
    "already enabled",
)


class OperationContext:
    """
    Carries the cancellation signal and per-run settings for one host operation.

    Once cancelled, the next statement dispatched through a client bound to
    this context raises OperationCancelledException.
    """

    def __init__(self, warn_on_unobservable: bool = True):
        self.warn_on_unobservable = warn_on_unobservable
        self._cancelled = threading.Event()
        self._warned = set()
        self._lock = threading.Lock()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def raise_if_cancelled(self):
        if self.cancelled:
            raise OperationCancelledException("operation was cancelled")

    def warn_once(self, key: str, message: str) -> bool:
        with self._lock:
            if key in self._warned:
                return False
            self._warned.add(key)
        if self.warn_on_unobservable:
            logger.warning(message)
        return True


def translate_error(err: Error, sql_text: str) -> SnowflakeSQLException:
    message = f"{err} on {sql_text}"
    errno = getattr(err, "errno", None)
    sqlstate = getattr(err, "sqlstate", None)
    if isinstance(err, ForbiddenError):
        kind = ForbiddenException
    elif errno in _ERROR_KINDS:
        kind = _ERROR_KINDS[errno]
    elif any(fragment in str(err).lower() for fragment in _CONFLICT_MESSAGES):
        kind = ConflictException
    elif isinstance(err, OperationalError):
        kind = TransientException
    else:
        kind = SnowflakeSQLException
    return kind(message, errno=errno, sqlstate=sqlstate, sql=sql_text)


def execute(
    conn_or_cursor: Union[SnowflakeConnection, SnowflakeCursor],
    sql: str,
    empty_response_codes: Optional[list[int]] = None,
) -> list:
    if isinstance(sql, str):
        sql_text = sql
    else:
        raise Exception(f"Unknown sql type: {type(sql)}, {sql}")

    if isinstance(conn_or_cursor, SnowflakeConnection):
        session = conn_or_cursor
        cur = session.cursor(snowflake.connector.DictCursor)
    elif isinstance(conn_or_cursor, SnowflakeCursor):
        session = conn_or_cursor.connection
        cur = conn_or_cursor
        cur._use_dict_result = True
    else:
        session = conn_or_cursor
        cur = session.cursor(snowflake.connector.DictCursor)

    session_header = f"[{session.user}:{session.role}] > {sql_text}"

    start = time.time()
    try:
        cur.execute(sql_text)
        result = cur.fetchall()
        runtime = time.time() - start
        logger.warning(f"{session_header}    \033[94m({len(result)} rows, {runtime:.2f}s)\033[0m")
        return result
    except Error as err:
        if empty_response_codes and getattr(err, "errno", None) in empty_response_codes:
            runtime = time.time() - start
            logger.warning(f"{session_header}    \033[94m(empty, {runtime:.2f}s)\033[0m")
            return []
        logger.error(f"{session_header}    \033[31m(err {err.errno}, {time.time() - start:.2f}s)\033[0m")
        raise translate_error(err, sql_text) from err


class SnowflakeClient:
    """
    Statement dispatcher plus the typed facade the reconcilers talk to.

    Every statement goes through `execute`, which checks the operation context
    for cancellation before anything reaches the connection.
    """

    def __init__(self, connection, context: Optional[OperationContext] = None):
        self.connection = connection
        self.context = context or OperationContext()
        self._bind_facades()

    def _bind_facades(self):
        self.grants = Grants(self)
        self.tasks = Tasks(self)
        self.roles = Roles(self)
        self.session = Session(self)
        self.failover_groups = FailoverGroups(self)

    def with_context(self, context: OperationContext) -> "SnowflakeClient":
        clone = copy.copy(self)
        clone.context = context
        clone._bind_facades()
        return clone

    def execute(self, sql: str, empty_response_codes: Optional[list[int]] = None) -> list:
        self.context.raise_if_cancelled()
        return self._run(sql, empty_response_codes)

    def _run(self, sql: str, empty_response_codes: Optional[list[int]] = None) -> list:
        return execute(self.connection, sql, empty_response_codes)
