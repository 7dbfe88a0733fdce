from typing import Optional


class SnowdriftException(Exception):
    pass


class InvalidIdentifierException(SnowdriftException, ValueError):
    pass


class InvalidGrantIdException(SnowdriftException, ValueError):
    pass


class InvalidConfigException(SnowdriftException, ValueError):
    pass


class UnsupportedScopeException(SnowdriftException):
    pass


class NotADAGException(SnowdriftException):
    pass


class OperationCancelledException(SnowdriftException):
    pass


class SnowflakeSQLException(SnowdriftException):
    """
    A statement failed on the Snowflake side.

    Carries the connector error number, the SQL state and the statement text so
    callers can decide on policy without parsing messages.
    """

    def __init__(
        self,
        message: str,
        errno: Optional[int] = None,
        sqlstate: Optional[str] = None,
        sql: Optional[str] = None,
    ):
        super().__init__(message)
        self.errno = errno
        self.sqlstate = sqlstate
        self.sql = sql


class ObjectMissingException(SnowflakeSQLException):
    pass


class InvalidStatementException(SnowflakeSQLException):
    pass


class ForbiddenException(SnowflakeSQLException):
    pass


class ConflictException(SnowflakeSQLException):
    pass


class TransientException(SnowflakeSQLException):
    pass
