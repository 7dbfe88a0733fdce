from enum import Enum


class ParseableEnum(Enum):
    """
    Enum that accepts case-insensitive input and underscores in place of spaces.

    >>> ObjectType("materialized_view")
    <ObjectType.MATERIALIZED_VIEW: 'MATERIALIZED VIEW'>
    """

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().upper().replace("_", " ")
            for member in cls:
                if member.value.upper().replace("_", " ") == normalized:
                    return member
        return None

    def __str__(self):
        return self.value


class ObjectType(ParseableEnum):
    # Account objects
    API_INTEGRATION = "API INTEGRATION"
    APPLICATION = "APPLICATION"
    APPLICATION_PACKAGE = "APPLICATION PACKAGE"
    COMPUTE_POOL = "COMPUTE POOL"
    CONNECTION = "CONNECTION"
    DATABASE = "DATABASE"
    EXTERNAL_ACCESS_INTEGRATION = "EXTERNAL ACCESS INTEGRATION"
    EXTERNAL_VOLUME = "EXTERNAL VOLUME"
    FAILOVER_GROUP = "FAILOVER GROUP"
    INTEGRATION = "INTEGRATION"
    NETWORK_POLICY = "NETWORK POLICY"
    NOTIFICATION_INTEGRATION = "NOTIFICATION INTEGRATION"
    REPLICATION_GROUP = "REPLICATION GROUP"
    RESOURCE_MONITOR = "RESOURCE MONITOR"
    ROLE = "ROLE"
    SECURITY_INTEGRATION = "SECURITY INTEGRATION"
    SHARE = "SHARE"
    STORAGE_INTEGRATION = "STORAGE INTEGRATION"
    USER = "USER"
    WAREHOUSE = "WAREHOUSE"

    # Database objects
    DATABASE_ROLE = "DATABASE ROLE"
    SCHEMA = "SCHEMA"

    # Schema objects
    AGGREGATION_POLICY = "AGGREGATION POLICY"
    ALERT = "ALERT"
    AUTHENTICATION_POLICY = "AUTHENTICATION POLICY"
    CORTEX_SEARCH_SERVICE = "CORTEX SEARCH SERVICE"
    DYNAMIC_TABLE = "DYNAMIC TABLE"
    EVENT_TABLE = "EVENT TABLE"
    EXTERNAL_TABLE = "EXTERNAL TABLE"
    FILE_FORMAT = "FILE FORMAT"
    GIT_REPOSITORY = "GIT REPOSITORY"
    HYBRID_TABLE = "HYBRID TABLE"
    ICEBERG_TABLE = "ICEBERG TABLE"
    IMAGE_REPOSITORY = "IMAGE REPOSITORY"
    MASKING_POLICY = "MASKING POLICY"
    MATERIALIZED_VIEW = "MATERIALIZED VIEW"
    MODEL = "MODEL"
    NETWORK_RULE = "NETWORK RULE"
    NOTEBOOK = "NOTEBOOK"
    PACKAGES_POLICY = "PACKAGES POLICY"
    PASSWORD_POLICY = "PASSWORD POLICY"
    PIPE = "PIPE"
    PROJECTION_POLICY = "PROJECTION POLICY"
    ROW_ACCESS_POLICY = "ROW ACCESS POLICY"
    SECRET = "SECRET"
    SEQUENCE = "SEQUENCE"
    SERVICE = "SERVICE"
    SESSION_POLICY = "SESSION POLICY"
    STAGE = "STAGE"
    STREAM = "STREAM"
    STREAMLIT = "STREAMLIT"
    TABLE = "TABLE"
    TAG = "TAG"
    TASK = "TASK"
    VIEW = "VIEW"

    # Schema objects with arguments
    EXTERNAL_FUNCTION = "EXTERNAL FUNCTION"
    FUNCTION = "FUNCTION"
    PROCEDURE = "PROCEDURE"

    # Not an object in its own right, only used as the identifier shape of a column
    COLUMN = "COLUMN"

    def plural(self) -> "PluralObjectType":
        if self not in _PLURALS:
            raise ValueError(f"{self} has no plural form usable in bulk grants")
        return _PLURALS[self]


class PluralObjectType(ParseableEnum):
    AGGREGATION_POLICIES = "AGGREGATION POLICIES"
    ALERTS = "ALERTS"
    AUTHENTICATION_POLICIES = "AUTHENTICATION POLICIES"
    CORTEX_SEARCH_SERVICES = "CORTEX SEARCH SERVICES"
    DYNAMIC_TABLES = "DYNAMIC TABLES"
    EVENT_TABLES = "EVENT TABLES"
    EXTERNAL_FUNCTIONS = "EXTERNAL FUNCTIONS"
    EXTERNAL_TABLES = "EXTERNAL TABLES"
    FILE_FORMATS = "FILE FORMATS"
    FUNCTIONS = "FUNCTIONS"
    GIT_REPOSITORIES = "GIT REPOSITORIES"
    HYBRID_TABLES = "HYBRID TABLES"
    ICEBERG_TABLES = "ICEBERG TABLES"
    IMAGE_REPOSITORIES = "IMAGE REPOSITORIES"
    MASKING_POLICIES = "MASKING POLICIES"
    MATERIALIZED_VIEWS = "MATERIALIZED VIEWS"
    MODELS = "MODELS"
    NETWORK_RULES = "NETWORK RULES"
    NOTEBOOKS = "NOTEBOOKS"
    PACKAGES_POLICIES = "PACKAGES POLICIES"
    PASSWORD_POLICIES = "PASSWORD POLICIES"
    PIPES = "PIPES"
    PROCEDURES = "PROCEDURES"
    PROJECTION_POLICIES = "PROJECTION POLICIES"
    ROW_ACCESS_POLICIES = "ROW ACCESS POLICIES"
    SCHEMAS = "SCHEMAS"
    SECRETS = "SECRETS"
    SEQUENCES = "SEQUENCES"
    SERVICES = "SERVICES"
    SESSION_POLICIES = "SESSION POLICIES"
    STAGES = "STAGES"
    STREAMLITS = "STREAMLITS"
    STREAMS = "STREAMS"
    TABLES = "TABLES"
    TAGS = "TAGS"
    TASKS = "TASKS"
    VIEWS = "VIEWS"

    def singular(self) -> ObjectType:
        return _SINGULARS[self]


_PLURALS = {
    ObjectType.AGGREGATION_POLICY: PluralObjectType.AGGREGATION_POLICIES,
    ObjectType.ALERT: PluralObjectType.ALERTS,
    ObjectType.AUTHENTICATION_POLICY: PluralObjectType.AUTHENTICATION_POLICIES,
    ObjectType.CORTEX_SEARCH_SERVICE: PluralObjectType.CORTEX_SEARCH_SERVICES,
    ObjectType.DYNAMIC_TABLE: PluralObjectType.DYNAMIC_TABLES,
    ObjectType.EVENT_TABLE: PluralObjectType.EVENT_TABLES,
    ObjectType.EXTERNAL_FUNCTION: PluralObjectType.EXTERNAL_FUNCTIONS,
    ObjectType.EXTERNAL_TABLE: PluralObjectType.EXTERNAL_TABLES,
    ObjectType.FILE_FORMAT: PluralObjectType.FILE_FORMATS,
    ObjectType.FUNCTION: PluralObjectType.FUNCTIONS,
    ObjectType.GIT_REPOSITORY: PluralObjectType.GIT_REPOSITORIES,
    ObjectType.HYBRID_TABLE: PluralObjectType.HYBRID_TABLES,
    ObjectType.ICEBERG_TABLE: PluralObjectType.ICEBERG_TABLES,
    ObjectType.IMAGE_REPOSITORY: PluralObjectType.IMAGE_REPOSITORIES,
    ObjectType.MASKING_POLICY: PluralObjectType.MASKING_POLICIES,
    ObjectType.MATERIALIZED_VIEW: PluralObjectType.MATERIALIZED_VIEWS,
    ObjectType.MODEL: PluralObjectType.MODELS,
    ObjectType.NETWORK_RULE: PluralObjectType.NETWORK_RULES,
    ObjectType.NOTEBOOK: PluralObjectType.NOTEBOOKS,
    ObjectType.PACKAGES_POLICY: PluralObjectType.PACKAGES_POLICIES,
    ObjectType.PASSWORD_POLICY: PluralObjectType.PASSWORD_POLICIES,
    ObjectType.PIPE: PluralObjectType.PIPES,
    ObjectType.PROCEDURE: PluralObjectType.PROCEDURES,
    ObjectType.PROJECTION_POLICY: PluralObjectType.PROJECTION_POLICIES,
    ObjectType.ROW_ACCESS_POLICY: PluralObjectType.ROW_ACCESS_POLICIES,
    ObjectType.SCHEMA: PluralObjectType.SCHEMAS,
    ObjectType.SECRET: PluralObjectType.SECRETS,
    ObjectType.SEQUENCE: PluralObjectType.SEQUENCES,
    ObjectType.SERVICE: PluralObjectType.SERVICES,
    ObjectType.SESSION_POLICY: PluralObjectType.SESSION_POLICIES,
    ObjectType.STAGE: PluralObjectType.STAGES,
    ObjectType.STREAMLIT: PluralObjectType.STREAMLITS,
    ObjectType.STREAM: PluralObjectType.STREAMS,
    ObjectType.TABLE: PluralObjectType.TABLES,
    ObjectType.TAG: PluralObjectType.TAGS,
    ObjectType.TASK: PluralObjectType.TASKS,
    ObjectType.VIEW: PluralObjectType.VIEWS,
}

_SINGULARS = {plural: singular for singular, plural in _PLURALS.items()}


class IdentifierKind(Enum):
    ACCOUNT_OBJECT = "AccountObject"
    DATABASE_OBJECT = "DatabaseObject"
    SCHEMA_OBJECT = "SchemaObject"
    SCHEMA_OBJECT_WITH_ARGUMENTS = "SchemaObjectWithArguments"
    TABLE_COLUMN = "TableColumn"


# Grant id enums are matched exactly, their spelling is part of the persisted id.


class RoleKind(str, Enum):
    TO_ACCOUNT_ROLE = "ToAccountRole"
    TO_DATABASE_ROLE = "ToDatabaseRole"

    def __str__(self):
        return self.value


class GrantKind(str, Enum):
    ON_ACCOUNT = "OnAccount"
    ON_ACCOUNT_OBJECT = "OnAccountObject"
    ON_SCHEMA = "OnSchema"
    ON_SCHEMA_OBJECT = "OnSchemaObject"

    def __str__(self):
        return self.value


class OnSchemaGrantKind(str, Enum):
    ON_SCHEMA = "OnSchema"
    ON_ALL_SCHEMAS_IN_DATABASE = "OnAllSchemasInDatabase"
    ON_FUTURE_SCHEMAS_IN_DATABASE = "OnFutureSchemasInDatabase"

    def __str__(self):
        return self.value


class OnSchemaObjectGrantKind(str, Enum):
    ON_OBJECT = "OnObject"
    ON_ALL = "OnAll"
    ON_FUTURE = "OnFuture"

    def __str__(self):
        return self.value


class BulkOperationGrantKind(str, Enum):
    IN_DATABASE = "InDatabase"
    IN_SCHEMA = "InSchema"

    def __str__(self):
        return self.value


class OutboundPrivilegesBehavior(str, Enum):
    COPY = "COPY"
    REVOKE = "REVOKE"

    def __str__(self):
        return self.value


class TaskState(ParseableEnum):
    STARTED = "started"
    SUSPENDED = "suspended"


# Task parameter enums


class WarehouseSize(ParseableEnum):
    XSMALL = "XSMALL"
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"
    XLARGE = "XLARGE"
    XXLARGE = "XXLARGE"
    XXXLARGE = "XXXLARGE"
    X4LARGE = "X4LARGE"
    X5LARGE = "X5LARGE"
    X6LARGE = "X6LARGE"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            aliases = {
                "X-SMALL": "XSMALL",
                "X-LARGE": "XLARGE",
                "2X-LARGE": "XXLARGE",
                "X2LARGE": "XXLARGE",
                "3X-LARGE": "XXXLARGE",
                "X3LARGE": "XXXLARGE",
                "4X-LARGE": "X4LARGE",
                "5X-LARGE": "X5LARGE",
                "6X-LARGE": "X6LARGE",
            }
            normalized = value.strip().upper()
            normalized = aliases.get(normalized, normalized)
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class BinaryInputFormat(ParseableEnum):
    HEX = "HEX"
    BASE64 = "BASE64"
    UTF8 = "UTF8"


class BinaryOutputFormat(ParseableEnum):
    HEX = "HEX"
    BASE64 = "BASE64"


class ClientTimestampTypeMapping(ParseableEnum):
    TIMESTAMP_LTZ = "TIMESTAMP_LTZ"
    TIMESTAMP_NTZ = "TIMESTAMP_NTZ"


class GeographyOutputFormat(ParseableEnum):
    GEO_JSON = "GeoJSON"
    WKT = "WKT"
    WKB = "WKB"
    EWKT = "EWKT"
    EWKB = "EWKB"


class GeometryOutputFormat(ParseableEnum):
    GEO_JSON = "GeoJSON"
    WKT = "WKT"
    WKB = "WKB"
    EWKT = "EWKT"
    EWKB = "EWKB"


class LogLevel(ParseableEnum):
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"
    OFF = "OFF"


class TimestampTypeMapping(ParseableEnum):
    TIMESTAMP_LTZ = "TIMESTAMP_LTZ"
    TIMESTAMP_NTZ = "TIMESTAMP_NTZ"
    TIMESTAMP_TZ = "TIMESTAMP_TZ"


class TraceLevel(ParseableEnum):
    ALWAYS = "ALWAYS"
    ON_EVENT = "ON_EVENT"
    OFF = "OFF"


class TransactionDefaultIsolationLevel(ParseableEnum):
    READ_COMMITTED = "READ COMMITTED"


class UnsupportedDDLAction(ParseableEnum):
    IGNORE = "IGNORE"
    FAIL = "FAIL"
