import logging
import os
from typing import Optional

import snowflake.connector
from snowflake.connector.errors import Error

from ..client import OperationContext, SnowflakeClient, translate_error

logger = logging.getLogger("snowdrift")

ENV_VARS = {
    "SNOWFLAKE_ACCOUNT": "account",
    "SNOWFLAKE_USER": "user",
    "SNOWFLAKE_PASSWORD": "password",
    "SNOWFLAKE_ROLE": "role",
    "SNOWFLAKE_WAREHOUSE": "warehouse",
    "SNOWFLAKE_AUTHENTICATOR": "authenticator",
}


def get_env_vars() -> dict:
    """Connection parameters set in the environment, empty values are ignored."""
    params = {}
    for env_var, param in ENV_VARS.items():
        value = os.environ.get(env_var)
        if value:
            params[param] = value
    return params


def connect(context: Optional[OperationContext] = None, **overrides) -> SnowflakeClient:
    params = get_env_vars()
    params.update({key: value for key, value in overrides.items() if value is not None})
    if "account" not in params:
        raise ValueError("SNOWFLAKE_ACCOUNT is not set and no account was given")
    params.setdefault("application", "snowdrift")
    logger.info(f"Connecting to Snowflake account {params['account']} as {params.get('user')}")
    try:
        connection = snowflake.connector.connect(**params)
    except Error as err:
        raise translate_error(err, "connect") from err
    return SnowflakeClient(connection, context)
