from enum import Enum
from typing import Any


class Raw(str):
    """SQL text that is emitted as-is."""


def quote_string(value: str) -> str:
    return "'" + str(value).replace("\\", "\\\\").replace("'", "\\'") + "'"


def dollar_quote(value: str) -> str:
    return f"$${value}$$"


def render_value(value: Any) -> str:
    if isinstance(value, Raw):
        return str(value)
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if hasattr(value, "fully_qualified_name"):
        return value.fully_qualified_name
    if isinstance(value, Enum):
        return quote_string(value.value)
    return quote_string(value)


def render_assignments(values: dict[str, Any]) -> str:
    return ", ".join(f"{key} = {render_value(value)}" for key, value in values.items())
