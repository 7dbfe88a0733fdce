from typing import Optional

import pyparsing as pp

from .exceptions import InvalidIdentifierException

# Snowflake identifier grammar
#   "quoted ""part""" | unquoted_part, joined with dots, optionally followed by
#   a parenthesised list of argument types for functions and procedures.

QUOTED_PART = pp.QuotedString('"', esc_quote='""', convert_whitespace_escapes=False)
UNQUOTED_PART = pp.Word(pp.alphas + "_", pp.alphanums + "_$")
IDENTIFIER_PART = QUOTED_PART | UNQUOTED_PART

TYPE_WORD = pp.Word(pp.alphas, pp.alphanums + "_")
TYPE_PRECISION = pp.Suppress("(") + pp.Word(pp.nums) + pp.Optional(pp.Suppress(",") + pp.Word(pp.nums)) + pp.Suppress(")")
ARGUMENT_TYPE = pp.original_text_for(TYPE_WORD + pp.ZeroOrMore(TYPE_WORD) + pp.Optional(TYPE_PRECISION))
ARGUMENT_TYPES = pp.Suppress("(") + pp.Optional(ARGUMENT_TYPE + pp.ZeroOrMore(pp.Suppress(",") + ARGUMENT_TYPE)) + pp.Suppress(")")

IDENTIFIER = pp.Group(IDENTIFIER_PART + pp.ZeroOrMore(pp.Suppress(".") + IDENTIFIER_PART))("parts") + pp.Optional(
    pp.Group(ARGUMENT_TYPES)("arguments")
)


def parse_identifier_parts(identifier: str) -> tuple[list[str], Optional[list[str]]]:
    """
    Split an identifier into its unquoted parts and, when present, its argument types.

    >>> parse_identifier_parts('"db"."sch"."fn"(FLOAT, VARCHAR)')
    (['db', 'sch', 'fn'], ['FLOAT', 'VARCHAR'])
    """
    if not isinstance(identifier, str) or identifier.strip() == "":
        raise InvalidIdentifierException(f"incompatible identifier: {identifier!r}")
    try:
        result = IDENTIFIER.parse_string(identifier, parse_all=True)
    except pp.ParseException as err:
        raise InvalidIdentifierException(f"unable to read identifier: {identifier}, err = {err}") from err
    parts = list(result["parts"])
    arguments = [" ".join(arg.split()).upper() for arg in result["arguments"]] if "arguments" in result else None
    return parts, arguments


def quote_part(part: str) -> str:
    return '"' + part.replace('"', '""') + '"'


def split_outside_quotes(text: str, delimiter: str = "|") -> list[str]:
    """
    Split on a delimiter that is not enclosed in double quotes.

    >>> split_outside_quotes('ToAccountRole|"a|b"|OnAccount')
    ['ToAccountRole', '"a|b"', 'OnAccount']
    """
    parts = []
    current = []
    in_quotes = False
    for char in text:
        if char == '"':
            in_quotes = not in_quotes
        if char == delimiter and not in_quotes:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def split_csv(text: str) -> list[str]:
    return [item.strip() for item in text.split(",") if item.strip()]
