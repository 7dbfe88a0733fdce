from typing import Iterable

from .exceptions import InvalidGrantIdException

ALL = "ALL"
ALL_PRIVILEGES = "ALL PRIVILEGES"
IMPORTED_PRIVILEGES = "IMPORTED PRIVILEGES"
OWNERSHIP = "OWNERSHIP"
USAGE = "USAGE"


def normalize_priv(priv: str) -> str:
    return " ".join(priv.split()).upper()


def is_ownership_priv(priv: str) -> bool:
    return normalize_priv(priv) == OWNERSHIP


def is_all_privs(priv: str) -> bool:
    return normalize_priv(priv) in (ALL, ALL_PRIVILEGES)


def priv_set(privs: Iterable[str]) -> set[str]:
    return {normalize_priv(priv) for priv in privs}


def same_privs(left: Iterable[str], right: Iterable[str]) -> bool:
    return priv_set(left) == priv_set(right)


def privs_difference(left: Iterable[str], right: Iterable[str]) -> list[str]:
    """Privileges of `left` missing from `right`, in the order and spelling of `left`."""
    exclude = priv_set(right)
    return [priv for priv in left if normalize_priv(priv) not in exclude]


def validate_privs(privs: Iterable[str]) -> None:
    seen = set()
    for priv in privs:
        if not isinstance(priv, str) or priv.strip() == "":
            raise InvalidGrantIdException(f"invalid privilege: {priv!r}")
        normalized = normalize_priv(priv)
        if normalized == OWNERSHIP:
            raise InvalidGrantIdException(
                "OWNERSHIP cannot be granted together with other privileges, use an ownership grant instead"
            )
        if normalized in (ALL, ALL_PRIVILEGES):
            raise InvalidGrantIdException(f"{priv} must be requested through all_privileges")
        if normalized in seen:
            raise InvalidGrantIdException(f"duplicated privilege: {priv}")
        seen.add(normalized)


def acceptable_observed_privs(desired: Iterable[str]) -> set[str]:
    """
    Privileges that count as a match for the desired ones.

    Snowflake reports IMPORTED PRIVILEGES on share-backed databases as USAGE.
    """
    accepted = priv_set(desired)
    if IMPORTED_PRIVILEGES in accepted:
        accepted.add(USAGE)
    return accepted


def relabel_observed_priv(priv: str, desired: Iterable[str]) -> str:
    normalized = normalize_priv(priv)
    if normalized == USAGE and IMPORTED_PRIVILEGES in priv_set(desired):
        return IMPORTED_PRIVILEGES
    return normalized
