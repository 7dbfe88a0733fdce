from typing import Optional

from ..exceptions import ObjectMissingException
from ..identifiers import AccountObjectIdentifier, DatabaseObjectIdentifier
from .render import quote_string


class Roles:
    def __init__(self, client):
        self._client = client

    def show_account_role(self, role: AccountObjectIdentifier) -> Optional[dict]:
        rows = self._client.execute(f"SHOW ROLES LIKE {quote_string(role.name)}")
        return _exact_match(rows, role.name)

    def show_database_role(self, role: DatabaseObjectIdentifier) -> Optional[dict]:
        try:
            rows = self._client.execute(
                f"SHOW DATABASE ROLES LIKE {quote_string(role.name)} IN DATABASE {role.database_identifier}"
            )
        except ObjectMissingException:
            return None
        return _exact_match(rows, role.name)

    def show(self, role) -> Optional[dict]:
        if isinstance(role, DatabaseObjectIdentifier):
            return self.show_database_role(role)
        return self.show_account_role(role)


def _exact_match(rows: list[dict], name: str) -> Optional[dict]:
    # LIKE is case-insensitive and treats _ as a wildcard
    for row in rows:
        if row["name"] == name:
            return row
    return None
