from ..identifiers import AccountObjectIdentifier


class Session:
    def __init__(self, client):
        self._client = client

    def current_role(self) -> AccountObjectIdentifier:
        rows = self._client.execute("SELECT CURRENT_ROLE() AS ROLE")
        return AccountObjectIdentifier(rows[0]["ROLE"])
