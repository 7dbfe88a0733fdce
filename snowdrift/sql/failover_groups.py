import logging

from ..exceptions import ConflictException
from ..identifiers import AccountObjectIdentifier

logger = logging.getLogger("snowdrift")


class FailoverGroups:
    def __init__(self, client):
        self._client = client

    def add_allowed_accounts(self, name: AccountObjectIdentifier, accounts: list[str]):
        sql = f"ALTER FAILOVER GROUP {name} ADD {', '.join(accounts)} TO ALLOWED_ACCOUNTS"
        try:
            self._client.execute(sql)
        except ConflictException as err:
            logger.info(f"Failover group {name} already allows {', '.join(accounts)}: {err}")
