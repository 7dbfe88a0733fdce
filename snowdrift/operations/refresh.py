import logging
from dataclasses import dataclass, field

from ..resources.resource import Diagnostics, Resource, ResourceData
from ..thread_executor import execute_in_threads

logger = logging.getLogger("snowdrift")

DEFAULT_REFRESH_THREADS = 8


@dataclass
class RefreshItem:
    resource: Resource
    data: ResourceData
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def __str__(self):
        return f"{self.resource.label} {self.data.id}"


def _read(client, item: RefreshItem) -> Diagnostics:
    return item.resource.read(client, item.data)


def refresh(client, items: list[RefreshItem], threads: int = DEFAULT_REFRESH_THREADS) -> list[RefreshItem]:
    """
    Read every item that has an id, in parallel. ResourceData is updated in
    place; the diagnostics of each read are stored on its item.
    """
    pending = [item for item in items if item.data.id]
    if not pending:
        return items
    logger.info(f"Refreshing {len(pending)} resources with {threads} threads")
    for item, diagnostics in execute_in_threads(
        _read,
        pending,
        max_workers=threads,
        item_to_args=lambda item: [client, item],
    ):
        item.diagnostics.extend(diagnostics)
    return items
