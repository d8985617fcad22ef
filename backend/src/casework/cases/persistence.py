"""Contract of the external case store.

The core never implements persistence itself. Whatever backs the
application (a document database, an HTTP API, a test double) is
handed to the core as an object satisfying ``CasePersistence``.
"""

from typing import Protocol, runtime_checkable

from .models import Case, Intervention


@runtime_checkable
class CasePersistence(Protocol):
    """Asynchronous save/delete operations on cases and interventions.

    ``save_intervention`` receives an Intervention without ``id`` for a
    create and with ``id`` for an update. Concurrent saves of the same
    entity are not serialized; the last write wins.
    """

    async def save_case(self, case: Case) -> None: ...

    async def delete_case(self, case_id: str) -> None: ...

    async def save_intervention(self, intervention: Intervention) -> None: ...

    async def delete_intervention(self, intervention: Intervention) -> None: ...
