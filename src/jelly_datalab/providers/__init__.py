"""Dataset provider interface.

A provider realizes the query contract against one concrete backend. Every
provider exposes a single coroutine:

    async def list(self, query: DatasetQuery) -> DatasetResult

Implementations in this package:

- ``providers.api.ApiDatasetProvider``: a remote HTTP JSON API described by an ApiConfig
- ``providers.local.LocalDatasetProvider``: the local row store

``providers.registry.ProviderRegistry`` picks the right one for a dataset slug.

To add a provider, implement the protocol below (no base class needed) and
teach ``ProviderRegistry.resolve`` when to return it.
"""

from __future__ import annotations

from typing import Protocol

from jelly_datalab.core.query.models import DatasetQuery, DatasetResult


class DatasetProvider(Protocol):
    """Protocol every dataset provider implements.

    Calls are independent: a provider keeps no state between ``list`` calls,
    so concurrent calls need no coordination and an abandoned call can simply
    be discarded.
    """

    async def list(self, query: DatasetQuery) -> DatasetResult:
        """Return one page of rows matching ``query`` plus the total match count.

        Raises:
            ProviderError: If the backend fails; no partial results are returned.
        """
        ...


__all__ = ["DatasetProvider"]
