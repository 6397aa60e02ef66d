"""Protocol definition for registry lookups used during expansion."""

from typing import Dict, Iterable, Optional, Protocol

from ..cancellation import CancellationToken
from .._registry.models import PackageRecord


class RegistryLookup(Protocol):
    """Protocol for the registry client the graph builder expands through.

    PyPIClient implements it; tests can substitute a dictionary-backed fake.

    Example:
        class FakeRegistry:
            def lookup_many(self, names, concurrency=8, cancel_token=None):
                return {name: RECORDS.get(name) for name in names}
    """

    def lookup_many(
        self,
        names: Iterable[str],
        concurrency: int = 8,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, Optional[PackageRecord]]:
        """Look up packages, returning normalized name -> record (None when not found).

        Names not reached before cancellation are absent from the result.
        """
        ...
