"""Package registry access with TTL caching.

Example usage:
    from depure._registry import PyPIClient, RegistryCache

    cache = RegistryCache(ttl=3600)
    with PyPIClient(cache=cache) as client:
        record = client.lookup("requests")
        if record:
            print(record.latest_version, record.requirement_names)
"""

from .cache import DEFAULT_CACHE_FILE, DEFAULT_TTL, RegistryCache
from .models import CacheEntry, PackageRecord, normalize_package_name
from .pypi import PYPI_API_BASE, PyPIClient, parse_requirement_name

__all__ = [
    "PyPIClient",
    "RegistryCache",
    "PackageRecord",
    "CacheEntry",
    "normalize_package_name",
    "parse_requirement_name",
    "PYPI_API_BASE",
    "DEFAULT_TTL",
    "DEFAULT_CACHE_FILE",
]
