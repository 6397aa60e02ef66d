"""PyPI registry client for package verification and release metadata."""

import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional

import requests

from ..cancellation import CancellationToken, is_cancelled
from ..http_client import create_session
from ..logging_config import logger
from ..versioning import pick_latest
from .cache import RegistryCache
from .models import PackageRecord, normalize_package_name

PYPI_API_BASE = "https://pypi.org/pypi"
DEFAULT_TIMEOUT = 7  # seconds
DEFAULT_CONCURRENCY = 8

# A requirement name ends at a marker, extra, version specifier or whitespace
_REQUIREMENT_NAME_END = re.compile(r"[;\[=<>!~(\s]")


def parse_requirement_name(requirement: str) -> Optional[str]:
    """
    Extract the bare dependency name from a ``Requires-Dist`` string.

    Examples:
        'urllib3<3,>=1.21.1' -> 'urllib3'
        'PySocks!=1.5.7,>=1.5.6; extra == "socks"' -> 'pysocks'
        'charset_normalizer[unicode_backport] (>=2,<4)' -> 'charset_normalizer'

    Returns:
        Lower-cased name, or None for an empty requirement
    """
    if not requirement or not isinstance(requirement, str):
        return None
    name = _REQUIREMENT_NAME_END.split(requirement.strip(), maxsplit=1)[0].strip().lower()
    return name or None


def _release_is_available(files: Any) -> bool:
    """A release with files that are all yanked is not a candidate for latest."""
    if not isinstance(files, list) or not files:
        return True
    return not all(isinstance(f, dict) and f.get("yanked") for f in files)


class PyPIClient:
    """
    Looks up packages on the PyPI JSON API.

    Every lookup goes through a RegistryCache, so repeated lookups for the
    same canonical name inside the TTL window cost one request at most.
    Any transport, HTTP or payload problem yields None, which is cached
    as a negative result like a 404.

    Example:
        with PyPIClient(cache=RegistryCache(ttl=3600)) as client:
            record = client.lookup("Beautifulsoup4")
            records = client.lookup_many(["requests", "flask"], concurrency=4)
    """

    def __init__(
        self,
        cache: Optional[RegistryCache] = None,
        session: Optional[requests.Session] = None,
        base_url: str = PYPI_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._cache = cache if cache is not None else RegistryCache()
        self._session = session
        self._owns_session = session is None
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "pypi.org"

    @property
    def cache(self) -> RegistryCache:
        return self._cache

    def _get_session(self) -> requests.Session:
        """Get or create a requests session."""
        if self._session is None:
            self._session = create_session()
        return self._session

    def close(self) -> None:
        """Close the requests session if this client created it."""
        if self._session is not None and self._owns_session:
            self._session.close()
            self._session = None

    def __enter__(self) -> "PyPIClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def lookup(self, name: str) -> Optional[PackageRecord]:
        """
        Look up a package by name.

        Args:
            name: Package name, normalized before the cache and registry are consulted

        Returns:
            PackageRecord if the registry confirms the package, None otherwise
        """
        if not name or not name.strip():
            return None
        return self._cache.get_or_fetch(normalize_package_name(name), self.fetch)

    def lookup_many(
        self,
        names: Iterable[str],
        concurrency: int = DEFAULT_CONCURRENCY,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, Optional[PackageRecord]]:
        """
        Look up several packages with bounded concurrency.

        Results are keyed by normalized name in the order the names were
        given, regardless of the order the fetches complete in. Names not
        reached before cancellation are absent from the result.

        Args:
            names: Package names
            concurrency: Maximum number of simultaneous lookups
            cancel_token: Optional cancellation signal checked before each lookup

        Returns:
            Ordered mapping of normalized name to PackageRecord or None
        """
        ordered: List[str] = []
        for name in names:
            key = normalize_package_name(name) if name else ""
            if key and key not in ordered:
                ordered.append(key)

        results: Dict[str, Optional[PackageRecord]] = {}
        if not ordered:
            return results

        def lookup_one(key: str) -> tuple[bool, Optional[PackageRecord]]:
            if is_cancelled(cancel_token):
                return False, None
            return True, self.lookup(key)

        if concurrency <= 1 or len(ordered) == 1:
            outcomes = [lookup_one(key) for key in ordered]
        else:
            with ThreadPoolExecutor(max_workers=min(concurrency, len(ordered))) as executor:
                # map() yields in submission order
                outcomes = list(executor.map(lookup_one, ordered))

        for key, (done, record) in zip(ordered, outcomes):
            if done:
                results[key] = record
        return results

    def fetch(self, name: str) -> Optional[PackageRecord]:
        """
        Fetch a package from the registry, bypassing the cache.

        Never raises and never retries.

        Args:
            name: Normalized package name

        Returns:
            PackageRecord if successful, None otherwise
        """
        url = f"{self.base_url}/{name}/json"
        try:
            logger.debug(f"Fetching PyPI metadata for: {name}")
            response = self._get_session().get(url, timeout=self.timeout)

            if response.status_code == 404:
                logger.debug(f"Package not found on PyPI: {name}")
                return None
            if response.status_code != 200:
                logger.warning(f"Failed to fetch PyPI metadata for {name}: HTTP {response.status_code}")
                return None

            return self._normalize_response(name, response.json())

        except requests.exceptions.Timeout:
            logger.warning(f"Timeout fetching PyPI metadata for {name}")
            return None
        except requests.exceptions.RequestException as e:
            logger.warning(f"Error fetching PyPI metadata for {name}: {e}")
            return None
        except ValueError as e:
            # JSONDecodeError (stdlib and requests flavours) is a ValueError
            logger.warning(f"JSON decode error for PyPI {name}: {e}")
            return None

    def _normalize_response(self, name: str, data: Any) -> Optional[PackageRecord]:
        """
        Normalize a PyPI JSON API response into a PackageRecord.

        Args:
            name: Normalized package name
            data: Raw PyPI JSON API response

        Returns:
            PackageRecord, or None when the payload lacks usable metadata
        """
        if not isinstance(data, dict):
            logger.warning(f"Unexpected PyPI payload for {name}: {type(data).__name__}")
            return None

        info = data.get("info")
        if not isinstance(info, dict):
            logger.warning(f"PyPI payload for {name} has no 'info' section")
            return None

        releases = data.get("releases")
        release_keys: List[str] = []
        if isinstance(releases, dict):
            release_keys = [key for key, files in releases.items() if _release_is_available(files)]

        latest_version = pick_latest(release_keys) or info.get("version")
        if not latest_version:
            logger.warning(f"PyPI payload for {name} has no version")
            return None

        requirement_names: List[str] = []
        requires_dist = info.get("requires_dist")
        if isinstance(requires_dist, list):
            for requirement in requires_dist:
                req_name = parse_requirement_name(requirement)
                if req_name and req_name not in requirement_names:
                    requirement_names.append(req_name)

        project_urls = info.get("project_urls") or {}
        homepage = info.get("home_page") or None
        if not homepage and isinstance(project_urls, dict):
            homepage = project_urls.get("Homepage") or project_urls.get("Source Code") or project_urls.get("Source")

        logger.debug(f"Successfully fetched PyPI metadata for: {name} ({latest_version})")

        return PackageRecord(
            canonical_name=name,
            latest_version=str(latest_version),
            summary=info.get("summary") or None,
            license=info.get("license_expression") or info.get("license") or None,
            homepage=homepage,
            requirement_names=tuple(requirement_names),
            fetched_at=self._cache.now(),
            display_name=info.get("name") or None,
        )
