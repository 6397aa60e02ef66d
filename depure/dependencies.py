"""Resolved dependency records and the merge step that produces them."""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional

from packageurl import PackageURL

from ._registry.models import PackageRecord, normalize_package_name
from ._resolution.models import ClassifiedName
from .logging_config import logger
from .versioning import is_newer


@dataclass
class ResolvedDependency:
    """A dependency confirmed by the registry.

    ``update_available`` is derived from ``registry_version`` and
    ``pinned_version`` every time it is read, never stored.

    Attributes:
        name: Canonical package name
        is_dev: Development-only dependency
        pinned_version: Version recorded locally (requirements file), if any
        registry_version: Latest version reported by the registry
        is_valid: True when the registry confirmed the package
        description: Registry summary, or the oracle's description
        license: License reported by the registry
        homepage: Homepage reported by the registry
    """

    name: str
    is_dev: bool = False
    pinned_version: Optional[str] = None
    registry_version: Optional[str] = None
    is_valid: bool = False
    description: str = ""
    license: Optional[str] = None
    homepage: Optional[str] = None

    @property
    def update_available(self) -> bool:
        return is_newer(self.registry_version, self.pinned_version)

    @property
    def version(self) -> Optional[str]:
        """Version to record: the pinned one, else the registry's latest."""
        return self.pinned_version or self.registry_version

    @property
    def purl(self) -> str:
        return PackageURL(type="pypi", name=self.name, version=self.version).to_string()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "isDev": self.is_dev,
            "pinnedVersion": self.pinned_version,
            "registryVersion": self.registry_version,
            "updateAvailable": self.update_available,
            "isValid": self.is_valid,
            "description": self.description,
            "license": self.license,
            "homepage": self.homepage,
            "purl": self.purl,
        }


class DependencySet:
    """
    Resolved dependencies partitioned into production and development groups.

    Supports moving a dependency between groups and accepting available
    updates. No other mutation is offered.
    """

    def __init__(self, dependencies: Optional[List[ResolvedDependency]] = None) -> None:
        self.prod: List[ResolvedDependency] = []
        self.dev: List[ResolvedDependency] = []
        for dep in dependencies or []:
            (self.dev if dep.is_dev else self.prod).append(dep)

    def __len__(self) -> int:
        return len(self.prod) + len(self.dev)

    def __iter__(self) -> Iterator[ResolvedDependency]:
        return iter(self.all())

    def all(self) -> List[ResolvedDependency]:
        return [*self.prod, *self.dev]

    def get(self, name: str) -> Optional[ResolvedDependency]:
        key = normalize_package_name(name)
        for dep in self.all():
            if dep.name == key:
                return dep
        return None

    def updates(self) -> List[ResolvedDependency]:
        """Dependencies whose registry version is newer than the pinned one."""
        return [dep for dep in self.all() if dep.update_available]

    def reclassify(self, name: str, is_dev: bool) -> bool:
        """
        Move a dependency to the production or development group.

        All other fields are preserved.

        Returns:
            True if the dependency was moved, False if not found or already in that group
        """
        key = normalize_package_name(name)
        source, dest = (self.prod, self.dev) if is_dev else (self.dev, self.prod)
        for index, dep in enumerate(source):
            if dep.name == key:
                moved = source.pop(index)
                moved.is_dev = is_dev
                dest.append(moved)
                logger.debug(f"Moved {key} to {'development' if is_dev else 'production'}")
                return True
        return False

    def update_version(self, name: str, version: str) -> bool:
        """Pin a single dependency to ``version``. Returns False if not found."""
        dep = self.get(name)
        if dep is None:
            return False
        dep.pinned_version = version
        return True

    def accept_all_updates(self) -> List[str]:
        """
        Pin every dependency with an available update to its registry version.

        Returns:
            Names of the dependencies that were updated
        """
        updated: List[str] = []
        for dep in self.all():
            if dep.update_available and dep.registry_version:
                dep.pinned_version = dep.registry_version
                updated.append(dep.name)
        if updated:
            logger.info(f"Accepted {len(updated)} available updates")
        return updated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "production": [dep.to_dict() for dep in self.prod],
            "development": [dep.to_dict() for dep in self.dev],
        }


class DependencyMerger:
    """
    Combines oracle classifications, registry records and pinned versions.

    Only names the registry confirmed are emitted; an oracle suggestion
    the registry cannot find is dropped without error.
    """

    def merge(
        self,
        classified: List[ClassifiedName],
        records: Mapping[str, Optional[PackageRecord]],
        pinned_versions: Optional[Mapping[str, Optional[str]]] = None,
    ) -> DependencySet:
        """
        Build the resolved dependency set.

        Args:
            classified: Oracle output (canonical names with prod/dev flags)
            records: Registry results keyed by normalized name (None = not found)
            pinned_versions: Previously pinned versions keyed by package name

        Returns:
            DependencySet of registry-confirmed dependencies, in oracle order
        """
        pinned = {normalize_package_name(k): v for k, v in (pinned_versions or {}).items() if k}

        resolved: List[ResolvedDependency] = []
        dropped: List[str] = []
        for item in classified:
            key = normalize_package_name(item.name)
            record = records.get(key)
            if record is None:
                dropped.append(key)
                continue
            resolved.append(
                ResolvedDependency(
                    name=key,
                    is_dev=item.is_dev,
                    pinned_version=pinned.get(key),
                    registry_version=record.latest_version,
                    is_valid=True,
                    description=record.summary or item.description,
                    license=record.license,
                    homepage=record.homepage,
                )
            )

        if dropped:
            logger.info(f"Dropped {len(dropped)} names the registry could not confirm: {', '.join(dropped)}")
        return DependencySet(resolved)
