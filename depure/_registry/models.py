"""Data models for registry lookups."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


def normalize_package_name(name: str) -> str:
    """Normalize a package name for registry lookups.

    Lower-cases, trims and replaces underscores with hyphens. The
    transformation is idempotent.

    Args:
        name: Raw package or import name

    Returns:
        Normalized name
    """
    return name.strip().lower().replace("_", "-")


@dataclass(frozen=True)
class PackageRecord:
    """Release metadata for a package confirmed by the registry.

    Attributes:
        canonical_name: Normalized package name the record was fetched for
        latest_version: Highest release version (or the registry's reported version)
        summary: One-line package summary
        license: License string as reported by the registry
        homepage: Project homepage URL
        requirement_names: Bare names of the declared requirements, lower-cased
        fetched_at: Unix timestamp of the fetch
        display_name: Project name as spelled by the registry
    """

    canonical_name: str
    latest_version: Optional[str]
    summary: Optional[str] = None
    license: Optional[str] = None
    homepage: Optional[str] = None
    requirement_names: Tuple[str, ...] = ()
    fetched_at: float = 0.0
    display_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canonical_name": self.canonical_name,
            "latest_version": self.latest_version,
            "summary": self.summary,
            "license": self.license,
            "homepage": self.homepage,
            "requirement_names": list(self.requirement_names),
            "fetched_at": self.fetched_at,
            "display_name": self.display_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageRecord":
        return cls(
            canonical_name=data["canonical_name"],
            latest_version=data.get("latest_version"),
            summary=data.get("summary"),
            license=data.get("license"),
            homepage=data.get("homepage"),
            requirement_names=tuple(data.get("requirement_names") or ()),
            fetched_at=float(data.get("fetched_at", 0.0)),
            display_name=data.get("display_name"),
        )


@dataclass(frozen=True)
class CacheEntry:
    """A cached lookup result.

    A ``record`` of None is a cached negative: the registry confirmed the
    package does not exist (or could not be fetched) at ``fetched_at``.
    """

    record: Optional[PackageRecord]
    fetched_at: float = field(default=0.0)

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.fetched_at < ttl
