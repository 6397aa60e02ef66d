"""Data models for import candidate extraction."""

from dataclasses import dataclass

from .._registry.models import normalize_package_name


@dataclass(frozen=True)
class ImportCandidate:
    """A third-party import candidate awaiting name resolution.

    Attributes:
        raw_identifier: Root module name as written in the import statement (e.g., "bs4")
        normalized_name: Lower-cased, underscore-to-hyphen form used for lookups
    """

    raw_identifier: str
    normalized_name: str

    @classmethod
    def from_identifier(cls, identifier: str) -> "ImportCandidate":
        return cls(raw_identifier=identifier, normalized_name=normalize_package_name(identifier))
