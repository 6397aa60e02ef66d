"""Data models for name resolution."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class OracleRequest:
    """A batched name-resolution request.

    Attributes:
        candidates: Raw import identifiers, all sent in one request
        file_tree: Optional newline-separated project file listing
        framework_notes: Optional framework description and settings excerpts
        import_lines: Optional full import statements, for extra context
    """

    candidates: List[str]
    file_tree: Optional[str] = None
    framework_notes: Optional[str] = None
    import_lines: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        context: Dict[str, str] = {}
        if self.file_tree:
            context["fileTree"] = self.file_tree
        if self.framework_notes:
            context["frameworkNotes"] = self.framework_notes
        payload: Dict[str, Any] = {"candidates": list(self.candidates)}
        if context:
            payload["context"] = context
        return payload


@dataclass(frozen=True)
class ClassifiedName:
    """A canonical package name with its production/development classification.

    Attributes:
        name: Normalized registry package name
        is_dev: True for development-only packages (test runners, linters, ...)
        description: Optional short description supplied by the oracle
    """

    name: str
    is_dev: bool = False
    description: str = ""
