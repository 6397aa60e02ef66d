"""Lexical import extraction.

Imports are found with line-oriented regular expressions, not a Python
parser. This is a deliberate approximation: it tolerates files that do
not parse, it never executes anything, and it only needs the first
segment of each imported module path. Multi-line parenthesized imports,
backslash continuations and imports embedded in strings are handled only
as far as the first line allows.
"""

import re
from typing import FrozenSet, Iterable, List, Optional, Set

from ..logging_config import logger
from .models import ImportCandidate
from .stdlib import STDLIB_MODULES

_FROM_IMPORT = re.compile(r"^from\s+(\S+)\s+import\b")
_PLAIN_IMPORT = re.compile(r"^import\s+(.+)$")


def _root_segment(module_path: str) -> Optional[str]:
    """Return the first dotted segment of an absolute module path, if well-formed."""
    if not module_path or module_path.startswith("."):
        return None
    root = module_path.split(".")[0]
    return root if root.isidentifier() else None


def parse_import_line(line: str) -> List[str]:
    """
    Extract root module names from a single line.

    Handles ``import a.b``, ``import a as x, b``, ``from a.b import c``,
    several statements joined with ``;``
    and ignores relative imports, comments and anything else.

    Args:
        line: One line of source text (leading indentation allowed)

    Returns:
        Root module names in the order they appear; empty for non-import lines
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return []

    roots: List[str] = []
    for statement in stripped.split("#", 1)[0].split(";"):
        for root in _parse_statement(statement.strip()):
            if root not in roots:
                roots.append(root)
    return roots


def _parse_statement(stripped: str) -> List[str]:
    match = _FROM_IMPORT.match(stripped)
    if match:
        root = _root_segment(match.group(1))
        return [root] if root else []

    match = _PLAIN_IMPORT.match(stripped)
    if not match:
        return []

    roots: List[str] = []
    for part in match.group(1).split(","):
        tokens = part.split()
        if not tokens:
            continue
        # "a.b as c" -> "a.b"
        root = _root_segment(tokens[0])
        if root and root not in roots:
            roots.append(root)
    return roots


def extract_import_roots(source: str) -> List[str]:
    """Extract deduplicated root module names from source text or import statements."""
    roots: List[str] = []
    seen: Set[str] = set()
    for line in source.splitlines():
        for root in parse_import_line(line):
            if root not in seen:
                seen.add(root)
                roots.append(root)
    return roots


class CandidateExtractor:
    """
    Turns import statements into third-party lookup candidates.

    Standard-library modules and names known to be local to the project
    (local packages, modules, classes and functions) are excluded. No
    network or registry access happens here.

    Example:
        extractor = CandidateExtractor(local_names={"my_utils"})
        candidates = extractor.extract(["import os", "from bs4 import BeautifulSoup", "import my_utils"])
        # -> [ImportCandidate(raw_identifier="bs4", normalized_name="bs4")]
    """

    def __init__(
        self,
        local_names: Iterable[str] = (),
        stdlib_modules: FrozenSet[str] = STDLIB_MODULES,
    ) -> None:
        self._stdlib = stdlib_modules
        self._local = {name for name in local_names if name}

    def is_excluded(self, identifier: str) -> bool:
        """Check if an identifier is standard library or local to the project."""
        if identifier in self._stdlib:
            return True
        # Identifiers are case-sensitive: a local "class Redis" must not hide "import redis"
        return identifier in self._local

    def extract(self, sources: Iterable[str]) -> List[ImportCandidate]:
        """
        Extract candidates from source texts or import-statement strings.

        Args:
            sources: File contents or individual import lines

        Returns:
            Candidates deduplicated by normalized name, in first-seen order
        """
        identifiers: List[str] = []
        for source in sources:
            if source:
                identifiers.extend(extract_import_roots(source))
        return self.extract_from_identifiers(identifiers)

    def extract_from_identifiers(self, identifiers: Iterable[str]) -> List[ImportCandidate]:
        """
        Build candidates from already-extracted root identifiers.

        Args:
            identifiers: Raw root module names

        Returns:
            Candidates deduplicated by normalized name, in first-seen order
        """
        candidates: List[ImportCandidate] = []
        seen: Set[str] = set()
        excluded = 0

        for identifier in identifiers:
            identifier = identifier.strip() if identifier else ""
            root = _root_segment(identifier)
            if not root:
                continue
            if self.is_excluded(root):
                excluded += 1
                continue
            candidate = ImportCandidate.from_identifier(root)
            if candidate.normalized_name in seen:
                continue
            seen.add(candidate.normalized_name)
            candidates.append(candidate)

        logger.debug(f"Extracted {len(candidates)} import candidates ({excluded} stdlib/local references excluded)")
        return candidates


def extract_candidates(sources: Iterable[str], local_names: Iterable[str] = ()) -> List[ImportCandidate]:
    """Extract third-party import candidates from source texts."""
    return CandidateExtractor(local_names=local_names).extract(sources)
