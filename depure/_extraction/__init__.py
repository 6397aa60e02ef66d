"""Import candidate extraction.

Turns Python source text into a deduplicated set of third-party import
candidates, excluding the standard library and names defined by the
project itself. Extraction is lexical (regular expressions over lines),
never a full parse, and never touches the network.

Example usage:
    from depure._extraction import extract_candidates, scan_workspace

    scan = scan_workspace(Path("."))
    candidates = extract_candidates(scan.import_lines, local_names=scan.local_names)
"""

from .extractor import CandidateExtractor, extract_candidates, extract_import_roots, parse_import_line
from .models import ImportCandidate
from .stdlib import STDLIB_MODULES, is_standard_library
from .workspace import DEFAULT_EXCLUDE_PATTERNS, FrameworkContext, WorkspaceScan, detect_framework, scan_workspace

__all__ = [
    "CandidateExtractor",
    "ImportCandidate",
    "extract_candidates",
    "extract_import_roots",
    "parse_import_line",
    "STDLIB_MODULES",
    "is_standard_library",
    "scan_workspace",
    "detect_framework",
    "WorkspaceScan",
    "FrameworkContext",
    "DEFAULT_EXCLUDE_PATTERNS",
]
