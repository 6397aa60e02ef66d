"""Name-resolution orchestration: one oracle call per run, strict validation."""

import json
from typing import Any, Iterable, List, Optional, Set

from ..exceptions import OracleError
from ..logging_config import logger
from .._registry.models import normalize_package_name
from .models import ClassifiedName, OracleRequest
from .protocol import NameOracle

_TRUE_STRINGS = ("true", "1", "yes", "y", "dev", "development")


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def parse_oracle_response(payload: Any) -> List[ClassifiedName]:
    """
    Validate and normalize an oracle response.

    The response must be a JSON object (or its text) with a
    ``dependencies`` array. Entries are normalized (trimmed, lower-cased,
    underscores to hyphens), ``isDev`` is coerced to a boolean, and entries
    without a usable name are dropped. Duplicate names keep their first
    occurrence.

    Args:
        payload: JSON text or decoded object returned by the oracle

    Returns:
        Classified names in response order

    Raises:
        OracleError: If the payload is not JSON or lacks the dependencies array
    """
    data = payload
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise OracleError(f"Failed to parse oracle response: {e}. Response was: {payload!r}") from e

    if not isinstance(data, dict):
        raise OracleError(f"Oracle response must be a JSON object, got {type(data).__name__}. Response was: {payload!r}")

    dependencies = data.get("dependencies")
    if not isinstance(dependencies, list):
        raise OracleError(f'Oracle response is missing the "dependencies" array. Response was: {payload!r}')

    results: List[ClassifiedName] = []
    seen: Set[str] = set()
    for entry in dependencies:
        if not isinstance(entry, dict):
            logger.debug(f"Skipping malformed oracle entry: {entry!r}")
            continue

        raw_name = entry.get("name")
        name = normalize_package_name(raw_name) if isinstance(raw_name, str) else ""
        if not name or name in seen:
            continue
        seen.add(name)

        description = entry.get("description")
        results.append(
            ClassifiedName(
                name=name,
                is_dev=_coerce_bool(entry.get("isDev", False)),
                description=description.strip() if isinstance(description, str) else "",
            )
        )

    return results


class NameResolver:
    """
    Maps import candidates to canonical registry names via an oracle.

    All candidates of a run go to the oracle in a single batched call, so
    the oracle can use the whole set (and the project context) to tell
    local modules from external packages. There is no fallback when the
    oracle fails: the OracleError reaches the caller unchanged.

    Example:
        resolver = NameResolver(GeminiOracle(api_key="..."))
        names = resolver.resolve(["bs4", "pytest"], file_tree="app.py\\ntests/test_app.py")
    """

    def __init__(self, oracle: NameOracle) -> None:
        self._oracle = oracle

    @property
    def oracle(self) -> NameOracle:
        return self._oracle

    def resolve(
        self,
        candidates: Iterable[str],
        file_tree: Optional[str] = None,
        framework_notes: Optional[str] = None,
        import_lines: Optional[List[str]] = None,
    ) -> List[ClassifiedName]:
        """
        Resolve candidates to classified canonical names.

        Args:
            candidates: Raw import identifiers
            file_tree: Optional project file listing
            framework_notes: Optional framework context
            import_lines: Optional full import statements

        Returns:
            Classified names; empty without an oracle call when there are no candidates

        Raises:
            OracleError: If the oracle fails or returns a malformed response
        """
        candidate_list = list(dict.fromkeys(c for c in candidates if c))
        if not candidate_list:
            return []

        request = OracleRequest(
            candidates=candidate_list,
            file_tree=file_tree,
            framework_notes=framework_notes,
            import_lines=list(import_lines or []),
        )

        logger.info(f"Resolving {len(candidate_list)} import candidates with {self._oracle.name}")
        payload = self._oracle.resolve(request)
        resolved = parse_oracle_response(payload)

        dev_count = sum(1 for r in resolved if r.is_dev)
        logger.info(f"Oracle identified {len(resolved)} packages ({dev_count} development)")
        return resolved
