"""Resolution engine: extraction, name resolution, verification and expansion.

The engine wires the pipeline stages together for one run:

    import lines -> CandidateExtractor -> NameResolver (one oracle call)
        -> registry verification -> DependencyMerger -> TransitiveGraphBuilder

It owns no state beyond the registry cache it was given, so one engine
can serve many runs and share cached lookups between them.

Example usage:
    from depure.engine import ResolutionEngine
    from depure._resolution import GeminiOracle

    engine = ResolutionEngine(GeminiOracle(api_key="..."))
    result = engine.run(["import requests", "import pytest"])
    for dep in result.dependencies:
        print(dep.name, dep.registry_version)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Mapping, Optional

from ._dependency_expansion import DEFAULT_CONCURRENCY, DEFAULT_MAX_DEPTH, DependencyGraph, TransitiveGraphBuilder
from ._dependency_expansion.protocol import RegistryLookup
from ._extraction import CandidateExtractor, ImportCandidate, WorkspaceScan, extract_import_roots
from ._registry import PyPIClient, RegistryCache, normalize_package_name
from ._resolution import ClassifiedName, NameOracle, NameResolver
from .cancellation import CancellationToken, is_cancelled
from .dependencies import DependencyMerger, DependencySet
from .logging_config import logger

NO_DEPENDENCIES_MESSAGE = "No external dependencies found"


class ResolutionStatus(Enum):
    COMPLETED = "completed"
    NO_DEPENDENCIES = "no_dependencies"
    CANCELLED = "cancelled"


@dataclass
class ResolutionResult:
    """Outcome of a resolution run.

    Attributes:
        status: How the run ended
        dependencies: Registry-confirmed dependencies, split prod/dev
        graph: Requirement graph of the confirmed dependencies
        candidates: Third-party import candidates sent to the oracle
        classified: Oracle output before registry verification
        message: Human-readable summary of the outcome
    """

    status: ResolutionStatus
    dependencies: DependencySet = field(default_factory=DependencySet)
    graph: DependencyGraph = field(default_factory=DependencyGraph)
    candidates: List[ImportCandidate] = field(default_factory=list)
    classified: List[ClassifiedName] = field(default_factory=list)
    message: str = ""

    @property
    def completed(self) -> bool:
        return self.status == ResolutionStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status == ResolutionStatus.CANCELLED


class ResolutionEngine:
    """
    Runs the dependency resolution pipeline.

    Args:
        oracle: Name-resolution oracle (called once per run)
        client: Registry lookup; defaults to a PyPIClient using ``cache``
        cache: Registry cache for the default client
        max_depth: Depth bound for transitive expansion
        concurrency: Maximum simultaneous registry lookups
    """

    def __init__(
        self,
        oracle: NameOracle,
        client: Optional[RegistryLookup] = None,
        cache: Optional[RegistryCache] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        self.resolver = NameResolver(oracle)
        self.client = client if client is not None else PyPIClient(cache=cache)
        self.builder = TransitiveGraphBuilder(self.client, max_depth=max_depth, concurrency=concurrency)
        self.merger = DependencyMerger()

    @property
    def max_depth(self) -> int:
        return self.builder.max_depth

    @property
    def concurrency(self) -> int:
        return self.builder.concurrency

    def _cancelled(self, stage: str, **partial) -> ResolutionResult:
        logger.info(f"Resolution cancelled after {stage}")
        return ResolutionResult(status=ResolutionStatus.CANCELLED, message="Resolution cancelled", **partial)

    def run(
        self,
        sources: Iterable[str],
        local_names: Iterable[str] = (),
        extra_identifiers: Iterable[str] = (),
        file_tree: Optional[str] = None,
        framework_notes: Optional[str] = None,
        pinned_versions: Optional[Mapping[str, Optional[str]]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ResolutionResult:
        """
        Resolve the third-party dependencies of a set of sources.

        Args:
            sources: Source texts or import statements
            local_names: Module and symbol names defined by the project
            extra_identifiers: Raw identifiers found outside import statements
            file_tree: Project file listing passed to the oracle
            framework_notes: Framework context passed to the oracle
            pinned_versions: Previously pinned versions by package name
            cancel_token: Optional cancellation signal

        Returns:
            ResolutionResult; cancellation and "nothing found" are results, not errors

        Raises:
            OracleError: If the oracle fails or returns a malformed response
        """
        source_list = [s for s in sources if s]

        identifiers: List[str] = []
        for source in source_list:
            identifiers.extend(extract_import_roots(source))
        identifiers.extend(extra_identifiers)

        candidates = CandidateExtractor(local_names=local_names).extract_from_identifiers(identifiers)
        logger.info(f"Found {len(candidates)} third-party import candidates")

        if is_cancelled(cancel_token):
            return self._cancelled("extraction", candidates=candidates)

        if not candidates:
            return ResolutionResult(status=ResolutionStatus.NO_DEPENDENCIES, message=NO_DEPENDENCIES_MESSAGE)

        classified = self.resolver.resolve(
            [c.raw_identifier for c in candidates],
            file_tree=file_tree,
            framework_notes=framework_notes,
            import_lines=source_list,
        )

        if is_cancelled(cancel_token):
            return self._cancelled("name resolution", candidates=candidates, classified=classified)

        records = self.client.lookup_many(
            [item.name for item in classified], concurrency=self.concurrency, cancel_token=cancel_token
        )

        if is_cancelled(cancel_token):
            return self._cancelled("registry verification", candidates=candidates, classified=classified)

        dependencies = self.merger.merge(classified, records, pinned_versions=pinned_versions)
        if not len(dependencies):
            return ResolutionResult(
                status=ResolutionStatus.NO_DEPENDENCIES,
                candidates=candidates,
                classified=classified,
                message=NO_DEPENDENCIES_MESSAGE,
            )

        graph = self.builder.expand([dep.name for dep in dependencies], cancel_token=cancel_token)
        if is_cancelled(cancel_token):
            return self._cancelled(
                "dependency expansion",
                dependencies=dependencies,
                graph=graph,
                candidates=candidates,
                classified=classified,
            )

        message = f"Resolved {len(dependencies.prod)} production and {len(dependencies.dev)} development dependencies"
        logger.info(message)
        return ResolutionResult(
            status=ResolutionStatus.COMPLETED,
            dependencies=dependencies,
            graph=graph,
            candidates=candidates,
            classified=classified,
            message=message,
        )

    def run_workspace(
        self,
        scan: WorkspaceScan,
        pinned_versions: Optional[Mapping[str, Optional[str]]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ResolutionResult:
        """Resolve the dependencies of a scanned project."""
        return self.run(
            scan.import_lines,
            local_names=scan.local_names,
            extra_identifiers=scan.extra_identifiers,
            file_tree=scan.file_tree or None,
            framework_notes=scan.framework.to_notes(),
            pinned_versions=pinned_versions,
            cancel_token=cancel_token,
        )

    def inspect(
        self,
        name: str,
        max_depth: int = 1,
        is_dev: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ResolutionResult:
        """
        Verify a single package and expand its requirements.

        No oracle call is made: ``name`` is taken as the canonical name.

        Args:
            name: Package name
            max_depth: Expansion depth (direct plus one level by default)
            is_dev: Classify the package as a development dependency
            cancel_token: Optional cancellation signal

        Returns:
            ResolutionResult with at most one dependency
        """
        key = normalize_package_name(name) if name else ""
        if not key:
            return ResolutionResult(status=ResolutionStatus.NO_DEPENDENCIES, message="No package name given")

        classified = [ClassifiedName(name=key, is_dev=is_dev)]
        records = self.client.lookup_many([key], concurrency=1, cancel_token=cancel_token)
        if is_cancelled(cancel_token):
            return self._cancelled("registry verification", classified=classified)

        dependencies = self.merger.merge(classified, records)
        if not len(dependencies):
            return ResolutionResult(
                status=ResolutionStatus.NO_DEPENDENCIES,
                classified=classified,
                message=f"Package {key} was not found on the registry",
            )

        graph = self.builder.expand([key], max_depth=max_depth, cancel_token=cancel_token)
        return ResolutionResult(
            status=ResolutionStatus.CANCELLED if is_cancelled(cancel_token) else ResolutionStatus.COMPLETED,
            dependencies=dependencies,
            graph=graph,
            classified=classified,
            message=f"Verified {key}",
        )
