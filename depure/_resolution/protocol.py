"""NameOracle protocol for name-resolution backends."""

from typing import Any, Protocol

from .models import OracleRequest


class NameOracle(Protocol):
    """
    Protocol for services that map import identifiers to registry names.

    An oracle receives every candidate of a run in a single request and
    answers with a JSON document (text or already-decoded) of the form
    ``{"dependencies": [{"name": str, "isDev": bool}, ...]}``. Oracles
    are untrusted: the orchestrator validates whatever they return.
    Implementations raise OracleError for configuration and transport
    failures, keeping the service's own message.

    Example:
        class StaticOracle:
            name = "static"

            def resolve(self, request: OracleRequest) -> Any:
                return {"dependencies": [{"name": c, "isDev": False} for c in request.candidates]}
    """

    @property
    def name(self) -> str:
        """
        Human-readable name of this oracle.

        Used for logging. Examples: "gemini"
        """
        ...

    def resolve(self, request: OracleRequest) -> Any:
        """
        Resolve a batch of candidates.

        Args:
            request: All candidates of the run plus optional project context

        Returns:
            Raw response: a JSON string or a decoded dict

        Raises:
            OracleError: If the oracle cannot be reached or is misconfigured
        """
        ...
