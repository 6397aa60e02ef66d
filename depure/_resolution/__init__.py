"""Name resolution: import identifiers to canonical registry names.

Example usage:
    from depure._resolution import GeminiOracle, NameResolver

    resolver = NameResolver(GeminiOracle(api_key=os.environ["DEPURE_LLM_API_KEY"]))
    for item in resolver.resolve(["bs4", "yaml", "pytest"]):
        print(item.name, "dev" if item.is_dev else "prod")
"""

from .models import ClassifiedName, OracleRequest
from .oracles import GeminiOracle
from .orchestrator import NameResolver, parse_oracle_response
from .protocol import NameOracle

__all__ = [
    "NameResolver",
    "NameOracle",
    "GeminiOracle",
    "ClassifiedName",
    "OracleRequest",
    "parse_oracle_response",
]
