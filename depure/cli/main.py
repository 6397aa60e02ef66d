import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .. import __version__
from .._extraction import DEFAULT_EXCLUDE_PATTERNS, scan_workspace
from .._registry import DEFAULT_CACHE_FILE, DEFAULT_TTL, PYPI_API_BASE, PyPIClient, RegistryCache
from .._resolution.oracles import DEFAULT_MODEL, GEMINI_API_BASE, GeminiOracle
from ..cancellation import CancellationToken
from ..console import (
    gha_warning,
    print_banner,
    print_final_failure,
    print_final_success,
    print_resolution_summary,
    print_step_end,
    print_step_header,
)
from ..engine import ResolutionEngine, ResolutionResult, ResolutionStatus
from ..exceptions import ConfigurationError, FileProcessingError, OracleError
from ..logging_config import logger, set_log_level
from ..requirements import DEFAULT_DEV_OUTPUT_FILE, DEFAULT_OUTPUT_FILE, parse_requirements, write_requirements

DEPURE_VERSION = __version__
DEFAULT_MAX_DEPTH = 2
DEFAULT_CONCURRENCY = 8
LOCALHOST_PATTERNS = ["127.0.0.1", "localhost", "0.0.0.0"]


def evaluate_boolean(value: str) -> bool:
    """
    Evaluate string values as boolean.

    Args:
        value: String value to evaluate

    Returns:
        Boolean result
    """
    return value.lower() in ["true", "yes", "yeah", "1"]


@dataclass
class Config:
    """Configuration settings for a resolution run."""

    path: str = "."
    paths: List[str] = field(default_factory=list)
    output_file: str = DEFAULT_OUTPUT_FILE
    dev_output_file: str = DEFAULT_DEV_OUTPUT_FILE
    split_dev: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH
    concurrency: int = DEFAULT_CONCURRENCY
    cache_ttl: int = DEFAULT_TTL
    cache_file: str = str(DEFAULT_CACHE_FILE)
    use_cache_file: bool = True
    registry_url: str = PYPI_API_BASE
    llm_api_key: Optional[str] = None
    llm_model: str = DEFAULT_MODEL
    llm_endpoint: str = GEMINI_API_BASE
    pin_versions: bool = True
    upgrade: bool = False
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    graph_file: Optional[str] = None
    dry_run: bool = False
    log_level: str = "INFO"

    def validate(self) -> None:
        """
        Validate configuration settings.

        A missing LLM API key is not checked here: it is reported by the
        oracle the first time it is needed.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not Path(self.path).is_dir():
            raise ConfigurationError(f"Project path does not exist or is not a directory: {self.path}")
        if self.max_depth < 0:
            raise ConfigurationError(f"Max depth must be 0 or greater, got {self.max_depth}")
        if self.concurrency < 1:
            raise ConfigurationError(f"Concurrency must be at least 1, got {self.concurrency}")
        if self.cache_ttl < 0:
            raise ConfigurationError(f"Cache TTL must be 0 or greater, got {self.cache_ttl}")
        if self.split_dev and Path(self.output_file) == Path(self.dev_output_file):
            raise ConfigurationError("Production and development output files must differ")

        self._validate_registry_url()

    def _validate_registry_url(self) -> None:
        """
        Validate and normalize the registry base URL.

        Raises:
            ConfigurationError: If URL format is invalid
        """
        from urllib.parse import urlparse

        try:
            parsed = urlparse(self.registry_url)
        except ValueError as e:
            raise ConfigurationError(f"Invalid registry URL format: {e}")

        if not parsed.scheme or parsed.scheme not in ("http", "https"):
            raise ConfigurationError("Registry URL must start with http:// or https://")

        if not parsed.netloc:
            raise ConfigurationError("Registry URL must include a valid hostname")

        # Security warning for HTTP on non-localhost
        if parsed.scheme == "http" and not any(localhost in parsed.netloc for localhost in LOCALHOST_PATTERNS):
            logger.warning("Using HTTP (not HTTPS) for registry access - consider using HTTPS")

        # Remove trailing slash if present for consistency
        if self.registry_url.endswith("/"):
            self.registry_url = self.registry_url.rstrip("/")

    def project_file(self, name: str) -> Path:
        """Resolve an output path relative to the project root."""
        candidate = Path(name)
        return candidate if candidate.is_absolute() else Path(self.path) / candidate


def build_config(
    path: str = ".",
    paths: Tuple[str, ...] = (),
    output_file: str = DEFAULT_OUTPUT_FILE,
    dev_output_file: str = DEFAULT_DEV_OUTPUT_FILE,
    split_dev: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
    concurrency: int = DEFAULT_CONCURRENCY,
    cache_ttl: int = DEFAULT_TTL,
    cache_file: Optional[str] = None,
    use_cache_file: bool = True,
    registry_url: str = PYPI_API_BASE,
    llm_api_key: Optional[str] = None,
    llm_model: str = DEFAULT_MODEL,
    llm_endpoint: str = GEMINI_API_BASE,
    pin_versions: bool = True,
    upgrade: bool = False,
    exclude_patterns: Tuple[str, ...] = (),
    graph_file: Optional[str] = None,
    dry_run: bool = False,
    log_level: str = "INFO",
) -> Config:
    """
    Build and validate a Config from CLI arguments.

    Returns:
        Validated configuration object

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = Config(
        path=os.path.expanduser(path),
        paths=[os.path.expanduser(p) for p in paths],
        output_file=output_file,
        dev_output_file=dev_output_file,
        split_dev=split_dev,
        max_depth=max_depth,
        concurrency=concurrency,
        cache_ttl=cache_ttl,
        cache_file=os.path.expanduser(cache_file) if cache_file else str(DEFAULT_CACHE_FILE),
        use_cache_file=use_cache_file,
        registry_url=registry_url,
        llm_api_key=llm_api_key or None,
        llm_model=llm_model,
        llm_endpoint=llm_endpoint,
        pin_versions=pin_versions,
        upgrade=upgrade,
        exclude_patterns=[*DEFAULT_EXCLUDE_PATTERNS, *exclude_patterns],
        graph_file=graph_file,
        dry_run=dry_run,
        log_level=log_level,
    )
    config.validate()
    return config


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Returns:
        Validated configuration object

    Raises:
        ConfigurationError: If configuration is invalid
    """
    exclude = os.getenv("DEPURE_EXCLUDE", "")
    return build_config(
        path=os.getenv("DEPURE_PATH", "."),
        output_file=os.getenv("DEPURE_OUTPUT_FILE", DEFAULT_OUTPUT_FILE),
        dev_output_file=os.getenv("DEPURE_DEV_OUTPUT_FILE", DEFAULT_DEV_OUTPUT_FILE),
        split_dev=evaluate_boolean(os.getenv("DEPURE_SPLIT_DEV", "False")),
        max_depth=_int_env("DEPURE_MAX_DEPTH", DEFAULT_MAX_DEPTH),
        concurrency=_int_env("DEPURE_CONCURRENCY", DEFAULT_CONCURRENCY),
        cache_ttl=_int_env("DEPURE_CACHE_TTL", DEFAULT_TTL),
        cache_file=os.getenv("DEPURE_CACHE_FILE"),
        use_cache_file=evaluate_boolean(os.getenv("DEPURE_USE_CACHE_FILE", "True")),
        registry_url=os.getenv("DEPURE_REGISTRY_URL", PYPI_API_BASE),
        llm_api_key=os.getenv("DEPURE_LLM_API_KEY"),
        llm_model=os.getenv("DEPURE_LLM_MODEL", DEFAULT_MODEL),
        llm_endpoint=os.getenv("DEPURE_LLM_ENDPOINT", GEMINI_API_BASE),
        pin_versions=evaluate_boolean(os.getenv("DEPURE_PIN_VERSIONS", "True")),
        upgrade=evaluate_boolean(os.getenv("DEPURE_UPGRADE", "False")),
        exclude_patterns=tuple(p.strip() for p in exclude.split(",") if p.strip()),
        graph_file=os.getenv("DEPURE_GRAPH_FILE"),
        dry_run=evaluate_boolean(os.getenv("DEPURE_DRY_RUN", "False")),
        log_level=os.getenv("DEPURE_LOG_LEVEL", "INFO"),
    )


def _read_pinned_versions(config: Config) -> dict:
    """Collect pinned versions from the existing output artifacts, if any."""
    pinned: dict = {}
    targets = [config.project_file(config.output_file)]
    if config.split_dev:
        targets.append(config.project_file(config.dev_output_file))

    for target in targets:
        if target.is_file():
            pinned.update(parse_requirements(target))
    if pinned:
        logger.info(f"Loaded {len(pinned)} previously pinned versions")
    return pinned


def _write_graph(result: ResolutionResult, graph_file: Path) -> None:
    try:
        with open(graph_file, "w", encoding="utf-8") as f:
            json.dump(result.graph.to_dict(), f, indent=2)
    except OSError as e:
        raise FileProcessingError(f"Could not write dependency graph to {graph_file}: {e}") from e
    logger.info(f"Dependency graph written to {graph_file}")


def run_pipeline(config: Config, cancel_token: Optional[CancellationToken] = None) -> ResolutionResult:
    """
    Run the full resolution pipeline for a configured project.

    Args:
        config: Validated configuration
        cancel_token: Optional cancellation signal

    Returns:
        ResolutionResult of the run

    Raises:
        OracleError: If name resolution fails
        FileProcessingError: If an artifact cannot be read or written
    """
    print_step_header(1, "Scanning project")
    scan = scan_workspace(
        Path(config.path),
        paths=[Path(p) for p in config.paths] or None,
        exclude_patterns=config.exclude_patterns,
    )
    for path in scan.unreadable:
        gha_warning(f"Skipped unreadable file {path}", title="Scan")
    print_step_end(1)

    cache = RegistryCache(ttl=config.cache_ttl)
    cache_file = Path(config.cache_file)
    if config.use_cache_file:
        loaded = cache.load(cache_file)
        if loaded:
            logger.info(f"Loaded {loaded} cached registry lookups from {cache_file}")

    pinned = _read_pinned_versions(config) if config.pin_versions else {}

    print_step_header(2, "Resolving dependencies")
    oracle = GeminiOracle(api_key=config.llm_api_key, model=config.llm_model, endpoint=config.llm_endpoint)
    with PyPIClient(cache=cache, base_url=config.registry_url) as client:
        engine = ResolutionEngine(oracle, client=client, max_depth=config.max_depth, concurrency=config.concurrency)
        try:
            result = engine.run_workspace(scan, pinned_versions=pinned, cancel_token=cancel_token)
        except OracleError:
            print_step_end(2, success=False)
            raise
    confirmed = {dep.name for dep in result.dependencies}
    for item in result.classified:
        if item.name not in confirmed and not result.cancelled:
            gha_warning(f"{item.name} was suggested for this project but is not on the registry", title="Unverified")
    print_step_end(2, success=result.status != ResolutionStatus.NO_DEPENDENCIES)

    if config.use_cache_file:
        try:
            cache.save(cache_file)
        except OSError as e:
            logger.warning(f"Could not save registry cache to {cache_file}: {e}")

    if result.status != ResolutionStatus.COMPLETED:
        return result

    if config.upgrade:
        updated = result.dependencies.accept_all_updates()
        for name in updated:
            logger.info(f"Upgraded {name} to {result.dependencies.get(name).pinned_version}")

    print_step_header(3, "Writing requirements")
    if config.dry_run:
        logger.info("Dry run: no files written")
    else:
        write_requirements(
            result.dependencies,
            config.project_file(config.output_file),
            dev_output_file=config.project_file(config.dev_output_file) if config.split_dev else None,
            with_versions=config.pin_versions,
        )
        if config.graph_file:
            _write_graph(result, config.project_file(config.graph_file))
    print_step_end(3)

    print_resolution_summary(result)
    return result


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=DEPURE_VERSION, prog_name="depure", message="%(prog)s %(version)s")
@click.argument("path", default=".", envvar="DEPURE_PATH", type=click.Path(file_okay=False))
@click.option(
    "--scope",
    "paths",
    multiple=True,
    type=click.Path(),
    help="File or directory to analyze, relative to the project (repeatable). Default: the whole project.",
)
@click.option(
    "--output-file",
    "-o",
    envvar="DEPURE_OUTPUT_FILE",
    default=DEFAULT_OUTPUT_FILE,
    show_default=True,
    help="Requirements file to write, relative to the project.",
)
@click.option(
    "--dev-output-file",
    envvar="DEPURE_DEV_OUTPUT_FILE",
    default=DEFAULT_DEV_OUTPUT_FILE,
    show_default=True,
    help="Development requirements file (with --split-dev).",
)
@click.option(
    "--split-dev/--no-split-dev",
    envvar="DEPURE_SPLIT_DEV",
    default=False,
    help="Write development dependencies to a separate file.",
)
@click.option(
    "--max-depth",
    envvar="DEPURE_MAX_DEPTH",
    type=int,
    default=DEFAULT_MAX_DEPTH,
    show_default=True,
    help="Depth of transitive dependency expansion.",
)
@click.option(
    "--concurrency",
    envvar="DEPURE_CONCURRENCY",
    type=int,
    default=DEFAULT_CONCURRENCY,
    show_default=True,
    help="Maximum simultaneous registry lookups.",
)
@click.option(
    "--cache-ttl",
    envvar="DEPURE_CACHE_TTL",
    type=int,
    default=DEFAULT_TTL,
    show_default=True,
    help="Seconds a registry lookup stays cached.",
)
@click.option("--cache-file", envvar="DEPURE_CACHE_FILE", help=f"Persisted registry cache. [default: {DEFAULT_CACHE_FILE}]")
@click.option(
    "--cache/--no-cache",
    "use_cache_file",
    envvar="DEPURE_USE_CACHE_FILE",
    default=True,
    help="Reuse registry lookups across runs.",
)
@click.option(
    "--registry-url",
    envvar="DEPURE_REGISTRY_URL",
    default=PYPI_API_BASE,
    show_default=True,
    help="Base URL of the PyPI JSON API.",
)
@click.option("--api-key", "llm_api_key", envvar="DEPURE_LLM_API_KEY", help="Gemini API key.")
@click.option("--model", "llm_model", envvar="DEPURE_LLM_MODEL", default=DEFAULT_MODEL, show_default=True)
@click.option("--llm-endpoint", envvar="DEPURE_LLM_ENDPOINT", default=GEMINI_API_BASE, show_default=True)
@click.option(
    "--pin/--no-pin",
    "pin_versions",
    envvar="DEPURE_PIN_VERSIONS",
    default=True,
    help="Write name==version lines and keep existing pins.",
)
@click.option(
    "--upgrade/--no-upgrade",
    envvar="DEPURE_UPGRADE",
    default=False,
    help="Accept every available update before writing.",
)
@click.option("--exclude", "exclude_patterns", multiple=True, help="Extra glob pattern to skip (repeatable).")
@click.option("--graph-file", envvar="DEPURE_GRAPH_FILE", help="Write the dependency graph as JSON.")
@click.option("--dry-run", is_flag=True, default=False, help="Resolve without writing any file.")
@click.option(
    "--log-level",
    envvar="DEPURE_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.option("--quiet", "-q", is_flag=True, default=False, help="Only log warnings and errors.")
def cli(
    path: str,
    paths: Tuple[str, ...],
    output_file: str,
    dev_output_file: str,
    split_dev: bool,
    max_depth: int,
    concurrency: int,
    cache_ttl: int,
    cache_file: Optional[str],
    use_cache_file: bool,
    registry_url: str,
    llm_api_key: Optional[str],
    llm_model: str,
    llm_endpoint: str,
    pin_versions: bool,
    upgrade: bool,
    exclude_patterns: Tuple[str, ...],
    graph_file: Optional[str],
    dry_run: bool,
    log_level: str,
    verbose: bool,
    quiet: bool,
) -> None:
    """Find the third-party packages a Python project imports and write verified requirements.

    PATH is the project root (default: current directory).
    """
    if verbose and quiet:
        raise click.UsageError("Cannot use both --verbose and --quiet")
    if verbose:
        log_level = "DEBUG"
    elif quiet:
        log_level = "WARNING"
    set_log_level(log_level)

    print_banner(DEPURE_VERSION)

    try:
        config = build_config(
            path=path,
            paths=paths,
            output_file=output_file,
            dev_output_file=dev_output_file,
            split_dev=split_dev,
            max_depth=max_depth,
            concurrency=concurrency,
            cache_ttl=cache_ttl,
            cache_file=cache_file,
            use_cache_file=use_cache_file,
            registry_url=registry_url,
            llm_api_key=llm_api_key,
            llm_model=llm_model,
            llm_endpoint=llm_endpoint,
            pin_versions=pin_versions,
            upgrade=upgrade,
            exclude_patterns=exclude_patterns,
            graph_file=graph_file,
            dry_run=dry_run,
            log_level=log_level,
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print_final_failure(str(e))
        sys.exit(1)

    cancel_token = CancellationToken()
    try:
        result = run_pipeline(config, cancel_token=cancel_token)
    except KeyboardInterrupt:
        cancel_token.cancel()
        logger.info("Interrupted")
        sys.exit(130)
    except (OracleError, FileProcessingError) as e:
        logger.error(str(e))
        print_final_failure(str(e))
        sys.exit(1)

    if result.status == ResolutionStatus.CANCELLED:
        sys.exit(130)
    if result.status == ResolutionStatus.NO_DEPENDENCIES:
        print_final_failure(result.message)
        sys.exit(1)

    print_final_success(result.message)


def main() -> None:
    """Main entry point for the depure CLI."""
    cli()


if __name__ == "__main__":
    main()
