"""Reading pinned versions from, and writing, requirements files."""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ._registry.models import normalize_package_name
from .dependencies import ResolvedDependency
from .exceptions import FileProcessingError
from .logging_config import logger

DEFAULT_OUTPUT_FILE = "requirements.txt"
DEFAULT_DEV_OUTPUT_FILE = "requirements-dev.txt"


def parse_requirement_line(line: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Parse a single requirement line.

    Handles formats like:
    - requests
    - requests==2.31.0
    - requests>=2.0,<3
    - requests[security]>=2.0

    Returns:
        (name, version) where version is only set for an exact ``==`` pin
    """
    # Remove inline comments
    if "#" in line:
        line = line.split("#")[0].strip()

    if not line:
        return None, None

    for op in ["===", "==", ">=", "<=", "~=", "!=", "<", ">"]:
        if op in line:
            parts = line.split(op, 1)
            name = parts[0].strip()
            version = parts[1].strip() if op in ("==", "===") else None

            # Version ranges have no single pinned version
            if version and ("," in version or "*" in version):
                version = None

            if "[" in name:
                name = name.split("[")[0]

            return name.strip() or None, version or None

    name = line.strip()
    if "[" in name:
        name = name.split("[")[0]

    return name.strip() or None, None


def parse_requirements(path: Path) -> Dict[str, Optional[str]]:
    """
    Parse a requirements file into normalized name -> pinned version.

    Comments, blank lines, pip options (-r, -e, --index-url, ...) and
    environment markers are skipped.

    Raises:
        FileProcessingError: If the file cannot be read
    """
    deps: Dict[str, Optional[str]] = {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError as e:
        raise FileProcessingError(f"Could not read requirements file {path}: {e}") from e

    for line in lines:
        line = line.strip()

        if not line or line.startswith("#"):
            continue

        if line.startswith("-"):
            continue

        # Handle environment markers (e.g., requests; python_version >= "3.6")
        if ";" in line:
            line = line.split(";")[0].strip()

        name, version = parse_requirement_line(line)
        if name:
            deps[normalize_package_name(name)] = version

    logger.debug(f"Read {len(deps)} requirements from {path}")
    return deps


def format_requirements(dependencies: Iterable[ResolvedDependency], with_versions: bool = True) -> str:
    """
    Render dependencies as requirements text.

    One dependency per line, ``name`` or ``name==version``, sorted
    alphabetically. The input is not modified.
    """
    lines: List[str] = []
    for dep in sorted(dependencies, key=lambda d: d.name):
        version = dep.version if with_versions else None
        lines.append(f"{dep.name}=={version}" if version else dep.name)
    return "\n".join(lines) + "\n" if lines else ""


def write_requirements(
    dependencies: Iterable[ResolvedDependency],
    output_file: Path,
    dev_output_file: Optional[Path] = None,
    with_versions: bool = True,
) -> List[Path]:
    """
    Write the resolved dependencies to requirements artifacts.

    With ``dev_output_file`` set, development dependencies go to that
    file and production dependencies to ``output_file``; otherwise all
    dependencies go to ``output_file``.

    Returns:
        Paths written

    Raises:
        FileProcessingError: If a file cannot be written
    """
    deps = list(dependencies)
    if dev_output_file is None:
        targets = [(Path(output_file), deps)]
    else:
        targets = [
            (Path(output_file), [d for d in deps if not d.is_dev]),
            (Path(dev_output_file), [d for d in deps if d.is_dev]),
        ]

    written: List[Path] = []
    for path, group in targets:
        try:
            path.write_text(format_requirements(group, with_versions=with_versions), encoding="utf-8")
        except OSError as e:
            raise FileProcessingError(f"Could not write {path}: {e}") from e
        logger.info(f"Wrote {len(group)} dependencies to {path}")
        written.append(path)
    return written
