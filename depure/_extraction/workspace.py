"""Project scanning: import lines, file tree, local names and framework hints."""

import fnmatch
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from ..logging_config import logger
from .extractor import parse_import_line

DEFAULT_EXCLUDE_PATTERNS: Tuple[str, ...] = (
    ".git",
    ".hg",
    ".tox",
    ".nox",
    ".venv",
    "venv",
    "env",
    ".env",
    "__pycache__",
    "node_modules",
    "site-packages",
    "build",
    "dist",
    "*.egg-info",
    ".mypy_cache",
    ".pytest_cache",
    ".ruff_cache",
)

# Framework files are passed to the oracle as context; keep them short
MAX_CONTEXT_FILE_CHARS = 4000

_CLASS_DEF = re.compile(r"^class\s+([A-Za-z_]\w*)")
_FUNC_DEF = re.compile(r"^(?:async\s+)?def\s+([A-Za-z_]\w*)")
_DJANGO_SETTINGS = re.compile(r"""os\.environ\.setdefault\(\s*['"]DJANGO_SETTINGS_MODULE['"]\s*,\s*['"]([\w.]+)['"]\s*\)""")
_INSTALLED_APPS = re.compile(r"INSTALLED_APPS\s*=\s*[\[(]([^\])]+)[\])]", re.MULTILINE)


@dataclass
class FrameworkContext:
    """Detected web framework and the settings excerpts that identify it."""

    type: str = "Generic"
    details: List[str] = field(default_factory=list)
    files: List[Tuple[str, str]] = field(default_factory=list)
    installed_apps: List[str] = field(default_factory=list)

    def to_notes(self) -> Optional[str]:
        """Render the context as free text for the name-resolution oracle."""
        if self.type == "Generic" and not self.details and not self.files:
            return None

        lines = [f"Project type: {self.type}"]
        lines.extend(self.details)
        for name, content in self.files:
            lines.append(f"--- {name} ---")
            lines.append(content[:MAX_CONTEXT_FILE_CHARS])
        return "\n".join(lines)


@dataclass
class WorkspaceScan:
    """Everything the scanner learned about a project.

    Attributes:
        root: Project root directory
        python_files: Python files that were read
        import_lines: Unique import statements, in first-seen order
        file_tree: Sorted, newline-separated relative paths of all project files
        local_modules: Top-level module and package names defined by the project
        local_symbols: Top-level class and function names defined by the project
        framework: Detected framework context
        unreadable: Relative paths of files that could not be read
    """

    root: Path
    python_files: List[Path] = field(default_factory=list)
    import_lines: List[str] = field(default_factory=list)
    file_tree: str = ""
    local_modules: Set[str] = field(default_factory=set)
    local_symbols: Set[str] = field(default_factory=set)
    framework: FrameworkContext = field(default_factory=FrameworkContext)
    unreadable: List[str] = field(default_factory=list)

    @property
    def local_names(self) -> Set[str]:
        return self.local_modules | self.local_symbols

    @property
    def extra_identifiers(self) -> List[str]:
        """Identifiers found outside import statements (e.g. Django INSTALLED_APPS)."""
        return list(self.framework.installed_apps)


def is_excluded(relative_path: str, patterns: Sequence[str]) -> bool:
    """Check a POSIX-style relative path (or any of its components) against glob patterns."""
    parts = relative_path.split("/")
    for pattern in patterns:
        if fnmatch.fnmatch(relative_path, pattern):
            return True
        if any(fnmatch.fnmatch(part, pattern) for part in parts):
            return True
    return False


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return None


def _walk_files(base: Path, root: Path, patterns: Sequence[str]) -> List[Path]:
    """Return files under ``base`` not matched by the exclude patterns."""
    if base.is_file():
        rel = base.relative_to(root).as_posix() if base.is_relative_to(root) else base.name
        return [] if is_excluded(rel, patterns) else [base]

    found: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(base):
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix() if current != root else ""
        dirnames[:] = sorted(
            d for d in dirnames if not is_excluded(f"{rel_dir}/{d}" if rel_dir else d, patterns)
        )
        for filename in sorted(filenames):
            rel = f"{rel_dir}/{filename}" if rel_dir else filename
            if not is_excluded(rel, patterns):
                found.append(current / filename)
    return found


def find_local_modules(root: Path) -> Set[str]:
    """
    Find module names that belong to the project itself.

    A name is local when it is a top-level ``.py`` file, a top-level (or
    ``src/``) directory containing ``__init__.py``, or the project
    directory name of a Django project (``manage.py`` at the root).
    """
    local: Set[str] = set()
    search_dirs = [root]
    if (root / "src").is_dir():
        search_dirs.append(root / "src")

    for directory in search_dirs:
        try:
            entries = list(directory.iterdir())
        except OSError as e:
            logger.warning(f"Error discovering local modules in {directory}: {e}")
            continue
        for entry in entries:
            if entry.is_dir() and (entry / "__init__.py").is_file():
                local.add(entry.name)
            elif entry.is_file() and entry.suffix == ".py":
                local.add(entry.stem)

    if (root / "manage.py").is_file():
        local.add(root.name)

    return local


def detect_framework(root: Path) -> FrameworkContext:
    """
    Detect Django, Flask or FastAPI projects.

    Django is recognised by ``manage.py``; its settings module is located
    via ``DJANGO_SETTINGS_MODULE`` and the ``INSTALLED_APPS`` roots are
    collected as extra candidates. Flask and FastAPI are recognised by
    their application constructor in ``app.py`` or ``main.py``.
    """
    context = FrameworkContext()

    manage_py = root / "manage.py"
    if manage_py.is_file():
        context.type = "Django"
        content = _read_text(manage_py) or ""
        match = _DJANGO_SETTINGS.search(content)
        if match:
            settings_rel = match.group(1).replace(".", "/") + ".py"
            settings_content = _read_text(root / settings_rel)
            if settings_content is None:
                context.details.append(f"settings module {match.group(1)} could not be read")
            else:
                context.files.append((settings_rel, settings_content))
                apps_match = _INSTALLED_APPS.search(settings_content)
                if apps_match:
                    apps_excerpt = re.sub(r"\s", "", apps_match.group(1))
                    context.details.append(f"INSTALLED_APPS: {apps_excerpt}")
                    for app in apps_match.group(1).split(","):
                        app_root = app.strip().strip("'\"").split(".")[0]
                        if app_root and app_root != "django" and app_root not in context.installed_apps:
                            context.installed_apps.append(app_root)
        return context

    for filename in ("app.py", "main.py"):
        candidate = root / filename
        if not candidate.is_file():
            continue
        content = _read_text(candidate) or ""
        if "Flask(__name__)" in content:
            context.type = "Flask"
            context.files.append((filename, content))
            return context
        if "FastAPI(" in content:
            context.type = "FastAPI"
            context.files.append((filename, content))
            return context

    return context


def scan_workspace(
    root: Path,
    paths: Optional[Iterable[Path]] = None,
    exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
) -> WorkspaceScan:
    """
    Scan a project for import statements and local definitions.

    Args:
        root: Project root directory
        paths: Files or directories to analyze, relative to the root (default: the whole root)
        exclude_patterns: Glob patterns matched against relative paths and path components

    Returns:
        WorkspaceScan with imports, file tree, local names and framework context
    """
    root = Path(root).resolve()
    scan = WorkspaceScan(root=root)

    all_files = _walk_files(root, root, exclude_patterns)
    scan.file_tree = "\n".join(sorted(p.relative_to(root).as_posix() for p in all_files))

    targets = [(root / p).resolve() for p in paths] if paths else [root]
    python_files: List[Path] = []
    for target in targets:
        if not target.exists():
            logger.warning(f"Analysis path does not exist: {target}")
            continue
        if not target.is_relative_to(root):
            logger.warning(f"Analysis path is outside the project, skipping: {target}")
            continue
        for path in _walk_files(target, root, exclude_patterns):
            if path.suffix == ".py" and path not in python_files:
                python_files.append(path)

    seen_lines: Set[str] = set()
    for path in python_files:
        content = _read_text(path)
        if content is None:
            scan.unreadable.append(str(path))
            continue
        scan.python_files.append(path)

        for line in content.splitlines():
            if parse_import_line(line):
                statement = line.strip()
                if statement not in seen_lines:
                    seen_lines.add(statement)
                    scan.import_lines.append(statement)
                continue
            match = _CLASS_DEF.match(line) or _FUNC_DEF.match(line)
            if match:
                scan.local_symbols.add(match.group(1))

    scan.local_modules = find_local_modules(root)
    scan.framework = detect_framework(root)

    logger.info(
        f"Scanned {len(scan.python_files)} Python files: {len(scan.import_lines)} import statements, "
        f"{len(scan.local_modules)} local modules, framework {scan.framework.type}"
    )
    return scan
