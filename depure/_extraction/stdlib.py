"""Standard-library module names excluded from dependency candidates."""

import sys
from typing import FrozenSet

# Interpreter-provided list plus names that show up in real code but are
# missing from stdlib_module_names (private helpers, removed modules).
STDLIB_MODULES: FrozenSet[str] = frozenset(sys.stdlib_module_names) | frozenset(
    {
        "__future__",
        "__main__",
        "_thread",
        "asynchat",
        "asyncore",
        "distutils",
        "imp",
        "smtpd",
    }
)


def is_standard_library(module_name: str) -> bool:
    """Check if the root segment of a dotted module path is a standard-library module."""
    if not module_name:
        return False
    return module_name.split(".")[0] in STDLIB_MODULES
