"""Prompt construction for LLM-backed oracles."""

from .models import OracleRequest

RESOLUTION_PROMPT = """You are an expert Python dependency analysis engine. Your task is to distinguish between \
local modules and external, installable PyPI packages.
{file_tree_section}{framework_section}
Here is the list of top-level names imported by the user's code:
```
{candidates}
```
{imports_section}
Identify which of these names correspond to **external PyPI packages**. Ignore anything that is part of \
Python's standard library or that resolves to a file or folder within the project structure.

Your response must be a valid JSON object with a single root key "dependencies". This key's value must be an \
array of objects. Each object represents a single external dependency and must have these keys:
1. "name": The official, lowercased PyPI package name (e.g., "beautifulsoup4" for an import of "bs4").
2. "isDev": A boolean, true if it's a development-only package (like pytest, black, mypy, flake8), otherwise false.
3. "description": A concise, one-sentence description of the package's purpose.

Example: If the structure contains 'my_utils/helpers.py' and an import is 'from my_utils import helpers', you \
must recognize 'my_utils' as a local module and exclude it. If an import is 'import requests', and 'requests' \
is not in the file structure, you must identify it as an external package.

Provide only the JSON object in your response."""


def build_resolution_prompt(request: OracleRequest) -> str:
    """Render the name-resolution prompt for a request."""
    file_tree_section = ""
    if request.file_tree:
        file_tree_section = (
            f"\nHere is the complete file and folder structure of the user's project:\n```\n{request.file_tree}\n```\n"
        )

    framework_section = ""
    if request.framework_notes:
        framework_section = f"\nFramework context:\n```\n{request.framework_notes}\n```\n"

    imports_section = ""
    if request.import_lines:
        joined = "\n".join(request.import_lines)
        imports_section = f"\nThe full import statements they come from:\n```\n{joined}\n```\n"

    return RESOLUTION_PROMPT.format(
        file_tree_section=file_tree_section,
        framework_section=framework_section,
        candidates="\n".join(request.candidates),
        imports_section=imports_section,
    )
