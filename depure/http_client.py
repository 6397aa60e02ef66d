"""HTTP client utilities with consistent user agent."""

from typing import Optional

import requests


def _get_package_version() -> str:
    """Get the package version for User-Agent header."""
    try:
        from importlib.metadata import version

        return version("depure")
    except Exception:
        try:
            from pathlib import Path

            import tomllib

            pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
            if pyproject_path.exists():
                with open(pyproject_path, "rb") as f:
                    pyproject_data = tomllib.load(f)
                return pyproject_data.get("project", {}).get("version", "unknown")
        except Exception:
            return "unknown"
    return "unknown"


USER_AGENT = f"depure/{_get_package_version()} (+https://pypi.org/project/depure/)"


def get_default_headers(content_type: Optional[str] = None) -> dict:
    """
    Get default HTTP headers with user agent.

    Args:
        content_type: Optional Content-Type header value (e.g., "application/json")

    Returns:
        Dictionary of HTTP headers
    """
    headers = {"User-Agent": USER_AGENT}
    if content_type:
        headers["Content-Type"] = content_type
    return headers


def create_session(content_type: Optional[str] = None) -> requests.Session:
    """Create a requests session carrying the default depure headers."""
    session = requests.Session()
    session.headers.update(get_default_headers(content_type=content_type))
    return session
