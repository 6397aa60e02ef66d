"""Name-resolution oracle implementations."""

from .gemini import DEFAULT_MODEL, GEMINI_API_BASE, GeminiOracle

__all__ = ["GeminiOracle", "GEMINI_API_BASE", "DEFAULT_MODEL"]
