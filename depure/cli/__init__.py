"""CLI module for depure.

This module provides the command-line interface. Every option can also
be given through an environment variable.
"""

from .main import (
    Config,
    build_config,
    cli,
    evaluate_boolean,
    load_config,
    main,
    run_pipeline,
)

__all__ = [
    "cli",
    "main",
    "Config",
    "build_config",
    "load_config",
    "run_pipeline",
    "evaluate_boolean",
]
