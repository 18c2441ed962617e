"""Command line interface for tempest-live."""

from .app import main, run_cli
from .errors import CliError

__all__ = ["CliError", "main", "run_cli"]
