"""CLI commands for turbo-tasker."""

from . import replay

__all__ = ["replay"]
