"""Main CLI entry point for turbo-tasker."""  # pragma: no cover

from turbo_tasker.cli.app import app  # pragma: no cover
from turbo_tasker.config import config  # pragma: no cover
from turbo_tasker.utils import setup_logging  # pragma: no cover

# Register commands
from turbo_tasker.cli.commands import replay  # pragma: no cover

__all__ = ["app", "replay"]  # pragma: no cover

# Set up logging when module is imported
setup_logging(level=config.log_level, log_file=config.log_file)  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    app()
