"""Command line interface for turbo-tasker."""
