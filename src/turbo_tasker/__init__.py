"""turbo-tasker - aggregation and staging core for the storage console."""

__version__ = "0.3.0"
