"""snapkeep: incremental workspace snapshots for coding assistants."""

__version__ = "0.1.0"
