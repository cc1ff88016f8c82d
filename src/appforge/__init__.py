"""AppForge: generate and incrementally edit database-backed web applications."""

__version__ = "0.4.0"
