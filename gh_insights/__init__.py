"""GitHub issue tag extraction and repository summary reports."""

__version__ = "0.1.0"
