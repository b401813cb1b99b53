"""GitHub issue source."""

from .client import GitHubClient

__all__ = ["GitHubClient"]
