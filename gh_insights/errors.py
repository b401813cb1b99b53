"""Exceptions raised by the issue insights package."""


class InsightsError(Exception):
    """Base class for all issue insights errors."""


class ExtractionError(InsightsError):
    """AI-backed tag extraction failed for a single issue."""


class CompletionError(InsightsError):
    """The text-completion endpoint failed or returned an unusable response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FetchError(InsightsError):
    """Issues could not be retrieved from the issue tracker."""


class MalformedEventError(InsightsError):
    """An inbound issue event is missing its identity or fails validation."""


class EmptyStateError(InsightsError):
    """A report was requested for a repository with no known issues."""

    def __init__(self, repository: str):
        super().__init__(f"No issues recorded for repository {repository}")
        self.repository = repository
