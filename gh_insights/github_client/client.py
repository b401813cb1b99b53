"""GitHub issue source using PyGitHub."""

import logging
import os
import time

from github import Auth, Github
from github.GithubException import GithubException, UnknownObjectException
from github.Issue import Issue

from ..errors import FetchError
from ..models import IssueEvent

logger = logging.getLogger(__name__)

# Remaining core requests below which we wait for the rate limit window to reset
RATE_LIMIT_FLOOR = 10


class GitHubClient:
    """Fetches repository issues as inbound issue events."""

    def __init__(self, token: str | None = None, github: Github | None = None):
        """Initialize GitHub client.

        Args:
            token: GitHub personal access token. If None, reads from
                GITHUB_TOKEN env var; anonymous access is used without one.
            github: Pre-built PyGitHub client, mainly for tests
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        if github is not None:
            self.github = github
        elif self.token:
            self.github = Github(auth=Auth.Token(self.token))
        else:
            logger.warning(
                "No GitHub token provided, using anonymous access with lower rate limits"
            )
            self.github = Github()

    def _check_rate_limit(self) -> None:
        """Check rate limit and sleep if necessary."""
        try:
            remaining, limit = self.github.rate_limiting
            logger.debug(f"GitHub API rate limit: {remaining}/{limit} remaining")

            if remaining < RATE_LIMIT_FLOOR:
                sleep_time = self.github.rate_limiting_resettime - time.time() + 1
                if sleep_time > 0:
                    logger.warning(
                        f"Rate limit low, sleeping for {sleep_time:.1f} seconds..."
                    )
                    time.sleep(sleep_time)
        except (GithubException, OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not check rate limit: {e}")

    @staticmethod
    def _convert_issue(repository: str, github_issue: Issue) -> IssueEvent:
        """Convert PyGitHub issue to an inbound issue event."""
        return IssueEvent(
            repository=repository,
            issue_number=github_issue.number,
            title=github_issue.title,
            description=github_issue.body or "",
            state=github_issue.state,
            created_at=github_issue.created_at,
            updated_at=github_issue.updated_at,
            closed_at=github_issue.closed_at,
            url=github_issue.html_url,
            labels=[label.name for label in github_issue.labels],
        )

    def fetch_issues(
        self, owner: str, repo: str, max_count: int, state: str = "all"
    ) -> list[IssueEvent]:
        """Fetch the most recently updated issues of a repository.

        Pull requests are skipped and do not count towards ``max_count``.

        Args:
            owner: Organization or user name
            repo: Repository name
            max_count: Maximum number of issues to return
            state: Issue state (open, closed, all)

        Returns:
            Issue events, most recently updated first

        Raises:
            FetchError: If the repository is missing or the API request fails
        """
        if max_count < 1:
            return []

        full_name = f"{owner}/{repo}"
        self._check_rate_limit()

        events: list[IssueEvent] = []
        try:
            repository = self.github.get_repo(full_name)
            issues = repository.get_issues(state=state, sort="updated", direction="desc")
            for github_issue in issues:
                if github_issue.pull_request is not None:
                    continue
                events.append(self._convert_issue(full_name, github_issue))
                if len(events) >= max_count:
                    break
        except UnknownObjectException as e:
            raise FetchError(f"Repository {full_name} not found") from e
        except GithubException as e:
            raise FetchError(f"GitHub API error for {full_name}: {e}") from e
        except OSError as e:
            raise FetchError(f"Network error fetching {full_name}: {e}") from e

        logger.info(f"Fetched {len(events)} issues from {full_name}")
        return events
