"""Test configuration and fixtures."""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from gh_insights.models import IssueEvent, IssueRecord

REPO = "o/r"


def make_issue_event(number: int = 1, **overrides: Any) -> IssueEvent:
    """Build an issue event with sensible defaults."""
    fields: dict[str, Any] = {
        "repository": REPO,
        "issue_number": number,
        "title": f"Issue {number}",
        "description": "",
        "state": "open",
        "created_at": datetime(2024, 1, number % 28 + 1, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 2, 1, tzinfo=timezone.utc),
        "labels": [],
    }
    fields.update(overrides)
    return IssueEvent(**fields)


@pytest.fixture
def issue_factory() -> Callable[..., IssueEvent]:
    """Factory for issue events in the default test repository."""
    return make_issue_event


@pytest.fixture
def crash_issue() -> IssueEvent:
    """Open crash report without labels."""
    return make_issue_event(
        1, title="App crashes on start", description="bug crash", labels=[]
    )


@pytest.fixture
def dark_mode_issue() -> IssueEvent:
    """Open feature request labelled as an enhancement."""
    return make_issue_event(
        2,
        title="Add dark mode",
        description="feature request",
        labels=["enhancement"],
    )


@pytest.fixture
def crash_record(crash_issue: IssueEvent) -> IssueRecord:
    return crash_issue.to_record()
