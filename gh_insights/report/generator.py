"""Turn a repository's issues and tag sets into a summary report.

Everything in this module is a pure function of its inputs: the same issues,
tags and policy always yield the same statistics and recommendations.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from ..config import ReportPolicy
from ..errors import EmptyStateError
from ..models import (
    IssueKey,
    IssueRecord,
    IssueState,
    Priority,
    Recommendation,
    SummaryReport,
    TagSet,
    TagStatistic,
    TimeRangeStatistic,
    utc_now,
)

RECOMMENDATION_TITLES = {
    "bug": "Fix reported bugs",
    "crash": "Resolve crashes",
    "feature": "Implement requested features",
    "enhancement": "Enhance existing functionality",
    "documentation": "Improve documentation",
    "security": "Address security concerns",
    "performance": "Optimize performance",
}


class TagTally:
    """Case-insensitive tag counts with first-seen display casing."""

    def __init__(self) -> None:
        self.display: dict[str, str] = {}
        self.issue_ids: dict[str, list[str]] = {}

    def add(self, issue_id: str, tags: Iterable[str]) -> None:
        for tag in tags:
            folded = tag.lower()
            ids = self.issue_ids.setdefault(folded, [])
            self.display.setdefault(folded, tag)
            if issue_id not in ids:
                ids.append(issue_id)

    def count(self, folded: str) -> int:
        return len(self.issue_ids[folded])

    def ranked(self) -> list[str]:
        """Folded tags by descending count; ties keep first-seen order."""
        return sorted(self.display, key=lambda folded: -self.count(folded))


def tally_tags(
    issues: Mapping[IssueKey, IssueRecord], tags: Mapping[IssueKey, TagSet]
) -> TagTally:
    """Count tags across tag sets, walking issues in arrival order."""
    tally = TagTally()
    for key, issue in issues.items():
        tag_set = tags.get(key)
        if tag_set is not None:
            tally.add(issue.issue_id, tag_set.tags)
    return tally


def _month_start(moment: datetime) -> datetime:
    return datetime(moment.year, moment.month, 1, tzinfo=timezone.utc)


def _next_month(start: datetime) -> datetime:
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def monthly_activity(issues: Iterable[IssueRecord]) -> list[TimeRangeStatistic]:
    """Issues created and closed per calendar month, oldest month first."""
    created: dict[datetime, int] = {}
    closed: dict[datetime, int] = {}
    for issue in issues:
        month = _month_start(issue.created_at.astimezone(timezone.utc))
        created[month] = created.get(month, 0) + 1
        if issue.closed_at is not None:
            month = _month_start(issue.closed_at.astimezone(timezone.utc))
            closed[month] = closed.get(month, 0) + 1

    return [
        TimeRangeStatistic(
            start_date=month,
            end_date=_next_month(month),
            issues_created=created.get(month, 0),
            issues_closed=closed.get(month, 0),
        )
        for month in sorted(set(created) | set(closed))
    ]


def assign_priority(tag: str, count: int, total: int, policy: ReportPolicy) -> Priority:
    """Priority from the true issue count, not the displayed evidence."""
    if count >= policy.high_ratio * total or tag.lower() in policy.urgency_keywords:
        return Priority.HIGH
    if count >= policy.medium_ratio * total:
        return Priority.MEDIUM
    return Priority.LOW


def build_recommendations(
    tally: TagTally, total: int, policy: ReportPolicy
) -> list[Recommendation]:
    """One recommendation per tag meeting the support threshold."""
    threshold = policy.support_threshold(total)
    recommendations = []
    for folded in tally.ranked():
        count = tally.count(folded)
        if count < threshold:
            continue
        tag = tally.display[folded]
        recommendations.append(
            Recommendation(
                title=RECOMMENDATION_TITLES.get(folded, f"Focus on {tag}"),
                description=(
                    f"'{tag}' appears in {count} of {total} issues "
                    f"({count / total:.0%}). Review the supporting issues for a "
                    f"shared cause before picking up new work in this area."
                ),
                priority=assign_priority(tag, count, total, policy),
                supporting_issues=tally.issue_ids[folded][
                    : policy.max_supporting_issues
                ],
                issue_count=count,
            )
        )

    # Stable sort keeps the count-then-first-seen order within a priority.
    return sorted(
        recommendations, key=lambda rec: (rec.priority.rank, -rec.issue_count)
    )


def generate_report(
    repository: str,
    issues: Mapping[IssueKey, IssueRecord],
    tags: Mapping[IssueKey, TagSet],
    policy: ReportPolicy | None = None,
    now: datetime | None = None,
) -> SummaryReport:
    """Build a summary report from a repository's issues and tag sets.

    Args:
        repository: Repository the report is for
        issues: Issue records keyed by (repository, issue number)
        tags: Tag sets keyed like ``issues``
        policy: Report thresholds, defaults to ``ReportPolicy()``
        now: Generation timestamp, defaults to the current UTC time

    Returns:
        A new immutable SummaryReport

    Raises:
        EmptyStateError: If there are no issues to report on
    """
    if not issues:
        raise EmptyStateError(repository)
    policy = policy or ReportPolicy()
    records = list(issues.values())
    total = len(records)
    open_count = sum(1 for issue in records if issue.state == IssueState.OPEN)
    created = [issue.created_at for issue in records]

    tally = tally_tags(issues, tags)
    top_tags = [
        TagStatistic(tag=tally.display[folded], count=tally.count(folded))
        for folded in tally.ranked()[: policy.top_n]
    ]

    return SummaryReport(
        repository=repository,
        generated_at=now or utc_now(),
        total_issues=total,
        open_issues=open_count,
        closed_issues=total - open_count,
        oldest_issue_date=min(created),
        newest_issue_date=max(created),
        top_tags=top_tags,
        time_ranges=monthly_activity(records),
        recommendations=build_recommendations(tally, total, policy),
    )
