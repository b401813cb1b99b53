"""Per-repository aggregate of issues, tags and reports."""

from datetime import datetime

from ..models import IssueKey, IssueRecord, SummaryReport, TagSet, utc_now


class RepositoryAnalysisState:
    """Everything the agent knows about one repository.

    Issues keep their first-arrival position when replaced, so iteration order
    is the order in which issues were first seen. Every key in ``tags`` is also
    a key in ``issues``; ``apply`` is the only method that writes either map.
    """

    def __init__(self, repository: str):
        self.repository = repository
        self.issues: dict[IssueKey, IssueRecord] = {}
        self.tags: dict[IssueKey, TagSet] = {}
        self.reports: list[SummaryReport] = []
        self.watermark = 0
        self.last_analyzed_at: datetime | None = None

    @property
    def latest_report(self) -> SummaryReport | None:
        return self.reports[-1] if self.reports else None

    def apply(self, record: IssueRecord, tag_set: TagSet) -> None:
        """Replace the record and its tags for one issue, then advance the watermark.

        Raises:
            ValueError: If the record belongs to another repository or the tag
                set is keyed to a different issue
        """
        if record.repository != self.repository:
            raise ValueError(
                f"Record for {record.repository} applied to state of {self.repository}"
            )
        if tag_set.key != record.key:
            raise ValueError(
                f"Tag set key {tag_set.key} does not match record key {record.key}"
            )
        self.issues[record.key] = record
        self.tags[record.key] = tag_set
        self.watermark += 1
        self.last_analyzed_at = utc_now()

    def record_report(self, report: SummaryReport) -> None:
        """Store a new report; earlier reports are kept as history."""
        self.reports.append(report)
