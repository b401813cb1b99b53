"""Pydantic models for issue events, tag sets and summary reports.

Attribute names are snake_case; the wire format (``model_dump(by_alias=True)``)
uses the camelCase names consumed and produced on the event topics.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

IssueKey = tuple[str, int]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IssueState(str, Enum):
    """Lifecycle state of an issue."""

    OPEN = "open"
    CLOSED = "closed"


class TagSource(str, Enum):
    """Which extractor produced a tag set."""

    AI = "ai"
    FALLBACK = "fallback"


class Priority(str, Enum):
    """Priority level of a recommendation."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


def _clean_repository(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("repository must not be blank")
    return v


class _IssueFields(_WireModel):
    repository: str = Field(..., description="Repository identity, e.g. 'owner/repo'")
    issue_number: int = Field(..., gt=0, description="Issue number in the repository")
    title: str = Field("", description="Issue title")
    description: str = Field("", description="Issue body text")
    state: IssueState = Field(IssueState.OPEN, description="'open' or 'closed'")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    closed_at: datetime | None = None
    url: str | None = None
    labels: list[str] = Field(default_factory=list)

    @field_validator("repository")
    @classmethod
    def validate_repository(cls, v: str) -> str:
        return _clean_repository(v)

    @field_validator("description", "title", mode="before")
    @classmethod
    def none_to_empty(cls, v: str | None) -> str:
        return v or ""

    @field_validator("state", mode="before")
    @classmethod
    def normalize_state(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("created_at", "updated_at", "closed_at")
    @classmethod
    def ensure_aware(cls, v: datetime | None) -> datetime | None:
        # Naive timestamps are treated as UTC so that min/max never mixes kinds.
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def key(self) -> IssueKey:
        return (self.repository, self.issue_number)

    @property
    def issue_id(self) -> str:
        return str(self.issue_number)


class IssueEvent(_IssueFields):
    """Inbound message describing the current full state of one issue."""

    def to_record(self) -> "IssueRecord":
        return IssueRecord.model_validate(self.model_dump())


class IssueRecord(_IssueFields):
    """Stored state of one issue. Replaced wholesale by later events."""

    model_config = ConfigDict(frozen=True)


class BatchCompleted(_WireModel):
    """Control message marking the end of a published batch for a repository.

    On the wire it is told apart from issue events by ``kind``.
    """

    kind: Literal["batchCompleted"] = "batchCompleted"
    repository: str

    @field_validator("repository")
    @classmethod
    def validate_repository(cls, v: str) -> str:
        return _clean_repository(v)


class TagSet(_WireModel):
    """Tags extracted for one issue."""

    model_config = ConfigDict(frozen=True)

    repository: str
    issue_number: int
    tags: list[str] = Field(default_factory=list)
    source: TagSource = TagSource.AI

    @property
    def key(self) -> IssueKey:
        return (self.repository, self.issue_number)


class TagsExtractedEvent(_WireModel):
    """Outbound event published once per handled issue event."""

    repository: str
    issue_id: str
    title: str
    extracted_tags: list[str]
    source: TagSource = TagSource.AI
    extracted_at: datetime = Field(default_factory=utc_now)


class TagStatistic(_WireModel):
    """Number of issues carrying a tag."""

    tag: str
    count: int = Field(..., ge=0)


class TimeRangeStatistic(_WireModel):
    """Issue activity within one calendar month."""

    start_date: datetime
    end_date: datetime
    issues_created: int = 0
    issues_closed: int = 0


class Recommendation(_WireModel):
    """A prioritized suggestion backed by the issues that support it."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    priority: Priority
    supporting_issues: list[str] = Field(
        ..., description="Issue identifiers backing this recommendation"
    )
    issue_count: int = Field(
        ..., description="True number of supporting issues before truncation"
    )

    @field_validator("supporting_issues")
    @classmethod
    def require_evidence(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("a recommendation needs at least one supporting issue")
        return v

    @model_validator(mode="after")
    def check_issue_count(self) -> "Recommendation":
        if self.issue_count < len(self.supporting_issues):
            raise ValueError("issue_count cannot be lower than supporting issues shown")
        return self


class SummaryReport(_WireModel):
    """Snapshot of a repository's issues, tag statistics and recommendations."""

    model_config = ConfigDict(frozen=True)

    repository: str
    generated_at: datetime = Field(default_factory=utc_now)
    total_issues: int = Field(..., ge=1)
    open_issues: int = Field(..., ge=0)
    closed_issues: int = Field(..., ge=0)
    oldest_issue_date: datetime
    newest_issue_date: datetime
    top_tags: list[TagStatistic] = Field(default_factory=list)
    time_ranges: list[TimeRangeStatistic] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_counts(self) -> "SummaryReport":
        if self.open_issues + self.closed_issues != self.total_issues:
            raise ValueError("open and closed issues must add up to total issues")
        return self

    def to_event(self) -> dict:
        """Wire representation published on the reports topic."""
        return self.model_dump(mode="json", by_alias=True)
