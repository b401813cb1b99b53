"""Tests for the per-repository state store."""

import pytest

from gh_insights.agent.state import RepositoryAnalysisState
from gh_insights.models import IssueRecord, TagSet


def _tag_set(record: IssueRecord, *tags: str) -> TagSet:
    return TagSet(
        repository=record.repository, issue_number=record.issue_number, tags=list(tags)
    )


class TestRepositoryAnalysisState:
    """Test state mutation rules."""

    def test_apply_stores_record_and_tags(self, issue_factory) -> None:
        state = RepositoryAnalysisState("o/r")
        record = issue_factory(1).to_record()

        state.apply(record, _tag_set(record, "bug"))

        assert state.issues == {("o/r", 1): record}
        assert state.tags[("o/r", 1)].tags == ["bug"]
        assert state.watermark == 1
        assert state.last_analyzed_at is not None

    def test_replace_keeps_first_arrival_position(self, issue_factory) -> None:
        state = RepositoryAnalysisState("o/r")
        first = issue_factory(1, title="old").to_record()
        second = issue_factory(2).to_record()
        replacement = issue_factory(1, title="new").to_record()

        for record in (first, second, replacement):
            state.apply(record, _tag_set(record, "x"))

        assert list(state.issues) == [("o/r", 1), ("o/r", 2)]
        assert state.issues[("o/r", 1)].title == "new"
        assert state.watermark == 3

    def test_mismatched_tag_set_rejected(self, issue_factory) -> None:
        state = RepositoryAnalysisState("o/r")
        record = issue_factory(1).to_record()
        other = issue_factory(2).to_record()

        with pytest.raises(ValueError, match="does not match"):
            state.apply(record, _tag_set(other, "bug"))
        assert state.issues == {}
        assert state.tags == {}
        assert state.watermark == 0

    def test_other_repository_rejected(self, issue_factory) -> None:
        state = RepositoryAnalysisState("o/r")
        record = issue_factory(1, repository="a/b").to_record()

        with pytest.raises(ValueError, match="a/b"):
            state.apply(record, _tag_set(record, "bug"))

    def test_latest_report_empty(self) -> None:
        assert RepositoryAnalysisState("o/r").latest_report is None
