"""Stateful analysis agent: issue events in, tag events and reports out."""

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from ..ai.tagging import FallbackTagExtractor, TagExtractor, unique_tags
from ..config import ReportPolicy
from ..errors import EmptyStateError, ExtractionError, MalformedEventError
from ..models import (
    BatchCompleted,
    IssueEvent,
    IssueRecord,
    SummaryReport,
    TagSet,
    TagsExtractedEvent,
    TagSource,
)
from ..report.generator import generate_report
from .state import RepositoryAnalysisState
from .transport import REPORTS_TOPIC, TAGS_TOPIC, EventTransport, Subscription

logger = logging.getLogger(__name__)

# Sentinel that tells a repository worker to finish after draining its mailbox
_STOP_WORKER = object()


class AnalysisAgent:
    """Consumes issue events and maintains per-repository analysis state.

    Handling for one repository is serialized by a per-repository lock, while
    different repositories proceed concurrently. State is only reachable through
    the methods of this class.
    """

    def __init__(
        self,
        transport: EventTransport,
        extractor: TagExtractor | None = None,
        fallback: TagExtractor | None = None,
        policy: ReportPolicy | None = None,
    ):
        """Initialize the agent.

        Args:
            transport: Where tag and report events are published
            extractor: Primary tag extractor; fallback-only when None
            fallback: Extractor used when the primary one fails
            policy: Report thresholds
        """
        self.transport = transport
        self.fallback = fallback or FallbackTagExtractor()
        self.extractor = extractor or self.fallback
        self.policy = policy or ReportPolicy()
        self._states: dict[str, RepositoryAnalysisState] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, repository: str) -> asyncio.Lock:
        return self._locks.setdefault(repository, asyncio.Lock())

    @staticmethod
    def _parse_event(event: IssueEvent | Mapping[str, Any]) -> IssueEvent:
        if isinstance(event, IssueEvent):
            return event
        try:
            return IssueEvent.model_validate(event)
        except ValidationError as e:
            raise MalformedEventError(f"Invalid issue event: {e}") from e

    async def _extract(self, record: IssueRecord) -> tuple[list[str], TagSource]:
        if self.extractor is not self.fallback:
            try:
                tags = await self.extractor.extract_tags(record)
                return unique_tags(tags), self.extractor.source
            except ExtractionError as e:
                logger.warning(
                    f"Falling back to keyword tags for "
                    f"{record.repository}#{record.issue_number}: {e}"
                )
            except Exception as e:
                logger.error(
                    f"Tag extractor failed unexpectedly for "
                    f"{record.repository}#{record.issue_number}, "
                    f"using keyword tags: {e}"
                )
        tags = await self.fallback.extract_tags(record)
        return unique_tags(tags), self.fallback.source

    async def _publish(self, topic: str, payload: dict[str, Any]) -> None:
        try:
            await self.transport.publish(topic, payload)
        except Exception as e:
            logger.error(f"Failed to publish to {topic}: {e}")

    async def handle_issue_event(
        self, event: IssueEvent | Mapping[str, Any]
    ) -> TagsExtractedEvent:
        """Store an issue, extract its tags and publish a tags event.

        The new record replaces any earlier record with the same key, whatever
        its timestamps say. Extraction happens before anything is stored, so a
        cancelled call leaves the repository state untouched.

        Args:
            event: An IssueEvent or its wire mapping

        Returns:
            The published tags event

        Raises:
            MalformedEventError: If the event fails validation
        """
        issue = self._parse_event(event)
        record = issue.to_record()

        async with self._lock(record.repository):
            tags, source = await self._extract(record)
            tag_set = TagSet(
                repository=record.repository,
                issue_number=record.issue_number,
                tags=tags,
                source=source,
            )
            state = self._states.get(record.repository)
            if state is None:
                state = self._states[record.repository] = RepositoryAnalysisState(
                    record.repository
                )
            state.apply(record, tag_set)

            outbound = TagsExtractedEvent(
                repository=record.repository,
                issue_id=record.issue_id,
                title=record.title,
                extracted_tags=tags,
                source=source,
            )
            logger.debug(
                f"Tagged {record.repository}#{record.issue_number} "
                f"({source.value}): {tags}"
            )
            await asyncio.shield(
                self._publish(
                    TAGS_TOPIC, outbound.model_dump(mode="json", by_alias=True)
                )
            )
        return outbound

    async def generate_summary_report(self, repository: str) -> SummaryReport:
        """Build, store and publish a report from the repository's current state.

        Raises:
            EmptyStateError: If no issues have been recorded for the repository
        """
        async with self._lock(repository):
            state = self._states.get(repository)
            if state is None or not state.issues:
                raise EmptyStateError(repository)
            report = generate_report(repository, state.issues, state.tags, self.policy)
            state.record_report(report)
            logger.info(
                f"Generated report for {repository}: {report.total_issues} issues, "
                f"{len(report.recommendations)} recommendations"
            )
            await asyncio.shield(self._publish(REPORTS_TOPIC, report.to_event()))
        return report

    def repositories(self) -> list[str]:
        """Repositories with recorded issues, in first-seen order."""
        return list(self._states)

    def issue_record(self, repository: str, issue_number: int) -> IssueRecord | None:
        state = self._states.get(repository)
        if state is None:
            return None
        record = state.issues.get((repository, issue_number))
        return record.model_copy(deep=True) if record else None

    def tag_set(self, repository: str, issue_number: int) -> TagSet | None:
        state = self._states.get(repository)
        if state is None:
            return None
        tag_set = state.tags.get((repository, issue_number))
        return tag_set.model_copy(deep=True) if tag_set else None

    def issue_count(self, repository: str) -> int:
        state = self._states.get(repository)
        return len(state.issues) if state else 0

    def latest_report(self, repository: str) -> SummaryReport | None:
        state = self._states.get(repository)
        return state.latest_report if state else None

    def watermark(self, repository: str) -> int:
        """Number of issue events incorporated for the repository so far."""
        state = self._states.get(repository)
        return state.watermark if state else 0

    def last_analyzed_at(self, repository: str) -> datetime | None:
        """When an issue event was last incorporated for the repository."""
        state = self._states.get(repository)
        return state.last_analyzed_at if state else None

    async def _run_worker(self, repository: str, mailbox: asyncio.Queue) -> None:
        while True:
            message = await mailbox.get()
            if message is _STOP_WORKER:
                return
            try:
                if isinstance(message, BatchCompleted):
                    await self.generate_summary_report(repository)
                else:
                    await self.handle_issue_event(message)
            except MalformedEventError as e:
                logger.warning(f"Dropping malformed event for {repository}: {e}")
            except EmptyStateError as e:
                logger.warning(f"No report produced: {e}")
            except Exception as e:
                logger.error(f"Failed to handle event for {repository}: {e}")

    @staticmethod
    def _as_batch_marker(message: Any) -> Any:
        if isinstance(message, Mapping) and message.get("kind") == "batchCompleted":
            try:
                return BatchCompleted.model_validate(message)
            except ValidationError as e:
                raise MalformedEventError(f"Invalid batch marker: {e}") from e
        return message

    @staticmethod
    def _route(message: Any) -> str | None:
        if isinstance(message, (IssueEvent, BatchCompleted)):
            return message.repository
        if isinstance(message, Mapping):
            repository = message.get("repository")
            if isinstance(repository, str) and repository.strip():
                return repository.strip()
        return None

    async def serve(self, subscription: Subscription) -> None:
        """Consume a subscription until its stream closes.

        Each repository gets its own worker task and mailbox, so messages for
        one repository are handled in delivery order while repositories run
        concurrently. A BatchCompleted message triggers a report for its
        repository once the issues published before it have been handled.
        """
        workers: dict[str, tuple[asyncio.Queue, asyncio.Task]] = {}
        try:
            async for message in subscription:
                try:
                    message = self._as_batch_marker(message)
                except MalformedEventError as e:
                    logger.warning(f"Dropping malformed event: {e}")
                    continue
                repository = self._route(message)
                if repository is None:
                    logger.warning(f"Dropping event without a repository: {message!r}")
                    continue
                if repository not in workers:
                    mailbox: asyncio.Queue = asyncio.Queue()
                    task = asyncio.create_task(self._run_worker(repository, mailbox))
                    workers[repository] = (mailbox, task)
                workers[repository][0].put_nowait(message)
        except asyncio.CancelledError:
            for _, task in workers.values():
                task.cancel()
            await asyncio.gather(
                *(task for _, task in workers.values()), return_exceptions=True
            )
            raise

        for mailbox, _ in workers.values():
            mailbox.put_nowait(_STOP_WORKER)
        await asyncio.gather(*(task for _, task in workers.values()))
        logger.debug(f"Issue stream closed after {len(workers)} repositories")
