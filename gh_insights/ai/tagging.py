"""Tag extraction providers: AI-backed and deterministic keyword fallback."""

import asyncio
import logging
from collections.abc import Iterable
from typing import Protocol

from ..config import InsightsSettings
from ..errors import ExtractionError
from ..models import IssueRecord, TagSource
from .completion import AgentCompletionClient, CompletionClient, HttpCompletionClient
from .prompts import TAG_EXTRACTION_PROMPT

logger = logging.getLogger(__name__)

# Leading list markers stripped from each response line
LIST_MARKERS = "-•*"

# Fallback tag -> keywords that imply it, scanned in this order
KEYWORD_FAMILIES: dict[str, tuple[str, ...]] = {
    "bug": ("bug", "fix", "issue"),
    "feature": ("feature", "enhancement"),
    "documentation": ("documentation", "docs"),
    "performance": ("performance", "slow"),
    "security": ("security", "vulnerability"),
    "question": ("question",),
}


class TagExtractor(Protocol):
    """Converts one issue into an ordered list of topic tags."""

    source: TagSource

    async def extract_tags(self, issue: IssueRecord) -> list[str]: ...


def unique_tags(tags: Iterable[str]) -> list[str]:
    """Drop blanks and case-insensitive duplicates, keeping first-seen casing."""
    seen: set[str] = set()
    result = []
    for tag in tags:
        tag = tag.strip()
        if not tag or tag.lower() in seen:
            continue
        seen.add(tag.lower())
        result.append(tag)
    return result


def parse_tag_response(text: str) -> list[str]:
    """Parse a one-tag-per-line completion into a tag list."""
    lines = (line.strip().lstrip(LIST_MARKERS).strip() for line in text.splitlines())
    return unique_tags(lines)


def format_tag_prompt(issue: IssueRecord) -> str:
    """Format issue data into the tag extraction prompt."""
    return TAG_EXTRACTION_PROMPT.format(
        repository=issue.repository,
        title=issue.title,
        description=issue.description or "No description",
        state=issue.state.value,
        labels=", ".join(issue.labels) if issue.labels else "None",
    )


class AITagExtractor:
    """Tag extraction through a text-completion endpoint."""

    source = TagSource.AI

    def __init__(self, client: CompletionClient, timeout: float = 30.0):
        self.client = client
        self.timeout = timeout

    async def extract_tags(self, issue: IssueRecord) -> list[str]:
        """Ask the completion endpoint for tags.

        Raises:
            ExtractionError: On timeout, completion failure or an empty response
        """
        prompt = format_tag_prompt(issue)
        label = f"{issue.repository}#{issue.issue_number}"
        try:
            text = await asyncio.wait_for(
                self.client.complete(prompt, self.timeout), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise ExtractionError(
                f"Tag extraction for {label} timed out after {self.timeout}s"
            ) from e
        except Exception as e:
            raise ExtractionError(f"Tag extraction for {label} failed: {e}") from e

        tags = parse_tag_response(text)
        if not tags:
            raise ExtractionError(f"Completion for {label} contained no tags")
        return tags


class FallbackTagExtractor:
    """Deterministic keyword heuristic. Never fails."""

    source = TagSource.FALLBACK

    def tags_for(self, issue: IssueRecord) -> list[str]:
        tags = list(issue.labels)
        tags.append(issue.state.value.lower())

        content = f"{issue.title} {issue.description}".lower()
        for tag, keywords in KEYWORD_FAMILIES.items():
            if any(keyword in content for keyword in keywords):
                tags.append(tag)

        return unique_tags(tags)

    async def extract_tags(self, issue: IssueRecord) -> list[str]:
        return self.tags_for(issue)


def build_tag_extractor(settings: InsightsSettings) -> TagExtractor:
    """Choose the tag extractor once, from settings."""
    if not settings.ai_configured:
        logger.info("No completion endpoint configured, using keyword tagging only")
        return FallbackTagExtractor()

    client: CompletionClient
    if settings.completion_endpoint:
        client = HttpCompletionClient(
            endpoint=settings.completion_endpoint,
            api_key=settings.completion_api_key,
            model=settings.completion_model,
            api_version=settings.completion_api_version,
        )
    elif settings.model:
        client = AgentCompletionClient(settings.model)
    else:
        raise ValueError("AI tagging requires a model or a completion endpoint")
    return AITagExtractor(client, timeout=settings.completion_timeout)
