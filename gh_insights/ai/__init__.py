"""Tag extraction for GitHub issues."""

from .completion import AgentCompletionClient, CompletionClient, HttpCompletionClient
from .prompts import SYSTEM_PROMPT, TAG_EXTRACTION_PROMPT
from .tagging import (
    AITagExtractor,
    FallbackTagExtractor,
    TagExtractor,
    build_tag_extractor,
    format_tag_prompt,
    parse_tag_response,
)

__all__ = [
    # Completion clients
    "CompletionClient",
    "HttpCompletionClient",
    "AgentCompletionClient",
    # Extractors
    "TagExtractor",
    "AITagExtractor",
    "FallbackTagExtractor",
    "build_tag_extractor",
    # Helpers
    "format_tag_prompt",
    "parse_tag_response",
    # Prompts
    "SYSTEM_PROMPT",
    "TAG_EXTRACTION_PROMPT",
]
