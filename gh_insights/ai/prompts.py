"""
Human-editable prompt templates for tag extraction.
Edit the prompts below to modify AI behavior.
"""

# ruff: noqa

# System instructions sent with every completion request
SYSTEM_PROMPT = "You are a helpful AI assistant specialized in analyzing GitHub issues."

# Tag extraction prompt - filled in by format_tag_prompt()
TAG_EXTRACTION_PROMPT = """
Analyze the following GitHub issue and extract 5-8 short tags that describe its topics.

Repository: {repository}
Title: {title}
Description: {description}
Status: {state}
Existing Labels: {labels}

Rules:
- Return ONLY the tags, one tag per line.
- Do not number the tags and do not use bullet points.
- Prefer short lowercase tags such as "bug", "performance", "documentation".
"""
