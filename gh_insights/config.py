"""Runtime settings and report thresholds."""

import os

from pydantic import BaseModel, Field, field_validator

TRUE_VALUES = {"1", "true", "yes", "on"}


def validate_model_string(model: str) -> tuple[str, str]:
    """Validate and parse model string format.

    Args:
        model: Model identifier (e.g., 'openai:gpt-4o-mini')

    Returns:
        Tuple of (provider, model_name)

    Raises:
        ValueError: If model string format is invalid
    """
    if ":" not in model:
        raise ValueError(
            f"Invalid model format '{model}'. Expected format: provider:model\n\n"
            f"💡 Examples of valid model formats:\n"
            f"   openai:gpt-4o-mini\n"
            f"   anthropic:claude-3-5-sonnet-latest\n"
            f"   google-gla:gemini-2.0-flash"
        )

    provider, model_name = model.split(":", 1)
    if not provider or not model_name:
        raise ValueError(
            f"Invalid model format '{model}'. Both provider and model name must be "
            f"non-empty."
        )
    return provider.lower(), model_name


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in TRUE_VALUES


class ReportPolicy(BaseModel):
    """Thresholds used when turning tag frequencies into recommendations."""

    top_n: int = Field(10, ge=1, description="Number of tags listed in a report")
    min_support_count: int = Field(
        3, ge=1, description="Occurrences that always qualify a tag"
    )
    min_support_ratio: float = Field(
        0.2, ge=0.0, le=1.0, description="Share of issues that qualifies a tag"
    )
    high_ratio: float = Field(0.4, ge=0.0, le=1.0)
    medium_ratio: float = Field(0.2, ge=0.0, le=1.0)
    urgency_keywords: frozenset[str] = frozenset({"bug", "crash", "security"})
    max_supporting_issues: int = Field(
        5, ge=1, description="Supporting issue ids shown per recommendation"
    )

    @field_validator("urgency_keywords")
    @classmethod
    def lowercase_keywords(cls, v: frozenset[str]) -> frozenset[str]:
        return frozenset(keyword.lower() for keyword in v)

    def support_threshold(self, total_issues: int) -> float:
        """Minimum tag count for a recommendation; the smaller rule wins."""
        return min(self.min_support_count, self.min_support_ratio * total_issues)


class InsightsSettings(BaseModel):
    """Settings for the tag extractor and issue source."""

    github_token: str | None = None
    model: str | None = Field(
        None, description="PydanticAI model string, e.g. 'openai:gpt-4o-mini'"
    )
    completion_endpoint: str | None = Field(
        None, description="Base URL of an OpenAI-compatible completion endpoint"
    )
    completion_api_key: str | None = None
    completion_model: str = "gpt-4o-mini"
    completion_api_version: str | None = None
    completion_timeout: float = Field(30.0, gt=0)
    use_fallback_tagger: bool = False

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str | None) -> str | None:
        if v:
            validate_model_string(v)
        return v or None

    @classmethod
    def from_env(cls) -> "InsightsSettings":
        """Build settings from environment variables."""
        values: dict[str, object] = {
            "github_token": os.getenv("GITHUB_TOKEN"),
            "model": os.getenv("INSIGHTS_MODEL"),
            "completion_endpoint": os.getenv("INSIGHTS_COMPLETION_ENDPOINT"),
            "completion_api_key": os.getenv("INSIGHTS_COMPLETION_API_KEY"),
            "completion_api_version": os.getenv("INSIGHTS_COMPLETION_API_VERSION"),
            "use_fallback_tagger": _env_flag("USE_FALLBACK_TAGGER"),
        }
        if os.getenv("INSIGHTS_COMPLETION_MODEL"):
            values["completion_model"] = os.getenv("INSIGHTS_COMPLETION_MODEL")
        if os.getenv("INSIGHTS_COMPLETION_TIMEOUT"):
            values["completion_timeout"] = os.getenv("INSIGHTS_COMPLETION_TIMEOUT")
        return cls.model_validate(values)

    @property
    def ai_configured(self) -> bool:
        """Whether an AI-backed extractor should be attempted first."""
        if self.use_fallback_tagger:
            return False
        return bool(self.completion_endpoint or self.model)
