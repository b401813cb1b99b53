"""Text-completion clients used by the AI tag extractor."""

import logging
from typing import Any, Protocol

import httpx
from pydantic_ai import Agent

from ..config import validate_model_string
from ..errors import CompletionError
from .prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    """Anything that turns a prompt into completion text."""

    async def complete(self, prompt: str, timeout: float) -> str: ...


class HttpCompletionClient:
    """Chat-completions client for OpenAI-compatible HTTP endpoints.

    When ``api_version`` is given the Azure OpenAI deployment route and
    ``api-key`` header are used, otherwise a Bearer token against
    ``{endpoint}/chat/completions``.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        api_version: str | None = None,
        temperature: float = 0.3,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            endpoint: Base URL of the completion service (no trailing slash needed)
            api_key: API key sent with every request
            model: Model name, or deployment name for Azure endpoints
            api_version: Azure OpenAI API version, e.g. '2024-02-15-preview'
            temperature: Sampling temperature
            http_client: Shared client; a short-lived one is used per call if None
        """
        if not endpoint:
            raise ValueError("A completion endpoint is required")
        self.endpoint = endpoint.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.api_version = api_version
        self.temperature = temperature
        self._http_client = http_client

    @property
    def url(self) -> str:
        if self.api_version:
            return (
                f"{self.endpoint}/openai/deployments/{self.model}/chat/completions"
                f"?api-version={self.api_version}"
            )
        return f"{self.endpoint}/chat/completions"

    @property
    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            if self.api_version:
                headers["api-key"] = self.api_key
            else:
                headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _request_body(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }

    async def _post(
        self, client: httpx.AsyncClient, body: dict[str, Any], timeout: float
    ) -> httpx.Response:
        return await client.post(
            self.url, headers=self.headers, json=body, timeout=timeout
        )

    async def complete(self, prompt: str, timeout: float) -> str:
        """Send the prompt and return the first choice's message content.

        Raises:
            CompletionError: On transport errors, timeouts, non-success status
                or a response body without completion text
        """
        body = self._request_body(prompt)
        try:
            if self._http_client is not None:
                response = await self._post(self._http_client, body, timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, body, timeout)
        except httpx.TimeoutException as e:
            raise CompletionError(
                f"Completion request timed out after {timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise CompletionError(f"Completion request failed: {e}") from e

        if not response.is_success:
            raise CompletionError(
                f"Completion request failed: {response.status_code} "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CompletionError("Malformed completion response body") from e

        if not isinstance(content, str):
            raise CompletionError("Completion response has no text content")
        return content


class AgentCompletionClient:
    """Completion client backed by a PydanticAI agent with text output."""

    def __init__(self, model: str, agent: Agent[None, str] | None = None):
        """Initialize client.

        Args:
            model: Model identifier (e.g., 'openai:gpt-4o-mini')
            agent: Pre-built agent, mainly for tests
        """
        validate_model_string(model)
        self.model = model
        self._agent = agent

    @property
    def agent(self) -> Agent[None, str]:
        """Lazy-loaded agent so that provider clients are built on first use."""
        if self._agent is None:
            self._agent = Agent(
                output_type=str,
                instructions=SYSTEM_PROMPT,
                retries=0,
            )
        return self._agent

    async def complete(self, prompt: str, timeout: float) -> str:
        try:
            result = await self.agent.run(
                prompt, model=self.model, model_settings={"timeout": timeout}
            )
        except Exception as e:
            raise CompletionError(f"{self.model} completion failed: {e}") from e
        return str(result.output)
