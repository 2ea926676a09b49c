"""OpenAI adapter, implements the CompletionService port."""

from __future__ import annotations

import logging

import httpx
from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    AsyncOpenAI,
    AuthenticationError,
)

from project_report.domain.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class OpenAICompletionService:
    """Concrete ``CompletionService`` backed by the OpenAI chat-completions API.

    One ``AsyncOpenAI`` client (and its connection pool) is shared by the
    folder-analysis request and every file-summary request of a run.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        *,
        system_prompt: str | None = None,
        base_url: str | None = None,
        max_retries: int = 0,
        timeout: float = 60.0,
        max_connections: int = 4,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if client is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout),
                limits=httpx.Limits(max_connections=max_connections),
            )
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                max_retries=max_retries,
                http_client=self._http,
            )
        else:
            self._http = None
        self._client = client
        self._model = model
        self._system_prompt = system_prompt

    async def classify_folders(self, prompt: str) -> str:
        return await self._complete(prompt, json_mode=True)

    async def summarize_file(self, prompt: str) -> str:
        return await self._complete(prompt, json_mode=False)

    async def _complete(self, prompt: str, *, json_mode: bool) -> str:
        """Send one user prompt and return the completion text."""
        messages: list[dict[str, str]] = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, object] = {
            "model": self._model,
            "messages": messages,
            "temperature": 0.2,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**kwargs)  # type: ignore[arg-type]
        except AuthenticationError as exc:
            raise UpstreamError(
                "Invalid OpenAI API key. "
                "Set a valid key in the OPENAI_API_KEY environment variable.",
                exc.status_code,
            ) from exc
        except APIStatusError as exc:
            logger.error("OpenAI returned HTTP %s: %s", exc.status_code, exc.message)
            raise UpstreamError(
                f"OpenAI returned HTTP {exc.status_code}: {exc.message}", exc.status_code
            ) from exc
        except APIConnectionError as exc:
            raise UpstreamError(f"Could not reach OpenAI: {exc}") from exc
        except APIError as exc:
            logger.error("OpenAI request failed: %s", exc)
            raise UpstreamError(f"OpenAI request failed: {exc}") from exc

        if not response.choices or not response.choices[0].message.content:
            raise UpstreamError("OpenAI returned an empty response.")
        return response.choices[0].message.content

    async def close(self) -> None:
        """Release underlying HTTP resources."""
        await self._client.close()
        if self._http is not None:
            await self._http.aclose()
