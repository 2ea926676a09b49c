"""llama.cpp server adapter, implements the CompletionService port."""

from __future__ import annotations

import logging

import httpx

from project_report.domain.exceptions import UpstreamError

logger = logging.getLogger(__name__)

_STOP_TOKENS: list[str] = [
    "</s>", "<|end|>", "<|eot_id|>", "<|end_of_text|>", "<|im_end|>",
    "<|EOT|>", "<|END_OF_TURN_TOKEN|>", "<|end_of_turn|>", "<|endoftext|>",
    "ASSISTANT", "USER",
]


class LlamaCppCompletionService:
    """Concrete ``CompletionService`` for a local llama.cpp ``/completion`` endpoint.

    There is no JSON mode here; the folder-analysis prompt itself has to ask
    for the JSON shape.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:9090",
        *,
        n_predict: int = 4096,
        temperature: float = 0.2,
        max_retries: int = 0,
        timeout: float = 60.0,
        max_connections: int = 4,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(max_connections=max_connections),
            transport=httpx.AsyncHTTPTransport(retries=max_retries),
        )
        self._url = f"{base_url.rstrip('/')}/completion"
        self._n_predict = n_predict
        self._temperature = temperature

    async def classify_folders(self, prompt: str) -> str:
        return await self._complete(prompt)

    async def summarize_file(self, prompt: str) -> str:
        return await self._complete(prompt)

    async def _complete(self, prompt: str) -> str:
        payload = {
            "prompt": prompt.strip(),
            "n_predict": self._n_predict,
            "temperature": self._temperature,
            "stop": _STOP_TOKENS,
        }
        try:
            resp = await self._client.post(self._url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as exc:
            raise UpstreamError(f"Network error calling {self._url}: {exc}") from exc

        if resp.status_code != 200:
            logger.error("llama.cpp returned HTTP %d: %s", resp.status_code, resp.text[:200])
            raise UpstreamError(
                f"llama.cpp returned HTTP {resp.status_code}", resp.status_code
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError(f"llama.cpp returned invalid JSON: {exc}") from exc

        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise UpstreamError("llama.cpp returned an empty completion.")
        return content

    async def close(self) -> None:
        await self._client.aclose()
