"""File summarisation: one completion request per matched file.

Requests run concurrently under a semaphore.  Results are correlated by the
file's discovery index, so the outcome lists are always in discovery order
whatever order the requests complete in.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

from project_report.domain.entities import CodeFile, Summary, SummaryFailure
from project_report.domain.exceptions import UpstreamError
from project_report.domain.ports.completion_service import CompletionService
from project_report.domain.value_objects import FilePromptTemplate

logger = logging.getLogger(__name__)

EMPTY_FILE_SUMMARY = "(empty file)"

DEFAULT_FILE_SUMMARY_PROMPT = """\
Write a short functional summary of the following source code, no more than \
100 words.  Describe what the code actually does in the style of a \
professional software engineer and keep variable and function names exactly \
as they appear so the summary can be cross-referenced quickly:
{}"""

DEFAULT_CHUNK_MERGE_PROMPT = """\
The following are summaries of consecutive fragments of one source file.  \
Merge them into a single summary of the whole file, no more than 150 words:
{}"""

ProgressCallback = Callable[[int, int], None]


@dataclass
class SummarizeOutcome:
    """Per-file results of a summarisation pass, each list in discovery order."""

    summaries: list[Summary] = field(default_factory=list)
    failures: list[SummaryFailure] = field(default_factory=list)
    skipped: list[CodeFile] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.summaries) + len(self.failures)


def split_lines(contents: str, chunk_lines: int) -> list[str]:
    lines = contents.splitlines()
    return ["\n".join(lines[i : i + chunk_lines]) for i in range(0, len(lines), chunk_lines)]


class FileSummarizer:
    """Summarise files independently with bounded in-flight requests.

    Parameters
    ----------
    service:
        Completion service shared by every request.
    template:
        File-summary prompt with a single ``{}`` placeholder.
    max_concurrency:
        Maximum number of requests in flight at once.
    chunk_lines:
        When set, files longer than this many lines are summarised chunk by
        chunk and the partial summaries merged with *merge_template*.
    """

    def __init__(
        self,
        service: CompletionService,
        template: FilePromptTemplate,
        *,
        max_concurrency: int = 4,
        chunk_lines: int | None = None,
        merge_template: FilePromptTemplate | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if chunk_lines is not None and chunk_lines < 1:
            raise ValueError("chunk_lines must be positive")
        self._service = service
        self._template = template
        self._max_concurrency = max_concurrency
        self._chunk_lines = chunk_lines
        self._merge_template = merge_template or FilePromptTemplate.from_string(
            DEFAULT_CHUNK_MERGE_PROMPT, label="Chunk-merge"
        )

    async def summarize_all(
        self,
        files: Sequence[CodeFile],
        *,
        cancel_event: asyncio.Event | None = None,
        on_complete: ProgressCallback | None = None,
    ) -> SummarizeOutcome:
        """Summarise every file; failures and cancellations are recorded, not raised."""
        sem = asyncio.Semaphore(self._max_concurrency)
        cancel = cancel_event or asyncio.Event()
        total = len(files)
        completed = 0

        async def _one(file: CodeFile) -> Summary | SummaryFailure | None:
            nonlocal completed
            async with sem:
                if cancel.is_set():
                    return None
                try:
                    text = await self.summarize(file)
                    outcome: Summary | SummaryFailure = Summary(file=file, text=text)
                except UpstreamError as exc:
                    logger.warning("Summary failed for %s: %s", file.path, exc)
                    outcome = SummaryFailure(
                        file=file, message=str(exc), status_code=exc.status_code
                    )
            completed += 1
            logger.info("Summarised %s (%d/%d)", file.path, completed, total)
            if on_complete is not None:
                on_complete(completed, total)
            return outcome

        results = await asyncio.gather(*(_one(f) for f in files))

        outcome = SummarizeOutcome()
        for file, result in sorted(zip(files, results), key=lambda pair: pair[0].index):
            if result is None:
                outcome.skipped.append(file)
            elif isinstance(result, Summary):
                outcome.summaries.append(result)
            else:
                outcome.failures.append(result)
        return outcome

    async def summarize(self, file: CodeFile) -> str:
        """Summarise a single file (chunked when it is long and chunking is on)."""
        if not file.contents.strip():
            return EMPTY_FILE_SUMMARY

        if self._chunk_lines is None or file.contents.count("\n") < self._chunk_lines:
            return await self._request(self._template.render(file.contents))

        parts = [
            await self._request(self._template.render(chunk))
            for chunk in split_lines(file.contents, self._chunk_lines)
        ]
        if len(parts) == 1:
            return parts[0]
        return await self._request(self._merge_template.render(" ".join(parts)))

    async def _request(self, prompt: str) -> str:
        text = await self._service.summarize_file(prompt)
        return text.strip()
