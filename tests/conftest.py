from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Callable

import pytest

from project_report.domain.exceptions import UpstreamError
from project_report.domain.value_objects import (
    CANONICAL_EXTENSIONS,
    ExtensionAllowList,
    FilePromptTemplate,
    FolderPromptTemplate,
)
from project_report.services.file_scanner import FileScanner
from project_report.services.file_summarizer import DEFAULT_FILE_SUMMARY_PROMPT, FileSummarizer
from project_report.services.folder_classifier import (
    DEFAULT_FOLDER_ANALYSIS_PROMPT,
    FolderClassifier,
)
from project_report.services.run_pipeline import ProjectReportPipeline


class StubCompletionService:
    """Deterministic completion service.

    The summary for a prompt is ``"Summary: "`` followed by the prompt's last
    line.  Prompts containing any of ``fail_on`` raise :class:`UpstreamError`;
    ``delays`` maps a marker to a sleep so completion order can be shuffled.
    """

    def __init__(
        self,
        folder_reply: str | Callable[[str], str] = '{"analysis_key": []}',
        *,
        fail_on: tuple[str, ...] = (),
        delays: dict[str, float] | None = None,
    ) -> None:
        self.folder_reply = folder_reply
        self.fail_on = fail_on
        self.delays = delays or {}
        self.folder_prompts: list[str] = []
        self.file_prompts: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def classify_folders(self, prompt: str) -> str:
        self.folder_prompts.append(prompt)
        if callable(self.folder_reply):
            return self.folder_reply(prompt)
        return self.folder_reply

    async def summarize_file(self, prompt: str) -> str:
        self.file_prompts.append(prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = next((d for m, d in self.delays.items() if m in prompt), 0.0)
            await asyncio.sleep(delay)
            if any(marker in prompt for marker in self.fail_on):
                raise UpstreamError("stub provider unavailable", 503)
            return "Summary: " + prompt.strip().splitlines()[-1].strip()
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


def analysis(*names: str) -> str:
    return json.dumps({"analysis_key": list(names)})


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def make_pipeline(
    root: Path,
    service: StubCompletionService,
    *,
    unknown_policy: str = "drop",
    max_concurrency: int = 4,
) -> ProjectReportPipeline:
    return ProjectReportPipeline(
        root=str(root),
        classifier=FolderClassifier(
            service,
            FolderPromptTemplate.from_string(DEFAULT_FOLDER_ANALYSIS_PROMPT),
            unknown_policy=unknown_policy,  # type: ignore[arg-type]
        ),
        scanner=FileScanner(ExtensionAllowList.from_iterable(CANONICAL_EXTENSIONS)),
        summarizer=FileSummarizer(
            service,
            FilePromptTemplate.from_string(DEFAULT_FILE_SUMMARY_PROMPT),
            max_concurrency=max_concurrency,
        ),
    )


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small project: ``src`` with code, plus ``node_modules`` and ``docs``."""
    root = tmp_path / "project"
    write(root / "src" / "main.py", "print('main')\n")
    write(root / "src" / "README.md", "# src readme\n")
    write(root / "src" / "notes.txt", "not code\n")
    write(root / "src" / "util" / "helpers.py", "def helper():\n    return 1\n")
    write(root / "node_modules" / "lib" / "index.js", "module.exports = 1;\n")
    write(root / "docs" / "guide.md", "# Guide\n")
    write(root / ".git" / "config", "[core]\n")
    return root


@pytest.fixture
def allow_list() -> ExtensionAllowList:
    return ExtensionAllowList.from_iterable(CANONICAL_EXTENSIONS)
