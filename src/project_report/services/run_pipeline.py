"""Project-report use case, the main orchestration pipeline.

Collect folders → classify them → scan the relevant ones → summarise every
matched file → hand back a :class:`RunReport`.  The pipeline depends only on
the :class:`CompletionService` port and the pure service modules; the
interface layer wires concrete adapters in.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence

from project_report.domain.entities import (
    ClassificationResult,
    FolderEntry,
    IssueKind,
    RunReport,
    RunState,
    ScanIssue,
)
from project_report.domain.exceptions import ProjectReportError, UpstreamError
from project_report.services.file_scanner import FileScanner, select_folders
from project_report.services.file_summarizer import FileSummarizer
from project_report.services.folder_classifier import FolderClassifier
from project_report.services.folder_collector import (
    DEFAULT_IGNORED_FOLDERS,
    collect_folders,
    resolve_extra_folders,
)

logger = logging.getLogger(__name__)

#: Called with each classification; returns extra folder names to re-check,
#: or an empty sequence to accept the result.
ReviewHook = Callable[[ClassificationResult], Sequence[str]]


class ProjectReportPipeline:
    """Runs the five stages of a project report in order.

    Fatal errors never escape :meth:`run`; they end the run in
    ``RunState.FAILED`` with the partial report kept for inspection.
    Per-file problems are recorded on the report and the run carries on.
    """

    def __init__(
        self,
        root: str,
        classifier: FolderClassifier,
        scanner: FileScanner,
        summarizer: FileSummarizer,
        *,
        collect_depth: int = 1,
        ignored: frozenset[str] = DEFAULT_IGNORED_FOLDERS,
    ) -> None:
        self._root = root
        self._classifier = classifier
        self._scanner = scanner
        self._summarizer = summarizer
        self._depth = collect_depth
        self._ignored = ignored
        self._cancel = asyncio.Event()
        self._state = RunState.IDLE
        self._report: RunReport | None = None

    # ── Public API ──────────────────────────────────────────────────────

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def report(self) -> RunReport | None:
        """The report of the current (or last) run, updated as it progresses."""
        return self._report

    def cancel(self) -> None:
        """Stop issuing new summary requests; in-flight ones may finish."""
        self._cancel.set()

    async def run(
        self,
        *,
        extra_folders: Sequence[str] = (),
        review: ReviewHook | None = None,
        deadline: float | None = None,
    ) -> RunReport:
        self._cancel = asyncio.Event()
        report = RunReport(root=self._root)
        self._report = report
        timer = None
        if deadline is not None:
            timer = asyncio.get_running_loop().call_later(deadline, self._on_deadline)

        try:
            await self._execute(report, list(extra_folders), review)
        except ProjectReportError as exc:
            exc.stage = self._state.value
            report.failed_stage = self._state
            report.error = exc
            logger.error("Run failed while %s: %s", self._state.value, exc)
            self._enter(report, RunState.FAILED)
        finally:
            if timer is not None:
                timer.cancel()

        report.state = self._state
        self._state = RunState.IDLE
        return report

    # ── Stages ──────────────────────────────────────────────────────────

    async def _execute(
        self, report: RunReport, extras: list[str], review: ReviewHook | None
    ) -> None:
        self._enter(report, RunState.COLLECTING)
        entries = collect_folders(self._root, max_depth=self._depth, ignored=self._ignored)
        extra_entries = resolve_extra_folders(self._root, extras)

        self._enter(report, RunState.CLASSIFYING)
        classification = await self._classify(entries, extra_entries, extras, review)
        report.classification = classification
        for name in classification.dropped:
            report.issues.append(
                ScanIssue(name, "Unknown folder dropped from analysis", IssueKind.UNKNOWN_FOLDER)
            )

        self._enter(report, RunState.SCANNING)
        selected = select_folders([*entries, *extra_entries], classification.relevant_folders)
        scan = self._scanner.scan(selected)
        report.scanned_folders = scan.folders
        report.issues.extend(scan.issues)
        report.total_files = len(scan.files)

        self._enter(report, RunState.SUMMARIZING)

        def _progress(completed: int, total: int) -> None:
            report.completed_files = completed

        outcome = await self._summarizer.summarize_all(
            scan.files, cancel_event=self._cancel, on_complete=_progress
        )
        report.summaries = outcome.summaries
        report.failures = outcome.failures
        report.skipped = [f.path for f in outcome.skipped]

        if outcome.failures and not outcome.summaries and not outcome.skipped:
            raise UpstreamError(
                f"All {len(outcome.failures)} summary request(s) failed; "
                f"last error: {outcome.failures[-1].message}",
                outcome.failures[-1].status_code,
            )

        if self._cancel.is_set():
            logger.warning(
                "Run cancelled: %d file(s) summarised, %d not started",
                outcome.attempted, len(outcome.skipped),
            )
            self._enter(report, RunState.CANCELLED)
            return

        self._enter(report, RunState.REPORTING)

    async def _classify(
        self,
        entries: list[FolderEntry],
        extra_entries: list[FolderEntry],
        extras: list[str],
        review: ReviewHook | None,
    ) -> ClassificationResult:
        result = await self._classifier.classify(entries, extra_entries)
        while review is not None:
            more = [name for name in review(result) if name.strip()]
            if not more:
                break
            extras.extend(more)
            extra_entries[:] = resolve_extra_folders(self._root, extras)
            result = await self._classifier.classify(entries, extra_entries)
        return result

    # ── Helpers ─────────────────────────────────────────────────────────

    def _enter(self, report: RunReport, state: RunState) -> None:
        logger.info("Stage: %s", state.value)
        self._state = state
        report.state = state
        report.history.append(state)

    def _on_deadline(self) -> None:
        logger.warning("Run deadline reached; no new summary requests will be issued")
        self._cancel.set()
