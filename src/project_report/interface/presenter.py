"""Result presenter: render a RunReport for the console, JSON, or the tree view."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from project_report.domain.entities import RunReport, RunState
from project_report.interface.schemas import (
    ErrorItem,
    ProgressResponse,
    RunReportResponse,
    SummaryItem,
    TreeFile,
    TreeNode,
    WarningItem,
)

logger = logging.getLogger(__name__)


def to_response(report: RunReport) -> RunReportResponse:
    return RunReportResponse(
        state=report.state.value,
        root=report.root,
        analysis_key=report.relevant_folders,
        summaries=[SummaryItem(path=s.file.path, text=s.text) for s in report.summaries],
        errors=[
            ErrorItem(path=f.file.path, message=f.message, status_code=f.status_code)
            for f in report.failures
        ],
        warnings=[
            WarningItem(path=i.path, kind=i.kind.value, message=i.message)
            for i in report.issues
        ],
        skipped=list(report.skipped),
    )


def to_progress(report: RunReport) -> ProgressResponse:
    return ProgressResponse(
        state=report.state.value,
        total_files=report.total_files,
        completed_files=report.completed_files,
        summaries={s.file.path: s.text for s in report.summaries},
    )


def write_report(report: RunReport, path: str | Path) -> None:
    """Persist the report as JSON (only when the user asks for it)."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(to_response(report).model_dump_json(indent=2), encoding="utf-8")
    logger.info("Report written to %s", target)


def render_console(report: RunReport) -> str:
    """Human-readable report; failures are listed apart from summaries."""
    lines: list[str] = [f"Project report for {report.root}", f"State: {report.state.value}"]

    if report.state == RunState.FAILED:
        stage = report.failed_stage.value if report.failed_stage else "unknown"
        lines.append(f"Failed while {stage}: {report.error}")

    if report.classification is not None:
        folders = ", ".join(report.relevant_folders) or "(none)"
        lines.append(f"Relevant folders: {folders}")

    if report.summaries:
        lines += ["", f"Summaries ({len(report.summaries)}/{report.total_files}):"]
        for s in report.summaries:
            lines.append(f"* {s.file.path}")
            lines += [f"    {line}" for line in s.text.splitlines() or [""]]

    if report.failures:
        lines += ["", f"Failed files ({len(report.failures)}):"]
        for f in report.failures:
            code = f" [HTTP {f.status_code}]" if f.status_code else ""
            lines.append(f"! {f.file.path}{code}: {f.message}")

    if report.skipped:
        lines += ["", f"Not summarised after cancellation ({len(report.skipped)}):"]
        lines += [f"- {p}" for p in report.skipped]

    if report.issues:
        lines += ["", "Warnings:"]
        lines += [f"~ [{i.kind.value}] {i.path}: {i.message}" for i in report.issues]

    return "\n".join(lines)


# ── Filtered tree ───────────────────────────────────────────────────────────


@dataclass
class _Dir:
    name: str
    path: str
    subdirs: dict[str, _Dir] = field(default_factory=dict)
    files: list[TreeFile] = field(default_factory=list)

    def child(self, name: str) -> _Dir:
        if name not in self.subdirs:
            self.subdirs[name] = _Dir(name=name, path=os.path.join(self.path, name))
        return self.subdirs[name]

    def freeze(self) -> TreeNode:
        return TreeNode(
            name=self.name,
            path=self.path,
            subdirs=[self.subdirs[k].freeze() for k in sorted(self.subdirs)],
            files=sorted(self.files, key=lambda f: f.name),
        )


def build_tree(report: RunReport) -> TreeNode:
    """Nested tree of the scanned folders, each file carrying its summary."""
    root = _Dir(name=os.path.basename(os.path.normpath(report.root)), path=report.root)
    summaries = {s.file.path: s.text for s in report.summaries}

    def _node_for(directory: str) -> _Dir:
        node = root
        rel = os.path.relpath(directory, report.root)
        if rel == os.curdir:
            return node
        for part in Path(rel).parts:
            node = node.child(part)
        return node

    for folder in report.scanned_folders:
        _node_for(folder.path)
    for file in report.files:
        name = os.path.basename(file.path)
        _node_for(os.path.dirname(file.path)).files.append(
            TreeFile(name=name, path=file.path, summary=summaries.get(file.path))
        )
    return root.freeze()
