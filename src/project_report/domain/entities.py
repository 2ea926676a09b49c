"""Domain entities: pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from project_report.domain.exceptions import ProjectReportError


class RunState(str, Enum):
    """Lifecycle of a single pipeline run."""

    IDLE = "idle"
    COLLECTING = "collecting"
    CLASSIFYING = "classifying"
    SCANNING = "scanning"
    SUMMARIZING = "summarizing"
    REPORTING = "reporting"
    FAILED = "failed"
    CANCELLED = "cancelled"


class IssueKind(str, Enum):
    """Non-fatal problems recorded while the run keeps going."""

    PERMISSION = "permission"
    CYCLE = "cycle"
    UNKNOWN_FOLDER = "unknown_folder"


@dataclass(frozen=True, slots=True)
class FolderEntry:
    """A directory found under the project root."""

    name: str
    path: str
    depth: int = 1


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Folder names the completion service marked as source directories."""

    relevant_folders: frozenset[str]
    dropped: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CodeFile:
    """A matched file, read fully into memory."""

    path: str
    extension: str
    contents: str
    index: int = 0  # position in discovery order


@dataclass(frozen=True, slots=True)
class Summary:
    """Free-text summary produced for one file."""

    file: CodeFile
    text: str


@dataclass(frozen=True, slots=True)
class SummaryFailure:
    """Per-file summarisation failure."""

    file: CodeFile
    message: str
    status_code: int | None = None


@dataclass(frozen=True, slots=True)
class ScanIssue:
    """A non-fatal warning (unreadable path, symlink cycle, dropped folder)."""

    path: str
    message: str
    kind: IssueKind


@dataclass
class RunReport:
    """Aggregate output of one pipeline run.

    The pipeline fills it in stage by stage; when a stage fails the partial
    report is kept with ``state == RunState.FAILED``.
    """

    root: str
    classification: ClassificationResult | None = None
    summaries: list[Summary] = field(default_factory=list)
    failures: list[SummaryFailure] = field(default_factory=list)
    issues: list[ScanIssue] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    scanned_folders: list[FolderEntry] = field(default_factory=list)
    state: RunState = RunState.IDLE
    history: list[RunState] = field(default_factory=list)
    failed_stage: RunState | None = None
    error: ProjectReportError | None = None
    total_files: int = 0
    completed_files: int = 0

    @property
    def files(self) -> list[CodeFile]:
        """All files that reached the summariser, in discovery order."""
        attempted = [s.file for s in self.summaries] + [f.file for f in self.failures]
        return sorted(attempted, key=lambda f: f.index)

    @property
    def relevant_folders(self) -> list[str]:
        if self.classification is None:
            return []
        return sorted(self.classification.relevant_folders)
