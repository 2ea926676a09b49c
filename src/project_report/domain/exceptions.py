"""Domain exception hierarchy.

Fatal errors abort a run and are recorded on the report together with the
stage that raised them.  At the HTTP boundary each exception maps to a
status code (see ``interface/error_handlers.py``).
"""

from __future__ import annotations


class ProjectReportError(Exception):
    """Base exception for the entire application."""

    #: Pipeline stage that raised the error (filled in by the pipeline).
    stage: str | None = None


# ── Filesystem ──────────────────────────────────────────────────────────────


class PathNotFoundError(ProjectReportError):
    """The configured project root does not exist or is not a directory."""


class RootPermissionError(ProjectReportError, PermissionError):
    """The configured project root cannot be listed."""


class FileNotServedError(ProjectReportError):
    """A file was requested that is not part of the current report."""


# ── Completion service ──────────────────────────────────────────────────────


class UpstreamError(ProjectReportError):
    """Any failure reported by the completion service or its transport."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(ProjectReportError):
    """The folder-analysis response is not JSON or lacks the expected key."""


class UnknownFolderError(ProjectReportError):
    """The folder-analysis response names folders that were never sent."""

    def __init__(self, unknown: list[str]) -> None:
        super().__init__(
            "Completion service returned unknown folder(s): " + ", ".join(unknown)
        )
        self.unknown = unknown


# ── Configuration ───────────────────────────────────────────────────────────


class TemplateError(ProjectReportError, ValueError):
    """A prompt template is missing one of its required placeholders."""


# ── Warnings ────────────────────────────────────────────────────────────────


class CycleDetectedWarning(UserWarning):
    """A directory was reached twice through symlinks and was skipped."""
