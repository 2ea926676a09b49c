"""File scanning: walk relevant folders and read every allow-listed file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Sequence

from project_report.domain.entities import CodeFile, FolderEntry, IssueKind, ScanIssue
from project_report.domain.exceptions import CycleDetectedWarning
from project_report.domain.value_objects import ExtensionAllowList
from project_report.services.folder_collector import DEFAULT_IGNORED_FOLDERS

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Files in discovery order plus the non-fatal issues met on the way."""

    files: list[CodeFile] = field(default_factory=list)
    issues: list[ScanIssue] = field(default_factory=list)
    folders: list[FolderEntry] = field(default_factory=list)


def select_folders(
    entries: Sequence[FolderEntry], relevant: frozenset[str]
) -> list[FolderEntry]:
    """Pick the entries whose name was classified as relevant.

    Names are compared exactly, so ``src`` never selects a sibling ``Src``.
    A folder nested inside another selected folder is left out; walking the
    outer one already covers it.
    """
    selected: list[FolderEntry] = []
    for entry in entries:
        if entry.name not in relevant:
            continue
        if any(_is_within(entry.path, s.path) for s in selected):
            continue
        selected.append(entry)
    return selected


def _is_within(path: str, parent: str) -> bool:
    parent = os.path.join(parent, "")
    return os.path.join(path, "").startswith(parent)


class FileScanner:
    """Recursive, cycle-safe walker restricted to an extension allow-list."""

    def __init__(
        self,
        allow_list: ExtensionAllowList,
        *,
        ignored: frozenset[str] = DEFAULT_IGNORED_FOLDERS,
    ) -> None:
        self._allow = allow_list
        self._ignored = ignored

    def scan(self, folders: Sequence[FolderEntry]) -> ScanResult:
        """Walk *folders* in order; inside a directory files come before subfolders."""
        result = ScanResult(folders=list(folders))
        visited: set[str] = set()
        for folder in folders:
            self._walk(folder.path, visited, result)
        logger.info(
            "Scanned %d folder(s): %d file(s) matched, %d issue(s)",
            len(folders), len(result.files), len(result.issues),
        )
        return result

    # ── Internals ───────────────────────────────────────────────────────

    def _walk(self, directory: str, visited: set[str], result: ScanResult) -> None:
        real = os.path.realpath(directory)
        if real in visited:
            warning = CycleDetectedWarning(
                f"{directory} resolves to already visited {real}; skipped"
            )
            logger.warning("%s", warning)
            result.issues.append(ScanIssue(directory, str(warning), IssueKind.CYCLE))
            return
        visited.add(real)

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            logger.warning("Cannot list %s: %s", directory, exc)
            result.issues.append(ScanIssue(directory, str(exc), IssueKind.PERMISSION))
            return

        subdirs: list[str] = []
        for entry in entries:
            try:
                is_dir = entry.is_dir()
                is_file = not is_dir and entry.is_file()
            except OSError:
                continue
            if is_dir:
                if entry.name not in self._ignored:
                    subdirs.append(entry.path)
            elif is_file and self._allow.matches(entry.name):
                self._read(entry.path, result)

        for sub in subdirs:
            self._walk(sub, visited, result)

    @staticmethod
    def _read(path: str, result: ScanResult) -> None:
        try:
            with open(path, encoding="utf-8", errors="replace") as fh:
                contents = fh.read()
        except OSError as exc:
            logger.warning("Skipping unreadable file %s: %s", path, exc)
            result.issues.append(ScanIssue(path, str(exc), IssueKind.PERMISSION))
            return
        extension = path.rsplit(".", 1)[-1].lower()
        result.files.append(
            CodeFile(path=path, extension=extension, contents=contents, index=len(result.files))
        )
