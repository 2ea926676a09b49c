"""Folder collection: list the directories the classifier gets to see."""

from __future__ import annotations

import logging
import os
from typing import Iterable, Sequence

from project_report.domain.entities import FolderEntry
from project_report.domain.exceptions import PathNotFoundError, RootPermissionError

logger = logging.getLogger(__name__)

DEFAULT_IGNORED_FOLDERS: frozenset[str] = frozenset(
    {".git", ".github", ".pytest_cache", ".gitignore", "site-packages"}
)


def _open_root(root: str) -> list[os.DirEntry[str]]:
    if not os.path.exists(root):
        raise PathNotFoundError(f"Project path does not exist: {root}")
    if not os.path.isdir(root):
        raise PathNotFoundError(f"Project path is not a directory: {root}")
    try:
        with os.scandir(root) as it:
            return list(it)
    except PermissionError as exc:
        raise RootPermissionError(f"Cannot read project path: {root}") from exc


def _subdirs(entries: Iterable[os.DirEntry[str]], ignored: frozenset[str]) -> list[os.DirEntry[str]]:
    dirs = [e for e in entries if e.name not in ignored and e.is_dir()]
    dirs.sort(key=lambda e: e.name)
    return dirs


def collect_folders(
    root: str,
    *,
    max_depth: int = 1,
    ignored: frozenset[str] = DEFAULT_IGNORED_FOLDERS,
) -> list[FolderEntry]:
    """Return the directories under *root*, sorted by name at each level.

    With ``max_depth=1`` only immediate children are returned; larger values
    add nested directories depth-first, right after their parent.  Recursion
    into each relevant folder is the scanner's job, not this one's.
    """
    if max_depth < 1:
        raise ValueError("max_depth must be at least 1")

    top = _subdirs(_open_root(root), ignored)
    visited = {os.path.realpath(root)}
    result: list[FolderEntry] = []

    def _visit(entries: list[os.DirEntry[str]], depth: int) -> None:
        for entry in entries:
            real = os.path.realpath(entry.path)
            if real in visited:
                logger.debug("Skipping already visited folder %s", entry.path)
                continue
            visited.add(real)
            result.append(FolderEntry(name=entry.name, path=entry.path, depth=depth))
            if depth >= max_depth:
                continue
            try:
                with os.scandir(entry.path) as it:
                    children = _subdirs(it, ignored)
            except OSError:
                logger.warning("Cannot list %s, nested folders skipped", entry.path)
                continue
            _visit(children, depth + 1)

    _visit(top, 1)
    logger.info("Collected %d folder(s) under %s", len(result), root)
    return result


def resolve_extra_folders(root: str, names: Sequence[str]) -> list[FolderEntry]:
    """Resolve user-supplied folder names (or relative paths) against *root*.

    Names that do not point at an existing directory, or that resolve outside
    the root (``../elsewhere``, a symlink out of the tree), are dropped with a
    warning.
    """
    real_root = os.path.join(os.path.realpath(root), "")
    entries: list[FolderEntry] = []
    seen: set[str] = set()
    for raw in names:
        name = raw.strip().strip("/\\")
        if not name or name in seen:
            continue
        seen.add(name)
        path = os.path.join(root, name)
        if not os.path.isdir(path):
            logger.warning("Extra folder '%s' not found under %s, ignored", name, root)
            continue
        if not os.path.join(os.path.realpath(path), "").startswith(real_root):
            logger.warning("Extra folder '%s' lies outside %s, ignored", name, root)
            continue
        entries.append(FolderEntry(name=name.replace("\\", "/"), path=path))
    return entries


def render_folder_listing(entries: Sequence[FolderEntry]) -> str:
    """Indented one-name-per-line listing used in the folder-analysis prompt."""
    return "\n".join("  " * (e.depth - 1) + e.name for e in entries)
