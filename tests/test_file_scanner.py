"""Tests for the recursive file scanner."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from conftest import write
from project_report.domain.entities import FolderEntry, IssueKind
from project_report.domain.value_objects import ExtensionAllowList
from project_report.services import file_scanner
from project_report.services.file_scanner import FileScanner, select_folders


def _entry(path: Path) -> FolderEntry:
    return FolderEntry(name=path.name, path=str(path))


def test_scan_matches_allow_list_only(project: Path, allow_list: ExtensionAllowList) -> None:
    result = FileScanner(allow_list).scan([_entry(project / "src")])

    names = [os.path.relpath(f.path, project) for f in result.files]
    assert names == ["src/README.md", "src/main.py", "src/util/helpers.py"]
    assert all(f.extension in allow_list.extensions for f in result.files)
    assert [f.index for f in result.files] == [0, 1, 2]
    assert result.issues == []


def test_scan_reads_contents(project: Path, allow_list: ExtensionAllowList) -> None:
    result = FileScanner(allow_list).scan([_entry(project / "src")])
    assert result.files[1].contents == "print('main')\n"
    assert result.files[1].extension == "py"


def test_extension_match_is_case_insensitive(tmp_path: Path, allow_list: ExtensionAllowList) -> None:
    write(tmp_path / "pkg" / "Main.PY", "x = 1\n")
    write(tmp_path / "pkg" / "Build.Bat", "echo hi\n")
    write(tmp_path / "pkg" / "image.png", "")

    result = FileScanner(allow_list).scan([_entry(tmp_path / "pkg")])

    assert sorted(f.extension for f in result.files) == ["bat", "py"]


def test_files_before_subfolders(tmp_path: Path, allow_list: ExtensionAllowList) -> None:
    write(tmp_path / "pkg" / "a" / "inner.py", "")
    write(tmp_path / "pkg" / "z.py", "")
    write(tmp_path / "pkg" / "b.py", "")

    result = FileScanner(allow_list).scan([_entry(tmp_path / "pkg")])

    assert [os.path.basename(f.path) for f in result.files] == ["b.py", "z.py", "inner.py"]


def test_ignored_folders_are_not_walked(tmp_path: Path, allow_list: ExtensionAllowList) -> None:
    write(tmp_path / "pkg" / ".pytest_cache" / "cache.py", "")
    write(tmp_path / "pkg" / "ok.py", "")
    result = FileScanner(allow_list).scan([_entry(tmp_path / "pkg")])
    assert [os.path.basename(f.path) for f in result.files] == ["ok.py"]


def test_symlink_cycle_terminates_with_warning(tmp_path: Path, allow_list: ExtensionAllowList) -> None:
    write(tmp_path / "pkg" / "sub" / "code.py", "pass\n")
    os.symlink(tmp_path / "pkg", tmp_path / "pkg" / "sub" / "back")

    result = FileScanner(allow_list).scan([_entry(tmp_path / "pkg")])

    assert [os.path.basename(f.path) for f in result.files] == ["code.py"]
    cycles = [i for i in result.issues if i.kind == IssueKind.CYCLE]
    assert len(cycles) == 1
    assert cycles[0].path.endswith("back")


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="permission bits are not enforced for root",
)
def test_unreadable_file_is_skipped(tmp_path: Path, allow_list: ExtensionAllowList) -> None:
    locked = write(tmp_path / "pkg" / "locked.py", "secret\n")
    write(tmp_path / "pkg" / "open.py", "pass\n")
    locked.chmod(0)
    try:
        result = FileScanner(allow_list).scan([_entry(tmp_path / "pkg")])
    finally:
        locked.chmod(0o644)

    assert [os.path.basename(f.path) for f in result.files] == ["open.py"]
    assert [i.kind for i in result.issues] == [IssueKind.PERMISSION]


def test_permission_denied_file_is_recorded(
    tmp_path: Path, allow_list: ExtensionAllowList, monkeypatch: pytest.MonkeyPatch
) -> None:
    locked = write(tmp_path / "pkg" / "locked.py", "secret\n")
    write(tmp_path / "pkg" / "open.py", "pass\n")

    def _open(path: str, *args: object, **kwargs: object):  # type: ignore[no-untyped-def]
        if path == str(locked):
            raise PermissionError(13, "Permission denied", path)
        return open(path, *args, **kwargs)  # type: ignore[call-overload]

    monkeypatch.setattr(file_scanner, "open", _open, raising=False)

    result = FileScanner(allow_list).scan([_entry(tmp_path / "pkg")])

    assert [os.path.basename(f.path) for f in result.files] == ["open.py"]
    assert [(i.path, i.kind) for i in result.issues] == [(str(locked), IssueKind.PERMISSION)]


def test_permission_denied_subfolder_is_recorded(
    tmp_path: Path, allow_list: ExtensionAllowList, monkeypatch: pytest.MonkeyPatch
) -> None:
    write(tmp_path / "pkg" / "top.py", "pass\n")
    write(tmp_path / "pkg" / "private" / "hidden.py", "pass\n")
    private = str(tmp_path / "pkg" / "private")
    real_scandir = os.scandir

    def _scandir(path: str):  # type: ignore[no-untyped-def]
        if os.fspath(path) == private:
            raise PermissionError(13, "Permission denied", path)
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", _scandir)

    result = FileScanner(allow_list).scan([_entry(tmp_path / "pkg")])

    assert [os.path.basename(f.path) for f in result.files] == ["top.py"]
    assert [(i.path, i.kind) for i in result.issues] == [(private, IssueKind.PERMISSION)]


def test_undecodable_bytes_are_replaced(tmp_path: Path, allow_list: ExtensionAllowList) -> None:
    target = tmp_path / "pkg" / "latin.c"
    target.parent.mkdir()
    target.write_bytes(b"/* caf\xe9 */\n")

    result = FileScanner(allow_list).scan([_entry(tmp_path / "pkg")])

    assert result.files[0].contents == "/* caf� */\n"


def test_select_folders_skips_nested_duplicates() -> None:
    entries = [
        FolderEntry("src", "/p/src", 1),
        FolderEntry("core", "/p/src/core", 2),
        FolderEntry("lib", "/p/lib", 1),
        FolderEntry("core", "/p/lib/vendor/core", 3),
        FolderEntry("docs", "/p/docs", 1),
    ]
    selected = select_folders(entries, frozenset({"src", "core"}))
    assert [e.path for e in selected] == ["/p/src", "/p/lib/vendor/core"]


def test_select_does_not_confuse_prefixes() -> None:
    entries = [FolderEntry("src", "/p/src"), FolderEntry("src2", "/p/src2")]
    selected = select_folders(entries, frozenset({"src", "src2"}))
    assert len(selected) == 2


def test_select_folders_matches_names_exactly() -> None:
    entries = [FolderEntry("Src", "/p/Src"), FolderEntry("src", "/p/src")]
    selected = select_folders(entries, frozenset({"src"}))
    assert [e.path for e in selected] == ["/p/src"]
