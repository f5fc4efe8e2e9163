import tracemalloc
from pathlib import Path

import pytest

from tests.utils import write_tree
from vibe_check.errors import ContextBuildError, ScanCancelledError
from vibe_check.models.context import CodebaseContext, Language
from vibe_check.services.context_builder import (
    MAX_FILE_SIZE,
    ContextBuilderService,
    FileTooLargeError,
    read_source_file,
)
from vibe_check.utils.cancellation import CancellationToken


def test_build_collects_supported_files(project_dir: Path):
    context = ContextBuilderService().build(project_dir)

    assert context.root == project_dir.resolve()
    assert context.paths() == {"app.js", "util.py"}
    assert context.summary.total_files == 2
    assert context.summary.languages == {Language.JAVASCRIPT: 1, Language.PYTHON: 1}


def test_summary_invariants(tmp_path: Path):
    root = write_tree(
        tmp_path,
        {
            "a.py": "x = 1\ny = 2\n",
            "b.py": "z = 3",
            "web/index.ts": "export default 1;\n" * 10,
        },
    )

    context = ContextBuilderService().build(root)
    summary = context.summary

    assert summary.total_files == len(context.files)
    assert sum(summary.languages.values()) == summary.total_files
    assert summary.total_lines == sum(len(f.content.split("\n")) for f in context.files)
    assert summary.largest_file == "web/index.ts"
    expected_average = round(sum(f.size for f in context.files) / len(context.files))
    assert summary.average_file_size == expected_average
    for entry in context.files:
        assert entry.size == len(entry.content)
        assert entry.size <= MAX_FILE_SIZE


def test_empty_directory_fails(tmp_path: Path):
    """An empty directory is a context-build failure, not an empty context."""
    empty = tmp_path / "empty"
    empty.mkdir()

    with pytest.raises(ContextBuildError) as excinfo:
        ContextBuilderService().build(empty)

    assert "No supported files found" in excinfo.value.message


def test_oversized_file_is_skipped(tmp_path: Path):
    root = write_tree(
        tmp_path,
        {
            "big.js": "a" * (200 * 1024),
            "small.py": "b" * (2 * 1024),
        },
    )

    context = ContextBuilderService(max_file_size=100 * 1024).build(root)

    assert context.paths() == {"small.py"}
    assert context.summary.total_files == 1


def test_all_files_rejected_fails(tmp_path: Path):
    root = write_tree(tmp_path, {"big.js": "a" * 2048})

    with pytest.raises(ContextBuildError) as excinfo:
        ContextBuilderService(max_file_size=1024).build(root)

    assert "exceed maximum size limit" in excinfo.value.message


def test_undecodable_file_is_skipped(tmp_path: Path):
    root = write_tree(
        tmp_path,
        {
            "binary.js": b"\xff\xfe\x00\x81garbage",
            "ok.py": "print('ok')\n",
        },
    )

    context = ContextBuilderService().build(root)

    assert context.paths() == {"ok.py"}


def test_blank_root_fails():
    with pytest.raises(ContextBuildError):
        ContextBuilderService().build("   ")


def test_cancelled_build_raises(project_dir: Path):
    token = CancellationToken()
    token.cancel()

    with pytest.raises(ScanCancelledError):
        ContextBuilderService(cancellation=token).build(project_dir)


def test_read_source_file_uses_relative_posix_path(tmp_path: Path):
    root = write_tree(tmp_path, {"pkg/mod.rb": "puts 1\n"})

    entry = read_source_file(root / "pkg" / "mod.rb", root)

    assert entry.path == "pkg/mod.rb"
    assert entry.language is Language.RUBY
    assert entry.line_count == 2


def test_read_source_file_rejects_large_content(tmp_path: Path):
    root = write_tree(tmp_path, {"big.go": "x" * 11})

    with pytest.raises(FileTooLargeError):
        read_source_file(root / "big.go", root, max_size=10)


def test_context_from_files_keeps_order(tmp_path: Path):
    root = write_tree(tmp_path, {"b.py": "b\n", "a.py": "a\n"})
    entries = [read_source_file(root / name, root) for name in ("b.py", "a.py")]

    context = CodebaseContext.from_files(root, entries)

    assert [f.path for f in context.files] == ["b.py", "a.py"]


def test_huge_file_is_rejected_without_reading_it(tmp_path: Path):
    root = write_tree(tmp_path, {"small.py": "print('ok')\n"})
    with (root / "huge.json").open("wb") as handle:
        handle.truncate(64 * 1024 * 1024)

    tracemalloc.start()
    try:
        context = ContextBuilderService().build(root)
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()

    assert context.paths() == {"small.py"}
    assert peak < 16 * 1024 * 1024


def test_read_source_file_checks_byte_size_first(tmp_path: Path):
    root = write_tree(tmp_path, {"big.go": "x" * 41})

    with pytest.raises(FileTooLargeError, match="41 bytes exceeds limit of 40"):
        read_source_file(root / "big.go", root, max_size=10)


def test_multibyte_content_within_character_limit(tmp_path: Path):
    root = write_tree(tmp_path, {"greek.py": "α" * 10})

    entry = read_source_file(root / "greek.py", root, max_size=10)

    assert entry.size == 10


def test_home_relative_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    write_tree(tmp_path / "project", {"app.js": "let a = 1;\n", "lib/util.py": "x = 1\n"})
    monkeypatch.setenv("HOME", str(tmp_path))

    context = ContextBuilderService().build("~/project")

    assert context.root == (tmp_path / "project").resolve()
    assert context.paths() == {"app.js", "lib/util.py"}
