import random
from pathlib import Path

import pytest

from vibe_check.errors import ValidationError
from vibe_check.models.context import CodebaseContext, FileEntry, Language
from vibe_check.services.condenser import ContextCondenser, priority_key


def _entry(path: str, language: Language, size: int) -> FileEntry:
    return FileEntry(path=path, content="x" * size, language=language, size=size)


def _mixed_context() -> CodebaseContext:
    ts = [_entry(f"web/c{i}.ts", Language.TYPESCRIPT, 100 + i) for i in range(10)]
    py = [_entry(f"srv/m{i}.py", Language.PYTHON, 1000 + i * 10) for i in range(10)]
    return CodebaseContext.from_files(Path("/repo"), ts + py)


def test_primary_tier_first_then_largest():
    condensed = ContextCondenser().condense(_mixed_context(), max_files=15)

    paths = [f.path for f in condensed.files]
    assert len(paths) == 15
    assert {p for p in paths if p.endswith(".ts")} == {f"web/c{i}.ts" for i in range(10)}
    assert {p for p in paths if p.endswith(".py")} == {f"srv/m{i}.py" for i in range(5, 10)}
    # every primary file precedes every secondary one
    assert all(p.endswith(".ts") for p in paths[:10])


def test_summary_is_recomputed_for_subset():
    condensed = ContextCondenser().condense(_mixed_context(), max_files=3)

    assert condensed.summary.total_files == 3
    assert condensed.summary.languages == {Language.TYPESCRIPT: 3}
    assert condensed.root == Path("/repo")


def test_condense_is_independent_of_input_order():
    context = _mixed_context()
    shuffled_files = list(context.files)
    random.Random(7).shuffle(shuffled_files)
    shuffled = CodebaseContext.from_files(context.root, shuffled_files)

    condenser = ContextCondenser()
    first = condenser.condense(context, max_files=12)
    second = condenser.condense(shuffled, max_files=12)

    assert [f.path for f in first.files] == [f.path for f in second.files]


def test_equal_sizes_break_ties_by_path():
    files = [_entry(name, Language.GO, 50) for name in ("z.go", "a.go", "m.go")]
    context = CodebaseContext.from_files(Path("/repo"), files)

    condensed = ContextCondenser().condense(context, max_files=2)

    assert [f.path for f in condensed.files] == ["a.go", "m.go"]


def test_limit_larger_than_context_keeps_everything():
    context = _mixed_context()

    condensed = ContextCondenser(max_files=100).condense(context)

    assert len(condensed.files) == len(context.files)


def test_zero_limit_returns_empty_context():
    condensed = ContextCondenser().condense(_mixed_context(), max_files=0)

    assert condensed.files == ()
    assert condensed.summary.total_files == 0


def test_negative_limit_is_rejected():
    with pytest.raises(ValidationError):
        ContextCondenser().condense(_mixed_context(), max_files=-1)


def test_priority_key_orders_tiers():
    js = _entry("a.js", Language.JAVASCRIPT, 1)
    big_py = _entry("b.py", Language.PYTHON, 10_000)

    assert priority_key(js) < priority_key(big_py)
