import os

import pytest

from sandbox_agent.sandbox import PathSandbox
from sandbox_agent.search_tools import GlobTool, GrepTool, compile_glob, walk_files


@pytest.fixture
def sandbox(tmp_path):
    return PathSandbox(str(tmp_path))


def _write(sandbox, name, content="", mtime=None):
    path = os.path.join(sandbox.root, name)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path

# ---------------------------------------------------------------------------
# Glob compilation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "pattern, path, expected",
    [
        ("*.py", "app.py", True),
        ("*.py", "src/app.py", False),
        ("**/*.py", "app.py", True),
        ("**/*.py", "src/pkg/app.py", True),
        ("src/**/*.ts", "src/a/b/c.ts", True),
        ("src/**/*.ts", "lib/c.ts", False),
        ("file?.txt", "file1.txt", True),
        ("file?.txt", "file10.txt", False),
        ("[ab].md", "a.md", True),
        ("[!ab].md", "a.md", False),
        ("*.{js,ts}", "main.ts", True),
        ("*.{js,ts}", "main.go", False),
    ],
)
def test_compile_glob(pattern, path, expected):
    assert bool(compile_glob(pattern).match(path)) is expected

def test_walk_skips_hidden_and_build_dirs(sandbox):
    _write(sandbox, "keep/a.txt")
    _write(sandbox, ".git/config")
    _write(sandbox, "node_modules/pkg/index.js")
    _write(sandbox, "build/out.txt")
    found = [sandbox.to_display(p) for p in walk_files(sandbox.root)]
    assert found == ["keep/a.txt"]

# ---------------------------------------------------------------------------
# Glob tool
# ---------------------------------------------------------------------------

def test_glob_sorted_newest_first(sandbox):
    _write(sandbox, "old.py", mtime=1_000_000)
    _write(sandbox, "src/new.py", mtime=3_000_000)
    _write(sandbox, "mid.py", mtime=2_000_000)
    _write(sandbox, "readme.md", mtime=4_000_000)

    outcome = GlobTool(sandbox).execute({"pattern": "**/*.py"})
    assert outcome.success
    assert outcome.data["files"] == ["src/new.py", "mid.py", "old.py"]
    assert outcome.output == "Found 3 files matching '**/*.py':\n\nsrc/new.py\nmid.py\nold.py\n"

def test_glob_with_search_path(sandbox):
    _write(sandbox, "src/a.py")
    _write(sandbox, "tests/b.py")
    outcome = GlobTool(sandbox).execute({"pattern": "*.py", "path": "src"})
    assert outcome.data["files"] == ["src/a.py"]

def test_glob_no_matches(sandbox):
    _write(sandbox, "a.txt")
    outcome = GlobTool(sandbox).execute({"pattern": "*.rs"})
    assert outcome.success
    assert outcome.output == "Found 0 files matching '*.rs'"
    assert outcome.data["count"] == 0

def test_glob_missing_path(sandbox):
    outcome = GlobTool(sandbox).execute({"pattern": "*", "path": "ghost"})
    assert outcome.error.startswith("NotFound:")

def test_glob_path_escape(sandbox):
    outcome = GlobTool(sandbox).execute({"pattern": "*", "path": ".."})
    assert outcome.error.startswith("PathEscape:")

# ---------------------------------------------------------------------------
# Grep tool
# ---------------------------------------------------------------------------

@pytest.fixture
def project(sandbox):
    _write(sandbox, "src/app.py", "import os\n\ndef main():\n    print('TODO: main')\n")
    _write(sandbox, "src/util.py", "# todo: helpers\nVALUE = 1\n")
    _write(sandbox, "docs/notes.md", "TODO one\nTODO two\n")
    return sandbox

def test_grep_files_with_matches_default(project):
    outcome = GrepTool(project).execute({"pattern": "TODO"})
    assert outcome.success
    assert outcome.output == "docs/notes.md\nsrc/app.py\n"
    assert outcome.data["total"] == 2

def test_grep_case_insensitive(project):
    outcome = GrepTool(project).execute({"pattern": "todo", "-i": True})
    assert outcome.output == "docs/notes.md\nsrc/app.py\nsrc/util.py\n"

def test_grep_count_mode(project):
    outcome = GrepTool(project).execute({"pattern": "TODO", "output_mode": "count"})
    assert outcome.output == "docs/notes.md: 2\nsrc/app.py: 1\n"

def test_grep_content_mode_with_context(project):
    outcome = GrepTool(project).execute(
        {"pattern": "print", "output_mode": "content", "-B": 1, "path": "src"}
    )
    assert outcome.output == "src/app.py:\n3- def main():\n4:     print('TODO: main')\n"

def test_grep_content_without_line_numbers(project):
    outcome = GrepTool(project).execute(
        {"pattern": "TODO", "output_mode": "content", "-n": False, "path": "docs/notes.md"}
    )
    assert outcome.output == "docs/notes.md:\nTODO one\nTODO two\n"

def test_grep_context_windows_not_merged(sandbox):
    _write(sandbox, "f.txt", "a\nhit\nhit\nb\n")
    outcome = GrepTool(sandbox).execute({"pattern": "hit", "output_mode": "content", "-C": 1})
    assert outcome.output == "f.txt:\n1- a\n2: hit\n3- hit\n2- hit\n3: hit\n4- b\n"

def test_grep_type_filter(project):
    outcome = GrepTool(project).execute({"pattern": "TODO", "type": "md"})
    assert outcome.output == "docs/notes.md\n"

def test_grep_glob_filter(project):
    outcome = GrepTool(project).execute({"pattern": "TODO", "glob": "*.py"})
    assert outcome.output == "src/app.py\n"

def test_grep_head_limit(project):
    outcome = GrepTool(project).execute({"pattern": "TODO", "head_limit": 1})
    assert outcome.output == "docs/notes.md\n"
    assert outcome.data == {"total": 2, "shown": 1, "mode": "files_with_matches"}

def test_grep_no_matches(project):
    outcome = GrepTool(project).execute({"pattern": "nothing_here"})
    assert outcome.success
    assert outcome.output == "No matches found for pattern 'nothing_here'"

def test_grep_skips_binary_files(sandbox):
    with open(os.path.join(sandbox.root, "blob.bin"), "wb") as fh:
        fh.write(b"\xff\xfe\x00TODO\x80")
    _write(sandbox, "text.txt", "TODO\n")
    outcome = GrepTool(sandbox).execute({"pattern": "TODO"})
    assert outcome.output == "text.txt\n"

@pytest.mark.parametrize(
    "args",
    [
        {"pattern": "("},
        {"pattern": "x", "output_mode": "lines"},
        {"pattern": "x", "type": "cobol"},
        {"pattern": "x", "head_limit": 0},
        {"pattern": "x", "-A": -1},
    ],
)
def test_grep_invalid_arguments(project, args):
    outcome = GrepTool(project).execute(args)
    assert outcome.error.startswith("InvalidArgument:")

def test_grep_missing_pattern(project):
    outcome = GrepTool(project).execute({})
    assert outcome.error == "MissingArgument: Missing required argument: pattern"

def test_glob_reorders_after_touch(sandbox):
    first = _write(sandbox, "first.txt", mtime=1_000_000)
    _write(sandbox, "second.txt", mtime=2_000_000)
    glob = GlobTool(sandbox)
    assert glob.execute({"pattern": "*.txt"}).data["files"] == ["second.txt", "first.txt"]

    os.utime(first, (3_000_000, 3_000_000))
    assert glob.execute({"pattern": "*.txt"}).data["files"] == ["first.txt", "second.txt"]

def test_grep_context_around_single_match(sandbox):
    _write(sandbox, "five.txt", "one\ntwo\nthree\nfour\nfive\n")
    outcome = GrepTool(sandbox).execute(
        {"pattern": "three", "output_mode": "content", "-B": 1, "-A": 1}
    )
    assert outcome.output == "five.txt:\n2- two\n3: three\n4- four\n"

def test_grep_line_numbers_past_form_feed(sandbox):
    _write(sandbox, "ff.txt", "x\x0cy\ntarget\n")
    outcome = GrepTool(sandbox).execute({"pattern": "target", "output_mode": "content"})
    assert outcome.output == "ff.txt:\n2: target\n"

def test_grep_context_keeps_separator_inside_line(sandbox):
    _write(sandbox, "sep.txt", "before\u2028still before\nhit\n")
    outcome = GrepTool(sandbox).execute({"pattern": "hit", "output_mode": "content", "-B": 1})
    assert outcome.output == "sep.txt:\n1- before\u2028still before\n2: hit\n"
