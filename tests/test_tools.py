import pytest

from sandbox_agent.base import Tool, optional_bool, optional_int, optional_str, require_str, split_lines
from sandbox_agent.errors import InvalidArgument, MissingArgument, NotFound
from sandbox_agent.models import ToolOutcome
from sandbox_agent.sandbox import PathSandbox
from sandbox_agent.tools import TOOL_CLASSES, build_registry, catalog


@pytest.fixture
def sandbox(tmp_path):
    return PathSandbox(str(tmp_path))

# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def test_registry_contains_every_tool_in_order(sandbox):
    registry = build_registry(sandbox)
    assert list(registry) == ["Read", "Write", "Edit", "Glob", "Grep", "Bash", "Git", "Npm", "Maven"]

def test_registry_tools_share_one_sandbox(sandbox):
    registry = build_registry(sandbox)
    assert all(tool.sandbox is sandbox for tool in registry.values())

def test_catalog_has_names_and_descriptions(sandbox):
    entries = catalog(build_registry(sandbox))
    assert [entry.name for entry in entries] == [cls.name for cls in TOOL_CLASSES]
    assert all(entry.description.strip() for entry in entries)

def test_duplicate_tool_names_rejected(sandbox, monkeypatch):
    from sandbox_agent import tools

    monkeypatch.setattr(tools, "TOOL_CLASSES", (TOOL_CLASSES[0], TOOL_CLASSES[0]))
    with pytest.raises(ValueError, match="Duplicate tool name"):
        tools.build_registry(sandbox)

# ---------------------------------------------------------------------------
# Dispatch boundary
# ---------------------------------------------------------------------------

class _RaisingTool(Tool):
    name = "Raiser"
    description = "raises"

    def __init__(self, sandbox, exc):
        super().__init__(sandbox)
        self.exc = exc

    def run(self, args):
        raise self.exc

def test_tool_error_becomes_failure(sandbox):
    outcome = _RaisingTool(sandbox, NotFound("gone")).execute({})
    assert outcome == ToolOutcome.fail("NotFound: gone", data={"kind": "NotFound"})

def test_unexpected_exception_becomes_failure(sandbox):
    outcome = _RaisingTool(sandbox, RuntimeError("boom")).execute({})
    assert not outcome.success
    assert outcome.error == "Internal error in Raiser: boom"

def test_non_mapping_arguments_rejected(sandbox):
    outcome = _RaisingTool(sandbox, RuntimeError("unused")).execute(["not", "a", "dict"])
    assert outcome.error.startswith("InvalidArgument:")

def test_outcome_shape_enforced():
    with pytest.raises(ValueError):
        ToolOutcome(success=True, error="x")
    with pytest.raises(ValueError):
        ToolOutcome(success=False, output="x")

# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------

def test_require_str_uses_alias():
    assert require_str({"filename": "a.txt"}, "file_path", "filename") == "a.txt"

def test_require_str_missing():
    with pytest.raises(MissingArgument) as info:
        require_str({}, "file_path")
    assert info.value.key == "file_path"

def test_require_str_rejects_blank_and_non_strings():
    with pytest.raises(InvalidArgument):
        require_str({"pattern": "  "}, "pattern")
    with pytest.raises(InvalidArgument):
        require_str({"pattern": ["x"]}, "pattern")
    assert require_str({"content": ""}, "content", allow_empty=True) == ""

def test_optional_str_blank_falls_back():
    assert optional_str({"path": " "}, "path", ".") == "."
    assert optional_str({}, "path") is None

@pytest.mark.parametrize("value, expected", [(5, 5), (5.0, 5), ("7", 7), (" 8 ", 8), (None, 3), ("", 3)])
def test_optional_int_coercion(value, expected):
    assert optional_int({"n": value}, "n", 3) == expected

@pytest.mark.parametrize("value", [True, 2.5, "ten"])
def test_optional_int_rejects(value):
    with pytest.raises(InvalidArgument):
        optional_int({"n": value}, "n")

@pytest.mark.parametrize(
    "value, expected",
    [(True, True), (False, False), ("true", True), ("No", False), (1, True), (0, False), (None, False)],
)
def test_optional_bool_coercion(value, expected):
    assert optional_bool({"flag": value}, "flag") is expected

def test_optional_bool_rejects_garbage():
    with pytest.raises(InvalidArgument):
        optional_bool({"flag": "maybe"}, "flag")

@pytest.mark.parametrize(
    "text, expected",
    [
        ("", []),
        ("a\nb\n", ["a", "b"]),
        ("a\nb", ["a", "b"]),
        ("\n", [""]),
        ("a\n\n", ["a", ""]),
        ("a\x0cb\x0bc\x1dd\u2028e\u0085f\n", ["a\x0cb\x0bc\x1dd\u2028e\u0085f"]),
    ],
)
def test_split_lines_breaks_on_newline_only(text, expected):
    assert split_lines(text) == expected
