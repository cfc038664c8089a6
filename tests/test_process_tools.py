import os
import shutil
from unittest.mock import patch

import pytest

from sandbox_agent import process_tools
from sandbox_agent.process_tools import (
    MAX_TIMEOUT_MS,
    NO_OUTPUT_MESSAGE,
    BashTool,
    GitTool,
    MavenTool,
    NpmTool,
    ProcessResult,
    truncate_output,
)
from sandbox_agent.sandbox import PathSandbox

posix_only = pytest.mark.skipif(os.name != "posix", reason="uses POSIX shell commands")


@pytest.fixture
def sandbox(tmp_path):
    return PathSandbox(str(tmp_path))

# ---------------------------------------------------------------------------
# Output bounding
# ---------------------------------------------------------------------------

def test_truncate_output_short_text_unchanged():
    assert truncate_output("hello", limit=10) == "hello"

def test_truncate_output_keeps_head_and_tail():
    text = "a" * 10 + "b" * 10
    result = truncate_output(text, limit=10)
    assert result.startswith("aaaaa")
    assert result.endswith("bbbbb")
    assert "[truncated 10 chars]" in result

# ---------------------------------------------------------------------------
# Bash
# ---------------------------------------------------------------------------

@posix_only
def test_bash_captures_output(sandbox):
    outcome = BashTool(sandbox).execute({"command": "echo hello"})
    assert outcome.success
    assert outcome.output == "hello\n"
    assert outcome.data["exit_code"] == 0

@posix_only
def test_bash_runs_in_sandbox_root(sandbox):
    outcome = BashTool(sandbox).execute({"command": "pwd -P"})
    assert outcome.output.strip() == sandbox.root

@posix_only
def test_bash_merges_stderr(sandbox):
    outcome = BashTool(sandbox).execute({"command": "echo out; echo err 1>&2"})
    assert "out" in outcome.output
    assert "err" in outcome.output

@posix_only
def test_bash_no_output(sandbox):
    outcome = BashTool(sandbox).execute({"command": "true"})
    assert outcome.output == NO_OUTPUT_MESSAGE

@posix_only
def test_bash_nonzero_exit(sandbox):
    outcome = BashTool(sandbox).execute({"command": "echo broken; exit 3"})
    assert not outcome.success
    assert outcome.error.startswith("ProcessExitError: Command failed with exit code 3:")
    assert "broken" in outcome.error
    assert outcome.data["exit_code"] == 3

@posix_only
def test_bash_timeout_kills_process(sandbox):
    outcome = BashTool(sandbox).execute({"command": "sleep 5", "timeout": 200})
    assert not outcome.success
    assert outcome.error.startswith("ProcessTimeout: Command timed out after 200 ms")
    assert outcome.data["timeout_ms"] == 200

def test_bash_timeout_clamped(sandbox):
    fake = ProcessResult(exit_code=0, output="ok", timed_out=False, duration=0.1)
    with patch.object(process_tools, "run_shell", return_value=fake) as mock_run:
        BashTool(sandbox).execute({"command": "ls", "timeout": 10_000_000})
    assert mock_run.call_args[0][2] == MAX_TIMEOUT_MS

def test_bash_invalid_timeout(sandbox):
    outcome = BashTool(sandbox).execute({"command": "ls", "timeout": 0})
    assert outcome.error.startswith("InvalidArgument:")

def test_bash_missing_command(sandbox):
    outcome = BashTool(sandbox).execute({})
    assert outcome.error == "MissingArgument: Missing required argument: command"

def test_bash_spawn_failure(sandbox):
    with patch.object(process_tools, "run_shell", side_effect=OSError("no shell")):
        outcome = BashTool(sandbox).execute({"command": "ls"})
    assert outcome.error.startswith("IOError:")

def test_interrupt_kills_command_and_propagates(sandbox):
    with patch.object(process_tools.subprocess, "Popen") as mock_popen, \
            patch.object(process_tools, "_kill") as mock_kill:
        mock_popen.return_value.communicate.side_effect = KeyboardInterrupt
        with pytest.raises(KeyboardInterrupt):
            BashTool(sandbox).execute({"command": "sleep 30"})
    mock_kill.assert_called_once_with(mock_popen.return_value)
    mock_popen.return_value.wait.assert_called_once()

# ---------------------------------------------------------------------------
# Wrappers
# ---------------------------------------------------------------------------

def _ok(output="done"):
    return ProcessResult(exit_code=0, output=output, timed_out=False, duration=0.1)

def test_git_requires_repository(sandbox):
    with patch.object(process_tools, "run_shell") as mock_run:
        outcome = GitTool(sandbox).execute({"command": "status"})
    assert outcome.error.startswith("NotFound: No .git found in .")
    mock_run.assert_not_called()

def test_git_init_waives_marker(sandbox):
    with patch.object(process_tools, "run_shell", return_value=_ok()) as mock_run:
        outcome = GitTool(sandbox).execute({"command": "init"})
    assert outcome.success
    assert mock_run.call_args[0][:2] == ("git init", sandbox.root)
    assert outcome.output == "Git command: git init\nWorking directory: .\n\ndone"

def test_git_strips_duplicated_binary(sandbox):
    os.mkdir(os.path.join(sandbox.root, ".git"))
    with patch.object(process_tools, "run_shell", return_value=_ok()) as mock_run:
        GitTool(sandbox).execute({"command": "git log --oneline"})
    assert mock_run.call_args[0][0] == "git log --oneline"

def test_npm_in_subdirectory(sandbox):
    project = os.path.join(sandbox.root, "web")
    os.mkdir(project)
    with open(os.path.join(project, "package.json"), "w") as fh:
        fh.write("{}")
    with patch.object(process_tools, "run_shell", return_value=_ok("")) as mock_run:
        outcome = NpmTool(sandbox).execute({"command": "install", "working_directory": "web"})
    assert outcome.success
    assert mock_run.call_args[0][:2] == ("npm install", project)
    assert outcome.output.endswith("(no output)")

def test_npm_working_directory_escape(sandbox):
    outcome = NpmTool(sandbox).execute({"command": "install", "working_directory": "../.."})
    assert outcome.error.startswith("PathEscape:")

def test_wrapper_missing_working_directory(sandbox):
    outcome = NpmTool(sandbox).execute({"command": "install", "working_directory": "ghost"})
    assert outcome.error.startswith("NotFound: Working directory does not exist")

def test_maven_requires_pom(sandbox):
    outcome = MavenTool(sandbox).execute({"command": "clean install"})
    assert outcome.error.startswith("NotFound: No pom.xml found")

def test_wrapper_failure_reports_exit_code(sandbox):
    open(os.path.join(sandbox.root, "pom.xml"), "w").close()
    failed = ProcessResult(exit_code=1, output="BUILD FAILURE", timed_out=False, duration=1.0)
    with patch.object(process_tools, "run_shell", return_value=failed):
        outcome = MavenTool(sandbox).execute({"command": "test"})
    assert outcome.error.startswith("ProcessExitError: Maven command failed (exit code 1)")
    assert "BUILD FAILURE" in outcome.error

@posix_only
@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_git_init_creates_repository(sandbox):
    outcome = GitTool(sandbox).execute({"command": "init"})
    assert outcome.success
    assert os.path.isdir(os.path.join(sandbox.root, ".git"))
