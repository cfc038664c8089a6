# process_tools.py
# Bash, Git, Npm and Maven: spawn, bound and capture external processes.
#
# All four go through run_shell(). The timeout watchdog is the only way a
# running command is ever cancelled; on POSIX the command gets its own
# session so the whole process group dies with it.

import logging
import os
import signal
import subprocess
import time
from typing import Any, NamedTuple

from sandbox_agent.base import Tool, optional_int, optional_str, require_str
from sandbox_agent.errors import InvalidArgument, NotFound, ProcessExitError, ProcessTimeout, ToolIOError
from sandbox_agent.models import ToolOutcome

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 120_000
MAX_TIMEOUT_MS = 600_000
MAX_OUTPUT_CHARS = 30_000
NO_OUTPUT_MESSAGE = "Command completed successfully (no output)"


class ProcessResult(NamedTuple):
    exit_code: int | None
    output: str
    timed_out: bool
    duration: float


# ---------------------------------------------------------------------------
# Spawning
# ---------------------------------------------------------------------------


def truncate_output(text: str, limit: int = MAX_OUTPUT_CHARS) -> str:
    """Keep the head and tail of oversized output, noting how much was dropped."""
    if len(text) <= limit:
        return text
    head = limit // 2
    tail = limit - head
    removed = len(text) - limit
    return f"{text[:head]}\n...[truncated {removed} chars]...\n{text[-tail:]}"


def _kill(process: subprocess.Popen) -> None:
    if os.name == "posix":
        try:
            os.killpg(process.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    process.kill()


def run_shell(command: str, cwd: str, timeout_ms: int) -> ProcessResult:
    """
    Run `command` through the platform shell with stdout and stderr merged.

    Waits up to `timeout_ms`; on expiry the process (group) is force-killed
    and whatever output was captured so far is returned with timed_out=True.
    """
    extra: dict[str, Any] = {}
    if os.name == "posix":
        extra["start_new_session"] = True

    start = time.monotonic()
    process = subprocess.Popen(
        command,
        shell=True,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        encoding="utf-8",
        errors="replace",
        **extra,
    )
    timed_out = False
    try:
        output, _ = process.communicate(timeout=timeout_ms / 1000)
    except subprocess.TimeoutExpired:
        timed_out = True
        _kill(process)
        try:
            output, _ = process.communicate(timeout=5)
        except subprocess.TimeoutExpired:
            output = ""
            process.kill()
            process.wait()
    except KeyboardInterrupt:
        _kill(process)
        process.wait()
        raise
    duration = round(time.monotonic() - start, 2)
    return ProcessResult(process.returncode, truncate_output(output or ""), timed_out, duration)


def _timeout_ms(args: dict[str, Any]) -> int:
    timeout = optional_int(args, "timeout", DEFAULT_TIMEOUT_MS)
    if timeout < 1:
        raise InvalidArgument(f"timeout must be a positive number of milliseconds, got {timeout}")
    return min(timeout, MAX_TIMEOUT_MS)


def _spawn(command: str, cwd: str, timeout_ms: int) -> ProcessResult:
    logger.debug("Running %r in %s (timeout %d ms)", command, cwd, timeout_ms)
    try:
        return run_shell(command, cwd, timeout_ms)
    except OSError as exc:
        raise ToolIOError(f"Failed to start command '{command}': {exc}") from exc


# ---------------------------------------------------------------------------
# Bash
# ---------------------------------------------------------------------------


class BashTool(Tool):
    name = "Bash"
    description = """\
Execute a shell command in the working directory, with a timeout.

Arguments:
- command (required): the command line to run
- timeout (optional): timeout in milliseconds (default: 120000, max: 600000)

stdout and stderr are merged. A non-zero exit status is reported as a failure.\
"""

    def describe(self, args: dict[str, Any]) -> str:
        return f"Running command: {args.get('command', 'unknown command')}"

    def run(self, args: dict[str, Any]) -> ToolOutcome:
        command = require_str(args, "command")
        timeout_ms = _timeout_ms(args)

        result = _spawn(command, self.sandbox.root, timeout_ms)
        if result.timed_out:
            message = f"Command timed out after {timeout_ms} ms"
            if result.output.strip():
                message += f":\n{result.output}"
            raise ProcessTimeout(message, timeout_ms=timeout_ms, output=result.output)
        if result.exit_code != 0:
            logger.warning("Command %r exited with %s", command, result.exit_code)
            raise ProcessExitError(
                f"Command failed with exit code {result.exit_code}:\n{result.output}",
                exit_code=result.exit_code,
                output=result.output,
            )

        output = result.output if result.output.strip() else NO_OUTPUT_MESSAGE
        return ToolOutcome.ok(output, data={"exit_code": 0, "duration_seconds": result.duration})


# ---------------------------------------------------------------------------
# Domain-prefixed wrappers
# ---------------------------------------------------------------------------


class CommandWrapperTool(Tool):
    """
    Runs `<binary> <subcommand>` in a validated working directory.

    Subclasses name the binary, the project marker that must exist in the
    working directory, and the subcommands that are allowed to run without
    it (e.g. `git init`).
    """

    binary: str = ""
    label: str = ""
    marker: str = ""
    marker_hint: str = ""
    waived_subcommands: frozenset[str] = frozenset()

    def describe(self, args: dict[str, Any]) -> str:
        return f"Running {self.label}: {args.get('command', 'unknown command')}"

    def _subcommand(self, command: str) -> str:
        tokens = command.split(None, 1)
        if tokens and tokens[0] == self.binary:
            return tokens[1] if len(tokens) > 1 else ""
        return command.strip()

    def _marker_waived(self, subcommand: str) -> bool:
        tokens = subcommand.split()
        return bool(tokens) and tokens[0] in self.waived_subcommands

    def run(self, args: dict[str, Any]) -> ToolOutcome:
        subcommand = self._subcommand(require_str(args, "command"))
        if not subcommand:
            raise InvalidArgument(f"command must contain a {self.label} subcommand")
        workdir = self.sandbox.validate(optional_str(args, "working_directory", "."))
        timeout_ms = _timeout_ms(args)
        display_dir = self.sandbox.to_display(workdir)

        if not os.path.exists(workdir):
            raise NotFound(f"Working directory does not exist: {display_dir}")
        if not os.path.isdir(workdir):
            raise InvalidArgument(f"Working directory is not a directory: {display_dir}")
        if not self._marker_waived(subcommand) and not os.path.exists(os.path.join(workdir, self.marker)):
            raise NotFound(f"No {self.marker} found in {display_dir}\nHint: {self.marker_hint}")

        full_command = f"{self.binary} {subcommand}"
        trace = f"{self.label} command: {full_command}\nWorking directory: {display_dir}"

        result = _spawn(full_command, workdir, timeout_ms)
        output = result.output.strip()
        if result.timed_out:
            raise ProcessTimeout(
                f"{self.label} command timed out after {timeout_ms} ms\n{trace}\n\n{output}".rstrip(),
                timeout_ms=timeout_ms,
                output=result.output,
            )
        if result.exit_code != 0:
            logger.warning("%s exited with %s", full_command, result.exit_code)
            raise ProcessExitError(
                f"{self.label} command failed (exit code {result.exit_code})\n{trace}\n\n{output}".rstrip(),
                exit_code=result.exit_code,
                output=result.output,
            )

        return ToolOutcome.ok(
            f"{trace}\n\n{output or '(no output)'}",
            data={"command": full_command, "working_directory": display_dir, "exit_code": 0},
        )


class GitTool(CommandWrapperTool):
    name = "Git"
    binary = "git"
    label = "Git"
    marker = ".git"
    marker_hint = "run 'init' to create a repository"
    waived_subcommands = frozenset({"init", "clone"})
    description = """\
Run a Git version-control command.

Arguments:
- command (required): the git subcommand, e.g. "status", "add .", "commit -m 'msg'", "log --oneline"
- working_directory (optional): repository directory (default: the working directory)
- timeout (optional): timeout in milliseconds (default: 120000)

The directory must contain a .git repository, except for "init" and "clone".\
"""


class NpmTool(CommandWrapperTool):
    name = "Npm"
    binary = "npm"
    label = "NPM"
    marker = "package.json"
    marker_hint = "run 'init' to create a package.json"
    waived_subcommands = frozenset({"init"})
    description = """\
Run an NPM package-manager command.

Arguments:
- command (required): the npm subcommand, e.g. "install", "run build", "test", "install express --save"
- working_directory (optional): project directory (default: the working directory)
- timeout (optional): timeout in milliseconds (default: 120000)

The directory must contain a package.json, except for "init".\
"""


class MavenTool(CommandWrapperTool):
    name = "Maven"
    binary = "mvn"
    label = "Maven"
    marker = "pom.xml"
    marker_hint = "run 'archetype:generate' to create a project"
    waived_subcommands = frozenset({"archetype:generate"})
    description = """\
Run a Maven build command.

Arguments:
- command (required): the mvn goals and options, e.g. "clean install", "test -q", "dependency:tree"
- working_directory (optional): project directory (default: the working directory)
- timeout (optional): timeout in milliseconds (default: 120000)

The directory must contain a pom.xml, except for "archetype:generate".\
"""
