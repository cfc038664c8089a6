# file_tools.py
# Read, Write and Edit: line- and string-level file operations.
#
# Every path goes through PathSandbox.validate() before the first stat,
# open or makedirs call.

import logging
import os
from typing import Any

from sandbox_agent.base import Tool, optional_bool, optional_int, require_str, split_lines
from sandbox_agent.errors import (
    AmbiguousReplacement,
    InvalidArgument,
    IsADirectory,
    NotFound,
    OffsetOutOfRange,
    StringNotFound,
    ToolIOError,
)
from sandbox_agent.models import ToolOutcome

logger = logging.getLogger(__name__)

DEFAULT_READ_LIMIT = 2000
MAX_LINE_LENGTH = 2000
TRUNCATION_MARKER = "... (truncated)"
EMPTY_FILE_MESSAGE = "File is empty"


class ReadTool(Tool):
    name = "Read"
    description = """\
Read a file from the local filesystem, with line numbers.

Arguments:
- file_path (required): path of the file, relative to the working directory or absolute
- offset (optional): 0-based line to start from (default: 0)
- limit (optional): maximum number of lines to return (default: 2000)

Lines longer than 2000 characters are truncated.
Example: {"file_path": "src/app.py", "offset": 100, "limit": 50}\
"""

    def describe(self, args: dict[str, Any]) -> str:
        return f"Reading file: {args.get('file_path', 'unknown file')}"

    def run(self, args: dict[str, Any]) -> ToolOutcome:
        path = self.sandbox.validate(require_str(args, "file_path"))
        offset = optional_int(args, "offset", 0)
        limit = optional_int(args, "limit", DEFAULT_READ_LIMIT)
        display_path = self.sandbox.to_display(path)

        if not os.path.exists(path):
            raise NotFound(f"File does not exist: {display_path}")
        if os.path.isdir(path):
            raise IsADirectory(f"Path is a directory, not a file: {display_path}")
        if limit < 1:
            raise InvalidArgument(f"limit must be at least 1, got {limit}")

        try:
            with open(path, "r", encoding="utf-8", errors="replace") as fh:
                lines = split_lines(fh.read())
        except OSError as exc:
            raise ToolIOError(f"Failed to read {display_path}: {exc}") from exc

        if not lines:
            return ToolOutcome.ok(EMPTY_FILE_MESSAGE, data={"path": display_path, "total_lines": 0})

        start = max(0, offset)
        if start >= len(lines):
            raise OffsetOutOfRange(
                f"Offset {offset} is beyond the end of {display_path} ({len(lines)} lines)"
            )
        end = min(len(lines), start + limit)

        rendered: list[str] = []
        for index in range(start, end):
            line = lines[index]
            if len(line) > MAX_LINE_LENGTH:
                line = line[:MAX_LINE_LENGTH] + TRUNCATION_MARKER
            rendered.append(f"{index + 1:6d}\t{line}")

        output = "\n".join(rendered) + "\n"
        if end < len(lines):
            output += f"\n({len(lines) - end} more lines, use offset={end} to continue)\n"

        logger.debug("Read %d lines from %s (offset=%d, limit=%d)", end - start, display_path, offset, limit)
        return ToolOutcome.ok(
            output,
            data={"path": display_path, "start_line": start + 1, "end_line": end, "total_lines": len(lines)},
        )


class WriteTool(Tool):
    name = "Write"
    description = """\
Write content to a file, creating it or overwriting it completely.
Missing parent directories are created.

Arguments:
- file_path (required): path of the file, e.g. "src/main.py"
- content (required): the full new file content

Example: {"file_path": "notes/todo.md", "content": "# TODO\\n"}\
"""

    def describe(self, args: dict[str, Any]) -> str:
        target = args.get("file_path") or args.get("filename") or "unknown file"
        return f"Writing file: {target}"

    def run(self, args: dict[str, Any]) -> ToolOutcome:
        path = self.sandbox.validate(require_str(args, "file_path", "filename"))
        content = require_str(args, "content", allow_empty=True)
        display_path = self.sandbox.to_display(path)

        if os.path.isdir(path):
            raise IsADirectory(f"Cannot write to a directory: {display_path}")

        try:
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as fh:
                fh.write(content)
        except OSError as exc:
            raise ToolIOError(f"Failed to write {display_path}: {exc}") from exc

        logger.debug("Wrote %d characters to %s", len(content), display_path)
        return ToolOutcome.ok(
            f"Wrote {len(content)} characters to {display_path}",
            data={"path": display_path, "characters": len(content)},
        )


class EditTool(Tool):
    name = "Edit"
    description = """\
Perform an exact string replacement in a file.

Arguments:
- file_path (required): path of the file to edit
- old_string (required): exact text to replace
- new_string (required): replacement text
- replace_all (optional): true replaces every occurrence, false only one (default: false)

With replace_all=false the old_string must occur exactly once; include more
surrounding context to make it unique.
Example: {"file_path": "src/app.py", "old_string": "foo()", "new_string": "bar()"}\
"""

    def describe(self, args: dict[str, Any]) -> str:
        return f"Editing file: {args.get('file_path', 'unknown file')}"

    def run(self, args: dict[str, Any]) -> ToolOutcome:
        path = self.sandbox.validate(require_str(args, "file_path"))
        old_string = require_str(args, "old_string", allow_empty=True)
        new_string = require_str(args, "new_string", allow_empty=True)
        replace_all = optional_bool(args, "replace_all", False)
        display_path = self.sandbox.to_display(path)

        if not os.path.exists(path):
            raise NotFound(f"File does not exist: {display_path}")
        if os.path.isdir(path):
            raise IsADirectory(f"Path is a directory, not a file: {display_path}")
        if old_string == "":
            raise InvalidArgument("old_string must not be empty")

        try:
            with open(path, "r", encoding="utf-8", newline="") as fh:
                content = fh.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise ToolIOError(f"Failed to read {display_path}: {exc}") from exc

        count = content.count(old_string)
        if count == 0:
            raise StringNotFound(f"old_string was not found in {display_path}: {old_string!r}")
        if not replace_all and count > 1:
            raise AmbiguousReplacement(
                f"old_string occurs {count} times in {display_path}. "
                "Provide more surrounding context to make it unique, or pass replace_all=true.",
                count=count,
            )

        if replace_all:
            updated = content.replace(old_string, new_string)
            replacements = count
        else:
            updated = content.replace(old_string, new_string, 1)
            replacements = 1

        try:
            with open(path, "w", encoding="utf-8", newline="") as fh:
                fh.write(updated)
        except OSError as exc:
            raise ToolIOError(f"Failed to write {display_path}: {exc}") from exc

        noun = "occurrence" if replacements == 1 else "occurrences"
        logger.debug("Replaced %d %s in %s", replacements, noun, display_path)
        return ToolOutcome.ok(
            f"Replaced {replacements} {noun} in {display_path}",
            data={"path": display_path, "replacements": replacements},
        )
