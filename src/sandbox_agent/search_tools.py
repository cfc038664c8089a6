# search_tools.py
# Glob and Grep: tree walk plus pattern / regex matching.
#
# Both walk the tree with walk_files(), which skips hidden directories and
# common build/dependency directories, and both re-check every hit against
# the sandbox root after resolving symlinks.

import logging
import os
import re
from typing import Any, Iterator, NamedTuple

from sandbox_agent.base import Tool, optional_bool, optional_int, optional_str, require_str, split_lines
from sandbox_agent.errors import InvalidArgument, NotFound
from sandbox_agent.models import ToolOutcome

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset({"node_modules", "target", "build", "dist", "__pycache__", "venv"})

OUTPUT_MODES = ("files_with_matches", "count", "content")

TYPE_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "py": (".py", ".pyi"),
    "js": (".js", ".jsx", ".mjs", ".cjs"),
    "ts": (".ts", ".tsx"),
    "java": (".java",),
    "go": (".go",),
    "rust": (".rs",),
    "rs": (".rs",),
    "c": (".c", ".h"),
    "cpp": (".cpp", ".cc", ".cxx", ".hpp", ".hh", ".h"),
    "rb": (".rb",),
    "php": (".php",),
    "sh": (".sh", ".bash"),
    "html": (".html", ".htm"),
    "css": (".css", ".scss", ".less"),
    "md": (".md", ".markdown"),
    "xml": (".xml",),
    "json": (".json",),
    "yaml": (".yaml", ".yml"),
    "yml": (".yaml", ".yml"),
    "toml": (".toml",),
}


# ---------------------------------------------------------------------------
# Glob pattern compilation
# ---------------------------------------------------------------------------


def _translate(pattern: str) -> str:
    """Translate shell-glob syntax into a regex fragment over '/'-separated paths."""
    parts: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    # "**/" also matches zero directories.
                    parts.append("(?:.*/)?")
                    i += 1
                else:
                    parts.append(".*")
            else:
                parts.append("[^/]*")
                i += 1
        elif c == "?":
            parts.append("[^/]")
            i += 1
        elif c == "[":
            end = pattern.find("]", i + 2)
            if end == -1:
                parts.append(re.escape(c))
                i += 1
                continue
            body = pattern[i + 1:end]
            negate = body.startswith("!")
            if negate:
                body = body[1:]
            body = body.replace("\\", "\\\\")
            if body.startswith("^"):
                body = "\\" + body
            parts.append("[" + ("^" if negate else "") + body + "]")
            i = end + 1
        elif c == "{":
            end = pattern.find("}", i + 1)
            if end == -1:
                parts.append(re.escape(c))
                i += 1
                continue
            options = pattern[i + 1:end].split(",")
            parts.append("(?:" + "|".join(_translate(opt) for opt in options) + ")")
            i = end + 1
        else:
            parts.append(re.escape(c))
            i += 1
    return "".join(parts)


def compile_glob(pattern: str) -> re.Pattern:
    """
    Compile a shell-glob into a regex matched against '/'-separated paths.

    `*` and `?` stay within one path segment, `**` crosses segments, and
    `**/` also matches zero directories, so `**/*.py` matches `app.py`.
    """
    if os.sep == "\\":
        pattern = pattern.replace("\\", "/")
    return re.compile(r"(?s:" + _translate(pattern) + r")\Z")


def _relative(path: str, base: str) -> str:
    return os.path.relpath(path, base).replace(os.sep, "/")


def _matches(matcher: re.Pattern, path: str, base: str) -> bool:
    return bool(matcher.match(_relative(path, base)) or matcher.match(os.path.basename(path)))


# ---------------------------------------------------------------------------
# Tree walk
# ---------------------------------------------------------------------------


def _skip_dir(name: str) -> bool:
    return name.startswith(".") or name in SKIP_DIRS


def walk_files(base: str) -> Iterator[str]:
    """Yield regular files under `base` in a deterministic, sorted order."""
    if os.path.isfile(base):
        yield base
        return
    for current, dirs, files in os.walk(base):
        dirs[:] = sorted(d for d in dirs if not _skip_dir(d))
        for name in sorted(files):
            full = os.path.join(current, name)
            if os.path.isfile(full):
                yield full


# ---------------------------------------------------------------------------
# Glob
# ---------------------------------------------------------------------------


class GlobTool(Tool):
    name = "Glob"
    description = """\
Fast file pattern matching. Supports glob patterns like "**/*.js" or "src/**/*.ts".
Results are sorted by modification time, most recent first.

Arguments:
- pattern (required): glob pattern matched against paths relative to the search path
- path (optional): directory to search in (default: the working directory)

Hidden directories and node_modules/target/build/dist are skipped.\
"""

    def describe(self, args: dict[str, Any]) -> str:
        return f"Finding files: {args.get('pattern', 'unknown pattern')}"

    def run(self, args: dict[str, Any]) -> ToolOutcome:
        pattern = require_str(args, "pattern")
        base = self.sandbox.validate(optional_str(args, "path", "."))
        if not os.path.exists(base):
            raise NotFound(f"Search path does not exist: {self.sandbox.to_display(base)}")

        matcher = compile_glob(pattern)
        found: list[tuple[int, str]] = []
        for path in walk_files(base):
            if not self.sandbox.contains(os.path.realpath(path)):
                continue
            if not _matches(matcher, path, base):
                continue
            try:
                mtime = os.stat(path).st_mtime_ns
            except OSError:
                continue
            found.append((mtime, self.sandbox.to_display(path)))

        found.sort(key=lambda item: (-item[0], item[1]))
        files = [display for _, display in found]

        noun = "file" if len(files) == 1 else "files"
        output = f"Found {len(files)} {noun} matching '{pattern}'"
        if files:
            output += ":\n\n" + "\n".join(files) + "\n"
        logger.debug("Glob %r matched %d files", pattern, len(files))
        return ToolOutcome.ok(output, data={"count": len(files), "files": files})


# ---------------------------------------------------------------------------
# Grep
# ---------------------------------------------------------------------------


class MatchLine(NamedTuple):
    number: int
    text: str
    is_match: bool


class FileMatches(NamedTuple):
    path: str
    match_count: int
    lines: list[MatchLine]


def search_file(
    path: str,
    regex: re.Pattern,
    collect_lines: bool,
    before: int,
    after: int,
) -> FileMatches | None:
    """
    Scan one file line by line. Returns None when nothing matches or the
    file cannot be decoded as text.

    Context windows are emitted per match and never merged, so overlapping
    windows repeat lines.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            lines = split_lines(fh.read())
    except UnicodeDecodeError:
        logger.debug("Skipping non-text file %s", path)
        return None
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None

    count = 0
    collected: list[MatchLine] = []
    for index, line in enumerate(lines):
        if not regex.search(line):
            continue
        count += 1
        if not collect_lines:
            continue
        for j in range(max(0, index - before), index):
            collected.append(MatchLine(j + 1, lines[j], False))
        collected.append(MatchLine(index + 1, line, True))
        for j in range(index + 1, min(len(lines) - 1, index + after) + 1):
            collected.append(MatchLine(j + 1, lines[j], False))

    if count == 0:
        return None
    return FileMatches(path, count, collected)


class GrepTool(Tool):
    name = "Grep"
    description = """\
Search file contents with a regular expression.

Arguments:
- pattern (required): regular expression, matched anywhere in a line
- path (optional): file or directory to search (default: the working directory)
- output_mode (optional): "files_with_matches" (default), "count" or "content"
- -i (optional): case-insensitive search
- -n (optional): show line numbers in content mode (default: true)
- -B / -A (optional): lines of context before / after each match (content mode)
- -C (optional): lines of context on both sides; overrides -B and -A
- head_limit (optional): keep only the first N result entries
- glob (optional): only search files matching this glob, e.g. "*.py"
- type (optional): only search one file family, e.g. py, js, ts, java, md, json, yaml\
"""

    def describe(self, args: dict[str, Any]) -> str:
        return f"Searching content: {args.get('pattern', 'unknown pattern')}"

    def run(self, args: dict[str, Any]) -> ToolOutcome:
        pattern = require_str(args, "pattern")
        base = self.sandbox.validate(optional_str(args, "path", "."))
        output_mode = optional_str(args, "output_mode", "files_with_matches")
        case_insensitive = optional_bool(args, "-i", False)
        show_line_numbers = optional_bool(args, "-n", True)
        before = optional_int(args, "-B", 0)
        after = optional_int(args, "-A", 0)
        context = optional_int(args, "-C")
        if context is not None:
            before = after = context
        head_limit = optional_int(args, "head_limit")
        glob_filter = optional_str(args, "glob")
        type_filter = optional_str(args, "type")

        if output_mode not in OUTPUT_MODES:
            raise InvalidArgument(
                f"output_mode must be one of {', '.join(OUTPUT_MODES)}; got '{output_mode}'"
            )
        if before < 0 or after < 0:
            raise InvalidArgument("Context line counts must not be negative")
        if head_limit is not None and head_limit < 1:
            raise InvalidArgument(f"head_limit must be at least 1, got {head_limit}")
        extensions = None
        if type_filter is not None:
            extensions = TYPE_EXTENSIONS.get(type_filter.lower())
            if extensions is None:
                raise InvalidArgument(
                    f"Unknown file type '{type_filter}'. Known types: {', '.join(sorted(TYPE_EXTENSIONS))}"
                )
        try:
            regex = re.compile(pattern, re.IGNORECASE if case_insensitive else 0)
        except re.error as exc:
            raise InvalidArgument(f"Invalid regular expression {pattern!r}: {exc}") from exc

        if not os.path.exists(base):
            raise NotFound(f"Search path does not exist: {self.sandbox.to_display(base)}")

        glob_matcher = compile_glob(glob_filter) if glob_filter else None
        single_file = os.path.isfile(base)
        collect_lines = output_mode == "content"

        results: list[FileMatches] = []
        for path in walk_files(base):
            if not self.sandbox.contains(os.path.realpath(path)):
                continue
            if not single_file:
                if glob_matcher is not None and not _matches(glob_matcher, path, base):
                    continue
                if extensions is not None and not path.lower().endswith(extensions):
                    continue
            found = search_file(path, regex, collect_lines, before, after)
            if found is not None:
                results.append(found)

        total = len(results)
        if head_limit is not None:
            results = results[:head_limit]

        logger.debug("Grep %r matched %d files (showing %d)", pattern, total, len(results))
        data = {"total": total, "shown": len(results), "mode": output_mode}
        if not results:
            return ToolOutcome.ok(f"No matches found for pattern '{pattern}'", data=data)
        return ToolOutcome.ok(self._format(results, output_mode, show_line_numbers), data=data)

    def _format(self, results: list[FileMatches], output_mode: str, show_line_numbers: bool) -> str:
        if output_mode == "files_with_matches":
            return "\n".join(self.sandbox.to_display(r.path) for r in results) + "\n"

        if output_mode == "count":
            return "\n".join(f"{self.sandbox.to_display(r.path)}: {r.match_count}" for r in results) + "\n"

        blocks: list[str] = []
        for result in results:
            rendered = [f"{self.sandbox.to_display(result.path)}:"]
            for line in result.lines:
                if show_line_numbers:
                    marker = ":" if line.is_match else "-"
                    rendered.append(f"{line.number}{marker} {line.text}")
                else:
                    rendered.append(line.text)
            blocks.append("\n".join(rendered))
        return "\n\n".join(blocks) + "\n"
