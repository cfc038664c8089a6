# errors.py
# Error taxonomy for the tool layer and the model boundary.
#
# Tools raise ToolError subclasses; Tool.execute() turns every one of them
# into a failed ToolOutcome, so nothing below escapes the dispatch boundary.
# ModelInvocationError is the only error that aborts a turn.


# ---------------------------------------------------------------------------
# Tool errors
# ---------------------------------------------------------------------------


class ToolError(Exception):
    """Base class for every failure a tool reports back to the model."""

    kind = "ToolError"


class InvalidPath(ToolError):
    """Raised when a path argument is empty or not a string."""

    kind = "InvalidPath"


class PathEscape(ToolError):
    """Raised when a path resolves outside the sandbox root."""

    kind = "PathEscape"


class NotFound(ToolError):
    """Raised when a file, directory or project marker does not exist."""

    kind = "NotFound"


class IsADirectory(ToolError):
    """Raised when a file operation targets a directory."""

    kind = "IsADirectory"


class OffsetOutOfRange(ToolError):
    """Raised when Read is asked to start past the last line."""

    kind = "OffsetOutOfRange"


class StringNotFound(ToolError):
    """Raised when Edit cannot find old_string in the file."""

    kind = "StringNotFound"


class AmbiguousReplacement(ToolError):
    """Raised when a single replacement is requested but old_string repeats."""

    kind = "AmbiguousReplacement"

    def __init__(self, message: str, count: int) -> None:
        super().__init__(message)
        self.count = count


class ProcessTimeout(ToolError):
    """Raised when a spawned command outlives its timeout and is killed."""

    kind = "ProcessTimeout"

    def __init__(self, message: str, timeout_ms: int, output: str = "") -> None:
        super().__init__(message)
        self.timeout_ms = timeout_ms
        self.output = output


class ProcessExitError(ToolError):
    """Raised when a spawned command exits with a non-zero status."""

    kind = "ProcessExitError"

    def __init__(self, message: str, exit_code: int, output: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class UnknownTool(ToolError):
    """Raised when the model requests a tool absent from the registry."""

    kind = "UnknownTool"


class MissingArgument(ToolError):
    """Raised when a required argument key is absent."""

    kind = "MissingArgument"

    def __init__(self, key: str) -> None:
        super().__init__(f"Missing required argument: {key}")
        self.key = key


class InvalidArgument(ToolError):
    """Raised when an argument is present but unusable."""

    kind = "InvalidArgument"


class ToolIOError(ToolError):
    """Raised when the filesystem rejects a read or write."""

    kind = "IOError"


# ---------------------------------------------------------------------------
# Model boundary
# ---------------------------------------------------------------------------


class ModelInvocationError(Exception):
    """Raised when the model client fails. Aborts the current turn."""


class ConfigError(Exception):
    """Raised when settings cannot be loaded or validated."""
