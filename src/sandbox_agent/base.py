# base.py
# Capability interface shared by every tool, plus argument coercion and
# line-splitting helpers.
#
# The model only ever sees a tool's name and description, never an input
# schema, so each tool re-validates its own arguments through the helpers
# below and fails with MissingArgument / InvalidArgument instead of crashing.

import logging
from typing import Any

from sandbox_agent.errors import InvalidArgument, MissingArgument, ToolError
from sandbox_agent.models import ToolOutcome
from sandbox_agent.sandbox import PathSandbox

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSEY = {"0", "false", "no", "off", ""}


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def require_str(args: dict[str, Any], key: str, *aliases: str, allow_empty: bool = False) -> str:
    for name in (key, *aliases):
        if name in args and args[name] is not None:
            value = args[name]
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise InvalidArgument(f"Argument '{name}' must be a string.")
            value = str(value)
            if not allow_empty and not value.strip():
                raise InvalidArgument(f"Argument '{name}' must not be empty.")
            return value
    raise MissingArgument(key)


def optional_str(args: dict[str, Any], key: str, default: str | None = None) -> str | None:
    value = args.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise InvalidArgument(f"Argument '{key}' must be a string.")
    value = str(value)
    return value if value.strip() else default


def optional_int(args: dict[str, Any], key: str, default: int | None = None) -> int | None:
    value = args.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise InvalidArgument(f"Argument '{key}' must be an integer, got a boolean.")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidArgument(f"Argument '{key}' must be an integer, got {value}.")
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError:
        raise InvalidArgument(f"Argument '{key}' must be an integer, got {value!r}.") from None


def optional_bool(args: dict[str, Any], key: str, default: bool = False) -> bool:
    value = args.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSEY:
        return False
    raise InvalidArgument(f"Argument '{key}' must be a boolean, got {value!r}.")


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def split_lines(text: str) -> list[str]:
    """
    Split text read in universal-newline mode into lines.

    Only "\\n" ends a line; form feeds, vertical tabs and Unicode separators
    stay inside it, unlike str.splitlines(). A trailing newline does not
    start an extra empty line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------


class Tool:
    """
    One named capability the model may invoke.

    Subclasses set `name` and `description` and implement run(), raising
    ToolError subclasses on failure. execute() is the dispatch boundary:
    it always returns a ToolOutcome.
    """

    name: str = ""
    description: str = ""

    def __init__(self, sandbox: PathSandbox) -> None:
        self.sandbox = sandbox

    def describe(self, args: dict[str, Any]) -> str:
        """One-line, human-readable summary shown before the tool runs."""
        return f"Running tool: {self.name}"

    def run(self, args: dict[str, Any]) -> ToolOutcome:
        raise NotImplementedError

    def execute(self, args: Any) -> ToolOutcome:
        if not isinstance(args, dict):
            return ToolOutcome.fail(
                f"InvalidArgument: arguments for {self.name} must be an object, got {type(args).__name__}"
            )
        try:
            return self.run(args)
        except ToolError as exc:
            logger.debug("%s failed with %s: %s", self.name, exc.kind, exc)
            return ToolOutcome.fail(f"{exc.kind}: {exc}", data=_error_payload(exc))
        except Exception as exc:
            logger.exception("Unexpected failure in tool %s", self.name)
            return ToolOutcome.fail(f"Internal error in {self.name}: {exc}")


def _error_payload(exc: ToolError) -> dict[str, Any]:
    payload: dict[str, Any] = {"kind": exc.kind}
    for attr in ("count", "exit_code", "timeout_ms", "key"):
        if hasattr(exc, attr):
            payload[attr] = getattr(exc, attr)
    return payload
