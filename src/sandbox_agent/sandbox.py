# sandbox.py
# Single-rooted path boundary for every filesystem tool.
#
# Guarantees: no tool argument reaches the filesystem layer before it has
# been normalised and checked against the root. The root is fixed at
# construction and never changes afterwards.

import logging
import os

from sandbox_agent.errors import InvalidPath, PathEscape

logger = logging.getLogger(__name__)


class PathSandbox:
    """
    Immutable sandbox root plus the checks built on it.

    One instance is created at startup and handed to every tool
    constructor; there is no module-level root.

    Example:
        sandbox = PathSandbox("/work")
        sandbox.validate("src/app.py")     # -> "/work/src/app.py"
        sandbox.validate("../etc/passwd")  # raises PathEscape
    """

    __slots__ = ("_root",)

    def __init__(self, root: str) -> None:
        if not isinstance(root, str) or not root.strip():
            raise ValueError("Sandbox root must be a non-empty path.")
        expanded = os.path.abspath(os.path.expanduser(root))
        if os.path.exists(expanded):
            resolved = os.path.realpath(expanded)
        else:
            resolved = os.path.normpath(expanded)
        object.__setattr__(self, "_root", resolved)
        logger.debug("Sandbox root set to %s", resolved)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("PathSandbox is immutable.")

    def __repr__(self) -> str:
        return f"PathSandbox({self._root!r})"

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def root(self) -> str:
        """Absolute, symlink-resolved root directory."""
        return self._root

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _within(self, path: str) -> bool:
        if path == self._root:
            return True
        prefix = self._root if self._root.endswith(os.sep) else self._root + os.sep
        return path.startswith(prefix)

    def contains(self, path: str) -> bool:
        """Non-raising containment check for an already absolute path."""
        try:
            return self._within(os.path.normpath(os.path.abspath(path)))
        except (TypeError, ValueError):
            return False

    def validate(self, path: str) -> str:
        """
        Resolve `path` against the root and return the normalised absolute path.

        Relative paths are joined to the root; absolute paths are used as-is.
        The lexical check runs first, so an escaping path never reaches the
        filesystem. Symlinks under the root that point outside it are
        rejected as well.
        """
        if not isinstance(path, str) or not path.strip():
            raise InvalidPath("Path must not be empty.")

        raw = path.strip()
        if "\x00" in raw:
            raise InvalidPath(f"Path contains a NUL byte: {raw!r}")

        candidate = raw if os.path.isabs(raw) else os.path.join(self._root, raw)
        normalized = os.path.normpath(candidate)

        if not self._within(normalized):
            logger.warning("Rejected path outside sandbox: %s", raw)
            raise PathEscape(
                f"Access denied: path '{normalized}' is outside the working directory '{self._root}'"
            )

        resolved = os.path.realpath(normalized)
        if not self._within(resolved):
            logger.warning("Rejected symlink escaping sandbox: %s -> %s", raw, resolved)
            raise PathEscape(
                f"Access denied: path '{raw}' resolves to '{resolved}', "
                f"outside the working directory '{self._root}'"
            )

        return normalized

    def to_display(self, path: str) -> str:
        """Root-relative rendering for user-facing text; absolute if outside the root."""
        absolute = os.path.normpath(os.path.abspath(path))
        if not self._within(absolute):
            return absolute
        relative = os.path.relpath(absolute, self._root)
        return relative.replace(os.sep, "/")
