"""Exception types raised across replicube."""

from typing import Optional


class ReplicubeError(Exception):
    """Base class for replicube errors."""


class ScriptError(ReplicubeError):
    """A script evaluation failed. Returned as a value, never raised past the engine."""

    tag = "error"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class ScriptSyntaxError(ScriptError):
    tag = "syntax-error"

    def __init__(
        self, message: str, path: Optional[str] = None, lineno: Optional[int] = None
    ):
        super().__init__(message, path)
        self.lineno = lineno

    def __str__(self) -> str:
        location = self.path or "<script>"
        if self.lineno is not None:
            location = f"{location}:{self.lineno}"
        return f"{location}: {self.message}"


class ScriptRuntimeError(ScriptError):
    tag = "runtime-error"


class TypeMismatch(ScriptError):
    """The script ran but its final value is not a color."""

    tag = "type-mismatch"


class FileWatchError(ReplicubeError):
    """The script file cannot be watched."""


class GridLookupError(ReplicubeError, KeyError):
    """A cell name or index is not part of the grid."""

    def __str__(self) -> str:
        # KeyError.__str__ wraps the message in quotes
        return str(self.args[0]) if self.args else ""
