"""Evaluate color scripts against the grid.

A script is plain Python. Its value is the value of its final expression
statement, the way a notebook cell works:

    if (x + y + z) % 2 == 0:
        c = red
    else:
        c = blue
    c

In per-cell mode the script runs once per cell with ``x``, ``y`` and ``z``
bound to that cell's coordinates relative to the grid center. In uniform mode
it runs once and its color is painted on every cell.
"""

import ast
import builtins
import contextlib
import logging
import math
import pathlib
import sys
import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from types import CodeType
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .colors import NAMED_COLORS, Color, coerce_color, describe_value, rgb, rgba
from .errors import (
    GridLookupError,
    ScriptError,
    ScriptRuntimeError,
    ScriptSyntaxError,
    TypeMismatch,
)
from .grid import Grid, Index, cell_name

logger = logging.getLogger(__name__)

ScriptResult = Union[Color, ScriptSyntaxError, ScriptRuntimeError, TypeMismatch]


class Mode(str, Enum):
    UNIFORM = "uniform"
    PER_CELL = "per-cell"


@dataclass
class CompiledScript:
    path: str
    body: CodeType
    result: Optional[CodeType]


@dataclass
class ReloadReport:
    """Outcome of one reload."""

    path: str
    mode: Mode
    evaluations: int = 0
    painted: int = 0
    changed: int = 0
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    error: Optional[ScriptError] = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


class _ScriptTimeout(BaseException):
    """Raised inside a script that ran past its deadline.

    A BaseException so that ``except Exception`` in the script does not
    swallow it.
    """


class _Deadline:
    """Line-level trace hook that aborts script frames after a deadline."""

    def __init__(self, filename: str, seconds: float):
        self.filename = filename
        self.seconds = seconds
        self.expires_at = time.monotonic() + seconds

    def _trace_calls(self, frame, event, arg):
        if frame.f_code.co_filename != self.filename:
            return None
        return self._trace_lines

    def _trace_lines(self, frame, event, arg):
        if time.monotonic() > self.expires_at:
            raise _ScriptTimeout(f"script timed out after {self.seconds:g}s")
        return self._trace_lines

    @contextlib.contextmanager
    def armed(self):
        previous = sys.gettrace()
        sys.settrace(self._trace_calls)
        try:
            yield self
        finally:
            sys.settrace(previous)


def _script_lineno(exc: BaseException, filename: str) -> Optional[int]:
    lineno = None
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename == filename:
            lineno = frame.lineno
    return lineno


def base_namespace() -> Dict[str, Any]:
    """Globals every script starts from."""
    namespace: Dict[str, Any] = {
        "__builtins__": builtins,
        "__name__": "__replicube__",
        "math": math,
        "Color": Color,
        "rgb": rgb,
        "rgba": rgba,
    }
    namespace.update(NAMED_COLORS)
    return namespace


class ScriptEngine:
    """Runs color scripts and turns their values into tagged results.

    The engine is not thread-safe and is meant to be driven from a single
    thread (the reload watcher's). Each evaluation gets a fresh copy of the
    base namespace, so nothing a script assigns survives into the next
    evaluation.
    """

    def __init__(self, grid: Grid, *, timeout: Optional[float] = None):
        self.grid = grid
        self.timeout = timeout
        self._base = base_namespace()

    def compile(
        self, script_path: Union[str, pathlib.Path]
    ) -> Union[CompiledScript, ScriptError]:
        """Read and compile a script, splitting off its final expression."""
        filename = str(script_path)
        try:
            # bytes, so the parser applies a coding cookie or strict UTF-8 itself
            source = pathlib.Path(script_path).read_bytes()
        except OSError as e:
            return ScriptRuntimeError(f"cannot read script: {e}", filename)

        try:
            tree = ast.parse(source, filename=filename)
            result = None
            if tree.body and isinstance(tree.body[-1], ast.Expr):
                last = tree.body.pop()
                result = compile(ast.Expression(last.value), filename, "eval")
            body = compile(tree, filename, "exec")
        except SyntaxError as e:
            return ScriptSyntaxError(e.msg or str(e), filename, e.lineno)
        except ValueError as e:
            # null bytes on older interpreters
            return ScriptSyntaxError(str(e), filename)

        return CompiledScript(filename, body, result)

    def _namespace(self, path: str, coords: Optional[Index]) -> Dict[str, Any]:
        namespace = dict(self._base)
        namespace["__file__"] = path
        if coords is not None:
            namespace["x"], namespace["y"], namespace["z"] = (int(c) for c in coords)
        return namespace

    def _run(self, compiled: CompiledScript, coords: Optional[Index]) -> ScriptResult:
        namespace = self._namespace(compiled.path, coords)
        try:
            exec(compiled.body, namespace)
            value = eval(compiled.result, namespace) if compiled.result else None
        except _ScriptTimeout as e:
            return ScriptRuntimeError(str(e), compiled.path)
        except BaseException as e:
            # includes SystemExit from exit() or quit(), which must not end the watch
            lineno = _script_lineno(e, compiled.path)
            where = f" (line {lineno})" if lineno is not None else ""
            detail = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
            return ScriptRuntimeError(f"{detail}{where}", compiled.path)

        if compiled.result is None:
            return TypeMismatch("script does not end with an expression", compiled.path)
        color = coerce_color(value)
        if color is None:
            return TypeMismatch(
                f"expected a color, got {describe_value(value)}", compiled.path
            )
        return color

    def _deadline(self, path: str):
        if self.timeout is None:
            return contextlib.nullcontext()
        return _Deadline(path, self.timeout).armed()

    def evaluate(
        self,
        script_path: Union[str, pathlib.Path],
        mode: Union[Mode, str],
        coords: Optional[Index] = None,
    ) -> ScriptResult:
        """Evaluate a script once.

        In per-cell mode ``coords`` are the centered coordinates bound to
        ``x``, ``y`` and ``z``; they are required.
        """
        mode = Mode(mode)
        if mode is Mode.PER_CELL and coords is None:
            raise ValueError("per-cell evaluation needs coordinates")

        compiled = self.compile(script_path)
        if isinstance(compiled, ScriptError):
            return compiled
        with self._deadline(compiled.path):
            return self._run(compiled, coords if mode is Mode.PER_CELL else None)

    def reload(
        self,
        script_path: Union[str, pathlib.Path],
        mode: Union[Mode, str],
        targets: Optional[Iterable[Index]] = None,
    ) -> ReloadReport:
        """Re-run a script and paint the grid with the results.

        Nothing reaches the grid unless the reload succeeds as a whole:
        per-cell results are collected first and written in one batch. A
        syntax or runtime error abandons the reload. A cell whose script
        value is not a color, or whose index is not in the grid, is skipped.
        """
        mode = Mode(mode)
        started = time.perf_counter()
        report = ReloadReport(path=str(script_path), mode=mode)

        compiled = self.compile(script_path)
        if isinstance(compiled, ScriptError):
            report.error = compiled
        elif mode is Mode.UNIFORM:
            self._reload_uniform(compiled, report)
        else:
            self._reload_per_cell(compiled, report, targets)

        report.duration_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "%s: %d evaluations, %d painted, %d skipped",
            report.path,
            report.evaluations,
            report.painted,
            len(report.skipped),
        )
        return report

    def _reload_uniform(self, compiled: CompiledScript, report: ReloadReport) -> None:
        with self._deadline(compiled.path):
            result = self._run(compiled, None)
        report.evaluations = 1
        if isinstance(result, ScriptError):
            report.error = result
            return
        report.painted = len(self.grid)
        report.changed = self.grid.fill(result)

    def _reload_per_cell(
        self,
        compiled: CompiledScript,
        report: ReloadReport,
        targets: Optional[Iterable[Index]],
    ) -> None:
        if targets is None:
            targets = [cell.index for cell in self.grid.iterate()]

        pending: Dict[str, Color] = {}
        with self._deadline(compiled.path):
            for index in targets:
                try:
                    cell = self.grid.lookup_index(*index)
                except GridLookupError as e:
                    report.skipped.append((cell_name(*index), str(e)))
                    continue

                result = self._run(compiled, self.grid.centered(cell))
                report.evaluations += 1
                if isinstance(result, TypeMismatch):
                    report.skipped.append((cell.name, result.message))
                elif isinstance(result, ScriptError):
                    report.error = result
                    return
                else:
                    pending[cell.name] = result

        report.painted = len(pending)
        report.changed = self.grid.apply_colors(pending)
