"""Script runtime - evaluates configuration scripts against exported data sources."""

import ast
import builtins
import logging
from pathlib import Path
from typing import Any, Literal

from .errors import ArgumentMismatch, DataSourceError, ScriptError, SourceNotFound
from .sources import SourceHandle

logger = logging.getLogger(__name__)

OnError = Literal["abort", "skip"]

# Builtins visible to configuration scripts
SCRIPT_BUILTINS = (
    "abs", "all", "any", "bool", "dict", "enumerate", "float", "format", "int",
    "isinstance", "len", "list", "max", "min", "print", "range", "repr", "round",
    "sorted", "str", "sum", "tuple", "zip",
    "Exception", "KeyError", "LookupError", "TypeError", "ValueError",
)


class ScriptRuntime:
    """
    Restricted namespace in which configuration scripts run.

    Data source constructors are installed as globals by
    ``export_data_sources``. Every handle they return is adopted by the
    runtime and lives until ``close()``.

    The reduced builtins keep configuration scripts small, but they are
    not a security sandbox. Scripts run with ``exec`` in this process and
    must be trusted like any other configuration file.

    Example script:
        cpu = cpu_percent()
        root = disk_used("/")
        home = disk_percent(path="/home")
    """

    def __init__(self, name: str = "config"):
        self.name = name
        self.handles: list[SourceHandle] = []
        self.namespace: dict[str, Any] = {}
        self._reset_namespace()

    def _reset_namespace(self):
        self.namespace = {
            "__builtins__": {key: getattr(builtins, key) for key in SCRIPT_BUILTINS},
            "__name__": f"sysgauge.{self.name}",
            "DataSourceError": DataSourceError,
            "SourceNotFound": SourceNotFound,
            "ArgumentMismatch": ArgumentMismatch,
        }

    def adopt(self, handle: SourceHandle):
        """Take ownership of a constructed data source."""
        self.handles.append(handle)

    def bound_sources(self) -> list[tuple[str, SourceHandle]]:
        """Script variables bound to data sources, in assignment order."""
        return [
            (key, value)
            for key, value in self.namespace.items()
            if isinstance(value, SourceHandle) and not key.startswith("_")
        ]

    def execute(self, code: str, filename: str = "<config>", on_error: OnError = "abort") -> list[ScriptError]:
        """
        Run a configuration script one top-level statement at a time.

        With ``on_error="abort"`` the first failing statement raises
        ScriptError. With ``"skip"`` the failure is logged, collected and the
        next statement runs.

        Returns:
            Errors from skipped statements
        """
        try:
            tree = ast.parse(code, filename=filename)
        except SyntaxError as e:
            raise ScriptError(filename, e.lineno, e) from e

        errors = []
        for node in tree.body:
            compiled = compile(ast.Module(body=[node], type_ignores=[]), filename, "exec")
            try:
                exec(compiled, self.namespace)
            except Exception as e:
                error = ScriptError(filename, node.lineno, e)
                if on_error == "abort":
                    raise error from e
                logger.error(f"Skipping statement: {error}")
                errors.append(error)

        logger.debug(f"Executed {filename}: {len(self.handles)} data sources constructed")
        return errors

    def execute_file(self, path: str | Path, on_error: OnError = "abort") -> list[ScriptError]:
        """Run a configuration script from a file."""
        path = Path(path)
        return self.execute(path.read_text(encoding="utf-8"), str(path), on_error)

    def close(self):
        """Release every adopted data source."""
        self.handles.clear()
        self._reset_namespace()
