"""Error types raised while registering and constructing data sources."""

from typing import Optional


class DataSourceError(Exception):
    """Base class for all data source errors."""


class RegistryError(DataSourceError):
    """Invalid registration (empty name, or registry already sealed)."""


class SourceNotFound(DataSourceError, LookupError):
    """No constructor is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Unknown data source: '{name}'")
        self.name = name


class ArgumentMismatch(DataSourceError, TypeError):
    """Script arguments do not fit the data source's constructor."""

    def __init__(self, name: str, detail: str):
        super().__init__(f"Bad arguments for data source '{name}': {detail}")
        self.name = name
        self.detail = detail


class ScriptError(DataSourceError):
    """A configuration script statement failed."""

    def __init__(self, filename: str, lineno: Optional[int], cause: BaseException):
        where = f"{filename}:{lineno}" if lineno else filename
        super().__init__(f"{where}: {cause}")
        self.filename = filename
        self.lineno = lineno
        self.cause = cause
