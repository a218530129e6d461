"""Source registry - maps data source names to their constructors."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator, Optional, Type

from ..errors import RegistryError, SourceNotFound
from .base import DataSource, DisabledSource
from .bridge import Factory, SourceHandle, export_data_sources, make_factory

if TYPE_CHECKING:
    from ..runtime import ScriptRuntime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConstructorEntry:
    """A registered data source constructor."""

    name: str
    factory: Factory
    description: str = ""
    disabled_setting: Optional[str] = None  # Set for disabled placeholders

    @property
    def disabled(self) -> bool:
        return self.disabled_setting is not None


class SourceRegistry:
    """
    Registry of data source constructors.

    Providers register their sources during startup, then the registry is
    sealed and only read from. Registering a name twice replaces the earlier
    constructor (last registration wins) and logs a warning.
    """

    def __init__(self):
        self._entries: dict[str, ConstructorEntry] = {}
        self._sealed = False

    def register(
        self,
        name: str,
        factory: Factory,
        description: str = "",
        disabled_setting: Optional[str] = None,
    ) -> ConstructorEntry:
        """Register a factory under ``name``."""
        if not name:
            raise RegistryError("Data source name must not be empty")
        if self._sealed:
            raise RegistryError(f"Cannot register '{name}': registry is sealed")

        if name in self._entries:
            logger.warning(f"Data source '{name}' registered twice, replacing previous constructor")

        entry = ConstructorEntry(name, factory, description, disabled_setting)
        self._entries[name] = entry
        logger.debug(f"Registered data source: {name}")
        return entry

    def seal(self):
        """End the registration phase."""
        self._sealed = True
        logger.debug(f"Registry sealed with {len(self._entries)} data sources")

    @property
    def sealed(self) -> bool:
        return self._sealed

    def get(self, name: str) -> Optional[ConstructorEntry]:
        """Get a constructor entry by name."""
        return self._entries.get(name)

    def is_registered(self, name: str) -> bool:
        """Check if a data source name is registered."""
        return name in self._entries

    def list_names(self) -> list[str]:
        """List all registered names, sorted."""
        return sorted(self._entries)

    def entries(self) -> list[ConstructorEntry]:
        return [self._entries[name] for name in self.list_names()]

    def lookup_and_construct(self, runtime: "ScriptRuntime", name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Construct the data source registered under ``name``.

        Returns:
            Whatever the registered factory returns

        Raises:
            SourceNotFound: if nothing is registered under ``name``
        """
        entry = self._entries.get(name)
        if entry is None:
            raise SourceNotFound(name)
        return entry.factory(runtime, name, *args, **kwargs)

    def export_all(self, runtime: "ScriptRuntime") -> list[str]:
        """Expose every registered name as a constructor inside the runtime."""
        return export_data_sources(runtime, self)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.list_names())


default_registry = SourceRegistry()


def get_registry() -> SourceRegistry:
    """Return the process-wide registry."""
    return default_registry


def register_data_source(
    name: str,
    source_cls: Type[DataSource],
    *bound_args: Any,
    registry: Optional[SourceRegistry] = None,
    description: Optional[str] = None,
) -> ConstructorEntry:
    """
    Register a data source class under ``name``.

    ``bound_args`` are passed to the class on every construction, ahead of the
    script arguments, so one class can back several names:

        register_data_source("memory_used", ByteSource, sampler.memory_used)
        register_data_source("swap_used", ByteSource, sampler.swap_used)
    """
    if registry is None:
        registry = default_registry
    if description is None:
        description = _first_line(source_cls.__doc__)
    return registry.register(name, make_factory(source_cls, *bound_args), description)


def register_disabled_data_source(
    name: str, setting: str, registry: Optional[SourceRegistry] = None
) -> ConstructorEntry:
    """
    Register a placeholder for a source whose feature is switched off.

    The placeholder accepts and ignores any script arguments, so calls
    written for the real source still construct and show the diagnostic.
    """
    if registry is None:
        registry = default_registry

    def factory(runtime: "ScriptRuntime", name: str, *args: Any, **kwargs: Any) -> SourceHandle:
        return SourceHandle(DisabledSource(name, setting))

    return registry.register(
        name,
        factory,
        description=f"disabled, enable '{setting}'",
        disabled_setting=setting,
    )


def data_source(name: str, *bound_args: Any, registry: Optional[SourceRegistry] = None):
    """
    Decorator to register a data source class.

    Usage:
        @data_source("hostname_length")
        class HostnameLength(DataSource):
            ...
    """
    def decorator(cls: Type[DataSource]):
        register_data_source(name, cls, *bound_args, registry=registry)
        return cls
    return decorator


def _first_line(doc: Optional[str]) -> str:
    if not doc:
        return ""
    return doc.strip().splitlines()[0]
