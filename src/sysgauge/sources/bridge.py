"""Script bridge - the only code that knows the script runtime's calling convention.

Registered factories and data source classes never see raw script arguments.
The bridge decodes them into the source's pydantic argument model, constructs
the source, and hands the script a tagged ``SourceHandle`` that the runtime
then owns.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Type

from pydantic import BaseModel, ValidationError

from ..errors import ArgumentMismatch
from .base import DataSource

if TYPE_CHECKING:
    from ..runtime import ScriptRuntime
    from .registry import SourceRegistry

logger = logging.getLogger(__name__)

Factory = Callable[..., Any]


class SourceHandle:
    """A constructed data source as seen from a configuration script."""

    __slots__ = ("_source",)

    def __init__(self, source: DataSource):
        self._source = source

    @property
    def source(self) -> DataSource:
        return self._source

    @property
    def name(self) -> str:
        return self._source.name

    def get_number(self) -> float:
        return self._source.get_number()

    def get_text(self) -> str:
        return self._source.get_text()

    def __str__(self) -> str:
        return self._source.get_text()

    def __float__(self) -> float:
        return self._source.get_number()

    def __repr__(self) -> str:
        return f"<data source {self._source.name!r} ({type(self._source).__name__})>"


def decode_arguments(
    model: Type[BaseModel], name: str, args: tuple, kwargs: dict[str, Any]
) -> BaseModel:
    """
    Decode a script call's arguments into a validated argument model.

    Positional arguments fill the model's fields in declaration order,
    keyword arguments are matched by field name.

    Raises:
        ArgumentMismatch: if the arguments cannot be mapped or fail validation
    """
    fields = list(model.model_fields)
    if len(args) > len(fields):
        raise ArgumentMismatch(
            name, f"takes at most {len(fields)} positional arguments ({len(args)} given)"
        )

    data = dict(zip(fields, args))
    for key, value in kwargs.items():
        if key not in model.model_fields:
            raise ArgumentMismatch(name, f"unexpected argument '{key}'")
        if key in data:
            raise ArgumentMismatch(name, f"argument '{key}' given more than once")
        data[key] = value

    try:
        return model.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        )
        raise ArgumentMismatch(name, problems) from e


def make_factory(source_cls: Type[DataSource], *bound_args: Any) -> Factory:
    """
    Build a registry factory for a data source class.

    ``bound_args`` are fixed at registration time and passed to every
    construction ahead of the decoded script arguments.
    """

    def factory(runtime: "ScriptRuntime", name: str, *args: Any, **kwargs: Any) -> SourceHandle:
        if source_cls.arguments is None:
            if args or kwargs:
                raise ArgumentMismatch(name, "takes no arguments")
            source = source_cls(name, *bound_args)
        else:
            params = decode_arguments(source_cls.arguments, name, args, kwargs)
            source = source_cls(name, *bound_args, params)
        return SourceHandle(source)

    factory.__qualname__ = f"factory[{source_cls.__name__}]"
    return factory


def construct(
    runtime: "ScriptRuntime", registry: "SourceRegistry", name: str, *args: Any, **kwargs: Any
) -> SourceHandle:
    """
    Construct a data source on behalf of a script and give it to the runtime.

    Factories registered directly may return a bare DataSource; it is wrapped
    here so the script always receives a SourceHandle.
    """
    result = registry.lookup_and_construct(runtime, name, *args, **kwargs)
    if isinstance(result, DataSource):
        result = SourceHandle(result)
    elif not isinstance(result, SourceHandle):
        raise TypeError(
            f"Factory for '{name}' returned {type(result).__name__}, not a data source"
        )
    runtime.adopt(result)
    logger.debug(f"Constructed data source {result!r}")
    return result


def export_data_sources(runtime: "ScriptRuntime", registry: "SourceRegistry") -> list[str]:
    """Install one constructor callable per registered name into the runtime."""
    names = registry.list_names()
    for name in names:
        runtime.namespace[name] = _constructor(runtime, registry, name)
    logger.info(f"Exported {len(names)} data sources to runtime '{runtime.name}'")
    return names


def _constructor(runtime: "ScriptRuntime", registry: "SourceRegistry", name: str) -> Callable[..., SourceHandle]:
    entry = registry.get(name)

    def constructor(*args: Any, **kwargs: Any) -> SourceHandle:
        return construct(runtime, registry, name, *args, **kwargs)

    constructor.__name__ = constructor.__qualname__ = name
    constructor.__doc__ = entry.description if entry else None
    return constructor
