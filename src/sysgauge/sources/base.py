"""Base interface for all data sources."""

import logging
import math
from typing import Callable, Optional, SupportsFloat, Type, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Text shown when a source has no numeric value
NO_VALUE_TEXT = ""


class Variable:
    """
    A scalar owned by a telemetry sampler.

    Samplers write ``value`` once per update cycle; data sources hold a
    reference and read it back when rendered. Calling the variable returns
    the current value.
    """

    __slots__ = ("value",)

    def __init__(self, value: SupportsFloat = math.nan):
        self.value = value

    def __call__(self) -> SupportsFloat:
        return self.value

    def __repr__(self) -> str:
        return f"Variable({self.value!r})"


ValueGetter = Union[Variable, Callable[[], SupportsFloat]]


class DataSource:
    """
    Base class for all data sources.

    The rendering side uses two methods:
    - get_number returns the numeric reading, used for graphs, bars and
      thresholds. The default implementation returns NaN.
    - get_text returns the string that is displayed. The default renders
      get_number() with ``%g``, or an empty string for NaN. Override it to add
      units, rounding or categorical text.

    Both are called on every render cycle and must not do any I/O.

    Example:
        class LoadSource(DataSource):
            def get_number(self) -> float:
                return self._load.value
    """

    # Pydantic model describing script arguments, None if the source takes none
    arguments: Optional[Type[BaseModel]] = None

    def __init__(self, name: str):
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def get_number(self) -> float:
        return math.nan

    def get_text(self) -> str:
        value = self.get_number()
        if math.isnan(value):
            return NO_VALUE_TEXT
        return format(value, "g")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"


class SimpleNumericSource(DataSource):
    """
    Returns the live value of a sampler-owned variable.

    The variable is not owned by the source; it must outlive it. Script
    arguments are not accepted, but a registration can bind a different
    variable to each name.
    """

    def __init__(self, name: str, source: ValueGetter):
        super().__init__(name)
        self._source = source

    def get_number(self) -> float:
        return float(self._source())


# Shared by every disabled source, never written
_DISABLED_VALUE = Variable(math.nan)


class DisabledSource(SimpleNumericSource):
    """Placeholder for a source whose feature is switched off."""

    def __init__(self, name: str, setting: str):
        super().__init__(name, _DISABLED_VALUE)
        self._setting = setting
        logger.warning(
            f"Data source '{name}' has been disabled. Enable it with '{setting}'"
        )

    @property
    def setting(self) -> str:
        return self._setting

    def get_text(self) -> str:
        return f"source '{self.name}' disabled, enable '{self._setting}'"
