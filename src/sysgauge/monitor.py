"""sysgauge monitor - wires the sampler, registry and script runtime together."""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import MonitorConfig
from .errors import ScriptError
from .runtime import ScriptRuntime
from .sources import SourceRegistry
from .sources.system import SystemSampler, register_system_sources

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT = """\
cpu = cpu_percent()
load = loadavg_1()
memory = memory_percent()
used = memory_used()
root = disk_percent("/")
received = net_recv_rate()
sent = net_sent_rate()
up = uptime()
"""


@dataclass
class Reading:
    """One rendered value."""

    label: str
    source: str
    number: float
    text: str


class Monitor:
    """
    Main sysgauge monitor.

    Setup runs the registration phase (system sources into a fresh
    registry), seals the registry, exports it into a script runtime and
    evaluates the configuration script. Each cycle then updates the sampler
    and reads every source the script bound to a variable.
    """

    def __init__(self, config: MonitorConfig, registry: Optional[SourceRegistry] = None):
        self.config = config
        self.registry = registry if registry is not None else SourceRegistry()
        self.sampler = SystemSampler(config.features)
        self.runtime = ScriptRuntime()
        self.errors: list[ScriptError] = []
        self._ready = False

    def setup(self):
        """Register sources and evaluate the configuration script."""
        register_system_sources(self.sampler, registry=self.registry)
        self.registry.seal()
        self.registry.export_all(self.runtime)

        if self.config.script:
            logger.info(f"Loading script {self.config.script}")
            self.errors = self.runtime.execute_file(self.config.script, on_error=self.config.on_error)
        else:
            self.errors = self.runtime.execute(
                DEFAULT_SCRIPT, "<default>", on_error=self.config.on_error
            )

        if self.errors:
            logger.warning(f"Skipped {len(self.errors)} failing script statements")
        logger.info(f"Monitor ready with {len(self.runtime.bound_sources())} displayed sources")
        self._ready = True

    def update(self):
        """Sample telemetry for the next render cycle."""
        if not self._ready:
            raise RuntimeError("Monitor.setup() must be called before update()")
        self.sampler.update()

    def snapshot(self) -> list[Reading]:
        """Read every displayed source."""
        return [
            Reading(
                label=label,
                source=handle.name,
                number=handle.get_number(),
                text=handle.get_text(),
            )
            for label, handle in self.runtime.bound_sources()
        ]

    def close(self):
        self.runtime.close()
        self._ready = False
