"""System data sources - host telemetry sampled via psutil."""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Optional, Type

import psutil
from pydantic import BaseModel, ConfigDict, Field

from ..config import FeatureFlags
from ..errors import ArgumentMismatch
from .base import NO_VALUE_TEXT, DataSource, SimpleNumericSource, Variable
from .registry import SourceRegistry, register_data_source, register_disabled_data_source

logger = logging.getLogger(__name__)

_BYTE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")


def format_bytes(value: float) -> str:
    """Render a byte count with a binary unit suffix."""
    if math.isnan(value):
        return NO_VALUE_TEXT
    unit = 0
    while abs(value) >= 1024 and unit < len(_BYTE_UNITS) - 1:
        value /= 1024
        unit += 1
    if unit == 0:
        return f"{value:.0f}{_BYTE_UNITS[0]}"
    return f"{value:.1f}{_BYTE_UNITS[unit]}"


def format_duration(seconds: float) -> str:
    """Render seconds as ``1d 2h 3m``."""
    if math.isnan(seconds):
        return NO_VALUE_TEXT
    minutes, _ = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    if days:
        return f"{days}d {hours}h {minutes}m"
    return f"{hours}h {minutes}m"


@dataclass
class DiskVariables:
    """Usage variables for one watched mount point."""

    used: Variable = field(default_factory=Variable)
    free: Variable = field(default_factory=Variable)
    total: Variable = field(default_factory=Variable)
    percent: Variable = field(default_factory=Variable)


class SystemSampler:
    """
    Samples host metrics into variables once per update cycle.

    Data sources hold references to these variables, so all psutil calls
    happen here in ``update()`` and reading a source is free of I/O.
    Disabled feature groups are not sampled; their variables stay NaN.
    """

    def __init__(self, features: Optional[FeatureFlags] = None):
        self.features = features or FeatureFlags()

        self.cpu_percent = Variable()
        self.cpu_count = Variable(psutil.cpu_count() or math.nan)
        self.load_1 = Variable()
        self.load_5 = Variable()
        self.load_15 = Variable()
        self.processes = Variable()
        self.uptime = Variable()

        self.memory_used = Variable()
        self.memory_total = Variable()
        self.memory_percent = Variable()
        self.swap_used = Variable()
        self.swap_percent = Variable()

        self.net_recv = Variable()
        self.net_sent = Variable()
        self.net_recv_rate = Variable()
        self.net_sent_rate = Variable()

        self.battery_percent = Variable()
        self.temperature = Variable()

        self._cores: dict[int, Variable] = {}
        self._disks: dict[str, DiskVariables] = {}
        self._last_net: Optional[tuple[float, int, int]] = None
        self.updates = 0

        # First non-blocking call only sets psutil's baseline
        psutil.cpu_percent(interval=None)

    def watch_core(self, index: int) -> Variable:
        """Return the utilization variable for one CPU core."""
        if not self._cores:
            psutil.cpu_percent(interval=None, percpu=True)
        if index not in self._cores:
            self._cores[index] = Variable()
        return self._cores[index]

    def watch_disk(self, path: str) -> DiskVariables:
        """Return the usage variables for a mount point, sampled from the next update on."""
        if path not in self._disks:
            self._disks[path] = DiskVariables()
            logger.debug(f"Watching disk usage of {path}")
        return self._disks[path]

    def update(self):
        """Refresh every variable."""
        if self.features.cpu:
            self._update_cpu()
        if self.features.memory:
            self._update_memory()
        if self.features.disk:
            self._update_disks()
        if self.features.network:
            self._update_network()
        if self.features.sensors:
            self._update_sensors()
        self._update_host()
        self.updates += 1

    def _update_cpu(self):
        self.cpu_percent.value = psutil.cpu_percent(interval=None)
        if self._cores:
            per_cpu = psutil.cpu_percent(interval=None, percpu=True)
            for index, variable in self._cores.items():
                variable.value = per_cpu[index] if index < len(per_cpu) else math.nan

        try:
            self.load_1.value, self.load_5.value, self.load_15.value = psutil.getloadavg()
        except (AttributeError, OSError) as e:
            logger.debug(f"Load average not available: {e}")

    def _update_memory(self):
        mem = psutil.virtual_memory()
        self.memory_used.value = mem.used
        self.memory_total.value = mem.total
        self.memory_percent.value = mem.percent

        swap = psutil.swap_memory()
        self.swap_used.value = swap.used
        self.swap_percent.value = swap.percent

    def _update_disks(self):
        for path, disk in self._disks.items():
            try:
                usage = psutil.disk_usage(path)
            except (PermissionError, OSError) as e:
                logger.debug(f"Disk usage of {path} not available: {e}")
                disk.used.value = disk.free.value = disk.total.value = disk.percent.value = math.nan
                continue
            disk.used.value = usage.used
            disk.free.value = usage.free
            disk.total.value = usage.total
            disk.percent.value = usage.percent

    def _update_network(self):
        net = psutil.net_io_counters()
        now = time.monotonic()
        self.net_recv.value = net.bytes_recv
        self.net_sent.value = net.bytes_sent

        if self._last_net is not None:
            last_time, last_recv, last_sent = self._last_net
            elapsed = now - last_time
            if elapsed > 0:
                self.net_recv_rate.value = max(net.bytes_recv - last_recv, 0) / elapsed
                self.net_sent_rate.value = max(net.bytes_sent - last_sent, 0) / elapsed
        self._last_net = (now, net.bytes_recv, net.bytes_sent)

    def _update_sensors(self):
        # Not every platform provides sensor readings
        sensors_battery = getattr(psutil, "sensors_battery", None)
        sensors_temperatures = getattr(psutil, "sensors_temperatures", None)
        try:
            battery = sensors_battery() if sensors_battery else None
            readings = sensors_temperatures() if sensors_temperatures else {}
        except (psutil.Error, OSError) as e:
            logger.debug(f"Sensors not available: {e}")
            battery, readings = None, {}

        self.battery_percent.value = battery.percent if battery else math.nan
        currents = [entry.current for entries in readings.values() for entry in entries]
        self.temperature.value = max(currents) if currents else math.nan

    def _update_host(self):
        self.uptime.value = time.time() - psutil.boot_time()
        self.processes.value = len(psutil.pids())


class PercentSource(SimpleNumericSource):
    """A percentage, rendered with one decimal."""

    def get_text(self) -> str:
        value = self.get_number()
        if math.isnan(value):
            return NO_VALUE_TEXT
        return f"{value:.1f}%"


class ByteSource(SimpleNumericSource):
    """A byte count, rendered with binary units."""

    def get_text(self) -> str:
        return format_bytes(self.get_number())


class RateSource(SimpleNumericSource):
    """A byte rate, rendered per second."""

    def get_text(self) -> str:
        text = format_bytes(self.get_number())
        return f"{text}/s" if text else text


class UptimeSource(SimpleNumericSource):
    """Seconds since boot, rendered as days, hours and minutes."""

    def get_text(self) -> str:
        return format_duration(self.get_number())


class TemperatureSource(SimpleNumericSource):
    """Highest sensor temperature in degrees Celsius."""

    def get_text(self) -> str:
        value = self.get_number()
        if math.isnan(value):
            return NO_VALUE_TEXT
        return f"{value:.0f}°C"


class CpuArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    core: Optional[int] = Field(None, ge=0, description="CPU core index, omit for all cores")


class CpuSource(PercentSource):
    """CPU utilization, overall or for one core."""

    arguments = CpuArgs

    def __init__(self, name: str, sampler: SystemSampler, args: CpuArgs):
        if args.core is None:
            variable = sampler.cpu_percent
        else:
            count = sampler.cpu_count.value
            if not math.isnan(count) and args.core >= count:
                raise ArgumentMismatch(name, f"core {args.core} out of range (0-{int(count) - 1})")
            variable = sampler.watch_core(args.core)
        super().__init__(name, variable)


class DiskArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = Field("/", min_length=1, description="Mount point")


class DiskSource(SimpleNumericSource):
    """Disk usage of a mount point."""

    arguments = DiskArgs

    def __init__(self, name: str, sampler: SystemSampler, kind: str, args: DiskArgs):
        self.path = args.path
        self._kind = kind
        super().__init__(name, getattr(sampler.watch_disk(args.path), kind))

    def get_text(self) -> str:
        value = self.get_number()
        if self._kind == "percent":
            return NO_VALUE_TEXT if math.isnan(value) else f"{value:.1f}%"
        return format_bytes(value)


def _cpu_sources(sampler: SystemSampler) -> list[tuple[str, Type[DataSource], tuple]]:
    return [
        ("cpu_percent", CpuSource, (sampler,)),
        ("loadavg_1", SimpleNumericSource, (sampler.load_1,)),
        ("loadavg_5", SimpleNumericSource, (sampler.load_5,)),
        ("loadavg_15", SimpleNumericSource, (sampler.load_15,)),
    ]


def _memory_sources(sampler: SystemSampler) -> list[tuple[str, Type[DataSource], tuple]]:
    return [
        ("memory_used", ByteSource, (sampler.memory_used,)),
        ("memory_total", ByteSource, (sampler.memory_total,)),
        ("memory_percent", PercentSource, (sampler.memory_percent,)),
        ("swap_used", ByteSource, (sampler.swap_used,)),
        ("swap_percent", PercentSource, (sampler.swap_percent,)),
    ]


def _disk_sources(sampler: SystemSampler) -> list[tuple[str, Type[DataSource], tuple]]:
    return [
        (f"disk_{kind}", DiskSource, (sampler, kind))
        for kind in ("used", "free", "total", "percent")
    ]


def _network_sources(sampler: SystemSampler) -> list[tuple[str, Type[DataSource], tuple]]:
    return [
        ("net_recv", ByteSource, (sampler.net_recv,)),
        ("net_sent", ByteSource, (sampler.net_sent,)),
        ("net_recv_rate", RateSource, (sampler.net_recv_rate,)),
        ("net_sent_rate", RateSource, (sampler.net_sent_rate,)),
    ]


def _sensor_sources(sampler: SystemSampler) -> list[tuple[str, Type[DataSource], tuple]]:
    return [
        ("battery_percent", PercentSource, (sampler.battery_percent,)),
        ("temperature", TemperatureSource, (sampler.temperature,)),
    ]


_FEATURE_GROUPS = {
    "cpu": _cpu_sources,
    "memory": _memory_sources,
    "disk": _disk_sources,
    "network": _network_sources,
    "sensors": _sensor_sources,
}


def register_system_sources(
    sampler: SystemSampler, registry: Optional[SourceRegistry] = None
) -> list[str]:
    """
    Register every built-in system data source.

    Sources of a feature group that is switched off are registered as
    disabled placeholders naming the ``features.<group>`` setting, so
    scripts referencing them still load.

    Returns:
        Registered names
    """
    names = []
    for feature, sources in _FEATURE_GROUPS.items():
        enabled = getattr(sampler.features, feature)
        for name, source_cls, bound in sources(sampler):
            if enabled:
                register_data_source(name, source_cls, *bound, registry=registry)
            else:
                register_disabled_data_source(name, f"features.{feature}", registry=registry)
            names.append(name)

    for name, source_cls, variable in (
        ("cpu_count", SimpleNumericSource, sampler.cpu_count),
        ("processes", SimpleNumericSource, sampler.processes),
        ("uptime", UptimeSource, sampler.uptime),
    ):
        register_data_source(name, source_cls, variable, registry=registry)
        names.append(name)

    logger.info(f"Registered {len(names)} system data sources")
    return names
