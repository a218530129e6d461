"""Tests for the monitor and the command line interface."""

import math

import pytest
from click.testing import CliRunner

from sysgauge.cli import main
from sysgauge.config import FeatureFlags, MonitorConfig
from sysgauge.errors import ScriptError
from sysgauge.monitor import Monitor


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ("SYSGAUGE_SCRIPT", "SYSGAUGE_INTERVAL", "SYSGAUGE_LOG_LEVEL", "SYSGAUGE_ON_ERROR"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))


@pytest.fixture
def script(tmp_path):
    path = tmp_path / "display.py"
    path.write_text("cpu = cpu_percent()\nroot = disk_percent('/')\nup = uptime()\n")
    return path


class TestMonitor:
    """Tests for Monitor."""

    def test_default_script(self):
        monitor = Monitor(MonitorConfig())
        monitor.setup()
        monitor.update()

        readings = monitor.snapshot()
        labels = [r.label for r in readings]
        assert labels[0] == "cpu"
        assert "up" in labels
        assert monitor.registry.sealed
        monitor.close()

    def test_script_file(self, script):
        monitor = Monitor(MonitorConfig(script=str(script)))
        monitor.setup()
        monitor.update()

        readings = {r.label: r for r in monitor.snapshot()}
        assert set(readings) == {"cpu", "root", "up"}
        assert readings["root"].source == "disk_percent"
        assert readings["root"].text.endswith("%")
        assert readings["up"].number > 0

    def test_update_before_setup(self):
        with pytest.raises(RuntimeError):
            Monitor(MonitorConfig()).update()

    def test_disabled_feature_shows_placeholder(self, tmp_path):
        path = tmp_path / "net.py"
        path.write_text("down = net_recv_rate()\n")
        config = MonitorConfig(script=str(path), features=FeatureFlags(network=False))

        monitor = Monitor(config)
        monitor.setup()
        monitor.update()

        [reading] = monitor.snapshot()
        assert math.isnan(reading.number)
        assert "net_recv_rate" in reading.text
        assert "features.network" in reading.text

    def test_default_script_with_disk_disabled(self):
        """Disabled sources accept the arguments of the real ones."""
        monitor = Monitor(MonitorConfig(features=FeatureFlags(disk=False)))
        monitor.setup()
        monitor.update()

        readings = {r.label: r for r in monitor.snapshot()}
        assert math.isnan(readings["root"].number)
        assert "features.disk" in readings["root"].text
        assert monitor.errors == []

    def test_cpu_core_with_cpu_disabled(self, tmp_path):
        path = tmp_path / "cores.py"
        path.write_text("core0 = cpu_percent(core=0)\nall_cores = cpu_percent()\n")

        monitor = Monitor(MonitorConfig(script=str(path), features=FeatureFlags(cpu=False)))
        monitor.setup()

        readings = monitor.snapshot()
        assert [r.label for r in readings] == ["core0", "all_cores"]
        assert all("features.cpu" in r.text for r in readings)

    def test_abort_on_bad_statement(self, tmp_path):
        path = tmp_path / "bad.py"
        path.write_text("cpu = cpu_percent()\ngpu = gpu_temp()\n")

        with pytest.raises(ScriptError) as exc_info:
            Monitor(MonitorConfig(script=str(path))).setup()
        assert exc_info.value.lineno == 2

    def test_skip_bad_statement(self, tmp_path):
        path = tmp_path / "bad.py"
        path.write_text("cpu = cpu_percent(core='first')\nup = uptime()\n")

        monitor = Monitor(MonitorConfig(script=str(path), on_error="skip"))
        monitor.setup()

        assert len(monitor.errors) == 1
        assert [r.label for r in monitor.snapshot()] == ["up"]


class TestCli:
    """Tests for the sysgauge CLI."""

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "sysgauge" in result.output

    def test_run_once(self, script, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(main, ["run", "--once", "--script", str(script)])
        assert result.exit_code == 0, result.output
        assert "cpu" in result.output
        assert "uptime" in result.output

    @pytest.mark.parametrize("interval", ["0", "-1"])
    def test_run_rejects_non_positive_interval(self, script, tmp_path, monkeypatch, interval):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(
            main, ["run", "--once", "--script", str(script), "--interval", interval]
        )
        assert result.exit_code == 2
        assert "interval" in result.output.lower()

    def test_run_bad_script_exits_nonzero(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "bad.py"
        path.write_text("x = no_such_source()\n")

        result = CliRunner().invoke(main, ["run", "--once", "--script", str(path)])
        assert result.exit_code == 1
        assert "Failed to load" in result.output

    def test_check_reports_failures(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "mixed.py"
        path.write_text("up = uptime()\nx = no_such_source()\n")

        result = CliRunner().invoke(main, ["check", "--script", str(path)])
        assert result.exit_code == 1
        assert "1 data sources bound" in result.output
        assert "1 statements failed" in result.output

    def test_check_ok(self, script, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(main, ["check", "--script", str(script)])
        assert result.exit_code == 0, result.output
        assert "3 data sources bound" in result.output

    def test_sources_lists_names(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(main, ["sources"])
        assert result.exit_code == 0
        assert "cpu_percent" in result.output
        assert "disk_used" in result.output

    def test_init_writes_config_and_script(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(main, ["init", "-o", "sysgauge.yaml"])
        assert result.exit_code == 0

        assert (tmp_path / "sysgauge.yaml").exists()
        assert "cpu_percent()" in (tmp_path / "sysgauge.py").read_text()

        check = CliRunner().invoke(main, ["check", "-c", "sysgauge.yaml"])
        assert check.exit_code == 0, check.output
