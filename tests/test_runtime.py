"""Tests for the configuration script runtime."""

import pytest

from sysgauge.errors import ArgumentMismatch, ScriptError, SourceNotFound
from sysgauge.runtime import ScriptRuntime
from sysgauge.sources import SimpleNumericSource, SourceHandle, Variable, register_data_source
from sysgauge.sources.system import DiskArgs, DiskSource, SystemSampler


@pytest.fixture
def loaded(registry, runtime):
    """Runtime with two exported sources."""
    register_data_source("answer", SimpleNumericSource, Variable(42), registry=registry)
    register_data_source("half", SimpleNumericSource, Variable(0.5), registry=registry)
    registry.seal()
    registry.export_all(runtime)
    return runtime


class TestExecute:
    """Tests for ScriptRuntime.execute."""

    def test_script_constructs_sources(self, loaded):
        """Script calls return handles owned by the runtime."""
        errors = loaded.execute("a = answer()\nb = half()\n")

        assert errors == []
        assert isinstance(loaded.namespace["a"], SourceHandle)
        assert [h.name for h in loaded.handles] == ["answer", "half"]

    def test_bound_sources_in_assignment_order(self, loaded):
        loaded.execute("second = half()\nfirst = answer()\n_hidden = answer()\nplain = 3\n")
        assert [(label, h.name) for label, h in loaded.bound_sources()] == [
            ("second", "half"),
            ("first", "answer"),
        ]

    def test_handles_usable_in_expressions(self, loaded):
        """Handles convert to text and numbers inside scripts."""
        loaded.execute("a = answer()\nlabel = f'value {a}'\ndoubled = float(a) * 2\n")
        assert loaded.namespace["label"] == "value 42"
        assert loaded.namespace["doubled"] == 84.0

    def test_unknown_source_aborts(self, loaded):
        """With on_error=abort the first failure raises ScriptError."""
        with pytest.raises(ScriptError) as exc_info:
            loaded.execute("a = answer()\nb = nvidia()\nc = half()\n", "display.py")

        error = exc_info.value
        assert error.filename == "display.py"
        assert error.lineno == 2
        assert isinstance(error.cause, NameError)
        assert "c" not in loaded.namespace

    def test_argument_mismatch_surfaces_as_script_error(self, loaded):
        with pytest.raises(ScriptError) as exc_info:
            loaded.execute("a = answer(1)\n")
        assert isinstance(exc_info.value.cause, ArgumentMismatch)
        assert loaded.handles == []

    def test_skip_continues_after_failure(self, loaded):
        """With on_error=skip failing statements are collected."""
        errors = loaded.execute(
            "a = answer()\nb = answer(99)\nc = half()\n", "display.py", on_error="skip"
        )

        assert len(errors) == 1
        assert errors[0].lineno == 2
        assert isinstance(errors[0].cause, ArgumentMismatch)
        assert [label for label, _ in loaded.bound_sources()] == ["a", "c"]

    def test_script_can_catch_errors(self, registry, runtime):
        """Scripts can fall back when a source is missing."""
        register_data_source("answer", SimpleNumericSource, Variable(42), registry=registry)
        registry.export_all(runtime)
        namespace = runtime.namespace
        namespace["lookup"] = lambda name: registry.lookup_and_construct(runtime, name)

        runtime.execute(
            "try:\n"
            "    gpu = lookup('gpu')\n"
            "except SourceNotFound as e:\n"
            "    missing = e.name\n"
        )
        assert namespace["missing"] == "gpu"
        assert issubclass(namespace["SourceNotFound"], SourceNotFound)

    def test_syntax_error(self, runtime):
        with pytest.raises(ScriptError) as exc_info:
            runtime.execute("a = (\n", "broken.py", on_error="skip")
        assert isinstance(exc_info.value.cause, SyntaxError)
        assert exc_info.value.filename == "broken.py"

    def test_restricted_builtins(self, runtime):
        """Scripts cannot open files or import modules."""
        with pytest.raises(ScriptError) as exc_info:
            runtime.execute("f = open('/etc/passwd')\n")
        assert isinstance(exc_info.value.cause, NameError)

        with pytest.raises(ScriptError) as exc_info:
            runtime.execute("import os\n")
        assert isinstance(exc_info.value.cause, ImportError)

    def test_execute_file(self, loaded, tmp_path):
        script = tmp_path / "display.py"
        script.write_text("a = answer()\n")
        assert loaded.execute_file(script) == []
        assert loaded.namespace["a"].get_number() == 42.0

    def test_close_releases_handles(self, loaded):
        loaded.execute("a = answer()\n")
        loaded.close()
        assert loaded.handles == []
        assert "a" not in loaded.namespace
        assert "answer" not in loaded.namespace


class TestArgumentSources:
    """Sources that take script arguments."""

    def test_disk_source_from_script(self, registry, runtime):
        sampler = SystemSampler()
        register_data_source("disk_used", DiskSource, sampler, "used", registry=registry)
        registry.export_all(runtime)

        runtime.execute("root = disk_used('/')\nalso_root = disk_used(path='/')\n")

        root = runtime.namespace["root"]
        assert root.source.path == "/"
        assert DiskSource.arguments is DiskArgs
        assert runtime.namespace["also_root"].source.path == "/"

    def test_disk_source_rejects_wrong_type(self, registry, runtime):
        sampler = SystemSampler()
        register_data_source("disk_used", DiskSource, sampler, "used", registry=registry)
        registry.export_all(runtime)

        with pytest.raises(ScriptError) as exc_info:
            runtime.execute("root = disk_used(5)\n")
        assert isinstance(exc_info.value.cause, ArgumentMismatch)
        assert "path" in exc_info.value.cause.detail

    def test_docstring_warns_it_is_not_a_sandbox(self):
        assert "not a security sandbox" in ScriptRuntime.__doc__

    def test_new_runtime_is_empty(self):
        rt = ScriptRuntime()
        assert rt.name == "config"
        assert rt.handles == []
        assert rt.bound_sources() == []
