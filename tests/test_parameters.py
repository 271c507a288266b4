from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import IO

import pytest

from planrun._errors import ArgumentError, PlanLoadError
from planrun._loader import JsonPlanLoader
from planrun._parameters import (
    check_strict_overrides,
    import_parameter_files,
    load_plan_with_overrides,
    split_overrides,
)
from planrun._schema import Plan, PlanParameter
from planrun.importers import default_importers


class RecordingLoader(JsonPlanLoader):
    def __init__(self) -> None:
        self.calls: list[tuple[bool, dict[str, str], bool]] = []
        self.stream: IO[bytes] | None = None

    def load(
        self,
        stream: IO[bytes],
        path: Path,
        cache_raw: bool,
        overrides: Mapping[str, str],
        lenient: bool,
    ) -> Plan:
        self.stream = stream
        self.calls.append((cache_raw, dict(overrides), lenient))
        return super().load(stream, path, cache_raw, overrides, lenient)


class BrokenLoader:
    def __init__(self) -> None:
        self.stream: IO[bytes] | None = None

    def load(self, stream, path, cache_raw, overrides, lenient) -> Plan:
        self.stream = stream
        raise PlanLoadError("broken")


class TestSplitOverrides:
    def test_strict_then_lenient_later_wins(self) -> None:
        resolved = split_overrides(["a=1", "b=2"], ["a=3"])
        assert resolved.values == {"a": "3", "b": "2"}
        assert resolved.files == []

    def test_splits_on_first_equals(self) -> None:
        assert split_overrides(["expr=x=y"], []).values == {"expr": "x=y"}

    def test_entry_without_equals_is_a_file(self) -> None:
        resolved = split_overrides(["delay", "params.csv"], ["more.json"])
        assert resolved.values == {}
        assert resolved.files == [Path("delay"), Path("params.csv"), Path("more.json")]

    def test_empty_value(self) -> None:
        assert split_overrides(["a="], []).values == {"a": ""}

    def test_cache_only_without_any_entries(self) -> None:
        assert split_overrides([], []).is_empty
        assert split_overrides([], []).cache_raw
        assert not split_overrides(["a=1"], []).cache_raw
        assert not split_overrides([], ["file.csv"]).cache_raw


class TestCheckStrictOverrides:
    @pytest.fixture()
    def plan(self) -> Plan:
        return Plan(parameters=[PlanParameter(name="delay")])

    def test_known_name_passes(self, plan: Plan) -> None:
        check_strict_overrides(["delay=1"], plan)

    def test_unknown_name_raises(self, plan: Plan, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="planrun"):
            with pytest.raises(ArgumentError):
                check_strict_overrides(["foo=1"], plan)
        assert "External parameter 'foo' does not exist in the test plan." in caplog.text
        assert "Statement 'foo=1' has no effect." in caplog.text

    def test_file_entries_are_not_checked(self, plan: Plan) -> None:
        check_strict_overrides(["params.csv"], plan)


class TestImportParameterFiles:
    def test_missing_importer_does_not_stop_other_files(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        plan = Plan(parameters=[PlanParameter(name="delay", value="1")])
        csv_file = tmp_path / "p.csv"
        csv_file.write_text("delay,9\n")
        with caplog.at_level(logging.ERROR, logger="planrun"):
            import_parameter_files(
                plan, [tmp_path / "p.xlsx", csv_file], default_importers()
            )
        assert plan.get_parameter("delay").value == "9"
        assert "from '.xlsx' files" in caplog.text

    def test_unreadable_file_does_not_stop_other_files(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        plan = Plan(parameters=[PlanParameter(name="delay", value="1")])
        good = tmp_path / "good.json"
        good.write_text('{"delay": "7"}')
        with caplog.at_level(logging.ERROR, logger="planrun"):
            import_parameter_files(
                plan, [tmp_path / "missing.csv", good], default_importers()
            )
        assert plan.get_parameter("delay").value == "7"
        assert "missing.csv" in caplog.text


class TestLoadPlanWithOverrides:
    def test_no_overrides_caches_raw(self, plan_file: Path) -> None:
        loader = RecordingLoader()
        plan = load_plan_with_overrides(
            plan_file, [], [], lenient=False, loader=loader, importers=[]
        )
        assert loader.calls == [(True, {}, False)]
        assert plan.raw == plan_file.read_text()

    def test_overrides_disable_cache(self, plan_file: Path) -> None:
        loader = RecordingLoader()
        plan = load_plan_with_overrides(
            plan_file, ["delay=2"], [], lenient=True, loader=loader, importers=[]
        )
        assert loader.calls == [(False, {"delay": "2"}, True)]
        assert plan.raw is None
        assert plan.get_parameter("delay").value == "2"

    def test_strict_unknown_raises(self, plan_file: Path) -> None:
        with pytest.raises(ArgumentError):
            load_plan_with_overrides(
                plan_file, ["foo=1"], [], lenient=False, loader=JsonPlanLoader(), importers=[]
            )

    def test_lenient_unknown_is_ignored(self, plan_file: Path) -> None:
        plan = load_plan_with_overrides(
            plan_file, [], ["foo=1"], lenient=False, loader=JsonPlanLoader(), importers=[]
        )
        assert plan.get_parameter("foo") is None

    def test_files_imported_after_direct_overrides(
        self, plan_file: Path, tmp_path: Path
    ) -> None:
        params = tmp_path / "params.csv"
        params.write_text("delay,from-file\n")
        plan = load_plan_with_overrides(
            plan_file,
            ["delay=direct", str(params)],
            [],
            lenient=False,
            loader=JsonPlanLoader(),
            importers=default_importers(),
        )
        assert plan.get_parameter("delay").value == "from-file"

    def test_strict_check_runs_after_import(
        self, write_plan: Callable[..., Path], tmp_path: Path
    ) -> None:
        plan_path = write_plan({"name": "p", "parameters": [{"name": "delay"}]})
        with pytest.raises(ArgumentError):
            load_plan_with_overrides(
                plan_path,
                ["missing=1", str(tmp_path / "p.unknown")],
                [],
                lenient=False,
                loader=JsonPlanLoader(),
                importers=default_importers(),
            )

    def test_stream_closed_on_load_error(self, plan_file: Path) -> None:
        loader = BrokenLoader()
        with pytest.raises(PlanLoadError):
            load_plan_with_overrides(
                plan_file, [], [], lenient=False, loader=loader, importers=[]
            )
        assert loader.stream is not None
        assert loader.stream.closed

    def test_stream_closed_after_load(self, plan_file: Path) -> None:
        loader = RecordingLoader()
        load_plan_with_overrides(plan_file, [], [], lenient=False, loader=loader, importers=[])
        assert loader.stream is not None
        assert loader.stream.closed
