"""
Tests for the staged build scheduler and build actions.
"""

import sys
import threading

import pytest

from stagebuild.config.loader import Config
from stagebuild.core.actions import BuildSettings, CommandBuildAction
from stagebuild.core.events import BuildOutcome, Phase
from stagebuild.core.flow import BuildSummary, FlowStatus, TaskStatus
from stagebuild.core.module import Module, PriorityCode
from stagebuild.core.resolver import PriorityResolver
from stagebuild.core.scheduler import RESIDUAL_STAGE, BuildScheduler
from stagebuild.exceptions import BuildActionError


class RecordingAction:
    """Build action that records calls and fails for selected modules."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.events = []
        self._lock = threading.Lock()

    def __call__(self, module, settings):
        with self._lock:
            self.events.append(("start", module.identity))
        with self._lock:
            self.events.append(("end", module.identity))
        return module.identity not in self.failing

    @property
    def built(self):
        return [identity for kind, identity in self.events if kind == "start"]


def scheduler_for(context, action, **kwargs):
    PriorityResolver(context).resolve_all()
    kwargs.setdefault("max_workers", 4)
    return BuildScheduler(context, action=action, settings=BuildSettings(), **kwargs)


@pytest.mark.unit
class TestPlan:
    def test_stages_ascend_by_priority(self, make_context):
        context = make_context({"D": [], "C": ["D"], "B": ["D"], "A": ["B", "C"]})
        stages, excluded = scheduler_for(context, RecordingAction()).plan()

        assert [(p, sorted(m.identity for m in members)) for p, members in stages] == [
            (0, ["D"]),
            (1, ["B", "C"]),
            (2, ["A"]),
        ]
        assert excluded == []

    def test_external_modules_are_not_planned(self, make_context):
        context = make_context({"A": ["System.Xml"]})
        stages, _ = scheduler_for(context, RecordingAction()).plan()
        assert [m.identity for _, members in stages for m in members] == ["A"]

    def test_circular_modules_are_excluded(self, make_context):
        context = make_context({"A": ["B"], "B": ["A"], "C": []})
        stages, excluded = scheduler_for(context, RecordingAction()).plan()
        assert [m.identity for _, members in stages for m in members] == ["C"]
        assert sorted(m.identity for m in excluded) == ["A", "B"]

    def test_resolve_policy_resolves_stale_modules(self, make_context):
        context = make_context({"B": [], "A": ["B"]})
        scheduler = BuildScheduler(context, action=RecordingAction(), max_workers=1, unresolved="resolve")

        stages, excluded = scheduler.plan()

        assert [(p, [m.identity for m in members]) for p, members in stages] == [(0, ["B"]), (1, ["A"])]
        assert excluded == []

    def test_last_policy_builds_unresolved_after_everything(self, make_context):
        context = make_context({"B": [], "A": ["B"], "X": []})
        scheduler = scheduler_for(context, RecordingAction(), unresolved="last")
        context.registry["X"].build_priority = PriorityCode.NOT_ANALYSED

        stages, excluded = scheduler.plan()

        assert stages[-1][0] == RESIDUAL_STAGE
        assert [m.identity for m in stages[-1][1]] == ["X"]
        assert excluded == []

    def test_exclude_policy_skips_unresolved(self, make_context):
        context = make_context({"B": [], "A": ["B"], "X": []})
        action = RecordingAction()
        scheduler = scheduler_for(context, action, unresolved="exclude")
        context.registry["X"].build_priority = PriorityCode.NOT_ANALYSED

        summary = scheduler.build_all()

        assert summary == BuildSummary(2, 0, 1)
        assert "X" not in action.built
        assert scheduler.flow.tasks["X"].skipped_reason == "unresolved"


@pytest.mark.unit
class TestBuildAll:
    def test_builds_dependencies_first(self, make_context):
        context = make_context({"C": [], "B": ["C"], "A": ["B"]})
        action = RecordingAction()

        summary = scheduler_for(context, action).build_all()

        assert summary == BuildSummary(3, 0, 0)
        assert action.built == ["C", "B", "A"]

    def test_stop_on_failure_skips_later_stages(self, make_context):
        context = make_context({"C": [], "B": ["C"], "A": ["B"]})
        action = RecordingAction(failing={"B"})
        scheduler = scheduler_for(context, action, stop_on_failure=True)

        summary = scheduler.build_all()

        assert summary == BuildSummary(1, 1, 1)
        assert str(summary) == "1 succeeded, 1 failed, 1 skipped"
        assert "A" not in action.built
        assert scheduler.flow.status == FlowStatus.STOPPED
        assert scheduler.flow.tasks["A"].skipped_reason == "stopped"

    def test_keep_going_builds_every_stage(self, make_context):
        context = make_context({"C": [], "B": ["C"], "A": ["B"]})
        action = RecordingAction(failing={"B"})
        scheduler = scheduler_for(context, action, stop_on_failure=False)

        summary = scheduler.build_all()

        assert summary == BuildSummary(2, 1, 0)
        assert scheduler.flow.status == FlowStatus.FAILED

    def test_failing_stage_finishes_before_stopping(self, make_context):
        context = make_context({"L1": [], "L2": [], "L3": [], "top": ["L1", "L2", "L3"]})
        action = RecordingAction(failing={"L1"})

        summary = scheduler_for(context, action, stop_on_failure=True).build_all()

        assert sorted(action.built) == ["L1", "L2", "L3"]
        assert summary == BuildSummary(2, 1, 1)

    def test_stage_is_a_barrier(self, make_context):
        context = make_context(
            {"a0": [], "b0": [], "a1": ["a0"], "b1": ["b0", "a0"], "top": ["a1", "b1"]}
        )
        action = RecordingAction()
        scheduler_for(context, action).build_all()

        priority = {m.identity: m.build_priority for m in context.registry}
        for index, (kind, identity) in enumerate(action.events):
            if kind != "start":
                continue
            ended = {i for k, i in action.events[:index] if k == "end"}
            lower = {m for m, p in priority.items() if p < priority[identity]}
            assert lower <= ended, f"{identity} started before its lower stages finished"

    def test_stage_members_run_concurrently(self, make_context):
        context = make_context({"left": [], "right": []})
        barrier = threading.Barrier(2, timeout=5)

        def action(module, settings):
            barrier.wait()
            return True

        summary = scheduler_for(context, action, max_workers=2).build_all()

        assert summary == BuildSummary(2, 0, 0)
        assert context.channel.errors == []

    def test_circular_modules_count_as_skipped(self, make_context):
        context = make_context({"A": ["B"], "B": ["A"], "C": []})
        action = RecordingAction()
        scheduler = scheduler_for(context, action)

        summary = scheduler.build_all()

        assert summary == BuildSummary(1, 0, 2)
        assert action.built == ["C"]
        assert scheduler.flow.tasks["A"].skipped_reason == "circular_reference"

    def test_action_exception_is_a_failure(self, make_context):
        context = make_context({"B": [], "A": ["B"]})

        def action(module, settings):
            if module.identity == "B":
                raise RuntimeError("compiler crashed")
            return True

        summary = scheduler_for(context, action).build_all()

        assert summary == BuildSummary(1, 1, 0)
        errors = context.channel.errors_of(BuildActionError)
        assert len(errors) == 1
        assert errors[0].module == "B"
        assert "compiler crashed" in errors[0].message

    def test_reports_building_progress(self, make_context):
        context = make_context({"C": [], "B": ["C"], "A": ["B"]})
        events = []
        context.channel.subscribe(on_progress=events.append)

        scheduler_for(context, RecordingAction(failing={"A"})).build_all()

        building = [e for e in events if e.phase == Phase.BUILDING]
        assert [(e.module, e.index, e.total) for e in building] == [("C", 1, 3), ("B", 2, 3), ("A", 3, 3)]
        assert building[-1].outcome == BuildOutcome.FAILED

    def test_empty_registry(self, make_context):
        context = make_context({})
        summary = scheduler_for(context, RecordingAction()).build_all()
        assert summary == BuildSummary(0, 0, 0)

    @pytest.mark.asyncio
    async def test_run_from_event_loop(self, make_context):
        context = make_context({"B": [], "A": ["B"]})
        scheduler = scheduler_for(context, RecordingAction())

        summary = await scheduler.run()

        assert summary == BuildSummary(2, 0, 0)
        assert all(t.status == TaskStatus.SUCCEEDED for t in scheduler.flow.tasks.values())


@pytest.mark.unit
class TestBuildSettings:
    def test_from_config_with_overrides(self):
        settings = BuildSettings.from_config(Config(), configuration=None, platform="x64")
        assert settings.configuration == "Debug"
        assert settings.platform == "x64"
        assert settings.output_dir is None

    def test_msbuild_properties_include_output_dir(self):
        settings = BuildSettings(configuration="Release", output_dir="out")
        assert settings.msbuild_properties() == {
            "Configuration": "Release",
            "Platform": "AnyCPU",
            "OutDir": "out/",
            "OutputPath": "out",
        }

    def test_prepare_creates_output_dir(self, tmp_path):
        target = tmp_path / "bin" / "debug"
        BuildSettings(output_dir=str(target)).prepare()
        assert target.is_dir()


@pytest.mark.unit
class TestCommandBuildAction:
    def test_arguments(self):
        module = Module("Core", source_path="/src/Core/Core.csproj")
        action = CommandBuildAction(["msbuild", "/nologo"])

        args = action.arguments(module, BuildSettings(configuration="Release"))

        assert args == [
            "msbuild",
            "/nologo",
            "/src/Core/Core.csproj",
            "-p:Configuration=Release",
            "-p:Platform=AnyCPU",
        ]

    def test_exit_code_decides_success(self, tmp_path):
        project = tmp_path / "Core.csproj"
        project.write_text("<Project />", encoding="utf-8")
        module = Module("Core", source_path=str(project))

        ok = CommandBuildAction([sys.executable, "-c", "import sys; sys.exit(0)"])
        broken = CommandBuildAction([sys.executable, "-c", "import sys; sys.exit(3)"])

        assert ok(module, BuildSettings()) is True
        assert broken(module, BuildSettings()) is False

    def test_timeout_comes_from_config(self, make_context):
        context = make_context({"A": []})
        context.config.data["build"]["timeout"] = 120

        scheduler = BuildScheduler(context, max_workers=1)

        assert isinstance(scheduler.action, CommandBuildAction)
        assert scheduler.action.timeout == 120

    def test_timed_out_command_is_a_failure(self, tmp_path, make_context):
        project = tmp_path / "Slow" / "Slow.csproj"
        project.parent.mkdir()
        project.write_text("<Project />", encoding="utf-8")
        context = make_context({})
        context.registry.add(Module("Slow", source_path=str(project)))
        action = CommandBuildAction([sys.executable, "-c", "import time; time.sleep(30)"], timeout=0.5)

        summary = scheduler_for(context, action, max_workers=1).build_all()

        assert summary == BuildSummary(0, 1, 0)
        errors = context.channel.errors_of(BuildActionError)
        assert len(errors) == 1
        assert "timed out" in errors[0].message
