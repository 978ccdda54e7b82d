"""
Staged build scheduler.

Buildable modules are grouped by build priority and the groups are built
in ascending order. Members of one group never reference each other, so
they run concurrently on a bounded thread pool; a group is a strict
barrier, the next one starts only after every member has finished.

With stop-on-failure, a failure anywhere in a group lets the rest of that
group finish and then skips every later group.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor

from stagebuild.config.loader import resolve_max_workers
from stagebuild.core.actions import BuildAction, BuildSettings, CommandBuildAction
from stagebuild.core.context import RunContext
from stagebuild.core.events import BuildOutcome, Phase
from stagebuild.core.flow import BuildFlow, BuildSummary, BuildTask
from stagebuild.core.module import Module
from stagebuild.core.resolver import PriorityResolver
from stagebuild.exceptions import BuildActionError
from stagebuild.utils.logging import get_logger

logger = get_logger("stagebuild.scheduler")

# Sort key for the residual group of modules still lacking a priority
RESIDUAL_STAGE = "residual"


class BuildScheduler:
    """
    Builds every buildable module of a registry in priority stages.

    Attributes:
        context: Run context (config, registry, status channel)
        action: Callable building one module, returning success
        settings: Build flavor and output directory
        stop_on_failure: Skip later stages once a stage has a failure
        max_workers: Upper bound on concurrent builds within a stage
        unresolved: Policy for modules without a priority:
            'resolve' re-runs the resolver, 'last' builds them after every
            other stage, 'exclude' skips them
        flow: Tracking record of the most recent run
    """

    def __init__(
        self,
        context: RunContext,
        action: BuildAction | None = None,
        settings: BuildSettings | None = None,
        *,
        stop_on_failure: bool | None = None,
        max_workers: int | str | None = None,
        unresolved: str | None = None,
    ):
        config = context.config
        self.context = context
        self.registry = context.registry
        self.channel = context.channel
        self.action: BuildAction = action or CommandBuildAction(
            config.get("build.command"), timeout=config.get("build.timeout")
        )
        self.settings = settings or BuildSettings.from_config(config)
        self.stop_on_failure = (
            bool(config.get("build.stop_on_failure", False)) if stop_on_failure is None else stop_on_failure
        )
        self.max_workers = resolve_max_workers(
            config.get("build.max_workers", "auto") if max_workers is None else max_workers
        )
        self.unresolved = unresolved or config.get("build.unresolved", "resolve")
        self.flow: BuildFlow | None = None

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self) -> tuple[list[tuple[int | str, list[Module]]], list[Module]]:
        """
        Split buildable modules into ordered stages and excluded modules.

        Returns (stages, excluded) where stages is a list of
        (priority, modules) in build order. Circular-marked modules are
        always excluded.
        """
        if self.unresolved == "resolve":
            resolver = PriorityResolver(self.context)
            for module in self.registry:
                if not module.is_terminal:
                    logger.debug(f"Re-resolving stale priority of {module.identity}")
                    resolver.resolve(module)

        groups: dict[int, list[Module]] = defaultdict(list)
        residual: list[Module] = []
        excluded: list[Module] = []

        for module in self.registry.buildable():
            if module.is_resolved:
                groups[module.build_priority].append(module)
            elif module.is_circular:
                excluded.append(module)
            elif self.unresolved == "last":
                residual.append(module)
            else:
                excluded.append(module)

        stages: list[tuple[int | str, list[Module]]] = [(p, groups[p]) for p in sorted(groups)]
        if residual:
            stages.append((RESIDUAL_STAGE, residual))
        return stages, excluded

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def build_all(self) -> BuildSummary:
        """Synchronous wrapper for run()."""
        return asyncio.run(self.run())

    async def run(self) -> BuildSummary:
        """Build every stage and return (succeeded, failed, skipped)."""
        stages, excluded = self.plan()

        flow = BuildFlow(metadata={"stages": len(stages), "stop_on_failure": self.stop_on_failure})
        self.flow = flow
        for module in self.registry.buildable():
            flow.add_task(BuildTask(module.identity, module.source_path, module.build_priority))
        total = len(flow.tasks)

        for module in excluded:
            reason = "circular_reference" if module.is_circular else "unresolved"
            logger.warning(f"Not building {module.identity}: {module.priority_label()}")
            flow.tasks[module.identity].skip(reason)

        flow.start()
        if stages:
            self.settings.prepare()

        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="stagebuild") as pool:
            for priority, members in stages:
                logger.info(f"Stage {priority}: building {len(members)} module(s)")
                pending = [
                    loop.run_in_executor(pool, self._build_one, flow.tasks[m.identity], m) for m in members
                ]
                stage_failed = False
                for next_done in asyncio.as_completed(pending):
                    task, success, error = await next_done
                    index = flow.record(task, success, error)
                    logger.debug(f"{task.identity} finished in {task.get_duration() or 0:.2f}s")
                    outcome = BuildOutcome.SUCCEEDED if success else BuildOutcome.FAILED
                    self.channel.progress(Phase.BUILDING, task.identity, index, total, outcome)
                    stage_failed = stage_failed or not success

                if stage_failed and self.stop_on_failure:
                    flow.stop_requested = True
                    logger.warning(f"Stage {priority} had failures; skipping remaining stages")
                    break

        skipped = flow.skip_remaining("stopped")
        if skipped:
            logger.info(f"Skipped {len(skipped)} module(s) after failure")

        flow.complete()
        summary = flow.summary()
        logger.info(f"{summary} in {flow.get_duration() or 0:.1f}s")
        return summary

    def _build_one(self, task: BuildTask, module: Module) -> tuple[BuildTask, bool, str | None]:
        """Run the build action for one module on a worker thread."""
        task.start()
        try:
            return task, bool(self.action(module, self.settings)), None
        except Exception as e:
            error = BuildActionError(module.identity, str(e), cause=e)
            self.channel.error(error, module=module.identity)
            return task, False, str(e)
