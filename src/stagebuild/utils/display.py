"""
Rendering of analysed registries and run progress.

Plain-text reports (written next to the cache file) and Rich renderables
for the console.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text

from stagebuild.core.events import BuildOutcome, ErrorEvent, ProgressEvent
from stagebuild.core.module import Module
from stagebuild.core.registry import ModuleRegistry

OUTCOME_STYLES = {
    BuildOutcome.SUCCEEDED: "green",
    BuildOutcome.FAILED: "bold red",
    BuildOutcome.SKIPPED: "yellow",
}


def _depth_order(registry: ModuleRegistry) -> list[Module]:
    return sorted(registry, key=lambda m: (m.build_priority, m.identity))


def reference_depth(registry: ModuleRegistry) -> str:
    """One line per module, ``<identity> - Priority : <n>``, by priority then identity."""
    return "".join(f"{m.identity} - Priority : {m.priority_label()}\n" for m in _depth_order(registry))


def tree_view(registry: ModuleRegistry, indent: int = 4) -> str:
    """
    Indented reference tree for every module, by priority then identity.

    A module already on the current branch is printed once more with a
    ``(circular reference)`` marker instead of being expanded again.
    """
    lines: list[str] = []
    for root in _depth_order(registry):
        # (module, depth, branch identities above it)
        pending: list[tuple[Module, int, frozenset[str]]] = [(root, 0, frozenset())]
        while pending:
            module, depth, branch = pending.pop()
            pad = " " * (depth * indent)
            if module.identity in branch:
                lines.append(f"{pad}{module.identity} (circular reference)")
                continue
            lines.append(f"{pad}{module.identity}")
            children = registry.references_of(module)
            if module.self_referenced:
                children = [module, *children]
            below = branch | {module.identity}
            for child in reversed(children):
                pending.append((child, depth + 1, below))
    return "\n".join(lines) + ("\n" if lines else "")


def depth_table(registry: ModuleRegistry, title: str = "Reference depth") -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Priority", justify="right", style="cyan")
    table.add_column("Module")
    table.add_column("Project")
    for module in _depth_order(registry):
        priority = Text(module.priority_label(), style="red" if module.is_circular else "")
        table.add_row(priority, module.identity, module.source_path or Text("external", style="dim"))
    return table


class ConsoleReporter:
    """Prints channel events to a Rich console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def on_progress(self, event: ProgressEvent) -> None:
        line = Text(f"{event.index} of {event.total} ", style="dim")
        line.append(f"{event.phase} ", style="cyan")
        line.append(event.module)
        if event.outcome is not None:
            line.append(f"  {event.outcome}", style=OUTCOME_STYLES.get(event.outcome, ""))
        self.console.print(line)

    def on_error(self, event: ErrorEvent) -> None:
        self.console.print(Text(f"error: {event.message}", style="bold red"))
