"""
Build priority resolution with circular reference detection.

Every module gets an integer priority such that each of its resolved
references holds a strictly lower one; building groups of equal priority
in ascending order then respects every dependency.

The traversal is depth-first over an explicit frame stack, so reference
chain length is bounded by memory rather than the interpreter's recursion
limit. Resolution state lives in ``Module.build_priority`` and persists
across calls, which memoizes already-resolved modules.

Two values exist per resolved module:

- the stored priority: the largest value folded from its references
  (``reference priority + 1`` for modules resolved earlier, or the value a
  freshly resolved reference propagated back);
- the propagated value handed to the caller: the stored priority plus one,
  raised to at least the module's depth on the traversal stack.

Because of the depth floor, a module's priority depends on the path it was
first reached through, not only on graph depth.
"""

from __future__ import annotations

from dataclasses import dataclass

from stagebuild.core.context import RunContext
from stagebuild.core.events import Phase
from stagebuild.core.module import CIRCULAR_MARKERS, Module, PriorityCode
from stagebuild.exceptions import CircularReferenceError
from stagebuild.utils.logging import get_logger

logger = get_logger("stagebuild.resolver")

CIRCULAR = int(PriorityCode.CIRCULAR_REFERENCE)
COLLATERAL = int(PriorityCode.CIRCULAR_REFERENCE_COLLATERAL)


@dataclass
class _Frame:
    """One module on the traversal stack."""

    module: Module
    references: list[Module]
    level: int
    position: int = 0
    max_level: int = 0


class PriorityResolver:
    """
    Assigns build priorities to the modules of a registry.

    Not thread-safe: one resolver drives one traversal at a time.
    """

    def __init__(self, context: RunContext):
        self.context = context
        self.registry = context.registry
        self._stack: list[_Frame] = []
        self._on_stack: dict[str, int] = {}

    def resolve_all(self) -> None:
        """Resolve every registered module in registry order, reporting progress."""
        modules = list(self.registry)
        total = len(modules)
        for index, module in enumerate(modules, start=1):
            self.context.channel.progress(Phase.RESOLVING, module.identity, index, total)
            self.resolve(module)

    def resolve(self, root: Module) -> int:
        """
        Resolve ``root`` and everything reachable from it.

        Returns the priority stored on ``root``.
        """
        if root.is_terminal:
            return root.build_priority

        self._stack.clear()
        self._on_stack.clear()
        self._push(root)

        returned: int | None = None
        while self._stack:
            frame = self._stack[-1]
            if returned is not None:
                frame.max_level = max(frame.max_level, returned)
                returned = None

            if self._advance(frame):
                continue

            returned = self._finish(frame)

        logger.debug(f"Resolved {root.identity} -> {root.priority_label()}")
        return root.build_priority

    # ------------------------------------------------------------------

    def _push(self, module: Module) -> _Frame:
        frame = _Frame(
            module=module,
            references=self.registry.references_of(module),
            level=len(self._stack),
        )
        module.build_priority = PriorityCode.ANALYSING
        self._on_stack[module.identity] = len(self._stack)
        self._stack.append(frame)

        if module.self_referenced:
            # A reference to itself is a cycle of length one
            self._report_cycle(frame, module)
            frame.position = len(frame.references)
        return frame

    def _advance(self, frame: _Frame) -> bool:
        """
        Walk the frame's remaining references.

        Returns True when a reference was pushed and must be resolved first;
        False when the frame is ready to be finished.
        """
        module = frame.module
        while frame.position < len(frame.references):
            ref = frame.references[frame.position]
            frame.position += 1

            if ref.build_priority in CIRCULAR_MARKERS:
                # Downstream of a cycle that is already marked
                if module.build_priority != CIRCULAR:
                    module.build_priority = COLLATERAL
                frame.position = len(frame.references)
                frame.max_level = module.build_priority
                return False

            if ref.is_resolved:
                frame.max_level = max(frame.max_level, ref.build_priority + 1)
            elif ref.identity in self._on_stack:
                self._report_cycle(frame, ref)
                frame.position = len(frame.references)
                return False
            else:
                self._push(ref)
                return True
        return False

    def _finish(self, frame: _Frame) -> int:
        """Pop the frame, store the module's priority and return the value for its caller."""
        self._stack.pop()
        module = frame.module
        del self._on_stack[module.identity]

        if module.build_priority == CIRCULAR:
            return COLLATERAL
        if frame.max_level in CIRCULAR_MARKERS:
            module.build_priority = COLLATERAL
            return COLLATERAL

        module.build_priority = frame.max_level
        if frame.max_level < frame.level:
            return frame.level
        return frame.max_level + 1

    def _report_cycle(self, frame: _Frame, ref: Module) -> None:
        start = self._on_stack[ref.identity]
        cycle = [f.module.identity for f in self._stack[start:]] + [ref.identity]
        ref.build_priority = CIRCULAR
        frame.max_level = CIRCULAR
        error = CircularReferenceError(cycle)
        logger.debug(f"Circular reference: {error}")
        self.context.channel.error(error, module=ref.identity)
