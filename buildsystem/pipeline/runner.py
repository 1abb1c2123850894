"""Dependency-respecting execution of build handlers."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..errors import DependencyCycleError
from .base import BuildHandler
from .context import ExecutionContext
from .result import HandlerError, HandlerResult

logger = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    """
    Summary of one pipeline run.

    ``failed`` maps operation ids to the error that stopped them.
    ``blocked`` maps operation ids that never started to the requirements
    that were still missing (empty when the run was aborted instead).
    ``skipped`` lists handlers whose artifact was already in the context.
    """

    completed: List[str] = field(default_factory=list)
    failed: Dict[str, HandlerError] = field(default_factory=dict)
    blocked: Dict[str, List[str]] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failed and not self.blocked

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "completed": list(self.completed),
            "failed": {
                op_id: {"kind": error.kind, "message": error.message}
                for op_id, error in self.failed.items()
            },
            "blocked": {op_id: list(missing) for op_id, missing in self.blocked.items()},
            "skipped": list(self.skipped),
            "duration_seconds": self.duration_seconds,
        }


class PipelineRunner:
    """
    Runs handlers as soon as everything they read has been published.

    Independent handlers run concurrently; there is no ordering guarantee
    between them. A failed handler publishes nothing, so everything that
    depends on it stays blocked. With abort_on_failure=True no new handler
    is started after the first failure.
    """

    def __init__(self, handlers: Sequence[BuildHandler], abort_on_failure: bool = False):
        self.handlers = list(handlers)
        self.abort_on_failure = abort_on_failure

        self._by_id: Dict[str, BuildHandler] = {}
        for handler in self.handlers:
            op_id = str(handler.id)
            if op_id in self._by_id:
                raise DependencyCycleError(f"Duplicate operation id: {op_id}")
            self._by_id[op_id] = handler

        self._layers = self._build_layers()

    def _build_layers(self) -> List[List[str]]:
        """Group handler ids into layers with Kahn's algorithm."""
        in_degree = {op_id: 0 for op_id in self._by_id}
        dependants: Dict[str, List[str]] = {op_id: [] for op_id in self._by_id}

        for op_id, handler in self._by_id.items():
            for required in handler.requires:
                # Requirements nobody produces must come pre-seeded in the context
                if str(required) in self._by_id:
                    in_degree[op_id] += 1
                    dependants[str(required)].append(op_id)

        layers = []
        ready = [op_id for op_id, degree in in_degree.items() if degree == 0]
        while ready:
            layers.append(ready)
            next_ready = []
            for op_id in ready:
                for dependant in dependants[op_id]:
                    in_degree[dependant] -= 1
                    if in_degree[dependant] == 0:
                        next_ready.append(dependant)
            ready = next_ready

        unresolved = [op_id for op_id, degree in in_degree.items() if degree > 0]
        if unresolved:
            raise DependencyCycleError(
                f"Dependency cycle between handlers: {sorted(unresolved)}"
            )
        return layers

    def concurrency_layers(self) -> List[List[str]]:
        """Handler ids grouped by dependency depth."""
        return [list(layer) for layer in self._layers]

    async def run(self, context: ExecutionContext) -> RunOutcome:
        """
        Execute all handlers against a context.

        Global configuration is frozen before the first handler starts.

        Returns:
            RunOutcome with completed, failed, blocked and skipped ids
        """
        context.freeze()
        started = time.monotonic()
        outcome = RunOutcome()

        pending: Dict[str, BuildHandler] = {}
        for op_id, handler in self._by_id.items():
            if context.has_artifact(handler.id):
                logger.info(f"{op_id}: already published, skipping")
                outcome.skipped.append(op_id)
            else:
                pending[op_id] = handler

        running: Dict[asyncio.Task, BuildHandler] = {}

        while pending or running:
            if not (self.abort_on_failure and outcome.failed):
                for op_id, handler in list(pending.items()):
                    if all(context.has_artifact(key) for key in handler.requires):
                        del pending[op_id]
                        task = asyncio.ensure_future(handler.run(context))
                        running[task] = handler

            if not running:
                break

            done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                handler = running.pop(task)
                result = self._collect(task, handler)
                if result.success:
                    outcome.completed.append(str(handler.id))
                else:
                    outcome.failed[str(handler.id)] = result.error

        for op_id, handler in pending.items():
            outcome.blocked[op_id] = [
                str(key) for key in handler.requires if not context.has_artifact(key)
            ]
            logger.warning(f"{op_id}: blocked (missing: {outcome.blocked[op_id]})")

        outcome.duration_seconds = time.monotonic() - started
        logger.info(
            f"Run finished in {outcome.duration_seconds:.2f}s: "
            f"{len(outcome.completed)} completed, {len(outcome.failed)} failed, "
            f"{len(outcome.blocked)} blocked, {len(outcome.skipped)} skipped"
        )
        return outcome

    @staticmethod
    def _collect(task: asyncio.Task, handler: BuildHandler) -> HandlerResult:
        """Read a finished handler task; unexpected exceptions become failures."""
        try:
            return task.result()
        except Exception as e:
            logger.error(f"{handler.name} ({handler.id}): crashed: {e!r}", exc_info=True)
            return HandlerResult.fail(HandlerError(kind="internal", message=repr(e)))

    def __len__(self) -> int:
        return len(self.handlers)

    def __repr__(self) -> str:
        return f"PipelineRunner(layers={self._layers})"
