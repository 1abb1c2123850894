"""Handler execution engine.

This package provides:
- ExecutionContext: write-once artifact store keyed by operation id
- BuildHandler: one unit of work producing one artifact
- ClockedSynchronizer: bounded, clock-stamped fan-out to the generation service
- PipelineRunner: dependency-respecting execution of handlers
- extract_sections: top-level section splitting that drives the fan-out
"""

from .base import BuildHandler
from .clock import ClockedSynchronizer
from .context import CallRecord, ContextKey, ExecutionContext
from .result import HandlerError, HandlerResult
from .runner import PipelineRunner, RunOutcome
from .sections import Section, extract_sections, iter_headings

__all__ = [
    "BuildHandler",
    "CallRecord",
    "ClockedSynchronizer",
    "ContextKey",
    "ExecutionContext",
    "HandlerError",
    "HandlerResult",
    "PipelineRunner",
    "RunOutcome",
    "Section",
    "extract_sections",
    "iter_headings",
]
