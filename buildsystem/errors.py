"""Error taxonomy for the build system.

Every failure a handler can report carries a ``kind`` so the runner can
attach "kind: message" to the run outcome without inspecting types.
"""

from typing import Optional


class BuildError(Exception):
    """Base class for all build-system errors."""

    kind = "build"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingConfigurationError(BuildError):
    """A required global setting or upstream artifact is absent or malformed."""

    kind = "configuration"


class ResponseParsingError(BuildError):
    """Upstream or generated text could not be parsed into the expected shape."""

    kind = "parsing"


class GenerationCallError(BuildError):
    """A call to the generation service failed, timed out or returned garbage."""

    kind = "generation"

    def __init__(
        self,
        message: str,
        tick: Optional[int] = None,
        operation_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.tick = tick
        self.operation_id = operation_id


class ArtifactAlreadyPublishedError(BuildError):
    """An operation id was written twice without an explicit overwrite."""

    kind = "context"


class DependencyCycleError(BuildError):
    """Handler requirements form a cycle or reuse an operation id."""

    kind = "dependency"
