import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence

from ..errors import BuildError
from .context import ContextKey, ExecutionContext
from .result import HandlerError, HandlerResult

logger = logging.getLogger(__name__)


class BuildHandler(ABC):
    """Base class for all build handlers. One handler produces one artifact.

    Subclasses set ``id`` (their operation id) and ``requires`` (operation ids
    they read) and implement ``generate``. ``run`` turns build errors into a
    failed result and publishes the artifact only when generation succeeded.
    """

    id: ContextKey
    requires: Sequence[ContextKey] = ()

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def generate(self, context: ExecutionContext) -> Any:
        """
        Produce this handler's artifact.

        Raise a BuildError subclass to fail; never publish from here.
        """
        pass

    async def run(self, context: ExecutionContext) -> HandlerResult:
        logger.info(f"{self.name} ({self.id}): started")

        try:
            data = await self.generate(context)
            context.set_artifact(self.id, data)
        except BuildError as e:
            logger.error(f"{self.name} ({self.id}): ✗ {e.kind} error: {e.message}")
            return HandlerResult.fail(HandlerError.from_exception(e))

        logger.info(f"{self.name} ({self.id}): ✓ published")
        return HandlerResult.ok(data)

    def __repr__(self) -> str:
        requires = [str(key) for key in self.requires]
        return f"{self.name}(id={self.id}, requires={requires})"
